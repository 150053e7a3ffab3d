"""
Route groups of the e-library API.
"""
