"""
Domain services of the e-library backend.

This package provides:
- User registration and credential checks
- Book lifecycle with remote asset handling
- Ratings and per-author rating insights
"""
