"""
Object storage integration: staging of uploads, the Cloudinary client and
the asset transfer workflow.
"""
