"""
FastAPI RESTful API for the e-library.

This module provides a REST API for:
- User registration and bearer-token login
- Book uploads to object storage, listing, likes and views
- Ratings and per-author rating insights
"""
