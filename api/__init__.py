"""
FastAPI RESTful API for the Book Review service.

This module provides a REST API for:
- User signup, login and bearer token sessions
- Book catalog management scoped to the creating user
- One review per user per book, with average ratings
- Paginated listing, filtering, sorting and search
"""
