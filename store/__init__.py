"""
Persistence layer for the Book Review API.

This package contains:
- MongoDB connection and index management
- Entity validation models
- Identity, catalog and review stores
- Query building and pagination helpers
"""

__version__ = "1.0.0"
