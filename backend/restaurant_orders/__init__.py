"""
Restaurant ordering backend.

Order lifecycle and authorization core for a multi-tenant restaurant ordering
platform, plus the FastAPI and SQLAlchemy boundary that serves it.
"""

__version__ = "1.0.0"
