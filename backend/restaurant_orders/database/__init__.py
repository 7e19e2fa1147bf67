"""
Database package initialization.

The package follows a modular structure:
- base: declarative base and mixins
- connection: engine, session factory and request-scoped sessions
- models: SQLAlchemy ORM models for all entities
"""

# Import submodules explicitly when needed to avoid circular dependencies

__all__ = []
