"""Database base for DDD architecture"""

from sqlalchemy.orm import declarative_base

# Keep Base for ORM models
Base = declarative_base()

# NOTE: All model classes live in infrastructure/orm/ so the domain layer
# never imports SQLAlchemy.

# No imports of ORM models here to avoid circular dependencies
