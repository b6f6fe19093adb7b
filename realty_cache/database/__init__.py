"""
Database package for the listing store.

SQLAlchemy models and engine configuration backing the reference location
repository.
"""

from .models import (
    Base,
    Location,
    Property,
    create_all_tables,
    drop_all_tables
)

from .config import DatabaseConfig

__all__ = [
    # Models
    'Base',
    'Location',
    'Property',
    'create_all_tables',
    'drop_all_tables',

    # Configuration
    'DatabaseConfig',
]
