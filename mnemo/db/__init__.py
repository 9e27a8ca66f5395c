"""
Persistence layer.

- store: the ItemStore protocol the core depends on
- item_store: SQLAlchemy implementation (SQLite by default)
- database: engine and session helpers
- models: table definitions
"""

from mnemo.db.item_store import SqlItemStore
from mnemo.db.store import ItemStore

__all__ = ["ItemStore", "SqlItemStore"]
