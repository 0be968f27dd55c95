"""
Persistence Module.

Components:
- store: ProgressStore protocol, InMemoryProgressStore
- sql_store: SqlProgressStore (SQLAlchemy)
- database: engine, session factory, session_scope
- models: ORM tables
"""

from src.db.store import InMemoryProgressStore, ProgressStore

__all__ = ["InMemoryProgressStore", "ProgressStore"]
