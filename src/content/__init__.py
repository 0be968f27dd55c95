"""
Content Module - read-only authored content.

Components:
- models: ContentUnit, UnitType
- pool: ContentPool (lookup, topic/difficulty filtering, paging, JSON loading)
"""

from src.content.models import ContentUnit, UnitType
from src.content.pool import ContentPool

__all__ = ["ContentPool", "ContentUnit", "UnitType"]
