# SQLAlchemy models
from .base import Base
from .progress import LearnerProfileRecord, TreeRecord, UnitProgressRecord

__all__ = [
    "Base",
    "LearnerProfileRecord",
    "TreeRecord",
    "UnitProgressRecord",
]
