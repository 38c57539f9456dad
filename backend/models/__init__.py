"""SQLAlchemy ORM models for AI-IDE."""

from backend.models.base import Base
from backend.models.file import FileRecord
from backend.models.project import Project
from backend.models.user import User

__all__ = [
    "Base",
    "FileRecord",
    "Project",
    "User",
]
