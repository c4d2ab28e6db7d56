"""SQLAlchemy ORM models."""

from vibecheck.models.base import Base
from vibecheck.models.tree_node import TreeNode

__all__ = [
    "Base",
    "TreeNode",
]
