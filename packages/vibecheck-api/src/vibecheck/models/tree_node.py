"""Tree node model - one scalar leaf of the realtime tree."""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from vibecheck.db.types import JSONScalar
from vibecheck.models.base import Base


class TreeNode(Base):
    __tablename__ = "tree_nodes"

    # Slash-separated absolute path, e.g. "stories/u1/-NxAb.../mediaUrl"
    path: Mapped[str] = mapped_column(String(768), primary_key=True)
    value: Mapped[Any] = mapped_column(JSONScalar, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
