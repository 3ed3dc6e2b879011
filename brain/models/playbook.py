from datetime import datetime
from sqlalchemy import Integer, String, Text, Boolean, DateTime, JSON, func
from sqlalchemy.orm import Mapped, mapped_column

from brain.db.base import Base


class Playbook(Base):
    """User-authored set of named decision rules, matched by keyword overlap."""

    __tablename__ = "playbooks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    rules: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
