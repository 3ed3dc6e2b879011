from datetime import datetime, date
from sqlalchemy import Integer, Text, DateTime, Date, JSON, func
from sqlalchemy.orm import Mapped, mapped_column

from brain.db.base import Base


class DailyFocus(Base):
    __tablename__ = "daily_focus"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    day: Mapped[date] = mapped_column("date", Date, nullable=False, unique=True, index=True)
    priorities: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    critical_risk: Mapped[str] = mapped_column(Text, nullable=False, default="")
    decision_needed: Mapped[str] = mapped_column(Text, nullable=False, default="")
    ignore_today: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
