from datetime import datetime
from sqlalchemy import Integer, String, Text, Numeric, DateTime, Enum, func
from sqlalchemy.orm import Mapped, mapped_column
import enum

from brain.db.base import Base


class ProjectStatus(str, enum.Enum):
    active = "active"
    paused = "paused"
    done = "done"
    archived = "archived"


class RiskLevel(str, enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"


# main_blocker is free text; this literal means "nothing blocks".
NO_BLOCKER = "Aucun"


class Project(Base):
    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    slug: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    completion_percentage: Mapped[float] = mapped_column(
        Numeric(5, 2, asdecimal=False), nullable=False, default=0,
        comment="0–100",
    )
    cash_impact_score: Mapped[float] = mapped_column(
        Numeric(4, 2, asdecimal=False), nullable=False, default=0,
        comment="0–10",
    )
    risk_level: Mapped[str] = mapped_column(
        Enum(RiskLevel, name="risk_level_enum"),
        nullable=False,
        default=RiskLevel.medium,
    )
    main_blocker: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        Enum(ProjectStatus, name="project_status_enum"),
        nullable=False,
        default=ProjectStatus.active,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    @property
    def has_blocker(self) -> bool:
        return bool(self.main_blocker) and self.main_blocker != NO_BLOCKER
