"""
Project lookups shared by every scoring service.
"""
from __future__ import annotations

from sqlalchemy.orm import Session

from brain.core.errors import ProjectNotFoundError
from brain.models.project import Project, ProjectStatus


def get_project(db: Session, project_id: int) -> Project:
    project = db.get(Project, project_id)
    if project is None:
        raise ProjectNotFoundError(project_id)
    return project


def find_project(db: Session, project_id: int) -> Project | None:
    return db.get(Project, project_id)


def active_projects(db: Session) -> list[Project]:
    return (
        db.query(Project)
        .filter(Project.status == ProjectStatus.active)
        .order_by(Project.id)
        .all()
    )
