"""
Work log repository.
Executes FilterSpec queries and single-row writes against the database.
Listing, export and dashboard queries share one condition builder.
"""
import math
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, aliased

from models import Project, Team, TeamMember, TeamRole, User, WorkCategory, WorkLog, now_tz
from schemas import FilterSpec, Pagination, WorkLogView


# ============================================================
# Team Membership Store
# ============================================================

def get_team_ids_for_user(db: Session, user_id: str) -> list[str]:
    """Team ids the user belongs to (any membership role)."""
    rows = db.query(TeamMember.team_id).filter(TeamMember.user_id == user_id).all()
    return [row.team_id for row in rows]


def get_member_ids_for_teams(db: Session, team_ids: list[str]) -> set[str]:
    """All user ids in the given teams, fetched with a single IN query."""
    if not team_ids:
        return set()
    rows = (
        db.query(TeamMember.user_id)
        .filter(TeamMember.team_id.in_(team_ids))
        .distinct()
        .all()
    )
    return {row.user_id for row in rows}


def share_team(db: Session, user_id: str, other_user_id: str) -> bool:
    """True if both users belong to at least one common team."""
    if user_id == other_user_id:
        return True
    tm2 = aliased(TeamMember)
    row = (
        db.query(TeamMember.team_id)
        .join(tm2, TeamMember.team_id == tm2.team_id)
        .filter(TeamMember.user_id == user_id, tm2.user_id == other_user_id)
        .first()
    )
    return row is not None


def is_team_leader_of(db: Session, leader_id: str, member_id: str) -> bool:
    """True if leader_id leads a team that member_id belongs to."""
    tm2 = aliased(TeamMember)
    row = (
        db.query(TeamMember.team_id)
        .join(tm2, TeamMember.team_id == tm2.team_id)
        .filter(
            TeamMember.user_id == leader_id,
            TeamMember.role == TeamRole.LEADER,
            tm2.user_id == member_id,
        )
        .first()
    )
    return row is not None


def get_team(db: Session, team_id: str) -> Optional[Team]:
    return db.query(Team).filter(Team.id == team_id).first()


def get_memberships(db: Session, user_id: str) -> list[tuple[TeamMember, str]]:
    """Memberships of a user with the team name, ordered by team name."""
    rows = (
        db.query(TeamMember, Team.name)
        .join(Team, TeamMember.team_id == Team.id)
        .filter(TeamMember.user_id == user_id)
        .order_by(Team.name)
        .all()
    )
    return [(membership, team_name) for membership, team_name in rows]


# ============================================================
# Work Log Queries
# ============================================================

def build_conditions(spec: FilterSpec) -> list:
    """
    Translate a FilterSpec into WHERE conditions.

    user_ids=None adds no user condition. The date range is inclusive.
    """
    conditions = []

    if spec.user_ids is not None:
        conditions.append(WorkLog.user_id.in_(sorted(spec.user_ids)))

    if spec.date_range is not None:
        if spec.date_range.start is not None:
            conditions.append(WorkLog.date >= spec.date_range.start)
        if spec.date_range.end is not None:
            conditions.append(WorkLog.date <= spec.date_range.end)

    if spec.project_ids:
        conditions.append(WorkLog.project_id.in_(sorted(spec.project_ids)))

    if spec.category_ids:
        conditions.append(WorkLog.category_id.in_(sorted(spec.category_ids)))

    if spec.search_text:
        conditions.append(WorkLog.details.icontains(spec.search_text, autoescape=True))

    return conditions


def _view_query(db: Session):
    return (
        db.query(WorkLog, User.name, User.email, Project.name, WorkCategory.name)
        .join(User, WorkLog.user_id == User.id)
        .join(Project, WorkLog.project_id == Project.id)
        .join(WorkCategory, WorkLog.category_id == WorkCategory.id)
    )


def _to_view(row) -> WorkLogView:
    log, user_name, user_email, project_name, category_name = row
    return WorkLogView(
        id=log.id,
        user_id=log.user_id,
        date=log.date,
        hours=log.hours,
        project_id=log.project_id,
        category_id=log.category_id,
        details=log.details,
        created_at=log.created_at,
        updated_at=log.updated_at,
        user_name=user_name,
        user_email=user_email,
        project_name=project_name,
        category_name=category_name,
    )


def get_work_logs(db: Session, spec: FilterSpec) -> tuple[list[WorkLogView], Pagination]:
    """
    Get one page of work logs matching the filter.

    Returns:
        (rows, pagination) where pagination.total is the full filtered count
    """
    conditions = build_conditions(spec)

    total = db.query(func.count(WorkLog.id)).filter(*conditions).scalar() or 0

    rows = (
        _view_query(db)
        .filter(*conditions)
        .order_by(WorkLog.date.desc(), WorkLog.created_at.desc())
        .offset(spec.offset)
        .limit(spec.limit)
        .all()
    )

    pagination = Pagination(
        page=spec.page,
        limit=spec.limit,
        total=total,
        total_pages=math.ceil(total / spec.limit),
    )
    return [_to_view(row) for row in rows], pagination


def get_all_work_logs(db: Session, spec: FilterSpec) -> list[WorkLogView]:
    """All rows matching the filter, ignoring paging. Used by CSV export."""
    rows = (
        _view_query(db)
        .filter(*build_conditions(spec))
        .order_by(WorkLog.date.desc(), WorkLog.created_at.desc())
        .all()
    )
    return [_to_view(row) for row in rows]


def aggregate_work_logs(
    db: Session, spec: FilterSpec, group_by: str
) -> list[tuple[str, str, Optional[Decimal], int]]:
    """
    Sum hours and count rows matching the filter.

    Args:
        group_by: "project", "category" or "member" (ordered by hours desc,
            then name) or "day" (ordered by date)

    Returns:
        List of (key, label, total_hours, count)
    """
    conditions = build_conditions(spec)
    total_hours = func.sum(WorkLog.hours)

    if group_by == "project":
        rows = (
            db.query(WorkLog.project_id, Project.name, total_hours, func.count(WorkLog.id))
            .join(Project, WorkLog.project_id == Project.id)
            .filter(*conditions)
            .group_by(WorkLog.project_id, Project.name)
            .order_by(total_hours.desc(), Project.name)
            .all()
        )
        return [(project_id, name, hours, count) for project_id, name, hours, count in rows]

    if group_by == "category":
        rows = (
            db.query(WorkLog.category_id, WorkCategory.name, total_hours, func.count(WorkLog.id))
            .join(WorkCategory, WorkLog.category_id == WorkCategory.id)
            .filter(*conditions)
            .group_by(WorkLog.category_id, WorkCategory.name)
            .order_by(total_hours.desc(), WorkCategory.name)
            .all()
        )
        return [(category_id, name, hours, count) for category_id, name, hours, count in rows]

    if group_by == "member":
        rows = (
            db.query(WorkLog.user_id, User.name, User.email, total_hours, func.count(WorkLog.id))
            .join(User, WorkLog.user_id == User.id)
            .filter(*conditions)
            .group_by(WorkLog.user_id, User.name, User.email)
            .order_by(total_hours.desc(), User.name, User.email)
            .all()
        )
        return [(user_id, name or email, hours, count) for user_id, name, email, hours, count in rows]

    if group_by == "day":
        rows = (
            db.query(WorkLog.date, total_hours, func.count(WorkLog.id))
            .filter(*conditions)
            .group_by(WorkLog.date)
            .order_by(WorkLog.date)
            .all()
        )
        return [(day.isoformat(), day.isoformat(), hours, count) for day, hours, count in rows]

    raise ValueError(f"Unsupported group_by: {group_by}")


# ============================================================
# Single-row operations
# ============================================================

def get_work_log(db: Session, work_log_id: str) -> Optional[WorkLog]:
    return db.query(WorkLog).filter(WorkLog.id == work_log_id).first()


def get_work_log_view(db: Session, work_log_id: str) -> Optional[WorkLogView]:
    row = _view_query(db).filter(WorkLog.id == work_log_id).first()
    return _to_view(row) if row else None


def project_is_active(db: Session, project_id: str) -> bool:
    return (
        db.query(Project.id)
        .filter(Project.id == project_id, Project.is_active == True)
        .first()
        is not None
    )


def category_is_active(db: Session, category_id: str) -> bool:
    return (
        db.query(WorkCategory.id)
        .filter(WorkCategory.id == category_id, WorkCategory.is_active == True)
        .first()
        is not None
    )


def user_exists(db: Session, user_id: str) -> bool:
    return db.query(User.id).filter(User.id == user_id).first() is not None


def create_work_log(
    db: Session,
    user_id: str,
    log_date: date,
    hours: Decimal,
    project_id: str,
    category_id: str,
    details: Optional[str] = None,
) -> WorkLog:
    log = WorkLog(
        user_id=user_id,
        date=log_date,
        hours=hours,
        project_id=project_id,
        category_id=category_id,
        details=details,
    )
    db.add(log)
    db.commit()
    db.refresh(log)
    return log


def update_work_log(db: Session, log: WorkLog, changes: dict[str, Any]) -> WorkLog:
    for field, value in changes.items():
        setattr(log, field, value)
    log.updated_at = now_tz()
    db.commit()
    db.refresh(log)
    return log


def delete_work_log(db: Session, log: WorkLog) -> None:
    db.delete(log)
    db.commit()
