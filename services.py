"""
Business logic services.
Every read composes the same pipeline:
parse scope -> authorize -> build filter spec -> resolve scope -> repository.
Single-row writes check ownership and team leadership before committing.
"""
import logging
from collections.abc import Mapping
from datetime import date
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import IS_PRODUCTION
from csv_export import export_filename, serialize_work_logs, validate_export_window
from errors import (
    ForbiddenError,
    InternalError,
    NotFoundError,
    ServiceError,
    ValidationError,
)
from filters import (
    EXPORT_PARAM_ALIASES,
    build_filter_spec,
    normalize_params,
    parse_scope_params,
    parse_team_id,
)
from metrics import (
    GroupBy,
    Period,
    average_hours,
    build_stats,
    dashboard_range,
    parse_period,
    summarize,
    today_local,
)
from models import Team, WorkLog
from repository import (
    aggregate_work_logs,
    category_is_active,
    create_work_log,
    delete_work_log,
    get_all_work_logs,
    get_member_ids_for_teams,
    get_memberships,
    get_team,
    get_team_ids_for_user,
    get_work_log,
    get_work_log_view,
    get_work_logs,
    is_team_leader_of,
    project_is_active,
    share_team,
    update_work_log,
    user_exists,
)
from schemas import (
    DashboardResponse,
    FilterSpec,
    Principal,
    TeamDashboardResponse,
    TeamDashboardSummary,
    TeamMembershipItem,
    TeamMembershipListResponse,
    WorkLogCreateRequest,
    WorkLogListResponse,
    WorkLogResponse,
    WorkLogUpdateRequest,
    WorkLogView,
)
from scope import Scope, authorize_scope, resolve_scope
from validation import parse_uuid

logger = logging.getLogger(__name__)

__all__ = [
    "ServiceError",
    "ValidationError",
    "NotFoundError",
    "ForbiddenError",
    "InternalError",
]

# Default dashboard period per grouping
DEFAULT_PERIODS = {
    GroupBy.DAY: Period.TODAY,
    GroupBy.PROJECT: Period.WEEK,
    GroupBy.CATEGORY: Period.WEEK,
}


def _storage_error(action: str, e: SQLAlchemyError) -> InternalError:
    logger.exception("Database error while %s", action)
    return InternalError(
        f"An error occurred while {action}",
        details=None if IS_PRODUCTION else str(e),
    )


def parse_read_request(principal: Principal, params: Mapping) -> tuple[Scope, Optional[str], FilterSpec]:
    """
    Storage-free checks shared by every read.

    Authorization runs before parameter validation, so a forbidden scope
    is reported even when other parameters are malformed.

    Raises:
        ValidationError: Unknown scope, scope=user without userId, bad params
        ForbiddenError: Role insufficient for the requested scope
    """
    scope, user_id = parse_scope_params(params)
    authorize_scope(principal, scope, user_id)
    return scope, user_id, build_filter_spec(params)


def scope_filter_spec(
    db: Session, principal: Principal, scope: Scope, user_id: Optional[str], spec: FilterSpec
) -> FilterSpec:
    """Attach the caller's visible user ids; team scope reads memberships."""
    resolved = resolve_scope(db, principal, scope, user_id)
    return spec.with_users(resolved.user_ids)


def compose_filter_spec(db: Session, principal: Principal, params: Mapping) -> FilterSpec:
    """
    Turn raw query parameters into a FilterSpec scoped to the caller.
    Nothing touches storage until every parameter has been checked.
    """
    scope, user_id, spec = parse_read_request(principal, params)
    return scope_filter_spec(db, principal, scope, user_id, spec)


# ============================================================
# Listing / Export / Dashboard
# ============================================================

def list_work_logs(db: Session, principal: Principal, params: Mapping) -> WorkLogListResponse:
    """One page of work logs visible to the caller."""
    try:
        spec = compose_filter_spec(db, principal, params)
        rows, pagination = get_work_logs(db, spec)
    except SQLAlchemyError as e:
        raise _storage_error("fetching work logs", e)

    return WorkLogListResponse(data=rows, pagination=pagination)


def export_work_logs_csv(db: Session, principal: Principal, params: Mapping) -> tuple[str, str]:
    """
    Export work logs as CSV.

    Accepts from/to/projects/categories in addition to the listing names.
    The window must be present and span at most MAX_EXPORT_DAYS.

    Returns:
        (csv_text, filename)
    """
    params = normalize_params(params, EXPORT_PARAM_ALIASES)
    scope, user_id, spec = parse_read_request(principal, params)
    date_range = spec.date_range
    start = date_range.start if date_range else None
    end = date_range.end if date_range else None
    validate_export_window(start, end)

    try:
        spec = scope_filter_spec(db, principal, scope, user_id, spec)
        rows = get_all_work_logs(db, spec)
    except SQLAlchemyError as e:
        raise _storage_error("exporting work logs", e)

    logger.info("Exported %d work logs for user %s (%s to %s)", len(rows), principal.id, start, end)
    return serialize_work_logs(rows), export_filename(start, end)


def get_dashboard_stats(
    db: Session,
    principal: Principal,
    params: Mapping,
    group_by: GroupBy,
    today: Optional[date] = None,
) -> DashboardResponse:
    """
    Grouped hour totals over a period.

    Args:
        group_by: GroupBy.DAY (personal), GroupBy.PROJECT (projects)
            or GroupBy.CATEGORY (categories)
        today: Reference date; defaults to today in the configured timezone

    Raises:
        ValidationError: Unknown period, custom period without both dates,
            filter range outside the period
    """
    scope, user_id, spec = parse_read_request(principal, params)
    period = parse_period(params.get("period"), DEFAULT_PERIODS[group_by])
    date_range = dashboard_range(period, today or today_local(), spec.date_range)

    try:
        spec = scope_filter_spec(db, principal, scope, user_id, spec)
        rows = aggregate_work_logs(db, spec.with_date_range(date_range), group_by.value)
    except SQLAlchemyError as e:
        raise _storage_error("fetching dashboard statistics", e)

    return DashboardResponse(
        data=build_stats(rows),
        summary=summarize(rows),
        period_start=date_range.start,
        period_end=date_range.end,
    )


def _resolve_team(db: Session, principal: Principal, team_id: Optional[str]) -> Team:
    """
    The team a team dashboard reports on.
    Admins may name any team; others only a team they belong to.
    Without a team id, the caller's first team by name.
    """
    if team_id is None:
        memberships = get_memberships(db, principal.id)
        if not memberships:
            raise NotFoundError("You are not a member of any team")
        team_id = memberships[0][0].team_id
    elif not principal.is_admin and team_id not in get_team_ids_for_user(db, principal.id):
        logger.warning("User %s denied team dashboard for team %s", principal.id, team_id)
        raise ForbiddenError("You are not a member of this team")

    team = get_team(db, team_id)
    if team is None:
        raise NotFoundError("Team not found")
    return team


def get_team_dashboard(
    db: Session,
    principal: Principal,
    params: Mapping,
    today: Optional[date] = None,
) -> TeamDashboardResponse:
    """
    Hours per member of one team over a period (default: this week).

    Query parameters are validated before the team lookup.

    Raises:
        ValidationError: Malformed teamId or filter parameters
        ForbiddenError: Caller is not an admin and not in the team
        NotFoundError: Unknown team, caller in no team, team without members
    """
    team_id = parse_team_id(params)
    spec = build_filter_spec(params)
    period = parse_period(params.get("period"), Period.WEEK)
    date_range = dashboard_range(period, today or today_local(), spec.date_range)

    try:
        team = _resolve_team(db, principal, team_id)
        member_ids = get_member_ids_for_teams(db, [team.id])
        if not member_ids:
            raise NotFoundError("No members found in this team")

        spec = spec.with_users(frozenset(member_ids)).with_date_range(date_range)
        rows = aggregate_work_logs(db, spec, GroupBy.MEMBER.value)
    except SQLAlchemyError as e:
        raise _storage_error("fetching team statistics", e)

    totals = summarize(rows)
    return TeamDashboardResponse(
        team_id=team.id,
        team_name=team.name,
        data=build_stats(rows),
        summary=TeamDashboardSummary(
            total_hours=totals.total_hours,
            count=totals.count,
            member_count=len(member_ids),
            average_hours_per_member=average_hours(totals.total_hours, len(member_ids)),
        ),
        period_start=date_range.start,
        period_end=date_range.end,
    )


# ============================================================
# Single Work Log
# ============================================================

def _load_work_log(db: Session, work_log_id: str) -> WorkLog:
    log_id = parse_uuid(work_log_id)
    log = get_work_log(db, log_id) if log_id else None
    if not log:
        raise NotFoundError("Work log not found")
    return log


def can_view(db: Session, principal: Principal, owner_id: str) -> bool:
    """Admin, the owner, or anyone sharing a team with the owner."""
    return principal.is_admin or principal.id == owner_id or share_team(db, principal.id, owner_id)


def can_modify(db: Session, principal: Principal, owner_id: str) -> bool:
    """Admin, the owner, or a leader of a team the owner belongs to."""
    return (
        principal.is_admin
        or principal.id == owner_id
        or is_team_leader_of(db, principal.id, owner_id)
    )


def _check_target_user(db: Session, principal: Principal, user_id: str) -> None:
    """Only admins may write on behalf of another user."""
    if user_id != principal.id and not principal.is_admin:
        logger.warning("User %s tried to write a work log for %s", principal.id, user_id)
        raise ForbiddenError("Only admins can manage work logs for other users")
    if not user_exists(db, user_id):
        raise ValidationError("User not found", details=[{"field": "userId", "message": "User not found"}])


def _check_references(db: Session, project_id: Optional[str], category_id: Optional[str]) -> None:
    issues = []
    if project_id is not None and not project_is_active(db, project_id):
        issues.append({"field": "projectId", "message": "Project not found or inactive"})
    if category_id is not None and not category_is_active(db, category_id):
        issues.append({"field": "categoryId", "message": "Category not found or inactive"})
    if issues:
        raise ValidationError("Invalid work log data", details=issues)


def get_work_log_detail(db: Session, principal: Principal, work_log_id: str) -> WorkLogView:
    try:
        log = _load_work_log(db, work_log_id)
        if not can_view(db, principal, log.user_id):
            raise ForbiddenError("You do not have permission to view this work log")
        return get_work_log_view(db, log.id)
    except SQLAlchemyError as e:
        raise _storage_error("fetching the work log", e)


def create_work_log_for(
    db: Session, principal: Principal, request: WorkLogCreateRequest
) -> WorkLogResponse:
    """
    Create a work log.
    The owner defaults to the caller; naming another user requires admin.
    """
    owner_id = request.user_id or principal.id
    try:
        _check_target_user(db, principal, owner_id)
        _check_references(db, request.project_id, request.category_id)

        log = create_work_log(
            db,
            user_id=owner_id,
            log_date=request.date,
            hours=request.hours,
            project_id=request.project_id,
            category_id=request.category_id,
            details=request.details,
        )
    except SQLAlchemyError as e:
        db.rollback()
        raise _storage_error("creating the work log", e)

    logger.info("Work log %s created for user %s by %s", log.id, owner_id, principal.id)
    return WorkLogResponse.model_validate(log)


def update_work_log_for(
    db: Session, principal: Principal, work_log_id: str, request: WorkLogUpdateRequest
) -> WorkLogResponse:
    """
    Update the fields present in the request.
    Reassigning the owner is admin only.
    """
    try:
        log = _load_work_log(db, work_log_id)
        if not can_modify(db, principal, log.user_id):
            raise ForbiddenError("You do not have permission to update this work log")

        changes = {field: getattr(request, field) for field in request.model_fields_set}

        new_owner = changes.get("user_id")
        if new_owner is not None and new_owner != log.user_id:
            if not principal.is_admin:
                raise ForbiddenError("Only admins can change the owner of a work log")
            if not user_exists(db, new_owner):
                raise ValidationError("User not found", details=[{"field": "userId", "message": "User not found"}])

        _check_references(db, changes.get("project_id"), changes.get("category_id"))

        log = update_work_log(db, log, changes)
    except SQLAlchemyError as e:
        db.rollback()
        raise _storage_error("updating the work log", e)

    logger.info("Work log %s updated by %s (%s)", log.id, principal.id, ", ".join(sorted(changes)))
    return WorkLogResponse.model_validate(log)


def delete_work_log_for(db: Session, principal: Principal, work_log_id: str) -> None:
    try:
        log = _load_work_log(db, work_log_id)
        if not can_modify(db, principal, log.user_id):
            raise ForbiddenError("You do not have permission to delete this work log")
        delete_work_log(db, log)
    except SQLAlchemyError as e:
        db.rollback()
        raise _storage_error("deleting the work log", e)

    logger.info("Work log %s deleted by %s", work_log_id, principal.id)


# ============================================================
# Team Memberships
# ============================================================

def get_team_memberships(db: Session, principal: Principal) -> TeamMembershipListResponse:
    try:
        rows = get_memberships(db, principal.id)
    except SQLAlchemyError as e:
        raise _storage_error("fetching team memberships", e)

    return TeamMembershipListResponse(
        data=[
            TeamMembershipItem(
                team_id=membership.team_id,
                team_name=team_name,
                role=membership.role,
                joined_at=membership.joined_at,
            )
            for membership, team_name in rows
        ]
    )
