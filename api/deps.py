"""
API Dependencies and shared utilities.
Authentication, error handling, query parameters.
"""
import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, Query
from sqlalchemy.orm import Session

from database import get_db
from models import User
from schemas import Principal
from services import ServiceError

logger = logging.getLogger(__name__)

# =============================================================================
# API Tags Definition for OpenAPI/Swagger Documentation
# =============================================================================
TAGS_METADATA = [
    {
        "name": "Health",
        "description": "Service status checks. No authentication required.",
    },
    {
        "name": "Auth",
        "description": "API key authentication and current user information.",
    },
    {
        "name": "WorkLogs",
        "description": "Work log listing, CSV export and single-record create/read/update/delete. "
        "Visibility is controlled by the scope parameter (own, team, all, user).",
    },
    {
        "name": "Dashboard",
        "description": "Hour totals over a period, grouped by day, project, category or team member, with period summaries.",
    },
    {
        "name": "Teams",
        "description": "Team memberships of the current user.",
    },
]

# ServiceError.code -> HTTP status
STATUS_BY_CODE = {
    "VALIDATION_ERROR": 400,
    "UNAUTHORIZED": 401,
    "FORBIDDEN": 403,
    "NOT_FOUND": 404,
    "INTERNAL_ERROR": 500,
}


def get_current_user(
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
    db: Session = Depends(get_db),
) -> User:
    """Authenticate user by API key."""
    if not x_api_key:
        raise HTTPException(
            status_code=401,
            detail={"code": "UNAUTHORIZED", "message": "Authentication required"},
        )

    user = db.query(User).filter(User.api_key == x_api_key, User.is_active == True).first()
    if not user:
        logger.warning("Rejected request with invalid or inactive API key")
        raise HTTPException(
            status_code=401,
            detail={"code": "UNAUTHORIZED", "message": "Invalid or inactive API key"},
        )
    return user


def get_principal(user: User = Depends(get_current_user)) -> Principal:
    """The authenticated caller as passed to services."""
    return Principal(id=user.id, role=user.role)


def handle_service_error(e: ServiceError):
    """Convert service errors to HTTP exceptions."""
    detail = {"code": e.code, "message": e.message}
    if e.details is not None:
        detail["details"] = e.details
    raise HTTPException(status_code=STATUS_BY_CODE.get(e.code, 500), detail=detail)


# =============================================================================
# Query Parameters
# =============================================================================
# Values stay strings so malformed input reaches the filter builder and comes
# back as a VALIDATION_ERROR envelope listing every bad field.

def present(values: dict) -> dict[str, str]:
    """Query values keyed by wire name, without the ones not sent."""
    return {name: value for name, value in values.items() if value is not None}


def scope_query(
    scope: Optional[str] = Query(None, description="own (default), team, all (admin) or user"),
    user_id: Optional[str] = Query(None, alias="userId", description="Target user; selects scope=user"),
) -> dict[str, str]:
    return present({"scope": scope, "userId": user_id})


def filter_query(
    start_date: Optional[str] = Query(None, alias="startDate", description="YYYY-MM-DD, inclusive"),
    end_date: Optional[str] = Query(None, alias="endDate", description="YYYY-MM-DD, inclusive"),
    project_id: Optional[str] = Query(None, alias="projectId"),
    project_ids: Optional[str] = Query(None, alias="projectIds", description="Comma-separated project ids"),
    category_id: Optional[str] = Query(None, alias="categoryId"),
    category_ids: Optional[str] = Query(None, alias="categoryIds", description="Comma-separated category ids"),
) -> dict[str, str]:
    return present({
        "startDate": start_date,
        "endDate": end_date,
        "projectId": project_id,
        "projectIds": project_ids,
        "categoryId": category_id,
        "categoryIds": category_ids,
    })


def work_log_query(
    page: Optional[str] = Query(None, description="Page number, from 1"),
    limit: Optional[str] = Query(None, description="Page size, 1 to 100 (default 20)"),
    search_text: Optional[str] = Query(None, alias="searchText", description="Substring of details"),
    scope_params: dict = Depends(scope_query),
    filter_params: dict = Depends(filter_query),
) -> dict[str, str]:
    return {
        **scope_params,
        **filter_params,
        **present({"page": page, "limit": limit, "searchText": search_text}),
    }


def export_query(
    from_date: Optional[str] = Query(None, alias="from", description="YYYY-MM-DD, required"),
    to_date: Optional[str] = Query(None, alias="to", description="YYYY-MM-DD, required"),
    projects: Optional[str] = Query(None, description="Comma-separated project ids"),
    categories: Optional[str] = Query(None, description="Comma-separated category ids"),
    scope_params: dict = Depends(scope_query),
) -> dict[str, str]:
    return {
        **scope_params,
        **present({"from": from_date, "to": to_date, "projects": projects, "categories": categories}),
    }


def dashboard_query(
    period: Optional[str] = Query(None, description="today, week, month, lastWeek, lastMonth or custom"),
    scope_params: dict = Depends(scope_query),
    filter_params: dict = Depends(filter_query),
) -> dict[str, str]:
    return {**scope_params, **filter_params, **present({"period": period})}


def team_dashboard_query(
    team_id: Optional[str] = Query(None, alias="teamId", description="Defaults to the caller's first team"),
    period: Optional[str] = Query(None, description="today, week (default), month, lastWeek, lastMonth or custom"),
    filter_params: dict = Depends(filter_query),
) -> dict[str, str]:
    return {**filter_params, **present({"teamId": team_id, "period": period})}
