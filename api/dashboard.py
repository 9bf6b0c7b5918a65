"""
Dashboard API Router.
Hour totals per day, project, category or team member.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database import get_db
from metrics import GroupBy
from schemas import DashboardResponse, Principal, TeamDashboardResponse
from services import ServiceError, get_dashboard_stats, get_team_dashboard
from .deps import dashboard_query, get_principal, handle_service_error, team_dashboard_query

router = APIRouter()


@router.get(
    "/api/dashboard/personal",
    response_model=DashboardResponse,
    tags=["Dashboard"],
    summary="Hours per day",
    description="Default period: today. Ordered by date.",
)
def personal_stats(
    params: dict = Depends(dashboard_query),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    try:
        return get_dashboard_stats(db, principal, params, GroupBy.DAY)
    except ServiceError as e:
        handle_service_error(e)


@router.get(
    "/api/dashboard/projects",
    response_model=DashboardResponse,
    tags=["Dashboard"],
    summary="Hours per project",
    description="Default period: this week. Ordered by total hours, highest first.",
)
def project_stats(
    params: dict = Depends(dashboard_query),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    try:
        return get_dashboard_stats(db, principal, params, GroupBy.PROJECT)
    except ServiceError as e:
        handle_service_error(e)


@router.get(
    "/api/dashboard/categories",
    response_model=DashboardResponse,
    tags=["Dashboard"],
    summary="Hours per work category",
    description="Default period: this week. Ordered by total hours, highest first, "
    "with each category's share of the period total.",
)
def category_stats(
    params: dict = Depends(dashboard_query),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    try:
        return get_dashboard_stats(db, principal, params, GroupBy.CATEGORY)
    except ServiceError as e:
        handle_service_error(e)


@router.get(
    "/api/dashboard/team",
    response_model=TeamDashboardResponse,
    tags=["Dashboard"],
    summary="Hours per team member",
    description="One team's totals per member. Admins may pass any teamId; "
    "others may only pass a team they belong to. Default period: this week.",
)
def team_stats(
    params: dict = Depends(team_dashboard_query),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    try:
        return get_team_dashboard(db, principal, params)
    except ServiceError as e:
        handle_service_error(e)
