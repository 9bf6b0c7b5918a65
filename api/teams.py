"""
Teams API Router.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database import get_db
from schemas import Principal, TeamMembershipListResponse
from services import ServiceError, get_team_memberships
from .deps import get_principal, handle_service_error

router = APIRouter()


@router.get(
    "/api/users/me/team-memberships",
    response_model=TeamMembershipListResponse,
    tags=["Teams"],
    summary="My team memberships",
    description="Teams the current user belongs to, with the membership role.",
)
def my_team_memberships(
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    try:
        return get_team_memberships(db, principal)
    except ServiceError as e:
        handle_service_error(e)
