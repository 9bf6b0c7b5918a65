"""
WorkLogs API Router.
Listing, CSV export and single work log operations.
"""
from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from database import get_db
from schemas import (
    DeleteResponse,
    Principal,
    WorkLogCreateRequest,
    WorkLogDetailEnvelope,
    WorkLogEnvelope,
    WorkLogListResponse,
    WorkLogUpdateRequest,
)
from services import (
    ServiceError,
    create_work_log_for,
    delete_work_log_for,
    export_work_logs_csv,
    get_work_log_detail,
    list_work_logs,
    update_work_log_for,
)
from .deps import export_query, get_principal, handle_service_error, work_log_query

router = APIRouter()


@router.get(
    "/api/work-logs",
    response_model=WorkLogListResponse,
    tags=["WorkLogs"],
    summary="List work logs",
    description="Paginated work logs ordered by date (newest first), filtered by scope, dates, "
    "projects, categories and details text.",
)
def list_work_logs_endpoint(
    params: dict = Depends(work_log_query),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    try:
        return list_work_logs(db, principal, params)
    except ServiceError as e:
        handle_service_error(e)


@router.get(
    "/api/work-logs/export",
    tags=["WorkLogs"],
    summary="Export work logs as CSV",
    description="UTF-8 CSV with BOM. from and to are required and may be at most 31 days apart.",
    response_class=Response,
)
def export_work_logs_endpoint(
    params: dict = Depends(export_query),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    try:
        content, filename = export_work_logs_csv(db, principal, params)
    except ServiceError as e:
        handle_service_error(e)

    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post(
    "/api/work-logs",
    response_model=WorkLogEnvelope,
    status_code=201,
    tags=["WorkLogs"],
    summary="Create work log",
    description="Creates a work log for the caller. Admins may set userId to create for another user.",
)
def create_work_log_endpoint(
    payload: WorkLogCreateRequest,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    try:
        return WorkLogEnvelope(data=create_work_log_for(db, principal, payload))
    except ServiceError as e:
        handle_service_error(e)


@router.get(
    "/api/work-logs/{work_log_id}",
    response_model=WorkLogDetailEnvelope,
    tags=["WorkLogs"],
    summary="Get work log",
    description="Visible to admins, the owner and the owner's teammates.",
)
def get_work_log_endpoint(
    work_log_id: str,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    try:
        return WorkLogDetailEnvelope(data=get_work_log_detail(db, principal, work_log_id))
    except ServiceError as e:
        handle_service_error(e)


@router.put(
    "/api/work-logs/{work_log_id}",
    response_model=WorkLogEnvelope,
    tags=["WorkLogs"],
    summary="Update work log",
    description="Admins, the owner, or a leader of a team the owner belongs to. "
    "Only admins may change userId.",
)
def update_work_log_endpoint(
    work_log_id: str,
    payload: WorkLogUpdateRequest,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    try:
        return WorkLogEnvelope(data=update_work_log_for(db, principal, work_log_id, payload))
    except ServiceError as e:
        handle_service_error(e)


@router.delete(
    "/api/work-logs/{work_log_id}",
    response_model=DeleteResponse,
    tags=["WorkLogs"],
    summary="Delete work log",
    description="Admins, the owner, or a leader of a team the owner belongs to.",
)
def delete_work_log_endpoint(
    work_log_id: str,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    try:
        delete_work_log_for(db, principal, work_log_id)
        return DeleteResponse()
    except ServiceError as e:
        handle_service_error(e)
