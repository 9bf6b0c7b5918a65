"""
Pydantic v2 Schemas for API request/response validation.
Field names are snake_case in Python and camelCase on the wire.
"""
from datetime import date as date_type
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel

from models import TeamRole, UserRole
from validation import parse_date, parse_hours, parse_uuid, validate_details

API_CONFIG = {
    "alias_generator": to_camel,
    "populate_by_name": True,
    "from_attributes": True,
}


# Principal
class Principal(BaseModel):
    """The authenticated caller."""
    id: str
    role: UserRole

    model_config = {"frozen": True}

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


# Auth
class AuthMeResponse(BaseModel):
    id: str
    email: str
    name: Optional[str]
    role: UserRole
    is_active: bool

    model_config = {
        **API_CONFIG,
        "json_schema_extra": {
            "examples": [
                {
                    "id": "5b0d9c4e-3f57-4d3b-9a39-2b6f0f5f6a11",
                    "email": "admin@example.com",
                    "name": "Admin",
                    "role": "admin",
                    "isActive": True,
                }
            ]
        },
    }


# Team memberships
class TeamMembershipItem(BaseModel):
    team_id: str
    team_name: str
    role: TeamRole
    joined_at: datetime

    model_config = API_CONFIG


class TeamMembershipListResponse(BaseModel):
    success: bool = True
    data: list[TeamMembershipItem]


# Filters
class DateRange(BaseModel):
    """Inclusive date range, start <= end. A missing bound is open."""
    start: Optional[date_type] = None
    end: Optional[date_type] = None

    model_config = {"frozen": True}


class FilterSpec(BaseModel):
    """
    Canonical, validated query constraints for one request.
    user_ids=None means no user filter (all users visible).
    """
    user_ids: Optional[frozenset[str]] = None
    date_range: Optional[DateRange] = None
    project_ids: Optional[frozenset[str]] = None
    category_ids: Optional[frozenset[str]] = None
    search_text: Optional[str] = None
    page: int = 1
    limit: int = 20

    model_config = {"frozen": True}

    def with_users(self, user_ids: Optional[frozenset[str]]) -> "FilterSpec":
        return self.model_copy(update={"user_ids": user_ids})

    def with_date_range(self, date_range: Optional[DateRange]) -> "FilterSpec":
        return self.model_copy(update={"date_range": date_range})

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


# WorkLog
def _coerce_date(value: Any) -> date_type:
    if isinstance(value, date_type):
        return value
    # ISO datetimes are accepted; only the calendar date is kept
    parsed = parse_date(str(value).split("T")[0])
    if parsed is None:
        raise ValueError("Date must be a valid calendar date in YYYY-MM-DD format")
    return parsed


def _coerce_id(value: Any) -> Optional[str]:
    if value is None:
        return None
    parsed = parse_uuid(str(value))
    if parsed is None:
        raise ValueError("Invalid ID format")
    return parsed


class WorkLogCreateRequest(BaseModel):
    """Work log creation request."""
    date: date_type
    hours: Decimal
    project_id: str
    category_id: str
    details: Optional[str] = None
    user_id: Optional[str] = Field(None, description="Owner (admin only)")

    model_config = {
        **API_CONFIG,
        "json_schema_extra": {
            "examples": [
                {
                    "date": "2024-01-15",
                    "hours": "7.5",
                    "projectId": "0e3c7b3a-6a5f-4d0e-8d55-7d0c6e0b9a01",
                    "categoryId": "7c9e6679-7425-40de-944b-e07fc1f90ae7",
                    "details": "Code review",
                }
            ]
        },
    }

    @field_validator("date", mode="before")
    @classmethod
    def parse_date_field(cls, value: Any) -> date_type:
        return _coerce_date(value)

    @field_validator("hours", mode="before")
    @classmethod
    def parse_hours_field(cls, value: Any) -> Decimal:
        return parse_hours(value)

    @field_validator("project_id", "category_id", "user_id", mode="before")
    @classmethod
    def parse_id_field(cls, value: Any) -> Optional[str]:
        return _coerce_id(value)

    @field_validator("details")
    @classmethod
    def check_details_field(cls, value: Optional[str]) -> Optional[str]:
        return validate_details(value)


class WorkLogUpdateRequest(BaseModel):
    """Work log update request. Only the fields sent are changed."""
    date: Optional[date_type] = None
    hours: Optional[Decimal] = None
    project_id: Optional[str] = None
    category_id: Optional[str] = None
    details: Optional[str] = None
    user_id: Optional[str] = Field(None, description="New owner (admin only)")

    model_config = API_CONFIG

    @field_validator("date", mode="before")
    @classmethod
    def parse_date_field(cls, value: Any) -> date_type:
        if value is None:
            raise ValueError("Date cannot be null")
        return _coerce_date(value)

    @field_validator("hours", mode="before")
    @classmethod
    def parse_hours_field(cls, value: Any) -> Decimal:
        if value is None:
            raise ValueError("Hours cannot be null")
        return parse_hours(value)

    @field_validator("project_id", "category_id", "user_id", mode="before")
    @classmethod
    def parse_id_field(cls, value: Any) -> str:
        if value is None:
            raise ValueError("ID cannot be null")
        return _coerce_id(value)

    @field_validator("details")
    @classmethod
    def check_details_field(cls, value: Optional[str]) -> Optional[str]:
        return validate_details(value)


class WorkLogResponse(BaseModel):
    id: str
    user_id: str
    date: date_type
    hours: Decimal
    project_id: str
    category_id: str
    details: Optional[str]
    created_at: datetime
    updated_at: datetime

    model_config = API_CONFIG


class WorkLogView(WorkLogResponse):
    """Work log row joined with display names."""
    user_name: Optional[str]
    user_email: str
    project_name: str
    category_name: str


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int

    model_config = API_CONFIG


class WorkLogListResponse(BaseModel):
    success: bool = True
    data: list[WorkLogView]
    pagination: Pagination

    model_config = API_CONFIG


class WorkLogEnvelope(BaseModel):
    success: bool = True
    data: WorkLogResponse


class WorkLogDetailEnvelope(BaseModel):
    success: bool = True
    data: WorkLogView


class DeleteResponse(BaseModel):
    success: bool = True


# Dashboard
class DashboardStat(BaseModel):
    key: str
    label: str
    total_hours: str
    count: int
    percentage: float = 0.0  # share of the period total

    model_config = API_CONFIG


class DashboardSummary(BaseModel):
    total_hours: str
    count: int

    model_config = API_CONFIG


class TeamDashboardSummary(DashboardSummary):
    member_count: int
    average_hours_per_member: str


class DashboardResponse(BaseModel):
    success: bool = True
    data: list[DashboardStat]
    summary: DashboardSummary
    period_start: date_type
    period_end: date_type

    model_config = {
        **API_CONFIG,
        "json_schema_extra": {
            "examples": [
                {
                    "success": True,
                    "data": [
                        {
                            "key": "2024-01-15",
                            "label": "2024-01-15",
                            "totalHours": "7.50",
                            "count": 2,
                            "percentage": 100.0,
                        }
                    ],
                    "summary": {"totalHours": "7.50", "count": 2},
                    "periodStart": "2024-01-15",
                    "periodEnd": "2024-01-21",
                }
            ]
        },
    }


class TeamDashboardResponse(DashboardResponse):
    """Hours per member of one team."""
    team_id: str
    team_name: str
    summary: TeamDashboardSummary

    model_config = {
        **API_CONFIG,
        "json_schema_extra": {
            "examples": [
                {
                    "success": True,
                    "teamId": "6f1c2a4e-0000-4000-8000-000000000001",
                    "teamName": "Platform",
                    "data": [
                        {
                            "key": "2b7e9d10-0000-4000-8000-000000000002",
                            "label": "Alice",
                            "totalHours": "30.00",
                            "count": 6,
                            "percentage": 75.0,
                        },
                        {
                            "key": "2b7e9d10-0000-4000-8000-000000000003",
                            "label": "Carol",
                            "totalHours": "10.00",
                            "count": 2,
                            "percentage": 25.0,
                        },
                    ],
                    "summary": {
                        "totalHours": "40.00",
                        "count": 8,
                        "memberCount": 3,
                        "averageHoursPerMember": "13.3",
                    },
                    "periodStart": "2024-01-15",
                    "periodEnd": "2024-01-21",
                }
            ]
        },
    }


# Errors
class ErrorBody(BaseModel):
    code: str
    message: str
    details: Optional[Any] = None


class ErrorResponse(BaseModel):
    success: bool = False
    error: ErrorBody
