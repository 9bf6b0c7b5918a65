"""
Query filter builder.
Validates raw query parameters and produces a FilterSpec.
Scope is parsed here but resolved by scope.resolve_scope.
"""
from collections.abc import Mapping
from typing import Optional

from config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, MAX_SEARCH_TEXT_LENGTH
from errors import ValidationError
from schemas import DateRange, FilterSpec
from scope import Scope
from validation import parse_date, parse_uuid, parse_uuids

# Export endpoint parameter names mapped onto listing names
EXPORT_PARAM_ALIASES = {
    "from": "startDate",
    "to": "endDate",
    "projects": "projectIds",
    "categories": "categoryIds",
}


def _get(params: Mapping, name: str) -> Optional[str]:
    """Blank values count as absent."""
    value = params.get(name)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def normalize_params(params: Mapping, aliases: Mapping[str, str]) -> dict[str, str]:
    """Rename aliased parameters; an explicit canonical name wins."""
    normalized = dict(params)
    for alias, canonical in aliases.items():
        if alias in params and canonical not in params:
            normalized[canonical] = params[alias]
    return normalized


def _parse_int(
    params: Mapping, name: str, default: int, minimum: int, maximum: Optional[int], issues: list
) -> int:
    raw = _get(params, name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        issues.append({"field": name, "message": f"{name} must be an integer"})
        return default
    if value < minimum:
        issues.append({"field": name, "message": f"{name} must be at least {minimum}"})
    elif maximum is not None and value > maximum:
        issues.append({"field": name, "message": f"{name} must be at most {maximum}"})
    return value


def _parse_ids(params: Mapping, plural: str, singular: str) -> Optional[frozenset[str]]:
    """The plural list wins when it yields a valid id; invalid ids mean absent."""
    ids = parse_uuids(_get(params, plural))
    if ids:
        return frozenset(ids)
    single = parse_uuid(_get(params, singular))
    if single:
        return frozenset({single})
    return None


def parse_scope_params(params: Mapping) -> tuple[Scope, Optional[str]]:
    """
    Parse scope and userId.

    A valid userId always selects scope=user for that id. An invalid userId
    is ignored (absent).

    Raises:
        ValidationError: Unknown scope value
    """
    raw_scope = _get(params, "scope")
    try:
        scope = Scope(raw_scope) if raw_scope else Scope.OWN
    except ValueError:
        raise ValidationError(
            "Invalid query parameters",
            details=[{"field": "scope", "message": "Scope must be 'own', 'team', 'all' or 'user'"}],
        )

    user_id = parse_uuid(_get(params, "userId"))
    if user_id:
        scope = Scope.USER
    return scope, user_id


def parse_team_id(params: Mapping) -> Optional[str]:
    """
    Parse teamId. Unlike userId, a malformed teamId is an error.

    Raises:
        ValidationError: teamId present but not a UUID
    """
    raw = _get(params, "teamId")
    if raw is None:
        return None
    team_id = parse_uuid(raw)
    if team_id is None:
        raise ValidationError(
            "Invalid query parameters",
            details=[{"field": "teamId", "message": "Invalid ID format"}],
        )
    return team_id


def build_filter_spec(params: Mapping) -> FilterSpec:
    """
    Build a FilterSpec from raw query parameters.

    Args:
        params: Mapping of parameter name to raw string value

    Returns:
        FilterSpec with user_ids unset (compose with FilterSpec.with_users)

    Raises:
        ValidationError: Bad page/limit, malformed dates, start after end,
            search text over the maximum length
    """
    issues: list[dict] = []

    page = _parse_int(params, "page", 1, 1, None, issues)
    limit = _parse_int(params, "limit", DEFAULT_PAGE_SIZE, 1, MAX_PAGE_SIZE, issues)

    dates = {}
    for name in ("startDate", "endDate"):
        raw = _get(params, name)
        if raw is None:
            dates[name] = None
            continue
        dates[name] = parse_date(raw)
        if dates[name] is None:
            issues.append({"field": name, "message": "Invalid date. Expected YYYY-MM-DD"})

    start, end = dates["startDate"], dates["endDate"]
    if start and end and start > end:
        issues.append({"field": "startDate", "message": "Start date must be before or equal to end date"})
    date_range = DateRange(start=start, end=end) if (start or end) else None

    search_text = params.get("searchText") or None
    if search_text and len(search_text) > MAX_SEARCH_TEXT_LENGTH:
        issues.append(
            {"field": "searchText", "message": f"searchText must be {MAX_SEARCH_TEXT_LENGTH} characters or less"}
        )

    if issues:
        raise ValidationError("Invalid query parameters", details=issues)

    return FilterSpec(
        date_range=date_range,
        project_ids=_parse_ids(params, "projectIds", "projectId"),
        category_ids=_parse_ids(params, "categoryIds", "categoryId"),
        search_text=search_text,
        page=page,
        limit=limit,
    )
