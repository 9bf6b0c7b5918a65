"""
Tests for dashboard statistics.
"""
from datetime import date, timedelta
from decimal import Decimal

import pytest
from starlette.testclient import TestClient

from errors import ForbiddenError, NotFoundError, ValidationError
from metrics import GroupBy
from models import TeamRole, WorkCategory
from services import get_dashboard_stats, get_team_dashboard
from tests.conftest import auth_headers, make_log, make_team, principal_of

# A Wednesday
TODAY = date(2024, 3, 13)


@pytest.fixture
def review_category(db_session) -> WorkCategory:
    category = WorkCategory(name="Review", display_order=2, is_active=True)
    db_session.add(category)
    db_session.commit()
    db_session.refresh(category)
    return category


class TestDashboardService:
    """get_dashboard_stats with a fixed reference date."""

    def test_personal_week_grouped_by_day(self, db_session, regular_user, other_user, test_project, test_category):
        make_log(db_session, regular_user, test_project, test_category, log_date=date(2024, 3, 11), hours="3")
        make_log(db_session, regular_user, test_project, test_category, log_date=date(2024, 3, 11), hours="4.5")
        make_log(db_session, regular_user, test_project, test_category, log_date=date(2024, 3, 13), hours="2")
        # previous week and another user's log stay out
        make_log(db_session, regular_user, test_project, test_category, log_date=date(2024, 3, 10), hours="8")
        make_log(db_session, other_user, test_project, test_category, log_date=date(2024, 3, 12), hours="8")

        result = get_dashboard_stats(
            db_session, principal_of(regular_user), {"period": "week"}, GroupBy.DAY, today=TODAY
        )

        assert result.period_start == date(2024, 3, 11)
        assert result.period_end == date(2024, 3, 17)
        assert [(s.key, s.total_hours, s.count) for s in result.data] == [
            ("2024-03-11", "7.50", 2),
            ("2024-03-13", "2.00", 1),
        ]
        assert (result.summary.total_hours, result.summary.count) == ("9.50", 3)

    def test_projects_ordered_by_hours(
        self, db_session, regular_user, test_project, second_project, test_category
    ):
        make_log(db_session, regular_user, test_project, test_category, log_date=date(2024, 3, 1), hours="2")
        make_log(db_session, regular_user, second_project, test_category, log_date=date(2024, 3, 2), hours="5")
        make_log(db_session, regular_user, second_project, test_category, log_date=date(2024, 3, 3), hours="1")

        result = get_dashboard_stats(
            db_session, principal_of(regular_user), {"period": "month"}, GroupBy.PROJECT, today=TODAY
        )

        assert [(s.label, s.total_hours, s.count, s.percentage) for s in result.data] == [
            ("Second Project", "6.00", 2, 75.0),
            ("Test Project", "2.00", 1, 25.0),
        ]
        assert result.data[0].key == second_project.id

    def test_categories_with_percentages(
        self, db_session, regular_user, test_project, test_category, review_category
    ):
        make_log(db_session, regular_user, test_project, test_category, log_date=date(2024, 3, 11), hours="1")
        make_log(db_session, regular_user, test_project, review_category, log_date=date(2024, 3, 12), hours="2.5")
        make_log(db_session, regular_user, test_project, review_category, log_date=date(2024, 3, 13), hours="0.5")

        result = get_dashboard_stats(
            db_session, principal_of(regular_user), {"period": "week"}, GroupBy.CATEGORY, today=TODAY
        )

        assert [(s.key, s.label, s.total_hours, s.count, s.percentage) for s in result.data] == [
            (review_category.id, "Review", "3.00", 2, 75.0),
            (test_category.id, "Development", "1.00", 1, 25.0),
        ]
        assert (result.summary.total_hours, result.summary.count) == ("4.00", 3)

    def test_empty_period(self, db_session, regular_user):
        result = get_dashboard_stats(
            db_session, principal_of(regular_user), {"period": "week"}, GroupBy.CATEGORY, today=TODAY
        )

        assert result.data == []
        assert (result.summary.total_hours, result.summary.count) == ("0.00", 0)

    def test_default_periods(self, db_session, regular_user, test_project, test_category):
        make_log(db_session, regular_user, test_project, test_category, log_date=date(2024, 3, 12))

        personal = get_dashboard_stats(db_session, principal_of(regular_user), {}, GroupBy.DAY, today=TODAY)
        projects = get_dashboard_stats(db_session, principal_of(regular_user), {}, GroupBy.PROJECT, today=TODAY)
        categories = get_dashboard_stats(db_session, principal_of(regular_user), {}, GroupBy.CATEGORY, today=TODAY)

        # personal defaults to today, projects and categories to this week
        assert (personal.period_start, personal.period_end) == (TODAY, TODAY)
        assert personal.data == []
        assert (projects.period_start, projects.period_end) == (date(2024, 3, 11), date(2024, 3, 17))
        assert projects.data[0].count == 1
        assert (categories.period_start, categories.period_end) == (date(2024, 3, 11), date(2024, 3, 17))

    def test_admin_all_scope(self, db_session, admin_user, regular_user, other_user, test_project, test_category):
        make_log(db_session, regular_user, test_project, test_category, log_date=TODAY, hours="1")
        make_log(db_session, other_user, test_project, test_category, log_date=TODAY, hours="2")

        result = get_dashboard_stats(
            db_session, principal_of(admin_user), {"scope": "all"}, GroupBy.PROJECT, today=TODAY
        )

        assert result.data[0].total_hours == "3.00"
        assert result.data[0].count == 2

    def test_all_scope_forbidden_for_user(self, db_session, regular_user):
        with pytest.raises(ForbiddenError):
            get_dashboard_stats(db_session, principal_of(regular_user), {"scope": "all"}, GroupBy.DAY, today=TODAY)

    def test_forbidden_scope_wins_over_bad_period(self, db_session, regular_user):
        with pytest.raises(ForbiddenError):
            get_dashboard_stats(
                db_session,
                principal_of(regular_user),
                {"scope": "all", "period": "bogus"},
                GroupBy.DAY,
                today=TODAY,
            )

    def test_custom_requires_dates(self, db_session, regular_user):
        with pytest.raises(ValidationError):
            get_dashboard_stats(
                db_session, principal_of(regular_user), {"period": "custom"}, GroupBy.DAY, today=TODAY
            )

    def test_unknown_period_rejected(self, db_session, regular_user):
        with pytest.raises(ValidationError):
            get_dashboard_stats(
                db_session, principal_of(regular_user), {"period": "decade"}, GroupBy.DAY, today=TODAY
            )

    def test_filter_range_outside_period_rejected(self, db_session, regular_user):
        with pytest.raises(ValidationError):
            get_dashboard_stats(
                db_session,
                principal_of(regular_user),
                {"period": "today", "startDate": "2024-04-01"},
                GroupBy.DAY,
                today=TODAY,
            )


class TestTeamDashboardService:
    """get_team_dashboard: team selection, access and member totals."""

    def test_default_team_member_totals(
        self, db_session, test_team, manager_user, regular_user, team_mate, other_user, test_project, test_category
    ):
        make_log(db_session, regular_user, test_project, test_category, log_date=date(2024, 3, 11), hours="6")
        make_log(db_session, regular_user, test_project, test_category, log_date=date(2024, 3, 12), hours="3")
        make_log(db_session, team_mate, test_project, test_category, log_date=date(2024, 3, 12), hours="3")
        # outside the team, outside the week
        make_log(db_session, other_user, test_project, test_category, log_date=date(2024, 3, 12), hours="8")
        make_log(db_session, team_mate, test_project, test_category, log_date=date(2024, 3, 4), hours="8")

        result = get_team_dashboard(db_session, principal_of(regular_user), {}, today=TODAY)

        assert (result.team_id, result.team_name) == (test_team.id, "Platform")
        assert (result.period_start, result.period_end) == (date(2024, 3, 11), date(2024, 3, 17))
        assert [(s.key, s.label, s.total_hours, s.count, s.percentage) for s in result.data] == [
            (regular_user.id, "Alice", "9.00", 2, 75.0),
            (team_mate.id, "Carol", "3.00", 1, 25.0),
        ]
        assert result.summary.total_hours == "12.00"
        assert result.summary.count == 3
        assert result.summary.member_count == 3
        assert result.summary.average_hours_per_member == "4.0"

    def test_first_team_by_name(self, db_session, test_team, regular_user, other_user):
        analytics = make_team(db_session, "Analytics", [(regular_user, TeamRole.MEMBER), (other_user, TeamRole.MEMBER)])

        result = get_team_dashboard(db_session, principal_of(regular_user), {}, today=TODAY)

        assert result.team_id == analytics.id
        assert result.summary.member_count == 2

    def test_named_team(self, db_session, test_team, regular_user, other_user):
        make_team(db_session, "Analytics", [(regular_user, TeamRole.MEMBER), (other_user, TeamRole.MEMBER)])

        result = get_team_dashboard(db_session, principal_of(regular_user), {"teamId": test_team.id}, today=TODAY)

        assert result.team_name == "Platform"

    def test_non_member_forbidden(self, db_session, test_team, other_user):
        with pytest.raises(ForbiddenError):
            get_team_dashboard(db_session, principal_of(other_user), {"teamId": test_team.id}, today=TODAY)

    def test_admin_views_any_team(self, db_session, test_team, admin_user):
        result = get_team_dashboard(db_session, principal_of(admin_user), {"teamId": test_team.id}, today=TODAY)
        assert result.team_name == "Platform"

    def test_admin_unknown_team(self, db_session, admin_user):
        with pytest.raises(NotFoundError):
            get_team_dashboard(
                db_session,
                principal_of(admin_user),
                {"teamId": "6f1c2a4e-0000-4000-8000-000000000099"},
                today=TODAY,
            )

    def test_caller_without_team(self, db_session, regular_user):
        with pytest.raises(NotFoundError) as exc_info:
            get_team_dashboard(db_session, principal_of(regular_user), {}, today=TODAY)
        assert exc_info.value.message == "You are not a member of any team"

    def test_team_without_members(self, db_session, admin_user):
        empty = make_team(db_session, "Empty", [])

        with pytest.raises(NotFoundError) as exc_info:
            get_team_dashboard(db_session, principal_of(admin_user), {"teamId": empty.id}, today=TODAY)
        assert exc_info.value.message == "No members found in this team"

    def test_malformed_team_id(self, db_session, regular_user):
        with pytest.raises(ValidationError) as exc_info:
            get_team_dashboard(db_session, principal_of(regular_user), {"teamId": "abc"}, today=TODAY)
        assert exc_info.value.details[0]["field"] == "teamId"


class TestDashboardEndpoints:
    """GET /api/dashboard/personal, /projects, /categories and /team."""

    def test_personal_custom_period(self, client: TestClient, db_session, regular_user, test_project, test_category):
        """
        Expected Response:
        {
            "success": true,
            "data": [
                {"key": "2024-01-02", "label": "2024-01-02", "totalHours": "8.00", "count": 1, "percentage": 100.0}
            ],
            "summary": {"totalHours": "8.00", "count": 1},
            "periodStart": "2024-01-01",
            "periodEnd": "2024-01-07"
        }
        """
        make_log(db_session, regular_user, test_project, test_category, log_date=date(2024, 1, 2))
        make_log(db_session, regular_user, test_project, test_category, log_date=date(2024, 1, 8))

        response = client.get(
            "/api/dashboard/personal?period=custom&startDate=2024-01-01&endDate=2024-01-07",
            headers=auth_headers(regular_user),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["periodStart"] == "2024-01-01"
        assert data["periodEnd"] == "2024-01-07"
        assert data["data"] == [
            {"key": "2024-01-02", "label": "2024-01-02", "totalHours": "8.00", "count": 1, "percentage": 100.0}
        ]
        assert data["summary"] == {"totalHours": "8.00", "count": 1}

    def test_projects_custom_period_team_scope(
        self,
        client: TestClient,
        db_session,
        test_team,
        regular_user,
        team_mate,
        other_user,
        test_project,
        test_category,
    ):
        make_log(db_session, regular_user, test_project, test_category, log_date=date(2024, 1, 2), hours="1.5")
        make_log(db_session, team_mate, test_project, test_category, log_date=date(2024, 1, 3), hours="2")
        make_log(db_session, other_user, test_project, test_category, log_date=date(2024, 1, 3), hours="9")

        response = client.get(
            "/api/dashboard/projects?period=custom&scope=team&startDate=2024-01-01&endDate=2024-01-31",
            headers=auth_headers(regular_user),
        )

        assert response.status_code == 200
        stats = response.json()["data"]
        assert stats == [
            {"key": test_project.id, "label": "Test Project", "totalHours": "3.50", "count": 2, "percentage": 100.0}
        ]

    def test_totals_match_listing(
        self,
        client: TestClient,
        db_session,
        test_team,
        manager_user,
        regular_user,
        team_mate,
        other_user,
        test_project,
        second_project,
        test_category,
        review_category,
    ):
        """The dashboard and the listing agree for the same scope and filters."""
        start = date(2024, 1, 1)
        owners = (manager_user, regular_user, team_mate)
        for i in range(12):
            make_log(
                db_session,
                owners[i % 3],
                (test_project, second_project)[i % 2],
                (test_category, review_category)[i % 4 // 2],
                log_date=start + timedelta(days=i * 3),
                hours=str(Decimal("1.25") * (i % 5 + 1)),
            )
        make_log(db_session, other_user, test_project, test_category, log_date=date(2024, 1, 10), hours="7")

        query = f"scope=team&startDate=2024-01-05&endDate=2024-01-25&projectIds={test_project.id},{second_project.id}"
        listing = client.get(f"/api/work-logs?{query}&limit=100", headers=auth_headers(regular_user)).json()
        projects = client.get(f"/api/dashboard/projects?period=custom&{query}", headers=auth_headers(regular_user)).json()
        categories = client.get(
            f"/api/dashboard/categories?period=custom&{query}", headers=auth_headers(regular_user)
        ).json()

        listed_hours = sum(Decimal(str(row["hours"])) for row in listing["data"])
        assert listing["pagination"]["total"] == len(listing["data"]) > 0

        for dashboard in (projects, categories):
            assert sum(stat["count"] for stat in dashboard["data"]) == listing["pagination"]["total"]
            assert sum(Decimal(stat["totalHours"]) for stat in dashboard["data"]) == listed_hours
            assert dashboard["summary"]["count"] == listing["pagination"]["total"]
            assert Decimal(dashboard["summary"]["totalHours"]) == listed_hours

    def test_categories_endpoint(
        self, client: TestClient, db_session, regular_user, test_project, test_category, review_category
    ):
        make_log(db_session, regular_user, test_project, test_category, log_date=date(2024, 1, 2), hours="1")
        make_log(db_session, regular_user, test_project, review_category, log_date=date(2024, 1, 3), hours="3")

        response = client.get(
            "/api/dashboard/categories?period=custom&startDate=2024-01-01&endDate=2024-01-07",
            headers=auth_headers(regular_user),
        )

        assert response.status_code == 200
        data = response.json()
        assert [(s["label"], s["percentage"]) for s in data["data"]] == [("Review", 75.0), ("Development", 25.0)]
        assert data["summary"] == {"totalHours": "4.00", "count": 2}

    def test_team_endpoint(self, client: TestClient, db_session, test_team, regular_user, test_project, test_category):
        make_log(db_session, regular_user, test_project, test_category, log_date=date(2024, 1, 2), hours="6")

        response = client.get(
            "/api/dashboard/team?period=custom&startDate=2024-01-01&endDate=2024-01-07",
            headers=auth_headers(regular_user),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["teamId"] == test_team.id
        assert data["teamName"] == "Platform"
        assert data["data"][0]["label"] == "Alice"
        assert data["summary"] == {
            "totalHours": "6.00",
            "count": 1,
            "memberCount": 3,
            "averageHoursPerMember": "2.0",
        }

    def test_team_endpoint_non_member(self, client: TestClient, test_team, other_user):
        response = client.get(f"/api/dashboard/team?teamId={test_team.id}", headers=auth_headers(other_user))

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"

    def test_team_endpoint_without_team(self, client: TestClient, regular_user):
        response = client.get("/api/dashboard/team", headers=auth_headers(regular_user))

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    def test_custom_without_dates(self, client: TestClient, regular_user):
        response = client.get("/api/dashboard/personal?period=custom", headers=auth_headers(regular_user))

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_forbidden_scope_wins_over_bad_period(self, client: TestClient, regular_user):
        response = client.get("/api/dashboard/personal?scope=all&period=bogus", headers=auth_headers(regular_user))

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"

    def test_filter_range_outside_period(self, client: TestClient, regular_user):
        response = client.get(
            "/api/dashboard/personal?period=today&startDate=2999-01-01", headers=auth_headers(regular_user)
        )

        assert response.status_code == 400
        assert response.json()["error"]["details"][0]["field"] == "startDate"

    def test_user_id_for_other_user_forbidden(self, client: TestClient, regular_user, other_user):
        response = client.get(
            f"/api/dashboard/projects?userId={other_user.id}", headers=auth_headers(regular_user)
        )
        assert response.status_code == 403

    @pytest.mark.parametrize("path", ["personal", "projects", "categories", "team"])
    def test_requires_auth(self, client: TestClient, path):
        response = client.get(f"/api/dashboard/{path}")
        assert response.status_code == 401
