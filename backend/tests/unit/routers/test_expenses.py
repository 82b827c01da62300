"""
Tests for the /api/expenses endpoints.
Covers the response envelope, header-based tenancy and cached aggregate routes.
"""

import pytest
from datetime import datetime, timezone
from uuid import uuid4

from expense_api.enums import NotificationAction
from expense_api.services.expense_service import top_expense_categories_cache_key


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


class TestCreateExpenseEndpoint:
    """Test POST /api/expenses."""

    def test_create_expense_success(self, client, auth_headers, company_id, user_id, make_category, notify_mock):
        """Test successful expense creation through the API"""
        category = make_category(company_id, "Travel", limit=100)

        response = client.post(
            "/api/expenses",
            json={"amount": 50, "date_produced": "2024-03-10T09:30:00Z", "category_id": str(category.id)},
            headers=auth_headers,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["data"]["amount"] == 50.0
        assert body["data"]["company_id"] == str(company_id)
        assert body["data"]["user_id"] == str(user_id)
        assert notify_mock.call_args.args[0] == NotificationAction.CREATE

    def test_create_expense_over_limit(self, client, auth_headers, company_id, make_category):
        """Test that an over-limit expense returns 400"""
        category = make_category(company_id, "Travel", limit=100)

        response = client.post(
            "/api/expenses",
            json={"amount": 200, "date_produced": "2024-03-10T09:30:00Z", "category_id": str(category.id)},
            headers=auth_headers,
        )

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert "exceeds category limit" in body["error"]["detail"]

    def test_create_expense_unknown_category(self, client, auth_headers):
        """Test that an unknown category returns 404"""
        response = client.post(
            "/api/expenses",
            json={"amount": 20, "date_produced": "2024-03-10T09:30:00Z", "category_id": str(uuid4())},
            headers=auth_headers,
        )
        assert response.status_code == 404
        assert response.json()["error"]["detail"] == "Category not found"

    def test_create_expense_invalid_body(self, client, auth_headers):
        """Test field-level errors for an invalid body"""
        response = client.post(
            "/api/expenses",
            json={"amount": -1, "date_produced": "yesterday"},
            headers=auth_headers,
        )

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["title"] == "Invalid request data"
        assert {e["field"] for e in error["errors"]} == {"amount", "date_produced", "category_id"}

    def test_create_expense_requires_user_header(self, client, auth_headers, company_id, make_category):
        """Test that creation requires X-User-Id"""
        category = make_category(company_id, "Travel")
        headers = {k: v for k, v in auth_headers.items() if k != "X-User-Id"}

        response = client.post(
            "/api/expenses",
            json={"amount": 20, "date_produced": "2024-03-10T09:30:00Z", "category_id": str(category.id)},
            headers=headers,
        )

        assert response.status_code == 400
        assert response.json()["error"]["detail"] == "x-user-id header is required"


class TestAuthHeaders:
    """Test bearer token and company header checks."""

    def test_missing_token(self, client, auth_headers):
        """Test that requests without a bearer token are rejected"""
        headers = {k: v for k, v in auth_headers.items() if k != "Authorization"}
        response = client.get("/api/expenses/top-categories", headers=headers)

        assert response.status_code == 401
        assert response.json() == {"success": False, "error": {"title": "Request Error", "detail": "Unauthorized"}}

    def test_missing_company_header(self, client, auth_headers):
        """Test that X-Company-Id is required"""
        headers = {k: v for k, v in auth_headers.items() if k != "X-Company-Id"}
        response = client.get("/api/expenses/top-categories", headers=headers)

        assert response.status_code == 400
        assert response.json()["error"]["detail"] == "x-company-id header is required"

    def test_malformed_company_header(self, client, auth_headers):
        """Test that X-Company-Id must be a UUID"""
        response = client.get("/api/expenses/top-categories", headers={**auth_headers, "X-Company-Id": "acme"})
        assert response.status_code == 400


class TestListExpensesEndpoint:
    """Test GET /api/expenses."""

    def test_pagination(self, client, auth_headers, company_id, make_category, make_expense):
        """Test page 2 of 15 expenses through the API"""
        travel = make_category(company_id, "Travel")
        for day in range(1, 16):
            make_expense(travel, day, utc(2024, 3, day))

        response = client.get("/api/expenses", params={"page": 2, "page_size": 10}, headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert len(body["data"]) == 5
        assert body["pagination"]["total"] == 15
        assert body["pagination"]["page"] == 2
        assert body["pagination"]["has_next"] is False

    def test_page_size_above_maximum_rejected(self, client, auth_headers):
        """Test that page_size is capped"""
        response = client.get("/api/expenses", params={"page_size": 1000}, headers=auth_headers)
        assert response.status_code == 400


class TestTopCategoriesEndpoint:
    """Test GET /api/expenses/top-categories."""

    def test_top_categories(self, client, auth_headers, company_id, cache, make_category, make_expense):
        """Test the top categories endpoint and its cache entry"""
        make_expense(make_category(company_id, "Travel"), 300)
        make_expense(make_category(company_id, "Meals"), 120)
        make_expense(make_category(company_id, "Office"), 80)
        make_expense(make_category(company_id, "Software"), 20)

        response = client.get("/api/expenses/top-categories", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "data": [
                {"name": "Travel", "total_expenses": 300.0},
                {"name": "Meals", "total_expenses": 120.0},
                {"name": "Office", "total_expenses": 80.0},
            ],
        }
        assert top_expense_categories_cache_key(company_id) in cache.store


class TestCategoryDateRangeEndpoint:
    """Test GET /api/expenses/categories/{category_id}."""

    def test_expenses_in_range(self, client, auth_headers, company_id, make_category, make_expense):
        """Test the category date-range endpoint"""
        travel = make_category(company_id, "Travel")
        inside = make_expense(travel, 10, utc(2024, 3, 5))
        make_expense(travel, 20, utc(2024, 4, 5))

        response = client.get(
            f"/api/expenses/categories/{travel.id}",
            params={"start_date": "2024-03-01T00:00:00Z", "end_date": "2024-03-31T23:59:59Z"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert [e["id"] for e in response.json()["data"]] == [str(inside.id)]

    def test_missing_dates(self, client, auth_headers, company_id, make_category):
        """Test that both dates are required"""
        travel = make_category(company_id, "Travel")
        response = client.get(f"/api/expenses/categories/{travel.id}", headers=auth_headers)
        assert response.status_code == 400

    def test_inverted_range(self, client, auth_headers, company_id, make_category):
        """Test that an inverted range returns 400"""
        travel = make_category(company_id, "Travel")
        response = client.get(
            f"/api/expenses/categories/{travel.id}",
            params={"start_date": "2024-04-01T00:00:00Z", "end_date": "2024-03-01T00:00:00Z"},
            headers=auth_headers,
        )
        assert response.status_code == 400

    def test_unknown_category(self, client, auth_headers):
        """Test that an unknown category returns 404"""
        response = client.get(
            f"/api/expenses/categories/{uuid4()}",
            params={"start_date": "2024-03-01T00:00:00Z", "end_date": "2024-03-31T00:00:00Z"},
            headers=auth_headers,
        )
        assert response.status_code == 404


class TestUpdateAndDeleteEndpoints:
    """Test PUT and DELETE /api/expenses/{expense_id}."""

    def test_update_expense(self, client, auth_headers, company_id, make_category, make_expense, notify_mock):
        """Test updating an expense through the API"""
        expense = make_expense(make_category(company_id, "Travel"), 40)

        response = client.put(f"/api/expenses/{expense.id}", json={"amount": 65}, headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["data"]["amount"] == 65.0
        action, _, changes = notify_mock.call_args.args
        assert action == NotificationAction.UPDATE
        assert changes[0]["field"] == "amount"

    def test_update_empty_body(self, client, auth_headers, company_id, make_category, make_expense):
        """Test that an empty update returns 400"""
        expense = make_expense(make_category(company_id, "Travel"), 40)
        response = client.put(f"/api/expenses/{expense.id}", json={}, headers=auth_headers)
        assert response.status_code == 400

    def test_update_other_company_expense(self, client, auth_headers, other_company_id, make_category, make_expense):
        """Test that another company's expense is not found"""
        expense = make_expense(make_category(other_company_id, "Travel"), 40)
        response = client.put(f"/api/expenses/{expense.id}", json={"amount": 1}, headers=auth_headers)
        assert response.status_code == 404

    def test_delete_twice(self, client, auth_headers, company_id, make_category, make_expense):
        """Test that a second delete returns 400"""
        expense = make_expense(make_category(company_id, "Travel"), 40)

        first = client.delete(f"/api/expenses/{expense.id}", headers=auth_headers)
        second = client.delete(f"/api/expenses/{expense.id}", headers=auth_headers)

        assert first.status_code == 200
        assert first.json()["data"]["deleted_at"] is not None
        assert second.status_code == 400
        assert second.json()["error"]["detail"] == "Expense already deleted"


def test_health(client, cache):
    """Test the health endpoint reports cache status"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["cache"] == "up"


def test_notification_receives_snapshot_after_response(client, auth_headers, company_id, make_category, notify_mock):
    """Test that the endpoint hands the notifier a serialized snapshot rather than the ORM row"""
    category = make_category(company_id, "Travel")

    response = client.post(
        "/api/expenses",
        json={"amount": 12, "date_produced": "2024-03-10T09:30:00Z", "category_id": str(category.id)},
        headers=auth_headers,
    )

    snapshot = notify_mock.call_args.args[1]
    assert snapshot["id"] == response.json()["data"]["id"]
    assert snapshot["category_name"] == "Travel"
    assert snapshot["amount"] == 12.0
