import pytest
from unittest.mock import Mock, patch

import requests

from expense_api.services.user_service import UserDirectoryClient, UserServiceError


def _response(status_code, payload=None, json_error=None):
    response = Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 400
    if json_error:
        response.json.side_effect = json_error
    else:
        response.json.return_value = payload
    return response


@pytest.fixture
def user_client():
    return UserDirectoryClient(base_url="http://users.local/api/auth/users/", timeout=2)


class TestUserDirectoryClient:
    """Test the user directory HTTP client."""

    @patch("expense_api.services.user_service.requests.get")
    def test_get_user_by_id(self, mock_get, user_client):
        """Test a successful user lookup"""
        mock_get.return_value = _response(200, {"id": "u1", "email": "ana@example.com"})

        user = user_client.get_user_by_id("u1")

        assert user["email"] == "ana@example.com"
        mock_get.assert_called_once_with(
            "http://users.local/api/auth/users/u1",
            headers={"Content-Type": "application/json"},
            timeout=2,
        )

    @patch("expense_api.services.user_service.requests.get")
    def test_missing_user_returns_none(self, mock_get, user_client):
        """Test that a 404 means no such user"""
        mock_get.return_value = _response(404)
        assert user_client.get_user_by_id("u1") is None

    @patch("expense_api.services.user_service.requests.get")
    def test_error_status_raises(self, mock_get, user_client):
        """Test that other error statuses raise UserServiceError"""
        mock_get.return_value = _response(503)
        with pytest.raises(UserServiceError, match="HTTP 503"):
            user_client.get_user_by_id("u1")

    @patch("expense_api.services.user_service.requests.get")
    def test_transport_failure_raises(self, mock_get, user_client):
        """Test that connection errors raise UserServiceError"""
        mock_get.side_effect = requests.ConnectionError("refused")
        with pytest.raises(UserServiceError):
            user_client.get_user_by_id("u1")

    @patch("expense_api.services.user_service.requests.get")
    def test_invalid_json_raises(self, mock_get, user_client):
        """Test that an unreadable body raises UserServiceError"""
        mock_get.return_value = _response(200, json_error=ValueError("bad json"))
        with pytest.raises(UserServiceError, match="Invalid user payload"):
            user_client.get_user_by_id("u1")

    def test_defaults_come_from_settings(self, monkeypatch):
        """Test URL and timeout defaults from the environment"""
        monkeypatch.setenv("USER_SERVICE_URL", "http://directory:9000/users")
        monkeypatch.setenv("USER_SERVICE_TIMEOUT_S", "1.5")

        client = UserDirectoryClient()

        assert client.base_url == "http://directory:9000/users"
        assert client.timeout == 1.5
