import logging
from typing import Any, Dict, Optional

import requests

from ..core.settings import get_settings

logger = logging.getLogger(__name__)


class UserServiceError(Exception):
    """Raised when the user directory cannot be queried"""
    pass


class UserDirectoryClient:
    """HTTP client for the external user directory (`GET {base_url}/{user_id}`)"""

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None):
        settings = get_settings()
        self.base_url = (base_url or settings.user_service_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.user_service_timeout_s

    def get_user_by_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        """
        Fetch a user record.

        Returns:
            The user payload ({id, email, name?, role?, company_id?}), or None on 404

        Raises:
            UserServiceError: On transport failures or non-404 error responses
        """
        url = f"{self.base_url}/{user_id}"
        logger.debug(f"Fetching user {user_id} from {url}")

        try:
            response = requests.get(
                url,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise UserServiceError(f"Failed to fetch user {user_id}: {e}") from e

        if response.status_code == 404:
            return None

        if not response.ok:
            raise UserServiceError(f"Failed to fetch user {user_id}: HTTP {response.status_code}")

        try:
            return response.json()
        except ValueError as e:
            raise UserServiceError(f"Invalid user payload for {user_id}: {e}") from e
