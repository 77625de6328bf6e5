"""HTTP client for the LifeDashboard API."""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional

import requests

from ..config import DEFAULT_API_URL
from .assembler import HourlyUsageRecord, from_payload, to_payload

__all__ = [
    "LifeDashboardClient",
    "LifeDashboardClientError",
    "LifeDashboardAuthError",
    "AuthResult",
]

logger = logging.getLogger(__name__)


class LifeDashboardClientError(Exception):
    """LifeDashboard client error."""

    pass


class LifeDashboardAuthError(LifeDashboardClientError):
    """Authentication error."""

    pass


@dataclass
class AuthResult:
    """Result of a login attempt."""

    success: bool
    user_id: Optional[str] = None
    token: Optional[str] = None
    user_email: Optional[str] = None
    error: Optional[str] = None


class LifeDashboardClient:
    """Client for the LifeDashboard hourly-usage API.

    Handles:
    - Session management
    - Bearer authentication
    - Per-record hourly usage uploads
    - Read-side queries (hourly records, usage pattern)
    - Error classification

    Uploads return the raw HTTP status so the caller can apply its own
    partial-success policy. Transport failures raise LifeDashboardClientError.
    """

    USER_AGENT = "LifeDashboard-Sync/1.0.0"

    def __init__(
        self,
        api_url: str = DEFAULT_API_URL,
        token: Optional[str] = None,
        user_id: Optional[str] = None,
        timeout: int = 30,
        session: Optional[requests.Session] = None,
    ):
        """Initialize the client.

        Args:
            api_url: LifeDashboard API base URL
            token: Bearer token for authentication
            user_id: ID of the authenticated user
            timeout: Request timeout in seconds
            session: Optional requests session (for dependency injection/testing)
        """
        self.api_url = api_url.rstrip("/")
        self.token = token
        self.user_id = user_id
        self.timeout = timeout
        self._session = session or requests.Session()
        self._owns_session = session is None

        # Optional callback wired by the app to forget persisted credentials
        self.on_credentials_cleared: Optional[Callable[[], None]] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token and self.user_id)

    def _url(self, endpoint: str) -> str:
        return f"{self.api_url}/{endpoint.lstrip('/')}"

    def _get_headers(self) -> dict:
        """Get request headers with authentication."""
        headers = {
            "Accept": "application/json",
            "User-Agent": self.USER_AGENT,
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _send(
        self,
        method: str,
        endpoint: str,
        params: Optional[dict] = None,
        data: Optional[dict] = None,
        headers: Optional[dict] = None,
    ) -> requests.Response:
        """Send a request, mapping transport failures to client errors."""
        kwargs: dict = {
            "timeout": self.timeout,
            "headers": headers if headers is not None else self._get_headers(),
        }
        if params:
            kwargs["params"] = params
        if data is not None:
            kwargs["json"] = data

        try:
            return self._session.request(method, self._url(endpoint), **kwargs)
        except requests.exceptions.ConnectionError as e:
            raise LifeDashboardClientError("Cannot connect to LifeDashboard API") from e
        except requests.exceptions.Timeout as e:
            raise LifeDashboardClientError("Request timed out") from e
        except requests.exceptions.RequestException as e:
            raise LifeDashboardClientError(f"Request failed: {e}") from e

    def _get_json(self, endpoint: str, params: Optional[dict] = None) -> dict:
        """GET an authenticated endpoint and return the decoded body.

        Raises:
            LifeDashboardAuthError: For 401 responses
            LifeDashboardClientError: For other errors or unsuccessful bodies
        """
        self._require_credentials()
        response = self._send("GET", endpoint, params=params)

        if response.status_code == 401:
            raise LifeDashboardAuthError("Invalid or expired API token")
        if response.status_code != 200:
            raise LifeDashboardClientError(f"API error ({response.status_code})")

        try:
            body = response.json()
        except ValueError as e:
            raise LifeDashboardClientError("Invalid JSON in API response") from e

        if not body.get("success", False):
            raise LifeDashboardClientError(f"API error: {body.get('error', 'unknown error')}")
        return body

    def _require_credentials(self) -> None:
        if not self.is_authenticated:
            raise LifeDashboardAuthError("Not authenticated")

    # Authentication

    def login(self, email: str, password: str) -> AuthResult:
        """Log in and store the returned token on the client.

        Args:
            email: User's email address
            password: User's password

        Returns:
            AuthResult with token and user id on success
        """
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "User-Agent": self.USER_AGENT,
        }
        try:
            response = self._send(
                "POST",
                "auth/login",
                data={"email": email, "password": password},
                headers=headers,
            )
        except LifeDashboardClientError as e:
            return AuthResult(success=False, error=str(e))

        if response.status_code != 200:
            error = "Authentication failed"
            try:
                error = response.json().get("error", error)
            except ValueError:
                if response.text:
                    error = response.text
            logger.error(f"Login failed ({response.status_code}): {error}")
            return AuthResult(success=False, error=error)

        try:
            data = response.json()
            user = data["user"]
            result = AuthResult(
                success=True,
                user_id=str(user["id"]),
                token=data["token"],
                user_email=user.get("email"),
            )
        except (ValueError, KeyError, TypeError) as e:
            return AuthResult(success=False, error=f"Unexpected login response: {e}")

        self.set_credentials(result.token, result.user_id)
        return result

    def validate_token(self) -> bool:
        """Check the stored token with the server.

        Clears the credentials on a non-200 answer or when the check itself
        fails.
        """
        if not self.token:
            return False

        try:
            response = self._send("GET", "auth/login")
        except LifeDashboardClientError as e:
            logger.error(f"Token validation failed: {e}")
            self.clear_credentials()
            return False

        if response.status_code != 200:
            self.clear_credentials()
            return False

        try:
            data = response.json()
        except ValueError:
            self.clear_credentials()
            return False

        # A 200 answer with valid=false leaves the credentials in place
        valid = bool(data.get("valid", False))
        if valid:
            user = data.get("user") or {}
            if "id" in user:
                self.user_id = str(user["id"])
        return valid

    def set_credentials(self, token: str, user_id: str) -> None:
        """Set authentication credentials."""
        self.token = token
        self.user_id = user_id

    def clear_credentials(self) -> None:
        """Clear authentication credentials.

        Calls ``on_credentials_cleared`` so the owner can drop its stored copy.
        """
        self.token = None
        self.user_id = None
        if self.on_credentials_cleared is not None:
            self.on_credentials_cleared()

    # Hourly usage

    def upload_hourly_record(self, record: HourlyUsageRecord) -> int:
        """Upload one hourly record.

        Args:
            record: The hourly record to send

        Returns:
            HTTP status code of the response

        Raises:
            LifeDashboardAuthError: If no credentials are set
            LifeDashboardClientError: On connection failures and timeouts
        """
        self._require_credentials()
        response = self._send("POST", "hourly-usage", data=to_payload(record, self.user_id))
        status = response.status_code
        logger.debug(f"Hour {record.hour} of {record.date} response code: {status}")

        if status == 401:
            if self.validate_token():
                logger.warning("Token is valid but the upload was rejected")
            else:
                logger.warning("Token is invalid, re-authentication required")
        return status

    def get_hourly_usage(self, day: date) -> list[HourlyUsageRecord]:
        """Get the hourly records stored on the server for a day."""
        body = self._get_json("hourly-usage", params={"date": day.isoformat()})
        return [from_payload(item) for item in body.get("data", [])]

    def get_hourly_pattern(self, start: date, end: date) -> dict[int, float]:
        """Get average usage per hour of day over a date range.

        Returns:
            Mapping of hour (0-23) to average minutes; missing hours are 0.0
        """
        body = self._get_json(
            "hourly-usage/pattern",
            params={"startDate": start.isoformat(), "endDate": end.isoformat()},
        )
        pattern = body.get("pattern", {})
        return {hour: float(pattern.get(str(hour), 0.0)) for hour in range(24)}

    def close(self) -> None:
        """Close the session if we own it."""
        if self._owns_session and self._session is not None:
            self._session.close()
            self._session = None

    def __enter__(self) -> "LifeDashboardClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
