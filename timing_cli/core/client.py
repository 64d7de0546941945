"""
Core HTTP client for the Timing web API.

Handles authentication, request/response, reference normalization, and error handling.
"""

import logging
import os
from typing import Any

import httpx

logger = logging.getLogger(__name__)

# Configuration
DEFAULT_BASE_URL = "https://web.timingapp.com"
DEFAULT_TIMEOUT = 60

UNAUTHORIZED_MESSAGE = "Request not authorized."
UNSUCCESSFUL_MESSAGE = "Request unsuccessful."


class CLIError(Exception):
    """Base error class for CLI errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON output."""
        result: dict[str, Any] = {"error": self.message}
        if self.details:
            result["details"] = self.details
        return result


class TimingError(CLIError):
    """Unsuccessful response from the Timing API, with status code and parsed body."""

    def __init__(self, message: str, status: int, body: Any = None):
        super().__init__(message)
        self.status = status
        self.body = body

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON output."""
        result = super().to_dict()
        result["status"] = self.status
        if self.body is not None:
            result["body"] = self.body
        return result


class ValidationError(CLIError):
    """Validation error for local input/data issues (not API errors)."""


def entry_id_from_reference(reference: str | int) -> str:
    """
    Convert an entity reference to the raw ID used in path parameters.

    "/time-entries/3694122002305638144" -> "3694122002305638144". A bare ID
    (no slash) comes back unchanged, as a string.

    Raises:
        ValidationError: If the reference is empty or ends with a slash

    """
    text = str(reference)
    if not text or text.endswith("/"):
        raise ValidationError(f"Malformed reference: {text!r}", details={"reference": text})
    return text.rsplit("/", 1)[-1]


def bool_to_int(value: bool | None) -> int | None:
    """Encode an optional flag as 1/0 for the wire, keeping None as absent."""
    if value is None:
        return None
    return int(value)


class APIClient:
    """
    Low-level async HTTP client for the Timing API.

    Handles:
    - Bearer authentication via a request hook
    - Raising TimingError on unsuccessful responses via a response hook
    - HTTP methods (GET, POST, PUT, DELETE)
    - JSON envelope decoding
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the API client.

        Args:
            api_key: Timing API key (or TIMING_API_KEY env var)
            base_url: API base URL (or TIMING_BASE_URL env var)
            timeout: Request timeout in seconds, enforced by the transport
            transport: Custom httpx transport (mock transports in tests)

        """
        self.api_key = api_key or os.environ.get("TIMING_API_KEY")
        env_base_url = os.environ.get("TIMING_BASE_URL", DEFAULT_BASE_URL)
        self.base_url = (base_url or env_base_url).rstrip("/")
        self.timeout = timeout
        api_url = httpx.URL(self.base_url)
        self._origin = (api_url.scheme, api_url.host, api_url.port)
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            follow_redirects=True,
            headers={"Accept": "application/json"},
            event_hooks={
                "request": [self._authorize],
                "response": [self._raise_for_status],
            },
        )

    async def aclose(self) -> None:
        """Close the underlying httpx client."""
        await self._http.aclose()

    def _ensure_api_key(self) -> str:
        """Ensure API key is configured."""
        if not self.api_key:
            raise CLIError("TIMING_API_KEY environment variable not set")
        return self.api_key

    # =========================================================================
    # Hooks
    # =========================================================================

    async def _authorize(self, request: httpx.Request) -> None:
        """Attach the bearer credential to every request bound for the API origin."""
        # Also runs for each redirect hop; other hosts never see the key
        if (request.url.scheme, request.url.host, request.url.port) == self._origin:
            request.headers["Authorization"] = f"Bearer {self._ensure_api_key()}"
        else:
            request.headers.pop("Authorization", None)
        logger.debug("%s %s", request.method, request.url)

    async def _raise_for_status(self, response: httpx.Response) -> None:
        """Raise TimingError for any response that is neither a success nor a redirect."""
        if response.is_success or response.is_redirect:
            return

        await response.aread()
        try:
            body = response.json()
        except ValueError:
            body = None

        message = UNAUTHORIZED_MESSAGE if response.status_code == 401 else UNSUCCESSFUL_MESSAGE
        logger.warning(
            "%s %s failed with status %s",
            response.request.method,
            response.request.url,
            response.status_code,
        )
        raise TimingError(message, status=response.status_code, body=body)

    # =========================================================================
    # HTTP Methods
    # =========================================================================

    async def request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        data: dict | None = None,
        follow_redirects: bool = True,
    ) -> httpx.Response:
        """
        Make an HTTP request to the API and return the raw response.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE)
            path: API path (e.g., /api/v1/projects)
            params: Query parameters; None values are dropped
            data: JSON request body
            follow_redirects: Whether the transport follows 3xx responses

        Raises:
            TimingError: On unsuccessful HTTP status

        """
        if params:
            params = {k: v for k, v in params.items() if v is not None}
        return await self._http.request(
            method,
            path,
            params=params or None,
            json=data,
            follow_redirects=follow_redirects,
        )

    async def _json(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        """Make a request and decode the JSON envelope."""
        response = await self.request(method, path, **kwargs)
        if not response.content:
            return {}
        return response.json()

    async def get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Make a GET request."""
        return await self._json("GET", path, params=params)

    async def post(self, path: str, data: dict | None = None) -> dict[str, Any]:
        """Make a POST request."""
        return await self._json("POST", path, data=data)

    async def put(self, path: str, data: dict | None = None) -> dict[str, Any]:
        """Make a PUT request."""
        return await self._json("PUT", path, data=data)

    async def delete(self, path: str) -> dict[str, Any]:
        """Make a DELETE request."""
        return await self._json("DELETE", path)
