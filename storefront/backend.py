"""HTTP client for the headless content backend.

The backend exposes generic CRUD resources under ``/api``. Successful
responses wrap records in a ``{"data": ...}`` envelope and failures carry
``{"error": {"message": ...}}``. This module only moves JSON; callers parse
the payload with the models in :mod:`storefront.schemas`.
"""

import logging
from typing import Any, Dict, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from .config import Settings
from .schemas import ErrorEnvelope

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class BackendError(Exception):
    """The backend answered, but not with a usable success response."""

    def __init__(self, status_code: int, message: Optional[str], details: dict | None = None):
        self.status_code = status_code
        self.message = message
        self.details = details or {}
        super().__init__(message or f"Backend returned HTTP {status_code}")

    @property
    def cause(self) -> str:
        return "invalid_response" if 200 <= self.status_code < 300 else "rejected"


class BackendUnavailable(Exception):
    """The backend could not be reached."""

    cause = "transport"


class BackendTimeout(BackendUnavailable):
    """The backend did not answer within the configured timeout."""

    cause = "timeout"


def _error_message(response: httpx.Response) -> Optional[str]:
    try:
        envelope = ErrorEnvelope.model_validate(response.json())
    except (ValueError, ValidationError):
        return None
    if envelope.error is None:
        return None
    return envelope.error.message


class BackendClient:
    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings
        self._transport = transport

    def _get_async_client(self, credential: Optional[str] = None) -> httpx.AsyncClient:
        """Get a configured async httpx client."""
        headers = {"Content-Type": "application/json"}
        if credential:
            headers["Authorization"] = f"Bearer {credential}"
        return httpx.AsyncClient(
            base_url=self.settings.backend_url,
            timeout=self.settings.request_timeout,
            headers=headers,
            transport=self._transport,
        )

    async def request(
        self,
        method: str,
        path: str,
        credential: Optional[str] = None,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """Send one request and return the decoded JSON body.

        Raises:
            BackendTimeout: the request timed out
            BackendUnavailable: any other transport failure
            BackendError: non-2xx status, or a 2xx body that is not JSON
        """
        try:
            async with self._get_async_client(credential) as client:
                response = await client.request(method, path, json=json, params=params, headers=headers)
        except httpx.TimeoutException as e:
            logger.warning("Backend %s %s timed out: %s", method, path, e)
            raise BackendTimeout(str(e)) from e
        except httpx.RequestError as e:
            logger.warning("Backend %s %s unreachable: %s", method, path, e)
            raise BackendUnavailable(str(e)) from e

        if not response.is_success:
            message = _error_message(response)
            logger.warning("Backend %s %s failed with %s: %s", method, path, response.status_code, message)
            raise BackendError(response.status_code, message)

        if response.status_code == 204 or not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise BackendError(response.status_code, None, {"reason": "body is not JSON"}) from e

    async def fetch(self, model: Type[M], method: str, path: str, **kwargs) -> M:
        """Like :meth:`request`, validating the body against ``model``."""
        body = await self.request(method, path, **kwargs)
        try:
            return model.model_validate(body)
        except ValidationError as e:
            logger.warning("Backend %s %s returned an unexpected body: %s", method, path, e)
            raise BackendError(200, None, {"reason": "unexpected body", "error_count": e.error_count()}) from e


def describe_failure(exc: Exception, fallback: str) -> tuple[str, dict]:
    """Turn a backend exception into a user-visible message and error details.

    The backend's own message is surfaced verbatim when it sent one.
    """
    if isinstance(exc, BackendError):
        details = {"cause": exc.cause, "status_code": exc.status_code, **exc.details}
        return exc.message or fallback, details
    if isinstance(exc, BackendUnavailable):
        return fallback, {"cause": exc.cause}
    raise exc
