"""Single HTTP call against the visit backend: headers, body encoding, timeout, envelope check."""

import asyncio
import json
from typing import Any, Dict, Optional

import httpx
import structlog

from fieldvisit.exceptions import (
    ApiError,
    AuthFailure,
    BusinessRejection,
    RequestTimeout,
    TransportFailure,
    UnknownServerFailure,
    ValidationFailure,
)
from fieldvisit.models import MultipartForm, ResponseEnvelope

logger = structlog.get_logger(__name__)

DEFAULT_ERROR_MESSAGE = "Request gagal"
INVALID_RESPONSE_MESSAGE = "Respon server tidak valid."
AUTH_MESSAGES = {
    401: "Token tidak valid atau telah kedaluwarsa. Silakan login kembali.",
    403: "Anda tidak memiliki izin untuk mengakses resource ini.",
}
# Statuses that still carry a domain decision in the envelope
BUSINESS_STATUSES = {400, 409}


def build_headers(token: Optional[str], multipart: bool) -> Dict[str, str]:
    """Accept/Authorization always; Content-Type only for JSON bodies."""
    headers = {"Accept": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    if not multipart:
        headers["Content-Type"] = "application/json"
    return headers


def flatten_errors(errors: Any) -> str:
    """Join every message of a field-error map into one string."""
    if not isinstance(errors, dict):
        return ""
    messages = []
    for value in errors.values():
        if isinstance(value, (list, tuple)):
            messages.extend(str(item) for item in value)
        elif value is not None:
            messages.append(str(value))
    return ", ".join(messages)


def error_from_response(http_status: int, payload: Any) -> ApiError:
    """Classify a failed response into the error taxonomy."""
    body = payload if isinstance(payload, dict) else {}
    meta = body.get("meta") if isinstance(body.get("meta"), dict) else {}
    code = meta.get("code") if isinstance(meta.get("code"), int) else http_status
    status = meta.get("status") or "error"
    errors = body.get("errors") if isinstance(body.get("errors"), dict) else None
    data = body.get("data")

    details = dict(code=code, status=status, errors=errors,
                   http_status=http_status, data=data)

    if http_status in AUTH_MESSAGES:
        return AuthFailure(AUTH_MESSAGES[http_status], **details)

    if not meta:
        return UnknownServerFailure(INVALID_RESPONSE_MESSAGE, **details)

    message = meta.get("message") or DEFAULT_ERROR_MESSAGE
    joined = flatten_errors(errors)
    if joined:
        message = f"{message}: {joined}"

    if code == 422 or http_status == 422:
        return ValidationFailure(message, **details)
    if 200 <= http_status < 300 or http_status in BUSINESS_STATUSES:
        return BusinessRejection(message, **details)
    return UnknownServerFailure(message, **details)


class RequestExecutor:
    """Performs exactly one HTTP call and validates the response envelope."""

    def __init__(self, client: httpx.AsyncClient, default_timeout: float = 10.0):
        self.client = client
        self.default_timeout = default_timeout

    async def execute(
        self,
        method: str,
        url: str,
        body: Any = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        label: str = "API",
    ) -> ResponseEnvelope:
        """Send the request and return the envelope, or raise a classified ApiError.

        Args:
            method: HTTP method
            url: Absolute URL
            body: JSON-serialisable payload or a MultipartForm
            token: Bearer token, None for anonymous calls
            timeout: Seconds before RequestTimeout is raised
            label: Tag used in log records

        Returns:
            The parsed envelope of a successful call
        """
        timeout = self.default_timeout if timeout is None else timeout
        multipart = isinstance(body, MultipartForm)
        headers = build_headers(token, multipart)

        kwargs: Dict[str, Any] = {"headers": headers}
        if multipart:
            kwargs["data"] = body.fields
            kwargs["files"] = {
                name: (upload.filename, upload.content, upload.content_type)
                for name, upload in body.files.items()
            }
        elif body is not None:
            kwargs["content"] = json.dumps(body)

        logger.debug(
            "API request",
            label=label,
            method=method,
            url=url,
            body_type="multipart" if multipart else type(body).__name__,
        )

        try:
            response = await asyncio.wait_for(
                self.client.request(method, url, **kwargs), timeout=timeout
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            logger.warning("API request timeout", label=label, url=url, timeout=timeout)
            raise RequestTimeout("Request timeout", status="timeout") from None
        except httpx.TransportError as e:
            logger.warning("API network error", label=label, url=url, error=str(e))
            raise TransportFailure(
                f"Network error: {e}", status="network_error"
            ) from e

        logger.debug("API response", label=label, status=response.status_code)

        try:
            payload = response.json()
        except ValueError:
            payload = None

        envelope = None
        if isinstance(payload, dict):
            try:
                envelope = ResponseEnvelope.model_validate(payload)
            except ValueError:
                envelope = None

        if response.is_success and envelope is not None and envelope.is_success:
            return envelope

        error = error_from_response(response.status_code, payload)
        logger.info(
            "API request failed",
            label=label,
            http_status=response.status_code,
            code=error.code,
            error_kind=error.kind.value,
            message=error.message,
        )
        raise error
