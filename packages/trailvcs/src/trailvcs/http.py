"""Authenticated REST client shared by the providers."""

import logging
import time
from typing import Any

import httpx
from pydantic import TypeAdapter
from pydantic import ValidationError as SchemaError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    before_sleep_log,
)

from .errors import (
    AuthError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    RateLimitedError,
    UpstreamError,
    VCSError,
)

logger = logging.getLogger(__name__)

# Retry configuration
DEFAULT_MAX_RETRIES = 1
DEFAULT_MIN_WAIT = 1  # seconds
DEFAULT_MAX_WAIT = 10  # seconds

# Only transport failures are retried, and only for GET
RETRYABLE_EXCEPTIONS = (
    httpx.ConnectError,
    httpx.ConnectTimeout,
    httpx.ReadTimeout,
    httpx.WriteTimeout,
    httpx.PoolTimeout,
    httpx.NetworkError,
)
IDEMPOTENT_METHODS = frozenset({"GET"})


def create_retry_decorator(max_retries: int = DEFAULT_MAX_RETRIES):
    """Create a retry decorator with specified max attempts."""
    return retry(
        retry=retry_if_exception_type(RETRYABLE_EXCEPTIONS),
        stop=stop_after_attempt(max(1, max_retries)),
        wait=wait_exponential(multiplier=1, min=DEFAULT_MIN_WAIT, max=DEFAULT_MAX_WAIT),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )


def error_message(response: httpx.Response) -> str:
    """Extract a readable message from an error response body."""
    try:
        data = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(data, dict):
        message = data.get("message") or data.get("error") or data.get("error_description")
        if message:
            return message if isinstance(message, str) else str(message)
    return f"HTTP {response.status_code}"


def _reset_at(response: httpx.Response) -> int | None:
    # retry-after is a delay in seconds; the ratelimit headers are epoch seconds
    retry_after = response.headers.get("retry-after")
    if retry_after is not None and retry_after.strip().isdigit():
        return int(time.time()) + int(retry_after)
    value = response.headers.get("x-ratelimit-reset") or response.headers.get("ratelimit-reset")
    try:
        return int(value) if value is not None else None
    except ValueError:
        return None


def _is_rate_limited(response: httpx.Response, message: str) -> bool:
    # GitHub secondary limits answer 403 with retry-after while quota remains
    return (
        response.headers.get("x-ratelimit-remaining") == "0"
        or "retry-after" in response.headers
        or "rate limit" in message.lower()
    )


def translate_error(
    response: httpx.Response,
    provider: str,
    conflict_markers: tuple[str, ...] = (),
    not_found_markers: tuple[str, ...] = (),
) -> VCSError:
    """
    Map a non-2xx response onto the VCS error taxonomy.

    Args:
        response: Failed HTTP response
        provider: Provider name recorded on the error
        conflict_markers: Lower-case message fragments that mark a 400/422
            response as a write conflict in this provider's dialect
        not_found_markers: Lower-case message fragments that mark a 400/422
            response as a missing file or ref

    Returns:
        The error to raise
    """
    status = response.status_code
    message = error_message(response)
    try:
        body = response.json()
    except ValueError:
        body = response.text
    kwargs = {"status_code": status, "provider": provider, "response_data": body}

    if status == 401:
        return AuthError(f"{provider} rejected the access token: {message}", **kwargs)
    if status == 429 or (status == 403 and _is_rate_limited(response, message)):
        return RateLimitedError(
            f"{provider} rate limit exceeded: {message}", reset_at=_reset_at(response), **kwargs
        )
    if status == 403:
        return ForbiddenError(f"{provider} denied access: {message}", **kwargs)
    if status == 404:
        return NotFoundError(f"{provider} resource not found: {message}", **kwargs)
    if status == 409:
        return ConflictError(f"{provider} conflict: {message}", **kwargs)
    if status in (400, 422) and any(marker in message.lower() for marker in conflict_markers):
        return ConflictError(f"{provider} conflict: {message}", **kwargs)
    if status in (400, 422) and any(marker in message.lower() for marker in not_found_markers):
        return NotFoundError(f"{provider} resource not found: {message}", **kwargs)
    if status >= 500:
        return UpstreamError(f"{provider} server error {status}: {message}", **kwargs)
    return UpstreamError(f"{provider} API error {status}: {message}", **kwargs)


class RESTClient:
    """JSON REST client bound to one API base URL and one access token."""

    def __init__(
        self,
        base_url: str,
        token: str,
        provider: str,
        headers: dict[str, str] | None = None,
        timeout: float = 30.0,
        max_retries: int = DEFAULT_MAX_RETRIES,
        user_agent: str = "trailguide-vcs",
        conflict_markers: tuple[str, ...] = (),
        not_found_markers: tuple[str, ...] = (),
        transport: httpx.BaseTransport | None = None,
    ):
        """
        Initialize REST client.

        Args:
            base_url: API root, without trailing slash
            token: Bearer access token
            provider: Provider name used in logs and errors
            headers: Extra headers sent with every request
            timeout: Request timeout in seconds
            max_retries: Attempts for GET requests on transport failures
            user_agent: User-Agent header value
            conflict_markers: See :func:`translate_error`
            not_found_markers: See :func:`translate_error`
            transport: Custom httpx transport (tests use ``httpx.MockTransport``)
        """
        self.base_url = base_url.rstrip("/")
        self.provider = provider
        self.timeout = timeout
        self.max_retries = max_retries
        self.conflict_markers = conflict_markers
        self.not_found_markers = not_found_markers
        self.transport = transport
        self.headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
            "User-Agent": user_agent,
        }
        if headers:
            self.headers.update(headers)
        logger.debug("%s client ready, base_url=%s", provider, self.base_url)

    def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        logger.debug("Request: %s %s", method, url)
        with httpx.Client(
            timeout=self.timeout, headers=self.headers, transport=self.transport
        ) as client:
            response = client.request(method, url, **kwargs)
        logger.debug("Response: %s %s (status=%d)", method, url, response.status_code)
        return response

    def request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        """
        Send a request and return the decoded JSON body.

        Args:
            method: HTTP method
            endpoint: Path below the base URL, starting with ``/``
            params: Query parameters; ``None`` values are dropped
            json: JSON request body

        Returns:
            Decoded JSON, or None for an empty body

        Raises:
            VCSError: Translated error for any non-2xx response or transport failure
        """
        url = f"{self.base_url}{endpoint}"
        method = method.upper()
        kwargs: dict[str, Any] = {}
        if params:
            kwargs["params"] = {k: v for k, v in params.items() if v is not None}
        if json is not None:
            kwargs["json"] = json

        send = self._send
        if method in IDEMPOTENT_METHODS and self.max_retries > 1:
            send = create_retry_decorator(self.max_retries)(self._send)

        try:
            response = send(method, url, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning("%s request timed out: %s %s", self.provider, method, endpoint)
            raise UpstreamError(
                f"{self.provider} request timed out after {self.timeout}s", provider=self.provider
            ) from e
        except httpx.HTTPError as e:
            logger.warning("%s request failed: %s %s: %s", self.provider, method, endpoint, e)
            raise UpstreamError(
                f"{self.provider} request failed: {e}", provider=self.provider
            ) from e

        if response.is_error:
            error = translate_error(
                response, self.provider, self.conflict_markers, self.not_found_markers
            )
            logger.log(
                logging.WARNING if response.status_code >= 500 else logging.DEBUG,
                "%s %s %s failed: %s (status=%d)",
                self.provider, method, endpoint, type(error).__name__, response.status_code,
            )
            raise error

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(
                f"{self.provider} returned a malformed response",
                status_code=response.status_code,
                provider=self.provider,
                response_data=response.text,
            ) from e

    def parse(self, schema: Any, data: Any) -> Any:
        """
        Validate a decoded body against a response schema.

        Args:
            schema: pydantic model or type such as ``list[Model]``
            data: Decoded JSON body

        Returns:
            Validated value

        Raises:
            UpstreamError: Body does not match the schema
        """
        try:
            return TypeAdapter(schema).validate_python(data)
        except SchemaError as e:
            logger.warning("%s response failed validation: %s", self.provider, e)
            raise UpstreamError(
                f"{self.provider} returned an unexpected response ({e.error_count()} invalid fields)",
                provider=self.provider,
                response_data=data,
            ) from e
