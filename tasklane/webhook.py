"""Webhook URL conventions and the HTTP client used for scheduled tasks."""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from tasklane.errors import WebhookError, WebhookTransportError

COMPLETED_PREFIX = "completed:"

# Recorded as the HTTP status of a call that never produced a response.
TRANSPORT_ERROR_STATUS = 400


def is_completed(url: str | None) -> bool:
    """Return whether the one-shot webhook phase already succeeded."""
    return bool(url) and url.startswith(COMPLETED_PREFIX)


def mark_completed(url: str) -> str:
    if is_completed(url):
        return url
    return COMPLETED_PREFIX + url


def strip_completed(url: str) -> str:
    """Remove the completed marker so the webhook fires again on the next run."""
    if is_completed(url):
        return url[len(COMPLETED_PREFIX) :]
    return url


def build_target(url: str, user_id: int | None) -> str:
    """Append ``/<user_id>`` to the stored URL when a user id is present."""
    if user_id is None:
        return url
    return f"{url}/{user_id}"


@dataclass(frozen=True, slots=True)
class WebhookResponse:
    status_code: int
    body: str


class WebhookClient:
    """Issue bounded HTTP GET calls to task webhooks."""

    def __init__(
        self,
        *,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    async def get(self, url: str) -> WebhookResponse:
        """GET ``url``.

        Raises:
            WebhookError: transport failure (``http_status`` 400) or a
                non-2xx response (``http_status`` and ``body`` from it).
        """
        try:
            async with httpx.AsyncClient(timeout=self._timeout_seconds, transport=self._transport) as client:
                response = await client.get(url)
        except httpx.HTTPError as exc:
            raise WebhookTransportError(
                f"failed to send HTTP request: {str(exc) or exc.__class__.__name__}",
                http_status=TRANSPORT_ERROR_STATUS,
            ) from exc
        body = response.text
        if not response.is_success:
            raise WebhookError(
                f"HTTP request returned status {response.status_code}",
                http_status=response.status_code,
                body=body,
            )
        return WebhookResponse(status_code=response.status_code, body=body)
