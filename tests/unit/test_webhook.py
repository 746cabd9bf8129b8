"""Unit tests for webhook URL conventions and the webhook client."""

from __future__ import annotations

import httpx
import pytest

from tasklane.errors import WebhookError, WebhookTransportError
from tasklane.webhook import (
    COMPLETED_PREFIX,
    WebhookClient,
    build_target,
    is_completed,
    mark_completed,
    strip_completed,
)


def test_completed_marker_round_trip() -> None:
    url = "http://x/drop/5"
    marked = mark_completed(url)
    assert marked == "completed:http://x/drop/5"
    assert is_completed(marked)
    assert mark_completed(marked) == marked
    assert strip_completed(marked) == url
    assert strip_completed(url) == url


def test_is_completed_checks_literal_prefix_only() -> None:
    assert is_completed(COMPLETED_PREFIX + "anything")
    assert not is_completed("http://completed:8080/x")
    assert not is_completed(None)
    assert not is_completed("")


def test_build_target_appends_user_id() -> None:
    assert build_target("http://x/drop/5", 9) == "http://x/drop/5/9"
    assert build_target("http://x/drop/5", None) == "http://x/drop/5"


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [200, 204])
async def test_get_returns_success_response(status: int) -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(status, text="ok" if status == 200 else "")

    client = WebhookClient(transport=httpx.MockTransport(handler))
    response = await client.get("http://x/drop/5")

    assert response.status_code == status
    assert seen == ["http://x/drop/5"]


@pytest.mark.asyncio
async def test_get_raises_on_non_2xx_with_body() -> None:
    client = WebhookClient(transport=httpx.MockTransport(lambda request: httpx.Response(500, text="boom")))
    with pytest.raises(WebhookError) as exc_info:
        await client.get("http://x/drop/5")

    assert not isinstance(exc_info.value, WebhookTransportError)
    assert exc_info.value.http_status == 500
    assert exc_info.value.body == "boom"


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [httpx.ConnectError("connection refused"), httpx.ReadTimeout("timed out")])
async def test_get_maps_transport_errors_to_sentinel_status(error: httpx.HTTPError) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise error

    client = WebhookClient(timeout_seconds=1.0, transport=httpx.MockTransport(handler))
    with pytest.raises(WebhookTransportError) as exc_info:
        await client.get("http://x/drop/5")

    assert exc_info.value.http_status == 400
    assert "failed to send HTTP request" in str(exc_info.value)
