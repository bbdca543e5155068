from __future__ import annotations

import json
import time

import httpx
import pytest

from app.services.instagram.phantombuster import PhantomBusterClient, PhantomBusterError
from app.services.instagram.scrape import ScrapeConfigurationError


def _client(handler, api_key: str | None = "pb-key") -> PhantomBusterClient:
    return PhantomBusterClient(
        api_key=api_key,
        agent_id="2487161782151911",
        base_url="https://api.phantombuster.com/api/v2/",
        timeout=5.0,
        transport=httpx.MockTransport(handler),
    )


def test_launch_posts_argument_with_api_key_header() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"containerId": "42"})

    result = _client(handler).launch("https://www.instagram.com/p/abc/", post_id=7)

    assert result == {"containerId": "42"}
    assert len(seen) == 1
    request = seen[0]
    assert request.method == "POST"
    assert str(request.url) == "https://api.phantombuster.com/api/v2/phantoms/2487161782151911/launch"
    assert request.headers["X-Phantombuster-Key"] == "pb-key"
    assert json.loads(request.content) == {"argument": {"postUrls": ["https://www.instagram.com/p/abc/"]}}


def test_launch_without_api_key_fails_fast() -> None:
    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover - must not be called
        raise AssertionError("no request expected")

    with pytest.raises(ScrapeConfigurationError):
        _client(handler, api_key=None).launch("https://www.instagram.com/p/abc/")


def test_launch_error_status_is_not_retried() -> None:
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        return httpx.Response(402, json={"status": "error", "error": "Not enough execution time"})

    with pytest.raises(PhantomBusterError) as excinfo:
        _client(handler).launch("https://www.instagram.com/p/abc/")

    assert calls["count"] == 1
    assert excinfo.value.status_code == 402
    assert excinfo.value.body == {"status": "error", "error": "Not enough execution time"}


def test_launch_retries_transport_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(time, "sleep", lambda _seconds: None)
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        if calls["count"] < 3:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json={"containerId": "99"})

    assert _client(handler).launch("https://www.instagram.com/p/abc/") == {"containerId": "99"}
    assert calls["count"] == 3


def test_launch_gives_up_after_repeated_transport_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(time, "sleep", lambda _seconds: None)

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(PhantomBusterError):
        _client(handler).launch("https://www.instagram.com/p/abc/")
