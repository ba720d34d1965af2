from __future__ import annotations

import httpx

from agentai.tasks.probe_backend import probe_backend


def _transport(handler) -> httpx.MockTransport:
    return httpx.MockTransport(handler)


def test_healthy_backend() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, json={"status": "ok"})

    assert probe_backend("http://router:9000/", transport=_transport(handler)) is True
    assert seen == ["http://router:9000/health"]


def test_error_status_is_advisory() -> None:
    transport = _transport(lambda request: httpx.Response(503))

    assert probe_backend("http://router:9000", transport=transport) is False


def test_connection_error_is_advisory() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    assert probe_backend("http://router:9000", transport=_transport(handler)) is False


def test_timeout_is_advisory() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    assert probe_backend("http://router:9000", timeout=0.1, transport=_transport(handler)) is False


def test_unset_url_skips_probe() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    assert probe_backend(None, transport=_transport(handler)) is False
    assert probe_backend("", transport=_transport(handler)) is False
