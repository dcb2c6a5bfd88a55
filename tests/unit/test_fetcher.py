"""Unit tests for the HTTP fetcher, using httpx.MockTransport."""

import httpx
import pytest

from cinefeed.errors import FetchError
from cinefeed.services.fetcher import Fetcher, is_transient_status


def _fetcher(handler, **kwargs) -> Fetcher:
    kwargs.setdefault("backoff", 0)
    return Fetcher("test_source", transport=httpx.MockTransport(handler), **kwargs)


class TestIsTransientStatus:
    def test_server_errors_are_transient(self) -> None:
        assert is_transient_status(500)
        assert is_transient_status(503)

    def test_client_errors_are_not(self) -> None:
        assert not is_transient_status(404)
        assert not is_transient_status(403)


class TestFetch:
    async def test_returns_document(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>ok</html>")

        async with _fetcher(handler) as fetcher:
            doc = await fetcher.fetch("https://example.org/page")

        assert doc.text == "<html>ok</html>"
        assert doc.status_code == 200
        assert doc.url == "https://example.org/page"

    async def test_follows_redirects_and_reports_final_url(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/old":
                return httpx.Response(301, headers={"Location": "https://example.org/new"})
            return httpx.Response(200, text="moved")

        async with _fetcher(handler) as fetcher:
            doc = await fetcher.fetch("https://example.org/old")

        assert doc.url == "https://example.org/new"

    async def test_sends_browser_user_agent(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["ua"] = request.headers["User-Agent"]
            return httpx.Response(200, text="")

        async with _fetcher(handler, user_agent="TestAgent/1.0") as fetcher:
            await fetcher.fetch("https://example.org/")

        assert seen["ua"] == "TestAgent/1.0"

    async def test_retries_server_errors(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) < 3:
                return httpx.Response(503)
            return httpx.Response(200, text="finally")

        async with _fetcher(handler, max_retries=3) as fetcher:
            doc = await fetcher.fetch("https://example.org/")

        assert doc.text == "finally"
        assert len(calls) == 3

    async def test_gives_up_after_max_retries(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(502)

        async with _fetcher(handler, max_retries=2) as fetcher:
            with pytest.raises(FetchError) as exc_info:
                await fetcher.fetch("https://example.org/")

        assert len(calls) == 3
        assert exc_info.value.transient
        assert exc_info.value.status_code == 502

    async def test_client_error_is_not_retried(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(404)

        async with _fetcher(handler) as fetcher:
            with pytest.raises(FetchError) as exc_info:
                await fetcher.fetch("https://example.org/missing")

        assert len(calls) == 1
        assert not exc_info.value.transient
        assert exc_info.value.status_code == 404

    async def test_retries_network_errors(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) == 1:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, text="ok")

        async with _fetcher(handler) as fetcher:
            doc = await fetcher.fetch("https://example.org/")

        assert doc.text == "ok"
        assert len(calls) == 2

    async def test_timeout_raises_transient_fetch_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        async with _fetcher(handler, max_retries=0) as fetcher:
            with pytest.raises(FetchError) as exc_info:
                await fetcher.fetch("https://example.org/")

        assert exc_info.value.transient

    async def test_cookies_persist_within_one_fetcher(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/":
                return httpx.Response(200, headers={"Set-Cookie": "session=abc; Path=/"})
            return httpx.Response(200, text=request.headers.get("Cookie", ""))

        async with _fetcher(handler) as fetcher:
            await fetcher.fetch("https://example.org/")
            doc = await fetcher.fetch("https://example.org/api")

        assert doc.text == "session=abc"

    async def test_outside_context_manager(self) -> None:
        fetcher = Fetcher("test_source")
        with pytest.raises(RuntimeError):
            await fetcher.fetch("https://example.org/")

