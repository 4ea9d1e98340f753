"""Tests for the SSRF-safe fetcher: address table, resolver hook, redirects, size caps."""

from __future__ import annotations

import asyncio
import socket

import aiohttp
import pytest
from aiohttp import web
from aiohttp.abc import AbstractResolver
from aiohttp import test_utils

from surfacehunter.collectors.safe_fetcher import (
    AddressPolicy, SafeFetcher, ValidatingResolver, is_blocked_address, safe_fetch,
)
from surfacehunter.core.errors import PolicyViolation


@pytest.mark.parametrize("address, blocked", [
    ("10.1.2.3", True),
    ("127.0.0.1", True),
    ("169.254.169.254", True),
    ("172.20.0.1", True),
    ("192.168.1.10", True),
    ("100.64.0.1", True),
    ("0.0.0.0", True),
    ("8.8.8.8", False),
    ("93.184.216.34", False),
    ("::1", True),
    ("fe80::1%eth0", True),
    ("fd00::1", True),
    ("2001:db8::1", True),
    ("::ffff:10.0.0.1", True),
    ("::ffff:8.8.8.8", False),
    ("2606:4700::1111", False),
    ("not-an-address", True),
])
def test_blocked_address_table(address, blocked):
    assert is_blocked_address(address) is blocked


@pytest.fixture
def no_network(monkeypatch):
    """Fail loudly if anything reaches the HTTP layer."""
    calls = []

    def fake_get(self, *args, **kwargs):
        calls.append(args)
        raise AssertionError("request should not have been sent")

    monkeypatch.setattr(aiohttp.ClientSession, "get", fake_get)
    return calls


def test_metadata_address_rejected_before_request(no_network):
    with pytest.raises(PolicyViolation):
        safe_fetch("http://169.254.169.254/")
    assert no_network == []


@pytest.mark.parametrize("url", [
    "ftp://example.com/file",
    "file:///etc/passwd",
    "http://localhost:8080/",
    "http://metadata.google.internal/computeMetadata/v1/",
    "http://[::ffff:127.0.0.1]/",
    "http://10.0.0.8/admin",
])
def test_disallowed_targets_rejected(url, no_network):
    with pytest.raises(PolicyViolation):
        safe_fetch(url)
    assert no_network == []


class StaticResolver(AbstractResolver):
    """Resolves every hostname to one fixed address."""

    def __init__(self, address):
        self.address = address

    async def resolve(self, host, port=0, family=socket.AF_INET):
        return [{
            "hostname": host, "host": self.address, "port": port,
            "family": family, "proto": 0, "flags": socket.AI_NUMERICHOST,
        }]

    async def close(self):
        pass


def test_resolver_rejects_private_resolution():
    resolver = ValidatingResolver(AddressPolicy(), inner=StaticResolver("10.0.0.5"))

    with pytest.raises(PolicyViolation):
        asyncio.run(resolver.resolve("intranet.example.com", 80))


def test_resolver_passes_public_resolution():
    resolver = ValidatingResolver(AddressPolicy(), inner=StaticResolver("93.184.216.34"))

    results = asyncio.run(resolver.resolve("www.example.com", 443))
    assert results[0]["host"] == "93.184.216.34"


def test_hostname_resolving_to_private_address_blocked_in_connector():
    async def go():
        async with SafeFetcher(resolver=StaticResolver("192.168.0.10")) as fetcher:
            await fetcher.fetch("http://router.example.com/")

    with pytest.raises(PolicyViolation):
        asyncio.run(go())


def _fetch_from(handler, open_policy, max_size=None):
    async def go():
        app = web.Application()
        app.router.add_get("/", handler)
        server = test_utils.TestServer(app, host="127.0.0.1")
        await server.start_server()
        try:
            async with SafeFetcher(policy=open_policy) as fetcher:
                return await fetcher.fetch(str(server.make_url("/")), max_size)
        finally:
            await server.close()

    return asyncio.run(go())


def test_redirect_is_not_followed(open_policy):
    async def handler(request):
        raise web.HTTPFound("http://169.254.169.254/latest/meta-data")

    with pytest.raises(PolicyViolation) as excinfo:
        _fetch_from(handler, open_policy)
    assert "302" in str(excinfo.value)


def test_oversized_body_rejected(open_policy):
    async def handler(request):
        return web.Response(text="x" * 5000)

    with pytest.raises(PolicyViolation):
        _fetch_from(handler, open_policy, max_size=1000)


def test_successful_fetch(open_policy):
    async def handler(request):
        return web.Response(text="<html>ok</html>", content_type="text/html")

    response = _fetch_from(handler, open_policy)

    assert response.ok
    assert response.status == 200
    assert response.text == "<html>ok</html>"
    assert response.content_type.startswith("text/html")


def test_error_status_returned_not_raised(open_policy):
    async def handler(request):
        return web.Response(status=404, text="missing")

    response = _fetch_from(handler, open_policy)

    assert not response.ok
    assert response.status == 404
