"""
SSRF-safe HTTP fetcher.
Every request goes through an address policy: literal IP targets are checked
before the request, hostnames are checked after DNS resolution by a resolver
injected into the aiohttp connector. Redirects are never followed and
response bodies are size-capped.
"""

import asyncio
import ipaddress
import socket
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple
from urllib.parse import urlparse

import aiohttp
from aiohttp.abc import AbstractResolver
from aiohttp.resolver import DefaultResolver

from surfacehunter.core.config import FetchConfig
from surfacehunter.core.errors import FetchError, PolicyViolation
from surfacehunter.core.logger import logger


BLOCKED_IPV4_NETWORKS = tuple(ipaddress.ip_network(n) for n in (
    "0.0.0.0/8",
    "10.0.0.0/8",
    "100.64.0.0/10",
    "127.0.0.0/8",
    "169.254.0.0/16",
    "172.16.0.0/12",
    "192.0.0.0/24",
    "192.0.2.0/24",
    "192.168.0.0/16",
    "198.18.0.0/15",
    "198.51.100.0/24",
    "203.0.113.0/24",
    "224.0.0.0/4",
    "240.0.0.0/4",
    "255.255.255.255/32",
))

BLOCKED_IPV6_NETWORKS = tuple(ipaddress.ip_network(n) for n in (
    "::/128",
    "::1/128",
    "::ffff:0:0/96",
    "64:ff9b::/96",
    "100::/64",
    "2001:db8::/32",
    "2001:10::/28",
    "fc00::/7",
    "fe80::/10",
    "ff00::/8",
))


def is_blocked_address(address: str,
                       ipv4_networks: Iterable = BLOCKED_IPV4_NETWORKS,
                       ipv6_networks: Iterable = BLOCKED_IPV6_NETWORKS) -> bool:
    """True if the address falls in a blocked range. Unparsable input is blocked."""
    value = address.strip().strip('[]').split('%', 1)[0]
    try:
        ip = ipaddress.ip_address(value)
    except ValueError:
        return True

    if ip.version == 4:
        return any(ip in network for network in ipv4_networks)

    if ip.ipv4_mapped is not None:
        return any(ip.ipv4_mapped in network for network in ipv4_networks)

    return any(ip in network for network in ipv6_networks)


@dataclass(frozen=True)
class AddressPolicy:
    ipv4_networks: Tuple = BLOCKED_IPV4_NETWORKS
    ipv6_networks: Tuple = BLOCKED_IPV6_NETWORKS

    def is_blocked(self, address: str) -> bool:
        return is_blocked_address(address, self.ipv4_networks, self.ipv6_networks)

    def check_hostname(self, hostname: str):
        name = (hostname or '').lower().rstrip('.')
        if not name:
            raise PolicyViolation("Missing hostname")
        if name == 'localhost' or 'metadata' in name:
            raise PolicyViolation(f"Blocked hostname: {hostname}")

    def validate_addresses(self, addresses: Iterable[str]):
        addresses = list(addresses)
        if not addresses:
            raise PolicyViolation("Hostname did not resolve to any address")
        for address in addresses:
            if self.is_blocked(address):
                raise PolicyViolation(f"Resolved address {address} is in a blocked range")


class ValidatingResolver(AbstractResolver):
    """Resolver wrapper that rejects the whole lookup if any address is blocked."""

    def __init__(self, policy: AddressPolicy, inner: Optional[AbstractResolver] = None):
        self.policy = policy
        self._inner = inner

    def _resolver(self) -> AbstractResolver:
        if self._inner is None:
            self._inner = DefaultResolver()
        return self._inner

    async def resolve(self, host: str, port: int = 0, family: int = socket.AF_INET) -> List[Dict]:
        self.policy.check_hostname(host)
        results = await self._resolver().resolve(host, port, family)
        self.policy.validate_addresses(r["host"] for r in results)
        return results

    async def close(self) -> None:
        if self._inner is not None:
            await self._inner.close()


@dataclass
class FetchResponse:
    url: str
    status: int
    headers: Dict[str, str] = field(default_factory=dict)
    text: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def content_type(self) -> str:
        for key, value in self.headers.items():
            if key.lower() == 'content-type':
                return value.lower()
        return ''


class SafeFetcher:

    CHUNK_SIZE = 64 * 1024

    def __init__(self, config: Optional[FetchConfig] = None,
                 policy: Optional[AddressPolicy] = None,
                 resolver: Optional[AbstractResolver] = None):
        self.config = config or FetchConfig()
        self.policy = policy or AddressPolicy()
        self._inner_resolver = resolver
        self._resolver: Optional[ValidatingResolver] = None
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def start(self):
        self._resolver = ValidatingResolver(self.policy, inner=self._inner_resolver)
        connector = aiohttp.TCPConnector(
            resolver=self._resolver,
            use_dns_cache=False,
            limit=self.config.max_concurrent,
        )
        self.session = aiohttp.ClientSession(
            connector=connector,
            timeout=aiohttp.ClientTimeout(total=self.config.timeout),
            headers={'User-Agent': self.config.user_agent},
        )

    async def close(self):
        if self.session is not None:
            await self.session.close()
            self.session = None
        if self._resolver is not None:
            await self._resolver.close()
            self._resolver = None

    def check_url(self, url: str) -> str:
        """Pre-flight checks that need no network access. Returns the hostname."""
        try:
            parsed = urlparse(url)
            host = parsed.hostname
        except ValueError as e:
            raise PolicyViolation(f"Malformed URL: {url}") from e

        if parsed.scheme not in ('http', 'https'):
            raise PolicyViolation(f"Scheme not allowed: {parsed.scheme or '(none)'}")
        if not host:
            raise PolicyViolation(f"Missing hostname: {url}")

        self.policy.check_hostname(host)

        try:
            ipaddress.ip_address(host.split('%', 1)[0])
        except ValueError:
            return host

        if self.policy.is_blocked(host):
            raise PolicyViolation(f"Address {host} is in a blocked range")
        return host

    async def fetch(self, url: str, max_size: Optional[int] = None) -> FetchResponse:
        if self.session is None:
            raise RuntimeError("SafeFetcher used outside of its async context")

        max_size = max_size or self.config.max_html_size
        self.check_url(url)

        try:
            async with self.session.get(url, allow_redirects=False) as response:
                if 300 <= response.status < 400:
                    location = response.headers.get('Location', '')
                    raise PolicyViolation(f"Redirect {response.status} to '{location}' not followed")

                if response.content_length is not None and response.content_length > max_size:
                    raise PolicyViolation(f"Response too large ({response.content_length} bytes)")

                body = bytearray()
                async for chunk in response.content.iter_chunked(self.CHUNK_SIZE):
                    body.extend(chunk)
                    if len(body) > max_size:
                        raise PolicyViolation(f"Response exceeds {max_size} bytes")

                return FetchResponse(
                    url=str(response.url),
                    status=response.status,
                    headers=dict(response.headers),
                    text=self._decode(bytes(body), response.charset),
                )
        except PolicyViolation:
            raise
        except asyncio.TimeoutError as e:
            raise FetchError(url, f"timed out after {self.config.timeout}s") from e
        except aiohttp.ClientError as e:
            if isinstance(e.__cause__, PolicyViolation):
                raise e.__cause__ from e
            raise FetchError(url, str(e) or e.__class__.__name__) from e
        except OSError as e:
            raise FetchError(url, str(e)) from e

    @staticmethod
    def _decode(body: bytes, charset: Optional[str]) -> str:
        try:
            return body.decode(charset or 'utf-8', errors='replace')
        except LookupError:
            return body.decode('utf-8', errors='replace')


def safe_fetch(url: str, config: Optional[FetchConfig] = None,
               policy: Optional[AddressPolicy] = None,
               max_size: Optional[int] = None) -> FetchResponse:
    """Blocking single fetch."""

    async def _run():
        async with SafeFetcher(config, policy) as fetcher:
            return await fetcher.fetch(url, max_size)

    logger.debug(f"Fetching {url}")
    return asyncio.run(_run())
