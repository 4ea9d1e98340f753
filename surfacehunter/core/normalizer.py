"""
URL normalization helpers.
Cleans raw candidate strings pulled out of source buffers and resolves
relative references against the page they were found on.
"""

import re
from typing import Optional
from urllib.parse import urljoin, urlparse

from surfacehunter.core.errors import InputError


class URLNormalizer:

    QUOTE_AND_SPACE = ' \t\r\n"\'`'
    TRAILING_PUNCTUATION = ',;)}]>'
    LEADING_BRACKETS = '([{<'
    REJECTED_PREFIXES = ('data:', 'javascript:', 'mailto:')
    UNICODE_ESCAPE = re.compile(r'\\u([0-9a-fA-F]{4})')

    def clean_candidate(self, raw: str) -> Optional[str]:
        """Post-process a raw match into a candidate URL.

        Steps run in a fixed order: strip quotes and whitespace, decode
        \\uXXXX escapes, strip trailing punctuation and leading brackets,
        then reject anything empty, non-navigational, too short or
        containing a parent reference.
        """
        if not raw:
            return None

        value = raw.strip(self.QUOTE_AND_SPACE)
        value = self.UNICODE_ESCAPE.sub(lambda m: chr(int(m.group(1), 16)), value)
        value = value.rstrip(self.TRAILING_PUNCTUATION).lstrip(self.LEADING_BRACKETS)

        if not value:
            return None
        if value.lower().startswith(self.REJECTED_PREFIXES):
            return None
        if value.startswith('#'):
            return None
        if len(value) < 4 or '..' in value:
            return None

        return value

    def resolve(self, url: str, base_url: str) -> Optional[str]:
        try:
            if url.startswith(('http://', 'https://')):
                return url
            if url.startswith('//'):
                return urljoin(base_url, url)
            if url.startswith('/'):
                return urljoin(self.origin(base_url), url)
            return urljoin(base_url, url)
        except ValueError:
            return None

    def origin(self, url: str) -> str:
        parsed = urlparse(url)
        return f"{parsed.scheme}://{parsed.netloc}"

    def domain_of(self, url: str) -> Optional[str]:
        try:
            parsed = urlparse(url)
        except ValueError:
            return None
        if parsed.scheme in ('http', 'https', 'ws', 'wss') and parsed.hostname:
            return parsed.hostname.lower()
        return None


def normalize_input(target: str) -> str:
    """Validate a scan target: an absolute URL with a scheme and a host."""
    if not target or not isinstance(target, str):
        raise InputError("Valid URL is required")

    target = target.strip()
    try:
        parsed = urlparse(target)
        host = parsed.hostname
    except ValueError as e:
        raise InputError(f"Malformed URL: {target}") from e

    if not parsed.scheme or not host:
        raise InputError(f"Malformed URL: {target}")

    return target
