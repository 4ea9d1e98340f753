"""
Backend-likeness filter.
Decides whether a cleaned candidate string plausibly names a server endpoint
rather than a code namespace, a bundled asset or a source file.
"""

import re
from urllib.parse import urlparse

from surfacehunter.analyzers.patterns import COLLECTION_RESOURCE, compile_rules, first_match


NAMESPACE_PREFIXES = (
    'android/', 'androidx/', 'java/', 'javax/', 'kotlin/', 'kotlinx/',
    'dalvik/', 'sun/', 'libcore/', 'org/w3c/', 'org/xml/', 'org/json/',
    'com/android/internal/', 'com/google/android/material/',
    'Landroid/', 'Landroidx/', 'Ljava/', 'Ljavax/', 'Lkotlin/', 'Lkotlinx/',
    'Ldalvik/', 'Lsun/', 'Llibcore/',
)

# XML namespace and schema hosts show up in every layout file.
NAMESPACE_HOSTS = (
    'schemas.android.com', 'www.w3.org', 'w3.org', 'ns.adobe.com',
    'xmlpull.org', 'schemas.xmlsoap.org', 'purl.org', 'schemas.microsoft.com',
)

SOURCE_SUFFIXES = (
    '.java', '.kt', '.smali', '.class', '.dex', '.so',
    '.js', '.mjs', '.ts', '.tsx', '.jsx', '.map',
    '.css', '.scss', '.less',
    '.png', '.jpg', '.jpeg', '.gif', '.svg', '.webp', '.ico', '.bmp',
    '.ttf', '.otf', '.woff', '.woff2', '.eot',
    '.mp3', '.mp4', '.wav', '.ogg',
)

BACKEND_RULES = compile_rules([
    ('operation-query', r'[?&](?:op|action|cmd|method|operation)='),
    ('api-segment', r'/(?:api|rest|service|services|backend)(?:/|$)|/v\d+/'),
    ('server-script', r'\.(?:php|aspx?|jsp|jspx|cgi|do|action)(?:[?#]|$)|/cgi-bin/'),
    ('sensitive-segment', r'/(?:admin|auth|oauth|upload|uploads|login|logout|signin|signup|register|password|reset|verify|token)'),
    ('resource-suffix', r'\.(?:json|xml)(?:[?#]|$)'),
    ('realtime', r'/(?:graphql|webhooks?|socket\.io|sockets?|ws|wss|hub|signalr)(?:[/?#]|$)|^wss?://'),
    ('crud-segment', r'/(?:create|insert|update|delete|remove|edit|modify|save|store|add|new|submit|process|handle|publish|approve|reject|activate|deactivate|enable|disable|bulk|batch|database|db|sql|query|execute|transaction|commit|rollback)(?![a-z])'),
], re.IGNORECASE)

LOWERCASE_SEGMENT = re.compile(r'/[a-z]')


def _strip_query(candidate: str) -> str:
    return re.split(r'[?#]', candidate, maxsplit=1)[0]


def _is_namespace(candidate: str) -> bool:
    if candidate.lstrip('/').startswith(NAMESPACE_PREFIXES):
        return True
    if '://' in candidate:
        try:
            host = (urlparse(candidate).hostname or '').lower()
        except ValueError:
            return True
        return host in NAMESPACE_HOSTS
    return False


def _path_of(candidate: str) -> str:
    if '://' in candidate:
        try:
            return urlparse(candidate).path
        except ValueError:
            return ''
    return _strip_query(candidate)


def is_likely_backend_path(candidate: str) -> bool:
    """True when the candidate plausibly targets a backend.

    Namespace and source-file references are rejected before any accept
    rule is consulted.
    """
    if not candidate:
        return False

    if _is_namespace(candidate):
        return False

    if _path_of(candidate).lower().endswith(SOURCE_SUFFIXES):
        return False

    if first_match(BACKEND_RULES, candidate):
        return True

    if COLLECTION_RESOURCE.search(_strip_query(candidate)):
        return True

    path = _path_of(candidate)
    return path.startswith('/') and len(path) > 3 and bool(LOWERCASE_SEGMENT.search(path))
