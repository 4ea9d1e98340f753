"""
Web page collector and API documentation probe.
Pulls inline scripts, external script URLs, module preloads and form targets
out of a fetched page, and probes conventional documentation paths for
OpenAPI / Swagger documents.
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urljoin, urlparse

import yaml

from surfacehunter.analyzers.backend_filter import is_likely_backend_path
from surfacehunter.analyzers.classifier import Classifier
from surfacehunter.core.config import DocProbeConfig, FetchConfig
from surfacehunter.core.errors import FetchError, PolicyViolation
from surfacehunter.core.logger import logger
from surfacehunter.core.normalizer import URLNormalizer
from surfacehunter.models import (
    ApiEndpoint, ConfidenceLevel, HttpMethod, PersistenceOp,
)


@dataclass
class PageInventory:
    inline_scripts: List[str] = field(default_factory=list)
    script_urls: List[str] = field(default_factory=list)
    forms: List[Tuple[str, HttpMethod, str]] = field(default_factory=list)


class WebPageCollector:

    INLINE_SCRIPT = re.compile(r'<script(?![^>]*\bsrc\s*=)([^>]*)>([\s\S]*?)</script>', re.IGNORECASE)
    SCRIPT_SRC = re.compile(r'<script[^>]+\bsrc\s*=\s*["\']([^"\']+)["\']', re.IGNORECASE)
    MODULE_PRELOAD = re.compile(
        r'<link[^>]+\brel\s*=\s*["\']modulepreload["\'][^>]*?\bhref\s*=\s*["\']([^"\']+)["\']',
        re.IGNORECASE
    )
    FORM_TAG = re.compile(r'<form\b([^>]*)>', re.IGNORECASE)
    FORM_ACTION = re.compile(r'\baction\s*=\s*["\']([^"\']+)["\']', re.IGNORECASE)
    FORM_METHOD = re.compile(r'\bmethod\s*=\s*["\']?(\w+)', re.IGNORECASE)

    NON_SCRIPT_TYPES = ('application/json', 'application/ld+json', 'text/template', 'text/x-template', 'importmap')

    def __init__(self):
        self.normalizer = URLNormalizer()

    def collect(self, html: str, page_url: str) -> PageInventory:
        inventory = PageInventory()
        origin = self.normalizer.origin(page_url)

        for match in self.INLINE_SCRIPT.finditer(html):
            attrs, code = match.group(1), match.group(2)
            if any(t in attrs.lower() for t in self.NON_SCRIPT_TYPES):
                continue
            if code.strip():
                inventory.inline_scripts.append(code)

        seen = set()
        for pattern in (self.SCRIPT_SRC, self.MODULE_PRELOAD):
            for match in pattern.finditer(html):
                script_url = self._absolute(match.group(1), origin)
                if script_url and script_url not in seen:
                    seen.add(script_url)
                    inventory.script_urls.append(script_url)

        for match in self.FORM_TAG.finditer(html):
            attrs = match.group(1)
            action = self.FORM_ACTION.search(attrs)
            if not action:
                continue
            action_url = self._absolute(action.group(1), origin)
            if not action_url:
                continue
            method_match = self.FORM_METHOD.search(attrs)
            method = HttpMethod.parse(method_match.group(1)) if method_match else HttpMethod.POST
            if method == HttpMethod.UNKNOWN:
                method = HttpMethod.POST
            context = html[match.start():match.start() + 1500]
            inventory.forms.append((action_url, method, context))

        return inventory

    def markup_only(self, html: str) -> str:
        return self.INLINE_SCRIPT.sub("", html)

    def form_endpoints(self, inventory: PageInventory, classifier: Classifier) -> List[ApiEndpoint]:
        endpoints = []
        for action_url, method, context in inventory.forms:
            if not is_likely_backend_path(action_url):
                continue
            endpoints.append(classifier.classify(
                action_url, context, "form",
                source="form",
                method_hint=method,
                id_implies_update=True,
            ))
        return endpoints

    def _absolute(self, url: str, origin: str) -> Optional[str]:
        url = url.strip()
        if not url or url.lower().startswith(('data:', 'javascript:', 'mailto:', '#')):
            return None
        if url.startswith(('http://', 'https://')):
            return url
        try:
            return urljoin(origin + '/', url)
        except ValueError:
            return None


HTTP_VERBS = ('get', 'post', 'put', 'patch', 'delete')


def parse_api_document(text: str, content_type: str = '', path: str = '') -> Optional[Dict[str, Any]]:
    """Parse an OpenAPI / Swagger document; None if the body is not one."""
    document = None
    try:
        document = json.loads(text)
    except ValueError:
        if 'yaml' in content_type or 'yml' in content_type or path.endswith(('.yaml', '.yml')):
            try:
                document = yaml.safe_load(text)
            except yaml.YAMLError:
                return None

    if not isinstance(document, dict) or not isinstance(document.get('paths'), dict):
        return None
    return document


def document_base_path(document: Dict[str, Any]) -> str:
    """Path prefix declared by the document (Swagger 2 basePath or first OpenAPI 3 server)."""
    base_path = document.get('basePath')
    if isinstance(base_path, str) and base_path.startswith('/'):
        return base_path.rstrip('/')

    servers = document.get('servers')
    if isinstance(servers, list) and servers and isinstance(servers[0], dict):
        server_url = servers[0].get('url') or ''
        if isinstance(server_url, str):
            if server_url.startswith(('http://', 'https://')):
                server_url = urlparse(server_url).path
            if server_url.startswith('/'):
                return server_url.rstrip('/')
    return ''


class DocProbe:

    def __init__(self, fetcher, fetch_config: Optional[FetchConfig] = None,
                 probe_config: Optional[DocProbeConfig] = None, silent_mode: bool = True):
        self.fetcher = fetcher
        self.fetch_config = fetch_config or FetchConfig()
        self.probe_config = probe_config or DocProbeConfig()
        self.silent_mode = silent_mode
        self.classifier = Classifier()
        self.normalizer = URLNormalizer()

    async def probe(self, page_url: str) -> List[ApiEndpoint]:
        endpoints: List[ApiEndpoint] = []
        if not self.probe_config.enabled:
            return endpoints

        origin = self.normalizer.origin(page_url)

        for doc_path in self.probe_config.paths:
            doc_url = urljoin(origin + '/', doc_path.lstrip('/'))
            try:
                response = await self.fetcher.fetch(doc_url, self.fetch_config.max_script_size)
            except (PolicyViolation, FetchError) as e:
                logger.debug(f"Doc probe {doc_url} skipped: {e}")
                continue

            if not response.ok:
                continue

            if not self.silent_mode:
                logger.info(f"API documentation found at {doc_url}")

            endpoints.append(ApiEndpoint(
                url=doc_url,
                method=HttpMethod.GET,
                source_location=doc_url,
                confidence=ConfidenceLevel.HIGH,
                persistence_op=PersistenceOp.READ,
                logic_types=["api-docs"],
                source="api-documentation",
                headers={"Content-Type": "application/json"},
            ))

            document = parse_api_document(response.text, response.content_type, doc_path)
            if document is not None:
                endpoints.extend(self.document_endpoints(document, origin, doc_url))

        return endpoints

    def document_endpoints(self, document: Dict[str, Any], origin: str, doc_url: str) -> List[ApiEndpoint]:
        endpoints = []
        prefix = document_base_path(document)

        for path, operations in document['paths'].items():
            if not isinstance(path, str) or not isinstance(operations, dict):
                continue
            full_url = urljoin(origin + '/', (prefix + '/' + path.lstrip('/')).lstrip('/'))

            for verb, operation in operations.items():
                if not isinstance(verb, str) or verb.lower() not in HTTP_VERBS:
                    continue
                context = json.dumps(operation, default=str)[:2000] if operation else ''
                endpoints.append(self.classifier.classify(
                    full_url, context, doc_url,
                    source="api-documentation",
                    method_hint=HttpMethod.parse(verb),
                    id_implies_update=True,
                ))

        return endpoints
