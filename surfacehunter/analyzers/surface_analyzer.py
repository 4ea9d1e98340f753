"""
Per-buffer surface analysis.
One pass per URL rule over a text buffer: candidates are cleaned, filtered,
classified against their surrounding context, then UI markup, libraries and
security patterns are matched over the same buffer.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from surfacehunter.analyzers import patterns
from surfacehunter.analyzers.backend_filter import is_likely_backend_path
from surfacehunter.analyzers.classifier import Classifier
from surfacehunter.analyzers.patterns import all_matches, extract_context
from surfacehunter.analyzers.security_scanner import SecurityScanner
from surfacehunter.core.config import ArchiveConfig
from surfacehunter.core.normalizer import URLNormalizer
from surfacehunter.models import ApiEndpoint, SecurityFinding, UiComponent, UiKind


@dataclass
class FileScan:
    location: str
    endpoints: List[ApiEndpoint] = field(default_factory=list)
    ui_components: List[UiComponent] = field(default_factory=list)
    findings: List[SecurityFinding] = field(default_factory=list)
    libraries: List[str] = field(default_factory=list)
    hardcoded_keys: int = 0
    weak_algorithms: int = 0
    ssl_issues: int = 0


class SurfaceAnalyzer:

    def __init__(self, config: Optional[ArchiveConfig] = None):
        self.config = config or ArchiveConfig()
        self.normalizer = URLNormalizer()
        self.classifier = Classifier()
        self.scanner = SecurityScanner()

    def analyze_buffer(self, text: str, location: str) -> FileScan:
        scan = FileScan(location=location)

        scan.endpoints = self.extract_endpoints(text, location)
        scan.ui_components = self.extract_ui(text, location)
        scan.libraries = [rule.name for rule in all_matches(patterns.LIBRARY_RULES, text)]

        security = self.scanner.scan(text, location)
        scan.findings = security.findings
        scan.hardcoded_keys = security.hardcoded_keys
        scan.weak_algorithms = security.weak_algorithms
        scan.ssl_issues = security.ssl_issues

        return scan

    def extract_endpoints(self, text: str, location: str) -> List[ApiEndpoint]:
        endpoints = []
        seen = set()

        for rule in patterns.URL_RULES:
            for match in rule.finditer(text):
                candidate = self.normalizer.clean_candidate(match.group('url'))
                if not candidate or not is_likely_backend_path(candidate):
                    continue

                context = extract_context(text, match.start('url'), self.config.url_context_radius)
                endpoint = self.classifier.classify(candidate, context, location)

                if endpoint.key() in seen:
                    continue
                seen.add(endpoint.key())
                endpoints.append(endpoint)

        return endpoints

    def extract_ui(self, text: str, location: str) -> List[UiComponent]:
        components = []

        for rule in patterns.UI_ELEMENT_RULES:
            for match in rule.finditer(text):
                context = extract_context(text, match.start(), self.config.ui_context_radius)
                listeners = sorted({r.name for r in all_matches(patterns.LISTENER_RULES, context)})
                if not listeners:
                    continue

                attrs = match.group('attrs') or ''
                id_match = patterns.UI_ID_PATTERN.search(attrs)
                text_match = patterns.UI_TEXT_PATTERN.search(attrs)

                label = text_match.group('value') if text_match else None
                if label is None and rule.effect == UiKind.BUTTON:
                    inner = patterns.UI_INNER_TEXT_PATTERN.search(text[match.end():match.end() + 120])
                    if inner:
                        label = inner.group('value')

                components.append(UiComponent(
                    kind=rule.effect,
                    source_location=location,
                    id=id_match.group('value') if id_match else None,
                    text=label,
                    listeners=listeners,
                ))

        return components
