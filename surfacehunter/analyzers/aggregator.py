"""
Result aggregation.
Collects per-buffer output for one analysis pass, deduplicates endpoints and
UI components, then builds the sorted AnalysisResult with its summaries.
"""

import threading
from typing import Dict, Iterable, List, Optional, Tuple

from surfacehunter.analyzers.patterns import SENSITIVE_PERMISSIONS
from surfacehunter.core.config import Config
from surfacehunter.core.normalizer import URLNormalizer
from surfacehunter.models import (
    AnalysisResult, ApiEndpoint, CONFIDENCE_RANK, ConfidenceLevel,
    DatabaseStatement, HttpMethod, PersistenceOp, SecurityFinding,
    SEVERITY_RANK, Severity, UiComponent, UiKind,
)


class Aggregator:

    def __init__(self, config: Optional[Config] = None):
        self.config = config or Config()
        self._lock = threading.Lock()

        self._endpoints: Dict[Tuple[str, str], ApiEndpoint] = {}
        self._ui: Dict[Tuple[str, str, str], UiComponent] = {}
        self._findings: List[SecurityFinding] = []
        self._permissions: Dict[str, None] = {}
        self._libraries: Dict[str, None] = {}
        self._statements: Dict[str, DatabaseStatement] = {}

        self.hardcoded_keys = 0
        self.weak_algorithms = 0
        self.ssl_issues = 0
        self.files_scanned = 0
        self.files_skipped = 0

    def add_endpoint(self, endpoint: ApiEndpoint) -> bool:
        key = endpoint.key()
        with self._lock:
            if key in self._endpoints:
                return False
            self._endpoints[key] = endpoint
            return True

    def add_endpoints(self, endpoints: Iterable[ApiEndpoint]):
        for endpoint in endpoints:
            self.add_endpoint(endpoint)

    def add_ui(self, component: UiComponent):
        key = component.key()
        with self._lock:
            existing = self._ui.get(key)
            if existing is None:
                self._ui[key] = UiComponent(
                    kind=component.kind,
                    source_location=component.source_location,
                    id=component.id,
                    text=component.text,
                    listeners=sorted(set(component.listeners)),
                )
                return
            existing.listeners = sorted(set(existing.listeners) | set(component.listeners))
            if existing.text is None:
                existing.text = component.text

    def add_findings(self, findings: Iterable[SecurityFinding]):
        with self._lock:
            self._findings.extend(findings)

    def add_permissions(self, names: Iterable[str]):
        with self._lock:
            for name in names:
                self._permissions.setdefault(name, None)

    def add_libraries(self, names: Iterable[str]):
        with self._lock:
            for name in names:
                self._libraries.setdefault(name, None)

    def add_statement(self, statement: DatabaseStatement):
        with self._lock:
            self._statements.setdefault(statement.statement, statement)

    def add_counters(self, hardcoded_keys: int = 0, weak_algorithms: int = 0, ssl_issues: int = 0):
        with self._lock:
            self.hardcoded_keys += hardcoded_keys
            self.weak_algorithms += weak_algorithms
            self.ssl_issues += ssl_issues

    def add_file_scan(self, scan):
        """Merge one FileScan from the surface analyzer."""
        self.add_endpoints(scan.endpoints)
        for component in scan.ui_components:
            self.add_ui(component)
        self.add_findings(scan.findings)
        self.add_libraries(scan.libraries)
        self.add_counters(scan.hardcoded_keys, scan.weak_algorithms, scan.ssl_issues)
        self.mark_scanned()

    def mark_scanned(self):
        with self._lock:
            self.files_scanned += 1

    def mark_skipped(self):
        with self._lock:
            self.files_skipped += 1

    def build(self, target: str, scan_id: str, source_type: str,
              scripts: Optional[List[str]] = None) -> AnalysisResult:
        endpoints = sorted(
            self._endpoints.values(),
            key=lambda e: (CONFIDENCE_RANK[e.confidence], e.method.value, e.url)
        )
        findings = sorted(self._findings, key=lambda f: SEVERITY_RANK[f.severity])
        findings = findings[:self.config.max_findings]
        ui_components = sorted(
            self._ui.values(),
            key=lambda u: (u.source_location, u.kind.value, u.id or "")
        )
        permissions = sorted(self._permissions)
        libraries = sorted(self._libraries)

        persistence_ops = {op.value: 0 for op in PersistenceOp}
        for endpoint in endpoints:
            if endpoint.persistence_op:
                persistence_ops[endpoint.persistence_op.value] += 1

        result = AnalysisResult(
            target=target,
            scan_id=scan_id,
            source_type=source_type,
            endpoints=endpoints,
            ui_components=ui_components,
            security_findings=findings,
            permissions=permissions,
            libraries=libraries,
            persistence_ops=persistence_ops,
            endpoint_summary=self._endpoint_summary(endpoints, ui_components),
            security_summary=self._security_summary(permissions),
            files_scanned=self.files_scanned,
            files_skipped=self.files_skipped,
            scripts=scripts,
        )
        if scripts is not None:
            result.database_statements = list(self._statements.values())[:self.config.max_database_statements]
        return result

    def _endpoint_summary(self, endpoints: List[ApiEndpoint], ui_components: List[UiComponent]) -> Dict:
        normalizer = URLNormalizer()
        domains = {normalizer.domain_of(e.url) for e in endpoints}
        domains.discard(None)

        def tagged(*tags):
            return sum(1 for e in endpoints if any(t in e.logic_types for t in tags))

        return {
            "total_endpoints": len(endpoints),
            "total_urls": len({e.url.lower() for e in endpoints}),
            "unique_domains": len(domains),
            "auth_endpoints": tagged("auth"),
            "upload_endpoints": tagged("upload"),
            "admin_endpoints": tagged("admin"),
            "database_endpoints": sum(1 for e in endpoints if e.persistence_op is not None),
            "security_endpoints": tagged("security"),
            "workflow_endpoints": tagged("workflow"),
            "buttons": sum(1 for u in ui_components if u.kind == UiKind.BUTTON),
            "text_fields": sum(1 for u in ui_components if u.kind == UiKind.TEXT_FIELD),
            "click_handlers": sum(1 for u in ui_components if "click" in u.listeners),
            "by_method": {m.value: sum(1 for e in endpoints if e.method == m) for m in HttpMethod},
            "by_confidence": {c.value: sum(1 for e in endpoints if e.confidence == c) for c in ConfidenceLevel},
        }

    def _security_summary(self, permissions: List[str]) -> Dict:
        return {
            "total_findings": len(self._findings),
            "hardcoded_keys": self.hardcoded_keys,
            "weak_algorithms": self.weak_algorithms,
            "ssl_issues": self.ssl_issues,
            "sensitive_permissions": sum(1 for p in permissions if p in SENSITIVE_PERMISSIONS),
            "by_severity": {s.value: sum(1 for f in self._findings if f.severity == s) for s in Severity},
        }
