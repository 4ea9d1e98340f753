"""
Data models for surface analysis.
Endpoints, UI components and security findings are produced during a single
pass and gathered into one AnalysisResult.
"""

from dataclasses import dataclass, field
from typing import List, Dict, Optional, Any, Tuple
from enum import Enum
from datetime import datetime
import uuid


class HttpMethod(Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: Optional[str]) -> "HttpMethod":
        if not value:
            return cls.UNKNOWN
        try:
            return cls(value.strip().upper())
        except ValueError:
            return cls.UNKNOWN


class PersistenceOp(Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    UPSERT = "UPSERT"
    BULK = "BULK"
    READ = "READ"


class ConfidenceLevel(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Severity(Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class UiKind(Enum):
    BUTTON = "button"
    TEXT_FIELD = "textField"
    IMAGE = "image"


CONFIDENCE_RANK = {
    ConfidenceLevel.HIGH: 0,
    ConfidenceLevel.MEDIUM: 1,
    ConfidenceLevel.LOW: 2,
}

SEVERITY_RANK = {
    Severity.CRITICAL: 0,
    Severity.HIGH: 1,
    Severity.MEDIUM: 2,
    Severity.LOW: 3,
}


def generate_scan_id() -> str:
    return f"{datetime.now().strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:8]}"


@dataclass
class ApiEndpoint:
    url: str
    method: HttpMethod
    source_location: str
    confidence: ConfidenceLevel
    persistence_op: Optional[PersistenceOp] = None
    has_payload: bool = False
    payload_indicators: List[str] = field(default_factory=list)
    ui_element: Optional[str] = None
    ui_text: Optional[str] = None
    ui_event_type: Optional[str] = None
    logic_types: List[str] = field(default_factory=list)
    source: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)
    payload_type: Optional[str] = None

    def key(self) -> Tuple[str, str]:
        return self.url.lower(), self.method.value

    def to_dict(self) -> dict:
        data = {
            "url": self.url,
            "method": self.method.value,
            "source_location": self.source_location,
            "persistence_op": self.persistence_op.value if self.persistence_op else None,
            "has_payload": self.has_payload,
            "payload_indicators": list(self.payload_indicators),
            "confidence": self.confidence.value,
            "ui_element": self.ui_element,
            "ui_text": self.ui_text,
            "ui_event_type": self.ui_event_type,
            "logic_types": list(self.logic_types),
        }
        if self.source is not None:
            data["source"] = self.source
        if self.headers:
            data["headers"] = dict(self.headers)
        if self.payload_type is not None:
            data["payload_type"] = self.payload_type
        return data


@dataclass
class UiComponent:
    kind: UiKind
    source_location: str
    id: Optional[str] = None
    text: Optional[str] = None
    listeners: List[str] = field(default_factory=list)

    def key(self) -> Tuple[str, str, str]:
        return self.kind.value, self.id or "unknown", self.source_location

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "id": self.id,
            "text": self.text,
            "listeners": list(self.listeners),
            "source_location": self.source_location,
        }


@dataclass
class SecurityFinding:
    kind: str
    severity: Severity
    description: str
    source_location: str
    evidence: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "severity": self.severity.value,
            "description": self.description,
            "source_location": self.source_location,
            "evidence": self.evidence,
        }


@dataclass
class DatabaseStatement:
    statement: str
    source: str
    operation: Optional[PersistenceOp] = None

    def to_dict(self) -> dict:
        return {
            "statement": self.statement,
            "operation": self.operation.value if self.operation else None,
            "source": self.source,
        }


@dataclass
class AnalysisResult:
    target: str
    scan_id: str
    source_type: str
    analyzed_at: str = field(default_factory=lambda: datetime.now().isoformat())
    endpoints: List[ApiEndpoint] = field(default_factory=list)
    ui_components: List[UiComponent] = field(default_factory=list)
    security_findings: List[SecurityFinding] = field(default_factory=list)
    permissions: List[str] = field(default_factory=list)
    libraries: List[str] = field(default_factory=list)
    persistence_ops: Dict[str, int] = field(default_factory=dict)
    endpoint_summary: Dict[str, Any] = field(default_factory=dict)
    security_summary: Dict[str, Any] = field(default_factory=dict)
    files_scanned: int = 0
    files_skipped: int = 0
    scripts: Optional[List[str]] = None
    database_statements: List[DatabaseStatement] = field(default_factory=list)

    @property
    def total_endpoints(self) -> int:
        return len(self.endpoints)

    def to_dict(self) -> dict:
        data = {
            "target": self.target,
            "scan_id": self.scan_id,
            "source_type": self.source_type,
            "analyzed_at": self.analyzed_at,
            "total_endpoints": self.total_endpoints,
            "total_ui_components": len(self.ui_components),
            "files_scanned": self.files_scanned,
            "files_skipped": self.files_skipped,
            "persistence_ops": dict(self.persistence_ops),
            "endpoint_summary": dict(self.endpoint_summary),
            "security_summary": dict(self.security_summary),
            "permissions": list(self.permissions),
            "libraries": list(self.libraries),
            "endpoints": [e.to_dict() for e in self.endpoints],
            "ui_components": [u.to_dict() for u in self.ui_components],
            "security_findings": [f.to_dict() for f in self.security_findings],
        }
        if self.scripts is not None:
            data["scripts"] = list(self.scripts)
            data["database_statements"] = [s.to_dict() for s in self.database_statements]
        return data
