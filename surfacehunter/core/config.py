"""
Configuration for archive analysis and web application scans.
"""

from dataclasses import dataclass, field
from typing import List


DEFAULT_DOC_PATHS = [
    "/swagger.json",
    "/swagger-ui.html",
    "/api-docs",
    "/api-docs.json",
    "/openapi.json",
    "/openapi.yaml",
    "/docs/api",
    "/api/swagger",
]


@dataclass
class ArchiveConfig:
    url_context_radius: int = 1500
    ui_context_radius: int = 500
    max_member_size: int = 50 * 1024 * 1024
    max_workers: int = 4
    manifest_name: str = "AndroidManifest.xml"


@dataclass
class FetchConfig:
    timeout: float = 30.0
    max_html_size: int = 10 * 1024 * 1024
    max_script_size: int = 5 * 1024 * 1024
    max_scripts: int = 50
    max_concurrent: int = 5
    user_agent: str = "Mozilla/5.0 (compatible; SurfaceHunter/1.0)"


@dataclass
class DocProbeConfig:
    enabled: bool = True
    paths: List[str] = field(default_factory=lambda: list(DEFAULT_DOC_PATHS))


@dataclass
class Config:
    output_dir: str = "surface_output"
    max_findings: int = 50
    max_scripts_in_summary: int = 20
    max_database_statements: int = 100
    archive: ArchiveConfig = field(default_factory=ArchiveConfig)
    fetch: FetchConfig = field(default_factory=FetchConfig)
    doc_probe: DocProbeConfig = field(default_factory=DocProbeConfig)


def get_default_config() -> Config:
    return Config()
