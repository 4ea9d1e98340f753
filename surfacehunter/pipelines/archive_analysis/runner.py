"""
Archive analysis runner.
Extracts an application archive, scans every allow-listed member and
aggregates endpoints, UI components, permissions, libraries and security
findings into one AnalysisResult.
"""

import os
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Tuple

from surfacehunter.analyzers.aggregator import Aggregator
from surfacehunter.analyzers.security_scanner import SecurityScanner
from surfacehunter.analyzers.surface_analyzer import FileScan, SurfaceAnalyzer
from surfacehunter.collectors.archive_walker import ArchiveWalker
from surfacehunter.core.config import Config, get_default_config
from surfacehunter.core.errors import AnalysisFailure, DecodeError, ScanError
from surfacehunter.core.logger import logger
from surfacehunter.models import AnalysisResult, generate_scan_id


class ArchiveAnalysisRunner:

    def __init__(self, config: Optional[Config] = None, silent_mode: bool = True):
        self.config = config or get_default_config()
        self.silent_mode = silent_mode
        self.walker = ArchiveWalker(self.config.archive)
        self.analyzer = SurfaceAnalyzer(self.config.archive)
        self.scanner = SecurityScanner()

    def run(self, path: str) -> AnalysisResult:
        scan_id = generate_scan_id()
        target = os.path.basename(path)

        if not self.silent_mode:
            logger.info(f"Starting archive analysis for: {target}")
            logger.info(f"Scan ID: {scan_id}")

        try:
            with self.walker.extracted(path) as root:
                aggregator = Aggregator(self.config)
                self._scan_members(root, aggregator)
                result = aggregator.build(target, scan_id, "archive")
        except ScanError:
            raise
        except Exception as e:
            logger.error(f"Archive analysis failed: {e}")
            raise AnalysisFailure("Failed to analyze archive") from e

        if not self.silent_mode:
            logger.info(f"Files scanned: {result.files_scanned}, skipped: {result.files_skipped}")
            logger.info(f"Endpoints: {result.total_endpoints}, findings: {len(result.security_findings)}")

        return result

    def _scan_members(self, root: str, aggregator: Aggregator):
        members = list(self.walker.iter_members(root))

        if not self.silent_mode:
            logger.info(f"Scanning {len(members)} archive members...")

        manifest_name = self.config.archive.manifest_name
        workers = max(1, self.config.archive.max_workers)

        with ThreadPoolExecutor(max_workers=workers) as executor:
            # map() yields in member order, so merging stays deterministic
            for rel_path, scan in executor.map(self._scan_member, members):
                if scan is None:
                    aggregator.mark_skipped()
                    continue
                aggregator.add_file_scan(scan)

        for rel_path, full_path in members:
            if rel_path == manifest_name:
                self._scan_manifest(rel_path, full_path, aggregator)
                break

    def _scan_member(self, member: Tuple[str, str]) -> Tuple[str, Optional[FileScan]]:
        rel_path, full_path = member
        try:
            text = self.walker.read_member(full_path, rel_path)
        except DecodeError as e:
            logger.debug(f"Skipping {rel_path}: {e.reason}")
            return rel_path, None
        except OSError as e:
            logger.debug(f"Skipping {rel_path}: {e}")
            return rel_path, None

        return rel_path, self.analyzer.analyze_buffer(text, rel_path)

    def _scan_manifest(self, rel_path: str, full_path: str, aggregator: Aggregator):
        try:
            text = self.walker.read_member(full_path, rel_path)
            binary = False
        except DecodeError:
            text = self.walker.read_binary_manifest(full_path)
            binary = True

        permissions, findings = self.scanner.scan_manifest(text, rel_path, binary=binary)
        aggregator.add_permissions(permissions)
        aggregator.add_findings(findings)

        if not self.silent_mode:
            logger.info(f"Manifest declares {len(permissions)} permissions")
