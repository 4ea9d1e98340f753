"""
JSON export functionality.
Writes the full analysis record plus per-section files for one target.
"""

import json
import os
import re
from datetime import datetime
from typing import Dict

from surfacehunter.core.logger import logger
from surfacehunter.models import AnalysisResult


class JSONExporter:

    def __init__(self, output_dir: str = "surface_output"):
        self.output_dir = output_dir

    def export(self, result: AnalysisResult) -> str:
        target_dir = self._create_target_dir(result.target)

        report = {
            'meta': {
                'target': result.target,
                'scan_id': result.scan_id,
                'source_type': result.source_type,
                'analyzed_at': result.analyzed_at,
                'tool': 'SurfaceHunter',
                'version': '1.0.0'
            },
            'result': result.to_dict(),
        }

        report_path = os.path.join(target_dir, 'full_report.json')
        with open(report_path, 'w', encoding='utf-8') as f:
            json.dump(report, f, indent=2)

        self._export_individual_sections(target_dir, result)

        logger.info(f"Report exported to {target_dir}")

        return target_dir

    def _create_target_dir(self, target: str) -> str:
        safe_target = re.sub(r'[^A-Za-z0-9._-]+', '_', target).strip('_') or 'target'
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        target_dir = os.path.join(self.output_dir, f"{safe_target}_{timestamp}")
        os.makedirs(target_dir, exist_ok=True)
        return target_dir

    def _export_individual_sections(self, target_dir: str, result: AnalysisResult):
        data = result.to_dict()

        sections: Dict[str, object] = {
            'endpoints.json': {
                'total': result.total_endpoints,
                'persistence_ops': data['persistence_ops'],
                'endpoints': data['endpoints'],
            },
            'findings.json': {
                'security_summary': data['security_summary'],
                'findings': data['security_findings'],
                'permissions': data['permissions'],
            },
            'summary.json': {
                'target': result.target,
                'scan_id': result.scan_id,
                'source_type': result.source_type,
                'files_scanned': result.files_scanned,
                'files_skipped': result.files_skipped,
                'endpoint_summary': data['endpoint_summary'],
                'security_summary': data['security_summary'],
                'libraries': data['libraries'],
                'scripts': data.get('scripts'),
            },
        }

        for filename, content in sections.items():
            with open(os.path.join(target_dir, filename), 'w', encoding='utf-8') as f:
                json.dump(content, f, indent=2)
