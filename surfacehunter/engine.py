"""
Main surface analysis engine.
Front door for both entry points: archive analysis and web application scans,
plus JSON / HTML export of the resulting AnalysisResult.
"""

from typing import Optional

from surfacehunter.core.config import Config, get_default_config
from surfacehunter.core.logger import logger, set_silent
from surfacehunter.models import AnalysisResult
from surfacehunter.output.html_report import HTMLReportGenerator
from surfacehunter.output.json_exporter import JSONExporter
from surfacehunter.pipelines.archive_analysis import ArchiveAnalysisRunner
from surfacehunter.pipelines.webapp_scan import WebAppScanRunner


class SurfaceEngine:

    def __init__(self, config: Config = None, silent_mode: bool = False):
        self.config = config or get_default_config()
        self.silent_mode = silent_mode

        if silent_mode:
            set_silent(True)

    def analyze_archive(self, path: str) -> AnalysisResult:
        runner = ArchiveAnalysisRunner(self.config, silent_mode=self.silent_mode)
        return runner.run(path)

    def scan_web_app(self, url: str) -> AnalysisResult:
        runner = WebAppScanRunner(self.config, silent_mode=self.silent_mode)
        return runner.run(url)

    def export_json(self, result: AnalysisResult, output_dir: str = None) -> str:
        exporter = JSONExporter(output_dir or self.config.output_dir)
        return exporter.export(result)

    def export_html(self, result: AnalysisResult, output_dir: str = None) -> str:
        generator = HTMLReportGenerator()
        report_path = generator.generate(result, output_dir or self.config.output_dir)
        if not self.silent_mode:
            logger.info(f"HTML report written to {report_path}")
        return report_path


def analyze_archive(path: str, config: Optional[Config] = None) -> AnalysisResult:
    return ArchiveAnalysisRunner(config).run(path)


def scan_web_app(url: str, config: Optional[Config] = None) -> AnalysisResult:
    return WebAppScanRunner(config).run(url)
