"""Tests for JSON export, HTML report rendering and the engine facade."""

from __future__ import annotations

import json
import os

from surfacehunter import SurfaceEngine, analyze_archive
from surfacehunter.models import (
    AnalysisResult, ApiEndpoint, ConfidenceLevel, DatabaseStatement, HttpMethod,
    PersistenceOp, SecurityFinding, Severity,
)
from surfacehunter.output.html_report import HTMLReportGenerator
from surfacehunter.output.json_exporter import JSONExporter


def _result(scripts=None):
    result = AnalysisResult(
        target="https://shop.example.com/",
        scan_id="20240101_000000_abcdef12",
        source_type="webapp" if scripts is not None else "archive",
        endpoints=[ApiEndpoint(
            url="https://shop.example.com/api/orders?<x>",
            method=HttpMethod.POST,
            source_location="app.js",
            confidence=ConfidenceLevel.HIGH,
            persistence_op=PersistenceOp.INSERT,
        )],
        security_findings=[SecurityFinding(
            kind="hardcoded_password",
            severity=Severity.HIGH,
            description="Hardcoded password",
            source_location="app.js",
            evidence='password = "<script>alert(1)</script>"',
        )],
        persistence_ops={op.value: 0 for op in PersistenceOp},
        scripts=scripts,
    )
    if scripts is not None:
        result.database_statements = [DatabaseStatement("DELETE FROM t", "app.js", PersistenceOp.DELETE)]
    return result


def test_json_export_writes_report_and_sections(tmp_path):
    target_dir = JSONExporter(str(tmp_path)).export(_result(scripts=["inline-script"]))

    assert os.path.basename(target_dir).startswith("https_shop.example.com_")
    files = set(os.listdir(target_dir))
    assert files == {"full_report.json", "endpoints.json", "findings.json", "summary.json"}

    with open(os.path.join(target_dir, "full_report.json"), encoding="utf-8") as f:
        report = json.load(f)
    assert report["meta"]["scan_id"] == "20240101_000000_abcdef12"
    assert report["result"]["endpoints"][0]["method"] == "POST"
    assert report["result"]["database_statements"][0]["operation"] == "DELETE"

    with open(os.path.join(target_dir, "endpoints.json"), encoding="utf-8") as f:
        assert json.load(f)["total"] == 1


def test_html_report_escapes_content(tmp_path):
    path = HTMLReportGenerator().generate(_result(), str(tmp_path))

    assert path.endswith("report.html")
    with open(path, encoding="utf-8") as f:
        html = f.read()
    assert "SurfaceHunter Report" in html
    assert "<script>alert(1)</script>" not in html
    assert "&lt;script&gt;" in html
    assert "Database statements" not in html


def test_html_report_includes_web_sections():
    html = HTMLReportGenerator().render(_result(scripts=["inline-script"]))

    assert "inline-script" in html
    assert "DELETE FROM t" in html


def test_engine_round_trip(make_zip, tmp_path, config):
    path = make_zip({"assets/app.js": 'fetch("/api/users/create", {method: "POST"})'})
    config.output_dir = str(tmp_path / "out")

    engine = SurfaceEngine(config, silent_mode=True)
    result = engine.analyze_archive(path)
    assert "/api/users/create" in [e.url for e in result.endpoints]

    json_dir = engine.export_json(result)
    html_path = engine.export_html(result)
    assert os.path.isfile(os.path.join(json_dir, "full_report.json"))
    assert os.path.isfile(html_path)


def test_module_level_entry_point(make_zip):
    path = make_zip({"assets/app.js": 'const endpoint = "/api/v1/items";'})
    result = analyze_archive(path)

    assert result.source_type == "archive"
    assert result.total_endpoints == 1
