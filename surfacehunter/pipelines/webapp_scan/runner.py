"""
Web application scan runner.
Fetches a page through the SSRF-safe fetcher, collects its inline and
external scripts and forms, probes documentation paths, and classifies every
call site found into one AnalysisResult.
"""

import asyncio
from typing import List, Optional, Tuple

from surfacehunter.analyzers.aggregator import Aggregator
from surfacehunter.analyzers.patterns import LIBRARY_RULES, all_matches
from surfacehunter.analyzers.security_scanner import SecurityScanner
from surfacehunter.analyzers.web_extractor import WebCodeExtractor
from surfacehunter.collectors.safe_fetcher import AddressPolicy, SafeFetcher
from surfacehunter.collectors.web_collector import DocProbe, WebPageCollector
from surfacehunter.core.config import Config, get_default_config
from surfacehunter.core.errors import AnalysisFailure, FetchError, PolicyViolation, ScanError
from surfacehunter.core.logger import logger
from surfacehunter.core.normalizer import normalize_input
from surfacehunter.models import AnalysisResult, generate_scan_id


class WebAppScanRunner:

    def __init__(self, config: Optional[Config] = None, silent_mode: bool = True,
                 policy: Optional[AddressPolicy] = None):
        self.config = config or get_default_config()
        self.silent_mode = silent_mode
        self.policy = policy
        self.collector = WebPageCollector()
        self.extractor = WebCodeExtractor(self.config.archive.url_context_radius)
        self.scanner = SecurityScanner()

    def run(self, url: str) -> AnalysisResult:
        return asyncio.run(self.run_async(url))

    async def run_async(self, url: str) -> AnalysisResult:
        url = normalize_input(url)
        scan_id = generate_scan_id()

        if not self.silent_mode:
            logger.info(f"Starting web application scan for: {url}")
            logger.info(f"Scan ID: {scan_id}")

        try:
            async with SafeFetcher(self.config.fetch, self.policy) as fetcher:
                return await self._scan(fetcher, url, scan_id)
        except ScanError:
            raise
        except Exception as e:
            logger.error(f"Web application scan failed: {e}")
            raise AnalysisFailure("Failed to scan web application") from e

    async def _scan(self, fetcher: SafeFetcher, url: str, scan_id: str) -> AnalysisResult:
        page = await fetcher.fetch(url, self.config.fetch.max_html_size)
        if not page.ok:
            raise FetchError(url, f"HTTP {page.status}", status=page.status)

        aggregator = Aggregator(self.config)
        html = page.text

        inventory = self.collector.collect(html, url)
        # inline scripts get their own security pass below
        self._analyze_code(aggregator, html, url, "html", security_text=self.collector.markup_only(html))

        for code in inventory.inline_scripts:
            self._analyze_code(aggregator, code, url, "inline-script")

        aggregator.add_endpoints(self.collector.form_endpoints(inventory, self.extractor.classifier))

        doc_probe = DocProbe(fetcher, self.config.fetch, self.config.doc_probe, self.silent_mode)
        aggregator.add_endpoints(await doc_probe.probe(url))

        script_urls = inventory.script_urls[:self.config.fetch.max_scripts]
        if not self.silent_mode:
            logger.info(f"Fetching {len(script_urls)} scripts...")

        for script_url, code in await self._fetch_scripts(fetcher, script_urls):
            if code is None:
                aggregator.mark_skipped()
                continue
            self._analyze_code(aggregator, code, script_url, script_url)

        # the inline marker counts towards the summary cap
        limit = self.config.max_scripts_in_summary
        if inventory.inline_scripts:
            scripts = inventory.script_urls[:limit - 1] + ["inline-script"]
        else:
            scripts = inventory.script_urls[:limit]

        result = aggregator.build(url, scan_id, "webapp", scripts=scripts)

        if not self.silent_mode:
            logger.info(f"Endpoints: {result.total_endpoints}, findings: {len(result.security_findings)}")

        return result

    async def _fetch_scripts(self, fetcher: SafeFetcher, script_urls: List[str]) -> List[Tuple[str, Optional[str]]]:
        semaphore = asyncio.Semaphore(max(1, self.config.fetch.max_concurrent))

        async def bounded_fetch(script_url: str) -> Tuple[str, Optional[str]]:
            async with semaphore:
                try:
                    response = await fetcher.fetch(script_url, self.config.fetch.max_script_size)
                except (PolicyViolation, FetchError) as e:
                    logger.warning(f"Script skipped {script_url}: {e}")
                    return script_url, None
                if not response.ok:
                    logger.warning(f"Script skipped {script_url}: HTTP {response.status}")
                    return script_url, None
                return script_url, response.text

        return await asyncio.gather(*(bounded_fetch(u) for u in script_urls))

    def _analyze_code(self, aggregator: Aggregator, code: str, base_url: str, source: str,
                      security_text: Optional[str] = None):
        endpoints, statements = self.extractor.extract(code, base_url, source)
        aggregator.add_endpoints(endpoints)
        for statement in statements:
            aggregator.add_statement(statement)

        security = self.scanner.scan(code if security_text is None else security_text, source)
        aggregator.add_findings(security.findings)
        aggregator.add_counters(security.hardcoded_keys, security.weak_algorithms, security.ssl_issues)
        aggregator.add_libraries(rule.name for rule in all_matches(LIBRARY_RULES, code))
        aggregator.mark_scanned()
