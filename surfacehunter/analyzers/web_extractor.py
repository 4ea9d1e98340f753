"""
Web-code endpoint extractor.
Finds client-side call sites (fetch, axios, jQuery, XMLHttpRequest, request
helpers, ORM and Mongo-style calls) in page markup and scripts, reads the
method, headers and body shape from their option objects, and hands the
resolved URL to the classifier. SQL-bearing literals are collected as
database statements.
"""

import re
from typing import Dict, List, Optional, Tuple

from surfacehunter.analyzers import patterns
from surfacehunter.analyzers.backend_filter import is_likely_backend_path
from surfacehunter.analyzers.classifier import Classifier
from surfacehunter.analyzers.patterns import compile_rules, extract_context, first_match
from surfacehunter.core.normalizer import URLNormalizer
from surfacehunter.models import ApiEndpoint, DatabaseStatement, HttpMethod


_Q = r'["\'`]'
_URL = _Q + r'(?P<url>[^"\'`]+)' + _Q
_INNER_OBJECT = r'\{[^{}]*\}'
_NESTED_OBJECT = r'\{(?:[^{}]|' + _INNER_OBJECT + r')*\}'
# option objects may nest headers/data up to two levels deep
_OBJECT = r'\{(?:[^{}]|' + _NESTED_OBJECT + r')*\}'

# effect: (call shape, default method)
CALL_SITE_RULES = compile_rules([
    ('fetch-options', r'\bfetch\s*\(\s*' + _URL + r'\s*,\s*(?P<opts>' + _OBJECT + r')', ('options', HttpMethod.GET)),
    ('fetch', r'\bfetch\s*\(\s*' + _URL + r'\s*\)', ('plain', HttpMethod.GET)),
    ('axios-verb', r'\baxios\.(?P<verb>get|post|put|delete|patch)\s*\(\s*' + _URL + r'\s*,?\s*(?P<opts>' + _OBJECT + r')?', ('verb', HttpMethod.GET)),
    ('axios-config', r'\baxios\s*\(\s*(?P<config>' + _OBJECT + r')', ('config', HttpMethod.GET)),
    ('jquery-ajax', r'\$\.ajax\s*\(\s*(?P<config>' + _OBJECT + r')', ('config', HttpMethod.GET)),
    ('jquery-verb', r'\$\.(?P<verb>get|post)\s*\(\s*' + _URL, ('verb', HttpMethod.GET)),
    ('xhr-open', r'\.open\s*\(\s*' + _Q + r'(?P<verb>\w+)' + _Q + r'\s*,\s*' + _URL, ('verb', HttpMethod.GET)),
    ('base-url', r'(?:baseURL|apiURL|API_URL|ENDPOINT|endpoint|BASE_PATH)\s*[:=]\s*' + _URL, ('plain', None)),
    ('request-verb', r'\brequest\.(?P<verb>get|post|put|delete|patch)\s*\(\s*' + _URL, ('verb', HttpMethod.GET)),
    ('orm-verb', r'\.(?P<verb>create|insert|update|delete|save|store|upsert|merge)\s*\(\s*' + _URL, ('orm', HttpMethod.POST)),
    ('mongo-verb', r'\.(?P<verb>findOneAndUpdate|findByIdAndUpdate|updateOne|updateMany|deleteOne|deleteMany|insertOne|insertMany)\s*\(\s*' + _URL, ('orm', HttpMethod.POST)),
], re.IGNORECASE)

SQL_LITERAL_RULES = compile_rules([
    ('sql-execute', r'\bexecute\s*\(\s*' + _Q + r'(?P<sql>[^"\'`]*(?:INSERT|UPDATE|DELETE|CREATE|MERGE|UPSERT)[^"\'`]*)' + _Q),
    ('sql-query', r'\bquery\s*\(\s*' + _Q + r'(?P<sql>[^"\'`]*(?:INSERT|UPDATE|DELETE|CREATE|MERGE|UPSERT)[^"\'`]*)' + _Q),
    ('sql-assignment', r'\bsql\s*[:=]\s*' + _Q + r'(?P<sql>[^"\'`]*(?:INSERT|UPDATE|DELETE|CREATE|MERGE|UPSERT)[^"\'`]*)' + _Q),
], re.IGNORECASE)

ORM_VERB_METHODS = {
    'create': HttpMethod.POST,
    'insert': HttpMethod.POST,
    'save': HttpMethod.POST,
    'store': HttpMethod.POST,
    'update': HttpMethod.PUT,
    'upsert': HttpMethod.PUT,
    'merge': HttpMethod.PUT,
    'delete': HttpMethod.DELETE,
}

OPTION_METHOD = re.compile(r'\bmethod\s*:\s*["\'`](\w+)["\'`]', re.IGNORECASE)
OPTION_TYPE = re.compile(r'\btype\s*:\s*["\'`](\w+)["\'`]', re.IGNORECASE)
OPTION_URL = re.compile(r'\burl\s*:\s*["\'`]([^"\'`]+)["\'`]', re.IGNORECASE)
OPTION_HEADERS = re.compile(r'\bheaders\s*:\s*\{([^}]+)\}', re.IGNORECASE)
HEADER_PAIR = re.compile(r'["\'`]?([\w\-]+)["\'`]?\s*:\s*["\'`]([^"\'`]*)["\'`]')

PAYLOAD_TYPE_RULES = compile_rules([
    ('form-data', r'\bFormData\b|multipart/form-data'),
    ('urlencoded', r'\bURLSearchParams\b|x-www-form-urlencoded'),
    ('json', r'JSON\.stringify|application/json|\bdata\s*:\s*\{|\bjson\s*:'),
    ('raw', r'\bbody\s*:|\bdata\s*:'),
])

TEMPLATE_MARKERS = ('${', '#{', '+')


def method_for_verb(verb: str) -> HttpMethod:
    verb = verb.lower()
    if verb in ORM_VERB_METHODS:
        return ORM_VERB_METHODS[verb]
    if 'update' in verb:
        return HttpMethod.PUT
    if 'delete' in verb:
        return HttpMethod.DELETE
    if 'insert' in verb:
        return HttpMethod.POST
    return HttpMethod.parse(verb)


def parse_options(text: str) -> Tuple[Optional[HttpMethod], Dict[str, str], Optional[str]]:
    """Best-effort read of a fetch/axios/$.ajax option object."""
    method = None
    match = OPTION_METHOD.search(text) or OPTION_TYPE.search(text)
    if match:
        parsed = HttpMethod.parse(match.group(1))
        if parsed != HttpMethod.UNKNOWN:
            method = parsed

    headers = {}
    header_match = OPTION_HEADERS.search(text)
    if header_match:
        for name, value in HEADER_PAIR.findall(header_match.group(1)):
            headers[name] = value

    payload_rule = first_match(PAYLOAD_TYPE_RULES, text)
    return method, headers, payload_rule.name if payload_rule else None


class WebCodeExtractor:

    def __init__(self, context_radius: int = 1500):
        self.context_radius = context_radius
        self.normalizer = URLNormalizer()
        self.classifier = Classifier()

    def extract(self, code: str, base_url: str, source: str) -> Tuple[List[ApiEndpoint], List[DatabaseStatement]]:
        endpoints = []
        seen = set()

        for rule in CALL_SITE_RULES:
            for match in rule.finditer(code):
                endpoint = self._endpoint_from_match(rule, match, code, base_url, source)
                if endpoint is None or endpoint.key() in seen:
                    continue
                seen.add(endpoint.key())
                endpoints.append(endpoint)

        return endpoints, self.extract_statements(code, source)

    def extract_statements(self, code: str, source: str) -> List[DatabaseStatement]:
        statements = []
        seen = set()
        for rule in SQL_LITERAL_RULES:
            for match in rule.finditer(code):
                sql = " ".join(match.group('sql').split())
                if not sql or sql in seen:
                    continue
                seen.add(sql)
                op_rule = first_match(patterns.PERSISTENCE_RULES, sql)
                statements.append(DatabaseStatement(
                    statement=sql[:500],
                    source=source,
                    operation=op_rule.effect if op_rule else None,
                ))
        return statements

    def _endpoint_from_match(self, rule, match, code: str, base_url: str, source: str) -> Optional[ApiEndpoint]:
        shape, default_method = rule.effect
        groups = match.groupdict()

        raw_url = groups.get('url')
        method = default_method
        headers: Dict[str, str] = {}
        payload_type = None

        if shape == 'config':
            config_text = groups.get('config') or ''
            url_match = OPTION_URL.search(config_text)
            raw_url = url_match.group(1) if url_match else None
            parsed_method, headers, payload_type = parse_options(config_text)
            method = parsed_method or default_method
        elif shape == 'options':
            parsed_method, headers, payload_type = parse_options(groups.get('opts') or '')
            method = parsed_method or default_method
        elif shape in ('verb', 'orm'):
            method = method_for_verb(groups.get('verb') or '')
            if groups.get('opts'):
                _, headers, payload_type = parse_options(groups['opts'])

        url = self._resolve(raw_url, base_url)
        if url is None or not is_likely_backend_path(url):
            return None

        context = extract_context(code, match.start(), self.context_radius)
        return self.classifier.classify(
            url, context, source,
            source=source,
            method_hint=method,
            id_implies_update=True,
            headers=headers,
            payload_type=payload_type,
        )

    def _resolve(self, raw_url: Optional[str], base_url: str) -> Optional[str]:
        if not raw_url:
            return None
        if raw_url.startswith('$') or any(marker in raw_url for marker in TEMPLATE_MARKERS):
            return None
        candidate = self.normalizer.clean_candidate(raw_url)
        if not candidate:
            return None
        return self.normalizer.resolve(candidate, base_url)
