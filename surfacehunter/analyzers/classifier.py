"""
Endpoint classifier.
Turns a candidate URL plus the text surrounding it into an ApiEndpoint:
HTTP method, implied persistence operation, payload indicators, confidence
tier and any UI element wired to the call.
"""

from typing import Dict, List, Optional, Tuple
from urllib.parse import urlparse

from surfacehunter.analyzers import patterns
from surfacehunter.analyzers.patterns import first_match, all_matches
from surfacehunter.models import (
    ApiEndpoint, ConfidenceLevel, HttpMethod, PersistenceOp,
)


def determine_method(context: str, url: str) -> HttpMethod:
    rule = first_match(patterns.METHOD_RULES, context)
    if rule:
        return rule.effect

    rule = first_match(patterns.METHOD_PATH_RULES, url)
    if rule:
        return rule.effect

    if first_match(patterns.BODY_MARKER_RULES, context):
        return HttpMethod.POST

    return HttpMethod.UNKNOWN


def _path_part(url: str) -> str:
    if '://' in url:
        try:
            return urlparse(url).path
        except ValueError:
            return url
    return url


def get_persistence_op(method: HttpMethod, url: str, context: str,
                       id_implies_update: bool = False) -> Optional[PersistenceOp]:
    if id_implies_update and method == HttpMethod.POST and patterns.ID_SEGMENT.search(_path_part(url)):
        return PersistenceOp.UPDATE

    rule = first_match(patterns.PERSISTENCE_RULES, url.lower() + ' ' + context)
    if rule:
        return rule.effect

    if method == HttpMethod.UNKNOWN:
        if patterns.COLLECTION_RESOURCE.search(_path_part(url)):
            return PersistenceOp.READ
        return None

    return patterns.METHOD_DEFAULT_OPS.get(method)


def score_payload(context: str) -> Tuple[bool, List[str]]:
    indicators = sorted(rule.name for rule in all_matches(patterns.PAYLOAD_RULES, context))
    return bool(indicators), indicators


def compute_confidence(method: HttpMethod, op: Optional[PersistenceOp],
                       indicators: List[str]) -> ConfidenceLevel:
    if (method != HttpMethod.UNKNOWN and op is not None) or len(indicators) >= 3:
        return ConfidenceLevel.HIGH
    if method == HttpMethod.UNKNOWN and op is None and not indicators:
        return ConfidenceLevel.LOW
    return ConfidenceLevel.MEDIUM


def extract_ui_info(context: str) -> Tuple[Optional[str], Optional[str], Optional[str]]:
    """Return (ui_element, ui_text, ui_event_type) for the text around a call."""
    element = None
    text = None

    if patterns.BUTTON_CUE.search(context):
        element = "Button"
        match = patterns.BUTTON_TEXT_PATTERN.search(context)
        if match:
            candidate = match.group('text').strip()
            if candidate and '://' not in candidate:
                text = candidate
    elif patterns.INPUT_CUE.search(context):
        element = "Input Field"

    event = first_match(patterns.UI_EVENT_RULES, context)
    return element, text, event.effect if event else None


def analyze_server_logic(url: str) -> List[str]:
    return [rule.name for rule in all_matches(patterns.SERVER_LOGIC_RULES, _path_part(url))]


class Classifier:

    def classify(self, url: str, context: str, location: str,
                 source: Optional[str] = None,
                 method_hint: Optional[HttpMethod] = None,
                 id_implies_update: bool = False,
                 headers: Optional[Dict[str, str]] = None,
                 payload_type: Optional[str] = None) -> ApiEndpoint:
        if method_hint is not None and method_hint != HttpMethod.UNKNOWN:
            method = method_hint
        else:
            method = determine_method(context, url)

        op = get_persistence_op(method, url, context, id_implies_update=id_implies_update)
        has_payload, indicators = score_payload(context)
        ui_element, ui_text, ui_event = extract_ui_info(context)

        return ApiEndpoint(
            url=url,
            method=method,
            source_location=location,
            confidence=compute_confidence(method, op, indicators),
            persistence_op=op,
            has_payload=has_payload,
            payload_indicators=indicators,
            ui_element=ui_element,
            ui_text=ui_text,
            ui_event_type=ui_event,
            logic_types=analyze_server_logic(url),
            source=source,
            headers=dict(headers or {}),
            payload_type=payload_type,
        )
