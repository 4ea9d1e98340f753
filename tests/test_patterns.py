"""Tests for the rule corpus, matchers and candidate cleaning."""

from __future__ import annotations

import pytest

from surfacehunter.analyzers import patterns
from surfacehunter.analyzers.patterns import all_matches, extract_context, first_match
from surfacehunter.analyzers.surface_analyzer import SurfaceAnalyzer
from surfacehunter.core.errors import InputError
from surfacehunter.core.normalizer import URLNormalizer, normalize_input
from surfacehunter.models import PersistenceOp


def test_first_match_respects_list_order():
    rule = first_match(patterns.PERSISTENCE_RULES, "/bulk/delete")
    # DELETE rules precede BULK rules
    assert rule.effect == PersistenceOp.DELETE


def test_all_matches_returns_every_hit():
    names = [r.name for r in all_matches(patterns.LIBRARY_RULES, "retrofit2.Retrofit; com.google.gson.Gson")]
    assert names == ["Retrofit", "Gson"]


def test_extract_context_clamps_to_buffer():
    buffer = "0123456789"
    assert extract_context(buffer, 5, 2) == "3456"
    assert extract_context(buffer, 1, 5) == "012345"
    assert extract_context(buffer, 9, 100) == buffer


@pytest.mark.parametrize("raw, expected", [
    ('"/api/users"', "/api/users"),
    ("/api/items);", "/api/items"),
    ("(/api/items", "/api/items"),
    ("\\u002fapi\\u002fusers", "/api/users"),
    ("javascript:void(0)", None),
    ("data:image/png;base64,AAAA", None),
    ("#top", None),
    ("/a", None),
    ("/api/../secret", None),
    ("", None),
])
def test_clean_candidate(raw, expected):
    assert URLNormalizer().clean_candidate(raw) == expected


def test_resolve_relative_against_page():
    normalizer = URLNormalizer()
    assert normalizer.resolve("/api/x", "https://example.com/app/page") == "https://example.com/api/x"
    assert normalizer.resolve("api/x", "https://example.com/app/page") == "https://example.com/app/api/x"
    assert normalizer.resolve("//cdn.example.com/y", "https://example.com/") == "https://cdn.example.com/y"


def test_normalize_input_rejects_malformed():
    assert normalize_input(" https://example.com ") == "https://example.com"
    with pytest.raises(InputError):
        normalize_input("example.com")
    with pytest.raises(InputError):
        normalize_input("")


def test_url_shapes_found_in_buffer():
    text = """
    @GET("v2/orders/{id}")
    val base = "https://api.example.com/v1/profile"
    $.ajax("/rest/cart")
    endpoint = "/graphql"
    """
    urls = {e.url for e in SurfaceAnalyzer().extract_endpoints(text, "classes.dex")}

    assert "https://api.example.com/v1/profile" in urls
    assert "/rest/cart" in urls
    assert "/graphql" in urls


def test_ui_component_needs_listener():
    analyzer = SurfaceAnalyzer()

    bare = analyzer.extract_ui('<ImageView android:id="@+id/logo" />', "res/layout/a.xml")
    assert bare == []

    wired = analyzer.extract_ui(
        '<button id="buy" onclick="purchase()">Buy now</button>', "assets/index.html"
    )
    assert len(wired) == 1
    assert wired[0].id == "buy"
    assert wired[0].text == "Buy now"
    assert wired[0].listeners == ["click"]
