"""Tests for client-side call-site extraction and page collection."""

from __future__ import annotations

from surfacehunter.analyzers.classifier import Classifier
from surfacehunter.analyzers.web_extractor import WebCodeExtractor, method_for_verb, parse_options
from surfacehunter.collectors.web_collector import (
    DocProbe, WebPageCollector, document_base_path, parse_api_document,
)
from surfacehunter.models import HttpMethod, PersistenceOp


BASE = "https://shop.example.com/app/index.html"


def _by_url(endpoints):
    return {e.url: e for e in endpoints}


def test_fetch_with_options():
    code = """
    fetch('/api/orders', {
        method: 'PUT',
        headers: {'Content-Type': 'application/json', 'X-Token': 'abc'},
        body: JSON.stringify(order)
    });
    """
    endpoints, _ = WebCodeExtractor().extract(code, BASE, "app.js")
    order = _by_url(endpoints)["https://shop.example.com/api/orders"]

    assert order.method == HttpMethod.PUT
    assert order.persistence_op == PersistenceOp.UPDATE
    assert order.headers == {"Content-Type": "application/json", "X-Token": "abc"}
    assert order.payload_type == "json"
    assert order.source == "app.js"


def test_axios_verbs_and_config():
    code = """
    axios.delete('/api/carts/12');
    axios({ url: '/api/checkout', method: 'post', data: { total: 5 } });
    """
    endpoints = _by_url(WebCodeExtractor().extract(code, BASE, "bundle.js")[0])

    assert endpoints["https://shop.example.com/api/carts/12"].method == HttpMethod.DELETE
    checkout = endpoints["https://shop.example.com/api/checkout"]
    assert checkout.method == HttpMethod.POST
    assert checkout.payload_type == "json"


def test_jquery_and_xhr():
    code = """
    $.ajax({ url: '/api/search', type: 'GET' });
    $.post('/api/feedback');
    xhr.open('PATCH', '/api/profile/7');
    """
    endpoints = _by_url(WebCodeExtractor().extract(code, BASE, "legacy.js")[0])

    assert endpoints["https://shop.example.com/api/search"].method == HttpMethod.GET
    assert endpoints["https://shop.example.com/api/feedback"].method == HttpMethod.POST
    assert endpoints["https://shop.example.com/api/profile/7"].method == HttpMethod.PATCH


def test_post_to_resource_id_is_update():
    endpoints, _ = WebCodeExtractor().extract("$.post('/api/users/9');", BASE, "x.js")
    assert endpoints[0].persistence_op == PersistenceOp.UPDATE


def test_template_urls_skipped():
    code = "fetch(`/api/users/${id}`); fetch('/api/' + path); axios.get(`#{base}/x`);"
    endpoints, _ = WebCodeExtractor().extract(code, BASE, "x.js")
    assert endpoints == []


def test_orm_verbs():
    assert method_for_verb("create") == HttpMethod.POST
    assert method_for_verb("findOneAndUpdate") == HttpMethod.PUT
    assert method_for_verb("deleteMany") == HttpMethod.DELETE
    assert method_for_verb("insertOne") == HttpMethod.POST
    assert method_for_verb("get") == HttpMethod.GET


def test_parse_options_payload_types():
    assert parse_options("{ body: new FormData(form) }")[2] == "form-data"
    assert parse_options("{ body: new URLSearchParams(q) }")[2] == "urlencoded"
    assert parse_options("{ method: 'DELETE' }") == (HttpMethod.DELETE, {}, None)


def test_sql_literals_collected_as_statements():
    code = """
    db.query("INSERT INTO orders (id, total) VALUES (?, ?)");
    const sql = "UPDATE users SET name = ? WHERE id = ?";
    db.query("INSERT INTO orders (id, total) VALUES (?, ?)");
    """
    _, statements = WebCodeExtractor().extract(code, BASE, "server.js")

    assert [s.operation for s in statements] == [PersistenceOp.INSERT, PersistenceOp.UPDATE]
    assert all(s.source == "server.js" for s in statements)


PAGE = """<html><head>
<script src="/static/js/app.js"></script>
<script src="https://cdn.example.net/lib.js"></script>
<link rel="modulepreload" href="/static/js/chunk.js">
<script type="application/ld+json">{"@type": "Organization"}</script>
<script>window.init();</script>
</head><body>
<form action="/api/login" method="post"><input name="password" type="password"></form>
<form action="/search"></form>
</body></html>
"""


def test_page_inventory():
    inventory = WebPageCollector().collect(PAGE, "https://shop.example.com/")

    assert inventory.script_urls == [
        "https://shop.example.com/static/js/app.js",
        "https://cdn.example.net/lib.js",
        "https://shop.example.com/static/js/chunk.js",
    ]
    assert inventory.inline_scripts == ["window.init();"]
    assert [(url, method) for url, method, _ in inventory.forms] == [
        ("https://shop.example.com/api/login", HttpMethod.POST),
        ("https://shop.example.com/search", HttpMethod.POST),
    ]


def test_form_endpoints():
    collector = WebPageCollector()
    inventory = collector.collect(PAGE, "https://shop.example.com/")
    endpoints = _by_url(collector.form_endpoints(inventory, Classifier()))

    login = endpoints["https://shop.example.com/api/login"]
    assert login.method == HttpMethod.POST
    assert login.source == "form"
    assert "password" in login.payload_indicators


def test_markup_only_drops_inline_scripts():
    markup = WebPageCollector().markup_only(PAGE)
    assert "window.init" not in markup
    assert "/api/login" in markup


SWAGGER = {
    "swagger": "2.0",
    "basePath": "/v2",
    "paths": {
        "/pets": {"get": {"summary": "List pets"}, "post": {"summary": "Add pet"}},
        "/pets/{petId}": {"delete": {}, "parameters": []},
    },
}


def test_document_endpoints_use_base_path():
    probe = DocProbe(fetcher=None)
    endpoints = probe.document_endpoints(SWAGGER, "https://shop.example.com", "https://shop.example.com/swagger.json")
    pairs = sorted((e.method.value, e.url) for e in endpoints)

    assert pairs == [
        ("DELETE", "https://shop.example.com/v2/pets/{petId}"),
        ("GET", "https://shop.example.com/v2/pets"),
        ("POST", "https://shop.example.com/v2/pets"),
    ]
    assert all(e.source == "api-documentation" for e in endpoints)


def test_parse_api_document_yaml_and_servers():
    text = "openapi: 3.0.0\nservers:\n  - url: https://api.example.com/v1\npaths:\n  /items: {}\n"
    document = parse_api_document(text, "application/yaml", "/openapi.yaml")

    assert document is not None
    assert document_base_path(document) == "/v1"
    assert parse_api_document("<html></html>", "text/html", "/api-docs") is None


def test_nested_option_objects_keep_method():
    code = """
    fetch('/api/items/remove_all', { headers: { 'X-Token': 't' }, method: 'DELETE' });
    $.ajax({ url: '/api/orders', data: { id: 1, meta: { tag: 'x' } }, type: 'POST' });
    """
    endpoints = _by_url(WebCodeExtractor().extract(code, BASE, "app.js")[0])

    items = endpoints["https://shop.example.com/api/items/remove_all"]
    assert items.method == HttpMethod.DELETE
    assert items.headers == {"X-Token": "t"}

    orders = endpoints["https://shop.example.com/api/orders"]
    assert orders.method == HttpMethod.POST
    assert orders.payload_type == "json"
