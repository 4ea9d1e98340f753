"""Tests for the backend-likeness filter."""

from __future__ import annotations

import pytest

from surfacehunter.analyzers.backend_filter import is_likely_backend_path


@pytest.mark.parametrize("candidate", [
    "/api/users",
    "/v1/orders",
    "https://shop.example.com/api/cart",
    "/index.php?action=save",
    "/graphql",
    "/users/42",
    "/config.json",
    "/admin/settings",
    "wss://push.example.com/stream",
])
def test_backend_candidates_accepted(candidate):
    assert is_likely_backend_path(candidate)


@pytest.mark.parametrize("candidate", [
    "android/widget/Button",
    "/androidx/core/app",
    "Ljava/lang/String;",
    "http://schemas.android.com/apk/res/android",
    "http://www.w3.org/2000/svg",
    "/static/js/main.js",
    "/images/logo.png",
    "/api/bundle.js",
    "",
])
def test_namespaces_and_assets_rejected(candidate):
    assert not is_likely_backend_path(candidate)


def test_source_suffix_rejected_even_with_api_segment():
    # rejection runs before any accept rule
    assert not is_likely_backend_path("/api/v2/client.ts")


def test_short_or_uppercase_paths_rejected():
    assert not is_likely_backend_path("/ab")
    assert not is_likely_backend_path("/ABC/DEF")
