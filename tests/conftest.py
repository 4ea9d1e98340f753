"""Shared test fixtures for SurfaceHunter tests."""

from __future__ import annotations

import os
import zipfile
from typing import Callable, Dict, Union

import pytest

from surfacehunter.collectors.safe_fetcher import AddressPolicy
from surfacehunter.core.config import Config


@pytest.fixture
def make_zip(tmp_path) -> Callable[..., str]:
    """Build a zip archive from a {member_name: text_or_bytes} mapping."""

    def _make(members: Dict[str, Union[str, bytes]], name: str = "app.apk") -> str:
        path = os.path.join(str(tmp_path), name)
        with zipfile.ZipFile(path, "w") as archive:
            for member, content in members.items():
                archive.writestr(member, content)
        return path

    return _make


@pytest.fixture
def config() -> Config:
    cfg = Config()
    cfg.archive.max_workers = 2
    cfg.doc_probe.enabled = False
    return cfg


@pytest.fixture
def open_policy() -> AddressPolicy:
    """Allows loopback so tests can talk to a local aiohttp TestServer."""
    return AddressPolicy(ipv4_networks=(), ipv6_networks=())
