"""
Archive walker.
Extracts a zip-format archive into a scratch directory that is always
removed afterwards, enumerates the members worth scanning and reads them
as text.
"""

import os
import re
import shutil
import tempfile
import zipfile
from collections import deque
from contextlib import contextmanager
from typing import Iterator, Optional, Tuple

from surfacehunter.core.config import ArchiveConfig
from surfacehunter.core.errors import DecodeError, InputError
from surfacehunter.core.logger import logger


class ArchiveWalker:

    ALLOWED_SUFFIXES = (
        '.dex', '.smali', '.class', '.java', '.kt',
        '.xml', '.arsc', '.so',
        '.js', '.mjs', '.ts', '.jsx', '.tsx', '.json',
        '.html', '.htm', '.xhtml',
        '.txt', '.properties', '.cfg', '.conf', '.ini', '.yml', '.yaml', '.plist',
        '.gradle', '.pro', '.mf',
    )
    ALLOWED_SEGMENTS = ('assets/', 'res/', 'lib/', 'META-INF/')
    BINARY_SUFFIXES = ('.dex', '.arsc', '.so')

    PRINTABLE_RUN = re.compile(rb'[\x20-\x7e]{4,}')

    def __init__(self, config: Optional[ArchiveConfig] = None):
        self.config = config or ArchiveConfig()

    @contextmanager
    def extracted(self, path: str) -> Iterator[str]:
        if not os.path.isfile(path) or not zipfile.is_zipfile(path):
            raise InputError(f"Not a valid zip archive: {path}")

        root = tempfile.mkdtemp(prefix="surfacehunter_")
        try:
            try:
                with zipfile.ZipFile(path) as archive:
                    self._check_members(archive, root)
                    archive.extractall(root)
            except zipfile.BadZipFile as e:
                raise InputError(f"Not a valid zip archive: {path}") from e
            logger.debug(f"Extracted {path} to {root}")
            yield root
        finally:
            shutil.rmtree(root, ignore_errors=True)
            logger.debug(f"Removed scratch directory {root}")

    def _check_members(self, archive: zipfile.ZipFile, root: str):
        base = os.path.realpath(root)
        for name in archive.namelist():
            target = os.path.realpath(os.path.join(base, name))
            if target != base and not target.startswith(base + os.sep):
                raise InputError(f"Archive member escapes extraction directory: {name}")

    def is_allowed(self, rel_path: str) -> bool:
        normalized = rel_path.replace(os.sep, '/')
        if normalized.lower().endswith(self.ALLOWED_SUFFIXES):
            return True
        padded = '/' + normalized
        return any('/' + segment in padded for segment in self.ALLOWED_SEGMENTS)

    def iter_members(self, root: str) -> Iterator[Tuple[str, str]]:
        """Yield (relative_path, full_path) for allow-listed members, in sorted order."""
        pending = deque([root])

        while pending:
            current = pending.popleft()
            try:
                entries = sorted(os.listdir(current))
            except OSError as e:
                logger.debug(f"Cannot list {current}: {e}")
                continue

            subdirs = []
            for entry in entries:
                full_path = os.path.join(current, entry)
                if os.path.islink(full_path):
                    continue
                if os.path.isdir(full_path):
                    subdirs.append(full_path)
                    continue
                rel_path = os.path.relpath(full_path, root).replace(os.sep, '/')
                if self.is_allowed(rel_path):
                    yield rel_path, full_path

            pending.extendleft(reversed(subdirs))

    def read_member(self, full_path: str, rel_path: str) -> str:
        size = os.path.getsize(full_path)
        if size > self.config.max_member_size:
            raise DecodeError(rel_path, f"exceeds {self.config.max_member_size} bytes")

        with open(full_path, 'rb') as f:
            data = f.read()

        try:
            return data.decode('utf-8')
        except UnicodeDecodeError:
            if rel_path.lower().endswith(self.BINARY_SUFFIXES):
                return self.printable_strings(data)
            raise DecodeError(rel_path)

    def read_binary_manifest(self, full_path: str) -> str:
        """Compiled manifests keep their string pool as UTF-16."""
        with open(full_path, 'rb') as f:
            data = f.read()
        return data.decode('utf-16-le', errors='ignore') + '\n' + self.printable_strings(data)

    def printable_strings(self, data: bytes) -> str:
        return '\n'.join(run.decode('ascii') for run in self.PRINTABLE_RUN.findall(data))
