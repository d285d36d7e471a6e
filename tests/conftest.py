"""Test configuration: import path and archive fixtures."""

from __future__ import annotations

import os
import sys

import pytest

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from archive_fixtures import (  # noqa: E402
    CONSTRUCTED_ENTRIES,
    CONTENTS,
    NATURAL_ENTRIES,
    SIMPLE_CONTENTS,
    build_tar,
    compress,
    layout,
)


@pytest.fixture
def make_archive(tmp_path):
    """Write an archive built from ``entries`` and return its path."""

    def _make(name, entries, compression=None):
        path = tmp_path / name
        path.write_bytes(compress(build_tar(entries), compression))
        return str(path)

    return _make


@pytest.fixture
def natural_tgz(make_archive):
    return make_archive("natural.tgz", layout(NATURAL_ENTRIES, CONTENTS), "gzip")


@pytest.fixture
def constructed_tar(make_archive):
    return make_archive("constructed.tar", layout(CONSTRUCTED_ENTRIES, CONTENTS))


@pytest.fixture
def simple_tar(make_archive):
    return make_archive("simple.tar", list(SIMPLE_CONTENTS.items()))
