"""
Shared fixtures for the gifspin test suite.
"""

from __future__ import annotations

import tempfile
from pathlib import Path

import pytest

from helpers import make_marker_image, make_options


@pytest.fixture
def tmp_dir():
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory(prefix="gifspin_test_") as d:
        yield Path(d)


@pytest.fixture
def options():
    return make_options()


@pytest.fixture
def marker_rgb():
    return make_marker_image((100, 100), "RGB")


@pytest.fixture
def marker_rgba():
    """Marker image whose right half is transparent."""
    img = make_marker_image((100, 100), "RGBA")
    img.paste((0, 0, 0, 0), (50, 0, 100, 100))
    return img


@pytest.fixture
def marker_png(tmp_dir, marker_rgb):
    path = tmp_dir / "marker.png"
    marker_rgb.save(path)
    return path


@pytest.fixture
def marker_rgba_png(tmp_dir, marker_rgba):
    path = tmp_dir / "marker_rgba.png"
    marker_rgba.save(path)
    return path
