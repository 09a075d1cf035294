"""Tests for JSON file helpers."""

import json
from enum import Enum
from pathlib import Path

from shipwright.build.models import BuildInfo, CIContext
from shipwright.core.utils.json import normalize_for_json, write_json_file


class Color(Enum):
    """Test enum for color values."""

    RED = "red"


class TestNormalizeForJson:
    """Test normalize_for_json."""

    def test_primitives_passthrough(self):
        """Test primitives pass through unchanged."""
        assert normalize_for_json(42) == 42
        assert normalize_for_json("x") == "x"
        assert normalize_for_json(None) is None
        assert normalize_for_json(True) is True

    def test_enum_and_path(self):
        """Test enums and paths become plain values."""
        assert normalize_for_json(Color.RED) == "red"
        assert normalize_for_json(Path("/a/b")) == "/a/b"

    def test_model_uses_aliases(self):
        """Test models are dumped with their wire names."""
        info = BuildInfo(tag=["x"], ci=CIContext(pull_request=True), continue_=False)
        data = normalize_for_json(info)
        assert data["continue"] is False
        assert data["ci"] == {"pullRequest": True, "tagged": False}
        assert "continue_" not in data

    def test_tuples_become_lists(self):
        """Test tuples are normalized to lists."""
        assert normalize_for_json({"a": (1, 2)}) == {"a": [1, 2]}


class TestWriteJsonFile:
    """Test write_json_file."""

    def test_compact(self, tmp_path):
        """Test compact output without indentation."""
        path = write_json_file(tmp_path / "out.json", {"image": "a/b", "tags": ["x"]})
        assert path.read_text() == '{"image":"a/b","tags":["x"]}'

    def test_pretty(self, tmp_path):
        """Test indented output."""
        path = write_json_file(tmp_path / "out.json", {"a": 1}, indent=2)
        assert path.read_text() == '{\n  "a": 1\n}'
        assert json.loads(path.read_text()) == {"a": 1}
