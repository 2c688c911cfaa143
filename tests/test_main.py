"""Tests for the headless entry point in main.py."""
from __future__ import annotations

import json
import os

import pytest

import main
import settings
from debug_trace import configure
from settings import SettingsManager


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "_settings_manager", SettingsManager(settings_dir=tmp_path / "config"))


class TestMain:
    def test_prints_view(self, qapp, tmp_path, capsys, two_adapters):
        path = tmp_path / "adapter.xml"
        path.write_text(two_adapters, encoding="utf-8")

        assert main.main([str(path), "--adapter", "Second"]) == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload["adapter"] == "Second"
        assert [n["name"] for n in payload["nodes"]] == ["A", "EXIT"]
        assert path.read_text(encoding="utf-8") == two_adapters

    def test_write_stores_positions(self, qapp, tmp_path, capsys, two_adapters):
        path = tmp_path / "adapter.xml"
        path.write_text(two_adapters, encoding="utf-8")

        assert main.main([str(path), "--horizontal", "--write"]) == 0
        assert '<EchoPipe name="B" x="500" y="100"/>' in path.read_text(encoding="utf-8")

    def test_undrawable_file(self, qapp, tmp_path, capsys):
        path = tmp_path / "broken.xml"
        path.write_text("<Adapter name=", encoding="utf-8")
        assert main.main([str(path)]) == 1
        assert "Cannot draw" in capsys.readouterr().err

    def test_missing_file(self, qapp, tmp_path, capsys):
        assert main.main([str(tmp_path / "missing.xml")]) == 2

    def test_trace_option_selects_categories(self, qapp, tmp_path, capsys, two_adapters):
        path = tmp_path / "adapter.xml"
        path.write_text(two_adapters, encoding="utf-8")
        try:
            assert main.main([str(path), "--trace", "SYNC"]) == 0
        finally:
            configure(os.environ.get("PIPESYNC_TRACE", ""))
        err = capsys.readouterr().err
        assert "[SYNC] state idle -> mutating" in err
        assert "[REBUILD]" not in err
