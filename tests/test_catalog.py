"""Tests for catalog.py: stage catalog and saved configurations."""
from __future__ import annotations

import json

import pytest

from catalog import kind_label, parse_stage_catalog, split_configurations
from models import StageKind


CATALOG = [
    {"name": "Senders", "classes": [{"name": "FixedQuerySender", "packageName": "nl.nn.senders"}]},
    {
        "name": "Pipes",
        "classes": [
            {"name": "XsltPipe", "packageName": "nl.nn.pipes"},
            {"name": "FixedResult", "packageName": "nl.nn.pipes"},
            {"name": "XsltPipe", "packageName": "nl.nn.other"},
            {"packageName": "no.name"},
        ],
    },
]


class TestKindLabel:
    def test_suffix_appended(self):
        assert kind_label("Echo") == "EchoPipe"

    def test_suffix_kept(self):
        assert kind_label("EchoPipe") == "EchoPipe"


class TestStageCatalog:
    def test_parse_list(self):
        kinds = parse_stage_catalog(CATALOG)
        assert kinds == [
            StageKind("FixedQuerySender", "nl.nn.senders", "FixedQuerySenderPipe"),
            StageKind("XsltPipe", "nl.nn.pipes", "XsltPipe"),
            StageKind("FixedResult", "nl.nn.pipes", "FixedResultPipe"),
        ]

    def test_parse_json_text(self):
        assert parse_stage_catalog(json.dumps(CATALOG)) == parse_stage_catalog(CATALOG)

    def test_invalid_json_raises(self):
        with pytest.raises(json.JSONDecodeError):
            parse_stage_catalog("{not json")

    def test_not_a_list(self):
        assert parse_stage_catalog({"classes": []}) == []


class TestSplitConfigurations:
    def test_one_entry_per_adapter(self):
        payload = (
            '<Configuration>\n<Adapter name="one"><Pipeline/></Adapter>\n'
            '<Adapter name="two"><Pipeline/></Adapter>\n</Configuration>'
        )
        configurations = split_configurations(payload)
        assert [c.name for c in configurations] == ["one", "two"]
        assert configurations[1].text == '<Adapter name="two"><Pipeline/></Adapter>'

    def test_legacy_block_converted(self):
        payload = (
            '<adapter name="old"><pipeline><pipe name="p" className="a.b.EchoPipe"></pipe>'
            "</pipeline></adapter>"
        )
        (configuration,) = split_configurations(payload)
        assert configuration.name == "old"
        assert '<EchoPipe name="p"></EchoPipe>' in configuration.text
        assert configuration.text.startswith("<Adapter")

    def test_no_adapters(self):
        assert split_configurations("<Configuration/>") == []
