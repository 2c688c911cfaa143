"""Tests for markup/legacy.py: old generic-element syntax conversion."""
from __future__ import annotations

from flow.graph import build_graph
from markup.legacy import class_tag, is_legacy_syntax, to_current_syntax
from markup.selector import select_adapter
from markup.tree import TAG_KEY, to_tree
from models import stage_alias


LEGACY = """\
<ibis>
<adapter name="Old">
<receiver className="nl.nn.adapterframework.receivers.GenericReceiver" name="R">
<listener className="nl.nn.adapterframework.receivers.JavaListener" name="L"/>
</receiver>
<pipeline firstPipe="p">
<exits>
<exit path="EXIT" state="success"/>
</exits>
<pipe name="p" className="nl.nn.adapterframework.pipes.XsltPipe" styleSheetName="a.xsl">
<forward name="success" path="q"/>
</pipe>
<pipe name="q" className="nl.nn.adapterframework.pipes.FixedResult">
<forward name="success" path="EXIT"/>
</pipe>
</pipeline>
</adapter>
</ibis>
"""


class TestClassTag:
    def test_last_segment(self):
        assert class_tag("nl.nn.adapterframework.pipes.XsltPipe", "Pipe") == "XsltPipe"

    def test_suffix_appended(self):
        assert class_tag("nl.nn.adapterframework.pipes.FixedResult", "Pipe") == "FixedResultPipe"

    def test_no_suffix(self):
        assert class_tag("a.b.JavaListener") == "JavaListener"


class TestToCurrentSyntax:
    def test_detection(self):
        assert is_legacy_syntax(LEGACY)
        assert not is_legacy_syntax('<Configuration><Adapter name="x"/></Configuration>')

    def test_current_syntax_unchanged(self, two_adapters):
        assert to_current_syntax(two_adapters) == two_adapters

    def test_stage_tags(self):
        result = to_current_syntax(LEGACY)
        assert '<XsltPipe name="p" styleSheetName="a.xsl">' in result
        assert '<FixedResultPipe name="q">' in result
        assert "</XsltPipe>" in result
        assert "</FixedResultPipe>" in result
        assert "className" not in result

    def test_self_closing_stage(self):
        text = (
            '<pipeline><pipe name="a" className="p.EchoPipe"/>'
            '<pipe name="b" className="p.XsltPipe"><forward name="success" path="EXIT"/></pipe>'
            "</pipeline>"
        )
        result = to_current_syntax(text)
        assert result == (
            '<Pipeline><EchoPipe name="a"/>'
            '<XsltPipe name="b"><Forward name="success" path="EXIT"/></XsltPipe>'
            "</Pipeline>"
        )
        tree = to_tree(result, uniform=True, tag_alias=stage_alias)
        stages = tree["Pipeline"]["pipe"]
        assert [s[TAG_KEY] for s in stages] == ["EchoPipe", "XsltPipe"]

    def test_listener_and_capitalization(self):
        result = to_current_syntax(LEGACY)
        assert '<JavaListener name="L"/>' in result
        assert '<Receiver name="R">' in result
        assert '<Forward name="success" path="q"/>' in result
        assert result.startswith("<Configuration>")
        assert result.rstrip().endswith("</Configuration>")

    def test_exits_moved_to_end_of_pipeline(self):
        result = to_current_syntax(LEGACY)
        assert "<Exits>" not in result
        exit_at = result.index('<Exit path="EXIT" state="success"/>')
        assert result.index("</FixedResultPipe>") < exit_at < result.index("</Pipeline>")

    def test_converted_text_draws(self):
        tree = to_tree(to_current_syntax(LEGACY), uniform=True, tag_alias=stage_alias)
        graph = build_graph(select_adapter(tree))
        assert [n.name for n in graph.nodes] == ["p", "q", "EXIT", "(receiver): R"]
        assert {(e.source, e.target) for e in graph.edges} == {
            ("p", "q"),
            ("q", "EXIT"),
            ("(receiver): R", "p"),
        }
