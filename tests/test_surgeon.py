"""Tests for editor/surgeon.py: in-place structural edits of the markup text.

Most tests check the exact resulting text: an edit may only touch the
characters it is about, everything else must come back byte-for-byte.
"""
from __future__ import annotations

from editor import surgeon


A_OPEN = '<FixedResultPipe name="A" returnString="hi">'
B_STAGE = '<EchoPipe name="B"/>'
FORWARD_TO_B = '                <Forward name="success" path="B"/>\n'


def first_half(text):
    return text[: text.index('<Adapter name="Second">')]


def second_half(text):
    return text[text.index('<Adapter name="Second">'):]


# ─────────────────────────────────────────────────────────
# move / move_exit
# ─────────────────────────────────────────────────────────


class TestMove:
    def test_insert_coordinates(self, two_adapters):
        result = surgeon.move(two_adapters, "B", 120, 340)
        moved = '<EchoPipe name="B" x="120" y="340"/>'
        assert moved in result
        assert result.replace(moved, B_STAGE) == two_adapters

    def test_second_move_updates_in_place(self, two_adapters):
        once = surgeon.move(two_adapters, "A", 120, 340)
        twice = surgeon.move(once, "A", 50, 60)
        assert '<FixedResultPipe name="A" returnString="hi" x="50" y="60">' in twice
        assert 'x="120"' not in twice
        assert twice.count('x="') == 1

    def test_existing_coordinates_updated(self):
        text = '<Adapter name="X"><Pipeline><EchoPipe y="2" name="A" x="1"/></Pipeline></Adapter>'
        result = surgeon.move(text, "A", 30, 40)
        assert result == '<Adapter name="X"><Pipeline><EchoPipe y="40" name="A" x="30"/></Pipeline></Adapter>'

    def test_pixel_strings(self, two_adapters):
        result = surgeon.move(two_adapters, "B", "120px", "340.4px")
        assert '<EchoPipe name="B" x="120" y="340"/>' in result

    def test_bad_coordinates_leave_text(self, two_adapters):
        assert surgeon.move(two_adapters, "B", "left", 3) == two_adapters

    def test_receiver(self, two_adapters):
        result = surgeon.move(two_adapters, "(receiver): R1", 10, 20)
        assert '<Receiver name="R1" x="10" y="20">' in result

    def test_unknown_stage_is_noop(self, two_adapters):
        assert surgeon.move(two_adapters, "Nope", 1, 2) == two_adapters

    def test_scoped_to_named_adapter(self, two_adapters):
        result = surgeon.move(two_adapters, "A", 1, 2, adapter_name="Second")
        assert first_half(result) == first_half(two_adapters)
        assert '<EchoPipe name="A" x="1" y="2"/>' in second_half(result)

    def test_unrelated_matching_text_untouched(self):
        text = """\
<Configuration>
    <!-- <EchoPipe name="B"/> -->
    <Adapter name="X">
        <Pipeline>
            <EchoPipe name="B"/>
        </Pipeline>
    </Adapter>
</Configuration>
"""
        result = surgeon.move(text, "B", 1, 2)
        assert '<!-- <EchoPipe name="B"/> -->' in result
        assert '            <EchoPipe name="B" x="1" y="2"/>' in result

    def test_move_exit(self, two_adapters):
        result = surgeon.move_exit(two_adapters, "EXIT", 5, 6)
        moved = '<Exit path="EXIT" state="success" x="5" y="6"/>'
        assert result.count(moved) == 1
        assert moved in first_half(result)
        assert second_half(result) == second_half(two_adapters)

    def test_move_exit_unknown(self, two_adapters):
        assert surgeon.move_exit(two_adapters, "NOPE", 5, 6) == two_adapters


# ─────────────────────────────────────────────────────────
# rename
# ─────────────────────────────────────────────────────────


class TestRename:
    def test_rename_updates_name_and_first_pipe(self, two_adapters):
        result = surgeon.rename(two_adapters, "A", "Start")
        assert '<FixedResultPipe name="Start" returnString="hi">' in result
        assert '<Pipeline firstPipe="Start">' in result
        assert second_half(result) == second_half(two_adapters)

    def test_rename_updates_forward_paths(self, two_adapters):
        result = surgeon.rename(two_adapters, "B", "Middle")
        assert '<Forward name="success" path="Middle"/>' in result
        assert '<EchoPipe name="Middle"/>' in result
        assert 'path="B"' not in result

    def test_rename_leaves_no_old_reference(self):
        text = """\
<Adapter name="X">
    <Pipeline firstPipe="A">
        <EchoPipe name="A">
            <Forward name="again" path="A"/>
            <Forward name="success" path="B"/>
        </EchoPipe>
        <EchoPipe name="B">
            <Forward name="back" path="A"/>
        </EchoPipe>
    </Pipeline>
</Adapter>
"""
        result = surgeon.rename(text, "A", "Z")
        assert '"A"' not in result
        assert result.count('"Z"') == 4
        assert result == text.replace('"A"', '"Z"')

    def test_rename_does_not_touch_forward_labels(self):
        text = '<Adapter name="X"><Pipeline><EchoPipe name="success"><Forward name="success" path="E"/></EchoPipe></Pipeline></Adapter>'
        result = surgeon.rename(text, "success", "ok")
        assert '<EchoPipe name="ok"><Forward name="success" path="E"/>' in result

    def test_rename_unknown(self, two_adapters):
        assert surgeon.rename(two_adapters, "Nope", "X") == two_adapters


# ─────────────────────────────────────────────────────────
# connect / disconnect
# ─────────────────────────────────────────────────────────


class TestConnect:
    def test_connect_expands_self_closing_stage(self, two_adapters):
        result = surgeon.connect(two_adapters, "B", "EXIT")
        expected = (
            '            <EchoPipe name="B">\n'
            '                <Forward name="success" path="EXIT"/>\n'
            "            </EchoPipe>\n"
        )
        assert expected in result
        assert result.replace(expected, "            " + B_STAGE + "\n") == two_adapters

    def test_connect_appends_after_existing_forward(self, two_adapters):
        result = surgeon.connect(two_adapters, "A", "EXIT")
        expected = (
            FORWARD_TO_B
            + '                <Forward name="success" path="EXIT"/>\n'
            + "            </FixedResultPipe>"
        )
        assert expected in result

    def test_connect_is_idempotent(self, two_adapters):
        once = surgeon.connect(two_adapters, "B", "EXIT")
        assert surgeon.connect(once, "B", "EXIT") == once
        assert surgeon.connect(two_adapters, "A", "B") == two_adapters

    def test_connect_inline_stage(self):
        text = '<Adapter name="X">\n  <Pipeline>\n    <EchoPipe name="A"></EchoPipe>\n  </Pipeline>\n</Adapter>'
        result = surgeon.connect(text, "A", "E")
        assert result == (
            '<Adapter name="X">\n  <Pipeline>\n    <EchoPipe name="A">\n'
            '      <Forward name="success" path="E"/>\n    </EchoPipe>\n  </Pipeline>\n</Adapter>'
        )

    def test_connect_unknown_source(self, two_adapters):
        assert surgeon.connect(two_adapters, "Nope", "B") == two_adapters

    def test_disconnect_removes_line(self, two_adapters):
        result = surgeon.disconnect(two_adapters, "A", "B")
        assert result == two_adapters.replace(FORWARD_TO_B, "")

    def test_disconnect_exit_case_insensitive(self):
        text = '<Adapter name="X"><Pipeline><EchoPipe name="A"><Forward name="success" path="Exit"/></EchoPipe></Pipeline></Adapter>'
        result = surgeon.disconnect(text, "A", "EXIT")
        assert result == '<Adapter name="X"><Pipeline><EchoPipe name="A"></EchoPipe></Pipeline></Adapter>'

    def test_disconnect_other_targets_case_sensitive(self):
        text = '<Adapter name="X"><Pipeline><EchoPipe name="A"><Forward name="success" path="b"/></EchoPipe></Pipeline></Adapter>'
        assert surgeon.disconnect(text, "A", "B") == text

    def test_disconnect_missing_forward(self, two_adapters):
        assert surgeon.disconnect(two_adapters, "B", "A") == two_adapters


# ─────────────────────────────────────────────────────────
# insert_stage / delete_stage / change_kind
# ─────────────────────────────────────────────────────────


class TestStages:
    def test_insert_before_first_exit(self, two_adapters):
        result = surgeon.insert_stage(two_adapters, "C", 10, 20, "EchoPipe")
        expected = (
            '            <EchoPipe name="C" x="10" y="20">\n'
            "\n"
            "            </EchoPipe>\n"
            '            <Exit path="EXIT" state="success"/>'
        )
        assert expected in first_half(result)
        assert result.count('name="C"') == 1
        assert second_half(result) == second_half(two_adapters)

    def test_insert_before_exits_wrapper(self):
        text = '<Adapter name="X">\n\t<Pipeline>\n\t\t<Exits>\n\t\t\t<Exit path="OK"/>\n\t\t</Exits>\n\t</Pipeline>\n</Adapter>'
        result = surgeon.insert_stage(text, "C", 1, 2, "EchoPipe")
        assert '\t\t<EchoPipe name="C" x="1" y="2">\n\n\t\t</EchoPipe>\n\t\t<Exits>' in result

    def test_insert_without_exit_is_noop(self):
        text = '<Adapter name="X"><Pipeline><EchoPipe name="A"/></Pipeline></Adapter>'
        assert surgeon.insert_stage(text, "C", 1, 2, "EchoPipe") == text

    def test_delete_stage(self, two_adapters):
        result = surgeon.delete_stage(two_adapters, "B")
        assert result == two_adapters.replace("            " + B_STAGE + "\n", "")

    def test_delete_block_stage(self, two_adapters):
        result = surgeon.delete_stage(two_adapters, "A")
        assert "FixedResultPipe" not in result
        assert second_half(result) == second_half(two_adapters)

    def test_change_kind(self, two_adapters):
        result = surgeon.change_kind(two_adapters, "A", "XsltPipe")
        assert '<XsltPipe name="A" returnString="hi">' in result
        assert "</XsltPipe>" in result
        assert "FixedResultPipe" not in result

    def test_change_kind_self_closing(self, two_adapters):
        result = surgeon.change_kind(two_adapters, "B", "JsonPipe")
        assert '<JsonPipe name="B"/>' in result

    def test_locate_stage(self, two_adapters):
        start, end = surgeon.locate_stage(two_adapters, "A")
        block = two_adapters[start:end]
        assert block.startswith(A_OPEN)
        assert block.endswith("</FixedResultPipe>")
        assert surgeon.locate_stage(two_adapters, "Nope") is None

    def test_exit_names(self, two_adapters):
        assert surgeon.exit_names(two_adapters) == ["EXIT"]


# ─────────────────────────────────────────────────────────
# Attributes and parameters
# ─────────────────────────────────────────────────────────


class TestAttributes:
    def test_get_attributes(self, two_adapters):
        assert surgeon.get_attributes(two_adapters, "A") == {"name": "A", "returnString": "hi"}
        assert surgeon.get_attributes(two_adapters, "Nope") == {}

    def test_set_existing_attribute(self, two_adapters):
        result = surgeon.set_attribute(two_adapters, "A", "returnString", 'say "hi"')
        assert '<FixedResultPipe name="A" returnString="say &quot;hi&quot;">' in result

    def test_set_new_attribute(self, two_adapters):
        result = surgeon.set_attribute(two_adapters, "B", "active", "false")
        assert '<EchoPipe name="B" active="false"/>' in result

    def test_delete_attribute(self, two_adapters):
        result = surgeon.delete_attribute(two_adapters, "A", "returnString")
        assert result == two_adapters.replace(A_OPEN, '<FixedResultPipe name="A">')

    def test_delete_missing_attribute(self, two_adapters):
        assert surgeon.delete_attribute(two_adapters, "A", "nope") == two_adapters

    def test_strip_layout(self):
        text = '<Adapter name="X"><Pipeline><EchoPipe name="A" x="1" y="2"/><Exit path="E" x="3"\n y="4"/></Pipeline></Adapter>'
        assert surgeon.strip_layout(text) == (
            '<Adapter name="X"><Pipeline><EchoPipe name="A"/><Exit path="E"/></Pipeline></Adapter>'
        )


class TestParameters:
    def test_add_and_get_parameters(self, two_adapters):
        text = surgeon.add_parameter(two_adapters, "A", "p1")
        text = surgeon.add_parameter(text, "A", "p2")
        assert surgeon.get_parameters(text, "A") == [{"name": "p1"}, {"name": "p2"}]
        assert (
            FORWARD_TO_B
            + '                <Param name="p1"/>\n'
            + '                <Param name="p2"/>\n'
            + "            </FixedResultPipe>"
        ) in text

    def test_set_parameter_attribute(self, two_adapters):
        text = surgeon.add_parameter(two_adapters, "B", "p1")
        text = surgeon.set_parameter_attribute(text, "B", "p1", "value", "v")
        assert surgeon.get_parameters(text, "B") == [{"name": "p1", "value": "v"}]

    def test_delete_parameter(self, two_adapters):
        text = surgeon.add_parameter(two_adapters, "A", "p1")
        assert surgeon.delete_parameter(text, "A", "p1") == two_adapters

    def test_delete_unknown_parameter(self, two_adapters):
        assert surgeon.delete_parameter(two_adapters, "A", "p1") == two_adapters
