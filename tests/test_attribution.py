"""Tests for chunk attribution."""

from finding_ledger.diagnostics.attribution import ChunkAttributor, CodeChunk
from finding_ledger.diagnostics.models import FindingInput


def _attributor():
    attributor = ChunkAttributor()
    attributor.add_chunks(
        "src/mod.py",
        [
            CodeChunk("class:Foo", "src/mod.py", 1, 100, name="Foo", kind="class"),
            CodeChunk("fn:Foo.bar", "src/mod.py", 10, 20, name="bar", kind="function"),
            CodeChunk("fn:Foo.baz", "src/mod.py", 30, 40, name="baz", kind="function"),
        ],
    )
    return attributor


def _inp(**kwargs):
    base = dict(rule_id="r", severity="info", message="m", file_path="src/mod.py")
    base.update(kwargs)
    return FindingInput(**base)


class TestFindChunk:
    def test_smallest_enclosing_wins(self):
        assert _attributor().find_chunk("src/mod.py", 15).chunk_id == "fn:Foo.bar"

    def test_falls_back_to_outer(self):
        assert _attributor().find_chunk("src/mod.py", 25).chunk_id == "class:Foo"

    def test_boundaries_inclusive(self):
        a = _attributor()
        assert a.find_chunk("src/mod.py", 10).chunk_id == "fn:Foo.bar"
        assert a.find_chunk("src/mod.py", 20).chunk_id == "fn:Foo.bar"

    def test_outside_any_chunk(self):
        assert _attributor().find_chunk("src/mod.py", 500) is None

    def test_path_normalized(self):
        assert _attributor().find_chunk("./src\\mod.py", 15).chunk_id == "fn:Foo.bar"

    def test_tie_breaks_on_earliest_start(self):
        a = ChunkAttributor()
        a.add_chunks("f.py", [CodeChunk("late", "f.py", 5, 9), CodeChunk("early", "f.py", 3, 7)])
        assert a.find_chunk("f.py", 6).chunk_id == "early"


class TestAttribute:
    def test_fills_chunk_id(self):
        original = _inp(start_line=35)
        attributed = _attributor().attribute(original)
        assert attributed.chunk_id == "fn:Foo.baz"
        assert original.chunk_id is None

    def test_existing_chunk_kept(self):
        assert _attributor().attribute(_inp(start_line=35, chunk_id="mine")).chunk_id == "mine"

    def test_no_line_unchanged(self):
        inp = _inp()
        assert _attributor().attribute(inp) is inp

    def test_non_string_path_unchanged(self):
        inp = _inp(file_path=5, start_line=12)
        assert _attributor().attribute(inp) is inp

    def test_attribute_all_and_clear(self):
        a = _attributor()
        out = a.attribute_all([_inp(start_line=12), _inp(start_line=99)])
        assert [f.chunk_id for f in out] == ["fn:Foo.bar", "class:Foo"]
        a.clear()
        assert a.find_chunk("src/mod.py", 12) is None
