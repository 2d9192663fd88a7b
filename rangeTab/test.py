import doctest
import io
import os
import subprocess
import sys
import zipfile

import pytest

import rangeTab
from rangeTab import (
    Range,
    codepointFor,
    compact_map,
    compact_ranges,
    compact_set,
    escape_unicode,
    expand_ranges,
    map_to_bsearch_table,
    map_to_bsearch_table_default,
    render_ranges,
    set_to_bsearch_table,
)
from rangeTab.generate import (
    PREAMBLE,
    generate,
    generate_block,
    generators,
    rust_string_literal,
    tables_path,
)
from rangeTab.ucdxml import (
    load_ucdxml,
    ucdxml_get_binary_property,
    ucdxml_get_blocks,
    ucdxml_get_property,
    ucdxml_get_repertoire,
    ucdxml_get_version,
)
from rangeTab.__main__ import main  # noqa: F401


def _letters(s, value):
    return [(c, value) for c in s]


SAMPLE_MAP = dict(
    _letters("abc", "Low") + _letters("def", "Mid") + _letters("xyz", "High")
)
SAMPLE_SET = "abcdefxyz"


# ── Utility functions ──────────────────────────────────────────────


class TestDoctests:
    def test_core(self):
        assert doctest.testmod(rangeTab).failed == 0

    def test_generate(self):
        import rangeTab.generate

        assert doctest.testmod(rangeTab.generate).failed == 0


class TestCodepointFor:
    def test_int(self):
        assert codepointFor(0x41) == 0x41

    def test_char(self):
        assert codepointFor("A") == 0x41

    def test_max(self):
        assert codepointFor(0x10FFFF) == 0x10FFFF

    def test_out_of_range(self):
        with pytest.raises(ValueError):
            codepointFor(0x110000)
        with pytest.raises(ValueError):
            codepointFor(-1)

    def test_surrogate(self):
        with pytest.raises(ValueError):
            codepointFor(0xD800)
        with pytest.raises(ValueError):
            codepointFor(0xDFFF)

    def test_bad_types(self):
        with pytest.raises(TypeError):
            codepointFor("ab")
        with pytest.raises(TypeError):
            codepointFor(1.0)
        with pytest.raises(TypeError):
            codepointFor(True)


class TestEscapeUnicode:
    def test_ascii(self):
        assert escape_unicode("a") == "\\u{61}"

    def test_lowercase_hex(self):
        assert escape_unicode(0x7A) == "\\u{7a}"
        assert escape_unicode(0xFFFD) == "\\u{fffd}"

    def test_no_padding(self):
        assert escape_unicode(0) == "\\u{0}"
        assert escape_unicode(0x10FFFF) == "\\u{10ffff}"

    def test_stable(self):
        assert escape_unicode(0x1F600) == escape_unicode(0x1F600)


class TestRange:
    def test_default_value(self):
        r = Range(1, 2)
        assert r.value is None
        assert r == (1, 2, None)

    def test_codepoints(self):
        assert list(Range(0x61, 0x63, "x").codepoints()) == [0x61, 0x62, 0x63]

    def test_immutable(self):
        r = Range(1, 2)
        with pytest.raises(AttributeError):
            r.high = 3


# ── Compaction ─────────────────────────────────────────────────────


class TestCompactMap:
    def test_empty(self):
        assert compact_map({}) == []

    def test_single(self):
        assert compact_map({"q": 1}) == [Range(0x71, 0x71, 1)]

    def test_scenario(self):
        assert compact_map(SAMPLE_MAP) == [
            Range(0x61, 0x63, "Low"),
            Range(0x64, 0x66, "Mid"),
            Range(0x78, 0x7A, "High"),
        ]

    def test_gap_not_merged(self):
        data = dict(_letters("abc", "Low") + _letters("efg", "Low"))
        assert compact_map(data) == [
            Range(0x61, 0x63, "Low"),
            Range(0x65, 0x67, "Low"),
        ]

    def test_value_change_splits(self):
        assert compact_map([(1, "a"), (2, "b"), (3, "a")]) == [
            Range(1, 1, "a"),
            Range(2, 2, "b"),
            Range(3, 3, "a"),
        ]

    def test_pairs_input(self):
        assert compact_map([(0x41, 0), (0x42, 0)]) == [Range(0x41, 0x42, 0)]

    def test_none_values(self):
        assert compact_map([(1, None), (2, None), (3, 0)]) == [
            Range(1, 2, None),
            Range(3, 3, 0),
        ]

    def test_round_trip(self):
        data = {0: "a", 1: "a", 5: "b", 6: "b", 7: "a", 0x10FFFF: "c"}
        assert dict(expand_ranges(compact_map(data))) == data
        assert [c for c, _ in expand_ranges(compact_map(data))] == list(data)

    def test_minimal(self):
        data = {0: "a", 1: "a", 2: "b", 4: "b", 5: "b", 6: "c"}
        ranges = compact_map(data)
        for a, b in zip(ranges, ranges[1:]):
            assert a.high < b.low
            assert a.high + 1 < b.low or a.value != b.value

    def test_around_surrogates(self):
        data = {0xD7FF: 1, 0xE000: 1}
        assert compact_map(data) == [Range(0xD7FF, 0xD7FF, 1), Range(0xE000, 0xE000, 1)]


class TestCompactSet:
    def test_empty(self):
        assert compact_set([]) == []

    def test_single(self):
        assert compact_set([0]) == [Range(0, 0)]

    def test_scenario(self):
        assert compact_set(SAMPLE_SET) == [Range(0x61, 0x66), Range(0x78, 0x7A)]

    def test_round_trip(self):
        data = [0, 1, 2, 10, 11, 0x10FFFE, 0x10FFFF]
        assert [c for c, _ in expand_ranges(compact_set(data))] == data

    def test_values_are_none(self):
        assert all(r.value is None for r in compact_set(range(100)))


class TestPreconditions:
    def test_out_of_order_map(self):
        with pytest.raises(AssertionError):
            compact_map([("a", 1), ("b", 1), ("f", 1), ("d", 1)])

    def test_out_of_order_value_change(self):
        with pytest.raises(AssertionError):
            compact_map([("e", 1), ("f", 1), ("d", 2)])

    def test_duplicate_key(self):
        with pytest.raises(AssertionError):
            compact_map([("a", 1), ("a", 1)])

    def test_unsorted_dict(self):
        with pytest.raises(AssertionError):
            map_to_bsearch_table_default({"b": "X", "a": "X"})

    def test_out_of_order_set(self):
        with pytest.raises(AssertionError):
            set_to_bsearch_table("abfd")

    def test_duplicate_set(self):
        with pytest.raises(AssertionError):
            compact_set([5, 5])

    def test_generic_scanner_lazy(self):
        # Ranges before the bad entry are still produced.
        it = compact_ranges([(1, None), (3, None), (2, None)])
        assert next(it) == Range(1, 1)
        with pytest.raises(AssertionError):
            next(it)

    def test_out_of_order_with_optimizations(self):
        code = (
            "from rangeTab import map_to_bsearch_table_default\n"
            "print(map_to_bsearch_table_default("
            "[('a', 'L'), ('b', 'L'), ('f', 'L'), ('d', 'L')]))\n"
        )
        r = subprocess.run(
            [sys.executable, "-O", "-c", code],
            capture_output=True,
            text=True,
        )
        assert r.returncode != 0
        assert "AssertionError" in r.stderr
        assert "codepoints out of order: 0x64 after 0x66" in r.stderr
        assert r.stdout == ""


# ── Rendering ──────────────────────────────────────────────────────


class TestRender:
    def test_empty(self):
        assert render_ranges([]) == "&[]"
        assert render_ranges([], str) == "&[]"

    def test_duples(self):
        assert render_ranges([Range(0, 0x7F)]) == "&[\n    ('\\u{0}', '\\u{7f}'),\n]"

    def test_triples(self):
        assert (
            render_ranges([Range(0, 0x7F, 3)], lambda v: "V%d" % v)
            == "&[\n    ('\\u{0}', '\\u{7f}', V3),\n]"
        )

    def test_values_dropped_without_display(self):
        assert render_ranges([Range(0, 0x7F, "Lu")]) == (
            "&[\n    ('\\u{0}', '\\u{7f}'),\n]"
        )

    def test_stable(self):
        ranges = compact_map(SAMPLE_MAP)
        assert render_ranges(ranges, str) == render_ranges(ranges, str)


class TestMapTable:
    def test_scenario(self):
        assert map_to_bsearch_table_default(SAMPLE_MAP) == (
            "&[\n"
            "    ('\\u{61}', '\\u{63}', Low),\n"
            "    ('\\u{64}', '\\u{66}', Mid),\n"
            "    ('\\u{78}', '\\u{7a}', High),\n"
            "]"
        )

    def test_default_display_is_str(self):
        assert map_to_bsearch_table(SAMPLE_MAP) == map_to_bsearch_table_default(
            SAMPLE_MAP
        )

    def test_display_fn(self):
        out = map_to_bsearch_table(SAMPLE_MAP, lambda v: "Level::%s" % v)
        assert "('\\u{61}', '\\u{63}', Level::Low)," in out
        assert "Low)" not in out.replace("Level::Low)", "")

    def test_display_nested_literal(self):
        out = map_to_bsearch_table({"a": (1, 2)}, lambda v: "(%d, %d)" % v)
        assert out == "&[\n    ('\\u{61}', '\\u{61}', (1, 2)),\n]"

    def test_gap_not_merged(self):
        data = dict(_letters("abc", "Low") + _letters("efg", "Low"))
        assert map_to_bsearch_table_default(data) == (
            "&[\n"
            "    ('\\u{61}', '\\u{63}', Low),\n"
            "    ('\\u{65}', '\\u{67}', Low),\n"
            "]"
        )

    def test_empty(self):
        assert map_to_bsearch_table_default({}) == "&[]"

    def test_int_values(self):
        assert map_to_bsearch_table({0x30: 0, 0x31: 0}) == (
            "&[\n    ('\\u{30}', '\\u{31}', 0),\n]"
        )


class TestSetTable:
    def test_scenario(self):
        assert set_to_bsearch_table(SAMPLE_SET) == (
            "&[\n"
            "    ('\\u{61}', '\\u{66}'),\n"
            "    ('\\u{78}', '\\u{7a}'),\n"
            "]"
        )

    def test_empty(self):
        assert set_to_bsearch_table([]) == "&[]"

    def test_full_plane(self):
        assert set_to_bsearch_table(range(0x10000, 0x20000)) == (
            "&[\n    ('\\u{10000}', '\\u{1ffff}'),\n]"
        )


# ── UCD XML ────────────────────────────────────────────────────────


SAMPLE_UCDXML = b"""<?xml version="1.0" encoding="UTF-8"?>
<ucd xmlns="http://www.unicode.org/ns/2003/ucd/1.0">
  <description>Unicode 15.1.0</description>
  <repertoire>
    <group gc="Lu" XIDS="Y" XIDC="Y">
      <char cp="0041"/>
      <char cp="0042"/>
      <char cp="0043"/>
    </group>
    <!-- digits -->
    <char cp="0030" gc="Nd" XIDS="N" XIDC="Y"/>
    <char cp="0031" gc="Nd" XIDS="N" XIDC="Y"/>
    <char cp="005F" gc="Pc" XIDS="N" XIDC="Y"/>
    <group gc="Ll" XIDS="Y" XIDC="Y">
      <char first-cp="0061" last-cp="0063"/>
      <char cp="0064" gc="Lu"/>
    </group>
    <surrogate first-cp="D800" last-cp="DFFF" gc="Cs"/>
    <reserved first-cp="E000" last-cp="E001" gc="Cn"/>
  </repertoire>
  <blocks>
    <block first-cp="0000" last-cp="007F" name="Basic Latin"/>
    <block first-cp="0080" last-cp="00FF" name="Latin-1 Supplement"/>
    <block first-cp="D800" last-cp="DB7F" name="High Surrogates"/>
  </blocks>
</ucd>
"""


@pytest.fixture
def ucdxml():
    return load_ucdxml(io.BytesIO(SAMPLE_UCDXML))


class TestUcdxml:
    def test_load_path(self, tmp_path):
        path = tmp_path / "ucd.xml"
        path.write_bytes(SAMPLE_UCDXML)
        assert ucdxml_get_version(load_ucdxml(str(path))) == (15, 1, 0)

    def test_load_zip(self, tmp_path):
        path = tmp_path / "ucd.zip"
        with zipfile.ZipFile(path, "w") as z:
            z.writestr("ucd.all.grouped.xml", SAMPLE_UCDXML)
        assert ucdxml_get_version(load_ucdxml(str(path))) == (15, 1, 0)

    def test_version(self, ucdxml):
        assert ucdxml_get_version(ucdxml) == (15, 1, 0)

    def test_version_missing(self):
        x = load_ucdxml(
            io.BytesIO(b'<ucd xmlns="http://www.unicode.org/ns/2003/ucd/1.0"/>')
        )
        with pytest.raises(ValueError):
            ucdxml_get_version(x)

    def test_repertoire_sorted(self, ucdxml):
        rep = ucdxml_get_repertoire(ucdxml)
        assert list(rep) == sorted(rep)
        assert list(rep) == [
            0x30, 0x31, 0x41, 0x42, 0x43, 0x5F, 0x61, 0x62, 0x63, 0x64, 0xE000, 0xE001,
        ]

    def test_repertoire_skips_surrogates(self, ucdxml):
        rep = ucdxml_get_repertoire(ucdxml)
        assert not any(0xD800 <= cp <= 0xDFFF for cp in rep)

    def test_group_inheritance(self, ucdxml):
        rep = ucdxml_get_repertoire(ucdxml)
        assert rep[0x41]["gc"] == "Lu"
        assert rep[0x62]["gc"] == "Ll"
        assert rep[0x64]["gc"] == "Lu"
        assert rep[0x64]["XIDS"] == "Y"

    def test_property(self, ucdxml):
        gc = ucdxml_get_property(ucdxml, "gc")
        assert gc[0x30] == "Nd"
        assert gc[0xE001] == "Cn"
        assert list(gc) == sorted(gc)

    def test_binary_property(self, ucdxml):
        assert ucdxml_get_binary_property(ucdxml, "XIDS") == [
            0x41, 0x42, 0x43, 0x61, 0x62, 0x63, 0x64,
        ]

    def test_blocks(self, ucdxml):
        assert ucdxml_get_blocks(ucdxml) == [
            (0x0, 0x7F, "Basic Latin"),
            (0x80, 0xFF, "Latin-1 Supplement"),
            (0xD800, 0xDB7F, "High Surrogates"),
        ]

    def test_property_feeds_table(self, ucdxml):
        gc = ucdxml_get_property(ucdxml, "gc")
        assert map_to_bsearch_table_default(gc) == (
            "&[\n"
            "    ('\\u{30}', '\\u{31}', Nd),\n"
            "    ('\\u{41}', '\\u{43}', Lu),\n"
            "    ('\\u{5f}', '\\u{5f}', Pc),\n"
            "    ('\\u{61}', '\\u{63}', Ll),\n"
            "    ('\\u{64}', '\\u{64}', Lu),\n"
            "    ('\\u{e000}', '\\u{e001}', Cn),\n"
            "]"
        )


# ── Driver ─────────────────────────────────────────────────────────


def _read(path):
    with open(path, encoding="utf-8") as f:
        return f.read()


class TestRustStringLiteral:
    def test_plain(self):
        assert rust_string_literal("Basic Latin") == '"Basic Latin"'

    def test_quote(self):
        assert rust_string_literal('a"b') == '"a\\"b"'

    def test_backslash(self):
        assert rust_string_literal("a\\b") == '"a\\\\b"'


class TestGenerate:
    def test_block_name_escaped(self, tmp_path):
        x = load_ucdxml(
            io.BytesIO(
                b'<ucd xmlns="http://www.unicode.org/ns/2003/ucd/1.0"><blocks>'
                b'<block first-cp="0000" last-cp="0001" name="Odd &quot;\\&quot; Block"/>'
                b"</blocks></ucd>"
            )
        )
        (path,) = generate_block(x, str(tmp_path))
        assert _read(path) == (
            PREAMBLE + "&[\n"
            "    ('\\u{0}', '\\u{1}', \"Odd \\\"\\\\\\\" Block\"),\n"
            "]\n"
        )

    def test_tables_path_no_root(self):
        assert tables_path("unic-ucd-core") == os.path.join(
            ".", "unic", "ucd", "core", "src", "tables"
        )

    def test_tables_path(self):
        assert tables_path("unic-ucd-block", "root") == os.path.join(
            "root", "unic", "ucd", "block", "src", "tables"
        )

    def test_unknown_package(self, ucdxml, tmp_path):
        out = []
        assert generate("unic-utils", ucdxml, str(tmp_path), print=out.append) == []
        assert out == ["No files to generate for crate unic-utils."]
        assert not os.path.exists(tables_path("unic-utils", str(tmp_path)))

    def test_core(self, ucdxml, tmp_path):
        files = generate("unic-ucd-core", ucdxml, str(tmp_path), print=lambda *a: None)
        assert [os.path.basename(f) for f in files] == ["unicode_version.rsv"]
        assert _read(files[0]) == (
            PREAMBLE + "UnicodeVersion { major: 15, minor: 1, micro: 0 }\n"
        )

    def test_block(self, ucdxml, tmp_path):
        (path,) = generate(
            "unic-ucd-block", ucdxml, str(tmp_path), print=lambda *a: None
        )
        assert _read(path) == (
            PREAMBLE + "&[\n"
            "    ('\\u{0}', '\\u{7f}', \"Basic Latin\"),\n"
            "    ('\\u{80}', '\\u{ff}', \"Latin-1 Supplement\"),\n"
            "]\n"
        )

    def test_category(self, ucdxml, tmp_path):
        (path,) = generate(
            "unic-ucd-category", ucdxml, str(tmp_path), print=lambda *a: None
        )
        text = _read(path)
        assert text.startswith(PREAMBLE + "&[\n")
        assert "    ('\\u{41}', '\\u{43}', GeneralCategory::Lu),\n" in text

    def test_ident(self, ucdxml, tmp_path):
        files = generate("unic-ucd-ident", ucdxml, str(tmp_path), print=lambda *a: None)
        start, cont = (_read(f) for f in files)
        assert start == (
            PREAMBLE + "&[\n"
            "    ('\\u{41}', '\\u{43}'),\n"
            "    ('\\u{61}', '\\u{64}'),\n"
            "]\n"
        )
        assert "    ('\\u{30}', '\\u{31}'),\n" in cont
        assert "    ('\\u{5f}', '\\u{5f}'),\n" in cont

    def test_clears_stale_files(self, ucdxml, tmp_path):
        path = tables_path("unic-ucd-core", str(tmp_path))
        os.makedirs(path)
        stale = os.path.join(path, "stale.rsv")
        with open(stale, "w") as f:
            f.write("old")
        generate("unic-ucd-core", ucdxml, str(tmp_path), print=lambda *a: None)
        assert not os.path.exists(stale)
        assert os.listdir(path) == ["unicode_version.rsv"]

    def test_reports_files(self, ucdxml, tmp_path):
        out = []
        files = generate("unic-ucd-core", ucdxml, str(tmp_path), print=out.append)
        assert out == ["Wrote %s" % files[0]]

    def test_all_generators_run(self, ucdxml, tmp_path):
        for package in generators:
            assert generate(package, ucdxml, str(tmp_path), print=lambda *a: None)


# ── CLI ────────────────────────────────────────────────────────────


class TestCLI:
    def _run(self, *args, input=None):
        result = subprocess.run(
            [sys.executable, "-m", "rangeTab", *args],
            capture_output=True,
            text=True,
            input=input,
        )
        return result

    def test_no_args_shows_usage(self):
        r = self._run(input="")
        assert r.returncode != 0
        assert "usage" in r.stderr.lower()

    def test_set_output(self):
        r = self._run("61", "62", "63", "64", "65", "66", "78..7a")
        assert r.returncode == 0
        assert r.stdout == (
            "&[\n"
            "    ('\\u{61}', '\\u{66}'),\n"
            "    ('\\u{78}', '\\u{7a}'),\n"
            "]\n"
        )

    def test_set_unsorted_input(self):
        r = self._run("63", "61", "62", "62")
        assert r.returncode == 0
        assert "('\\u{61}', '\\u{63}')" in r.stdout

    def test_map_output(self):
        r = self._run("--map", "61..63:Low", "64..66:Mid", "78..7a:High")
        assert r.returncode == 0
        assert r.stdout == (
            "&[\n"
            "    ('\\u{61}', '\\u{63}', Low),\n"
            "    ('\\u{64}', '\\u{66}', Mid),\n"
            "    ('\\u{78}', '\\u{7a}', High),\n"
            "]\n"
        )

    def test_map_conflict(self):
        r = self._run("--map", "61:Low", "61:Mid")
        assert r.returncode != 0
        assert "conflicting" in r.stderr

    def test_map_bad_pair(self):
        r = self._run("--map", "61")
        assert r.returncode != 0
        assert "codepoint:value" in r.stderr

    def test_surrogate_rejected(self):
        r = self._run("d800")
        assert r.returncode != 0
        assert "surrogate" in r.stderr

    def test_bad_hex(self):
        r = self._run("xyz")
        assert r.returncode != 0
        assert "invalid codepoint" in r.stderr

    def test_stdin(self):
        r = self._run(input="41 42\n43\n")
        assert r.returncode == 0
        assert "('\\u{41}', '\\u{43}')" in r.stdout

    def test_input_output_files(self, tmp_path):
        src = tmp_path / "in.txt"
        dst = tmp_path / "out.rsv"
        src.write_text("30..39\n")
        r = self._run("-i", str(src), "-o", str(dst))
        assert r.returncode == 0
        assert r.stdout == ""
        assert dst.read_text() == "&[\n    ('\\u{30}', '\\u{39}'),\n]\n"

    def test_package_requires_ucdxml(self):
        r = self._run("--package", "unic-ucd-core")
        assert r.returncode != 0
        assert "--ucdxml" in r.stderr

    def test_package(self, tmp_path):
        xml = tmp_path / "ucd.xml"
        xml.write_bytes(SAMPLE_UCDXML)
        r = self._run(
            "--ucdxml", str(xml),
            "--package", "unic-ucd-core",
            "--package", "unic-utils",
            "--root", str(tmp_path),
        )
        assert r.returncode == 0
        assert "No files to generate for crate unic-utils." in r.stdout
        path = os.path.join(tables_path("unic-ucd-core", str(tmp_path)), "unicode_version.rsv")
        assert _read(path).startswith(PREAMBLE)

    def test_help(self):
        r = self._run("--help")
        assert r.returncode == 0
        assert "rangeTab" in r.stdout
