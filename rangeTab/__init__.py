# Copyright 2019 Facebook Inc. All Rights Reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Compact Unicode codepoint data into binary-search range tables.

Overview
--------

Character property data is naturally stored one codepoint at a time: a
mapping from codepoint to value (e.g. General Category) or a plain set
of codepoints (e.g. XID_Start).  Generated lookup code does not want
one entry per codepoint; it wants a short, sorted list of inclusive
ranges that can be binary searched:

    &[
        ('\\u{61}', '\\u{63}', Low),
        ('\\u{64}', '\\u{66}', Mid),
    ]

Compaction
----------

``compact_ranges()`` walks the entries in ascending codepoint order and
keeps one range open.  An entry extends the open range when its
codepoint is exactly ``high + 1`` and (for mappings) its value equals
the range's value; otherwise the open range is emitted and a new one
starts.  Equal values separated by a gap are never merged.

The input must already be sorted and free of duplicates.  An entry
whose codepoint is not past the open range's high bound means the
caller handed us malformed data; that trips an assertion instead of
producing a wrong table.

``compact_map()`` and ``compact_set()`` are the two variants; they only
differ in whether values are compared.

Rendering
---------

``render_ranges()`` prints each range as a Rust tuple of char literals
(``char::escape_unicode`` notation: lowercase hex, no padding) plus an
optional formatted value, wrapped in an ``&[...]`` slice literal.  The
result is meant to be written to a ``.rsv`` file and pulled in with
``include!``.
"""

import sys
import collections
from typing import Any, Callable, Iterable, Iterator, List, Mapping, Optional, Tuple, Union


__all__ = [
    "Range",
    "compact_ranges",
    "compact_map",
    "compact_set",
    "expand_ranges",
    "escape_unicode",
    "render_ranges",
    "map_to_bsearch_table",
    "map_to_bsearch_table_default",
    "set_to_bsearch_table",
]

__version__ = "1.0.0"


maxCodepoint = 0x10FFFF
surrogates = range(0xD800, 0xE000)


class Range(collections.namedtuple("Range", ("low", "high", "value"), defaults=(None,))):
    """An inclusive run of codepoints sharing one value.

    ``value`` is None for ranges produced from a set.
    """

    __slots__ = ()

    def codepoints(self):
        return range(self.low, self.high + 1)


def codepointFor(c):
    """Normalizes a codepoint given as an int or a one-character str.

    >>> codepointFor('a')
    97
    >>> codepointFor(0x10FFFF)
    1114111
    """
    if isinstance(c, str):
        if len(c) != 1:
            raise TypeError("expected a single character, got %r" % c)
        c = ord(c)
    elif not isinstance(c, int) or isinstance(c, bool):
        raise TypeError("codepoint must be an int or a character, got %r" % (c,))
    if not 0 <= c <= maxCodepoint:
        raise ValueError("codepoint out of range: 0x%X" % c)
    if c in surrogates:
        raise ValueError("surrogate codepoint: 0x%X" % c)
    return c


def escape_unicode(c) -> str:
    """Returns the ``\\u{...}`` escape for a codepoint.

    Hex digits are lowercase and never zero-padded, so the same
    codepoint always produces the same bytes.

    >>> print(escape_unicode('a'))
    \\u{61}
    >>> print(escape_unicode(0))
    \\u{0}
    >>> print(escape_unicode(0x1F600))
    \\u{1f600}
    """
    return "\\u{%x}" % codepointFor(c)


def compact_ranges(
    entries: Iterable[Tuple[Any, Any]],
    same: Optional[Callable[[Any, Any], bool]] = None,
) -> Iterator[Range]:
    """Merges ``(codepoint, value)`` entries into maximal ranges.

    Args:
        entries: Pairs in strictly ascending codepoint order.
        same: Value equality predicate.  None means values are ignored
            and every range carries ``value=None`` (set semantics).

    Yields:
        Range objects in ascending, non-overlapping order.

    Raises:
        AssertionError: If a codepoint is not greater than the high
            bound of the range before it (unsorted or duplicate input).
    """
    entries = iter(entries)
    first = next(entries, None)
    if first is None:
        return

    low, value = first
    low = codepointFor(low)
    if same is None:
        value = None
    high = low

    for c, v in entries:
        c = codepointFor(c)
        if c <= high:
            # Not an assert: must still fire under -O.
            raise AssertionError(
                "codepoints out of order: 0x%X after 0x%X" % (c, high)
            )
        if c == high + 1 and (same is None or same(v, value)):
            high = c
            continue
        yield Range(low, high, value)
        low = high = c
        value = None if same is None else v

    yield Range(low, high, value)


def _items(mapping):
    if hasattr(mapping, "items"):
        return mapping.items()
    return mapping


def compact_map(mapping) -> List[Range]:
    """Compacts an ordered codepoint → value association.

    ``mapping`` is a Mapping iterated in ascending key order, or an
    iterable of ``(codepoint, value)`` pairs.
    """
    return list(compact_ranges(_items(mapping), same=lambda a, b: a == b))


def compact_set(codepoints) -> List[Range]:
    """Compacts an ascending iterable of codepoints."""
    return list(compact_ranges((c, None) for c in codepoints))


def expand_ranges(ranges: Iterable[Range]) -> Iterator[Tuple[int, Any]]:
    """Inverse of compaction: yields ``(codepoint, value)`` for every
    codepoint covered by ``ranges``."""
    for r in ranges:
        for c in r.codepoints():
            yield c, r.value


def render_ranges(
    ranges: Iterable[Range],
    display: Optional[Callable[[Any], Any]] = None,
) -> str:
    """Renders ranges as a Rust slice literal.

    With ``display`` each line is a ``(low, high, value)`` triple whose
    value is ``display(range.value)``; without it each line is a
    ``(low, high)`` duple and range values are not emitted, so ranges
    from ``compact_map()`` need a ``display``.  An empty sequence
    renders as ``&[]``.

    >>> print(render_ranges([Range(0x61, 0x66), Range(0x78, 0x7a)]))
    &[
        ('\\u{61}', '\\u{66}'),
        ('\\u{78}', '\\u{7a}'),
    ]
    >>> render_ranges([])
    '&[]'
    """
    lines = []
    for r in ranges:
        low, high = escape_unicode(r.low), escape_unicode(r.high)
        if display is None:
            lines.append("    ('%s', '%s'),\n" % (low, high))
        else:
            lines.append("    ('%s', '%s', %s),\n" % (low, high, display(r.value)))
    if not lines:
        return "&[]"
    return "&[\n" + "".join(lines) + "]"


def map_to_bsearch_table(
    mapping: Union[Mapping[Any, Any], Iterable[Tuple[Any, Any]]],
    display: Optional[Callable[[Any], Any]] = None,
) -> str:
    """Compacts and renders a codepoint → value association.

    Args:
        mapping: Ordered association, ascending by codepoint with no
            duplicate keys.
        display: Turns a value into the Rust expression to emit.
            Defaults to ``str``.

    Returns:
        The table text, see ``render_ranges()``.
    """
    if display is None:
        display = str
    return render_ranges(compact_map(mapping), display)


def map_to_bsearch_table_default(mapping) -> str:
    """Shorthand for values that already are the Rust expression to emit."""
    return map_to_bsearch_table(mapping, str)


def set_to_bsearch_table(codepoints: Iterable[Any]) -> str:
    """Compacts and renders an ascending set of codepoints."""
    return render_ranges(compact_set(codepoints))


if __name__ == "__main__":
    import doctest

    sys.exit(doctest.testmod().failed)
