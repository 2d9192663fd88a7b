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

"""Read character data from the XML form of the Unicode Character Database
(``ucd.all.flat.xml`` / ``ucd.all.grouped.xml``, optionally zipped)."""

import re
import zipfile

from lxml import objectify

from . import surrogates

__all__ = [
    "load_ucdxml",
    "ucdxml_get_repertoire",
    "ucdxml_get_property",
    "ucdxml_get_binary_property",
    "ucdxml_get_blocks",
    "ucdxml_get_version",
]

_repertoireTags = ("char", "noncharacter", "reserved", "surrogate")


def _localName(elt):
    tag = elt.tag
    if not isinstance(tag, str):
        # Comments and processing instructions.
        return None
    return tag.rsplit("}", 1)[-1]


def _process_element(elt, ucd, attrs=None):
    name = _localName(elt)
    if name == "group":
        g = elt.attrib
        for child in elt.iterchildren():
            _process_element(child, ucd, g)
    elif name in _repertoireTags:
        if name == "surrogate":
            return
        if attrs is None:
            u = dict(elt.attrib)
        else:
            u = dict(attrs)
            u.update(elt.attrib)

        if "cp" in u:
            cp = int(u.pop("cp"), 16)
            cps = range(cp, cp + 1)
        else:
            first_cp = int(u.pop("first-cp"), 16)
            last_cp = int(u.pop("last-cp"), 16)
            cps = range(first_cp, last_cp + 1)
        for cp in cps:
            if cp not in surrogates:
                ucd[cp] = u


def load_ucdxml(s):
    """Parses UCD XML from a file object, a zip archive holding it, or a
    plain file path."""
    if hasattr(s, "read"):
        s = s.read()
    else:
        if zipfile.is_zipfile(s):
            with zipfile.ZipFile(s) as z:
                with z.open(z.namelist()[0]) as f:
                    s = f.read()
        else:
            with open(s, "rb") as f:
                s = f.read()

    return objectify.fromstring(s)


def ucdxml_get_repertoire(ucdxml):
    """Returns codepoint → attribute dict, in ascending codepoint order.

    Attributes inherited from ``<group>`` are merged in.  Surrogates are
    left out; they are not scalar values.  Elements sharing one span
    (``first-cp``/``last-cp``) share one dict.
    """
    ucd = {}
    for elt in ucdxml.repertoire.iterchildren():
        _process_element(elt, ucd)
    return dict(sorted(ucd.items()))


def ucdxml_get_property(ucdxml, name, repertoire=None):
    """Returns the ordered codepoint → value association for one property.

    Codepoints without the attribute are skipped.
    """
    if repertoire is None:
        repertoire = ucdxml_get_repertoire(ucdxml)
    return {cp: u[name] for cp, u in repertoire.items() if name in u}


def ucdxml_get_binary_property(ucdxml, name, repertoire=None):
    """Returns the ascending list of codepoints where a binary property is Y."""
    if repertoire is None:
        repertoire = ucdxml_get_repertoire(ucdxml)
    return [cp for cp, u in repertoire.items() if u.get(name) == "Y"]


def ucdxml_get_blocks(ucdxml):
    """Returns ``(first, last, name)`` for every block, in file order."""
    blocks = []
    for elt in ucdxml.blocks.iterchildren():
        if _localName(elt) != "block":
            continue
        blocks.append(
            (
                int(elt.get("first-cp"), 16),
                int(elt.get("last-cp"), 16),
                elt.get("name"),
            )
        )
    return blocks


def ucdxml_get_version(ucdxml):
    """Returns ``(major, minor, micro)`` from the ``<description>`` text,
    e.g. ``Unicode 15.1.0``."""
    for elt in ucdxml.iterchildren():
        if _localName(elt) == "description":
            m = re.search(r"(\d+)\.(\d+)\.(\d+)", elt.text or "")
            if m:
                return tuple(int(g) for g in m.groups())
    raise ValueError("no Unicode version in UCD XML description")


if __name__ == "__main__":
    import sys

    print(ucdxml_get_version(load_ucdxml(sys.argv[1])))
