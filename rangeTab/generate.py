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
Write the generated table sources of UNIC-style crates.

Each crate name (``unic-ucd-block``) maps to a tables directory
(``unic/ucd/block/src/tables``) and to a routine that renders one or
more ``.rsv`` files into it from the UCD XML.  The directory is wiped
before generating so stale tables never survive.
"""

import os
import shutil
from typing import Callable, Dict, List

from . import map_to_bsearch_table, set_to_bsearch_table, surrogates
from .ucdxml import (
    ucdxml_get_binary_property,
    ucdxml_get_blocks,
    ucdxml_get_property,
    ucdxml_get_version,
)

__all__ = [
    "PREAMBLE",
    "generate",
    "generators",
    "tables_path",
]

PREAMBLE = "// WARNING: Auto-generated by unic-gen. DO NOT EDIT MANUALLY!\n"


def tables_path(package: str, root: str = ".") -> str:
    """Turns a crate name into the path to its tables folder.

    >>> tables_path("unic-ucd-core").split(os.sep)
    ['.', 'unic', 'ucd', 'core', 'src', 'tables']
    """
    return os.path.join(root, *package.split("-"), "src", "tables")


def rust_string_literal(s):
    r"""Quotes ``s`` as a Rust string literal.

    >>> print(rust_string_literal('Say "hi" \\ bye'))
    "Say \"hi\" \\ bye"
    """
    return '"%s"' % s.replace("\\", "\\\\").replace('"', '\\"')


def _write(path, name, table):
    filename = os.path.join(path, name)
    with open(filename, "w", encoding="utf-8", newline="\n") as f:
        f.write(PREAMBLE)
        f.write(table)
        f.write("\n")
    return filename


def generate_core(ucdxml, path):
    major, minor, micro = ucdxml_get_version(ucdxml)
    version = "UnicodeVersion { major: %d, minor: %d, micro: %d }" % (
        major,
        minor,
        micro,
    )
    return [_write(path, "unicode_version.rsv", version)]


def generate_block(ucdxml, path):
    blocks = {}
    for first, last, name in ucdxml_get_blocks(ucdxml):
        for cp in range(first, last + 1):
            if cp not in surrogates:
                blocks[cp] = name
    table = map_to_bsearch_table(
        dict(sorted(blocks.items())), rust_string_literal
    )
    return [_write(path, "blocks.rsv", table)]


def generate_category(ucdxml, path):
    gc = ucdxml_get_property(ucdxml, "gc")
    table = map_to_bsearch_table(gc, lambda v: "GeneralCategory::%s" % v)
    return [_write(path, "general_category.rsv", table)]


def generate_ident(ucdxml, path):
    files = []
    for prop, name in (("XIDS", "xid_start.rsv"), ("XIDC", "xid_continue.rsv")):
        table = set_to_bsearch_table(ucdxml_get_binary_property(ucdxml, prop))
        files.append(_write(path, name, table))
    return files


generators: Dict[str, Callable] = {
    "unic-ucd-core": generate_core,
    "unic-ucd-block": generate_block,
    "unic-ucd-category": generate_category,
    "unic-ucd-ident": generate_ident,
}


def generate(package: str, ucdxml, root: str = ".", *, print=print) -> List[str]:
    """Generates the sources for one crate.

    Args:
        package: Crate name, e.g. ``unic-ucd-block``.
        ucdxml: Parsed UCD XML, see ``ucdxml.load_ucdxml()``.
        root: Directory the crate paths are relative to.
        print: Where progress messages go.

    Returns:
        Paths of the files written; empty if the crate has no tables.
    """
    generator = generators.get(package)
    if generator is None:
        print("No files to generate for crate %s." % package)
        return []

    path = tables_path(package, root)
    if os.path.exists(path):
        shutil.rmtree(path)
    os.makedirs(path)
    files = generator(ucdxml, path)
    for filename in files:
        print("Wrote %s" % filename)
    return files
