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

from . import *
from . import codepointFor
import argparse
import sys


def parse_codepoints(token):
    """Parses ``0041`` or ``0041..005A`` (hex) into a range of codepoints."""
    if ".." in token:
        low, high = token.split("..", 1)
    else:
        low = high = token
    low, high = codepointFor(int(low, 16)), codepointFor(int(high, 16))
    if low > high:
        raise ValueError("empty range: %s" % token)
    return range(low, high + 1)


def main(args=None):
    parser = argparse.ArgumentParser(
        prog="rangeTab",
        description="Compact Unicode codepoint data into binary-search range tables.",
    )
    parser.add_argument(
        "data",
        nargs="*",
        help=(
            "hex codepoints or low..high ranges, or codepoint:value pairs "
            "with --map (reads from stdin if not provided)"
        ),
    )
    parser.add_argument(
        "--map",
        action="store_true",
        help="treat data as 'codepoint:value' pairs; values are emitted verbatim",
    )
    parser.add_argument(
        "-i",
        "--input",
        type=str,
        metavar="FILE",
        help="read data from FILE (default: positional args or stdin)",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=str,
        metavar="FILE",
        help="write output to FILE instead of stdout",
    )
    parser.add_argument(
        "--ucdxml",
        type=str,
        metavar="FILE",
        help="UCD XML file (optionally zipped) to generate crate tables from",
    )
    parser.add_argument(
        "--package",
        action="append",
        default=[],
        metavar="NAME",
        help="crate to generate tables for (repeatable; requires --ucdxml)",
    )
    parser.add_argument(
        "--root",
        default=".",
        metavar="DIR",
        help="directory crate paths are relative to (default: .)",
    )

    parsed = parser.parse_args(args)

    # Generate crate tables from the UCD.
    if parsed.package:
        if not parsed.ucdxml:
            parser.error("--package requires --ucdxml")
        if parsed.data or parsed.input:
            parser.error("--package does not take data")
        from .generate import generate
        from .ucdxml import load_ucdxml

        ucdxml = load_ucdxml(parsed.ucdxml)
        for package in parsed.package:
            generate(package, ucdxml, parsed.root)
        return 0

    # Read data from input file, positional args, or stdin
    if parsed.input:
        with open(parsed.input, "r") as f:
            parsed.data = f.read().strip().split()
        if not parsed.data:
            parser.error(f"no data in input file: {parsed.input}")
    elif not parsed.data:
        stdin_text = sys.stdin.read().strip()
        if not stdin_text:
            parser.error("no data provided (use positional args, -i, or stdin)")
        parsed.data = stdin_text.split()

    if parsed.map:
        # Parse codepoint:value pairs
        mapping = {}
        try:
            for item in parsed.data:
                if ":" not in item:
                    parser.error(f"--map requires 'codepoint:value' format, got: {item}")
                cps, value = item.split(":", 1)
                for cp in parse_codepoints(cps):
                    if mapping.get(cp, value) != value:
                        parser.error(f"conflicting values for U+{cp:04X}")
                    mapping[cp] = value
        except (ValueError, TypeError) as e:
            parser.error(f"invalid codepoint:value pair: {e}")
        table = map_to_bsearch_table_default(dict(sorted(mapping.items())))
    else:
        codepoints = set()
        try:
            for item in parsed.data:
                codepoints.update(parse_codepoints(item))
        except (ValueError, TypeError) as e:
            parser.error(f"invalid codepoint: {e}")
        table = set_to_bsearch_table(sorted(codepoints))

    if parsed.output:
        with open(parsed.output, "w") as f:
            print(table, file=f)
    else:
        print(table)

    return 0


if __name__ == "__main__":
    sys.exit(main())
