#
# Copyright (C) 2024 netcoal developers
#
# This file is part of netcoal.
#
# netcoal is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# netcoal is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with netcoal.  If not, see <http://www.gnu.org/licenses/>.
#
"""
Core functions and classes used throughout netcoal.
"""
from __future__ import annotations

import numbers
import os
import random
from typing import Any
from typing import Dict
from typing import List

import numpy as np

__version__ = "0.1.0"


# Some machinery here for generating default random seeds. We need a map
# indexed by process ID here because we cannot use a global variable
# to store the state across multiple processes. Copy-on-write semantics
# for child processes means that they inherit the state of the parent
# process, so if we just keep a global variable without indexing by
# PID, child processes will share the same random generator as the
# parent.

_seed_rng_map: Dict[int, random.Random] = {}


def get_random_seed() -> int:
    global _seed_rng_map
    pid = os.getpid()
    if pid not in _seed_rng_map:
        # If we don't provide a seed to Random(), Python will seed either
        # from a system source of randomness (i.e., /dev/urandom) or the
        # current time if this is not available. Thus, our seed rng should
        # be unique, even across different processes.
        _seed_rng_map[pid] = random.Random()
    return _seed_rng_map[pid].randint(1, 2**32 - 1)


def locus_generators(random_seed: int, num_loci: int) -> List[np.random.Generator]:
    """
    Returns a list of independent random generators, one for each locus,
    all derived from the specified seed. Loci simulated with these
    generators are reproducible whatever order they are run in.
    """
    seed_sequence = np.random.SeedSequence(random_seed)
    return [np.random.default_rng(child) for child in seed_sequence.spawn(num_loci)]


def isinteger(value: Any) -> bool:
    """
    Returns True if the specified value can be converted losslessly to an
    integer.
    """
    if isinstance(value, bool):
        return False
    if isinstance(value, numbers.Number):
        # Mypy doesn't realise we've done an isinstance here.
        return int(value) == float(value)  # type: ignore
    return False


def _parse_flag(value: Any, *, default: bool) -> bool:
    """
    Parses a boolean flag, which can be either True, False, or None.
    If the input value is None, return the default. Otherwise,
    check that the input value is a bool.

    Note that we do *not* cast to a bool as this would accept
    truthy values like the empty list, etc. In this case None
    would be converted to False, potentially conflicting with
    the default value.
    """
    assert isinstance(default, bool)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise TypeError("Boolean flag must be True, False, or None (the default value)")
    return value


def _text_table_row(data, alignments, widths):
    num_lines = max(len(item) for item in data)
    for item in data:
        assert isinstance(item, list)
        item.extend([""] * (num_lines - len(item)))
        assert len(item) == num_lines
    s = ""
    for line in range(num_lines):
        out_line = "│"
        for value, align, width in zip(data, alignments, widths):
            out_line += f"{value[line]:{align}{width - 1}}│"
        out_line += "\n"
        s += out_line
    return s


def text_table(
    caption: str,
    column_titles: List[List[str]],
    column_alignments: List[str],
    data: List[List[List[str]]],
):
    """
    Returns a text table formatted with the specified data. Column alignments
    should be values used in Python's string formatting mini-language.

    Each item in the table should be a *list* of strings, which are the lines
    of text to be shown in that table cell.
    """
    N = len(column_titles)
    assert len(column_alignments) == N
    widths = np.array([len(title[0]) for title in column_titles], dtype=int)
    for row in data + [column_titles]:
        assert N == len(row)
        for j in range(N):
            widths[j] = max(widths[j], max([len(line) for line in row[j]], default=0))
    widths += 3

    hline = "─" * (sum(widths) - 1)
    out = f"{caption}\n"
    out += f"┌{hline}┐\n"
    out += f"{_text_table_row(column_titles, column_alignments, widths)}"
    out += f"├{hline}┤\n"
    for split_row in data:
        out += f"{_text_table_row(split_row, column_alignments, widths)}"
    out += f"└{hline}┘\n"
    return out
