# -*- coding: utf-8 -*-
# hex_dump.py
#
# The Python script in this file renders blocks of bytes as a hex dump, for
# diagnostic output.
#
# Copyright (C) 2022-2024 Dominic Ford <https://dcford.org.uk/>
#
# This code is free software; you can redistribute it and/or modify it under
# the terms of the GNU General Public License as published by the Free Software
# Foundation; either version 3 of the License, or (at your option) any later
# version.
#
# You should have received a copy of the GNU General Public License along with
# this file; if not, write to the Free Software Foundation, Inc., 51 Franklin
# Street, Fifth Floor, Boston, MA  02110-1301, USA

# ----------------------------------------------------------------------------

"""
Render blocks of bytes as a hex dump, for diagnostic output.
"""

from typing import List, Sequence

from constants import ascii


def hexdump(data: Sequence[int], bytes_per_line: int = 16) -> str:
    """
    Render a string of bytes as a hex dump, with an offset column, the hex value of each byte, and the printable
    characters. Runs of identical lines are collapsed into a count.

    :param data:
        The bytes to render
    :param bytes_per_line:
        The number of bytes to show on each line of output
    :return:
        Multi-line string
    """

    separator = " |  "
    output: List[str] = []
    previous_line = None
    repeat_count = 0

    for offset in range(0, len(data), bytes_per_line):
        chunk = data[offset:offset + bytes_per_line]

        # Pad the hex column of a short final line, so that the character column stays aligned
        hex_part = "".join("{:02X} ".format(byte) for byte in chunk)
        hex_part += " " * (3 * (bytes_per_line - len(chunk)))
        line = hex_part + separator + "".join(ascii[byte] for byte in chunk)

        if line == previous_line:
            repeat_count += 1
            continue

        if repeat_count:
            output.append("    Last line repeated {:d} time(s)".format(repeat_count))
        output.append("{:08x} {:s}".format(offset, line))
        previous_line = line
        repeat_count = 0

    if repeat_count:
        output.append("    Last line repeated {:d} time(s)".format(repeat_count))

    return "\n".join(output)
