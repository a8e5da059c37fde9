# -*- coding: utf-8 -*-
# cas_file_builder.py
#
# The Python script in this file produces CAS representations of TRS-80
# Color Computer tapes.
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
Compile and write CAS files used by Color Computer emulators such as XRoar and MAME.

A CAS file is simply the stream of bytes recorded on the tape: leader bytes, followed by each block in turn.
"""

from constants import BLOCK_NAME, LEADER_BYTE, LEADER_LENGTH


class CasFileBuilder:
    """
    Class to compile and write CAS files used by Color Computer emulators such as XRoar and MAME.
    """

    def __init__(self):
        """
        Class to compile and write CAS files used by Color Computer emulators such as XRoar and MAME.
        """

        # First compile output into a buffer
        self.output = bytearray()

        # Type of the last block written, used to decide where a full-length leader is needed
        self.previous_block_type = None

    def write_to_file(self, filename: str) -> None:
        """
        Write CAS file to disk.

        :param filename:
            Filename for output CAS file.
        :return:
            None
        """

        with open(filename, "wb") as f_out:
            f_out.write(self.output)

    def add_leader(self, length: int = LEADER_LENGTH) -> None:
        """
        Add a leader of 55 bytes to the output.

        :param length:
            Number of leader bytes
        :return:
            None
        """

        self.output.extend(bytes([LEADER_BYTE]) * length)

    def add_block(self, block) -> None:
        """
        Add a block to the output. A full-length leader is written before each Namefile block, and before the first
        block after a Namefile block; every other block is preceded by a single leader byte.

        :param block:
            TapeBlock to write
        :return:
            None
        """

        if block.block_type == BLOCK_NAME or self.previous_block_type == BLOCK_NAME:
            self.add_leader()
        else:
            self.add_leader(length=1)

        # Sync byte, block type, length, payload and checksum
        self.output.extend(block.frame_bytes())

        # Trailing leader byte
        self.output.append(LEADER_BYTE)

        self.previous_block_type = block.block_type
