# -*- coding: utf-8 -*-
# list_coco_basic.py
#
# The Python script in this file produces listings of BASIC programs saved
# to cassette by the TRS-80 Color Computer.
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
Produce listings of BASIC programs saved to cassette by the TRS-80 Color Computer.

Tokenized BASIC programs are stored as a sequence of line records, which run on from one Data block into the next:

    Offset   Type    Value
    0        byte    Next line block number
    1        byte    Next line offset within that block
    2:3      word    Line number (big endian)
    4-       bytes   Tokenized line, terminated by a null byte

The first byte of the first Data block is the block number of that block (usually 1E), and the next line block
number of each record should be either the current block number or the following one. The next line offset is not
used to find the end of each line: it is inconsistent between blocks (one byte too far when it points into the first
Data block, correct for the second, one byte short for the third, and so on). Instead we search for the null byte
which terminates each line.

The program ends with two or three null bytes.
"""

import logging

from typing import Iterator, List, Sequence, Tuple

from constants import BLOCK_DATA, FUNCTION_TOKEN_PREFIX, LAST_STATEMENT_TOKEN, MAX_LINE_LENGTH
from constants import function_tokens, statement_tokens
from hex_dump import hexdump
from tape_errors import LineTooLongError, ListingFormatError


def render_line(body: Sequence[int]) -> str:
    """
    Turn the bytes of a tokenized BASIC line into text. Printable ASCII characters are passed through, statement
    tokens (80 to DF) and function tokens (FF followed by 80 upwards) are replaced by their keywords, and anything
    else is shown as a \\xHH escape.

    :param body:
        The bytes of the line, excluding the line number and the terminating null
    :return:
        String
    """
    output: List[str] = []
    position = 0

    while position < len(body):
        byte = body[position]

        if 0x20 <= byte <= 0x7E:
            output.append(chr(byte))
        elif byte == FUNCTION_TOKEN_PREFIX:
            position += 1
            if position >= len(body):
                output.append("\\x{:02X}".format(byte))
                break
            function_byte = body[position]
            if 0x80 <= function_byte < 0x80 + len(function_tokens):
                output.append(function_tokens[function_byte - 0x80])
            else:
                output.append("\\x{:02X}\\x{:02X}".format(byte, function_byte))
        elif 0x80 <= byte <= LAST_STATEMENT_TOKEN:
            output.append(statement_tokens[byte - 0x80])
        else:
            output.append("\\x{:02X}".format(byte))

        position += 1

    return "".join(output)


def render_text(data: Sequence[int]) -> str:
    """
    Turn the bytes of a line of plain text into a string, showing any unprintable characters as \\xHH escapes.
    """
    return "".join(chr(byte) if 0x20 <= byte <= 0x7E else "\\x{:02X}".format(byte) for byte in data)


class DataBlockCursor:
    """
    Cursor which reads through the payloads of a sequence of Data blocks as if they were one continuous stream,
    keeping count of the block number as it crosses from one block into the next.
    """

    def __init__(self, payloads: Sequence[bytes]):
        self.payloads: List[bytes] = [bytes(payload) for payload in payloads if len(payload) > 0]
        self.block_index: int = 0
        self.offset: int = 0

        # Running block number, which we check against the first byte of each line record
        self.block_number: int = self.payloads[0][0] if self.payloads else 0

    @property
    def exhausted(self) -> bool:
        return self.block_index >= len(self.payloads)

    @property
    def current_payload(self) -> bytes:
        if self.exhausted:
            return b""
        return self.payloads[self.block_index]

    def remaining_in_block(self) -> bytes:
        return self.current_payload[self.offset:]

    def remaining_in_stream(self) -> bytes:
        return self.remaining_in_block() + b"".join(self.payloads[self.block_index + 1:])

    def read_byte(self) -> int:
        """
        Read the next byte, moving on to the next block when the end of the current one is reached.
        """
        if self.exhausted:
            raise ListingFormatError("Program data ends in the middle of a line",
                                     payload=self.payloads[-1] if self.payloads else b"")

        value = self.payloads[self.block_index][self.offset]
        self.offset += 1
        if self.offset == len(self.payloads[self.block_index]):
            self.block_index += 1
            self.offset = 0
            self.block_number = (self.block_number + 1) & 0xFF
        return value

    def at_end_of_program(self) -> bool:
        """
        Test whether all that is left of the program is its trailing null bytes.
        """
        if self.exhausted:
            return True

        rest_of_block = self.remaining_in_block()
        if len(rest_of_block) in (2, 3) and not any(rest_of_block):
            return True

        # The trailing nulls may be split between the last two blocks
        rest_of_stream = self.remaining_in_stream()
        return len(rest_of_stream) <= 3 and not any(rest_of_stream)


def fetch_line_records(payloads: Sequence[bytes]) -> Iterator[Tuple[int, bytes]]:
    """
    Walk through the line records in the payloads of the Data blocks of a tokenized BASIC program.

    :param payloads:
        The payloads of each Data block, in the order they appear on the tape
    :return:
        Iterator over (line number, tokenized line body)
    """
    cursor = DataBlockCursor(payloads=payloads)

    while not cursor.at_end_of_program():
        # Check that the line starts with the number of this block or the next one
        block_number = cursor.block_number
        block_payload = cursor.current_payload
        next_line_block = cursor.read_byte()
        if next_line_block not in (block_number, (block_number + 1) & 0xFF):
            logging.debug("Bad line record in block:\n{}".format(hexdump(block_payload)))
            raise ListingFormatError("Bad start of line: {:02X} != {:02X}, at offset {:02X}".format(
                next_line_block, block_number, cursor.offset - 1 if cursor.offset else len(block_payload) - 1),
                payload=block_payload)

        # Next line offset is not used; see above
        cursor.read_byte()

        line_number = cursor.read_byte() << 8
        line_number |= cursor.read_byte()

        body = bytearray()
        while True:
            byte = cursor.read_byte()
            if byte == 0:
                break
            body.append(byte)
            if len(body) >= MAX_LINE_LENGTH:
                raise LineTooLongError("Line {:d} too big for buffer ({:d} >= {:d})".format(
                    line_number, len(body), MAX_LINE_LENGTH), payload=cursor.current_payload)

        yield line_number, bytes(body)


def create_listing_from_blocks(block_list: Sequence) -> List[str]:
    """
    Produce a listing of a tokenized BASIC program.

    :param block_list:
        The blocks which make up the program. Only the Data blocks are used.
    :return:
        List of lines of the form "<line number> <text>"
    """
    payloads = [block.payload for block in block_list if block.block_type == BLOCK_DATA]

    return ["{:d} {:s}".format(line_number, render_line(body))
            for line_number, body in fetch_line_records(payloads=payloads)]


def create_listing_from_ascii(block_list: Sequence) -> List[str]:
    """
    Produce a listing of a BASIC program which was saved in ASCII format. Lines are terminated by carriage returns.

    :param block_list:
        The blocks which make up the program. Only the Data blocks are used.
    :return:
        List of lines
    """
    data = b"".join(bytes(block.payload) for block in block_list if block.block_type == BLOCK_DATA)
    lines = data.split(b"\r")

    # Discard anything after the final carriage return, if it is only padding
    if not lines[-1].strip(b"\n\0"):
        lines = lines[:-1]

    return [render_text(line.lstrip(b"\n")) for line in lines]
