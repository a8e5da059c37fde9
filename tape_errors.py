# -*- coding: utf-8 -*-
# tape_errors.py
#
# The Python script in this file defines the exceptions raised when a
# cassette recording cannot be decoded.
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
Exceptions raised when a cassette recording cannot be decoded.

TapeError (base)
├── WavFormatError - the input file is not a 16-bit mono 44.1kHz PCM WAV file
└── TapeDecodeError - fatal condition found while decoding; the run stops
    ├── ChecksumError - block checksum does not match the byte recorded on the tape
    ├── ListingFormatError - BASIC line records are out of sequence, or truncated
    └── LineTooLongError - BASIC line does not fit in the line buffer

Framing errors (bad block type, bad length for a Name or EOF block) are not represented here: they are recovered
from inside the block decoder by searching for the next sync byte.
"""

from typing import Optional


class TapeError(Exception):
    """
    Base exception for all errors raised while reading a cassette recording.
    """
    pass


class WavFormatError(TapeError):
    """
    The input audio file could not be read, or is in a format we do not support.
    """
    pass


class TapeDecodeError(TapeError):
    """
    Fatal error encountered while decoding the contents of the tape.

    :ivar payload:
        The raw bytes of the block implicated in the error, for diagnostic dumps
    """

    def __init__(self, message: str, payload: Optional[bytes] = None):
        super().__init__(message)
        self.payload: bytes = bytes(payload) if payload is not None else b""


class ChecksumError(TapeDecodeError):
    """
    The checksum computed over a block does not match the checksum byte recorded on the tape.
    """

    def __init__(self, block_type: int, computed: int, recorded: int, payload: Optional[bytes] = None):
        super().__init__("Checksum mismatch in block type {:02X}: computed {:02X}; tape says {:02X}".format(
            block_type, computed, recorded), payload=payload)
        self.block_type = block_type
        self.computed = computed
        self.recorded = recorded


class ListingFormatError(TapeDecodeError):
    """
    The line records in the BASIC program have lost synchronisation.
    """
    pass


class LineTooLongError(TapeDecodeError):
    """
    A BASIC line was longer than the line buffer.
    """
    pass
