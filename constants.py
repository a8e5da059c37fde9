# constants.py
# -*- coding: utf-8 -*-
#
# The Python script in this file contains lookup tables and tape format
# constants for the TRS-80 Color Computer.
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
This file contains lookup tables for the character set and the BASIC keyword tokens used by the TRS-80 Color
Computer, together with the constants that describe its cassette format.
"""

from typing import Dict, Tuple

# ASCII lookup table
ascii = r"""................................ !"#$%&'()*+,-./0123456789:;<=>?""" \
        r"""@ABCDEFGHIJKLMNOPQRSTUVWXYZ[\]^_`abcdefghijklmnopqrstuvwxyz{|}~.""" \
        r"""................................................................""" \
        r"""................................................................"""

# Only 44.1kHz recordings are accepted; the default cycle-length thresholds are expressed in samples at this rate
SAMPLE_RATE = 44100

# Default cycle-length thresholds, in samples. A 2400 Hz cycle (binary 1) is 18.4 samples long; a 1200 Hz cycle
# (binary 0) is 36.8 samples long. These were determined empirically, and may need tuning per recording.
DEFAULT_ONE_LOW = 18
DEFAULT_ONE_HIGH = 31
DEFAULT_ZERO_LOW = 32
DEFAULT_ZERO_HIGH = float('inf')

# Framing bytes
LEADER_BYTE = 0x55
SYNC_BYTE = 0x3C
LEADER_LENGTH = 128

# Block types
BLOCK_NAME = 0x00
BLOCK_DATA = 0x01
BLOCK_EOF = 0xFF

block_type_names: Dict[int, str] = {
    BLOCK_NAME: "Name",
    BLOCK_DATA: "Data",
    BLOCK_EOF: "EOF"
}

# Layout of the Namefile block
PROGRAM_NAME_LENGTH = 8
ML_START_LENGTH = 2
ML_LOAD_LENGTH = 2
NAME_BLOCK_LENGTH = 15

# File types given in the Namefile block
FILE_TYPE_BASIC = 0x00
FILE_TYPE_DATA = 0x01
FILE_TYPE_ML = 0x02

file_type_names: Dict[int, str] = {
    FILE_TYPE_BASIC: "BASIC",
    FILE_TYPE_DATA: "Data",
    FILE_TYPE_ML: "ML"
}

# ASCII flag given in the Namefile block
ASCII_FLAG_BINARY = 0x00
ASCII_FLAG_ASCII = 0xFF

ascii_flag_names: Dict[int, str] = {
    ASCII_FLAG_BINARY: "Binary",
    ASCII_FLAG_ASCII: "ASCII"
}

# Gap flag given in the Namefile block. The service manual only defines 01 and FF, but 00 is what is seen in practice.
gap_flag_names: Dict[int, str] = {
    0x00: "Unknown",
    0x01: "Continuous",
    0xFF: "Gaps"
}

# Longest line body the listing generator will accept
MAX_LINE_LENGTH = 4096

# Prefix byte which selects a function token rather than a statement token
FUNCTION_TOKEN_PREFIX = 0xFF

# Last byte value which can be a statement token
LAST_STATEMENT_TOKEN = 0xDF

# Statement and operator tokens, 0x80 to 0xDF. Entries from 0xCE are added by Disk BASIC.
statement_tokens: Tuple[str, ...] = (
    "FOR", "GO", "REM", "'", "ELSE", "IF", "DATA", "PRINT",  # 0x80
    "ON", "INPUT", "END", "NEXT", "DIM", "READ", "RUN", "RESTORE",  # 0x88
    "RETURN", "STOP", "POKE", "CONT", "LIST", "CLEAR", "NEW", "CLOAD",  # 0x90
    "CSAVE", "OPEN", "CLOSE", "LLIST", "SET", "RESET", "CLS", "MOTOR",  # 0x98
    "SOUND", "AUDIO", "EXEC", "SKIPF", "TAB(", "TO", "SUB", "THEN",  # 0xA0
    "NOT", "STEP", "OFF", "+", "-", "*", "/", "^",  # 0xA8
    "AND", "OR", ">", "=", "<", "DEL", "EDIT", "TRON",  # 0xB0
    "TROFF", "DEF", "LET", "LINE", "PCLS", "PSET", "PRESET", "SCREEN",  # 0xB8
    "PCLEAR", "COLOR", "CIRCLE", "PAINT", "GET", "PUT", "DRAW", "PCOPY",  # 0xC0
    "PMODE", "PLAY", "DLOAD", "RENUM", "FN", "USING", "DIR", "DRIVE",  # 0xC8
    "FIELD", "FILES", "KILL", "LOAD", "LSET", "MERGE", "RENAME", "RSET",  # 0xD0
    "SAVE", "WRITE", "VERIFY", "UNLOAD", "DSKINI", "BACKUP", "COPY", "DSKI$",  # 0xD8
)

# Function tokens, which follow a 0xFF prefix byte. Entries from 0xA2 are added by Disk BASIC.
function_tokens: Tuple[str, ...] = (
    "SGN", "INT", "ABS", "USR", "RND", "SIN", "PEEK", "LEN",  # 0x80
    "STR$", "VAL", "ASC", "CHR$", "EOF", "JOYSTK", "LEFT$", "RIGHT$",  # 0x88
    "MID$", "POINT", "INKEY$", "MEM", "ATN", "COS", "TAN", "EXP",  # 0x90
    "FIX", "LOG", "POS", "SQR", "HEX$", "VARPTR", "INSTR", "TIMER",  # 0x98
    "PPOINT", "STRING$", "CVN", "FREE", "LOC", "LOF", "MKN$",  # 0xA0
)
