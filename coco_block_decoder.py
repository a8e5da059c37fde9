# -*- coding: utf-8 -*-
# coco_block_decoder.py
#
# The Python script in this file turns the wave cycles found in recordings of
# TRS-80 Color Computer cassette tapes into bits, bytes and data blocks.
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
Turn the wave cycles found in a recording of a TRS-80 Color Computer cassette tape into a stream of data blocks.

A binary 1 is recorded as a single cycle at 2400 Hz, and a binary 0 as a single cycle at 1200 Hz. Bytes are recorded
least significant bit first. Each block on the tape has the form:

    55 3C <type> <length> <payload: 0-255 bytes> <checksum> 55

where the checksum is the sum, modulo 256, of the type byte, the length byte and the payload. Block types are
00 (Namefile), 01 (Data) and FF (End of File). The payload of a Namefile block always comprises 15 bytes:
an eight-character program name, file type, ASCII flag, gap flag, and the two-byte start and load addresses of
machine-language programs.
"""

import logging

from enum import Enum, IntEnum
from typing import Callable, Dict, List, NamedTuple, Optional

from constants import ascii, block_type_names
from constants import BLOCK_DATA, BLOCK_EOF, BLOCK_NAME, SYNC_BYTE
from constants import DEFAULT_ONE_HIGH, DEFAULT_ONE_LOW, DEFAULT_ZERO_HIGH, DEFAULT_ZERO_LOW
from constants import ML_LOAD_LENGTH, ML_START_LENGTH, NAME_BLOCK_LENGTH, PROGRAM_NAME_LENGTH
from hex_dump import hexdump
from tape_errors import ChecksumError


class DecodeSettings(NamedTuple):
    """
    Settings which control how the wave cycles in a recording are decoded. The four thresholds are lengths of wave
    cycles, measured in samples; both ranges are inclusive at each end.
    """
    one_low: int = DEFAULT_ONE_LOW
    one_high: int = DEFAULT_ONE_HIGH
    zero_low: int = DEFAULT_ZERO_LOW
    zero_high: float = DEFAULT_ZERO_HIGH
    debug: bool = False
    verbose: bool = False


class CycleType(Enum):
    ZERO = '0'
    ONE = '1'
    INVALID = '?'


def classify_cycle(cycle_length: int, settings: DecodeSettings) -> CycleType:
    """
    Decide whether a wave cycle looks like 2400 Hz (binary 1), 1200 Hz (binary 0), or neither (noise).

    No checks are made that the thresholds in <settings> are sensible; that is the caller's job.

    :param cycle_length:
        Length of the wave cycle, in samples
    :param settings:
        The thresholds to apply
    :return:
        CycleType
    """
    if settings.one_low <= cycle_length <= settings.one_high:
        return CycleType.ONE
    if settings.zero_low <= cycle_length <= settings.zero_high:
        return CycleType.ZERO
    return CycleType.INVALID


class BitAssembler:
    """
    Shift register which assembles bits into bytes. Bits arrive least significant bit first, so each new bit enters
    at bit 7 and the existing bits move down towards bit 0.
    """

    def __init__(self):
        self.byte_value: int = 0
        self.bit_count: int = 0

    def reset(self) -> None:
        self.byte_value = 0
        self.bit_count = 0

    def push_bit(self, bit: int) -> bool:
        """
        Shift a new bit into the register.

        :param bit:
            The bit value, 0 or 1
        :return:
            True if eight bits have now been accumulated
        """
        self.byte_value = (self.byte_value >> 1) | (0x80 if bit else 0)
        if self.bit_count < 8:
            self.bit_count += 1
        return self.bit_count == 8

    def take_byte(self) -> int:
        """
        Return the completed byte, and clear the register ready for the next one.
        """
        value = self.byte_value
        self.reset()
        return value


class BlockState(IntEnum):
    NEED_SYNC = 0
    NEED_BLOCK_TYPE = 1
    NEED_LENGTH = 2
    NEED_NAME = 3
    NEED_FILE_TYPE = 4
    NEED_ASCII_FLAG = 5
    NEED_GAP_FLAG = 6
    NEED_START_ADDR = 7
    NEED_LOAD_ADDR = 8
    NEED_DATA = 9
    NEED_CHECKSUM = 10
    NEED_LEAD_BYTE = 11
    COMPLETE = 12


class TapeBlock:
    """
    A single block read from the tape: Namefile, Data or End of File.
    """

    def __init__(self, start_position: int = 0):
        self.block_type: Optional[int] = None
        self.length: int = 0
        self.checksum: int = 0

        # Payload of Data blocks
        self.payload: bytearray = bytearray()

        # Fields of Namefile blocks
        self.program_name: bytearray = bytearray()
        self.file_type: int = 0
        self.ascii_flag: int = 0
        self.gap_flag: int = 0
        self.ml_start: bytearray = bytearray()
        self.ml_load: bytearray = bytearray()

        # Sample positions of the start and end of the block in the recording
        self.start_position: int = start_position
        self.end_position: int = start_position

    @property
    def type_name(self) -> str:
        return block_type_names.get(self.block_type, "?")

    @property
    def name(self) -> str:
        """
        The program name given in a Namefile block, with trailing padding removed.
        """
        return "".join(ascii[byte] for byte in self.program_name).rstrip()

    @property
    def ml_start_address(self) -> int:
        return int.from_bytes(self.ml_start, 'big')

    @property
    def ml_load_address(self) -> int:
        return int.from_bytes(self.ml_load, 'big')

    def body_bytes(self) -> bytes:
        """
        The bytes of the block between the length byte and the checksum, as recorded on the tape.
        """
        if self.block_type == BLOCK_NAME:
            return (bytes(self.program_name) + bytes([self.file_type, self.ascii_flag, self.gap_flag]) +
                    bytes(self.ml_start) + bytes(self.ml_load))
        return bytes(self.payload)

    def frame_bytes(self) -> bytes:
        """
        The complete block, from the sync byte to the checksum byte, as recorded on the tape.
        """
        body = self.body_bytes()
        return bytes([SYNC_BYTE, self.block_type, len(body)]) + body + bytes([self.checksum])

    def __repr__(self):
        return "<TapeBlock {} length {:d}>".format(self.type_name, self.length)


class BlockDecoder:
    """
    State machine which assembles a stream of bits from the tape into a list of blocks.

    Until a sync byte is found, every new bit is checked against the sync pattern, so that byte alignment is
    established by the sync byte itself. Thereafter, the state machine is driven once per completed byte.

    Framing errors (unknown block types, wrong lengths for Namefile or End of File blocks) cause the decoder to go
    back to searching for a sync byte. A checksum mismatch raises <ChecksumError>, which ends the run.
    """

    def __init__(self, settings: Optional[DecodeSettings] = None):
        self.settings: DecodeSettings = settings if settings is not None else DecodeSettings()
        self.assembler = BitAssembler()
        self.state: BlockState = BlockState.NEED_SYNC
        self.block: TapeBlock = TapeBlock()

        # Sample position of the bit currently being processed
        self.position: int = 0

        # Record of every completed byte, kept only when debugging
        self.byte_log: List[Dict] = []

        self._handlers: Dict[BlockState, Callable[[int], BlockState]] = {
            BlockState.NEED_BLOCK_TYPE: self._need_block_type,
            BlockState.NEED_LENGTH: self._need_length,
            BlockState.NEED_NAME: self._need_name,
            BlockState.NEED_FILE_TYPE: self._need_file_type,
            BlockState.NEED_ASCII_FLAG: self._need_ascii_flag,
            BlockState.NEED_GAP_FLAG: self._need_gap_flag,
            BlockState.NEED_START_ADDR: self._need_start_addr,
            BlockState.NEED_LOAD_ADDR: self._need_load_addr,
            BlockState.NEED_DATA: self._need_data,
            BlockState.NEED_CHECKSUM: self._need_checksum,
            BlockState.NEED_LEAD_BYTE: self._need_lead_byte
        }

    def push_bit(self, bit: int, position: int = 0) -> Optional[TapeBlock]:
        """
        Feed a single classified bit into the decoder.

        :param bit:
            The bit value, 0 or 1
        :param position:
            Sample position of this bit in the recording
        :return:
            A TapeBlock, if this bit completed one, otherwise None
        """
        self.position = position
        byte_complete = self.assembler.push_bit(bit)

        if self.state == BlockState.NEED_SYNC:
            if self.assembler.byte_value == SYNC_BYTE:
                if self.settings.debug:
                    logging.debug("Found sync byte at sample {:d}".format(position))
                self.assembler.reset()
                self.block.start_position = position
                self.state = BlockState.NEED_BLOCK_TYPE
            return None

        if not byte_complete:
            return None

        value = self.assembler.take_byte()
        if self.settings.debug:
            self.byte_log.append({
                'position': position,
                'byte': value,
                'state': self.state.name
            })
        return self.push_byte(value, position=position)

    def push_byte(self, value: int, position: Optional[int] = None) -> Optional[TapeBlock]:
        """
        Advance the state machine by one byte. While searching for sync, any byte other than the sync byte is ignored;
        use <push_bit> to find the sync byte in a stream of bits which is not yet byte aligned.

        :param value:
            The byte value, 0-255
        :param position:
            Sample position of this byte in the recording; if None, the position of the last bit is used
        :return:
            A TapeBlock, if this byte completed one, otherwise None
        """
        if position is not None:
            self.position = position

        if self.state == BlockState.NEED_SYNC:
            if value == SYNC_BYTE:
                self.block.start_position = self.position
                self.state = BlockState.NEED_BLOCK_TYPE
            return None

        self.state = self._handlers[self.state](value)

        if self.state == BlockState.NEED_SYNC:
            # Framing error: discard whatever we had of this block
            self.block = TapeBlock()
            self.assembler.reset()
            return None

        if self.state != BlockState.COMPLETE:
            return None

        completed = self.block
        completed.end_position = self.position
        self.block = TapeBlock()
        self.state = BlockState.NEED_SYNC
        return completed

    def _add_to_checksum(self, value: int) -> None:
        self.block.checksum = (self.block.checksum + value) & 0xFF

    def _need_block_type(self, value: int) -> BlockState:
        if value not in (BLOCK_NAME, BLOCK_DATA, BLOCK_EOF):
            logging.debug("Found bad block type {:02X}; resetting".format(value))
            return BlockState.NEED_SYNC

        if self.settings.debug:
            logging.debug("Found block type: {:02X}".format(value))
        self.block.block_type = value
        self.block.checksum = value
        return BlockState.NEED_LENGTH

    def _need_length(self, value: int) -> BlockState:
        if self.settings.debug:
            logging.debug("Found length: {:02X}".format(value))
        self.block.length = value
        self._add_to_checksum(value)

        if self.block.block_type == BLOCK_NAME:
            if value != NAME_BLOCK_LENGTH:
                logging.warning("Found bad length {:02X} for block type {:02X}; resetting".format(
                    value, self.block.block_type))
                return BlockState.NEED_SYNC
            return BlockState.NEED_NAME

        if self.block.block_type == BLOCK_EOF:
            if value != 0:
                logging.warning("Found bad length {:02X} for block type {:02X}; resetting".format(
                    value, self.block.block_type))
                return BlockState.NEED_SYNC
            return BlockState.NEED_CHECKSUM

        if value == 0:
            return BlockState.NEED_CHECKSUM
        return BlockState.NEED_DATA

    def _need_name(self, value: int) -> BlockState:
        self.block.program_name.append(value)
        self._add_to_checksum(value)
        if len(self.block.program_name) < PROGRAM_NAME_LENGTH:
            return BlockState.NEED_NAME
        if self.settings.debug:
            logging.debug("Name: {}".format(self.block.name))
        return BlockState.NEED_FILE_TYPE

    def _need_file_type(self, value: int) -> BlockState:
        self.block.file_type = value
        self._add_to_checksum(value)
        return BlockState.NEED_ASCII_FLAG

    def _need_ascii_flag(self, value: int) -> BlockState:
        self.block.ascii_flag = value
        self._add_to_checksum(value)
        return BlockState.NEED_GAP_FLAG

    def _need_gap_flag(self, value: int) -> BlockState:
        self.block.gap_flag = value
        self._add_to_checksum(value)
        return BlockState.NEED_START_ADDR

    def _need_start_addr(self, value: int) -> BlockState:
        self.block.ml_start.append(value)
        self._add_to_checksum(value)
        if len(self.block.ml_start) < ML_START_LENGTH:
            return BlockState.NEED_START_ADDR
        return BlockState.NEED_LOAD_ADDR

    def _need_load_addr(self, value: int) -> BlockState:
        self.block.ml_load.append(value)
        self._add_to_checksum(value)
        # The declared length of a Namefile block counts 13 of its 15 bytes
        self.block.length -= 1
        if len(self.block.ml_load) < ML_LOAD_LENGTH:
            return BlockState.NEED_LOAD_ADDR
        if self.settings.debug:
            logging.debug("Machine language start {:04X}; load {:04X}".format(self.block.ml_start_address,
                                                                              self.block.ml_load_address))
        return BlockState.NEED_CHECKSUM

    def _need_data(self, value: int) -> BlockState:
        self.block.payload.append(value)
        self._add_to_checksum(value)
        if len(self.block.payload) < self.block.length:
            return BlockState.NEED_DATA
        if self.settings.debug:
            logging.debug("Data block of {:d} bytes:\n{}".format(len(self.block.payload),
                                                                 hexdump(self.block.payload)))
        return BlockState.NEED_CHECKSUM

    def _need_checksum(self, value: int) -> BlockState:
        if self.settings.debug:
            logging.debug("Found checksum {:02X}; computed {:02X}".format(value, self.block.checksum))
        if value != self.block.checksum:
            raise ChecksumError(block_type=self.block.block_type, computed=self.block.checksum, recorded=value,
                                payload=self.block.body_bytes())
        return BlockState.NEED_LEAD_BYTE

    def _need_lead_byte(self, value: int) -> BlockState:
        if self.settings.debug:
            logging.debug("Found lead byte: {:02X}".format(value))
        return BlockState.COMPLETE
