"""
Tests for the BASIC listing generator.
"""

import pytest

from coco_block_decoder import TapeBlock
from list_coco_basic import (
    DataBlockCursor,
    create_listing_from_ascii,
    create_listing_from_blocks,
    fetch_line_records,
    render_line,
)
from tape_errors import LineTooLongError, ListingFormatError
from tape_synthesis import make_basic_payloads


def data_blocks(payloads):
    blocks = []
    for payload in payloads:
        block = TapeBlock()
        block.block_type = 0x01
        block.length = len(payload)
        block.payload = bytearray(payload)
        blocks.append(block)
    return blocks


# =============================================================================
# Token substitution
# =============================================================================

class TestRenderLine:

    def test_statement_token(self):
        assert render_line(bytes([0x80])) == "FOR"

    def test_function_token(self):
        assert render_line(bytes([0xFF, 0x80])) == "SGN"

    def test_unmapped_byte_is_escaped(self):
        assert render_line(bytes([0x01])) == "\\x01"

    def test_printable_characters(self):
        assert render_line(b'A$="HI"') == 'A$="HI"'

    def test_last_tokens_of_each_table(self):
        assert render_line(bytes([0xDF])) == "DSKI$"
        assert render_line(bytes([0xFF, 0xA6])) == "MKN$"

    def test_byte_after_statement_range_is_escaped(self):
        assert render_line(bytes([0xE0])) == "\\xE0"
        assert render_line(bytes([0xFE])) == "\\xFE"

    def test_mixed_line(self):
        body = bytes([0x85]) + b" A" + bytes([0xB3]) + b"1 " + bytes([0xA7]) + b" " + bytes([0x87]) + b" " + \
            bytes([0xFF, 0x8E]) + b'(B$,2)'
        assert render_line(body) == "IF A=1 THEN PRINT LEFT$(B$,2)"

    def test_unknown_function_token(self):
        assert render_line(bytes([0xFF, 0xF0])) == "\\xFF\\xF0"

    def test_dangling_function_prefix(self):
        assert render_line(b"X" + bytes([0xFF])) == "X\\xFF"


# =============================================================================
# Line records
# =============================================================================

class TestFetchLineRecords:

    def test_single_block(self, sample_lines):
        records = list(fetch_line_records(make_basic_payloads(sample_lines)))
        assert records == sample_lines

    def test_lines_split_across_blocks(self, sample_lines):
        single = create_listing_from_blocks(data_blocks(make_basic_payloads(sample_lines)))
        for block_size in (5, 7, 11, 13, 17):
            payloads = make_basic_payloads(sample_lines, block_size=block_size)
            assert len(payloads) > 1
            assert create_listing_from_blocks(data_blocks(payloads)) == single

    def test_body_split_with_terminator_in_next_block(self):
        # The body of line 10 runs past the end of the first block; its terminator is in the second
        lines = [(10, bytes([0x87]) + b'"ABCDEFG"')]
        payloads = make_basic_payloads(lines, block_size=8)
        assert payloads[0][-1] != 0
        assert create_listing_from_blocks(data_blocks(payloads)) == ['10 PRINT"ABCDEFG"']

    def test_three_trailing_nulls_end_program(self):
        payload = bytes([0x1E, 0x00, 0x00, 0x0A, 0x41, 0x00, 0x00, 0x00, 0x00])
        assert list(fetch_line_records([payload])) == [(10, b"A")]

    def test_bad_line_start_is_fatal(self):
        payload = bytes([0x1E, 0x00, 0x00, 0x0A, 0x41, 0x00,
                         0x30, 0x00, 0x00, 0x14, 0x42, 0x00,
                         0x00, 0x00])
        with pytest.raises(ListingFormatError) as excinfo:
            list(fetch_line_records([payload]))
        assert excinfo.value.payload == payload

    def test_next_block_number_accepted(self):
        assert list(fetch_line_records([bytes([0x1E, 0x00, 0x00, 0x0A, 0x41, 0x00,
                                               0x1F, 0x00, 0x00, 0x14, 0x42, 0x00,
                                               0x00, 0x00])])) == [(10, b"A"), (20, b"B")]

    def test_truncated_program_is_fatal(self):
        payload = bytes([0x1E, 0x00, 0x00, 0x0A, 0x41, 0x42])
        with pytest.raises(ListingFormatError):
            list(fetch_line_records([payload]))

    def test_line_too_long_is_fatal(self):
        stream = bytes([0x1E, 0x00, 0x00, 0x0A]) + b"A" * 4200 + bytes([0x00, 0x00, 0x00])
        payloads = [stream[start:start + 255] for start in range(0, len(stream), 255)]
        with pytest.raises(LineTooLongError):
            list(fetch_line_records(payloads))

    def test_no_data_blocks(self):
        assert create_listing_from_blocks([]) == []

    def test_only_data_blocks_are_used(self, sample_lines, expected_listing):
        blocks = data_blocks(make_basic_payloads(sample_lines))
        eof = TapeBlock()
        eof.block_type = 0xFF
        assert create_listing_from_blocks(blocks + [eof]) == expected_listing


class TestDataBlockCursor:

    def test_block_number_advances_at_boundary(self):
        cursor = DataBlockCursor([bytes([0x1E, 0x01]), bytes([0x02])])
        assert cursor.read_byte() == 0x1E
        assert cursor.block_number == 0x1E
        assert cursor.read_byte() == 0x01
        assert cursor.block_number == 0x1F
        assert cursor.read_byte() == 0x02
        assert cursor.exhausted

    def test_trailing_nulls_split_between_blocks(self):
        cursor = DataBlockCursor([bytes([0x1E, 0x00]), bytes([0x00])])
        cursor.read_byte()
        assert cursor.at_end_of_program()


# =============================================================================
# ASCII programs
# =============================================================================

def test_ascii_listing():
    blocks = data_blocks([b'10 PRINT "HI"\r20 GO', b'TO 10\r'])
    assert create_listing_from_ascii(blocks) == ['10 PRINT "HI"', '20 GOTO 10']
