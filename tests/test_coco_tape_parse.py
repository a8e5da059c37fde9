"""
Tests for the complete pipeline, from samples to program listings, and for the command-line interface.
"""

import logging

import numpy as np
import pytest

from cas_file_builder import CasFileBuilder
from coco_block_decoder import DecodeSettings
from coco_tape_parse import WavCocoFileSearch, main, validate_settings
from tape_errors import ChecksumError
from tape_synthesis import (
    make_basic_payloads,
    make_block,
    make_name_payload,
    make_program_tape,
    make_tape,
    synthesise_bytes,
)
from wav_file_reader import WavFileReader


def search(samples, settings=None, cas_writer=None):
    processor = WavCocoFileSearch(wav_file=WavFileReader(samples=samples), settings=settings, cas_writer=cas_writer)
    return processor, processor.search_wav_file()


class TestWavCocoFileSearch:

    def test_single_program(self, program_samples, expected_listing):
        processor, programs = search(program_samples)

        assert len(programs) == 1
        program = programs[0]
        assert program['filename'] == "HELLO"
        assert program['is_complete']
        assert program['listing'] == expected_listing
        assert program['block_count'] == 1
        assert [block['type_name'] for block in processor.block_log] == ["Name", "Data", "EOF"]

    def test_describe_program(self, program_samples, expected_listing):
        processor, programs = search(program_samples)
        transcript = processor.describe_program(programs[0])
        assert transcript == "Program: HELLO\n" + "".join(line + "\n" for line in expected_listing)

    def test_program_spanning_blocks(self, sample_lines, expected_listing):
        samples = synthesise_bytes(make_program_tape("SPLIT", sample_lines, block_size=9))
        _, programs = search(samples)

        assert len(programs) == 1
        assert programs[0]['block_count'] > 1
        assert programs[0]['listing'] == expected_listing

    def test_two_programs(self, sample_lines):
        tape = make_program_tape("FIRST", sample_lines[:2]) + make_program_tape("SECOND", sample_lines[2:])
        _, programs = search(synthesise_bytes(tape))

        assert [program['filename'] for program in programs] == ["FIRST", "SECOND"]
        assert programs[0]['listing'] == ['10 PRINT"HELLO"', "20 FOR I=1 TO 10"]
        assert programs[1]['listing'] == ["30 X=SGN(Y)", "40 GOTO 10"]

    def test_recording_ends_before_eof_block(self, sample_lines, expected_listing):
        blocks = [make_block(0x00, make_name_payload("CUT"))]
        blocks.extend(make_block(0x01, payload) for payload in make_basic_payloads(sample_lines))
        _, programs = search(synthesise_bytes(make_tape(blocks)))

        assert len(programs) == 1
        assert not programs[0]['is_complete']
        assert programs[0]['listing'] == expected_listing

    def test_machine_language_file_not_listed(self):
        blocks = [
            make_block(0x00, make_name_payload("CODE", file_type=0x02, ml_start=0x3F00, ml_load=0x3E00)),
            make_block(0x01, [0x86, 0x41, 0x39]),
            make_block(0xFF)
        ]
        _, programs = search(synthesise_bytes(make_tape(blocks)))

        assert programs[0]['listing'] is None
        assert programs[0]['data'] == bytes([0x86, 0x41, 0x39])
        assert programs[0]['ml_start'] == 0x3F00
        assert programs[0]['ml_load'] == 0x3E00

    def test_ascii_program(self):
        blocks = [
            make_block(0x00, make_name_payload("TEXT", ascii_flag=0xFF)),
            make_block(0x01, list(b'10 CLS\r20 END\r')),
            make_block(0xFF)
        ]
        _, programs = search(synthesise_bytes(make_tape(blocks)))
        assert programs[0]['listing'] == ["10 CLS", "20 END"]

    def test_checksum_failure_stops_run(self, sample_lines):
        tape = make_program_tape("BAD", sample_lines)
        # Corrupt the first byte of the Data block payload: leader, then 55 3C 01 <length> <payload>
        data_start = tape.index(0x01, 16 + 21 + 16)
        tape[data_start + 2] ^= 0x01

        with pytest.raises(ChecksumError):
            search(synthesise_bytes(tape))

    def test_idempotent(self, program_samples):
        first_processor, first = search(program_samples)
        second_processor, second = search(program_samples)

        assert [first_processor.describe_program(program) for program in first] == \
            [second_processor.describe_program(program) for program in second]

    def test_cas_output(self, program_samples, tmp_path):
        processor, _ = search(program_samples, cas_writer=CasFileBuilder())
        path = tmp_path / "tape.cas"
        processor.write_cas_file(filename=str(path))

        output = path.read_bytes()
        assert output[:128] == bytes([0x55]) * 128
        assert output[128:131] == bytes([0x3C, 0x00, 0x0F])
        assert output[131:136] == b"HELLO"
        assert output.endswith(bytes([0x55, 0x3C, 0xFF, 0x00, 0xFF, 0x55]))

    def test_no_cas_buffer_unless_requested(self, program_samples, tmp_path):
        processor, programs = search(program_samples)

        assert len(programs) == 1
        assert processor.cas_writer is None
        with pytest.raises(ValueError):
            processor.write_cas_file(filename=str(tmp_path / "tape.cas"))
        assert not (tmp_path / "tape.cas").exists()

    def test_extract_files(self, program_samples, tmp_path, expected_listing):
        _, programs = search(program_samples)
        WavCocoFileSearch.extract_files(file_list=programs, output_dir=str(tmp_path / "out"))

        assert (tmp_path / "out" / "00_HELLO.bin").read_bytes() == programs[0]['data']
        assert (tmp_path / "out" / "00_HELLO.bas").read_text().splitlines() == expected_listing

    def test_summaries(self, program_samples):
        processor, programs = search(program_samples)

        assert processor.summarise_blocks().startswith("Decoded 3 blocks")
        summary = processor.summarise_files(file_list=programs)
        assert "HELLO" in summary
        assert "PASS" in summary

    def test_program_summary_drops_contents(self, program_samples):
        _, programs = search(program_samples)
        summary = WavCocoFileSearch.program_summary(program=programs[0])

        assert 'data' not in summary
        assert 'listing' not in summary
        assert summary['filename'] == "HELLO"
        assert "HELLO" in WavCocoFileSearch.summarise_files(file_list=[summary])

    def test_machine_language_addresses_in_summary(self):
        blocks = [
            make_block(0x00, make_name_payload("CODE", file_type=0x02, ml_start=0x3F00, ml_load=0x3E00)),
            make_block(0x01, [0x86, 0x41, 0x39]),
            make_block(0xFF)
        ]
        _, programs = search(synthesise_bytes(make_tape(blocks)))
        row = WavCocoFileSearch.summarise_files(file_list=programs).splitlines()[1]

        assert " 0003 3F00 3E00 " in row
        assert "00003F00" not in row


class TestValidateSettings:

    def test_defaults_are_valid(self):
        validate_settings(DecodeSettings())

    @pytest.mark.parametrize("settings", [
        DecodeSettings(one_low=0),
        DecodeSettings(one_low=-3),
        DecodeSettings(one_low=20, one_high=19),
        DecodeSettings(zero_low=50, zero_high=40),
        DecodeSettings(one_high=32, zero_low=32),
        DecodeSettings(zero_high=20000),
    ])
    def test_rejected(self, settings):
        with pytest.raises(ValueError):
            validate_settings(settings)


class TestCommandLine:

    def test_lists_program(self, program_samples, write_wav, capsys, expected_listing):
        path = write_wav(program_samples)
        assert main(['--input', path]) == 0

        output = capsys.readouterr().out
        assert "Program: HELLO" in output
        for line in expected_listing:
            assert line in output

    def test_checksum_failure_exit_status(self, sample_lines, write_wav):
        tape = make_program_tape("BAD", sample_lines)
        data_start = tape.index(0x01, 16 + 21 + 16)
        tape[data_start + 2] ^= 0x01
        path = write_wav(synthesise_bytes(tape))

        assert main(['--input', path]) == 1

    def test_bad_wav_file_exit_status(self, write_wav):
        path = write_wav(np.zeros(100, dtype=np.int16), frame_rate=8000)
        assert main(['--input', path]) == 1

    def test_bad_thresholds_rejected(self, program_samples, write_wav):
        path = write_wav(program_samples)
        with pytest.raises(SystemExit):
            main(['--input', path, '--one-high', '40'])

    def test_custom_thresholds(self, program_samples, write_wav, capsys):
        path = write_wav(program_samples)
        assert main(['--input', path, '-o', '15', '-O', '25', '-z', '35', '-Z', '45']) == 0
        assert "Program: HELLO" in capsys.readouterr().out

    def test_output_files(self, program_samples, write_wav, tmp_path, expected_listing):
        path = write_wav(program_samples)
        output_dir = tmp_path / "extracted"
        cas_path = tmp_path / "tape.cas"
        assert main(['--input', path, '--output', str(output_dir), '--cas', str(cas_path)]) == 0

        assert (output_dir / "00_HELLO.bas").read_text().splitlines() == expected_listing
        assert (output_dir / "00_HELLO.bin").exists()
        assert cas_path.read_bytes()[128:131] == bytes([0x3C, 0x00, 0x0F])

    def test_verbose_summary(self, program_samples, write_wav, caplog):
        caplog.set_level(logging.INFO)
        path = write_wav(program_samples)
        assert main(['--input', path, '--verbose']) == 0

        assert "Decoded 3 blocks" in caplog.text
        assert "PASS" in caplog.text

    def test_quiet_by_default(self, program_samples, write_wav, caplog):
        caplog.set_level(logging.INFO)
        path = write_wav(program_samples)
        assert main(['--input', path]) == 0

        assert "Decoded 3 blocks" not in caplog.text
