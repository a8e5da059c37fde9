#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# coco_tape_parse.py
#
# This Python script extracts programs from WAV recordings of audio cassette
# tapes recorded by the TRS-80 Color Computer, and lists the BASIC programs
# it finds. It can also produce CAS tape images for use in emulators such as
# XRoar or MAME.
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
This Python script extracts programs from WAV recordings of audio cassette tapes recorded by the TRS-80 Color
Computer, and lists any tokenized BASIC programs it finds. It can also produce CAS tape images for use in emulators
such as XRoar or MAME.

By default, this script simply prints the name and listing of each program found on the tape. Optionally, it also
exports the contents of each file to a specified output directory. If a more sophisticated export is required, it
is simple to call the <WavCocoFileSearch> class from an external script to perform other actions on the programs
found.

Usage:

* Only 16-bit single-channel PCM recordings sampled at 44.1kHz are supported.

* A binary 1 is a single cycle at 2400 Hz (about 18 samples) and a binary 0 is a single cycle at 1200 Hz (about 37
samples). Cycle lengths are measured between falling zero crossings. The range of cycle lengths accepted for each
can be changed on the command line, which helps with recordings made at the wrong speed.

* A checksum failure stops the run, rather than risk producing a plausible but incorrect listing.

References:

TRS-80 Color Computer Technical Reference Manual, cassette format chapter.
"""

import argparse
import logging
import os
import re
import sys
import tempfile

from typing import Dict, Iterator, List, Optional

from cas_file_builder import CasFileBuilder
from coco_block_decoder import BlockDecoder, CycleType, DecodeSettings, TapeBlock, classify_cycle
from constants import ASCII_FLAG_ASCII, BLOCK_DATA, BLOCK_EOF, BLOCK_NAME, FILE_TYPE_BASIC
from constants import DEFAULT_ONE_HIGH, DEFAULT_ONE_LOW, DEFAULT_ZERO_HIGH, DEFAULT_ZERO_LOW
from constants import ascii_flag_names, file_type_names, gap_flag_names
from hex_dump import hexdump
from list_coco_basic import create_listing_from_ascii, create_listing_from_blocks
from tape_errors import TapeError
from wav_file_reader import WavFileReader

# Largest cycle-length threshold accepted on the command line
MAX_THRESHOLD = 10000


class WavCocoFileSearch:
    """
    Class to extract programs from WAV recordings of tapes saved by the TRS-80 Color Computer.
    """

    def __init__(self, wav_file: WavFileReader, settings: Optional[DecodeSettings] = None,
                 cas_writer: Optional[CasFileBuilder] = None):
        """
        Extract programs from WAV recordings of tapes saved by the TRS-80 Color Computer.

        :param wav_file:
            The recording to process
        :param settings:
            Cycle-length thresholds and verbosity settings
        :param cas_writer:
            Builder to receive every block found, if a CAS image of the tape is wanted
        """

        self.wav_file: WavFileReader = wav_file
        self.settings: DecodeSettings = settings if settings is not None else DecodeSettings()

        # Summary of every block we found on the tape, used by <summarise_blocks>
        self.block_log: List[Dict] = []

        # CAS representation of the tape, built up as blocks are found, only if requested
        self.cas_writer: Optional[CasFileBuilder] = cas_writer

        # Histogram of the number of wave cycles of each type
        self.cycle_type_histogram: Dict[str, int] = {item.value: 0 for item in CycleType}

    def search_wav_file(self) -> List[Dict]:
        """
        Main entry point for searching for programs in a wav recording of a Color Computer tape.

        :return:
            List of program descriptors
        """
        return list(self.iter_programs())

    def iter_programs(self) -> Iterator[Dict]:
        """
        Search the recording for programs, yielding each one as soon as its End of File block is found. A program
        which is cut short by the end of the recording, or by the start of another program, is also yielded, but
        marked as incomplete.

        Fatal decoding errors are raised as <TapeDecodeError>.

        :return:
            Iterator over program descriptors
        """

        decoder = BlockDecoder(settings=self.settings)

        # Blocks of the program currently being read
        block_chain: List[TapeBlock] = []

        # Measure the length of each wave cycle, between falling zero crossings
        pulse_list = self.wav_file.fetch_pulse_list()

        try:
            for pulse in pulse_list:
                cycle_type = classify_cycle(cycle_length=pulse['length'], settings=self.settings)
                self.cycle_type_histogram[cycle_type.value] += 1
                if self.settings.debug:
                    pulse['type'] = cycle_type.value

                # Noise is skipped over, without affecting byte alignment
                if cycle_type == CycleType.INVALID:
                    if self.settings.debug:
                        logging.debug("Not 1200/2400Hz waveform: {:d} samples at {:d}".format(
                            pulse['length'], pulse['position']))
                    continue

                block = decoder.push_bit(bit=1 if cycle_type == CycleType.ONE else 0, position=pulse['position'])
                if block is None:
                    continue

                self._log_block(block=block)
                if self.cas_writer is not None:
                    self.cas_writer.add_block(block=block)

                # A new Namefile block starts a new program, even if the previous one never reached its EOF block
                if block.block_type == BLOCK_NAME and block_chain:
                    logging.warning("Program ended without an End of File block")
                    yield self._assemble_program(block_chain=block_chain, is_complete=False)
                    block_chain = []

                block_chain.append(block)

                if block.block_type == BLOCK_EOF:
                    yield self._assemble_program(block_chain=block_chain, is_complete=True)
                    block_chain = []

            # Report any program which was still being read at the end of the recording
            if block_chain:
                logging.warning("Recording ended without an End of File block")
                yield self._assemble_program(block_chain=block_chain, is_complete=False)
        finally:
            logging.debug("Cycle type histogram: {}".format(repr(self.cycle_type_histogram)))
            if self.settings.debug:
                self._write_debugging(pulse_list=pulse_list, byte_list=decoder.byte_log)

    def _log_block(self, block: TapeBlock) -> None:
        """
        Add a completed block to the summary of blocks we found on the tape.
        """
        block_info = {
            'block_type': block.block_type,
            'type_name': block.type_name,
            'length': len(block.payload) if block.block_type == BLOCK_DATA else block.length,
            'filename': block.name if block.block_type == BLOCK_NAME else '',
            'block_start_time': block.start_position / self.wav_file.sampling_frequency,
            'block_end_time': block.end_position / self.wav_file.sampling_frequency
        }
        self.block_log.append(block_info)
        logging.debug("Completed {} block of length {:d} at {:.5f} sec".format(
            block_info['type_name'], block_info['length'], block_info['block_start_time']))

    def _assemble_program(self, block_chain: List[TapeBlock], is_complete: bool) -> Dict:
        """
        Assemble the blocks of a single program into a program descriptor, including a listing if the program is
        BASIC. The block chain is not retained.

        :param block_chain:
            The blocks of the program, starting with its Namefile block, if one was found
        :param is_complete:
            Whether the program was terminated by an End of File block
        :return:
            Dictionary describing the program
        """

        name_block = block_chain[0] if block_chain[0].block_type == BLOCK_NAME else None
        data_blocks = [block for block in block_chain if block.block_type == BLOCK_DATA]
        data = b"".join(bytes(block.payload) for block in data_blocks)

        program = {
            'filename': None,
            'file_type': FILE_TYPE_BASIC,
            'ascii_flag': 0,
            'gap_flag': 0,
            'ml_start': 0,
            'ml_load': 0,
            'data': data,
            'byte_count': len(data),
            'block_count': len(data_blocks),
            'start_time': block_chain[0].start_position / self.wav_file.sampling_frequency,
            'end_time': block_chain[-1].end_position / self.wav_file.sampling_frequency,
            'is_complete': is_complete,
            'listing': None
        }

        if name_block is not None:
            program.update({
                'filename': name_block.name,
                'file_type': name_block.file_type,
                'ascii_flag': name_block.ascii_flag,
                'gap_flag': name_block.gap_flag,
                'ml_start': name_block.ml_start_address,
                'ml_load': name_block.ml_load_address
            })

        # Without a Namefile block, we assume a tokenized BASIC program
        if program['file_type'] == FILE_TYPE_BASIC:
            if program['ascii_flag'] == ASCII_FLAG_ASCII:
                program['listing'] = create_listing_from_ascii(block_list=data_blocks)
            else:
                program['listing'] = create_listing_from_blocks(block_list=data_blocks)
        else:
            logging.info("Not listing {} file <{}>".format(
                file_type_names.get(program['file_type'], "unknown"), program['filename']))

        return program

    @staticmethod
    def describe_program(program: Dict) -> str:
        """
        Produce the transcript of a single program: its name, followed by its listing.

        :param program:
            Program descriptor, as returned by <iter_programs>
        :return:
            String
        """
        output = ""
        if program['filename'] is not None:
            output += "Program: {}\n".format(program['filename'])
        if program['listing'] is not None:
            output += "".join("{}\n".format(line) for line in program['listing'])
        return output

    def summarise_blocks(self) -> str:
        """
        Produce human-readable summary information about the blocks we found on the tape.

        :return:
            String
        """

        output = "Decoded {:d} blocks\n".format(len(self.block_log))
        for block in self.block_log:
            output += "[{:10.5f}] [{:4s}] {:02X} [{:8s}]\n".format(
                block['block_start_time'], block['type_name'], block['length'], block['filename'])
        return output

    @staticmethod
    def program_summary(program: Dict) -> Dict:
        """
        Copy of a program descriptor without its data or listing, holding just what <summarise_files> needs.
        """
        return {key: value for key, value in program.items() if key not in ('data', 'listing')}

    @staticmethod
    def summarise_files(file_list: List[Dict]) -> str:
        """
        Produce summary information about the programs we found on the tape.

        :param file_list:
            The list of programs we found on the tape, or their summaries from <program_summary>
        :return:
            String
        """

        # Print column headings
        output = "[{:10s}] [{:10s}] [{:5s}] [{:8s}] {:5s} {:6s} {:4s} {:4s} {:4s} {:10s}\n".format(
            "Start/sec", "End/sec", "Stat", "Filename", "Type", "Mode", "Size", "Exec", "Load", "Gaps"
        )

        # Print information about each program in turn
        for file_info in file_list:
            output += "[{:10.5f}] [{:10.5f}] [{:5s}] [{:8s}] {:5s} {:6s} {:04X} {:04X} {:04X} {:10s}\n".format(
                file_info['start_time'],
                file_info['end_time'],
                " PASS" if file_info['is_complete'] else "*FAIL",
                file_info['filename'] if file_info['filename'] is not None else "?",
                file_type_names.get(file_info['file_type'], "?"),
                ascii_flag_names.get(file_info['ascii_flag'], "?"),
                file_info['byte_count'],
                file_info['ml_start'],
                file_info['ml_load'],
                gap_flag_names.get(file_info['gap_flag'], "?")
            )

        return output

    @staticmethod
    def extract_files(file_list: List[Dict], output_dir: str) -> None:
        """
        Write the contents of all the programs we extracted from the tape into a user-supplied output directory.
        The raw data of each program is written to a .bin file, and the listing of each BASIC program to a .bas file.

        :param file_list:
            The list of programs we found on the tape, as returned by <search_wav_file>
        :param output_dir:
            The directory in which to save the output files
        :return:
            None
        """
        for index, item in enumerate(file_list):
            WavCocoFileSearch.extract_file(program=item, index=index, output_dir=output_dir)

    @staticmethod
    def extract_file(program: Dict, index: int, output_dir: str) -> None:
        """
        Write the contents of a single program into a user-supplied output directory.

        :param program:
            Program descriptor, as returned by <iter_programs>
        :param index:
            Position of the program on the tape, used to prefix its filenames
        :param output_dir:
            The directory in which to save the output files
        :return:
            None
        """

        # Make sure output directory exists
        os.makedirs(output_dir, exist_ok=True)

        # Prefix each filename with an index, since tapes commonly have multiple files with the same name
        filename = program['filename'] if program['filename'] else "untitled"
        filename_safe = "{:02d}_".format(index) + re.sub(r'[^A-Za-z0-9_\-]', '_', filename)
        output_stem = os.path.join(output_dir, filename_safe)

        with open(output_stem + ".bin", "wb") as file_handle:
            file_handle.write(program['data'])

        if program['listing'] is not None:
            with open(output_stem + ".bas", "wt") as file_handle:
                file_handle.write("".join("{}\n".format(line) for line in program['listing']))

    def write_cas_file(self, filename: str) -> None:
        """
        Write a .cas file representation of the blocks we found, enabling this tape to be loaded into emulators.
        The <WavCocoFileSearch> must have been created with a <CasFileBuilder> to collect the blocks.

        :param filename:
            Filename of the binary CAS file we should write
        :return:
            None
        """

        if self.cas_writer is None:
            raise ValueError("No CAS output was requested when this search was set up")

        if not self.block_log:
            logging.info("Writing empty .cas file. Did you call <self.search_wav_file> first to parse the tape?")

        self.cas_writer.write_to_file(filename=filename)

    @staticmethod
    def _write_debugging(pulse_list: List[Dict], byte_list: List[Dict]) -> None:
        """
        Write debugging files to the temporary directory describing the analysis of this wav file.

        :param pulse_list:
            List of wave cycles found in file
        :param byte_list:
            List of bytes found in file
        :return:
            None
        """
        temporary_dir = tempfile.gettempdir()

        # Output a list of all the wave cycles we found on the tape
        with open(os.path.join(temporary_dir, 'coco_cycle_lengths.txt'), 'wt') as f:
            f.write("# {:8s} {:6s} {}\n".format("Sample", "Length", "Bit_type"))
            for item in pulse_list:
                f.write("{:10d} {:6d} {}\n".format(item['position'], item['length'], item.get('type', '?')))

        # Output a list of all the bytes we found on the tape
        with open(os.path.join(temporary_dir, 'coco_bytes.txt'), 'wt') as f:
            for item in byte_list:
                f.write("[{:10d}] {:02X} [{:s}]\n".format(item['position'], item['byte'], item['state']))


def validate_settings(settings: DecodeSettings) -> None:
    """
    Check that a set of cycle-length thresholds makes sense, before starting a run.

    :param settings:
        The settings to check
    :return:
        None. Raises ValueError if the settings are not usable.
    """
    thresholds = {
        'one_low': settings.one_low,
        'one_high': settings.one_high,
        'zero_low': settings.zero_low,
        'zero_high': settings.zero_high
    }
    for name, value in thresholds.items():
        if value < 0:
            raise ValueError("Negative value {} for {}".format(value, name))
        if value > MAX_THRESHOLD and value != DEFAULT_ZERO_HIGH:
            raise ValueError("Value {} too large for {}".format(value, name))

    if settings.one_low <= 0:
        raise ValueError("one_low must be greater than zero")
    if settings.one_low > settings.one_high:
        raise ValueError("one_low ({}) is greater than one_high ({})".format(settings.one_low, settings.one_high))
    if settings.zero_low > settings.zero_high:
        raise ValueError("zero_low ({}) is greater than zero_high ({})".format(settings.zero_low, settings.zero_high))
    if settings.one_high >= settings.zero_low:
        raise ValueError("one_high ({}) overlaps zero_low ({})".format(settings.one_high, settings.zero_low))


def main(argv: Optional[List[str]] = None) -> int:
    """
    Command-line entry point.

    :param argv:
        Command-line arguments, excluding the program name
    :return:
        Exit status
    """
    # Read input parameters
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument('--input',
                        required=True,
                        type=str,
                        dest="input_filename",
                        help="Input WAV file to process (16-bit, single channel, 44.1kHz PCM)")
    parser.add_argument('--output',
                        default=None,
                        type=str,
                        dest="output_directory",
                        help="Directory in which to put the extracted files")
    parser.add_argument('--cas',
                        default=None,
                        type=str,
                        dest="output_cas_file",
                        help="Filename for CAS file containing the contents of the tape")
    parser.add_argument('-o', '--one-low',
                        default=DEFAULT_ONE_LOW,
                        type=int,
                        dest="one_low",
                        help="Shortest wave cycle, in samples, read as a one [%(default)s]")
    parser.add_argument('-O', '--one-high',
                        default=DEFAULT_ONE_HIGH,
                        type=int,
                        dest="one_high",
                        help="Longest wave cycle, in samples, read as a one [%(default)s]")
    parser.add_argument('-z', '--zero-low',
                        default=DEFAULT_ZERO_LOW,
                        type=int,
                        dest="zero_low",
                        help="Shortest wave cycle, in samples, read as a zero [%(default)s]")
    parser.add_argument('-Z', '--zero-high',
                        default=DEFAULT_ZERO_HIGH,
                        type=float,
                        dest="zero_high",
                        help="Longest wave cycle, in samples, read as a zero [%(default)s]")
    parser.add_argument('-d', '--debug',
                        action='store_true',
                        dest="debug",
                        help="Show full debugging output")
    parser.add_argument('-v', '--verbose',
                        action='store_true',
                        dest="verbose",
                        help="Show a summary of the blocks and programs found")
    parser.set_defaults(debug=False, verbose=False)
    args = parser.parse_args(argv)

    settings = DecodeSettings(one_low=args.one_low, one_high=args.one_high,
                              zero_low=args.zero_low, zero_high=args.zero_high,
                              debug=args.debug, verbose=args.verbose)
    try:
        validate_settings(settings=settings)
    except ValueError as exception:
        parser.error(str(exception))

    # Set up a logging object
    logging.basicConfig(level=logging.DEBUG if args.debug else logging.INFO,
                        stream=sys.stdout,
                        format='[%(asctime)s] %(levelname)s:%(filename)s:%(message)s',
                        datefmt='%d/%m/%Y %H:%M:%S')

    # Summary of each program found, without its data or listing
    file_list: List[Dict] = []
    try:
        # Open input audio file
        wav_file = WavFileReader(input_filename=args.input_filename)
        if settings.verbose:
            logging.info("Samples: {:d}".format(wav_file.sample_count))

        processor = WavCocoFileSearch(wav_file=wav_file, settings=settings,
                                      cas_writer=CasFileBuilder() if args.output_cas_file else None)

        # Print and extract each program as soon as it is found
        for index, program in enumerate(processor.iter_programs()):
            sys.stdout.write(processor.describe_program(program=program))
            sys.stdout.flush()
            if args.output_directory:
                processor.extract_file(program=program, index=index, output_dir=args.output_directory)
            file_list.append(processor.program_summary(program=program))
    except TapeError as exception:
        logging.error("Decode error: {}".format(exception))
        payload = getattr(exception, 'payload', b"")
        if payload:
            logging.error("Block payload:\n{}".format(hexdump(payload)))
        return 1

    # Print a summary of the blocks and programs we found
    if settings.verbose:
        logging.info(processor.summarise_blocks())
        logging.info(processor.summarise_files(file_list=file_list))

    # Make CAS file
    if args.output_cas_file:
        processor.write_cas_file(filename=args.output_cas_file)

    return 0


# Do it right away if we're run as a script
if __name__ == "__main__":
    sys.exit(main())
