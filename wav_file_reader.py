# -*- coding: utf-8 -*-
# wav_file_reader.py
#
# The Python script in this file reads WAV recordings of cassette tapes, and
# measures the wave cycles within them.
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
Read WAV recordings of cassette tapes, and measure the lengths of the wave cycles within them.
"""

import logging
import wave

from typing import Dict, List, Optional, Tuple

import numpy as np

from constants import SAMPLE_RATE
from tape_errors import WavFormatError


def load_samples(input_filename: str) -> Tuple[int, np.ndarray]:
    """
    Load the samples from a 16-bit, single-channel, 44.1kHz PCM WAV file. Files in any other format are rejected
    outright, before any decoding takes place.

    :param input_filename:
        Filename of the wav file to read
    :return:
        Tuple of (sampling frequency, array of signed 16-bit samples)
    """
    try:
        with wave.open(input_filename, 'rb') as wav:
            channels = wav.getnchannels()
            sample_width = wav.getsampwidth()
            sampling_frequency = wav.getframerate()
            frame_count = wav.getnframes()

            if channels != 1:
                raise WavFormatError("{}: number of channels should be 1, is {:d}".format(input_filename, channels))
            if sample_width != 2:
                raise WavFormatError("{}: bits per sample should be 16, is {:d}".format(input_filename,
                                                                                         sample_width * 8))
            if sampling_frequency != SAMPLE_RATE:
                raise WavFormatError("{}: sample rate should be {:d}, is {:d}".format(input_filename, SAMPLE_RATE,
                                                                                       sampling_frequency))

            raw_frames = wav.readframes(frame_count)
    except (wave.Error, EOFError) as exception:
        raise WavFormatError("{}: not a PCM WAV file ({})".format(input_filename, exception)) from exception
    except OSError as exception:
        raise WavFormatError("{}: could not read file ({})".format(input_filename, exception)) from exception

    if len(raw_frames) != frame_count * 2:
        raise WavFormatError("{}: expected {:d} bytes of sample data; got {:d}".format(
            input_filename, frame_count * 2, len(raw_frames)))

    samples = np.frombuffer(raw_frames, dtype='<i2').astype(np.int16)
    return sampling_frequency, samples


class WavFileReader:
    """
    Class holding the samples from a single-channel recording of a cassette tape.
    """

    def __init__(self, input_filename: Optional[str] = None, samples: Optional[np.ndarray] = None,
                 sampling_frequency: int = SAMPLE_RATE):
        """
        Hold the samples from a single-channel recording of a cassette tape, either read from a WAV file, or passed
        in directly.

        :param input_filename:
            Filename of the wav file to process
        :param samples:
            Array of signed 16-bit samples, used if no filename is given
        :param sampling_frequency:
            Sampling frequency of <samples> (Hz)
        """

        self.input_filename: Optional[str] = input_filename

        if input_filename is not None:
            self.sampling_frequency, self.data = load_samples(input_filename=input_filename)
        elif samples is not None:
            self.sampling_frequency = sampling_frequency
            self.data = np.asarray(samples, dtype=np.int16)
        else:
            raise ValueError("Either a filename or an array of samples must be supplied")

        logging.debug("Read {:d} samples at {:d} Hz".format(len(self.data), self.sampling_frequency))

    @property
    def sample_count(self) -> int:
        return len(self.data)

    def fetch_zero_crossing_times(self) -> np.ndarray:
        """
        Find the positions of all the falling zero crossings in the recording, i.e. samples which are negative where
        the preceding sample was non-negative.

        :return:
            Array of sample indices
        """
        data = self.data
        falling = (data[1:] < 0) & (data[:-1] >= 0)
        return np.flatnonzero(falling) + 1

    def fetch_pulse_list(self, input_events: Optional[np.ndarray] = None) -> List[Dict]:
        """
        Make a list of the wave cycles in the recording. Each cycle runs from one falling zero crossing to the next,
        and its length is measured in samples. The first crossing in the recording only starts the count, so does
        not produce a cycle of its own.

        :param input_events:
            Array of the sample indices of zero crossings. If None, they are found with
            <fetch_zero_crossing_times>.
        :return:
            List of dictionaries, each giving the sample position where a cycle ends, and its length
        """
        if input_events is None:
            input_events = self.fetch_zero_crossing_times()

        lengths = np.diff(input_events)

        return [{
            'position': int(position),
            'length': int(length)
        } for position, length in zip(input_events[1:], lengths)]
