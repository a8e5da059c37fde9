# -*- coding: utf-8 -*-
# conftest.py
#
# Shared fixtures for the test suite.

import wave

import numpy as np
import pytest

from coco_block_decoder import DecodeSettings
from tape_synthesis import make_program_tape, synthesise_bytes


@pytest.fixture
def settings() -> DecodeSettings:
    return DecodeSettings()


@pytest.fixture
def sample_lines():
    """
    A short tokenized BASIC program:

        10 PRINT"HELLO"
        20 FOR I=1 TO 10
        30 X=SGN(Y)
        40 GOTO 10
    """
    return [
        (10, bytes([0x87]) + b'"HELLO"'),
        (20, bytes([0x80]) + b" I" + bytes([0xB3]) + b"1 " + bytes([0xA5]) + b" 10"),
        (30, b"X" + bytes([0xB3, 0xFF, 0x80]) + b"(Y)"),
        (40, bytes([0x81, 0xA5]) + b" 10"),
    ]


@pytest.fixture
def expected_listing():
    return [
        '10 PRINT"HELLO"',
        "20 FOR I=1 TO 10",
        "30 X=SGN(Y)",
        "40 GOTO 10",
    ]


@pytest.fixture
def program_samples(sample_lines) -> np.ndarray:
    return synthesise_bytes(make_program_tape("HELLO", sample_lines))


@pytest.fixture
def write_wav(tmp_path):
    """
    Factory which writes an array of samples to a WAV file, returning its path.
    """

    def _write(samples, filename="tape.wav", channels=1, sample_width=2, frame_rate=44100):
        path = tmp_path / filename
        with wave.open(str(path), 'wb') as wav:
            wav.setnchannels(channels)
            wav.setsampwidth(sample_width)
            wav.setframerate(frame_rate)
            if sample_width == 2:
                wav.writeframes(np.asarray(samples, dtype='<i2').tobytes())
            else:
                wav.writeframes(bytes(len(samples) * sample_width))
        return str(path)

    return _write
