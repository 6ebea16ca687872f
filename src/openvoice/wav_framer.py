"""
WAV Framer Module
Writes and patches the 44-byte PCM header around a recording whose final
length is unknown when capture starts.
"""

import struct
from pathlib import Path
from typing import BinaryIO, Union

from openvoice.exceptions import WavFormatError


SAMPLE_RATE = 16000
CHANNELS = 1
BITS_PER_SAMPLE = 16

HEADER_SIZE = 44
RIFF_SIZE_OFFSET = 4
DATA_SIZE_OFFSET = 40

BYTE_RATE = SAMPLE_RATE * CHANNELS * BITS_PER_SAMPLE // 8
BLOCK_ALIGN = CHANNELS * BITS_PER_SAMPLE // 8

# RIFF size is 36 + data size and must fit in a u32
MAX_DATA_SIZE = 0xFFFFFFFF - 36

_HEADER_FORMAT = "<4sI4s4sIHHIIHH4sI"


def _check_size(data_size: int) -> None:
    if not isinstance(data_size, int) or isinstance(data_size, bool):
        raise WavFormatError(f"Data size must be an integer, got {data_size!r}")
    if data_size < 0 or data_size > MAX_DATA_SIZE:
        raise WavFormatError(f"Data size out of range: {data_size}")


def build_header(data_size: int = 0) -> bytes:
    """
    Build a canonical 16 kHz mono 16-bit PCM header.

    Args:
        data_size: Number of sample bytes following the header

    Returns:
        The 44 header bytes.

    Raises:
        WavFormatError: If data_size is negative or does not fit the header.
    """
    _check_size(data_size)
    return struct.pack(
        _HEADER_FORMAT,
        b"RIFF",
        36 + data_size,
        b"WAVE",
        b"fmt ",
        16,  # fmt chunk size
        1,   # PCM
        CHANNELS,
        SAMPLE_RATE,
        BYTE_RATE,
        BLOCK_ALIGN,
        BITS_PER_SAMPLE,
        b"data",
        data_size,
    )


def write_header(stream: BinaryIO, data_size: int = 0) -> None:
    """
    Write a header to a binary stream.

    Recording starts with data_size=0 as a placeholder; patch_header()
    fixes both size fields once the final length is known.
    """
    stream.write(build_header(data_size))


def patch_header(path: Union[str, Path], final_data_size: int) -> None:
    """
    Overwrite the RIFF and data size fields of an existing WAV file in place.

    Only the two 4-byte fields at offsets 4 and 40 are rewritten.

    Args:
        path: WAV file written with write_header()
        final_data_size: Number of sample bytes actually written

    Raises:
        WavFormatError: If the size is invalid or the file has no full header.
        OSError: If the file cannot be opened or written.
    """
    _check_size(final_data_size)

    with open(path, "r+b") as f:
        f.seek(0, 2)
        if f.tell() < HEADER_SIZE:
            raise WavFormatError(f"File too short to hold a WAV header: {path}")

        f.seek(RIFF_SIZE_OFFSET)
        f.write(struct.pack("<I", 36 + final_data_size))
        f.seek(DATA_SIZE_OFFSET)
        f.write(struct.pack("<I", final_data_size))
