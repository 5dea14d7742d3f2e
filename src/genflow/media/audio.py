"""WAV container assembly for raw PCM speech output.

The speech backend returns bare little-endian PCM samples. Browsers
and players want a RIFF/WAVE file, so we prepend the canonical 44-byte
header.
"""

import struct

SAMPLE_RATE = 24000
CHANNELS = 1
BITS_PER_SAMPLE = 16
WAV_HEADER_SIZE = 44


def build_wav_header(
    pcm_length: int,
    sample_rate: int = SAMPLE_RATE,
    channels: int = CHANNELS,
    bits_per_sample: int = BITS_PER_SAMPLE,
) -> bytes:
    """Build a 44-byte PCM WAV header.

    Args:
        pcm_length: Length in bytes of the PCM data that follows.
        sample_rate: Samples per second.
        channels: Channel count.
        bits_per_sample: Bits per sample.

    Returns:
        The header bytes. The RIFF chunk size is ``36 + pcm_length`` and
        the data chunk size is ``pcm_length``.
    """
    if pcm_length < 0:
        raise ValueError("pcm_length must be >= 0")

    block_align = channels * bits_per_sample // 8
    byte_rate = sample_rate * block_align

    return struct.pack(
        "<4sI4s4sIHHIIHH4sI",
        b"RIFF",
        36 + pcm_length,
        b"WAVE",
        b"fmt ",
        16,  # fmt chunk size
        1,  # PCM
        channels,
        sample_rate,
        byte_rate,
        block_align,
        bits_per_sample,
        b"data",
        pcm_length,
    )


def pcm_to_wav(pcm: bytes, sample_rate: int = SAMPLE_RATE) -> bytes:
    """Wrap raw mono 16-bit PCM in a WAV container."""
    return build_wav_header(len(pcm), sample_rate=sample_rate) + pcm
