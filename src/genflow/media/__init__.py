from .audio import WAV_HEADER_SIZE, build_wav_header, pcm_to_wav
from .data_uri import DataUriError, build_data_uri, split_data_uri

__all__ = [
    "WAV_HEADER_SIZE",
    "build_wav_header",
    "pcm_to_wav",
    "DataUriError",
    "build_data_uri",
    "split_data_uri",
]
