"""Payload compression codecs.

Each codec takes the full payload and returns the compressed payload.
The server only decompresses JSON payloads; CSV loads should stay
uncompressed. LZ4 and ZSTD use Arrow's codecs, which write the standard
LZ4 frame and zstd frame formats.
"""

import bz2
import gzip
from typing import Callable, Dict, Union

import pyarrow as pa

from .errors import ConfigurationError, EncodeError
from .types import CompressionType


def compress_gzip(data: bytes) -> bytes:
    return gzip.compress(data)


def compress_lz4(data: bytes) -> bytes:
    # Arrow's 'lz4' codec is LZ4_FRAME; 'lz4_raw' would be the block format
    return pa.compress(data, codec='lz4', asbytes=True)


def compress_zstd(data: bytes) -> bytes:
    return pa.compress(data, codec='zstd', asbytes=True)


def compress_bzip2(data: bytes) -> bytes:
    return bz2.compress(data)


CODECS: Dict[CompressionType, Callable[[bytes], bytes]] = {
    CompressionType.GZIP: compress_gzip,
    CompressionType.LZ4: compress_lz4,
    CompressionType.ZSTD: compress_zstd,
    CompressionType.BZIP2: compress_bzip2,
}


def compress(data: bytes, algorithm: Union[CompressionType, str, None]) -> bytes:
    """Compress a payload with the given algorithm.

    Args:
        data: Raw payload
        algorithm: CompressionType or its wire name (e.g. 'ZSTD'); NONE/None/'' returns data unchanged

    Returns:
        Compressed payload

    Raises:
        ConfigurationError: If the algorithm is unknown
        EncodeError: If the codec fails
    """
    if not algorithm:
        return data

    try:
        algorithm = CompressionType(algorithm)
    except ValueError:
        raise ConfigurationError(f'Unsupported compression: {algorithm!r}') from None

    try:
        return CODECS[algorithm](data)
    except (pa.ArrowException, OSError, ValueError) as e:
        raise EncodeError(f'Failed to compress data with {algorithm.value}: {e}') from e
