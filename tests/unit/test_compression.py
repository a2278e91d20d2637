"""Unit tests for payload compression codecs."""

import bz2
import gzip

import pyarrow as pa
import pytest

from streamload.compression import compress
from streamload.errors import ConfigurationError
from streamload.types import CompressionType

PAYLOAD = b'[{"id": 1, "name": "Alice"}, {"id": 2, "name": "Bob"}]' * 50

DECOMPRESSORS = {
    CompressionType.GZIP: gzip.decompress,
    CompressionType.LZ4: lambda data: pa.decompress(data, len(PAYLOAD), codec='lz4', asbytes=True),
    CompressionType.ZSTD: lambda data: pa.decompress(data, len(PAYLOAD), codec='zstd', asbytes=True),
    CompressionType.BZIP2: bz2.decompress,
}


@pytest.mark.unit
class TestCompress:
    """Test compress() for every supported algorithm"""

    @pytest.mark.parametrize('algorithm', list(DECOMPRESSORS))
    def test_codec_output_is_decodable(self, algorithm):
        compressed = compress(PAYLOAD, algorithm)

        assert compressed != PAYLOAD
        assert len(compressed) < len(PAYLOAD)
        assert DECOMPRESSORS[algorithm](compressed) == PAYLOAD

    @pytest.mark.parametrize('algorithm', [None, '', CompressionType.NONE])
    def test_no_compression_returns_input(self, algorithm):
        assert compress(PAYLOAD, algorithm) is PAYLOAD

    def test_accepts_wire_name(self):
        assert DECOMPRESSORS[CompressionType.LZ4](compress(PAYLOAD, 'LZ4_FRAME')) == PAYLOAD

    @pytest.mark.parametrize(
        'algorithm,magic',
        [
            (CompressionType.GZIP, b'\x1f\x8b'),
            (CompressionType.LZ4, b'\x04\x22\x4d\x18'),
            (CompressionType.ZSTD, b'\x28\xb5\x2f\xfd'),
            (CompressionType.BZIP2, b'BZh'),
        ],
    )
    def test_frame_magic_bytes(self, algorithm, magic):
        assert compress(b'abc', algorithm).startswith(magic)

    def test_unknown_algorithm(self):
        with pytest.raises(ConfigurationError, match='Unsupported compression'):
            compress(PAYLOAD, 'SNAPPY')
