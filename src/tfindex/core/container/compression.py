"""
Compression stage for the index payload.

The algorithm is identified on disk by its tag in the container flags byte,
so the IntEnum values below are part of the file format.
"""

import zlib
from enum import IntEnum
from typing import Optional

import zstandard

DEFAULT_ZSTD_LEVEL = 19
DEFAULT_ZLIB_LEVEL = 9


class CompressionAlgorithm(IntEnum):
    """Compression tags written to the container flags byte."""

    NONE = 0x00
    ZSTD = 0x0D
    ZLIB = 0x0E

    @classmethod
    def from_name(cls, name: str) -> "CompressionAlgorithm":
        """Resolve a user-facing name (zstd, zlib, off/none)."""
        key = name.strip().lower()
        if key in ("off", "none", "no"):
            return cls.NONE
        if key == "zstd":
            return cls.ZSTD
        if key == "zlib":
            return cls.ZLIB
        raise ValueError(f"Unknown compression: {name!r} (expected zstd, zlib or off)")

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS = {
    CompressionAlgorithm.NONE: "no",
    CompressionAlgorithm.ZSTD: "zstd",
    CompressionAlgorithm.ZLIB: "zlib",
}


def compress(
    data: bytes, algorithm: CompressionAlgorithm, level: Optional[int] = None
) -> bytes:
    """
    Compress ``data`` with the selected algorithm.

    Args:
        data: Serialized index bytes
        algorithm: One of the three supported tags
        level: Optional compression level; algorithm default when None

    Returns:
        Compressed bytes (``data`` unchanged for NONE)
    """
    algorithm = CompressionAlgorithm(algorithm)

    if algorithm is CompressionAlgorithm.NONE:
        return bytes(data)
    if algorithm is CompressionAlgorithm.ZSTD:
        compressor = zstandard.ZstdCompressor(
            level=DEFAULT_ZSTD_LEVEL if level is None else level
        )
        return compressor.compress(data)
    return zlib.compress(data, DEFAULT_ZLIB_LEVEL if level is None else level)


def decompress(data: bytes, algorithm: CompressionAlgorithm) -> bytes:
    """
    Inverse of :func:`compress`.

    Raises:
        ValueError: If the data is not valid for the algorithm
    """
    algorithm = CompressionAlgorithm(algorithm)

    if algorithm is CompressionAlgorithm.NONE:
        return bytes(data)
    try:
        if algorithm is CompressionAlgorithm.ZSTD:
            # Streaming decompression does not depend on the frame content size
            decompressor = zstandard.ZstdDecompressor().decompressobj()
            return decompressor.decompress(data)
        return zlib.decompress(data)
    except (zstandard.ZstdError, zlib.error) as e:
        raise ValueError(f"Corrupt {algorithm.label} payload: {e}") from e
