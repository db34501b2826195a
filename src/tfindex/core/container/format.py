"""
Tinfoil index container format.

Format version 1. All byte offsets are fixed by the external reader; any
change here is a compatibility break and needs a new FORMAT_VERSION.

    offset  size   content
    0x000   7      magic b"TINFOIL"
    0x007   1      flags: compression tag | 0xF0 when encrypted
    0x008   0x100  RSA-wrapped session key, zero-filled when not encrypted
    0x108   8      payload length before block padding, u64 little endian
    0x110   n      payload: compressed bytes, then encrypted when flagged

Compression tags: 0x00 none, 0x0D zstd, 0x0E zlib.
"""

import logging
import struct
from dataclasses import dataclass
from typing import Optional

from cryptography.hazmat.primitives.asymmetric import rsa

from tfindex.core.manifest.models import Manifest

from .compression import CompressionAlgorithm, compress, decompress
from .encryption import WRAPPED_KEY_SIZE, decrypt, encrypt

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1

MAGIC = b"TINFOIL"
ENCRYPTED_FLAG = 0xF0
COMPRESSION_MASK = 0x0F

_SIZE_STRUCT = struct.Struct("<Q")

KEY_OFFSET = len(MAGIC) + 1
SIZE_OFFSET = KEY_OFFSET + WRAPPED_KEY_SIZE
PAYLOAD_OFFSET = SIZE_OFFSET + _SIZE_STRUCT.size

HEADER_SIZE = KEY_OFFSET


class ContainerFormatError(ValueError):
    """Raised when bytes do not form a valid index container."""

    pass


@dataclass(frozen=True)
class ContainerHeader:
    """Decoded flags byte."""

    compression: CompressionAlgorithm
    encrypted: bool

    @property
    def flags(self) -> int:
        return int(self.compression) | (ENCRYPTED_FLAG if self.encrypted else 0)

    @classmethod
    def from_flags(cls, flags: int) -> "ContainerHeader":
        try:
            compression = CompressionAlgorithm(flags & COMPRESSION_MASK)
        except ValueError as e:
            raise ContainerFormatError(f"Unknown compression tag in flags 0x{flags:02X}") from e
        encrypted_bits = flags & ~COMPRESSION_MASK & 0xFF
        if encrypted_bits not in (0, ENCRYPTED_FLAG):
            raise ContainerFormatError(f"Unknown encryption bits in flags 0x{flags:02X}")
        return cls(compression=compression, encrypted=encrypted_bits == ENCRYPTED_FLAG)


def encode_header(compression: CompressionAlgorithm, encrypted: bool) -> bytes:
    """Encode the magic and flags byte."""
    header = ContainerHeader(CompressionAlgorithm(compression), encrypted)
    return MAGIC + bytes([header.flags])


def decode_header(data: bytes) -> ContainerHeader:
    """Decode the magic and flags byte from the start of ``data``."""
    if len(data) < HEADER_SIZE or not data.startswith(MAGIC):
        raise ContainerFormatError("Not a Tinfoil index: missing magic")
    return ContainerHeader.from_flags(data[len(MAGIC)])


def decode_payload_size(data: bytes) -> int:
    """Read the u64 payload length field."""
    if len(data) < PAYLOAD_OFFSET:
        raise ContainerFormatError("Truncated index container")
    (size,) = _SIZE_STRUCT.unpack_from(data, SIZE_OFFSET)
    return size


def pack_container(
    payload: bytes,
    compression: CompressionAlgorithm,
    wrapped_key: Optional[bytes] = None,
    size: Optional[int] = None,
) -> bytes:
    """
    Assemble a complete container.

    Args:
        payload: Compressed (and, when ``wrapped_key`` is given, encrypted) bytes
        compression: Compression tag used for the payload
        wrapped_key: Wrapped session key; marks the container as encrypted
        size: Payload length before block padding. Defaults to len(payload).

    Returns:
        Container bytes
    """
    encrypted = wrapped_key is not None
    if encrypted and len(wrapped_key) != WRAPPED_KEY_SIZE:
        raise ContainerFormatError(
            f"Wrapped key must be {WRAPPED_KEY_SIZE} bytes, got {len(wrapped_key)}"
        )

    key_slot = wrapped_key if encrypted else b"\x00" * WRAPPED_KEY_SIZE
    length = len(payload) if size is None else size

    return b"".join(
        [
            encode_header(compression, encrypted),
            key_slot,
            _SIZE_STRUCT.pack(length),
            payload,
        ]
    )


def encode_manifest(
    manifest: Manifest,
    compression: CompressionAlgorithm,
    public_key: Optional[rsa.RSAPublicKey] = None,
    level: Optional[int] = None,
) -> bytes:
    """
    Run serialize -> compress -> (encrypt) -> pack for a manifest.

    Args:
        manifest: Index document
        compression: Compression algorithm
        public_key: RSA public key; encryption is skipped when None
        level: Optional compression level

    Returns:
        Container bytes ready to be written
    """
    compressed = compress(manifest.to_bytes(), compression, level=level)

    if public_key is None:
        return pack_container(compressed, compression)

    encrypted = encrypt(compressed, public_key)
    return pack_container(
        encrypted.ciphertext,
        compression,
        wrapped_key=encrypted.wrapped_key,
        size=len(compressed),
    )


def unpack_container(data: bytes, private_key: Optional[rsa.RSAPrivateKey] = None) -> bytes:
    """
    Decode a container back to the serialized index bytes.

    Args:
        data: Container bytes
        private_key: Required when the container is encrypted

    Returns:
        Decompressed payload (UTF-8 JSON)

    Raises:
        ContainerFormatError: If the container is malformed, or encrypted
                              and no private key was given
    """
    header = decode_header(data)
    size = decode_payload_size(data)
    wrapped_key = data[KEY_OFFSET:SIZE_OFFSET]
    payload = data[PAYLOAD_OFFSET:]

    if header.encrypted:
        if private_key is None:
            raise ContainerFormatError("Index is encrypted; a private key is required")
        payload = decrypt(wrapped_key, payload, private_key, size)
    elif size != len(payload):
        raise ContainerFormatError(
            f"Payload length mismatch: header says {size}, found {len(payload)}"
        )

    try:
        return decompress(payload, header.compression)
    except ValueError as e:
        raise ContainerFormatError(str(e)) from e
