"""
Container encoding: compression, hybrid encryption and the on-disk format.
"""

from .compression import CompressionAlgorithm, compress, decompress
from .encryption import (
    EncryptedPayload,
    decrypt,
    encrypt,
    load_private_key,
    load_public_key,
)
from .format import (
    FORMAT_VERSION,
    MAGIC,
    ContainerFormatError,
    ContainerHeader,
    decode_header,
    decode_payload_size,
    encode_header,
    encode_manifest,
    pack_container,
    unpack_container,
)
from .writer import write_atomic

__all__ = [
    # Compression
    "CompressionAlgorithm",
    "compress",
    "decompress",
    # Encryption
    "EncryptedPayload",
    "encrypt",
    "decrypt",
    "load_public_key",
    "load_private_key",
    # Format
    "FORMAT_VERSION",
    "MAGIC",
    "ContainerFormatError",
    "ContainerHeader",
    "encode_header",
    "decode_header",
    "decode_payload_size",
    "pack_container",
    "unpack_container",
    "encode_manifest",
    # Output
    "write_atomic",
]
