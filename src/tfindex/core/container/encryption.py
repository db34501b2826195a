"""
Hybrid encryption stage for the index payload.

The layout is dictated by the Tinfoil reader and must not change:

- a fresh 256-bit AES session key is generated for every index
- the payload is zero-padded to the AES block size and encrypted with
  AES in ECB mode
- the session key is wrapped with the reader's RSA-2048 public key using
  OAEP (SHA-256, MGF1-SHA256, empty label)

ECB leaks repetitions between identical plaintext blocks and is not a sound
choice for new designs. It is kept here only because the reader decrypts
with ECB; switching modes would make every index unreadable.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from tfindex.core.errors import EncryptionKeyError

logger = logging.getLogger(__name__)

SESSION_KEY_SIZE = 32
AES_BLOCK_SIZE = 16
# The reader reserves exactly 0x100 bytes for the wrapped key
REQUIRED_KEY_BITS = 2048
WRAPPED_KEY_SIZE = REQUIRED_KEY_BITS // 8


@dataclass(frozen=True)
class EncryptedPayload:
    """Output of the encryption stage.

    Attributes:
        wrapped_key: RSA-OAEP encrypted session key (WRAPPED_KEY_SIZE bytes)
        ciphertext: AES-ECB encrypted, block padded payload
    """

    wrapped_key: bytes
    ciphertext: bytes


def _oaep() -> padding.OAEP:
    return padding.OAEP(
        mgf=padding.MGF1(algorithm=hashes.SHA256()),
        algorithm=hashes.SHA256(),
        label=None,
    )


def _pad(data: bytes) -> bytes:
    remainder = len(data) % AES_BLOCK_SIZE
    if remainder == 0:
        return bytes(data)
    return bytes(data) + b"\x00" * (AES_BLOCK_SIZE - remainder)


def _check_key_size(public_key: rsa.RSAPublicKey) -> None:
    if public_key.key_size != REQUIRED_KEY_BITS:
        raise EncryptionKeyError(
            f"RSA key is {public_key.key_size} bits; the index format "
            f"requires a {REQUIRED_KEY_BITS}-bit key"
        )


def load_public_key(path: Path | str) -> rsa.RSAPublicKey:
    """
    Load an RSA public key from a PEM or DER file.

    PEM files may hold either a SubjectPublicKeyInfo ("PUBLIC KEY") or a
    PKCS#1 ("RSA PUBLIC KEY") block.

    Raises:
        EncryptionKeyError: If the file is missing, unreadable, malformed,
                            not RSA, or not 2048 bits
    """
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise EncryptionKeyError(f"Cannot read public key {path}: {e}") from e

    try:
        if b"-----BEGIN" in data:
            key = serialization.load_pem_public_key(data)
        else:
            key = serialization.load_der_public_key(data)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise EncryptionKeyError(f"Malformed public key {path}: {e}") from e

    if not isinstance(key, rsa.RSAPublicKey):
        raise EncryptionKeyError(f"Public key {path} is not an RSA key")

    _check_key_size(key)
    logger.debug(f"Loaded {key.key_size}-bit RSA public key from {path}")
    return key


def encrypt(data: bytes, public_key: rsa.RSAPublicKey) -> EncryptedPayload:
    """
    Encrypt ``data`` under a fresh session key wrapped for ``public_key``.

    Raises:
        EncryptionKeyError: If the key cannot wrap the session key
    """
    _check_key_size(public_key)

    session_key = os.urandom(SESSION_KEY_SIZE)
    encryptor = Cipher(algorithms.AES(session_key), modes.ECB()).encryptor()
    ciphertext = encryptor.update(_pad(data)) + encryptor.finalize()

    try:
        wrapped_key = public_key.encrypt(session_key, _oaep())
    except ValueError as e:
        raise EncryptionKeyError(f"Cannot wrap session key: {e}") from e

    return EncryptedPayload(wrapped_key=wrapped_key, ciphertext=ciphertext)


def decrypt(
    wrapped_key: bytes,
    ciphertext: bytes,
    private_key: rsa.RSAPrivateKey,
    size: int,
) -> bytes:
    """
    Reverse :func:`encrypt` with the matching private key.

    Args:
        wrapped_key: Wrapped session key from the container
        ciphertext: Encrypted payload from the container
        private_key: RSA private key matching the wrapping public key
        size: Payload length before block padding

    Raises:
        EncryptionKeyError: If the session key cannot be unwrapped
    """
    try:
        session_key = private_key.decrypt(wrapped_key, _oaep())
    except ValueError as e:
        raise EncryptionKeyError(f"Cannot unwrap session key: {e}") from e

    decryptor = Cipher(algorithms.AES(session_key), modes.ECB()).decryptor()
    plaintext = decryptor.update(ciphertext) + decryptor.finalize()
    return plaintext[:size]


def load_private_key(path: Path | str, password: bytes | None = None) -> rsa.RSAPrivateKey:
    """Load an RSA private key (PEM or DER), for verifying encrypted indexes."""
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise EncryptionKeyError(f"Cannot read private key {path}: {e}") from e

    try:
        if b"-----BEGIN" in data:
            key = serialization.load_pem_private_key(data, password=password)
        else:
            key = serialization.load_der_private_key(data, password=password)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise EncryptionKeyError(f"Malformed private key {path}: {e}") from e

    if not isinstance(key, rsa.RSAPrivateKey):
        raise EncryptionKeyError(f"Private key {path} is not an RSA key")
    return key
