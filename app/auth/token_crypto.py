"""Access-token encryption shared with the web front end.

Tokens travel as ``<iv-hex>:<ciphertext-hex>``, encrypted with AES-256-CTR
under a key derived from the server's SECRET_KEY.
"""

import hashlib
import logging
import os
from typing import Optional

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from app.jobs.errors import DecryptionFailed

logger = logging.getLogger(__name__)

IV_BYTES = 16


def derive_key(secret_key: str) -> bytes:
    """SHA-256 of the secret -> 32-byte AES key."""
    return hashlib.sha256(secret_key.encode("utf-8")).digest()


def decrypt_token(encrypted_token: str, secret_key: str) -> str:
    """Recover the plaintext access token.

    Raises DecryptionFailed for a malformed token, a wrong key or IV, or a
    plaintext that is not valid UTF-8.
    """
    if not secret_key:
        logger.error("SECRET_KEY is not configured; cannot decrypt access token")
        raise DecryptionFailed()

    parts = encrypted_token.split(":")
    if len(parts) != 2:
        raise DecryptionFailed()

    try:
        iv = bytes.fromhex(parts[0])
        ciphertext = bytes.fromhex(parts[1])
    except ValueError:
        raise DecryptionFailed()

    try:
        decryptor = Cipher(algorithms.AES(derive_key(secret_key)), modes.CTR(iv)).decryptor()
        plaintext = decryptor.update(ciphertext) + decryptor.finalize()
    except ValueError as exc:
        logger.warning("Token decryption rejected: %s", exc)
        raise DecryptionFailed()

    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError:
        raise DecryptionFailed()


def encrypt_token(plaintext: str, secret_key: str, iv: Optional[bytes] = None) -> str:
    """Inverse of decrypt_token. A random IV is used when none is given."""
    if iv is None:
        iv = os.urandom(IV_BYTES)
    encryptor = Cipher(algorithms.AES(derive_key(secret_key)), modes.CTR(iv)).encryptor()
    ciphertext = encryptor.update(plaintext.encode("utf-8")) + encryptor.finalize()
    return f"{iv.hex()}:{ciphertext.hex()}"
