"""Encryption at rest for stored credentials.

AES-256-CBC with a random 16-byte IV per value and PKCS7 padding.  The
stored payload is base64(iv || ciphertext), so one opaque string per
option is all the option store ever sees.

Key material of any length is accepted (an operator-supplied base64 key
or the auto-generated one); the AES key is its SHA-256 digest, which
always yields the 32 bytes AES-256 needs.

If the cryptography backend cannot provide AES-CBC, values degrade to
plain base64.  That keeps the exporter serving metrics but is logged as
a security degradation every time it happens.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import logging
import os

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from pressmetrics.core.errors import EncryptionError

logger = logging.getLogger(__name__)

IV_LENGTH = 16
_BLOCK_BITS = algorithms.AES.block_size


def derive_key(key_material: bytes) -> bytes:
    return hashlib.sha256(key_material).digest()


class TokenCipher:
    """Encrypt and decrypt short secrets under one key."""

    def __init__(self, key_material: bytes) -> None:
        if not key_material:
            raise ValueError("key_material must not be empty")
        self._key = derive_key(key_material)

    def _cipher(self, iv: bytes) -> Cipher:
        try:
            return Cipher(algorithms.AES(self._key), modes.CBC(iv))
        except UnsupportedAlgorithm as exc:
            raise EncryptionError("AES-256-CBC is not supported by this backend") from exc

    def encrypt(self, plaintext: str) -> str:
        iv = os.urandom(IV_LENGTH)
        try:
            encryptor = self._cipher(iv).encryptor()
        except EncryptionError:
            logger.warning(
                "Cipher unavailable, storing credential with reversible encoding only"
            )
            return base64.b64encode(plaintext.encode()).decode()

        padder = padding.PKCS7(_BLOCK_BITS).padder()
        padded = padder.update(plaintext.encode()) + padder.finalize()
        ciphertext = encryptor.update(padded) + encryptor.finalize()
        return base64.b64encode(iv + ciphertext).decode()

    def decrypt(self, payload: str) -> str | None:
        """Return the plaintext, or None if the payload is not decryptable."""
        try:
            raw = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError):
            return None

        if len(raw) < IV_LENGTH:
            return None
        iv, ciphertext = raw[:IV_LENGTH], raw[IV_LENGTH:]

        try:
            decryptor = self._cipher(iv).decryptor()
        except EncryptionError:
            logger.warning(
                "Cipher unavailable, reading credential with reversible encoding only"
            )
            return _utf8_or_none(raw)

        if not ciphertext or len(ciphertext) % (_BLOCK_BITS // 8):
            return None
        try:
            padded = decryptor.update(ciphertext) + decryptor.finalize()
            unpadder = padding.PKCS7(_BLOCK_BITS).unpadder()
            plaintext = unpadder.update(padded) + unpadder.finalize()
        except ValueError:
            # Wrong key or corrupted payload: padding check fails
            return None
        return _utf8_or_none(plaintext)


def _utf8_or_none(data: bytes) -> str | None:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return None
