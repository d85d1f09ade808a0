"""AES-256-CBC message cipher used in encrypted (``encrypt_type=aes``) mode.

Plaintext layout::

    random(16) | len(message) as uint32 big-endian | message | app_id

padded with PKCS7 to the 16-byte block size. The IV is the first 16 bytes of
the key. That reuse is part of the platform's published scheme; a fresh IV
would make ciphertexts unreadable on the other side.
"""

from __future__ import annotations

import base64
import binascii
import logging
import secrets
import string
import struct
import time

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from weapp_notify.config import AES_KEY_SIZE
from weapp_notify.errors import DecryptError
from weapp_notify.ingress.signature import make_signature
from weapp_notify.models import EncryptedReply

logger = logging.getLogger(__name__)

BLOCK_SIZE = 16
NONCE_SIZE = 16
_LENGTH = struct.Struct(">I")
_HEADER_SIZE = NONCE_SIZE + _LENGTH.size
_NONCE_ALPHABET = string.ascii_letters + string.digits


def pkcs7_pad(data: bytes, block_size: int = BLOCK_SIZE) -> bytes:
    """Pad ``data`` to a multiple of ``block_size``.

    An already aligned input gets a full block of padding.
    """
    padder = padding.PKCS7(block_size * 8).padder()
    return padder.update(data) + padder.finalize()


def pkcs7_unpad(data: bytes, block_size: int = BLOCK_SIZE) -> bytes:
    """Strip PKCS7 padding.

    Raises:
        DecryptError: If the padding is missing or inconsistent.
    """
    unpadder = padding.PKCS7(block_size * 8).unpadder()
    try:
        return unpadder.update(data) + unpadder.finalize()
    except ValueError as e:
        raise DecryptError(f"Invalid PKCS7 padding: {e}", code="BAD_PADDING") from e


def random_nonce(length: int = NONCE_SIZE) -> str:
    """Random printable string from a CSPRNG."""
    return "".join(secrets.choice(_NONCE_ALPHABET) for _ in range(length))


class MessageCipher:
    """Encrypts replies and decrypts notifications for one mini program.

    Args:
        key: Raw 32-byte AES key (decoded EncodingAESKey).
        app_id: AppID appended to every plaintext.
        token: Verification token used to sign outgoing envelopes.
    """

    def __init__(self, key: bytes, app_id: str, token: str) -> None:
        if len(key) != AES_KEY_SIZE:
            raise ValueError(f"AES key must be {AES_KEY_SIZE} bytes, got {len(key)}")
        self._key = key
        self._iv = key[:BLOCK_SIZE]
        self._app_id = app_id
        self._token = token

    def _cipher(self) -> Cipher:
        return Cipher(algorithms.AES(self._key), modes.CBC(self._iv))

    # ================================================================
    # Raw block layer
    # ================================================================

    def encrypt(self, message: bytes, nonce: str | None = None) -> bytes:
        """Frame, pad and encrypt ``message``."""
        nonce = nonce or random_nonce()
        plaintext = (
            nonce.encode("utf-8")
            + _LENGTH.pack(len(message))
            + message
            + self._app_id.encode("utf-8")
        )
        encryptor = self._cipher().encryptor()
        return encryptor.update(pkcs7_pad(plaintext)) + encryptor.finalize()

    def decrypt(self, ciphertext: bytes) -> bytes:
        """Decrypt and unpad; the result still carries nonce/length/app_id."""
        if not ciphertext or len(ciphertext) % BLOCK_SIZE:
            raise DecryptError(
                f"Ciphertext length {len(ciphertext)} is not a multiple of {BLOCK_SIZE}",
                code="BAD_BLOCK_SIZE",
            )
        decryptor = self._cipher().decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()
        return pkcs7_unpad(padded)

    # ================================================================
    # Envelope layer
    # ================================================================

    def encrypt_message(self, message: bytes, timestamp: int | None = None) -> EncryptedReply:
        """Encrypt a reply body and sign it for the outgoing envelope."""
        timestamp = int(time.time()) if timestamp is None else timestamp
        nonce = random_nonce()
        encrypt = base64.b64encode(self.encrypt(message, nonce)).decode("ascii")
        timestr = str(timestamp)

        return EncryptedReply(
            encrypt=encrypt,
            msg_signature=make_signature(self._token, timestr, nonce, encrypt),
            timestamp=timestr,
            nonce=nonce,
        )

    def decrypt_message(self, encrypted: str) -> bytes:
        """Decrypt an ``Encrypt`` field and return the framed message.

        Raises:
            DecryptError: On bad base64, block size, padding or framing.
        """
        try:
            ciphertext = base64.b64decode(encrypted, validate=True)
        except (binascii.Error, ValueError) as e:
            raise DecryptError(f"Invalid base64 ciphertext: {e}", code="BAD_BASE64") from e

        plain = self.decrypt(ciphertext)
        if len(plain) < _HEADER_SIZE:
            raise DecryptError("Decrypted message too short", code="BAD_FRAME")

        (length,) = _LENGTH.unpack(plain[NONCE_SIZE:_HEADER_SIZE])
        end = _HEADER_SIZE + length
        if end > len(plain):
            raise DecryptError(
                f"Message length {length} exceeds decrypted size {len(plain)}",
                code="BAD_FRAME",
            )

        app_id = plain[end:].decode("utf-8", errors="replace")
        if app_id != self._app_id:
            logger.warning("Decrypted message addressed to app_id=%s, expected %s", app_id, self._app_id)

        return plain[_HEADER_SIZE:end]
