"""Minisign public key / signature parsing and verification.

A signature file has exactly four lines::

    untrusted comment: <anything>
    <base64: 2-byte algorithm, 8-byte key id, signature>
    trusted comment: <metadata, covered by the global signature>
    <base64: global signature>

Algorithm ``ED`` signs the BLAKE2b-512 digest of the payload ("hashed"
mode); ``Ed`` signs the raw payload. The global signature covers
``signature || trusted_comment`` and binds the trusted comment (which names
the signed file) to the primary signature.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from typing import Union

import nacl.encoding
import nacl.exceptions
import nacl.hash
import nacl.signing

from errors import FormatError

UNTRUSTED_HEADER = b"untrusted comment: "
TRUSTED_HEADER = b"trusted comment: "
HASHED_ALGORITHM = b"ED"
KEY_ID_BYTES = 8
PUBLIC_KEY_BYTES = 32
HASH_BYTES = 64


@dataclass(frozen=True)
class PublicKey:
    key_id: bytes
    key: bytes


@dataclass(frozen=True)
class SignatureRecord:
    algorithm: bytes
    key_id: bytes
    signature: bytes
    trusted_comment: bytes
    global_signature: bytes


def _b64decode(data: Union[str, bytes], what: str) -> bytes:
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise FormatError(f"invalid minisign {what}: bad base64") from exc


def parse_key(key_blob: Union[str, bytes]) -> PublicKey:
    """Parse a base64 minisign public key.

    Raises:
        FormatError: If the blob is not base64 or the key has the wrong length.
    """
    if isinstance(key_blob, str):
        key_blob = key_blob.strip().encode("ascii", errors="replace")
    key_info = _b64decode(key_blob.strip(), "public key")
    key_id = key_info[2:2 + KEY_ID_BYTES]
    key = key_info[2 + KEY_ID_BYTES:]
    if len(key_id) != KEY_ID_BYTES or len(key) != PUBLIC_KEY_BYTES:
        raise FormatError("invalid public key given")
    return PublicKey(key_id=key_id, key=key)


class _Cursor:
    """Sequential reader over the signature buffer."""

    def __init__(self, buf: bytes) -> None:
        self._buf = buf
        self._pos = 0

    def expect(self, literal: bytes, what: str) -> None:
        if not self._buf.startswith(literal, self._pos):
            raise FormatError(f"invalid minisign signature: bad {what} header")
        self._pos += len(literal)

    def line(self, what: str) -> bytes:
        end = self._buf.find(b"\n", self._pos)
        if end == -1:
            raise FormatError(f"invalid minisign signature: truncated {what}")
        value = self._buf[self._pos:end]
        self._pos = end + 1
        return value

    def last_line(self) -> bytes:
        # The final newline is optional.
        end = self._buf.find(b"\n", self._pos)
        if end == -1:
            end = len(self._buf)
            value = self._buf[self._pos:end]
            self._pos = end
        else:
            value = self._buf[self._pos:end]
            self._pos = end + 1
        return value

    def remaining(self) -> int:
        return len(self._buf) - self._pos


def parse_signature(sig_buf: bytes) -> SignatureRecord:
    """Parse the contents of a ``.minisig`` file.

    Raises:
        FormatError: If a header is missing, a section is malformed, or bytes
            remain after the global signature.
    """
    cursor = _Cursor(bytes(sig_buf))
    cursor.expect(UNTRUSTED_HEADER, "untrusted comment")
    cursor.line("untrusted comment")

    sig_info = _b64decode(cursor.line("signature"), "signature")
    if len(sig_info) < 2 + KEY_ID_BYTES:
        raise FormatError("invalid minisign signature: signature block too short")

    cursor.expect(TRUSTED_HEADER, "trusted comment")
    trusted_comment = cursor.line("trusted comment")
    global_signature = _b64decode(cursor.last_line(), "global signature")

    if cursor.remaining() != 0:
        raise FormatError("invalid minisign signature: trailing bytes")

    return SignatureRecord(
        algorithm=sig_info[:2],
        key_id=sig_info[2:2 + KEY_ID_BYTES],
        signature=sig_info[2 + KEY_ID_BYTES:],
        trusted_comment=trusted_comment,
        global_signature=global_signature,
    )


def _verify_detached(verify_key: nacl.signing.VerifyKey, message: bytes, signature: bytes) -> bool:
    try:
        verify_key.verify(message, signature)
    except (nacl.exceptions.CryptoError, ValueError, TypeError):
        return False
    return True


def verify_signature(pubkey: PublicKey, record: SignatureRecord, payload: bytes) -> bool:
    """Verify ``payload`` and the trusted comment against ``record``.

    Never raises: any failure, including a key id mismatch, returns False.
    """
    if record.key_id != pubkey.key_id:
        return False
    try:
        verify_key = nacl.signing.VerifyKey(pubkey.key)
    except (nacl.exceptions.CryptoError, ValueError, TypeError):
        return False

    if record.algorithm == HASHED_ALGORITHM:
        message = nacl.hash.blake2b(payload, digest_size=HASH_BYTES, encoder=nacl.encoding.RawEncoder)
    else:
        message = payload
    if not _verify_detached(verify_key, message, record.signature):
        return False

    return _verify_detached(
        verify_key,
        record.signature + record.trusted_comment,
        record.global_signature,
    )
