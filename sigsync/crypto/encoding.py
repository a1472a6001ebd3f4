"""Canonical message encoding and wire codecs.

The canonical encoding is the raw UTF-8 of the message: no framing, no
length prefix, no separator.  Both sides must call ``encode`` and nothing
else before signing or verifying.

Wire values are base64 text.  Public keys may additionally arrive PEM
armored; every key, whatever direction it travels, goes through the same
``strip_armor`` rule before base64 decoding.
"""

from __future__ import annotations

import base64
import binascii
import re
from typing import Union

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization

from sigsync.errors import DecodingError

WireBytes = Union[bytes, str]

_ARMOR_RE = re.compile(r"-----(BEGIN|END) [A-Z0-9 ]+-----")
_WS_RE = re.compile(r"\s+")

# DER SEQUENCE tag; every SPKI structure starts with it.
_DER_SEQUENCE = 0x30


def encode(message: str) -> bytes:
    """Return the exact bytes that are hashed and signed for *message*."""
    if not isinstance(message, str):
        raise TypeError(f"message must be str, not {type(message).__name__}")
    return message.encode("utf-8")


# ---------------------------------------------------------------------------
# base64
# ---------------------------------------------------------------------------


def b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def b64decode(text: str) -> bytes:
    """Strict base64 decode; anything malformed raises ``DecodingError``."""
    cleaned = _WS_RE.sub("", text)
    if not cleaned:
        raise DecodingError("empty base64 value")
    try:
        return base64.b64decode(cleaned, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodingError(f"invalid base64: {exc}") from exc


# ---------------------------------------------------------------------------
# signatures
# ---------------------------------------------------------------------------


def decode_signature(signature: WireBytes) -> bytes:
    """Raw signature bytes from base64 text, or *signature* itself if bytes."""
    if isinstance(signature, str):
        return b64decode(signature)
    if isinstance(signature, (bytes, bytearray)):
        if not signature:
            raise DecodingError("empty signature")
        return bytes(signature)
    raise DecodingError(f"unsupported signature type {type(signature).__name__}")


# ---------------------------------------------------------------------------
# public keys
# ---------------------------------------------------------------------------


def strip_armor(text: str) -> str:
    """Remove PEM header/footer lines and all whitespace."""
    return _WS_RE.sub("", _ARMOR_RE.sub("", text))


def decode_public_key(public_key: WireBytes) -> bytes:
    """Normalize a PEM, base64-DER or raw-DER public key to SPKI DER bytes."""
    if isinstance(public_key, (bytes, bytearray)):
        if not public_key:
            raise DecodingError("empty public key")
        if public_key[0] == _DER_SEQUENCE:
            return bytes(public_key)
        try:
            public_key = bytes(public_key).decode("ascii")
        except UnicodeDecodeError as exc:
            raise DecodingError("public key is neither DER nor ASCII text") from exc
    if not isinstance(public_key, str):
        raise DecodingError(f"unsupported public key type {type(public_key).__name__}")
    return b64decode(strip_armor(public_key))


def load_public_key(public_key: WireBytes):
    """Decode and parse a public key; returns a ``cryptography`` key object."""
    der = decode_public_key(public_key)
    try:
        return serialization.load_der_public_key(der)
    except (ValueError, UnsupportedAlgorithm) as exc:
        raise DecodingError(f"invalid SPKI public key: {exc}") from exc


def public_key_pem(public_key: WireBytes) -> str:
    """PEM text for a public key given in any accepted wire form."""
    key = load_public_key(public_key)
    return key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("ascii")
