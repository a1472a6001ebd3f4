"""Message signatures: RSASSA-PKCS1-v1_5 / SHA-256, or Ed25519.

The signed bytes are always ``encoding.encode(message)``.  The hash is
computed inside the primitive, so callers never supply a digest.

``verify`` is fail-closed: it returns ``True`` only when the primitive
accepts the signature.  Decoding problems, key-type mismatches and
primitive errors all come back as ``False``.
"""

from __future__ import annotations

import logging

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ed25519, padding, rsa

from sigsync import config
from sigsync.crypto import encoding
from sigsync.errors import DecodingError, SigningError

logger = logging.getLogger(__name__)


def _load_private_key(private_key: bytes):
    if isinstance(private_key, str):
        private_key = private_key.encode("ascii")
    if not isinstance(private_key, (bytes, bytearray)):
        raise TypeError(f"private key must be bytes, not {type(private_key).__name__}")
    private_key = bytes(private_key)
    if private_key.lstrip().startswith(b"-----"):
        return serialization.load_pem_private_key(private_key, password=None)
    return serialization.load_der_private_key(private_key, password=None)


def sign(message: str, private_key: bytes, algorithm: str | None = None) -> bytes:
    """Produce a signature over *message* with a PKCS#8 (DER or PEM) key."""
    algorithm = algorithm or config.SIGNATURE_ALGORITHM
    try:
        data = encoding.encode(message)
    except (TypeError, UnicodeEncodeError) as exc:
        raise SigningError(f"message cannot be encoded: {exc}") from exc
    try:
        key = _load_private_key(private_key)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise SigningError(f"malformed private key: {exc}") from exc

    if algorithm == config.RSA_PKCS1V15_SHA256:
        if not isinstance(key, rsa.RSAPrivateKey):
            raise SigningError(f"{algorithm} needs an RSA key, got {type(key).__name__}")
        try:
            return key.sign(data, padding.PKCS1v15(), hashes.SHA256())
        except (ValueError, UnsupportedAlgorithm) as exc:
            raise SigningError(f"RSA signing failed: {exc}") from exc

    if algorithm == config.ED25519:
        if not isinstance(key, ed25519.Ed25519PrivateKey):
            raise SigningError(f"{algorithm} needs an Ed25519 key, got {type(key).__name__}")
        return key.sign(data)

    raise SigningError(f"unsupported signature algorithm: {algorithm!r}")


def verify(
    message: str,
    signature: encoding.WireBytes,
    public_key: encoding.WireBytes,
    algorithm: str | None = None,
) -> bool:
    """Return ``True`` only if *signature* over *message* checks out under *public_key*.

    *signature* is raw bytes or base64 text.  *public_key* is SPKI DER,
    base64 DER, or PEM.
    """
    algorithm = algorithm or config.SIGNATURE_ALGORITHM
    try:
        sig = encoding.decode_signature(signature)
        key = encoding.load_public_key(public_key)
        data = encoding.encode(message)
    except (DecodingError, TypeError, UnicodeEncodeError) as exc:
        logger.warning("Signature rejected, undecodable input: %s", exc)
        return False

    try:
        if algorithm == config.RSA_PKCS1V15_SHA256:
            if not isinstance(key, rsa.RSAPublicKey):
                logger.warning("Signature rejected, expected RSA key, got %s", type(key).__name__)
                return False
            key.verify(sig, data, padding.PKCS1v15(), hashes.SHA256())
        elif algorithm == config.ED25519:
            if not isinstance(key, ed25519.Ed25519PublicKey):
                logger.warning("Signature rejected, expected Ed25519 key, got %s", type(key).__name__)
                return False
            key.verify(sig, data)
        else:
            logger.error("Signature rejected, unsupported algorithm %r", algorithm)
            return False
    except InvalidSignature:
        logger.debug("Signature does not match message")
        return False
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        logger.warning("Signature rejected, primitive error: %s", exc)
        return False
    return True
