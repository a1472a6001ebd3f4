"""Signing key-pair provisioning.

A ``KeyPair`` holds both halves in their interoperable binary encodings:
SPKI DER for the public key and unencrypted PKCS#8 DER for the private key.
Randomness comes from the OS CSPRNG through ``cryptography``.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519, rsa

from sigsync import config
from sigsync.errors import KeyGenerationError


@dataclass(frozen=True)
class KeyPair:
    public_key: bytes   # SPKI DER
    private_key: bytes  # PKCS#8 DER
    algorithm: str

    def __repr__(self) -> str:
        # never render private key material
        return f"KeyPair(algorithm={self.algorithm!r}, fingerprint={fingerprint(self.public_key)!r})"


def _new_private_key(algorithm: str):
    if algorithm == config.RSA_PKCS1V15_SHA256:
        return rsa.generate_private_key(
            public_exponent=config.RSA_PUBLIC_EXPONENT,
            key_size=config.RSA_KEY_SIZE,
        )
    if algorithm == config.ED25519:
        return ed25519.Ed25519PrivateKey.generate()
    raise KeyGenerationError(f"unsupported signature algorithm: {algorithm!r}")


def generate(algorithm: str | None = None) -> KeyPair:
    """Generate a fresh signing key pair for *algorithm* (default from config)."""
    algorithm = algorithm or config.SIGNATURE_ALGORITHM
    try:
        private_key = _new_private_key(algorithm)
        private_der = private_key.private_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
        public_der = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
    except (UnsupportedAlgorithm, ValueError, OSError) as exc:
        raise KeyGenerationError(f"{algorithm} key generation failed: {exc}") from exc
    return KeyPair(public_key=public_der, private_key=private_der, algorithm=algorithm)


def export_public(key_pair: KeyPair, armored: bool = False) -> bytes:
    """Return the public key as SPKI DER, or PEM when *armored*."""
    if not armored:
        return key_pair.public_key
    key = serialization.load_der_public_key(key_pair.public_key)
    return key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def export_private(key_pair: KeyPair, armored: bool = False) -> bytes:
    """Return the private key as PKCS#8 DER, or PEM when *armored*."""
    if not armored:
        return key_pair.private_key
    key = serialization.load_der_private_key(key_pair.private_key, password=None)
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


def fingerprint(public_key: bytes) -> str:
    """Short SHA-256 fingerprint of a public key, safe to log."""
    return hashlib.sha256(public_key).hexdigest()[:16]
