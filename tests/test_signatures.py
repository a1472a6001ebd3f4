"""Tests for signing and fail-closed verification."""

import pytest

from sigsync import config
from sigsync.crypto import encoding, keys, signatures
from sigsync.errors import SigningError

RSA = config.RSA_PKCS1V15_SHA256
ED = config.ED25519

MSG = "test-message-abc123"


@pytest.fixture(scope="module")
def k1():
    return keys.generate(RSA)


@pytest.fixture(scope="module")
def k2():
    return keys.generate(RSA)


@pytest.fixture(scope="module")
def ed():
    return keys.generate(ED)


def test_sign_verify(k1):
    sig = signatures.sign(MSG, k1.private_key, RSA)
    assert signatures.verify(MSG, sig, k1.public_key, RSA) is True


def test_signature_is_modulus_sized_and_deterministic(k1):
    sig = signatures.sign(MSG, k1.private_key, RSA)
    assert len(sig) == 256
    assert sig == signatures.sign(MSG, k1.private_key, RSA)


@pytest.mark.parametrize("message", ["", "hello", "héllo wörld ✓", "line\nbreak", "x" * 10_000])
def test_roundtrip_various_messages(k1, message):
    sig = signatures.sign(message, k1.private_key, RSA)
    assert signatures.verify(message, sig, k1.public_key, RSA)


def test_wire_encoded_inputs(k1):
    sig = signatures.sign(MSG, k1.private_key, RSA)
    pem = keys.export_public(k1, armored=True).decode()
    assert signatures.verify(MSG, encoding.b64encode(sig), pem, RSA)
    assert signatures.verify(MSG, encoding.b64encode(sig), encoding.b64encode(k1.public_key), RSA)


def test_pem_private_key(k1):
    pem = keys.export_private(k1, armored=True)
    sig = signatures.sign(MSG, pem, RSA)
    assert signatures.verify(MSG, sig, k1.public_key, RSA)


def test_tampered_message(k1):
    sig = signatures.sign(MSG, k1.private_key, RSA)
    assert signatures.verify(MSG + "x", sig, k1.public_key, RSA) is False
    assert signatures.verify(MSG.upper(), sig, k1.public_key, RSA) is False


def test_wrong_key(k1, k2):
    sig = signatures.sign(MSG, k1.private_key, RSA)
    assert signatures.verify(MSG, sig, k2.public_key, RSA) is False


def test_flipped_signature_bit(k1):
    sig = bytearray(signatures.sign(MSG, k1.private_key, RSA))
    sig[10] ^= 0x01
    assert signatures.verify(MSG, bytes(sig), k1.public_key, RSA) is False


@pytest.mark.parametrize(
    "signature",
    ["not base64!!", "", "abc", b"", b"\x00" * 12, None, 42],
)
def test_malformed_signature_fails_closed(k1, signature):
    assert signatures.verify(MSG, signature, k1.public_key, RSA) is False


def test_truncated_signature(k1):
    sig = signatures.sign(MSG, k1.private_key, RSA)
    assert signatures.verify(MSG, sig[:-1], k1.public_key, RSA) is False
    assert signatures.verify(MSG, encoding.b64encode(sig)[:40], k1.public_key, RSA) is False


@pytest.mark.parametrize(
    "public_key",
    [
        "",
        "garbage",
        "-----BEGIN PUBLIC KEY-----\ngarbage\n-----END PUBLIC KEY-----",
        b"\x30\x03\x01\x02\x03",
        None,
    ],
)
def test_malformed_public_key_fails_closed(k1, public_key):
    sig = signatures.sign(MSG, k1.private_key, RSA)
    assert signatures.verify(MSG, sig, public_key, RSA) is False


def test_truncated_public_key(k1):
    sig = signatures.sign(MSG, k1.private_key, RSA)
    assert signatures.verify(MSG, sig, k1.public_key[:100], RSA) is False


def test_non_text_message_fails_closed(k1):
    sig = signatures.sign(MSG, k1.private_key, RSA)
    assert signatures.verify(None, sig, k1.public_key, RSA) is False
    assert signatures.verify("\ud800", sig, k1.public_key, RSA) is False


def test_ed25519_roundtrip(ed):
    sig = signatures.sign(MSG, ed.private_key, ED)
    assert signatures.verify(MSG, sig, ed.public_key, ED)
    assert not signatures.verify(MSG + "x", sig, ed.public_key, ED)


def test_algorithm_mismatch_fails_closed(k1, ed):
    rsa_sig = signatures.sign(MSG, k1.private_key, RSA)
    ed_sig = signatures.sign(MSG, ed.private_key, ED)
    assert signatures.verify(MSG, rsa_sig, k1.public_key, ED) is False
    assert signatures.verify(MSG, ed_sig, ed.public_key, RSA) is False
    assert signatures.verify(MSG, ed_sig, k1.public_key, RSA) is False
    assert signatures.verify(MSG, rsa_sig, k1.public_key, "rsa-pss-sha512") is False


def test_sign_rejects_bad_private_key():
    with pytest.raises(SigningError):
        signatures.sign(MSG, b"not a key", RSA)
    with pytest.raises(SigningError):
        signatures.sign(MSG, None, RSA)


def test_sign_rejects_unencodable_message(k1):
    with pytest.raises(SigningError):
        signatures.sign("\ud800", k1.private_key, RSA)
    with pytest.raises(SigningError):
        signatures.sign(None, k1.private_key, RSA)
    with pytest.raises(SigningError):
        signatures.sign(b"bytes", k1.private_key, RSA)


def test_sign_rejects_key_algorithm_mismatch(k1, ed):
    with pytest.raises(SigningError):
        signatures.sign(MSG, ed.private_key, RSA)
    with pytest.raises(SigningError):
        signatures.sign(MSG, k1.private_key, ED)
    with pytest.raises(SigningError):
        signatures.sign(MSG, k1.private_key, "rsa-pss-sha512")
