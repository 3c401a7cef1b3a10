"""
Sui signing keys.

Decodes the key formats Sui wallets export and derives the address that owns the key:
``address = blake2b-256(scheme_flag || public_key)``.  Only ed25519 keys are supported.
"""

import base64
import binascii
import hashlib
import re

import bech32
from nacl.signing import SigningKey

from sage_agent.core.errors import InvalidCredentialError

PRIVATE_KEY_PREFIX = "suiprivkey"
ED25519_FLAG = 0x00

_SCHEME_NAMES = {0x00: "ed25519", 0x01: "secp256k1", 0x02: "secp256r1"}
_HEX_SEED_RE = re.compile(r"^(0x)?[0-9a-fA-F]{64}$")


def _split_flag(raw: bytes) -> bytes:
    if len(raw) != 33:
        raise InvalidCredentialError(f"Signing key has {len(raw)} bytes, expected 33")
    flag = raw[0]
    if flag != ED25519_FLAG:
        scheme = _SCHEME_NAMES.get(flag, f"flag {flag}")
        raise InvalidCredentialError(f"Unsupported signing key scheme: {scheme}")
    return raw[1:]


def decode_private_key(key: str) -> bytes:
    """
    Return the 32-byte ed25519 seed held in *key*.

    Accepted formats:

    - Bech32 ``suiprivkey1...`` (flag byte followed by the seed), what ``sui keytool export``
      prints.
    - Legacy base64 of ``flag || seed`` (33 bytes) or of the bare seed (32 bytes).
    - Hex seed, with or without ``0x``.

    Raises
    ------
    InvalidCredentialError
        If the key is malformed or uses a scheme other than ed25519.
    """
    key = key.strip()

    if key.lower().startswith(PRIVATE_KEY_PREFIX):
        hrp, data = bech32.bech32_decode(key)
        if hrp != PRIVATE_KEY_PREFIX or data is None:
            raise InvalidCredentialError("Malformed Sui private key (bad bech32 checksum)")
        raw = bech32.convertbits(data, 5, 8, False)
        if raw is None:
            raise InvalidCredentialError("Malformed Sui private key (bad padding)")
        return _split_flag(bytes(raw))

    if _HEX_SEED_RE.match(key):
        return bytes.fromhex(key[2:] if key[:2].lower() == "0x" else key)

    try:
        raw = base64.b64decode(key, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidCredentialError("Unrecognised signing key format") from exc
    if len(raw) == 32:
        return raw
    return _split_flag(raw)


def address_from_private_key(key: str) -> str:
    """Derive the ``0x``-prefixed Sui address owned by *key*."""
    public_key = SigningKey(decode_private_key(key)).verify_key.encode()
    digest = hashlib.blake2b(bytes([ED25519_FLAG]) + public_key, digest_size=32)
    return "0x" + digest.hexdigest()


def normalise_address(address: str) -> str:
    """Lower-case, ``0x``-prefix and left-pad a hex address to 32 bytes."""
    body = address.strip().lower()
    if body.startswith("0x"):
        body = body[2:]
    return "0x" + body.rjust(64, "0")
