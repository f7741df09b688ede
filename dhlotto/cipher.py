from __future__ import annotations

import binascii

from Crypto.Cipher import PKCS1_v1_5
from Crypto.PublicKey import RSA

from .errors import EncryptionError
from .types import RSAPublicKeyMaterial


def encrypt(plaintext: str, modulus_hex: str, exponent_hex: str) -> str:
    """Encrypt ``plaintext`` with RSA PKCS#1 v1.5 and return hex ciphertext.

    The key is supplied by the remote login page as two hex strings. Padding
    is randomized, so two calls with the same input give different output.
    """
    try:
        modulus = int(modulus_hex, 16)
        exponent = int(exponent_hex, 16)
    except (TypeError, ValueError) as exc:
        raise EncryptionError("RSA key material is not valid hex") from exc

    try:
        key = RSA.construct((modulus, exponent))
        ciphertext = PKCS1_v1_5.new(key).encrypt(plaintext.encode("utf-8"))
    except ValueError as exc:
        # Raised for malformed keys and for plaintext longer than the modulus allows.
        raise EncryptionError(f"RSA encryption failed: {exc}") from exc

    return binascii.hexlify(ciphertext).decode("ascii")


def encrypt_with(material: RSAPublicKeyMaterial, plaintext: str) -> str:
    return encrypt(plaintext, material.modulus_hex, material.exponent_hex)
