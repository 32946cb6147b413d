#!/usr/bin/env python3
"""
Payload encryption and checksums for miIO packets.

The device token is the only key material:
- key = MD5(token)
- iv = MD5(key + token)
- payloads are AES-128-CBC with PKCS#7 padding
- checksum = MD5(header[0:16] + token + encrypted payload)

A payload that fails to decrypt almost always means the token is wrong,
so decryption failures surface as ProtocolError.
"""

from __future__ import annotations

import hashlib

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from miiocli.errors import ProtocolError

BLOCK_SIZE_BITS: int = 128


def md5(data: bytes) -> bytes:
    """Return the raw MD5 digest of data."""
    return hashlib.md5(data).digest()


def derive_key_iv(token: bytes) -> tuple[bytes, bytes]:
    """
    Derive the AES key and IV from a device token.

    Args:
        token: 16-byte device token.

    Returns:
        Tuple of (key, iv), 16 bytes each.
    """
    key = md5(token)
    iv = md5(key + token)
    return key, iv


def _cipher(token: bytes) -> Cipher:
    key, iv = derive_key_iv(token)
    return Cipher(algorithms.AES(key), modes.CBC(iv))


def encrypt(token: bytes, plaintext: bytes) -> bytes:
    """
    Encrypt a payload with the token derived key.

    Args:
        token: 16-byte device token.
        plaintext: Payload bytes, any length.

    Returns:
        Ciphertext, a multiple of 16 bytes.
    """
    padder = padding.PKCS7(BLOCK_SIZE_BITS).padder()
    padded = padder.update(plaintext) + padder.finalize()
    encryptor = _cipher(token).encryptor()
    return encryptor.update(padded) + encryptor.finalize()


def decrypt(token: bytes, ciphertext: bytes) -> bytes:
    """
    Decrypt a payload with the token derived key.

    Args:
        token: 16-byte device token.
        ciphertext: Encrypted payload.

    Returns:
        The unpadded plaintext.

    Raises:
        ProtocolError: If the ciphertext is misaligned or padding is invalid.
    """
    if not ciphertext or len(ciphertext) % 16:
        raise ProtocolError(
            f"Encrypted payload length {len(ciphertext)} is not a multiple of 16"
        )
    decryptor = _cipher(token).decryptor()
    padded = decryptor.update(ciphertext) + decryptor.finalize()
    unpadder = padding.PKCS7(BLOCK_SIZE_BITS).unpadder()
    try:
        return unpadder.update(padded) + unpadder.finalize()
    except ValueError as e:
        raise ProtocolError("Payload decryption failed, invalid padding") from e


def checksum(header: bytes, token: bytes, payload: bytes) -> bytes:
    """
    Compute the packet checksum.

    Args:
        header: First 16 bytes of the packet header.
        token: 16-byte device token.
        payload: Encrypted payload bytes.

    Returns:
        16-byte MD5 digest.
    """
    return md5(header[:16] + token + payload)
