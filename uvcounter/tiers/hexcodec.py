"""Hex text encoding for fixed-size byte buffers.

Tiers backed by a byte buffer (Bitmap, HyperLogLog) persist it as lowercase
hex, two digits per byte. In compressed form trailing zero bytes are
dropped; an all-zero buffer encodes to the empty string. The decoder must
be told the buffer size and zero-fills whatever the text does not cover.

Decoding validates the whole string before returning anything, so a
malformed input never partially populates a tier.
"""

from __future__ import annotations

import re

from uvcounter.errors import FormatError

__all__ = ["decode_hex", "encode_hex"]

_HEX_RE = re.compile(r"[0-9a-fA-F]*")


def encode_hex(data: bytes | bytearray, compress: bool = True) -> str:
    """Encode a byte buffer as hex text.

    Args:
        data: The buffer to encode.
        compress: Drop trailing zero bytes when True.
    """
    if compress:
        data = bytes(data).rstrip(b"\x00")
    return bytes(data).hex()


def decode_hex(text: str, size: int, compress: bool = True) -> bytearray:
    """Decode hex text into a new buffer of ``size`` bytes.

    Args:
        text: Hex text produced by ``encode_hex``.
        size: Nominal buffer size in bytes.
        compress: When True, ``text`` may cover any prefix of the buffer.
            When False it must cover exactly ``size`` bytes.

    Returns:
        A freshly allocated buffer.

    Raises:
        FormatError: If the text is not a string, contains non-hex
            characters, has odd length, or does not fit ``size``.
    """
    if not isinstance(text, str):
        raise FormatError(f"Expected hex string, got {type(text).__name__}")
    if not _HEX_RE.fullmatch(text):
        raise FormatError("Invalid hexadecimal string")
    if len(text) % 2 != 0:
        raise FormatError("Hex string length must be even")

    byte_count = len(text) // 2
    if compress:
        if byte_count > size:
            raise FormatError(
                f"Compressed hex string too long: {byte_count} bytes for a {size}-byte buffer"
            )
    elif byte_count != size:
        raise FormatError(
            f"Hex string length mismatch. Expected {size * 2} characters, got {len(text)}"
        )

    buffer = bytearray(size)
    buffer[:byte_count] = bytes.fromhex(text)
    return buffer
