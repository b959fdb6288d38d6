"""
Byte decoding helpers shared by the text-family extractors.

BOM sniffing, strict UTF-8 with a chardet-detected fallback, and the
control-byte heuristic used to reject binary content.
"""

import codecs
import logging
from typing import NamedTuple, Optional, Tuple

import chardet

logger = logging.getLogger(__name__)

DEFAULT_ENCODING = "utf-8"
FALLBACK_ENCODING = "latin-1"

BINARY_SAMPLE_SIZE = 8192
BINARY_THRESHOLD = 0.01

_BOMS: Tuple[Tuple[bytes, str], ...] = (
    (codecs.BOM_UTF8, "utf-8-sig"),
    (codecs.BOM_UTF16_LE, "utf-16-le"),
    (codecs.BOM_UTF16_BE, "utf-16-be"),
)

# Control bytes that legitimately appear in text
_ALLOWED_CONTROL = {0x09, 0x0A, 0x0D}


class DecodedText(NamedTuple):
    text: str
    encoding: str
    fallback: bool  # True when strict decoding failed and a guess was used


def detect_bom(buffer: bytes) -> Optional[Tuple[str, int]]:
    """Return (encoding, bom_length) if the buffer starts with a known BOM."""
    for bom, encoding in _BOMS:
        if buffer.startswith(bom):
            return encoding, len(bom)
    return None


def _detect_single_byte(buffer: bytes) -> str:
    """Guess a codec with chardet, defaulting to latin-1."""
    try:
        result = chardet.detect(buffer[:10000])  # First 10KB is plenty
        return result.get("encoding") or FALLBACK_ENCODING
    except Exception:
        return FALLBACK_ENCODING


def decode_bytes(buffer: bytes, encoding: Optional[str] = None) -> DecodedText:
    """Decode bytes to text.

    Order: explicit encoding, BOM, strict UTF-8, then a chardet guess
    decoded with replacement characters.
    """
    if encoding:
        try:
            text = buffer.decode(encoding)
            # utf-8 (not utf-8-sig) keeps the BOM as U+FEFF
            return DecodedText(text.lstrip("\ufeff"), encoding, False)
        except (UnicodeDecodeError, LookupError) as e:
            logger.debug("Decoding with requested %s failed: %s", encoding, e)

    bom = detect_bom(buffer)
    if bom:
        bom_encoding, bom_length = bom
        try:
            # Decode without the BOM itself; utf-8-sig strips it anyway
            return DecodedText(buffer[bom_length:].decode(bom_encoding), bom_encoding, False)
        except UnicodeDecodeError as e:
            logger.debug("BOM said %s but decoding failed: %s", bom_encoding, e)

    # Try UTF-8 first (most common)
    try:
        return DecodedText(buffer.decode(DEFAULT_ENCODING), DEFAULT_ENCODING, encoding is not None)
    except UnicodeDecodeError:
        pass

    guessed = _detect_single_byte(buffer)
    try:
        text = buffer.decode(guessed, errors="replace")
    except LookupError:
        guessed = FALLBACK_ENCODING
        text = buffer.decode(guessed, errors="replace")
    logger.debug("Fell back to %s", guessed)
    return DecodedText(text, guessed, True)


def control_byte_ratio(buffer: bytes, sample_size: int = BINARY_SAMPLE_SIZE) -> float:
    """Fraction of non-text control bytes in the first sample_size bytes."""
    sample = buffer[:sample_size]
    if not sample:
        return 0.0
    control = sum(
        1 for byte in sample
        if (byte < 0x20 and byte not in _ALLOWED_CONTROL) or byte == 0x7F
    )
    return control / len(sample)


def is_probably_binary(
    buffer: bytes,
    sample_size: int = BINARY_SAMPLE_SIZE,
    threshold: float = BINARY_THRESHOLD,
) -> bool:
    """Heuristic binary check; UTF-16 text (with BOM) is never binary."""
    bom = detect_bom(buffer)
    if bom and bom[0].startswith("utf-16"):
        return False
    return control_byte_ratio(buffer, sample_size) > threshold
