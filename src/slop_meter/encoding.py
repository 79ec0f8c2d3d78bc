"""Decode fetched file bytes to text."""

import chardet


def decode_bytes(raw: bytes) -> str:
    """Decode as UTF-8, falling back to chardet's best guess."""
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        pass

    detected = chardet.detect(raw)
    encoding = detected.get("encoding") or "utf-8"
    try:
        return raw.decode(encoding, errors="replace")
    except LookupError:
        return raw.decode("utf-8", errors="replace")


def is_binary(raw: bytes) -> bool:
    """Null bytes or a high share of control bytes mean binary content."""
    chunk = raw[:8192]
    if not chunk:
        return False
    if b"\x00" in chunk:
        return True
    text_chars = bytearray({7, 8, 9, 10, 12, 13, 27} | set(range(0x20, 0x100)) - {0x7f})
    non_text = sum(1 for b in chunk if b not in text_chars)
    return non_text / len(chunk) > 0.3
