"""
Embedded version token scanner for firmware binaries.

Firmware builds place the git describe string in read-only data as a
C string, so it sits between null bytes. Scanning for a null-bounded
``v<digits>[.<digits>...][word-or-hyphen...]`` run finds it without
parsing the executable's section table.
"""

from typing import Iterator, Optional

NUL = 0x00
PREFIX = ord("v")


def _is_digit(byte_val: int) -> bool:
    return 0x30 <= byte_val <= 0x39


def _is_word_or_hyphen(byte_val: int) -> bool:
    """ASCII word character (A-Z, a-z, 0-9, _) or '-'."""
    return (
        _is_digit(byte_val)
        or 0x41 <= byte_val <= 0x5A
        or 0x61 <= byte_val <= 0x7A
        or byte_val == 0x5F
        or byte_val == 0x2D
    )


def _skip_digits(data: bytes, pos: int) -> int:
    end = len(data)
    while pos < end and _is_digit(data[pos]):
        pos += 1
    return pos


def match_token_at(data: bytes, start: int) -> Optional[int]:
    """
    Try to match a version token beginning at ``start``.

    Returns:
        Index of the terminating null byte, or None if the bytes at
        ``start`` are not a null-terminated version token.
    """
    end = len(data)
    if start >= end or data[start] != PREFIX:
        return None

    pos = _skip_digits(data, start + 1)
    if pos == start + 1:
        return None

    # Dotted numeric groups; a '.' without digits ends the token attempt
    while pos < end and data[pos] == 0x2E:
        group_end = _skip_digits(data, pos + 1)
        if group_end == pos + 1:
            return None
        pos = group_end

    while pos < end and _is_word_or_hyphen(data[pos]):
        pos += 1

    if pos < end and data[pos] == NUL:
        return pos
    return None


def iter_version_tokens(data: bytes) -> Iterator[str]:
    """Yield every null-delimited version token in ``data``, in order."""
    pos = data.find(NUL)
    while pos != -1:
        terminator = match_token_at(data, pos + 1)
        if terminator is not None:
            yield data[pos + 1:terminator].decode("ascii")
            # The closing null can open the next token
            pos = terminator
        else:
            pos = data.find(NUL, pos + 1)


def find_version_token(data: bytes) -> Optional[str]:
    """
    Return the first null-delimited version token in ``data``.

    Matches forms like ``v1.2.3`` and ``v2.1.0-beta``. Returns None when
    the binary carries no such marker.
    """
    return next(iter_version_tokens(data), None)
