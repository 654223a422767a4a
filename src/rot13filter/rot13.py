from __future__ import annotations

import string

_ROT13 = bytes.maketrans(
    (string.ascii_lowercase + string.ascii_uppercase).encode(),
    (
        string.ascii_lowercase[13:]
        + string.ascii_lowercase[:13]
        + string.ascii_uppercase[13:]
        + string.ascii_uppercase[:13]
    ).encode(),
)


def rot13(data: bytes) -> bytes:
    """Rotate ASCII letters by 13 places. Every other byte is left alone."""
    return data.translate(_ROT13)
