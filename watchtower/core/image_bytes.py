"""Image Byte Normalization — collapses accepted image inputs to one raw `bytes` body.

Invariants:
    - bytes / bytearray / memoryview / binary reader of the same data → identical bytes
    - An unsupported representation raises UnsupportedImageInputError as soon as
      image_reader() sees it (caller misuse, never failed open)
    - A supported reader that fails while reading raises ImageReadError, an
      infrastructure failure that the client fails open
    - Readers are read from their current position to EOF; they are not closed

Design Decisions:
    - Two phases: image_reader() classifies eagerly, the returned callable reads.
      The client classifies before its fail-open boundary and reads inside it
"""

import io
from functools import partial
from typing import Any, Callable

from watchtower.core.errors import ImageReadError, UnsupportedImageInputError

BYTES_LIKE = (bytes, bytearray, memoryview)


def image_reader(data: Any) -> Callable[[], bytes]:
    """Return a callable producing the raw request body for `data`."""
    if isinstance(data, bytes):
        return lambda: data
    if isinstance(data, (bytearray, memoryview)):
        return partial(bytes, data)
    if isinstance(data, io.TextIOBase):
        raise UnsupportedImageInputError(type(data).__name__)

    read = getattr(data, "read", None)
    if callable(read):
        return partial(_read_binary, type(data).__name__, read)

    raise UnsupportedImageInputError(type(data).__name__)


def normalize_image_bytes(data: Any) -> bytes:
    """Return the raw request body for an image in any accepted representation."""
    return image_reader(data)()


def _read_binary(source: str, read: Callable[[], Any]) -> bytes:
    try:
        content = read()
    except (OSError, ValueError) as e:
        raise ImageReadError(f"{source}.read() raised {type(e).__name__}: {e}") from e
    if not isinstance(content, BYTES_LIKE):
        # Text-mode duck readers yield str: not an image payload
        raise ImageReadError(f"{source}.read() returned {type(content).__name__}")
    return bytes(content)
