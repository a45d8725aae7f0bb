"""Input loader — one blocking read of the whole input stream.

Usage::

    from genbridge.loader import load_input

    raw = load_input()              # sys.stdin, UTF-8
    raw = load_input(fh, "latin-1")
"""

from __future__ import annotations

import logging
import sys
from typing import IO, Any

from genbridge.config import DEFAULT_ENCODING, READ_CHUNK_SIZE
from genbridge.errors import InputError

logger = logging.getLogger(__name__)


def load_input(stream: IO[Any] | None = None, encoding: str | None = None) -> str:
    """Read *stream* to end-of-stream and return its decoded content.

    The binary buffer underneath a text stream is read directly so the
    result is byte-for-byte faithful (no newline translation).  Streams
    without a buffer are read as text and joined verbatim.

    Raises :class:`InputError` if the stream cannot be read or decoded.
    """
    if stream is None:
        stream = sys.stdin
    if stream is None:
        raise InputError("standard input is not available")

    encoding = encoding or DEFAULT_ENCODING
    source = getattr(stream, "buffer", stream)

    chunks: list[Any] = []
    try:
        while True:
            chunk = source.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            chunks.append(chunk)
    except UnicodeDecodeError as exc:
        raise InputError(f"cannot decode input as {encoding}: {exc.reason}") from exc
    except (OSError, ValueError) as exc:
        logger.debug("Reading input failed", exc_info=True)
        raise InputError(f"cannot read input: {exc}") from exc

    if chunks and isinstance(chunks[0], str):
        data = "".join(chunks)
    else:
        try:
            data = b"".join(chunks).decode(encoding)
        except UnicodeDecodeError as exc:
            raise InputError(f"cannot decode input as {encoding}: {exc.reason}") from exc
        except LookupError as exc:
            raise InputError(f"unknown input encoding: {encoding}") from exc

    logger.debug("Loaded %d character(s) of input in %d chunk(s)", len(data), len(chunks))
    return data
