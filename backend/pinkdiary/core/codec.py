"""Text codec for backup artifacts.

`compress` turns a UTF-8 string into base64 text wrapping a gzip stream;
`decompress` is its exact inverse. Both stages work on bounded chunks so the
compressor and decompressor never see more than `CHUNK_SIZE` input bytes at a
time, and decompression never produces more than `CHUNK_SIZE` output bytes per
step.
"""

from __future__ import annotations

import base64
import binascii
import logging
import zlib
from typing import Iterator

from pinkdiary.domain.errors import CodecError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
# 16 + MAX_WBITS selects gzip framing in zlib
GZIP_WBITS = 16 + zlib.MAX_WBITS


def _chunks(data: bytes, size: int) -> Iterator[bytes]:
    for offset in range(0, len(data), size):
        yield data[offset : offset + size]


def compress(text: str, *, chunk_size: int = CHUNK_SIZE) -> str:
    """Compress `text` and return it as transport-safe base64 text."""
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    compressor = zlib.compressobj(level=9, wbits=GZIP_WBITS)
    parts: list[bytes] = []
    for chunk in _chunks(text.encode("utf-8"), chunk_size):
        parts.append(compressor.compress(chunk))
    parts.append(compressor.flush())
    return base64.b64encode(b"".join(parts)).decode("ascii")


def decompress(payload: str | bytes, *, chunk_size: int = CHUNK_SIZE) -> str:
    """Inverse of `compress`.

    Raises:
        CodecError: payload is not base64, not gzip, truncated, followed by
            trailing bytes, or does not decode as UTF-8.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    if isinstance(payload, str):
        try:
            payload = payload.encode("ascii")
        except UnicodeEncodeError as exc:
            raise CodecError("artifact contains non-base64 characters") from exc

    try:
        compressed = base64.b64decode(payload.strip(), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise CodecError(f"artifact is not valid base64: {exc}") from exc

    decompressor = zlib.decompressobj(wbits=GZIP_WBITS)
    parts: list[bytes] = []
    consumed = 0
    try:
        for chunk in _chunks(compressed, chunk_size):
            consumed += len(chunk)
            data = chunk
            while True:
                parts.append(decompressor.decompress(data, chunk_size))
                data = decompressor.unconsumed_tail
                if not data or decompressor.eof:
                    break
            if decompressor.eof:
                break
        parts.append(decompressor.flush())
    except zlib.error as exc:
        raise CodecError(f"compressed stream is corrupt: {exc}") from exc

    if not decompressor.eof:
        raise CodecError("compressed stream is truncated")
    trailing = len(decompressor.unused_data) + (len(compressed) - consumed)
    if trailing:
        raise CodecError(f"unexpected {trailing} trailing bytes after compressed stream")

    raw = b"".join(parts)
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise CodecError("decompressed payload is not UTF-8 text") from exc

    logger.debug(
        "codec_decompressed | compressed_bytes=%s raw_bytes=%s", len(compressed), len(raw)
    )
    return text
