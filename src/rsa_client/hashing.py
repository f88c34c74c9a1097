from __future__ import annotations

from . import provider
from .constants import Algorithm, resolve_algorithm
from .error_translator import translate_error
from .exceptions import RsaOperationError


def _digest_input(data: bytes | bytearray | memoryview | str) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    raise TypeError(f"data must be bytes or str, got {type(data).__name__}.")


def sha256(data: bytes | bytearray | memoryview | str) -> bytes:
    """Return the 32-byte SHA-256 digest of `data`."""
    return provider.sha256(_digest_input(data))


def digest(algorithm: Algorithm | int | str, data: bytes | bytearray | memoryview | str) -> bytes:
    resolved = resolve_algorithm(algorithm)
    result = provider.digest(resolved, _digest_input(data))
    if result is None:
        raise RsaOperationError(f"Digest failed: {translate_error() or 'unknown error'}")
    return result
