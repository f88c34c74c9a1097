"""
Thread-local error queue for the RSA provider layer.

Provider primitives report failure through sentinel return values and push a
reason code here. The queue is per thread, bounded, and read from the head
(oldest first). Callers must read it right after the failing primitive: any
later primitive may push further codes or clear it.
"""

from __future__ import annotations

import threading
from collections import deque
from enum import IntEnum

MAX_QUEUED_ERRORS = 16


class ErrorReason(IntEnum):
    BUFFER_WRITE_FAILED = 1
    NO_START_LINE = 2
    BAD_BASE64_DECODE = 3
    DECODE_ERROR = 4
    EXPECTING_AN_RSA_KEY = 5
    BAD_PASSWORD_READ = 6
    BAD_DECRYPT = 7
    UNSUPPORTED_ENCRYPTION = 8
    UNKNOWN_PADDING_TYPE = 20
    DATA_TOO_LARGE_FOR_KEY_SIZE = 21
    DATA_TOO_SMALL_FOR_KEY_SIZE = 22
    DATA_TOO_LARGE_FOR_MODULUS = 23
    DATA_GREATER_THAN_MOD_LEN = 24
    PADDING_CHECK_FAILED = 25
    OAEP_DECODING_ERROR = 26
    SSLV3_ROLLBACK_ATTACK = 27
    BLOCK_TYPE_IS_NOT_01 = 28
    BLOCK_TYPE_IS_NOT_02 = 29
    NULL_BEFORE_BLOCK_MISSING = 30
    UNKNOWN_ALGORITHM_TYPE = 40
    DIGEST_TOO_BIG_FOR_RSA_KEY = 41
    WRONG_SIGNATURE_LENGTH = 42
    ALGORITHM_MISMATCH = 43
    BAD_SIGNATURE = 44
    KEY_RELEASED = 50
    VALUE_MISSING = 51
    INTERNAL_ERROR = 99


_REASON_STRINGS: dict[ErrorReason, str] = {
    ErrorReason.BUFFER_WRITE_FAILED: "buffer write failed",
    ErrorReason.NO_START_LINE: "no start line",
    ErrorReason.BAD_BASE64_DECODE: "bad base64 decode",
    ErrorReason.DECODE_ERROR: "decode error",
    ErrorReason.EXPECTING_AN_RSA_KEY: "expecting an rsa key",
    ErrorReason.BAD_PASSWORD_READ: "bad password read",
    ErrorReason.BAD_DECRYPT: "bad decrypt",
    ErrorReason.UNSUPPORTED_ENCRYPTION: "unsupported encryption",
    ErrorReason.UNKNOWN_PADDING_TYPE: "unknown padding type",
    ErrorReason.DATA_TOO_LARGE_FOR_KEY_SIZE: "data too large for key size",
    ErrorReason.DATA_TOO_SMALL_FOR_KEY_SIZE: "data too small for key size",
    ErrorReason.DATA_TOO_LARGE_FOR_MODULUS: "data too large for modulus",
    ErrorReason.DATA_GREATER_THAN_MOD_LEN: "data greater than mod len",
    ErrorReason.PADDING_CHECK_FAILED: "padding check failed",
    ErrorReason.OAEP_DECODING_ERROR: "oaep decoding error",
    ErrorReason.SSLV3_ROLLBACK_ATTACK: "sslv3 rollback attack",
    ErrorReason.BLOCK_TYPE_IS_NOT_01: "block type is not 01",
    ErrorReason.BLOCK_TYPE_IS_NOT_02: "block type is not 02",
    ErrorReason.NULL_BEFORE_BLOCK_MISSING: "null before block missing",
    ErrorReason.UNKNOWN_ALGORITHM_TYPE: "unknown algorithm type",
    ErrorReason.DIGEST_TOO_BIG_FOR_RSA_KEY: "digest too big for rsa key",
    ErrorReason.WRONG_SIGNATURE_LENGTH: "wrong signature length",
    ErrorReason.ALGORITHM_MISMATCH: "algorithm mismatch",
    ErrorReason.BAD_SIGNATURE: "bad signature",
    ErrorReason.KEY_RELEASED: "key material has been released",
    ErrorReason.VALUE_MISSING: "value missing",
    ErrorReason.INTERNAL_ERROR: "internal error",
}

_local = threading.local()


def _queue() -> deque[int]:
    queue = getattr(_local, "queue", None)
    if queue is None:
        queue = deque(maxlen=MAX_QUEUED_ERRORS)
        _local.queue = queue
    return queue


def push_error(reason: ErrorReason) -> None:
    # A full queue drops its oldest entry.
    _queue().append(int(reason))


def pop_error_code() -> int:
    """Remove and return the oldest queued code, or 0 when the queue is empty."""
    queue = _queue()
    if not queue:
        return 0
    return queue.popleft()


def clear_errors() -> None:
    _queue().clear()


def error_code_to_string(code: int) -> str | None:
    try:
        return _REASON_STRINGS[ErrorReason(code)]
    except ValueError:
        return None
