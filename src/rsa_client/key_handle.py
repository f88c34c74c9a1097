from __future__ import annotations

import logging
import weakref
from typing import Any, NamedTuple

from . import provider
from .constants import Algorithm, KeyRole, Padding, resolve_padding
from .error_translator import translate_error
from .exceptions import RsaConfigurationError, RsaOperationError
from .provider_errors import clear_errors

_logger = logging.getLogger("rsa_client.key")

DEFAULT_VERIFY_FAILURE_REASON = "Verification failed"


class VerificationResult(NamedTuple):
    """Outcome of verify(); unpacks as (valid, reason)."""

    valid: bool
    reason: str | None = None

    def __bool__(self) -> bool:
        return self.valid


def _as_bytes(value: bytes | bytearray | memoryview | str, name: str) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    raise TypeError(f"{name} must be bytes or str, got {type(value).__name__}.")


def _algorithm_label(algorithm: int) -> str:
    try:
        return Algorithm(algorithm).name
    except ValueError:
        return str(algorithm)


class RsaKeyHandle:
    """
    Owns one provider key and dispatches RSA operations against it.

    The role is fixed by the concrete class. Every operation checks the role
    before calling into the provider and allocates its own output buffer of
    the modulus size, so a handle holds no mutable per-call state.

    The raw key is released by close(), by leaving a ``with`` block, or when
    the handle is garbage collected, whichever comes first.
    """

    role: KeyRole

    def __init__(
        self,
        raw_key: provider.RawKey,
        padding: Padding | int | str = Padding.PKCS1,
    ) -> None:
        if type(self) is RsaKeyHandle:
            raise TypeError("Use PublicKeyHandle or PrivateKeyHandle.")
        if raw_key.released:
            raise RsaOperationError("Cannot wrap released key material.")
        if raw_key.is_private != (self.role is KeyRole.PRIVATE):
            raise RsaConfigurationError(
                f"{type(self).__name__} requires a {self.role.value} key."
            )

        self._padding = resolve_padding(padding)
        clear_errors()
        size = provider.key_size_bytes(raw_key)
        if size <= 0:
            raise RsaOperationError(
                f"Unable to determine key size: {translate_error() or 'unknown error'}"
            )
        self._size = size
        self._raw = raw_key
        self._finalizer = weakref.finalize(self, provider.release_key, raw_key)

    def __enter__(self) -> "RsaKeyHandle":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"<{type(self).__name__} size={self._size} "
            f"padding={self._padding.name} closed={self.closed}>"
        )

    @property
    def size(self) -> int:
        """Modulus size in bytes."""
        return self._size

    @property
    def padding(self) -> Padding:
        return self._padding

    @property
    def max_plaintext_length(self) -> int:
        return self._padding.max_plaintext_length(self._size)

    @property
    def closed(self) -> bool:
        return not self._finalizer.alive

    def close(self) -> None:
        if not self._finalizer.alive:
            _logger.debug("Key handle already released role=%s", self.role.value)
            return
        self._finalizer()
        _logger.debug("Key handle released role=%s size=%d", self.role.value, self._size)

    def _require(self, role: KeyRole, operation: str) -> provider.RawKey:
        if self.role is not role:
            raise RsaConfigurationError(f"not inited for {operation}")
        if self.closed:
            raise RsaOperationError(f"Key handle has been released; cannot {operation}.")
        clear_errors()
        return self._raw

    def encrypt(self, plaintext: bytes | str) -> bytes:
        raw = self._require(KeyRole.PUBLIC, "encrypt")
        data = _as_bytes(plaintext, "plaintext")
        buffer = bytearray(self._size)
        length = provider.public_encrypt(data, buffer, raw, self._padding)
        if length == -1:
            reason = translate_error() or "unknown error"
            _logger.error(
                "RSA encryption failed padding=%s plaintext_size=%d reason=%s",
                self._padding.name,
                len(data),
                reason,
            )
            raise RsaOperationError(f"Encryption failed: {reason}")
        _logger.info(
            "RSA encryption complete padding=%s plaintext_size=%d ciphertext_size=%d",
            self._padding.name,
            len(data),
            length,
        )
        return bytes(buffer[:length])

    def decrypt(self, ciphertext: bytes) -> bytes:
        raw = self._require(KeyRole.PRIVATE, "decrypt")
        data = _as_bytes(ciphertext, "ciphertext")
        buffer = bytearray(self._size)
        length = provider.private_decrypt(data, buffer, raw, self._padding)
        if length == -1:
            reason = translate_error() or "unknown error"
            _logger.error(
                "RSA decryption failed padding=%s ciphertext_size=%d reason=%s",
                self._padding.name,
                len(data),
                reason,
            )
            raise RsaOperationError(f"Decryption failed: {reason}")
        _logger.info(
            "RSA decryption complete padding=%s ciphertext_size=%d plaintext_size=%d",
            self._padding.name,
            len(data),
            length,
        )
        return bytes(buffer[:length])

    def sign(self, algorithm: Algorithm | int, message: bytes | str) -> bytes:
        """
        Sign `message` as a digest already computed with `algorithm`.

        The message is wrapped in a DigestInfo and PKCS#1 v1.5 padded; it is
        not hashed again.
        """

        raw = self._require(KeyRole.PRIVATE, "sign")
        data = _as_bytes(message, "message")
        buffer = bytearray(self._size)
        length = provider.sign(int(algorithm), data, buffer, raw)
        if length == -1:
            reason = translate_error() or "unknown error"
            _logger.error(
                "RSA signing failed algorithm=%s message_size=%d reason=%s",
                _algorithm_label(algorithm),
                len(data),
                reason,
            )
            raise RsaOperationError(f"Signing failed: {reason}")
        _logger.info(
            "RSA signing complete algorithm=%s signature_size=%d",
            _algorithm_label(algorithm),
            length,
        )
        return bytes(buffer[:length])

    def verify(
        self,
        algorithm: Algorithm | int,
        message: bytes | str,
        signature: bytes,
    ) -> VerificationResult:
        """
        Check `signature` over `message`. A mismatch is a normal result,
        returned as (False, reason), never raised.
        """

        raw = self._require(KeyRole.PUBLIC, "verify")
        data = _as_bytes(message, "message")
        sig = _as_bytes(signature, "signature")
        if provider.verify(int(algorithm), data, sig, raw) != 1:
            reason = translate_error() or DEFAULT_VERIFY_FAILURE_REASON
            _logger.warning(
                "Signature verification failed algorithm=%s reason=%s",
                _algorithm_label(algorithm),
                reason,
            )
            return VerificationResult(False, reason)
        _logger.info(
            "Verified signature algorithm=%s signature_size=%d",
            _algorithm_label(algorithm),
            len(sig),
        )
        return VerificationResult(True, None)


class PublicKeyHandle(RsaKeyHandle):
    """Handle over a public key; supports encrypt and verify."""

    role = KeyRole.PUBLIC


class PrivateKeyHandle(RsaKeyHandle):
    """Handle over a private key; supports decrypt and sign."""

    role = KeyRole.PRIVATE
