from __future__ import annotations

import logging
from typing import cast

from . import provider
from .constants import KeyRole, Padding, resolve_padding, resolve_role
from .error_translator import translate_error
from .exceptions import RsaParseError
from .key_handle import PrivateKeyHandle, PublicKeyHandle, RsaKeyHandle
from .provider_errors import clear_errors

_logger = logging.getLogger("rsa_client.loader")


def load_key(
    pem_text: bytes | str,
    role: KeyRole | str,
    padding: Padding | int | str | None = None,
    password: bytes | str | None = None,
) -> RsaKeyHandle:
    """
    Parse PEM key material into a key handle of the requested role.

    `password` is handed to the provider as user data for the password
    callback; it is only consulted when the PEM block is encrypted.
    Raises RsaParseError when the text cannot be parsed as an RSA key of
    that role.
    """

    resolved_role = resolve_role(role)
    resolved_padding = resolve_padding(Padding.PKCS1 if padding is None else padding)

    clear_errors()
    with provider.MemoryBuffer() as buffer:
        if buffer.write(pem_text) < 0:
            reason = translate_error() or "unknown error"
            raise RsaParseError(f"Failed to buffer PEM text: {reason}")

        if resolved_role is KeyRole.PUBLIC:
            raw_key = provider.parse_public_key_from_pem(
                buffer, provider.password_from_userdata, password
            )
        else:
            raw_key = provider.parse_private_key_from_pem(
                buffer, provider.password_from_userdata, password
            )
        if raw_key is None:
            reason = translate_error() or "unknown error"
            _logger.error(
                "Failed to parse %s key PEM reason=%s", resolved_role.value, reason
            )
            raise RsaParseError(f"Failed to parse {resolved_role.value} key: {reason}")

    handle_class = PublicKeyHandle if resolved_role is KeyRole.PUBLIC else PrivateKeyHandle
    try:
        handle = handle_class(raw_key, resolved_padding)
    except Exception:
        provider.release_key(raw_key)
        raise

    _logger.info(
        "Loaded RSA %s key size=%d padding=%s",
        resolved_role.value,
        handle.size,
        handle.padding.name,
    )
    return handle


def load_public_key(
    pem_text: bytes | str,
    padding: Padding | int | str | None = None,
) -> PublicKeyHandle:
    return cast(PublicKeyHandle, load_key(pem_text, KeyRole.PUBLIC, padding=padding))


def load_private_key(
    pem_text: bytes | str,
    padding: Padding | int | str | None = None,
    password: bytes | str | None = None,
) -> PrivateKeyHandle:
    return cast(
        PrivateKeyHandle,
        load_key(pem_text, KeyRole.PRIVATE, padding=padding, password=password),
    )
