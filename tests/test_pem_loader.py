from __future__ import annotations

import pytest

from rsa_client import (
    KeyRole,
    Padding,
    PrivateKeyHandle,
    PublicKeyHandle,
    RsaConfigurationError,
    RsaParseError,
    load_key,
    load_private_key,
    load_public_key,
)
from rsa_client import provider
from rsa_client.provider_errors import pop_error_code


@pytest.mark.parametrize("name", ["public_pkcs1", "public_spki"])
def test_load_public_key_formats(key_pems: dict[str, bytes], name: str) -> None:
    with load_public_key(key_pems[name]) as handle:
        assert isinstance(handle, PublicKeyHandle)
        assert handle.size == 256


@pytest.mark.parametrize("name", ["private_traditional", "private_pkcs8"])
def test_load_private_key_formats(key_pems: dict[str, bytes], name: str) -> None:
    with load_private_key(key_pems[name]) as handle:
        assert isinstance(handle, PrivateKeyHandle)
        assert handle.size == 256


def test_load_key_accepts_text_and_role_names(key_pems: dict[str, bytes]) -> None:
    pem_text = key_pems["public_spki"].decode("ascii")
    with load_key(pem_text, "public", padding="oaep") as handle:
        assert isinstance(handle, PublicKeyHandle)
        assert handle.padding is Padding.PKCS1_OAEP


@pytest.mark.parametrize("name", ["private_pkcs8_encrypted", "private_traditional_encrypted"])
def test_encrypted_private_key_with_password(
    key_pems: dict[str, bytes],
    key_password: bytes,
    name: str,
) -> None:
    with load_private_key(key_pems[name], password=key_password) as handle:
        assert handle.size == 256
    with load_private_key(key_pems[name], password=key_password.decode("ascii")) as handle:
        assert not handle.closed


def test_encrypted_private_key_wrong_password(key_pems: dict[str, bytes]) -> None:
    with pytest.raises(RsaParseError, match="Failed to parse private key: bad decrypt"):
        load_private_key(key_pems["private_pkcs8_encrypted"], password=b"wrong password")


def test_encrypted_private_key_without_password(key_pems: dict[str, bytes]) -> None:
    with pytest.raises(RsaParseError, match="bad password read"):
        load_private_key(key_pems["private_traditional_encrypted"])


def test_password_callback_only_used_for_encrypted_keys(
    key_pems: dict[str, bytes],
    key_password: bytes,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    calls: list[object] = []

    def _recording_callback(userdata: object) -> object:
        calls.append(userdata)
        return userdata

    monkeypatch.setattr(provider, "password_from_userdata", _recording_callback)

    with load_private_key(key_pems["private_traditional"], password=b"unused"):
        pass
    assert calls == []

    with load_private_key(key_pems["private_pkcs8_encrypted"], password=key_password):
        pass
    assert calls == [key_password]


@pytest.mark.parametrize(
    "pem_text",
    [
        b"",
        b"not a pem at all",
        "-----BEGIN CERTIFICATE-----\nAAAA\n-----END CERTIFICATE-----\n",
    ],
)
def test_malformed_pem_reports_no_start_line(pem_text: bytes | str) -> None:
    with pytest.raises(RsaParseError, match="no start line"):
        load_public_key(pem_text)
    assert pop_error_code() == 0


def test_public_loader_rejects_private_pem(key_pems: dict[str, bytes]) -> None:
    with pytest.raises(RsaParseError, match="Failed to parse public key: no start line"):
        load_public_key(key_pems["private_traditional"])


def test_private_loader_rejects_public_pem(key_pems: dict[str, bytes]) -> None:
    with pytest.raises(RsaParseError, match="Failed to parse private key: no start line"):
        load_private_key(key_pems["public_spki"])


def test_non_rsa_keys_are_rejected(ec_pems: dict[str, bytes]) -> None:
    with pytest.raises(RsaParseError, match="expecting an rsa key"):
        load_public_key(ec_pems["public_spki"])
    with pytest.raises(RsaParseError, match="expecting an rsa key"):
        load_private_key(ec_pems["private_pkcs8"])


def test_corrupted_body_fails_to_parse(key_pems: dict[str, bytes]) -> None:
    lines = key_pems["public_spki"].splitlines()
    truncated = b"\n".join([lines[0], lines[1], lines[-1]]) + b"\n"
    with pytest.raises(RsaParseError, match="Failed to parse public key"):
        load_public_key(truncated)


def test_non_ascii_text_cannot_be_buffered() -> None:
    with pytest.raises(RsaParseError, match="Failed to buffer PEM text: buffer write failed"):
        load_public_key("-----BEGIN PUBLIC KEY-----\nклюк\n-----END PUBLIC KEY-----\n")


def test_invalid_padding_and_role(key_pems: dict[str, bytes]) -> None:
    with pytest.raises(RsaConfigurationError):
        load_public_key(key_pems["public_pkcs1"], padding="pss")
    with pytest.raises(RsaConfigurationError):
        load_key(key_pems["public_pkcs1"], "symmetric")


def test_raw_key_released_when_handle_construction_fails(
    key_pems: dict[str, bytes],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    released: list[provider.RawKey] = []
    original_release = provider.release_key

    def _tracking_release(raw: provider.RawKey) -> None:
        released.append(raw)
        original_release(raw)

    monkeypatch.setattr(provider, "key_size_bytes", lambda _raw: 0)
    monkeypatch.setattr(provider, "release_key", _tracking_release)

    with pytest.raises(Exception):
        load_key(key_pems["public_pkcs1"], KeyRole.PUBLIC)

    assert len(released) == 1
    assert released[0].released
