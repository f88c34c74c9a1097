from __future__ import annotations

import logging
from collections.abc import Iterator

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from rsa_client import PrivateKeyHandle, PublicKeyHandle, load_private_key, load_public_key
from rsa_client.provider_errors import clear_errors

KEY_PASSWORD = b"correct horse battery staple"


@pytest.fixture(scope="session")
def rsa_private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def key_pems(rsa_private_key: rsa.RSAPrivateKey) -> dict[str, bytes]:
    public_key = rsa_private_key.public_key()
    encoding = serialization.Encoding.PEM
    return {
        "public_pkcs1": public_key.public_bytes(encoding, serialization.PublicFormat.PKCS1),
        "public_spki": public_key.public_bytes(
            encoding, serialization.PublicFormat.SubjectPublicKeyInfo
        ),
        "private_traditional": rsa_private_key.private_bytes(
            encoding,
            serialization.PrivateFormat.TraditionalOpenSSL,
            serialization.NoEncryption(),
        ),
        "private_pkcs8": rsa_private_key.private_bytes(
            encoding,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        ),
        "private_pkcs8_encrypted": rsa_private_key.private_bytes(
            encoding,
            serialization.PrivateFormat.PKCS8,
            serialization.BestAvailableEncryption(KEY_PASSWORD),
        ),
        "private_traditional_encrypted": rsa_private_key.private_bytes(
            encoding,
            serialization.PrivateFormat.TraditionalOpenSSL,
            serialization.BestAvailableEncryption(KEY_PASSWORD),
        ),
    }


@pytest.fixture(scope="session")
def ec_pems() -> dict[str, bytes]:
    private_key = ec.generate_private_key(ec.SECP256R1())
    return {
        "public_spki": private_key.public_key().public_bytes(
            serialization.Encoding.PEM,
            serialization.PublicFormat.SubjectPublicKeyInfo,
        ),
        "private_pkcs8": private_key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        ),
    }


@pytest.fixture(autouse=True)
def _clean_error_queue() -> Iterator[None]:
    clear_errors()
    yield
    clear_errors()


@pytest.fixture(autouse=True)
def _reset_logger() -> Iterator[None]:
    yield
    logger = logging.getLogger("rsa_client")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


@pytest.fixture
def public_handle(key_pems: dict[str, bytes]) -> Iterator[PublicKeyHandle]:
    with load_public_key(key_pems["public_pkcs1"]) as handle:
        yield handle


@pytest.fixture
def private_handle(key_pems: dict[str, bytes]) -> Iterator[PrivateKeyHandle]:
    with load_private_key(key_pems["private_traditional"]) as handle:
        yield handle


@pytest.fixture(scope="session")
def key_password() -> bytes:
    return KEY_PASSWORD
