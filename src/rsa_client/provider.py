"""
Primitive RSA provider surface.

Wraps `cryptography` and `asn1crypto` behind low-level calls that report
failure the way a native crypto library does: a sentinel return value
(-1, 0 or None) plus a reason code pushed onto the thread-local queue in
`provider_errors`. Nothing here raises for a cryptographic failure.

Key parsing, PKCS#1 v1.5 and OAEP encryption go through `cryptography`.
Raw modular exponentiation (no padding, SSLv23-compatible padding and
DigestInfo signatures over arbitrary-length input) uses Python integers,
with the private side computed through CRT.
"""

from __future__ import annotations

import hmac
import logging
import secrets
from collections.abc import Mapping
from typing import Any, Callable, Union

from asn1crypto import algos, keys, pem
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding as rsa_padding
from cryptography.hazmat.primitives.asymmetric import rsa

from .constants import Algorithm, Padding
from .provider_errors import ErrorReason, push_error

_logger = logging.getLogger("rsa_client.provider")

KeyMaterial = Union[rsa.RSAPublicKey, rsa.RSAPrivateKey]
PasswordCallback = Callable[[Any], Union[bytes, str, None]]

_PKCS1_PADDING_SIZE = 11
_MIN_PAD_BYTES = 8
_SSLV23_ROLLBACK_MARKER = b"\x03" * _MIN_PAD_BYTES

_PUBLIC_PEM_TYPES = frozenset({"RSA PUBLIC KEY", "PUBLIC KEY"})
_PRIVATE_PEM_TYPES = frozenset({"RSA PRIVATE KEY", "PRIVATE KEY", "ENCRYPTED PRIVATE KEY"})

# DER AlgorithmIdentifier (OID + NULL parameters) for each digest.
_DIGEST_ALGORITHM_IDENTIFIERS: dict[Algorithm, bytes] = {
    Algorithm.SHA1: bytes.fromhex("300906052b0e03021a0500"),
    Algorithm.SHA224: bytes.fromhex("300d06096086480165030402040500"),
    Algorithm.SHA256: bytes.fromhex("300d06096086480165030402010500"),
    Algorithm.SHA384: bytes.fromhex("300d06096086480165030402020500"),
    Algorithm.SHA512: bytes.fromhex("300d06096086480165030402030500"),
}

_HASH_CLASSES: dict[Algorithm, type[hashes.HashAlgorithm]] = {
    Algorithm.SHA1: hashes.SHA1,
    Algorithm.SHA224: hashes.SHA224,
    Algorithm.SHA256: hashes.SHA256,
    Algorithm.SHA384: hashes.SHA384,
    Algorithm.SHA512: hashes.SHA512,
}


class MemoryBuffer:
    """In-memory sink that PEM text is written into before parsing."""

    def __init__(self) -> None:
        self._data: bytearray | None = bytearray()

    def __enter__(self) -> "MemoryBuffer":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.free()

    @property
    def freed(self) -> bool:
        return self._data is None

    def write(self, text: bytes | bytearray | str) -> int:
        """Append text and return the number of bytes written, or -1."""
        if self._data is None:
            push_error(ErrorReason.BUFFER_WRITE_FAILED)
            return -1
        if isinstance(text, str):
            try:
                payload = text.encode("ascii")
            except UnicodeEncodeError:
                push_error(ErrorReason.BUFFER_WRITE_FAILED)
                return -1
        elif isinstance(text, (bytes, bytearray, memoryview)):
            payload = bytes(text)
        else:
            push_error(ErrorReason.BUFFER_WRITE_FAILED)
            return -1
        self._data.extend(payload)
        return len(payload)

    def getvalue(self) -> bytes:
        if self._data is None:
            return b""
        return bytes(self._data)

    def free(self) -> None:
        if self._data is None:
            return
        # The buffer may have held private key text.
        self._data[:] = bytes(len(self._data))
        self._data = None


class RawKey:
    """Opaque provider key. Owned by exactly one key handle."""

    def __init__(self, material: KeyMaterial) -> None:
        self._material: KeyMaterial | None = material
        self.is_private = isinstance(material, rsa.RSAPrivateKey)

    @property
    def material(self) -> KeyMaterial | None:
        return self._material

    @property
    def released(self) -> bool:
        return self._material is None

    def release(self) -> bool:
        """Drop the key material. Returns False if it was already released."""
        if self._material is None:
            return False
        self._material = None
        return True


def password_from_userdata(userdata: Any) -> bytes | str | None:
    """Default password callback: the user data is the password itself."""
    return userdata


def _unarmor(data: bytes) -> tuple[str, Mapping[str, str], bytes] | None:
    if not pem.detect(data):
        push_error(ErrorReason.NO_START_LINE)
        return None
    try:
        pem_type, headers, der_bytes = pem.unarmor(data)
    except ValueError:
        push_error(ErrorReason.BAD_BASE64_DECODE)
        return None
    return pem_type, headers, der_bytes


def _is_encrypted_pem(pem_type: str, headers: Mapping[str, str]) -> bool:
    if pem_type == "ENCRYPTED PRIVATE KEY":
        return True
    return "ENCRYPTED" in headers.get("Proc-Type", "").upper()


def parse_public_key_from_pem(
    buffer: MemoryBuffer,
    password_callback: PasswordCallback | None = None,
    userdata: Any = None,
) -> RawKey | None:
    """
    Parse a PKCS#1 ("RSA PUBLIC KEY") or SubjectPublicKeyInfo ("PUBLIC KEY")
    block. Public keys are never encrypted, so the callback is not invoked.
    """

    armored = _unarmor(buffer.getvalue())
    if armored is None:
        return None
    pem_type, _headers, der_bytes = armored
    if pem_type not in _PUBLIC_PEM_TYPES:
        push_error(ErrorReason.NO_START_LINE)
        return None

    try:
        if pem_type == "PUBLIC KEY" and keys.PublicKeyInfo.load(der_bytes).algorithm != "rsa":
            push_error(ErrorReason.EXPECTING_AN_RSA_KEY)
            return None
        # Accepts both SubjectPublicKeyInfo and bare PKCS#1 RSAPublicKey DER.
        material = serialization.load_der_public_key(der_bytes)
    except (ValueError, TypeError, UnsupportedAlgorithm):
        push_error(ErrorReason.DECODE_ERROR)
        return None

    if not isinstance(material, rsa.RSAPublicKey):
        push_error(ErrorReason.EXPECTING_AN_RSA_KEY)
        return None
    return RawKey(material)


def parse_private_key_from_pem(
    buffer: MemoryBuffer,
    password_callback: PasswordCallback | None = None,
    userdata: Any = None,
) -> RawKey | None:
    """
    Parse a traditional ("RSA PRIVATE KEY", optionally Proc-Type encrypted),
    PKCS#8 ("PRIVATE KEY") or encrypted PKCS#8 block.

    password_callback(userdata) is invoked only when the block is encrypted.
    """

    data = buffer.getvalue()
    armored = _unarmor(data)
    if armored is None:
        return None
    pem_type, headers, der_bytes = armored
    if pem_type not in _PRIVATE_PEM_TYPES:
        push_error(ErrorReason.NO_START_LINE)
        return None

    if pem_type == "PRIVATE KEY":
        try:
            algorithm = keys.PrivateKeyInfo.load(der_bytes).algorithm
        except ValueError:
            push_error(ErrorReason.DECODE_ERROR)
            return None
        if algorithm != "rsa":
            push_error(ErrorReason.EXPECTING_AN_RSA_KEY)
            return None

    encrypted = _is_encrypted_pem(pem_type, headers)
    password: bytes | None = None
    if encrypted:
        supplied = password_callback(userdata) if password_callback is not None else None
        if isinstance(supplied, str):
            supplied = supplied.encode("utf-8")
        if not supplied:
            push_error(ErrorReason.BAD_PASSWORD_READ)
            return None
        password = bytes(supplied)

    try:
        material = serialization.load_pem_private_key(data, password=password)
    except TypeError:
        push_error(ErrorReason.BAD_PASSWORD_READ)
        return None
    except UnsupportedAlgorithm:
        push_error(ErrorReason.UNSUPPORTED_ENCRYPTION)
        return None
    except ValueError:
        push_error(ErrorReason.BAD_DECRYPT if encrypted else ErrorReason.DECODE_ERROR)
        return None

    if not isinstance(material, rsa.RSAPrivateKey):
        push_error(ErrorReason.EXPECTING_AN_RSA_KEY)
        return None
    return RawKey(material)


def key_size_bytes(raw: RawKey) -> int:
    material = raw.material
    if material is None:
        push_error(ErrorReason.KEY_RELEASED)
        return 0
    return (material.key_size + 7) // 8


def release_key(raw: RawKey) -> None:
    if raw.release():
        _logger.debug("Released raw key material private=%s", raw.is_private)


def _resolve_padding(padding: int) -> Padding | None:
    try:
        return Padding(padding)
    except ValueError:
        push_error(ErrorReason.UNKNOWN_PADDING_TYPE)
        return None


def _resolve_algorithm(algorithm_id: int) -> Algorithm | None:
    try:
        return Algorithm(algorithm_id)
    except ValueError:
        push_error(ErrorReason.UNKNOWN_ALGORITHM_TYPE)
        return None


def _oaep() -> rsa_padding.OAEP:
    return rsa_padding.OAEP(
        mgf=rsa_padding.MGF1(algorithm=hashes.SHA1()),
        algorithm=hashes.SHA1(),
        label=None,
    )


def _public_numbers(material: KeyMaterial) -> rsa.RSAPublicNumbers:
    if isinstance(material, rsa.RSAPrivateKey):
        return material.private_numbers().public_numbers
    return material.public_numbers()


def _raw_public(material: KeyMaterial, block: bytes, size: int) -> bytes | None:
    numbers = _public_numbers(material)
    value = int.from_bytes(block, "big")
    if value >= numbers.n:
        push_error(ErrorReason.DATA_TOO_LARGE_FOR_MODULUS)
        return None
    return pow(value, numbers.e, numbers.n).to_bytes(size, "big")


def _raw_private(material: rsa.RSAPrivateKey, block: bytes, size: int) -> bytes | None:
    numbers = material.private_numbers()
    value = int.from_bytes(block, "big")
    if value >= numbers.public_numbers.n:
        push_error(ErrorReason.DATA_TOO_LARGE_FOR_MODULUS)
        return None
    m1 = pow(value, numbers.dmp1, numbers.p)
    m2 = pow(value, numbers.dmq1, numbers.q)
    h = (numbers.iqmp * (m1 - m2)) % numbers.p
    return (m2 + h * numbers.q).to_bytes(size, "big")


def _nonzero_random(length: int) -> bytes:
    out = bytearray()
    while len(out) < length:
        out.extend(b for b in secrets.token_bytes(length - len(out)) if b)
    return bytes(out)


def _pad_sslv23(message: bytes, size: int) -> bytes:
    filler = _nonzero_random(size - 3 - len(message) - _MIN_PAD_BYTES)
    return b"\x00\x02" + filler + _SSLV23_ROLLBACK_MARKER + b"\x00" + message


def _unpad_sslv23(block: bytes) -> bytes | None:
    if block[0] != 0 or block[1] != 2:
        push_error(ErrorReason.BLOCK_TYPE_IS_NOT_02)
        return None
    separator = block.find(b"\x00", 2)
    if separator < 0:
        push_error(ErrorReason.NULL_BEFORE_BLOCK_MISSING)
        return None
    if separator - 2 < _MIN_PAD_BYTES:
        push_error(ErrorReason.PADDING_CHECK_FAILED)
        return None
    if block[separator - _MIN_PAD_BYTES:separator] == _SSLV23_ROLLBACK_MARKER:
        push_error(ErrorReason.SSLV3_ROLLBACK_ATTACK)
        return None
    return block[separator + 1:]


def _pad_type1(payload: bytes, size: int) -> bytes:
    return b"\x00\x01" + b"\xff" * (size - 3 - len(payload)) + b"\x00" + payload


def _unpad_type1(block: bytes) -> bytes | None:
    if block[0] != 0 or block[1] != 1:
        push_error(ErrorReason.BLOCK_TYPE_IS_NOT_01)
        return None
    separator = block.find(b"\x00", 2)
    if separator < 0:
        push_error(ErrorReason.NULL_BEFORE_BLOCK_MISSING)
        return None
    filler = block[2:separator]
    if len(filler) < _MIN_PAD_BYTES or filler.count(0xFF) != len(filler):
        push_error(ErrorReason.PADDING_CHECK_FAILED)
        return None
    return block[separator + 1:]


def encode_digest_info(algorithm: Algorithm, message: bytes) -> bytes:
    """DER DigestInfo wrapping `message` as a digest produced by `algorithm`."""
    return algos.DigestInfo(
        {
            "digest_algorithm": algos.DigestAlgorithm.load(
                _DIGEST_ALGORITHM_IDENTIFIERS[algorithm]
            ),
            "digest": bytes(message),
        }
    ).dump()


def public_encrypt(from_: bytes, to: bytearray, raw: RawKey, padding: int) -> int:
    """Encrypt `from_` into `to`; returns the ciphertext length or -1."""
    material = raw.material
    if material is None:
        push_error(ErrorReason.KEY_RELEASED)
        return -1
    scheme = _resolve_padding(padding)
    if scheme is None:
        return -1

    size = (material.key_size + 7) // 8
    flen = len(from_)
    if scheme is Padding.NO_PADDING:
        if flen > size:
            push_error(ErrorReason.DATA_TOO_LARGE_FOR_KEY_SIZE)
            return -1
        if flen < size:
            push_error(ErrorReason.DATA_TOO_SMALL_FOR_KEY_SIZE)
            return -1
    elif flen > size - scheme.overhead:
        push_error(ErrorReason.DATA_TOO_LARGE_FOR_KEY_SIZE)
        return -1

    public_key = material.public_key() if isinstance(material, rsa.RSAPrivateKey) else material
    ciphertext: bytes | None
    if scheme is Padding.PKCS1 or scheme is Padding.PKCS1_OAEP:
        scheme_padding = rsa_padding.PKCS1v15() if scheme is Padding.PKCS1 else _oaep()
        try:
            ciphertext = public_key.encrypt(bytes(from_), scheme_padding)
        except ValueError:
            _logger.debug("Provider rejected encryption input padding=%s", scheme.name)
            push_error(ErrorReason.INTERNAL_ERROR)
            return -1
    elif scheme is Padding.SSLV23:
        ciphertext = _raw_public(material, _pad_sslv23(bytes(from_), size), size)
    else:
        ciphertext = _raw_public(material, bytes(from_), size)

    if ciphertext is None:
        return -1
    to[: len(ciphertext)] = ciphertext
    return len(ciphertext)


def private_decrypt(from_: bytes, to: bytearray, raw: RawKey, padding: int) -> int:
    """Decrypt `from_` into `to`; returns the plaintext length or -1."""
    material = raw.material
    if material is None:
        push_error(ErrorReason.KEY_RELEASED)
        return -1
    if not isinstance(material, rsa.RSAPrivateKey):
        push_error(ErrorReason.VALUE_MISSING)
        return -1
    scheme = _resolve_padding(padding)
    if scheme is None:
        return -1

    size = (material.key_size + 7) // 8
    flen = len(from_)
    if flen > size:
        push_error(ErrorReason.DATA_GREATER_THAN_MOD_LEN)
        return -1
    if flen < size:
        push_error(ErrorReason.DATA_TOO_SMALL_FOR_KEY_SIZE)
        return -1

    plaintext: bytes | None
    if scheme is Padding.PKCS1 or scheme is Padding.PKCS1_OAEP:
        scheme_padding = rsa_padding.PKCS1v15() if scheme is Padding.PKCS1 else _oaep()
        try:
            plaintext = material.decrypt(bytes(from_), scheme_padding)
        except ValueError:
            push_error(
                ErrorReason.PADDING_CHECK_FAILED
                if scheme is Padding.PKCS1
                else ErrorReason.OAEP_DECODING_ERROR
            )
            return -1
    elif scheme is Padding.SSLV23:
        block = _raw_private(material, bytes(from_), size)
        plaintext = _unpad_sslv23(block) if block is not None else None
    else:
        plaintext = _raw_private(material, bytes(from_), size)

    if plaintext is None:
        return -1
    to[: len(plaintext)] = plaintext
    return len(plaintext)


def sign(algorithm_id: int, message: bytes, sigret: bytearray, raw: RawKey) -> int:
    """
    PKCS#1 v1.5 signature over `message` taken as an `algorithm_id` digest.

    Writes into `sigret` and returns the signature length, or -1.
    """

    material = raw.material
    if material is None:
        push_error(ErrorReason.KEY_RELEASED)
        return -1
    if not isinstance(material, rsa.RSAPrivateKey):
        push_error(ErrorReason.VALUE_MISSING)
        return -1
    algorithm = _resolve_algorithm(algorithm_id)
    if algorithm is None:
        return -1

    size = (material.key_size + 7) // 8
    digest_info = encode_digest_info(algorithm, message)
    if len(digest_info) > size - _PKCS1_PADDING_SIZE:
        push_error(ErrorReason.DIGEST_TOO_BIG_FOR_RSA_KEY)
        return -1

    signature = _raw_private(material, _pad_type1(digest_info, size), size)
    if signature is None:
        return -1
    sigret[: len(signature)] = signature
    return len(signature)


def verify(algorithm_id: int, message: bytes, signature: bytes, raw: RawKey) -> int:
    """Returns 1 when `signature` is valid for `message`, 0 otherwise."""
    material = raw.material
    if material is None:
        push_error(ErrorReason.KEY_RELEASED)
        return 0
    algorithm = _resolve_algorithm(algorithm_id)
    if algorithm is None:
        return 0

    size = (material.key_size + 7) // 8
    if len(signature) != size:
        push_error(ErrorReason.WRONG_SIGNATURE_LENGTH)
        return 0
    block = _raw_public(material, bytes(signature), size)
    if block is None:
        return 0
    payload = _unpad_type1(block)
    if payload is None:
        return 0

    try:
        info = algos.DigestInfo.load(payload, strict=True)
        signed_algorithm = info["digest_algorithm"]["algorithm"].native
    except (ValueError, TypeError):
        push_error(ErrorReason.BAD_SIGNATURE)
        return 0
    if signed_algorithm != algorithm.digest_name:
        push_error(ErrorReason.ALGORITHM_MISMATCH)
        return 0
    if not hmac.compare_digest(payload, encode_digest_info(algorithm, message)):
        push_error(ErrorReason.BAD_SIGNATURE)
        return 0
    return 1


def digest(algorithm_id: int, data: bytes) -> bytes | None:
    algorithm = _resolve_algorithm(algorithm_id)
    if algorithm is None:
        return None
    hasher = hashes.Hash(_HASH_CLASSES[algorithm]())
    hasher.update(bytes(data))
    return hasher.finalize()


def sha256(data: bytes) -> bytes:
    hasher = hashes.Hash(hashes.SHA256())
    hasher.update(bytes(data))
    return hasher.finalize()
