from __future__ import annotations

from enum import Enum, IntEnum

from .exceptions import RsaConfigurationError


class KeyRole(str, Enum):
    """Which half of the key pair a handle was loaded from."""

    PUBLIC = "public"
    PRIVATE = "private"


class Padding(IntEnum):
    """
    RSA padding schemes, numbered after the provider's external contract.

    Each scheme consumes a fixed number of bytes of the modulus on encryption.
    NO_PADDING consumes nothing but requires input of exactly the modulus size.
    """

    PKCS1 = 1
    SSLV23 = 2
    NO_PADDING = 3
    PKCS1_OAEP = 4

    @property
    def overhead(self) -> int:
        return _PADDING_OVERHEAD[self]

    def max_plaintext_length(self, modulus_size: int) -> int:
        return max(modulus_size - self.overhead, 0)


_PADDING_OVERHEAD: dict[Padding, int] = {
    Padding.PKCS1: 11,
    Padding.SSLV23: 11,
    Padding.NO_PADDING: 0,
    # 2 * SHA-1 digest size + 2
    Padding.PKCS1_OAEP: 42,
}


class Algorithm(IntEnum):
    """Digest algorithms accepted by sign/verify, valued by provider NID."""

    SHA1 = 64
    SHA256 = 672
    SHA384 = 673
    SHA512 = 674
    SHA224 = 675

    @property
    def digest_name(self) -> str:
        return self.name.lower()

    @property
    def digest_length(self) -> int:
        return DigestLength[self.name].value


class DigestLength(IntEnum):
    SHA1 = 20
    SHA224 = 28
    SHA256 = 32
    SHA384 = 48
    SHA512 = 64


_PADDING_ALIASES: dict[str, Padding] = {
    "pkcs1": Padding.PKCS1,
    "pkcs1v15": Padding.PKCS1,
    "sslv23": Padding.SSLV23,
    "no_padding": Padding.NO_PADDING,
    "none": Padding.NO_PADDING,
    "raw": Padding.NO_PADDING,
    "oaep": Padding.PKCS1_OAEP,
    "pkcs1_oaep": Padding.PKCS1_OAEP,
}

_ROLE_ALIASES: dict[str, KeyRole] = {
    "public": KeyRole.PUBLIC,
    "pub": KeyRole.PUBLIC,
    "private": KeyRole.PRIVATE,
    "priv": KeyRole.PRIVATE,
}


def _normalize_name(value: str) -> str:
    return value.strip().lower().replace("-", "_")


def resolve_padding(value: Padding | int | str) -> Padding:
    """Accept a Padding member, its provider number, or a name such as 'oaep'."""
    if isinstance(value, Padding):
        return value
    if isinstance(value, str):
        normalized = _normalize_name(value)
        if normalized.isdigit():
            value = int(normalized)
        else:
            resolved = _PADDING_ALIASES.get(normalized)
            if resolved is None:
                available = ", ".join(sorted(_PADDING_ALIASES.keys()))
                raise RsaConfigurationError(
                    f"Unsupported padding '{value}'. Available: {available}"
                )
            return resolved
    try:
        return Padding(value)
    except ValueError as exc:
        raise RsaConfigurationError(f"Unsupported padding value: {value}") from exc


def resolve_algorithm(value: Algorithm | int | str) -> Algorithm:
    """Accept an Algorithm member, its NID, or a digest name such as 'sha256'."""
    if isinstance(value, Algorithm):
        return value
    if isinstance(value, str):
        normalized = _normalize_name(value).replace("_", "")
        if normalized.isdigit():
            value = int(normalized)
        else:
            try:
                return Algorithm[normalized.upper()]
            except KeyError as exc:
                available = ", ".join(sorted(a.digest_name for a in Algorithm))
                raise RsaConfigurationError(
                    f"Unsupported digest algorithm '{value}'. Available: {available}"
                ) from exc
    try:
        return Algorithm(value)
    except ValueError as exc:
        raise RsaConfigurationError(f"Unsupported digest algorithm id: {value}") from exc


def resolve_role(value: KeyRole | str) -> KeyRole:
    if isinstance(value, KeyRole):
        return value
    resolved = _ROLE_ALIASES.get(_normalize_name(str(value)))
    if resolved is None:
        raise RsaConfigurationError(
            f"Invalid key role '{value}'. Use one of: public, private."
        )
    return resolved
