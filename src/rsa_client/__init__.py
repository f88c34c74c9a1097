"""PEM-loaded RSA key handles with encrypt, decrypt, sign, verify and hashing."""

from .config import RsaClientConfig
from .constants import (
    Algorithm,
    DigestLength,
    KeyRole,
    Padding,
    resolve_algorithm,
    resolve_padding,
    resolve_role,
)
from .error_translator import translate_error
from .exceptions import (
    RsaClientError,
    RsaConfigurationError,
    RsaOperationError,
    RsaParseError,
)
from .hashing import digest, sha256
from .key_handle import (
    DEFAULT_VERIFY_FAILURE_REASON,
    PrivateKeyHandle,
    PublicKeyHandle,
    RsaKeyHandle,
    VerificationResult,
)
from .logging_utils import configure_logging
from .pem_loader import load_key, load_private_key, load_public_key

__version__ = "0.9.0"

__all__ = [
    "DEFAULT_VERIFY_FAILURE_REASON",
    "Algorithm",
    "DigestLength",
    "KeyRole",
    "Padding",
    "PrivateKeyHandle",
    "PublicKeyHandle",
    "RsaClientConfig",
    "RsaClientError",
    "RsaConfigurationError",
    "RsaKeyHandle",
    "RsaOperationError",
    "RsaParseError",
    "VerificationResult",
    "configure_logging",
    "digest",
    "load_key",
    "load_private_key",
    "load_public_key",
    "resolve_algorithm",
    "resolve_padding",
    "resolve_role",
    "sha256",
    "translate_error",
]
