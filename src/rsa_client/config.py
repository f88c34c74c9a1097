from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .constants import Algorithm, Padding, resolve_algorithm, resolve_padding
from .exceptions import RsaConfigurationError
from .key_handle import PrivateKeyHandle, PublicKeyHandle
from .pem_loader import load_private_key, load_public_key


def _require_file(name: str, path: str) -> Path:
    resolved = Path(path)
    if not resolved.is_file():
        raise RsaConfigurationError(f"{name} does not point to a file: {path}")
    return resolved


@dataclass(frozen=True)
class RsaClientConfig:
    """Runtime configuration for file-based RSA key access."""

    public_key_path: str | None = None
    private_key_path: str | None = None
    padding: Padding = Padding.PKCS1
    sign_algorithm: Algorithm = Algorithm.SHA256
    key_password_env: str = "RSA_CLIENT_KEY_PASSWORD"

    @classmethod
    def from_env(
        cls,
        *,
        public_key_path: str | None = None,
        private_key_path: str | None = None,
    ) -> "RsaClientConfig":
        """Build from RSA_CLIENT_* variables; explicit paths override the key path variables."""
        if not public_key_path and not private_key_path:
            public_key_path = os.environ.get("RSA_CLIENT_PUBLIC_KEY") or None
            private_key_path = os.environ.get("RSA_CLIENT_PRIVATE_KEY") or None
        padding_raw = os.environ.get("RSA_CLIENT_PADDING", "pkcs1")
        algorithm_raw = os.environ.get("RSA_CLIENT_SIGN_ALGORITHM", "sha256")
        key_password_env = os.environ.get(
            "RSA_CLIENT_KEY_PASSWORD_ENV", "RSA_CLIENT_KEY_PASSWORD"
        )

        if not public_key_path and not private_key_path:
            raise RsaConfigurationError(
                "Set RSA_CLIENT_PUBLIC_KEY and/or RSA_CLIENT_PRIVATE_KEY to locate key files."
            )
        for name, path in (
            ("RSA_CLIENT_PUBLIC_KEY", public_key_path),
            ("RSA_CLIENT_PRIVATE_KEY", private_key_path),
        ):
            if path:
                _require_file(name, path)

        return cls(
            public_key_path=public_key_path,
            private_key_path=private_key_path,
            padding=resolve_padding(padding_raw),
            sign_algorithm=resolve_algorithm(algorithm_raw),
            key_password_env=key_password_env,
        )

    def key_password(self) -> str | None:
        return os.environ.get(self.key_password_env) or None

    def load_public_key(self) -> PublicKeyHandle:
        if not self.public_key_path:
            raise RsaConfigurationError("RSA_CLIENT_PUBLIC_KEY is required.")
        return load_public_key(
            _require_file("RSA_CLIENT_PUBLIC_KEY", self.public_key_path).read_bytes(),
            padding=self.padding,
        )

    def load_private_key(self) -> PrivateKeyHandle:
        if not self.private_key_path:
            raise RsaConfigurationError("RSA_CLIENT_PRIVATE_KEY is required.")
        return load_private_key(
            _require_file("RSA_CLIENT_PRIVATE_KEY", self.private_key_path).read_bytes(),
            padding=self.padding,
            password=self.key_password(),
        )
