from __future__ import annotations

import base64
import importlib.util
from pathlib import Path
from types import ModuleType

import pytest

_CLI_PATH = Path(__file__).resolve().parents[1] / "examples" / "rsa_cli.py"
_KEY_ENV_VARS = (
    "RSA_CLIENT_PUBLIC_KEY",
    "RSA_CLIENT_PRIVATE_KEY",
    "RSA_CLIENT_PADDING",
    "RSA_CLIENT_SIGN_ALGORITHM",
    "RSA_CLIENT_KEY_PASSWORD_ENV",
)


@pytest.fixture(scope="module")
def rsa_cli() -> ModuleType:
    module_spec = importlib.util.spec_from_file_location("rsa_cli", _CLI_PATH)
    assert module_spec is not None and module_spec.loader is not None
    module = importlib.util.module_from_spec(module_spec)
    module_spec.loader.exec_module(module)
    return module


@pytest.fixture
def key_args(tmp_path: Path, key_pems: dict[str, bytes], monkeypatch: pytest.MonkeyPatch) -> list[str]:
    for name in _KEY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("RSA_CLIENT_LOG_FILE", str(tmp_path / "cli.log"))
    public_path = tmp_path / "public.pem"
    private_path = tmp_path / "private.pem"
    public_path.write_bytes(key_pems["public_pkcs1"])
    private_path.write_bytes(key_pems["private_traditional"])
    return ["--public-key", str(public_path), "--private-key", str(private_path)]


def test_encrypt_then_decrypt(
    rsa_cli: ModuleType,
    key_args: list[str],
    capsys: pytest.CaptureFixture[str],
) -> None:
    assert rsa_cli.main([*key_args, "encrypt", "--message", "hello world"]) == 0
    ciphertext_b64 = capsys.readouterr().out.strip()
    assert len(base64.b64decode(ciphertext_b64)) == 256

    assert rsa_cli.main([*key_args, "decrypt", "--ciphertext", ciphertext_b64]) == 0
    assert capsys.readouterr().out.strip() == "hello world"


def test_sign_then_verify(
    rsa_cli: ModuleType,
    key_args: list[str],
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    assert rsa_cli.main([*key_args, "sign", "--message", "payload", "--hash"]) == 0
    signature_file = tmp_path / "sig.b64"
    signature_file.write_text(capsys.readouterr().out, encoding="ascii")

    verify_args = ["verify", "--hash", "--signature-file", str(signature_file)]
    assert rsa_cli.main([*key_args, *verify_args, "--message", "payload"]) == 0
    assert "Signature OK" in capsys.readouterr().out

    assert rsa_cli.main([*key_args, *verify_args, "--message", "tampered"]) == 2
    assert "Signature INVALID" in capsys.readouterr().err


def test_sha256_command(
    rsa_cli: ModuleType,
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.setenv("RSA_CLIENT_LOG_FILE", str(tmp_path / "cli.log"))
    assert rsa_cli.main(["sha256", "--message", "abc"]) == 0
    assert capsys.readouterr().out.strip().startswith("ba7816bf")


def test_operation_errors_exit_with_one(
    rsa_cli: ModuleType,
    key_args: list[str],
    capsys: pytest.CaptureFixture[str],
) -> None:
    assert rsa_cli.main([*key_args, "encrypt", "--message", "x" * 300]) == 1
    assert "data too large for key size" in capsys.readouterr().err


def test_missing_key_file_exits_with_one(
    rsa_cli: ModuleType,
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.setenv("RSA_CLIENT_LOG_FILE", str(tmp_path / "cli.log"))
    missing = tmp_path / "nope.pem"
    assert rsa_cli.main(["--public-key", str(missing), "encrypt", "--message", "x"]) == 1
    assert "does not point to a file" in capsys.readouterr().err


def test_missing_input_file_exits_with_one(
    rsa_cli: ModuleType,
    key_args: list[str],
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    missing = tmp_path / "missing.b64"
    assert rsa_cli.main([*key_args, "decrypt", "--input-file", str(missing)]) == 1
    assert "Client error" in capsys.readouterr().err


def test_padding_from_env_applies_to_explicit_key_paths(
    rsa_cli: ModuleType,
    key_args: list[str],
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.setenv("RSA_CLIENT_PADDING", "oaep")
    # OAEP leaves room for 214 bytes under a 2048-bit key; PKCS#1 would allow 245.
    assert rsa_cli.main([*key_args, "encrypt", "--message", "x" * 230]) == 1
    assert "data too large for key size" in capsys.readouterr().err
