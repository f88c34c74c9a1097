from __future__ import annotations

import argparse
import base64
import sys
from pathlib import Path

if __package__ in (None, ""):
    repo_src = Path(__file__).resolve().parents[1] / "src"
    if str(repo_src) not in sys.path:
        sys.path.insert(0, str(repo_src))

try:
    from rsa_client import (
        RsaClientConfig,
        RsaClientError,
        configure_logging,
        digest,
        resolve_algorithm,
        resolve_padding,
        sha256,
    )
except ModuleNotFoundError as exc:
    if exc.name in {"cryptography", "asn1crypto"}:
        raise SystemExit(
            f"Missing dependency: {exc.name}\n"
            "Install it with:\n"
            "  python3 -m pip install -e ."
        ) from exc
    raise


class _HelpFormatter(
    argparse.RawTextHelpFormatter,
    argparse.ArgumentDefaultsHelpFormatter,
):
    """Readable help with examples and defaults."""


HELP_EPILOG = """Examples:
  # Encrypt with a public key, decrypt with the private key
  python3 examples/rsa_cli.py --public-key pub.pem encrypt --message "hello world" > ct.b64
  python3 examples/rsa_cli.py --private-key priv.pem decrypt --input-file ct.b64

  # Sign the SHA-256 digest of a message and verify it
  python3 examples/rsa_cli.py --private-key priv.pem sign --message "payload" --hash > sig.b64
  python3 examples/rsa_cli.py --public-key pub.pem verify --message "payload" --hash --signature-file sig.b64

  # Keys may also come from RSA_CLIENT_PUBLIC_KEY / RSA_CLIENT_PRIVATE_KEY
  python3 examples/rsa_cli.py sha256 --message "abc"
"""


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Encrypt, decrypt, sign and verify with PEM RSA keys.",
        formatter_class=_HelpFormatter,
        epilog=HELP_EPILOG,
    )
    parser.add_argument("--public-key", default=None, help="Path to a public key PEM file.")
    parser.add_argument("--private-key", default=None, help="Path to a private key PEM file.")
    parser.add_argument(
        "--padding",
        default=None,
        help="Padding: pkcs1, sslv23, no_padding, oaep (default: config or pkcs1).",
    )
    parser.add_argument(
        "--algorithm",
        default=None,
        help="Digest algorithm for sign/verify (default: config or sha256).",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    encrypt = subparsers.add_parser("encrypt", help="Encrypt a message with the public key.")
    encrypt.add_argument("--message", required=True)

    decrypt = subparsers.add_parser("decrypt", help="Decrypt base64 ciphertext.")
    decrypt_input = decrypt.add_mutually_exclusive_group(required=True)
    decrypt_input.add_argument("--ciphertext", help="Base64 ciphertext.")
    decrypt_input.add_argument("--input-file", help="File holding base64 ciphertext.")

    for name, help_text in (
        ("sign", "Sign a message (or its digest with --hash)."),
        ("verify", "Verify a base64 signature."),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("--message", required=True)
        sub.add_argument(
            "--hash",
            action="store_true",
            help="Hash the message with the selected algorithm before signing/verifying.",
        )
        if name == "verify":
            signature_input = sub.add_mutually_exclusive_group(required=True)
            signature_input.add_argument("--signature", help="Base64 signature.")
            signature_input.add_argument("--signature-file", help="File holding a base64 signature.")

    sha_parser = subparsers.add_parser("sha256", help="Print the hex SHA-256 digest of a message.")
    sha_parser.add_argument("--message", required=True)
    return parser


def _read_b64(value: str | None, path: str | None) -> bytes:
    text = Path(path).read_text(encoding="ascii") if path else (value or "")
    return base64.b64decode(text.strip(), validate=True)


def _resolve_config(args: argparse.Namespace) -> RsaClientConfig:
    base = RsaClientConfig.from_env(
        public_key_path=args.public_key,
        private_key_path=args.private_key,
    )
    return RsaClientConfig(
        public_key_path=base.public_key_path,
        private_key_path=base.private_key_path,
        padding=resolve_padding(args.padding) if args.padding else base.padding,
        sign_algorithm=resolve_algorithm(args.algorithm) if args.algorithm else base.sign_algorithm,
        key_password_env=base.key_password_env,
    )


def _signing_input(config: RsaClientConfig, message: str, hash_first: bool) -> bytes:
    data = message.encode("utf-8")
    if not hash_first:
        return data
    return digest(config.sign_algorithm, data)


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    try:
        configure_logging()
        if args.command == "sha256":
            print(sha256(args.message.encode("utf-8")).hex())
            return 0

        config = _resolve_config(args)
        if args.command == "encrypt":
            with config.load_public_key() as key:
                ciphertext = key.encrypt(args.message.encode("utf-8"))
            print(base64.b64encode(ciphertext).decode("ascii"))
        elif args.command == "decrypt":
            ciphertext = _read_b64(args.ciphertext, args.input_file)
            with config.load_private_key() as key:
                plaintext = key.decrypt(ciphertext)
            sys.stdout.write(plaintext.decode("utf-8", errors="replace") + "\n")
        elif args.command == "sign":
            payload = _signing_input(config, args.message, args.hash)
            with config.load_private_key() as key:
                signature = key.sign(config.sign_algorithm, payload)
            print(base64.b64encode(signature).decode("ascii"))
        else:
            payload = _signing_input(config, args.message, args.hash)
            signature = _read_b64(args.signature, args.signature_file)
            with config.load_public_key() as key:
                valid, reason = key.verify(config.sign_algorithm, payload, signature)
            if not valid:
                print(f"Signature INVALID: {reason}", file=sys.stderr)
                return 2
            print("Signature OK")
        return 0
    except (RsaClientError, ValueError, OSError, UnicodeError) as exc:
        print(f"Client error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
