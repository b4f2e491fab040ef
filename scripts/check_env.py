"""Operator check for the bot's environment configuration.

Loads ``AppSettings`` from a ``.env`` file the same way the services do and
fails early when a required value is missing, malformed, or when the
response deadline would not leave Slack a reply inside its 3 second window.
It can also record a checksum of the file and later flag drift.

Example usages::

    python -m scripts.check_env check --env-file /srv/quote-bot/.env
    python -m scripts.check_env record --env-file /srv/quote-bot/.env \
        --hash-file /srv/quote-bot/.env.sha256
    python -m scripts.check_env verify --env-file /srv/quote-bot/.env \
        --hash-file /srv/quote-bot/.env.sha256
"""

from __future__ import annotations

import argparse
import hashlib
import sys
from pathlib import Path

from pydantic import ValidationError

from app.core.config import AppSettings, _load_env_file

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_CHECKSUM_ERROR = 3
EXIT_RUNTIME_ERROR = 5

SLACK_DEADLINE_MS = 3000


class DeadlineTooLongError(ValueError):
    """The configured response deadline leaves no room to reply to Slack."""


def _checksum(env_file: Path) -> str:
    return hashlib.sha256(env_file.read_bytes()).hexdigest()


def load_settings(env_file: Path) -> AppSettings:
    """Load settings from ``env_file`` and apply cross-field checks."""
    if not env_file.exists():
        raise FileNotFoundError(f"Environment file {env_file} does not exist.")
    _load_env_file(str(env_file))
    settings = AppSettings()  # type: ignore[call-arg]
    if settings.slack.response_deadline_ms >= SLACK_DEADLINE_MS:
        raise DeadlineTooLongError(
            f"SLACK_RESPONSE_DEADLINE_MS={settings.slack.response_deadline_ms} "
            f"must stay below Slack's {SLACK_DEADLINE_MS}ms limit."
        )
    return settings


def _record(env_file: Path, hash_file: Path) -> int:
    checksum = _checksum(env_file)
    hash_file.write_text(f"{checksum}\n", encoding="utf-8")
    print(f"Recorded checksum to {hash_file} ({checksum})")
    return EXIT_OK


def _verify(env_file: Path, hash_file: Path) -> int:
    if not hash_file.exists():
        print(
            f"Checksum file {hash_file} is missing; run 'record' first.",
            file=sys.stderr,
        )
        return EXIT_RUNTIME_ERROR

    expected = hash_file.read_text(encoding="utf-8").strip()
    actual = _checksum(env_file)
    if expected != actual:
        print(
            f"Environment checksum mismatch (expected {expected}, got {actual}).",
            file=sys.stderr,
        )
        return EXIT_CHECKSUM_ERROR
    print("Environment checksum OK.")
    return EXIT_OK


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate quote bot settings and detect .env drift."
    )
    parser.add_argument(
        "command",
        choices=("check", "record", "verify"),
        help="check: validate only; record/verify: also manage the checksum.",
    )
    parser.add_argument("--env-file", default=".env", type=Path)
    parser.add_argument("--hash-file", type=Path)
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.command != "check" and args.hash_file is None:
        parser.error(f"--hash-file is required for '{args.command}'")

    try:
        settings = load_settings(args.env_file)
    except FileNotFoundError as exc:
        print(str(exc), file=sys.stderr)
        return EXIT_RUNTIME_ERROR
    except ValidationError as exc:
        print(f"Settings validation failed:\n{exc}", file=sys.stderr)
        return EXIT_VALIDATION_ERROR
    except DeadlineTooLongError as exc:
        print(str(exc), file=sys.stderr)
        return EXIT_VALIDATION_ERROR

    print(
        f"Settings OK (environment={settings.environment}, "
        f"queue={settings.aws.sqs_queue_url}, "
        f"deadline={settings.slack.response_deadline_ms}ms)"
    )
    if args.command == "record":
        return _record(args.env_file, args.hash_file)
    if args.command == "verify":
        return _verify(args.env_file, args.hash_file)
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
