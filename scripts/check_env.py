"""Pre-flight checks for the social dashboard deployment configuration.

The script loads ``AppSettings`` from a ``.env`` file the same way the app
does, then optionally:

* insists that OAuth credentials exist for the providers named with
  ``--require-provider`` (the app itself only notices at request time),
* opens the configured document store once (``--probe-storage``),
* records or verifies a SHA256 baseline of the ``.env`` file so edits made
  outside a deploy are caught.

Example usages::

    # After a deploy: validate, require Twitter, write the baseline.
    python -m scripts.check_env record --env-file /srv/dashboard/.env \
        --hash-file /srv/dashboard/.env.sha256 --require-provider twitter

    # From cron/systemd: alert when the file no longer matches the baseline.
    python -m scripts.check_env verify --env-file /srv/dashboard/.env \
        --hash-file /srv/dashboard/.env.sha256
"""

from __future__ import annotations

import argparse
import hashlib
import sys
from pathlib import Path
from typing import Sequence

from pydantic import ValidationError

from app.clients.document_store import open_document_store
from app.core.config import AppSettings, _load_env_file
from app.core.errors import StorageUnavailableError
from app.models.social import PROVIDER_DOCUMENT_FIELDS

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_CHECKSUM_ERROR = 3
EXIT_STORAGE_ERROR = 4
EXIT_RUNTIME_ERROR = 5


def _digest(env_file: Path) -> str:
    return hashlib.sha256(env_file.read_bytes()).hexdigest()


def _load_settings(env_file: Path) -> AppSettings:
    """Resolve settings with ``env_file`` layered under the process environment."""
    if not env_file.is_file():
        raise FileNotFoundError(f"No environment file at {env_file}.")
    _load_env_file(str(env_file))
    return AppSettings(_env_file=str(env_file))  # type: ignore[call-arg]


def _missing_credentials(settings: AppSettings, providers: Sequence[str]) -> list[str]:
    """Names of the unset ``<PROVIDER>_CLIENT_ID`` / ``_SECRET`` variables."""
    missing = []
    for provider in providers:
        credentials = settings.provider_settings(provider)
        if credentials.is_configured:
            continue
        prefix = provider.upper()
        if not credentials.client_id:
            missing.append(f"{prefix}_CLIENT_ID")
        if not credentials.client_secret:
            missing.append(f"{prefix}_CLIENT_SECRET")
    return missing


def _probe_storage(settings: AppSettings) -> int:
    try:
        open_document_store(settings.storage)
    except StorageUnavailableError as exc:
        print(f"{settings.storage.backend} document store unavailable: {exc}", file=sys.stderr)
        return EXIT_STORAGE_ERROR
    print(f"{settings.storage.backend} document store reachable.")
    return EXIT_OK


def _write_baseline(env_file: Path, hash_file: Path) -> int:
    digest = _digest(env_file)
    hash_file.write_text(digest + "\n", encoding="utf-8")
    print(f"Baseline for {env_file} written to {hash_file}: {digest}")
    return EXIT_OK


def _compare_baseline(env_file: Path, hash_file: Path) -> int:
    if not hash_file.is_file():
        print(
            f"No baseline at {hash_file}; run the 'record' command first.",
            file=sys.stderr,
        )
        return EXIT_RUNTIME_ERROR

    recorded = hash_file.read_text(encoding="utf-8").strip()
    current = _digest(env_file)
    if recorded != current:
        print(
            f"{env_file} changed since the baseline was recorded "
            f"(baseline {recorded}, now {current}). "
            "Review the edit before restarting the dashboard.",
            file=sys.stderr,
        )
        return EXIT_CHECKSUM_ERROR
    print(f"{env_file} matches its baseline.")
    return EXIT_OK


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Check social dashboard settings and guard the .env file against drift."
    )
    commands = parser.add_subparsers(dest="command", required=True)

    for command, help_text, needs_baseline in (
        ("check", "Only validate settings.", False),
        ("record", "Validate settings, then write the checksum baseline.", True),
        ("verify", "Validate settings, then compare against the checksum baseline.", True),
    ):
        sub = commands.add_parser(command, help=help_text)
        sub.add_argument(
            "--env-file",
            type=Path,
            default=Path(".env"),
            help="Environment file to check (default: ./.env).",
        )
        sub.add_argument(
            "--require-provider",
            action="append",
            default=[],
            choices=sorted(PROVIDER_DOCUMENT_FIELDS),
            metavar="PROVIDER",
            help="Fail unless this provider's client id and secret are set; repeatable.",
        )
        sub.add_argument(
            "--probe-storage",
            action="store_true",
            help="Open the configured document store once.",
        )
        if needs_baseline:
            sub.add_argument(
                "--hash-file",
                type=Path,
                required=True,
                help="Where the checksum baseline is stored.",
            )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    env_file: Path = args.env_file

    try:
        settings = _load_settings(env_file)
    except FileNotFoundError as exc:
        print(exc, file=sys.stderr)
        return EXIT_RUNTIME_ERROR
    except ValidationError as exc:
        print(f"Invalid settings in {env_file}:\n{exc.json(indent=2)}", file=sys.stderr)
        return EXIT_VALIDATION_ERROR
    except Exception as exc:  # pylint: disable=broad-except
        print(f"Could not load settings: {exc}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    missing = _missing_credentials(settings, args.require_provider)
    if missing:
        print("Missing provider credentials: " + ", ".join(missing), file=sys.stderr)
        return EXIT_VALIDATION_ERROR

    if args.probe_storage:
        status = _probe_storage(settings)
        if status != EXIT_OK:
            return status

    if args.command == "record":
        return _write_baseline(env_file, args.hash_file)
    if args.command == "verify":
        return _compare_baseline(env_file, args.hash_file)
    print("Settings OK.")
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
