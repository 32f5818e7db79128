"""Command line interface for the piece migration tool."""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Callable, Mapping, Optional, Sequence

from . import __version__
from .cli_progress import MigrationProgressDisplay, render_configuration_summary
from .config import load_config
from .errors import MigrationError
from .models import MigrationConfig, utc_now
from .orchestrator import MigrationDriver, ShutdownCoordinator
from .services.remote_client import HTTPStorageClient


class CLIError(RuntimeError):
    """Raised when CLI validation/execution fails."""


def _setup_logging(debug: bool, silent: bool, log_level: Optional[str]) -> str:
    """
    Configure logging.

    Default behavior is silent unless --debug or --log-level is provided.
    Returns a string describing effective mode.
    """
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    logging.disable(logging.NOTSET)

    if silent or (not debug and not log_level and not os.getenv("LOG_LEVEL")):
        logging.disable(logging.CRITICAL)
        root_logger.setLevel(logging.CRITICAL + 1)
        return "silent"

    if debug:
        level = logging.DEBUG
    elif log_level:
        level = getattr(logging, log_level.upper(), logging.INFO)
    else:
        level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)

    from rich.logging import RichHandler

    handler = RichHandler(
        rich_tracebacks=True,
        markup=False,
        show_time=True,
        show_path=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    return logging.getLevelName(level)


def _strip_optional_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        return value[1:-1]
    return value


def _load_env_file(path: Path, override: bool = False) -> None:
    if not path.exists():
        raise CLIError(f"env file not found: {path}")
    if not path.is_file():
        raise CLIError(f"env path is not a file: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CLIError(f"could not read env file {path}: {exc}") from exc

    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export ") :].strip()
        if "=" not in line:
            continue

        key, value = line.split("=", 1)
        key = key.strip()
        if not key:
            continue

        value = _strip_optional_quotes(value.strip())
        if override or key not in os.environ:
            os.environ[key] = value


def _resolve_default_env_file() -> Optional[Path]:
    default_env = Path(".env")
    return default_env if default_env.exists() and default_env.is_file() else None


def _mask(secret: Optional[str]) -> str:
    if not secret:
        return "(missing)"
    return f"{secret[:6]}…" if len(secret) > 6 else "***"


def _configuration_rows(config: MigrationConfig, log_mode: str, env_file) -> dict:
    endpoint_note = "local node" if config.is_local_node else "public/explicit endpoint"
    return {
        "Source": str(config.source_path),
        "Piece Prefix": config.piece_prefix,
        "RPC URL": f"{config.rpc_url} ({endpoint_note})",
        "Storage URL": config.storage_url,
        "Provider ID": config.provider_id,
        "Identity": _mask(config.private_key),
        "Concurrency": config.concurrency,
        "Batch Size": config.effective_batch_size,
        "Log Interval": config.log_interval,
        "Progress File": str(config.progress_file),
        "Env File": str(env_file) if env_file else "-",
        "Logging": log_mode,
    }


def _default_client_factory(config: MigrationConfig) -> HTTPStorageClient:
    return HTTPStorageClient(
        config.storage_url,
        provider_id=config.provider_id,
        auth_token=config.private_key,
        timeout=config.upload_timeout,
        max_piece_size=config.max_piece_size,
        context_metadata={
            "migrationDate": utc_now(),
            "source": str(config.source_path),
        },
    )


async def _run_migration(
    log_mode: str,
    env_file: Optional[Path],
    environ: Optional[Mapping[str, str]] = None,
    client_factory: Callable[[MigrationConfig], object] = _default_client_factory,
) -> int:
    config = await load_config(environ)
    render_configuration_summary(_configuration_rows(config, log_mode, env_file))

    display = MigrationProgressDisplay()
    async with client_factory(config) as remote:
        shutdown = ShutdownCoordinator(
            on_request=display.on_shutdown_requested,
            on_force=display.on_force_exit,
        )
        shutdown.install()
        try:
            driver = MigrationDriver(config, remote, shutdown=shutdown)
            display.attach(driver)
            await driver.run()
        finally:
            shutdown.uninstall()

    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="piece-migrate",
        description="Migrate piece files to remote content-addressable storage.",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Load environment variables from this .env file",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logs")
    parser.add_argument("--silent", action="store_true", help="Disable logs")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Explicit log level (DEBUG/INFO/WARNING/ERROR)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"piece-migrate {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser(
        "migrate",
        help="Upload all remaining pieces (configured via environment)",
        description=(
            "Upload every piece in SOURCE_PATH not yet recorded in the progress "
            "file to the storage service at STORAGE_URL. RPC_URL only selects "
            "the chain endpoint. Safe to re-run: handled pieces are skipped "
            "and transient failures are retried."
        ),
    )
    return parser


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    used_env_file = args.env_file or _resolve_default_env_file()
    if used_env_file is not None:
        try:
            _load_env_file(Path(used_env_file))
        except CLIError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 1

    effective_log_mode = _setup_logging(
        debug=args.debug,
        silent=args.silent,
        log_level=args.log_level,
    )

    if args.command is None:
        parser.print_help()
        return 0

    try:
        return asyncio.run(_run_migration(effective_log_mode, used_env_file))
    except MigrationError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Cancelled.", file=sys.stderr)
        return 130


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
