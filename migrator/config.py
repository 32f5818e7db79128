"""Resolve MigrationConfig from environment variables."""
import logging
import os
from pathlib import Path
from typing import List, Mapping, Optional

import httpx

from .errors import ConfigurationError
from .models import MigrationConfig
from .services.enumerator import DEFAULT_PIECE_PREFIX
from .services.progress_store import DEFAULT_PROGRESS_FILE
from .reporter import DEFAULT_ERROR_LOG
from .services.remote_client import DEFAULT_MAX_PIECE_SIZE, detect_rpc_endpoint

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_PATH = "/filecoin-storage/piece"
LOCAL_CONCURRENCY = 20
REMOTE_CONCURRENCY = 10
DEFAULT_BATCH_SIZE = 100
DEFAULT_MAX_BATCH_SIZE = 100
DEFAULT_LOG_INTERVAL = 50
DEFAULT_UPLOAD_TIMEOUT = 300.0


def _get_int(env: Mapping[str, str], name: str, default: int, errors: List[str]) -> int:
    raw = (env.get(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        errors.append(f"{name} must be an integer, got {raw!r}")
        return default


def _get_float(env: Mapping[str, str], name: str, default: float, errors: List[str]) -> float:
    raw = (env.get(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        errors.append(f"{name} must be a number, got {raw!r}")
        return default


async def load_config(
    environ: Optional[Mapping[str, str]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> MigrationConfig:
    """
    Build the run configuration.

    RPC_URL wins when set; otherwise a node at LOCAL_LOTUS_IP is probed
    and the public endpoint is the fallback. CONCURRENCY defaults to a
    higher value when talking to a local node. Uploads go to STORAGE_URL,
    which is never derived from the chain endpoint.

    Raises:
        ConfigurationError: listing every missing or malformed value
    """
    env = os.environ if environ is None else environ
    errors: List[str] = []

    local_ip = (env.get("LOCAL_LOTUS_IP") or "").strip() or None
    rpc_url = (env.get("RPC_URL") or "").strip()
    if rpc_url:
        is_local = bool(local_ip and local_ip in rpc_url)
    else:
        endpoint = await detect_rpc_endpoint(local_ip, transport=transport)
        rpc_url, is_local = endpoint.url, endpoint.is_local

    default_concurrency = LOCAL_CONCURRENCY if is_local else REMOTE_CONCURRENCY
    source = (env.get("SOURCE_PATH") or DEFAULT_SOURCE_PATH).strip()

    config = MigrationConfig(
        source_path=Path(source).expanduser() if source else None,
        private_key=(env.get("PRIVATE_KEY") or "").strip() or None,
        provider_id=_get_int(env, "PROVIDER_ID", 0, errors),
        rpc_url=rpc_url,
        storage_url=(env.get("STORAGE_URL") or "").strip(),
        is_local_node=is_local,
        piece_prefix=env.get("PIECE_PREFIX") or DEFAULT_PIECE_PREFIX,
        concurrency=_get_int(env, "CONCURRENCY", default_concurrency, errors),
        batch_size=_get_int(env, "BATCH_SIZE", DEFAULT_BATCH_SIZE, errors),
        max_batch_size=_get_int(env, "MAX_BATCH_SIZE", DEFAULT_MAX_BATCH_SIZE, errors),
        log_interval=_get_int(env, "LOG_INTERVAL", DEFAULT_LOG_INTERVAL, errors),
        progress_file=Path(env.get("PROGRESS_FILE") or DEFAULT_PROGRESS_FILE),
        error_log_file=Path(env.get("ERROR_LOG_FILE") or DEFAULT_ERROR_LOG),
        max_piece_size=_get_int(env, "MAX_PIECE_SIZE", DEFAULT_MAX_PIECE_SIZE, errors),
        upload_timeout=_get_float(env, "UPLOAD_TIMEOUT", DEFAULT_UPLOAD_TIMEOUT, errors),
    )

    errors.extend(config.problems())
    if errors:
        raise ConfigurationError("; ".join(errors))

    if config.batch_size > config.max_batch_size:
        logger.warning(
            f"BATCH_SIZE {config.batch_size} exceeds MAX_BATCH_SIZE "
            f"{config.max_batch_size}, capping"
        )
    return config
