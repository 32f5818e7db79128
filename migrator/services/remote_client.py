"""HTTP adapter for the remote piece storage service."""
from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from ..errors import RemoteUploadError

logger = logging.getLogger(__name__)

PUBLIC_RPC_URL = "https://api.calibration.node.glif.io/rpc/v1"
LOCAL_RPC_PORT = 1234
DEFAULT_MAX_PIECE_SIZE = 200 * 1024 * 1024


@dataclass(frozen=True)
class RpcEndpoint:
    """Resolved remote endpoint."""
    url: str
    is_local: bool = False
    version: Optional[str] = None


async def detect_rpc_endpoint(
    local_ip: Optional[str],
    timeout: float = 3.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> RpcEndpoint:
    """
    Prefer a reachable local node over the public endpoint.

    Args:
        local_ip: Address of a local node, or None to skip probing
        timeout: Probe timeout in seconds
        transport: Optional httpx transport (tests)
    """
    if not local_ip:
        return RpcEndpoint(PUBLIC_RPC_URL)

    local_url = f"http://{local_ip}:{LOCAL_RPC_PORT}/rpc/v1"
    payload = {"jsonrpc": "2.0", "method": "Filecoin.Version", "params": [], "id": 1}

    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            response = await client.post(local_url, json=payload)
        if response.status_code == 200:
            version = (response.json().get("result") or {}).get("Version")
            if version:
                logger.info(f"Local node detected at {local_ip} ({version})")
                return RpcEndpoint(local_url, is_local=True, version=version)
    except (httpx.HTTPError, ValueError) as e:
        logger.debug(f"Local node probe failed: {e}")

    logger.warning(
        f"LOCAL_LOTUS_IP set but node at {local_ip}:{LOCAL_RPC_PORT} not reachable, "
        "using public endpoint"
    )
    return RpcEndpoint(PUBLIC_RPC_URL)


class HTTPStorageClient:
    """
    HTTP client for piece uploads.

    Implements IRemoteStorage protocol.

    Usage:
        async with HTTPStorageClient(url, provider_id, private_key) as client:
            piece_cid = await client.upload(data, {"originalFilename": name})
    """

    def __init__(
        self,
        base_url: str,
        provider_id: int,
        auth_token: str,
        timeout: float = 300.0,
        max_piece_size: int = DEFAULT_MAX_PIECE_SIZE,
        context_metadata: Optional[Dict[str, Any]] = None,
        max_retries: int = 3,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url
        self._provider_id = provider_id
        self._auth_token = auth_token
        self._timeout = timeout
        self._max_piece_size = max_piece_size
        self._context_metadata = dict(context_metadata or {})
        self._max_retries = max(1, max_retries)
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            headers={"Authorization": f"Bearer {self._auth_token}"},
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args):
        if self._client:
            await self._client.aclose()
            self._client = None

    async def upload(self, data: bytes, metadata: Optional[Dict[str, Any]] = None) -> str:
        if not self._client:
            raise RuntimeError("HTTPStorageClient not initialized. Use 'async with' context.")

        if len(data) > self._max_piece_size:
            raise RemoteUploadError(
                f"Piece size {len(data)} exceeds maximum allowed size {self._max_piece_size}",
                code="PAYLOAD_TOO_LARGE",
            )

        metadata = dict(metadata or {})
        filename = str(metadata.get("originalFilename", "piece"))
        form = {
            "providerId": str(self._provider_id),
            "metadata": json.dumps(metadata),
            "context": json.dumps(self._context_metadata),
        }

        last_exception: Optional[Exception] = None
        for attempt in range(self._max_retries):
            try:
                response = await self._client.post(
                    "/pieces",
                    data=form,
                    files={"file": (filename, data, "application/octet-stream")},
                )

                if response.status_code >= 500 and attempt < self._max_retries - 1:
                    await asyncio.sleep(0.5 * (attempt + 1))
                    continue

                if response.status_code >= 400:
                    raise self._error_from_response(response)

                piece_cid = response.json().get("pieceCid")
                if not piece_cid:
                    raise RemoteUploadError(
                        "Upload response did not include a pieceCid",
                        status_code=response.status_code,
                    )
                return piece_cid
            except (httpx.RequestError, httpx.TimeoutException) as exc:
                last_exception = exc
                if attempt < self._max_retries - 1:
                    await asyncio.sleep(0.5 * (attempt + 1))
                    continue
                raise

        if last_exception:
            raise last_exception
        raise RemoteUploadError(f"Upload failed after {self._max_retries} attempts")

    @staticmethod
    def _error_from_response(response: httpx.Response) -> RemoteUploadError:
        code = None
        try:
            detail = response.json()
        except ValueError:
            detail = response.text
        if isinstance(detail, dict):
            code = detail.get("code")
            if not isinstance(code, str):
                code = None
            message = detail.get("error") or detail.get("message") or json.dumps(detail)
        else:
            message = str(detail)
        return RemoteUploadError(
            f"API error {response.status_code} on upload: {message}",
            code=code,
            status_code=response.status_code,
        )
