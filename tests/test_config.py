"""Tests for environment configuration."""
from pathlib import Path

import httpx
import pytest

from migrator.config import load_config
from migrator.errors import ConfigurationError
from migrator.services.remote_client import PUBLIC_RPC_URL

BASE_ENV = {
    "PRIVATE_KEY": "0xabc",
    "PROVIDER_ID": "3",
    "SOURCE_PATH": "/data/pieces",
    "STORAGE_URL": "http://storage.test",
}


class TestLoadConfig:
    @pytest.mark.asyncio
    async def test_defaults(self):
        config = await load_config(dict(BASE_ENV))

        assert config.source_path == Path("/data/pieces")
        assert config.provider_id == 3
        assert config.rpc_url == PUBLIC_RPC_URL
        assert config.is_local_node is False
        assert config.concurrency == 10
        assert config.batch_size == 100
        assert config.log_interval == 50
        assert config.piece_prefix == "s-t00-"
        assert config.progress_file == Path("migration-progress.json")
        assert config.error_log_file == Path("migration-errors.json")

    @pytest.mark.asyncio
    async def test_default_source_path(self):
        env = {k: v for k, v in BASE_ENV.items() if k != "SOURCE_PATH"}
        config = await load_config(env)
        assert config.source_path == Path("/filecoin-storage/piece")

    @pytest.mark.asyncio
    async def test_explicit_values(self):
        env = dict(
            BASE_ENV,
            RPC_URL="http://gateway.test/rpc/v1",
            CONCURRENCY="4",
            BATCH_SIZE="25",
            LOG_INTERVAL="5",
            PROGRESS_FILE="/tmp/p.json",
            PIECE_PREFIX="piece-",
        )
        config = await load_config(env)

        assert config.rpc_url == "http://gateway.test/rpc/v1"
        assert config.concurrency == 4
        assert config.effective_batch_size == 25
        assert config.log_interval == 5
        assert config.progress_file == Path("/tmp/p.json")
        assert config.piece_prefix == "piece-"

    @pytest.mark.asyncio
    async def test_local_node_raises_default_concurrency(self):
        handler = lambda request: httpx.Response(200, json={"result": {"Version": "1.0"}})
        env = dict(BASE_ENV, LOCAL_LOTUS_IP="192.168.1.10")

        config = await load_config(env, transport=httpx.MockTransport(handler))

        assert config.is_local_node is True
        assert config.rpc_url == "http://192.168.1.10:1234/rpc/v1"
        assert config.storage_url == "http://storage.test"
        assert config.concurrency == 20

    @pytest.mark.asyncio
    async def test_batch_size_capped_to_ceiling(self):
        config = await load_config(dict(BASE_ENV, BATCH_SIZE="500", MAX_BATCH_SIZE="14"))
        assert config.effective_batch_size == 14

    @pytest.mark.asyncio
    async def test_missing_required_values(self):
        with pytest.raises(ConfigurationError) as exc_info:
            await load_config({"SOURCE_PATH": "/data"})
        assert "PRIVATE_KEY" in str(exc_info.value)
        assert "PROVIDER_ID" in str(exc_info.value)
        assert "STORAGE_URL" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_malformed_numbers(self):
        with pytest.raises(ConfigurationError) as exc_info:
            await load_config(dict(BASE_ENV, CONCURRENCY="many", PROVIDER_ID="x"))
        message = str(exc_info.value)
        assert "CONCURRENCY must be an integer" in message
        assert "PROVIDER_ID" in message
