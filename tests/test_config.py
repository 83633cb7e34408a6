"""Tests for config loading, codec resolution and the retry helper."""

from __future__ import annotations

import httpx
import pytest
from pydantic import ValidationError

from mam.clients.base import APIError
from mam.codec import MaskingCodec, load_codec
from mam.config import MamConfig, load_config
from mam.errors import ConfigurationError
from mam.utils.retry import is_transient, with_retry
from tests.mocks.mock_codec import FakeCodec


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_config(tmp_path / "nope.yaml", env=False)
        assert config == MamConfig()
        assert config.hash_rounds == 81
        assert config.depth == 3 and config.mwm == 9

    def test_yaml_values(self, tmp_path):
        path = tmp_path / "mam.yaml"
        path.write_text("provider: http://node.test:14265\nmwm: 14\nlisten_timeout: 2.5\n")
        config = load_config(path, env=False)
        assert config.provider == "http://node.test:14265"
        assert config.mwm == 14
        assert config.listen_timeout == 2.5

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / "mam.yaml"
        path.write_text("")
        assert load_config(path, env=False) == MamConfig()

    def test_env_overrides_yaml(self, tmp_path, monkeypatch):
        path = tmp_path / "mam.yaml"
        path.write_text("provider: http://from-yaml\n")
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("MAM_PROVIDER", "http://from-env")
        monkeypatch.setenv("MAM_CODEC", "tests.mocks.mock_codec:FakeCodec")
        config = load_config(path)
        assert config.provider == "http://from-env"
        assert config.codec == "tests.mocks.mock_codec:FakeCodec"

    def test_invalid_value_rejected(self, tmp_path):
        path = tmp_path / "mam.yaml"
        path.write_text("security: 7\n")
        with pytest.raises(ValidationError):
            load_config(path, env=False)

    def test_seed_hidden_from_repr(self):
        assert "SEEDSEED" not in repr(MamConfig(seed="SEEDSEED"))

    def test_repo_default_config_loads(self):
        config = load_config(env=False)
        assert config.fragment_capacity == 256


class TestLoadCodec:
    def test_class_path_instantiated(self):
        codec = load_codec("tests.mocks.mock_codec:FakeCodec")
        assert isinstance(codec, FakeCodec)
        assert isinstance(codec, MaskingCodec)

    @pytest.mark.parametrize("path", ["no_colon", ":Attr", "module:"])
    def test_malformed_path(self, path):
        with pytest.raises(ConfigurationError):
            load_codec(path)

    def test_missing_module(self):
        with pytest.raises(ConfigurationError):
            load_codec("no.such.module:Codec")

    def test_not_a_codec(self):
        with pytest.raises(ConfigurationError):
            load_codec("tests.mocks.mock_codec:root_for", seed="A", leaf=0)


class TestRetry:
    def test_transient_classification(self):
        assert is_transient(APIError("busy", status_code=503, retryable=True))
        assert not is_transient(APIError("bad", status_code=400, retryable=False))
        assert is_transient(httpx.ConnectError("refused"))
        assert is_transient(TimeoutError())
        assert not is_transient(ValueError("bug"))

    @pytest.mark.asyncio
    async def test_retries_transient_then_succeeds(self):
        calls = {"n": 0}

        @with_retry(attempts=3, min_wait=0, max_wait=0)
        async def flaky() -> str:
            calls["n"] += 1
            if calls["n"] < 3:
                raise ConnectionError("blip")
            return "ok"

        assert await flaky() == "ok"
        assert calls["n"] == 3

    @pytest.mark.asyncio
    async def test_gives_up_and_reraises(self):
        @with_retry(attempts=2, min_wait=0, max_wait=0)
        async def down() -> None:
            raise ConnectionError("down")

        with pytest.raises(ConnectionError):
            await down()

    @pytest.mark.asyncio
    async def test_permanent_error_not_retried(self):
        calls = {"n": 0}

        @with_retry(attempts=5, min_wait=0, max_wait=0)
        async def rejected() -> None:
            calls["n"] += 1
            raise APIError("bad request", status_code=400)

        with pytest.raises(APIError):
            await rejected()
        assert calls["n"] == 1
