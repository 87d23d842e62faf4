import json

import pytest

from agentloop.errors import ConfigError
from agentloop.tools.mcp_client import MCPServerProvider, provider_from_config
from agentloop.utils import config as config_module
from agentloop.utils.config import (
    HttpServerConfig,
    StdioServerConfig,
    load_config,
    load_server_configs,
    parse_server_config,
)

ENV_VARS = [
    "OPENAI_API_KEY", "OPENAI_BASE_URL", "OPENAI_MODEL", "OPENAI_EMBEDDING_MODEL",
    "AGENT_MAX_ITERATIONS", "AGENT_SYSTEM_PROMPT", "ENABLE_RAG", "RAG_TOP_K",
    "RAG_CHUNK_SIZE", "RAG_CHUNK_OVERLAP", "RAG_DOCS_PATH", "RAG_STORE_PATH",
    "ENABLE_SKILLS", "SKILLS_DIR", "SKILL_AUTO_INJECT", "MCP_SERVERS_FILE", "LOG_LEVEL",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    # Keep a developer's .env out of the tests
    monkeypatch.setattr(config_module, "load_dotenv", lambda *args, **kwargs: False)
    return monkeypatch


class TestLoadConfig:
    def test_defaults(self, clean_env):
        clean_env.setenv("OPENAI_API_KEY", "sk-test")

        config = load_config()

        assert config.openai.api_key == "sk-test"
        assert config.openai.base_url is None
        assert config.openai.model == "gpt-4o-mini"
        assert config.agent.max_iterations == 10
        assert config.rag.enabled is False
        assert config.rag.top_k == 3
        assert config.rag.docs_path is None
        assert config.skills.enabled is True
        assert config.skills.auto_inject is False
        assert config.mcp.servers_file.name == "mcp_servers.json"
        assert config.log_level == "info"

    def test_overrides(self, clean_env):
        clean_env.setenv("OPENAI_API_KEY", "sk-test")
        clean_env.setenv("OPENAI_BASE_URL", "http://localhost:11434/v1")
        clean_env.setenv("AGENT_MAX_ITERATIONS", "4")
        clean_env.setenv("ENABLE_RAG", "true")
        clean_env.setenv("RAG_DOCS_PATH", "docs")
        clean_env.setenv("SKILL_AUTO_INJECT", "1")

        config = load_config()

        assert config.openai.base_url == "http://localhost:11434/v1"
        assert config.agent.max_iterations == 4
        assert config.rag.enabled is True
        assert str(config.rag.docs_path) == "docs"
        assert config.skills.auto_inject is True

    def test_missing_api_key(self, clean_env):
        with pytest.raises(ConfigError, match="OPENAI_API_KEY"):
            load_config()


class TestServerConfigs:
    def test_parse_stdio_and_http(self):
        stdio = parse_server_config({"name": "calc", "command": "python", "args": ["calc.py"]})
        http = parse_server_config({"name": "docs", "type": "http", "url": "http://localhost:3000/sse"})

        assert stdio == StdioServerConfig(name="calc", command="python", args=["calc.py"])
        assert http == HttpServerConfig(name="docs", url="http://localhost:3000/sse")

    @pytest.mark.parametrize("entry", [
        {"command": "python"},
        {"name": "a__b", "command": "python"},
        {"name": "calc"},
        {"name": "docs", "type": "http"},
        {"name": "odd", "type": "websocket", "url": "ws://x"},
    ])
    def test_invalid_entries(self, entry):
        with pytest.raises(ConfigError):
            parse_server_config(entry)

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "mcp_servers.json"
        path.write_text(json.dumps({"servers": [
            {"name": "calc", "command": "python", "args": ["calc.py"]},
            {"name": "docs", "type": "http", "url": "http://localhost:3000/sse"},
        ]}), encoding="utf-8")

        configs = load_server_configs(path)
        assert [c.name for c in configs] == ["calc", "docs"]

    def test_plain_list_is_accepted(self, tmp_path):
        path = tmp_path / "servers.json"
        path.write_text(json.dumps([{"name": "calc", "command": "calc-server"}]), encoding="utf-8")
        assert load_server_configs(path)[0].command == "calc-server"

    def test_missing_file_means_no_servers(self, tmp_path):
        assert load_server_configs(tmp_path / "absent.json") == []

    def test_duplicates_and_bad_json(self, tmp_path):
        path = tmp_path / "servers.json"
        path.write_text(json.dumps({"servers": [
            {"name": "calc", "command": "a"},
            {"name": "calc", "command": "b"},
        ]}), encoding="utf-8")
        with pytest.raises(ConfigError, match="Duplicate"):
            load_server_configs(path)

        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_server_configs(path)

    def test_provider_from_config(self):
        stdio = provider_from_config(StdioServerConfig(name="calc", command="python", args=["calc.py"]))
        http = provider_from_config(HttpServerConfig(name="docs", url="http://localhost:3000/sse"))

        assert isinstance(stdio, MCPServerProvider)
        assert stdio.name == "calc"
        assert not stdio.connected
        assert http.name == "docs"
