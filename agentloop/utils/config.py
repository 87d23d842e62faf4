"""
Configuration Management
========================

Centralized configuration for the agent. All environment variables are
read and typed here, so the rest of the code never calls os.getenv().

Values come from the process environment, with a .env file (found by
python-dotenv searching up from the working directory) filling the gaps.

Usage:
    from agentloop.utils.config import get_config

    config = get_config()
    print(config.openai.model)
    print(config.agent.max_iterations)

Tool servers are not environment variables: they live in a JSON file
(MCP_SERVERS_FILE, default mcp_servers.json) read by load_server_configs().
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv

from agentloop.errors import ConfigError
from agentloop.utils.logger import Logger

logger = Logger("Config")


def _required(name: str) -> str:
    """
    Get a required environment variable.

    Raises:
        ConfigError: If the variable is not set
    """
    value = os.getenv(name)
    if not value:
        raise ConfigError(
            f"Missing required environment variable: {name}\n"
            f"Please ensure {name} is set in your environment or .env file."
        )
    return value


def _optional(name: str, default: str | None) -> str | None:
    """Get an optional environment variable with a default."""
    value = os.getenv(name)
    return value if value else default


def _optional_int(name: str, default: int) -> int:
    """Get an optional integer environment variable; bad values fall back."""
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(f"{name} is not a valid integer, using default: {default}")
        return default


def _optional_bool(name: str, default: bool) -> bool:
    """Get an optional boolean environment variable ("true", "1", "yes")."""
    value = os.getenv(name)
    if not value:
        return default
    return value.strip().lower() in ("true", "1", "yes", "on")


# ==============================================================================
# Configuration Dataclasses
# ==============================================================================

@dataclass(frozen=True)
class OpenAIConfig:
    """Model endpoint configuration (any OpenAI-compatible API)."""
    api_key: str
    base_url: str | None       # None means the official endpoint
    model: str                 # Chat completions model
    embedding_model: str       # Embeddings model used by RAG


@dataclass(frozen=True)
class AgentConfig:
    """Agent loop settings."""
    max_iterations: int        # Model-call/tool rounds per user message
    system_prompt: str


@dataclass(frozen=True)
class RAGConfig:
    """Retrieval settings."""
    enabled: bool
    top_k: int
    chunk_size: int
    chunk_overlap: int
    docs_path: Path | None     # Indexed at startup when set
    store_path: Path | None    # JSON snapshot of the vector store


@dataclass(frozen=True)
class SkillsConfig:
    """Skill loading settings."""
    enabled: bool
    directory: Path
    auto_inject: bool          # Prepend matched skill guides to the user message


@dataclass(frozen=True)
class MCPConfig:
    """Where tool server definitions live."""
    servers_file: Path


@dataclass(frozen=True)
class Config:
    """
    Root configuration object.

        config = get_config()
        config.openai.model
        config.rag.top_k
    """
    openai: OpenAIConfig
    agent: AgentConfig
    rag: RAGConfig
    skills: SkillsConfig
    mcp: MCPConfig
    log_level: str


DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful assistant. Use the available tools when they help "
    "answer the user's request, and answer directly when they do not."
)


def load_config() -> Config:
    """
    Load and validate all configuration from the environment.

    Raises:
        ConfigError: If required configuration is missing
    """
    load_dotenv()

    docs_path = _optional("RAG_DOCS_PATH", None)
    store_path = _optional("RAG_STORE_PATH", None)

    return Config(
        openai=OpenAIConfig(
            api_key=_required("OPENAI_API_KEY"),
            base_url=_optional("OPENAI_BASE_URL", None),
            model=_optional("OPENAI_MODEL", "gpt-4o-mini"),
            embedding_model=_optional("OPENAI_EMBEDDING_MODEL", "text-embedding-3-small"),
        ),
        agent=AgentConfig(
            max_iterations=max(1, _optional_int("AGENT_MAX_ITERATIONS", 10)),
            system_prompt=_optional("AGENT_SYSTEM_PROMPT", DEFAULT_SYSTEM_PROMPT),
        ),
        rag=RAGConfig(
            enabled=_optional_bool("ENABLE_RAG", False),
            top_k=_optional_int("RAG_TOP_K", 3),
            chunk_size=_optional_int("RAG_CHUNK_SIZE", 1000),
            chunk_overlap=_optional_int("RAG_CHUNK_OVERLAP", 200),
            docs_path=Path(docs_path) if docs_path else None,
            store_path=Path(store_path) if store_path else None,
        ),
        skills=SkillsConfig(
            enabled=_optional_bool("ENABLE_SKILLS", True),
            directory=Path(_optional("SKILLS_DIR", "skills")),
            auto_inject=_optional_bool("SKILL_AUTO_INJECT", False),
        ),
        mcp=MCPConfig(
            servers_file=Path(_optional("MCP_SERVERS_FILE", "mcp_servers.json")),
        ),
        log_level=_optional("LOG_LEVEL", "info"),
    )


_config_instance: Config | None = None


def get_config() -> Config:
    """Get the configuration, loading it on first access."""
    global _config_instance
    if _config_instance is None:
        _config_instance = load_config()
    return _config_instance


def reset_config() -> None:
    """Forget the cached configuration (the next get_config() reloads it)."""
    global _config_instance
    _config_instance = None


# ==============================================================================
# Tool Server Definitions
# ==============================================================================

@dataclass(frozen=True)
class StdioServerConfig:
    """A tool server launched as a subprocess speaking MCP over stdio."""
    name: str
    command: str
    args: list[str] = field(default_factory=list)
    env: dict[str, str] | None = None
    type: Literal["stdio"] = "stdio"


@dataclass(frozen=True)
class HttpServerConfig:
    """A tool server reached over HTTP (MCP server-sent events transport)."""
    name: str
    url: str
    type: Literal["http"] = "http"


ServerConfig = StdioServerConfig | HttpServerConfig


def parse_server_config(data: dict) -> ServerConfig:
    """
    Build a server config from one JSON entry.

    Raises:
        ConfigError: If the entry is missing fields or has an unknown type
    """
    name = data.get("name")
    if not name or not isinstance(name, str):
        raise ConfigError(f"Tool server entry is missing a name: {data}")
    if "__" in name:
        raise ConfigError(f"Tool server name may not contain '__': {name}")

    server_type = data.get("type", "stdio")
    if server_type == "stdio":
        command = data.get("command")
        if not command:
            raise ConfigError(f"stdio tool server '{name}' needs a command")
        return StdioServerConfig(
            name=name,
            command=command,
            args=list(data.get("args", [])),
            env=data.get("env"),
        )
    if server_type == "http":
        url = data.get("url")
        if not url:
            raise ConfigError(f"http tool server '{name}' needs a url")
        return HttpServerConfig(name=name, url=url)

    raise ConfigError(f"Unknown tool server type '{server_type}' for '{name}'")


def load_server_configs(path: Path) -> list[ServerConfig]:
    """
    Read tool server definitions from a JSON file.

    Format:
        {"servers": [
            {"name": "calc", "type": "stdio", "command": "python", "args": ["calc.py"]},
            {"name": "docs", "type": "http", "url": "http://localhost:3000/sse"}
        ]}

    A missing file means no servers.

    Raises:
        ConfigError: If the file exists but is not valid
    """
    if not path.exists():
        logger.debug(f"No tool server file at {path}")
        return []

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e

    entries = data.get("servers", []) if isinstance(data, dict) else data
    if not isinstance(entries, list):
        raise ConfigError(f"'servers' in {path} must be a list")

    configs = [parse_server_config(entry) for entry in entries]

    names = [c.name for c in configs]
    duplicates = {n for n in names if names.count(n) > 1}
    if duplicates:
        raise ConfigError(f"Duplicate tool server names: {', '.join(sorted(duplicates))}")

    return configs
