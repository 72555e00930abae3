"""Configuration management for Coastal Knowledge."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

try:
    import tomllib
except ImportError:
    import tomli as tomllib


logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "COASTAL_KNOWLEDGE_CONFIG"

DEFAULT_STORE_PATH = str(Path.home() / ".coastal_knowledge_store.json")


@dataclass
class ServicesConfig:
    """Memory server configuration."""
    memory_server_url: str = "http://localhost:8080"
    memory_server_type: str = "local"  # rest / local
    request_timeout: float = 10.0
    max_retries: int = 3


@dataclass
class StoreConfig:
    """Local key/value store configuration."""
    path: str = DEFAULT_STORE_PATH
    seed_default_tree: bool = True


@dataclass
class SelectionConfig:
    """Conflict heuristic thresholds."""
    conflict_min_token_length: int = 4
    conflict_min_shared_tokens: int = 3


@dataclass
class LogConfig:
    """Logging configuration."""
    level: str = "INFO"
    file: str = ""  # Empty = stderr
    format: str = "text"  # text / json


@dataclass
class SessionConfig:
    """Assistant session configuration."""
    user_name: str = ""
    ttl_hours: int = 24
    max_history: int = 20


@dataclass
class Config:
    """Application configuration."""
    services: ServicesConfig = field(default_factory=ServicesConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    selection: SelectionConfig = field(default_factory=SelectionConfig)
    log: LogConfig = field(default_factory=LogConfig)
    session: SessionConfig = field(default_factory=SessionConfig)

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> "Config":
        """Load configuration from TOML file.

        Args:
            config_path: Path to config.toml file. If not provided,
                        searches in current directory and user home.

        Returns:
            Config instance
        """
        if config_path:
            paths = [Path(config_path)]
        else:
            paths = [
                Path("config.toml"),
                Path.home() / ".config" / "coastal-knowledge" / "config.toml",
            ]

        config_file = next((p for p in paths if p.exists()), None)

        if config_file is None:
            logger.info("No config file found, using defaults")
            return cls()

        logger.info(f"Loading config from {config_file}")
        with open(config_file, "rb") as f:
            data = tomllib.load(f)

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict) -> "Config":
        """Create config from dictionary."""
        services = data.get("services", {})
        store = data.get("store", {})
        selection = data.get("selection", {})
        log = data.get("log", {})
        session = data.get("session", {})

        return cls(
            services=ServicesConfig(
                memory_server_url=services.get("memory_server_url", "http://localhost:8080"),
                memory_server_type=services.get("memory_server_type", "local"),
                request_timeout=services.get("request_timeout", 10.0),
                max_retries=services.get("max_retries", 3),
            ),
            store=StoreConfig(
                path=store.get("path", DEFAULT_STORE_PATH),
                seed_default_tree=store.get("seed_default_tree", True),
            ),
            selection=SelectionConfig(
                conflict_min_token_length=selection.get("conflict_min_token_length", 4),
                conflict_min_shared_tokens=selection.get("conflict_min_shared_tokens", 3),
            ),
            log=LogConfig(
                level=log.get("level", "INFO"),
                file=log.get("file", ""),
                format=log.get("format", "text"),
            ),
            session=SessionConfig(
                user_name=session.get("user_name", ""),
                ttl_hours=session.get("ttl_hours", 24),
                max_history=session.get("max_history", 20),
            ),
        )

    def validate(self) -> list[str]:
        """Validate configuration.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if self.services.memory_server_type not in ["rest", "local"]:
            errors.append(f"Invalid memory server type: {self.services.memory_server_type}")

        if self.services.max_retries < 0:
            errors.append("max_retries must not be negative")

        if self.selection.conflict_min_token_length < 1:
            errors.append("conflict_min_token_length must be at least 1")

        if self.selection.conflict_min_shared_tokens < 1:
            errors.append("conflict_min_shared_tokens must be at least 1")

        if self.log.level not in ["DEBUG", "INFO", "WARNING", "ERROR"]:
            errors.append(f"Invalid log level: {self.log.level}")

        if self.log.format not in ["text", "json"]:
            errors.append(f"Invalid log format: {self.log.format}")

        if self.session.ttl_hours < 1:
            errors.append("ttl_hours must be at least 1")

        if self.session.max_history < 1:
            errors.append("max_history must be at least 1")

        return errors

    def setup_logging(self) -> None:
        """Setup logging based on configuration."""
        level = getattr(logging, self.log.level.upper(), logging.INFO)

        # stdout carries the MCP stdio transport, so console logs go to stderr
        if self.log.file:
            handler: logging.Handler = logging.FileHandler(self.log.file)
        else:
            handler = logging.StreamHandler()

        if self.log.format == "json":
            formatter = logging.Formatter(
                '{"timestamp": "%(asctime)s", "level": "%(levelname)s", '
                '"logger": "%(name)s", "message": "%(message)s"}'
            )
        else:
            formatter = logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            )

        handler.setFormatter(formatter)
        logging.basicConfig(level=level, handlers=[handler])

    @property
    def memory_url(self) -> str:
        """Get Memory server URL."""
        return self.services.memory_server_url

    @property
    def memory_type(self) -> str:
        """Get Memory server protocol."""
        return self.services.memory_server_type

    @property
    def store_path(self) -> Path:
        """Get expanded local store path."""
        return Path(self.store.path).expanduser()

    @property
    def user_name(self) -> str:
        """Get user name."""
        return self.session.user_name


def resolve_config_path() -> Optional[Path]:
    """Config path from the environment, or None to search the default locations."""
    env_path = os.environ.get(CONFIG_ENV_VAR)
    return Path(env_path) if env_path else None


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from file.

    Args:
        config_path: Path to config file

    Returns:
        Config instance
    """
    return Config.load(str(config_path) if config_path else None)
