"""
Configuration — Centralized settings management

Config hierarchy (highest to lowest priority):
  1. Command line flags (applied by the CLI)
  2. Environment variables
  3. Project config (.tsunami/config.yaml)
  4. User config (~/.tsunami/config.yaml)
  5. Defaults

Malformed config files raise ConfigError; they are never skipped.
"""

import os
import shlex
import yaml
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List

from .errors import ConfigError


DEFAULT_SERVER_COMMAND = "tsserver"
DEFAULT_LOG_FILE = ".tsunami/tsunami.log"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ServerConfig:
    """Analysis server process settings."""
    command: str = DEFAULT_SERVER_COMMAND
    args: List[str] = field(default_factory=list)
    shutdown_timeout: float = 5.0  # Seconds to wait for exit after stdin closes

    @property
    def argv(self) -> List[str]:
        """Full command line: the command may itself carry arguments."""
        return shlex.split(self.command) + list(self.args)

    def validate(self) -> Optional[str]:
        """Validate config. Returns error message or None if valid."""
        if not self.command or not shlex.split(self.command):
            return "server.command must not be empty"
        if not isinstance(self.args, list) or not all(isinstance(a, str) for a in self.args):
            return "server.args must be a list of strings"
        if self.shutdown_timeout <= 0:
            return "server.shutdown_timeout must be > 0"
        return None


@dataclass
class LoggingConfig:
    """Log destination. Stdout carries the protocol, so logs never go there."""
    level: str = "INFO"
    file: Optional[str] = DEFAULT_LOG_FILE  # Empty/None = stderr

    def validate(self) -> Optional[str]:
        """Validate config. Returns error message or None if valid."""
        if self.level.upper() not in LOG_LEVELS:
            return f"Unknown log level '{self.level}'. Valid: {', '.join(LOG_LEVELS)}"
        return None


@dataclass
class ProjectConfig:
    """Where the TypeScript project configuration lives."""
    tsconfig: str = "tsconfig.json"

    def validate(self) -> Optional[str]:
        if not self.tsconfig:
            return "project.tsconfig must not be empty"
        return None


@dataclass
class Config:
    """Application configuration."""
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    project: ProjectConfig = field(default_factory=ProjectConfig)

    def validate(self) -> Optional[str]:
        for section in (self.server, self.logging, self.project):
            error = section.validate()
            if error:
                return error
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "server": {
                "command": self.server.command,
                "args": list(self.server.args),
                "shutdown_timeout": self.server.shutdown_timeout,
            },
            "logging": {
                "level": self.logging.level,
                "file": self.logging.file,
            },
            "project": {
                "tsconfig": self.project.tsconfig,
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Config':
        """Create from dictionary."""
        server_data = data.get("server") or {}
        logging_data = data.get("logging") or {}
        project_data = data.get("project") or {}

        try:
            return cls(
                server=ServerConfig(
                    command=str(server_data.get("command", DEFAULT_SERVER_COMMAND)),
                    args=list(server_data.get("args") or []),
                    shutdown_timeout=float(server_data.get("shutdown_timeout", 5.0)),
                ),
                logging=LoggingConfig(
                    level=str(logging_data.get("level", "INFO")),
                    file=logging_data.get("file", DEFAULT_LOG_FILE),
                ),
                project=ProjectConfig(
                    tsconfig=str(project_data.get("tsconfig", "tsconfig.json")),
                ),
            )
        except (TypeError, ValueError, AttributeError) as e:
            raise ConfigError(f"Invalid configuration value: {e}") from e


class ConfigManager:
    """
    Manages configuration loading.

    Hierarchy:
      1. Environment (TSUNAMI_TSSERVER, TSUNAMI_LOG_LEVEL, TSUNAMI_LOG_FILE, TSUNAMI_TSCONFIG)
      2. Project config (.tsunami/config.yaml)
      3. User config (~/.tsunami/config.yaml)
      4. Defaults
    """

    USER_CONFIG_DIR = Path.home() / ".tsunami"
    USER_CONFIG_FILE = USER_CONFIG_DIR / "config.yaml"
    PROJECT_CONFIG_DIR = ".tsunami"
    PROJECT_CONFIG_FILE = "config.yaml"

    def __init__(self, project_dir: Optional[Path] = None, user_config_path: Optional[Path] = None):
        self.project_dir = Path(project_dir) if project_dir else Path.cwd()
        self._user_config_path = Path(user_config_path) if user_config_path else self.USER_CONFIG_FILE
        self._config: Optional[Config] = None

    @property
    def project_config_path(self) -> Path:
        return self.project_dir / self.PROJECT_CONFIG_DIR / self.PROJECT_CONFIG_FILE

    @property
    def user_config_path(self) -> Path:
        return self._user_config_path

    def _read(self, path: Path) -> Dict[str, Any]:
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except OSError as e:
            raise ConfigError(f"Cannot read {path}: {e.strerror or e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Malformed YAML in {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"{path} must contain a mapping")
        return data

    def load(self) -> Config:
        """
        Load configuration from all sources.

        Raises:
            ConfigError: If a config file is malformed or a value is invalid
        """
        if self._config is not None:
            return self._config

        config_data: Dict[str, Any] = {}

        # Layer 1: User config
        if self.user_config_path.exists():
            config_data = self._merge(config_data, self._read(self.user_config_path))

        # Layer 2: Project config (higher priority)
        if self.project_config_path.exists():
            config_data = self._merge(config_data, self._read(self.project_config_path))

        # Layer 3: Environment overrides
        if os.environ.get("TSUNAMI_TSSERVER"):
            config_data.setdefault("server", {})["command"] = os.environ["TSUNAMI_TSSERVER"]
        if os.environ.get("TSUNAMI_LOG_LEVEL"):
            config_data.setdefault("logging", {})["level"] = os.environ["TSUNAMI_LOG_LEVEL"]
        if "TSUNAMI_LOG_FILE" in os.environ:
            config_data.setdefault("logging", {})["file"] = os.environ["TSUNAMI_LOG_FILE"]
        if os.environ.get("TSUNAMI_TSCONFIG"):
            config_data.setdefault("project", {})["tsconfig"] = os.environ["TSUNAMI_TSCONFIG"]

        config = Config.from_dict(config_data)
        error = config.validate()
        if error:
            raise ConfigError(error)

        self._config = config
        return self._config

    def resolve_log_file(self, config: Config) -> Optional[Path]:
        """Log file as an absolute path (relative paths hang off the project dir)."""
        if not config.logging.file:
            return None
        path = Path(config.logging.file).expanduser()
        return path if path.is_absolute() else self.project_dir / path

    def _merge(self, base: Dict, override: Dict) -> Dict:
        """Deep merge two dicts, override wins."""
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge(result[key], value)
            else:
                result[key] = value
        return result
