"""Configuration loader for Nightcap.

Loads config from a YAML cascade: built-in defaults, then the project's
nightcap.yaml (found in the working directory or one of its ancestors),
then an optional environment-specific overlay, then environment variables.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from nightcap.core.exceptions import ConfigError
from nightcap.core.models import TaskParamDefinition

logger = logging.getLogger("nightcap.config")

CONFIG_FILE_NAMES = ("nightcap.yaml", "nightcap.yml")

NETWORK_ENV_VAR = "NIGHTCAP_NETWORK"

# Proof servers handle private transaction inputs and always run locally.
DEFAULT_PROOF_SERVER_URL = "http://localhost:6300"


# ---------------------------------------------------------------------------
# Config schema
# ---------------------------------------------------------------------------

class NetworkConfig(BaseModel):
    name: str
    indexer_url: Optional[str] = None
    proof_server_url: Optional[str] = None
    node_url: Optional[str] = None
    is_local: bool = False


def _default_networks() -> dict[str, NetworkConfig]:
    return {
        "localnet": NetworkConfig(
            name="localnet",
            indexer_url="http://localhost:8088/api/v1/graphql",
            proof_server_url=DEFAULT_PROOF_SERVER_URL,
            node_url="http://localhost:9944",
            is_local=True,
        ),
        "devnet": NetworkConfig(
            name="devnet",
            indexer_url="https://indexer.devnet.midnight.network/api/v1/graphql",
            proof_server_url=DEFAULT_PROOF_SERVER_URL,
            node_url="https://rpc.devnet.midnight.network",
        ),
        "preview": NetworkConfig(
            name="preview",
            indexer_url="https://indexer.preview.midnight.network/api/v1/graphql",
            proof_server_url=DEFAULT_PROOF_SERVER_URL,
            node_url="https://rpc.preview.midnight.network",
        ),
        "preprod": NetworkConfig(
            name="preprod",
            indexer_url="https://indexer.preprod.midnight.network/api/v1/graphql",
            proof_server_url=DEFAULT_PROOF_SERVER_URL,
            node_url="https://rpc.preprod.midnight.network",
        ),
        "mainnet": NetworkConfig(
            name="mainnet",
            indexer_url="https://indexer.midnight.network/api/v1/graphql",
            proof_server_url=DEFAULT_PROOF_SERVER_URL,
            node_url="https://rpc.midnight.network",
        ),
    }


DEFAULT_NETWORKS = _default_networks()


class PathsConfig(BaseModel):
    artifacts: str = "artifacts"
    sources: str = "contracts"
    deploy: str = "deploy"


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class RunnerConfig(BaseModel):
    max_suggestions: int = Field(default=5, ge=0)
    suggestion_distance: int = Field(default=2, ge=0)


class TaskConfig(BaseModel):
    """A task tweak supplied by configuration.

    ``action`` is an import string such as ``"mypkg.tasks:deploy"``.
    """

    model_config = ConfigDict(extra="forbid")

    description: Optional[str] = None
    dependencies: Optional[list[str]] = None
    params: Optional[dict[str, TaskParamDefinition]] = None
    action: Optional[str] = None


class NightcapConfig(BaseModel):
    """Project configuration.

    ``plugins`` lists import strings of Plugin objects, such as
    ``"mypkg.plugin:plugin"``. Their tasks register after the built-ins and
    before ``tasks``.
    """

    default_network: str = "localnet"
    networks: dict[str, NetworkConfig] = Field(default_factory=_default_networks)
    plugins: list[str] = Field(default_factory=list)
    tasks: dict[str, TaskConfig] = Field(default_factory=dict)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    runner: RunnerConfig = Field(default_factory=RunnerConfig)

    @model_validator(mode="before")
    @classmethod
    def _fill_network_names(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        networks = data.get("networks")
        if isinstance(networks, dict):
            data = dict(data)
            data["networks"] = {
                key: ({"name": key, **value} if isinstance(value, dict) else value)
                for key, value in networks.items()
            }
        return data

    def get_network(self, name: Optional[str] = None) -> NetworkConfig:
        network_name = name or self.default_network
        if network_name not in self.networks:
            available = ", ".join(self.networks) or "none"
            raise ConfigError(
                f"Unknown network: {network_name}. Available networks: {available}"
            )
        return self.networks[network_name]


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base, returning a new dict."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping at the top level")
    return data


def find_config_file(start_dir: Optional[Path] = None) -> Optional[Path]:
    """Search start_dir and its ancestors for a nightcap config file."""
    current = (start_dir or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        for file_name in CONFIG_FILE_NAMES:
            candidate = directory / file_name
            if candidate.is_file():
                return candidate
    return None


def load_config(
    config_path: Optional[Path] = None,
    env: Optional[str] = None,
    start_dir: Optional[Path] = None,
) -> NightcapConfig:
    """Load Nightcap config from the YAML cascade.

    Order: defaults -> nightcap.yaml -> nightcap.{env}.yaml -> env vars
    (NIGHTCAP_NETWORK).

    Args:
        config_path: Explicit config file. Must exist when given.
        env: Optional overlay name; ``nightcap.{env}.yaml`` next to the base
            file is merged over it when present.
        start_dir: Directory to start the ancestor search from when no
            explicit path is given. Defaults to the working directory.
    """
    if config_path is not None:
        config_path = Path(config_path)
        if not config_path.is_file():
            raise ConfigError(f"Config file not found: {config_path}")
    else:
        config_path = find_config_file(start_dir)

    defaults = {
        "networks": {name: net.model_dump() for name, net in DEFAULT_NETWORKS.items()},
    }
    merged: dict[str, Any] = defaults

    if config_path is not None:
        logger.debug("Loading config from %s", config_path)
        merged = _deep_merge(merged, _load_yaml(config_path))

        if env:
            overlay_path = config_path.with_name(f"nightcap.{env}{config_path.suffix}")
            merged = _deep_merge(merged, _load_yaml(overlay_path))
    else:
        logger.debug("No config file found, using defaults")

    network = os.getenv(NETWORK_ENV_VAR)
    if network:
        merged["default_network"] = network

    try:
        return NightcapConfig(**merged)
    except ValidationError as exc:
        source = config_path or "defaults"
        raise ConfigError(f"Invalid configuration in {source}: {exc}") from exc
