"""
Configuration management for seedsoil stores.

The configuration is stored as a TOML file in the store directory. It names
the LLM provider used for distillation and, optionally, the remote used for
sync. Secrets are read from the environment unless given explicitly.
"""

import os
import tomllib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import tomli_w


CONFIG_FILENAME = "seedsoil.toml"
CONFIG_VERSION = 1
DATABASE_FILENAME = "seedsoil.db"
DEFAULT_STORE_DIRNAME = ".seedsoil"


@dataclass
class ProviderConfig:
    """Configuration for a single provider."""
    name: str
    params: dict[str, Any] = field(default_factory=dict)


@dataclass
class SyncSettings:
    """Resolved sync settings (config merged with environment)."""
    gist_id: str
    token: Optional[str]
    filename: str = "seed_soil_data.json"
    api_url: str = "https://api.github.com"
    background: bool = True


@dataclass
class StoreConfig:
    """Complete store configuration."""
    path: Path
    version: int = CONFIG_VERSION
    created: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    distill: ProviderConfig = field(default_factory=lambda: ProviderConfig("openrouter"))
    sync: Optional[ProviderConfig] = None

    @property
    def config_path(self) -> Path:
        """Path to the TOML config file."""
        return self.path / CONFIG_FILENAME

    @property
    def database_path(self) -> Path:
        return self.path / DATABASE_FILENAME


def get_default_store_path() -> Path:
    """Store directory: SEEDSOIL_STORE_PATH, else ~/.seedsoil."""
    env = os.environ.get("SEEDSOIL_STORE_PATH")
    if env:
        return Path(env).expanduser()
    return Path.home() / DEFAULT_STORE_DIRNAME


def detect_default_provider() -> ProviderConfig:
    """
    Pick a distillation provider from the API keys present.

    Priority: OpenRouter (SEEDSOIL_API_KEY or OPENROUTER_API_KEY), OpenAI,
    Anthropic. With no key at all OpenRouter is still chosen; creating it
    fails and the pulse reports that no provider is available.
    """
    if os.environ.get("SEEDSOIL_API_KEY") or os.environ.get("OPENROUTER_API_KEY"):
        return ProviderConfig("openrouter")
    if os.environ.get("OPENAI_API_KEY"):
        return ProviderConfig("openai")
    if os.environ.get("ANTHROPIC_API_KEY"):
        return ProviderConfig("anthropic")
    return ProviderConfig("openrouter")


def create_default_config(store_path: Path) -> StoreConfig:
    """Create a new config with auto-detected defaults."""
    return StoreConfig(path=store_path, distill=detect_default_provider())


def _parse_provider(section: dict) -> ProviderConfig:
    return ProviderConfig(
        name=section.get("name", ""),
        params={k: v for k, v in section.items() if k != "name"},
    )


def _provider_to_dict(p: ProviderConfig) -> dict:
    d = {"name": p.name}
    d.update(p.params)
    return d


def load_config(store_path: Path) -> StoreConfig:
    """
    Load configuration from a store directory.

    Raises:
        FileNotFoundError: If config doesn't exist
        ValueError: If config is invalid
    """
    config_path = store_path / CONFIG_FILENAME

    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid config {config_path}: {e}") from e

    version = data.get("store", {}).get("version", 1)
    if version > CONFIG_VERSION:
        raise ValueError(f"Config version {version} is newer than supported ({CONFIG_VERSION})")

    distill = _parse_provider(data.get("distill", {"name": "openrouter"}))
    if not distill.name:
        raise ValueError(f"[distill] section in {config_path} has no provider name")

    return StoreConfig(
        path=store_path,
        version=version,
        created=data.get("store", {}).get("created", ""),
        distill=distill,
        sync=_parse_provider(data["sync"]) if "sync" in data else None,
    )


def save_config(config: StoreConfig) -> None:
    """
    Save configuration to the store directory.

    Creates the directory if it doesn't exist.
    """
    config.path.mkdir(parents=True, exist_ok=True)

    data: dict[str, Any] = {
        "store": {
            "version": config.version,
            "created": config.created,
        },
        "distill": _provider_to_dict(config.distill),
    }
    if config.sync is not None:
        data["sync"] = _provider_to_dict(config.sync)

    with open(config.config_path, "wb") as f:
        tomli_w.dump(data, f)


def load_or_create_config(store_path: Path) -> StoreConfig:
    """
    Load existing config or create a new one with defaults.

    This is the main entry point for config management.
    """
    if (store_path / CONFIG_FILENAME).exists():
        return load_config(store_path)
    config = create_default_config(store_path)
    save_config(config)
    return config


def resolve_sync_settings(config: StoreConfig) -> Optional[SyncSettings]:
    """
    Sync settings, or None when sync is not configured.

    SEEDSOIL_GIST_ID enables sync without a [sync] section; the token comes
    from the section, SEEDSOIL_GIST_TOKEN, or GITHUB_TOKEN.
    """
    params = dict(config.sync.params) if config.sync else {}
    gist_id = params.get("gist_id") or os.environ.get("SEEDSOIL_GIST_ID")
    if not gist_id:
        return None
    token = (
        params.get("token") or
        os.environ.get("SEEDSOIL_GIST_TOKEN") or
        os.environ.get("GITHUB_TOKEN")
    )
    settings = SyncSettings(gist_id=str(gist_id), token=token)
    if "filename" in params:
        settings.filename = str(params["filename"])
    if "api_url" in params:
        settings.api_url = str(params["api_url"])
    if "background" in params:
        settings.background = bool(params["background"])
    return settings
