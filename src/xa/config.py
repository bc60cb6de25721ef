"""Configuration for xa."""

import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Optional

from .documents import read_document, write_document

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-4o-mini"


def get_config_dir() -> Path:
    """Get config directory following XDG spec."""
    # Check environment variable first
    env_dir = os.environ.get("XA_CONFIG_DIR")
    if env_dir:
        return Path(env_dir).expanduser()

    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        base = Path(xdg_config)
    else:
        base = Path.home() / ".config"
    return base / "xa"


def get_config_file() -> Path:
    return get_config_dir() / "config.yaml"


def get_prompts_file() -> Path:
    return get_config_dir() / "prompts.yaml"


def get_store_file() -> Path:
    return get_config_dir() / "stores.yaml"


@dataclass
class Config:
    """API settings, loaded once per invocation."""

    base_url: str = DEFAULT_BASE_URL
    api_key: str = ""
    default_model: Optional[str] = DEFAULT_MODEL

    @property
    def model(self) -> str:
        return self.default_model or DEFAULT_MODEL

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data) -> "Config":
        if not isinstance(data, dict):
            raise TypeError("config document must be a mapping")

        config = cls()
        for key in ("base_url", "api_key"):
            if key in data:
                if not isinstance(data[key], str):
                    raise ValueError(f"{key} must be a string")
                setattr(config, key, data[key])

        if "default_model" in data:
            model = data["default_model"]
            if model is not None and not isinstance(model, str):
                raise ValueError("default_model must be a string")
            config.default_model = model or None
        return config


def load_config(config_file: Path = None) -> Config:
    """Load config, falling back to defaults when the file is missing."""
    config_file = config_file or get_config_file()
    config = read_document(config_file, Config.from_dict, lambda: Config().to_dict())
    return config if config is not None else Config()


def save_config(config: Config, config_file: Path = None) -> Path:
    """Write config and return the file it was written to."""
    config_file = config_file or get_config_file()
    write_document(config_file, config.to_dict())
    return config_file

