"""Pydantic models for the service configuration and config file loading."""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

from ai_service.core.utils import console

# --- Config File Loading ---

CONFIG_PATH = Path.home() / ".config" / "ai-service" / "config.toml"
CONFIG_PATH_2 = Path("ai-service-config.toml")


def _replace_dashed_keys_recursive(d: dict[str, Any]) -> dict[str, Any]:
    """Recursively replace dashed keys with underscores in a dictionary."""
    new_dict = {}
    for k, v in d.items():
        new_key = k.replace("-", "_")
        if isinstance(v, dict):
            new_dict[new_key] = _replace_dashed_keys_recursive(v)
        else:
            new_dict[new_key] = v
    return new_dict


def load_config(config_path_str: str | None = None) -> dict[str, Any]:
    """Load the TOML configuration file and process it for nested structures."""
    if config_path_str:
        config_path = Path(config_path_str)
    elif CONFIG_PATH.exists():
        config_path = CONFIG_PATH
    elif CONFIG_PATH_2.exists():
        config_path = CONFIG_PATH_2
    else:
        return {}

    if config_path.exists():
        try:
            with config_path.open("rb") as f:
                return _replace_dashed_keys_recursive(tomllib.load(f))
        except tomllib.TOMLDecodeError as e:
            console.print(
                f"[bold red]Error parsing config file {config_path}: {e}[/bold red]",
            )
            return {}

    # Report error only if an explicit path was given
    console.print(
        f"[bold red]Config file not found at {config_path_str}[/bold red]",
    )
    return {}


# --- Panel: LLM Configuration ---


class OpenAILLM(BaseModel):
    """Configuration for an OpenAI-compatible chat model."""

    llm_openai_model: str = "gpt-4o-mini"
    openai_base_url: str | None = None
    openai_api_key: str | None = None
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    json_response_format: bool = False


# --- Panel: Moderation Configuration ---


class OpenAIModeration(BaseModel):
    """Configuration for an OpenAI-compatible moderation endpoint."""

    moderation_openai_model: str = "omni-moderation-latest"
    openai_base_url: str = "https://api.openai.com/v1"
    openai_api_key: str | None = None
    timeout: float = 30.0


# --- Panel: Memory Options ---


class Memory(BaseModel):
    """Configuration for the in-process conversation window."""

    max_messages: int = Field(default=10, ge=1)


# --- Panel: Template Options ---


class Templates(BaseModel):
    """Where resource-backed templates are loaded from."""

    template_dir: Path | None = None

    @field_validator("template_dir", mode="before")
    @classmethod
    def _expand_user_path(cls, v: str | None) -> Path | None:
        if v:
            return Path(v).expanduser()
        return None


# --- Panel: General Options ---


class General(BaseModel):
    """General configuration parameters for logging and output."""

    log_level: str = "warning"
    quiet: bool = False
