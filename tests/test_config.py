"""Test the config loading."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING
from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError
from typer import Context
from typer.core import TyperCommand

from ai_service import config
from ai_service.cli import set_config_defaults
from ai_service.services.factory import get_resource_loader

if TYPE_CHECKING:
    from ai_service.templates import ChainedResourceLoader


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """Provides a config file with dashed keys."""
    config_content = """
[defaults]
log-level = "INFO"
llm-openai-model = "default-openai-model"
openai-api-key = "default-key"

[ask]
quiet = true
llm-openai-model = "ask-openai-model"
template-dir = "~/prompts"
"""
    config_path = tmp_path / "config.toml"
    config_path.write_text(config_content)
    return config_path


def test_config_loader_key_replacement(config_file: Path) -> None:
    """Test that dashed keys are replaced with underscores."""
    cfg = config.load_config(str(config_file))
    assert cfg["defaults"]["log_level"] == "INFO"
    assert cfg["ask"]["llm_openai_model"] == "ask-openai-model"
    assert cfg["ask"]["template_dir"] == "~/prompts"


def test_load_config_missing_file(tmp_path: Path) -> None:
    """An explicit path that does not exist yields an empty config."""
    assert config.load_config(str(tmp_path / "nope.toml")) == {}


def test_load_config_invalid_toml(tmp_path: Path) -> None:
    """A broken file is reported and ignored."""
    path = tmp_path / "broken.toml"
    path.write_text("[defaults\nlog-level = ")
    assert config.load_config(str(path)) == {}


def test_load_config_default_locations(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Without a path the user config, then the local file, is used."""
    monkeypatch.setattr(config, "CONFIG_PATH", tmp_path / "missing.toml")
    local = tmp_path / "ai-service-config.toml"
    local.write_text('[defaults]\nlog-level = "debug"\n')
    monkeypatch.setattr(config, "CONFIG_PATH_2", local)
    assert config.load_config() == {"defaults": {"log_level": "debug"}}

    monkeypatch.setattr(config, "CONFIG_PATH_2", tmp_path / "also-missing.toml")
    assert config.load_config() == {}


def test_set_config_defaults(config_file: Path) -> None:
    """Command sections override the [defaults] section."""
    mock_main_command = MagicMock()
    mock_main_command.name = None
    ctx = Context(command=mock_main_command)

    set_config_defaults(ctx, str(config_file))
    assert ctx.default_map == {
        "log_level": "INFO",
        "llm_openai_model": "default-openai-model",
        "openai_api_key": "default-key",
    }

    ctx = Context(command=TyperCommand(name="ask"))
    assert set_config_defaults(ctx, str(config_file)) == str(config_file)
    assert ctx.default_map == {
        "log_level": "INFO",
        "llm_openai_model": "ask-openai-model",
        "openai_api_key": "default-key",
        "quiet": True,
        "template_dir": "~/prompts",
    }


def test_templates_expand_user() -> None:
    """Template directories may start with ~."""
    templates = config.Templates(template_dir="~/prompts")
    assert templates.template_dir == Path("~/prompts").expanduser()
    assert config.Templates(template_dir=None).template_dir is None


def test_resource_loader_from_config(tmp_path: Path) -> None:
    """The configured directory is searched before the working directory."""
    (tmp_path / "prompt.txt").write_text("From config")
    loader: ChainedResourceLoader = get_resource_loader(config.Templates(template_dir=tmp_path))
    assert len(loader.loaders) == 2
    assert loader.load("prompt.txt") == "From config"


def test_config_validation() -> None:
    """Out-of-range values are rejected."""
    with pytest.raises(ValidationError):
        config.OpenAILLM(temperature=3.0)
    with pytest.raises(ValidationError):
        config.Memory(max_messages=0)
