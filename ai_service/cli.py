"""Command-line tools for trying typed prompts against a model.

Usage:
    ai-service instructions --returns "list[enum[SALT, PEPPER, OIL]]"
    ai-service parse "2024-07-04" --returns date
    ai-service ask "How many eggs are in: I have ten eggs and three more?" --returns int

Environment variables:
    OPENAI_API_KEY: API key for the chat and moderation endpoints.
    OPENAI_BASE_URL: Base URL of an OpenAI-compatible endpoint (e.g. Ollama).

"""

from __future__ import annotations

import asyncio
import time
from pathlib import Path  # noqa: TC003
from typing import Any

import typer
from rich.pretty import pretty_repr

from ai_service import config
from ai_service.core.utils import console, print_error_message, print_output_panel, setup_logging
from ai_service.dispatcher import MethodSpec, Param
from ai_service.errors import AIServiceError, ConfigurationError, ParseError
from ai_service.instructions import format_instruction
from ai_service.models import Result
from ai_service.parsing import parse_response
from ai_service.service import create_service
from ai_service.services.factory import (
    get_chat_model,
    get_moderation_model,
    get_resource_loader,
)
from ai_service.templates import TemplateSpec
from ai_service.type_expr import parse_type_expression
from ai_service.types import ResultOf, TypeDescriptor

app = typer.Typer(
    name="ai-service",
    help="Typed prompts for language models: format instructions, parsing and one-off calls.",
    add_completion=True,
)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
) -> None:
    """Typed prompts for language models."""
    if ctx.invoked_subcommand is None:
        console.print("[bold red]No command specified.[/bold red]")
        console.print("[bold yellow]Running --help for your convenience.[/bold yellow]")
        console.print(ctx.get_help())
        raise typer.Exit
    import dotenv  # noqa: PLC0415

    dotenv.load_dotenv()


def set_config_defaults(ctx: typer.Context, config_file: str | None) -> str | None:
    """Set the default values for the CLI based on the config file."""
    cfg = config.load_config(config_file)
    wildcard_config = cfg.get("defaults", {})
    subcommand = ctx.command.name

    if not subcommand:
        ctx.default_map = wildcard_config
        return config_file

    command_config = cfg.get(subcommand, {})
    ctx.default_map = {**wildcard_config, **command_config}
    return config_file


# --- Shared options ---

RETURNS = typer.Option(
    "str",
    "--returns",
    "-r",
    help="Return type expression, e.g. int, date, list[str], enum[A, B], map[str, int], result[int].",
)
CONFIG_FILE = typer.Option(
    None,
    "--config-file",
    help="Path to a custom config file.",
    callback=set_config_defaults,
    is_eager=True,
)
LOG_LEVEL = typer.Option(
    "warning",
    "--log-level",
    help="Set the log level (e.g., debug, info, warning).",
)
QUIET = typer.Option(
    False,  # noqa: FBT003
    "--quiet",
    "-q",
    help="Print only the bare result.",
)


def _parse_returns(expression: str) -> TypeDescriptor | ResultOf:
    try:
        return parse_type_expression(expression)
    except (ValueError, ConfigurationError) as e:
        raise typer.BadParameter(str(e), param_hint="--returns") from e


def _display(value: Any) -> str:
    if isinstance(value, Result):
        value = value.content
    if isinstance(value, str):
        return value
    return pretty_repr(value)


@app.command("instructions")
def instructions(
    returns: str = RETURNS,
) -> None:
    """Print the format instruction appended to the user message for a return type."""
    instruction = format_instruction(_parse_returns(returns))
    if instruction is None:
        console.print("[dim]No format instruction (free-form answer).[/dim]")
        return
    console.print(instruction, markup=False, highlight=False, soft_wrap=True)


@app.command("parse")
def parse(
    text: str = typer.Argument(..., help="Model answer to parse."),
    returns: str = RETURNS,
) -> None:
    """Parse a model answer offline, as a service method would."""
    descriptor = _parse_returns(returns)
    try:
        value = parse_response(text, descriptor)
    except ParseError as e:
        print_error_message(str(e))
        raise typer.Exit(1) from e
    console.print(pretty_repr(value), markup=False, highlight=False, soft_wrap=True)


@app.command("ask")
def ask(  # noqa: PLR0913
    prompt: str = typer.Argument(..., help="User message, or the value of {{it}} with --template."),
    returns: str = RETURNS,
    system: str | None = typer.Option(
        None,
        "--system",
        "-s",
        help="System message template.",
    ),
    template: str | None = typer.Option(
        None,
        "--template",
        "-t",
        help="User message template; the prompt is bound to {{it}}.",
    ),
    template_resource: str | None = typer.Option(
        None,
        "--template-resource",
        help="Load the user message template from a file below --template-dir.",
    ),
    template_dir: Path | None = typer.Option(
        None,
        "--template-dir",
        help="Directory holding template resources.",
    ),
    moderate: bool = typer.Option(
        False,  # noqa: FBT003
        "--moderate",
        help="Check the outbound message with the moderation endpoint first.",
    ),
    llm_openai_model: str = typer.Option(
        "gpt-4o-mini",
        "--llm-openai-model",
        "-m",
        help="Name of the chat model.",
    ),
    moderation_openai_model: str = typer.Option(
        "omni-moderation-latest",
        "--moderation-openai-model",
        help="Name of the moderation model.",
    ),
    openai_base_url: str | None = typer.Option(
        None,
        "--openai-base-url",
        envvar="OPENAI_BASE_URL",
        help="Base URL of an OpenAI-compatible API.",
    ),
    openai_api_key: str | None = typer.Option(
        None,
        "--openai-api-key",
        envvar="OPENAI_API_KEY",
        help="OpenAI API key.",
    ),
    temperature: float | None = typer.Option(
        None,
        "--temperature",
        help="Sampling temperature.",
    ),
    json_response_format: bool = typer.Option(
        False,  # noqa: FBT003
        "--json-response-format",
        help="Ask the endpoint for JSON object answers when a map or record is returned.",
    ),
    log_level: str = LOG_LEVEL,
    quiet: bool = QUIET,
    config_file: str | None = CONFIG_FILE,  # noqa: ARG001
) -> None:
    """Ask the model and print the typed answer."""
    general_cfg = config.General(log_level=log_level, quiet=quiet)
    setup_logging(general_cfg.log_level, quiet=general_cfg.quiet)
    descriptor = _parse_returns(returns)
    if template and template_resource:
        msg = "Use either --template or --template-resource"
        raise typer.BadParameter(msg)

    user_template: TemplateSpec | str | None = template
    if template_resource:
        user_template = TemplateSpec.from_resource(template_resource)
    spec = MethodSpec(
        "ask",
        returns=descriptor,
        user_message=user_template,
        system_message=system,
        params=(Param("prompt", user_message=user_template is None),),
        moderate=moderate,
    )
    llm_cfg = config.OpenAILLM(
        llm_openai_model=llm_openai_model,
        openai_base_url=openai_base_url,
        openai_api_key=openai_api_key,
        temperature=temperature,
        json_response_format=json_response_format,
    )
    moderation_cfg = config.OpenAIModeration(
        moderation_openai_model=moderation_openai_model,
        openai_base_url=openai_base_url or "https://api.openai.com/v1",
        openai_api_key=openai_api_key,
    )

    start_time = time.monotonic()
    try:
        service = create_service(
            get_chat_model(llm_cfg),
            [spec],
            moderation_model=get_moderation_model(moderation_cfg) if moderate else None,
            resource_loader=get_resource_loader(config.Templates(template_dir=template_dir)),
        )
        value = asyncio.run(service["ask"].invoke(prompt))
    except AIServiceError as e:
        print_error_message(str(e))
        raise typer.Exit(1) from e
    except Exception as e:
        print_error_message(
            f"An unexpected LLM error occurred: {e}",
            "Please check your OpenAI API key and base URL.",
        )
        raise typer.Exit(1) from e
    elapsed = time.monotonic() - start_time

    if quiet:
        print(_display(value))
        return
    subtitle = f"[dim]took {elapsed:.2f}s[/dim]"
    if isinstance(value, Result) and value.token_usage is not None:
        subtitle = f"[dim]{value.token_usage.total_tokens} tokens, took {elapsed:.2f}s[/dim]"
    print_output_panel(_display(value), title="✨ Result", subtitle=subtitle)
