"""CLI entrypoint for llm-relay."""

import logging

import rich_click as click

from llm_relay import __version__
from llm_relay.config import Settings, validate_log_level
from llm_relay.controllers import (
    RelayCliController,
    RelayCompleteCommand,
    RelayExecCommand,
    RelayHealthCommand,
    RelayModelsCommand,
    RelayResult,
)

click.rich_click.USE_MARKDOWN = True
RELAY_CONTROLLER = RelayCliController()

_PROVIDER_HELP = "Provider name. Defaults to LLM_RELAY_DEFAULT_PROVIDER."
_ROLE_CHOICE = click.Choice(["user", "assistant", "system"], case_sensitive=False)


@click.group()
@click.version_option(version=__version__, prog_name="llm-relay")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Log level for diagnostics on stderr. Defaults to LLM_RELAY_LOG_LEVEL or WARNING.",
)
def llm_relay(log_level: str | None) -> None:
    """Forward LLM requests to external command-line tools."""

    try:
        level = log_level.upper() if log_level else Settings.from_env().log_level
        validate_log_level(level)
    except ValueError as error:
        raise click.ClickException(f"Configuration error: {error}") from error
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@llm_relay.command("providers")
def providers() -> None:
    """List configured providers and whether their command is on PATH."""

    _finish(RELAY_CONTROLLER.providers(), failure="Provider listing failed.")


@llm_relay.command("complete")
@click.option("--provider", default=None, help=_PROVIDER_HELP)
@click.option("--model", default=None, help="Model id reported in the response.")
@click.option("--system", default=None, help="Optional system message sent before the prompt.")
@click.option("--role", type=_ROLE_CHOICE, default="user", show_default=True, help="Prompt role.")
@click.argument("prompt")
def complete(
    provider: str | None,
    model: str | None,
    system: str | None,
    role: str,
    prompt: str,
) -> None:
    """Send one prompt to a provider and print the response."""

    _finish(
        RELAY_CONTROLLER.complete(
            RelayCompleteCommand(
                prompt=prompt,
                provider=provider,
                model=model,
                system=system,
                role=role.lower(),
            ),
        ),
        failure="Completion failed.",
    )


@llm_relay.command("stream")
@click.option("--provider", default=None, help=_PROVIDER_HELP)
@click.option("--model", default=None, help="Model id reported in the response.")
@click.option("--system", default=None, help="Optional system message sent before the prompt.")
@click.option("--role", type=_ROLE_CHOICE, default="user", show_default=True, help="Prompt role.")
@click.argument("prompt")
def stream(
    provider: str | None,
    model: str | None,
    system: str | None,
    role: str,
    prompt: str,
) -> None:
    """Send one prompt and print stream events.

    External CLI providers are **pseudo-streaming**: the full output arrives
    as one content event after the tool exits, followed by a done event.
    """

    _finish(
        RELAY_CONTROLLER.stream(
            RelayCompleteCommand(
                prompt=prompt,
                provider=provider,
                model=model,
                system=system,
                role=role.lower(),
            ),
        ),
        failure="Streaming completion failed.",
    )


@llm_relay.command("models")
@click.option("--provider", default=None, help=_PROVIDER_HELP)
def models(provider: str | None) -> None:
    """List models and limits for a provider."""

    _finish(
        RELAY_CONTROLLER.models(RelayModelsCommand(provider=provider)),
        failure="Model listing failed.",
    )


@llm_relay.command("health")
@click.option(
    "--provider",
    "providers_",
    multiple=True,
    help="Provider to check. Repeat to check several; defaults to all configured.",
)
def health(providers_: tuple[str, ...]) -> None:
    """Initialize providers with a `--version` probe and report health."""

    _finish(
        RELAY_CONTROLLER.health(RelayHealthCommand(providers=providers_)),
        failure="Health check failed.",
    )


@llm_relay.command("exec", context_settings={"ignore_unknown_options": True})
@click.option(
    "--retries",
    type=click.IntRange(min=0, max=10),
    default=0,
    show_default=True,
    help="Retries for network or filesystem spawn errors.",
)
@click.option(
    "--backoff-seconds",
    type=click.FloatRange(min=0),
    default=0.5,
    show_default=True,
    help="Fixed delay between spawn retries.",
)
@click.argument("command")
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
def exec_command(retries: int, backoff_seconds: float, command: str, args: tuple[str, ...]) -> None:
    """Run COMMAND with the resilient executor and print the captured result."""

    _finish(
        RELAY_CONTROLLER.execute(
            RelayExecCommand(
                command=command,
                args=args,
                retries=retries,
                backoff_seconds=backoff_seconds,
            ),
        ),
        failure="Command failed.",
    )


def _finish(result: RelayResult, *, failure: str) -> None:
    for line in result.lines:
        click.echo(line)
    if not result.success:
        raise click.ClickException(failure)


if __name__ == "__main__":  # pragma: no cover
    llm_relay()
