"""Click CLI: loads config, builds providers and streams a debate to the console."""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Any

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from agora.events import DebateEvent, EventType, encode_sse
from agora.healthcheck import run_health_checks
from agora.models import AUTO_MODERATOR, DebateRequest, ModeratorStyle, ProviderId
from agora.orchestrator import DebateOrchestrator
from agora.output import console, print_event, print_stats, save_to_file
from agora.providers.base import AIProvider
from agora.providers.registry import build_all_providers
from agora.request import RequestError, parse_request
from config.config_loader import AppConfig, load_config

logger = logging.getLogger(__name__)


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False)],
    )


def _build_payload(
    question: str,
    config: AppConfig,
    rounds: int | None,
    models_arg: str | None,
    moderator_engine: str,
    moderator_style: str | None,
    language: str | None,
    no_moderator: bool,
) -> dict[str, Any]:
    """Translate CLI options into the same JSON body an HTTP client would send."""
    panel = [m.strip() for m in models_arg.split(",")] if models_arg else config.defaults.default_panel
    enabled: dict[str, bool] = {name: True for name in panel if name}
    enabled["moderator"] = not no_moderator
    payload: dict[str, Any] = {
        "prompt": question,
        "rounds": rounds if rounds is not None else config.defaults.rounds,
        "enabledAIs": enabled,
        "moderatorEngine": moderator_engine,
        "moderatorStyle": moderator_style or config.defaults.moderator_style,
    }
    if language:
        payload["language"] = language
    return payload


def _check_and_filter_providers(all_providers: dict[ProviderId, AIProvider]) -> dict[ProviderId, AIProvider]:
    """Run health checks, print results, and ask user what to do on failures.

    Returns the filtered dict of working providers. Exits if the user
    declines to continue or no providers pass.
    """
    console.print("\n[bold]Checking providers...[/bold]")
    results = asyncio.run(run_health_checks(all_providers))

    failed: list[ProviderId] = []
    for provider_id in sorted(results, key=lambda p: p.value):
        ok, err = results[provider_id]
        if ok:
            console.print(f"  [green]OK  [/green] {provider_id.label}")
        else:
            short_err = err.splitlines()[0][:120] if err else "unknown error"
            console.print(f"  [red]FAIL[/red] {provider_id.label}: {short_err}")
            failed.append(provider_id)

    if not failed:
        console.print()
        return all_providers

    working = {p: provider for p, provider in all_providers.items() if p not in failed}

    if not working:
        console.print("\n[bold red]Error:[/bold red] No providers passed the health check.")
        sys.exit(1)

    console.print(f"\n[yellow]{len(failed)} provider(s) failed:[/yellow] {', '.join(p.label for p in failed)}")
    console.print(f"Working providers: {', '.join(p.label for p in working)}")

    if not click.confirm("Continue with working providers only?", default=True):
        sys.exit(0)

    console.print()
    return working


async def _stream_sse(orchestrator: DebateOrchestrator, request: DebateRequest) -> None:
    async for frame in encode_sse(orchestrator.stream(request)):
        click.echo(frame, nl=False)


async def _run_single(
    orchestrator: DebateOrchestrator,
    request: DebateRequest,
    output_dir: Path | None,
) -> Path | None:
    """Run one debate with live console output. Returns the saved transcript path."""
    console.print(
        f"\n[bold cyan]AI Agora[/bold cyan]: {len(request.providers)} models, {request.rounds} round(s)"
    )
    console.print(f"Question: [italic]{request.prompt[:80]}{'...' if len(request.prompt) > 80 else ''}[/italic]\n")

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Starting debate...", total=None)

        def on_event(event: DebateEvent) -> None:
            if event.type is EventType.CHUNK:
                label = ProviderId(event.data["provider"]).label
                progress.update(task, description=f"Round {event.data['round']}: {label} is answering...")
            elif event.type is EventType.MODERATOR_CHUNK:
                progress.update(task, description="Moderator is summarizing...")
            else:
                print_event(event)

        result = await orchestrator.run(request, on_event=on_event)

    if output_dir is None:
        return None
    saved_path = save_to_file(result, output_dir)
    console.print(f"\n[dim]Saved to: {saved_path}[/dim]")
    return saved_path


@click.command()
@click.argument("question", required=False)
@click.option("--file", "question_file", type=click.Path(exists=True), help="Read question from a text file")
@click.option("--rounds", default=None, type=click.IntRange(1, 3), help="Number of debate rounds, 1-3 (default: from config)")
@click.option("--models", default=None, help="Comma-separated providers, e.g. gpt,claude,gemini,grok")
@click.option("--moderator", "moderator_engine", default=AUTO_MODERATOR, show_default=True,
              help="Moderator engine: auto or a provider name")
@click.option("--style", "moderator_style", default=None,
              type=click.Choice([s.value for s in ModeratorStyle]), help="Moderator style (default: from config)")
@click.option("--language", default=None, help="Response language (default: detected from the question)")
@click.option("--no-moderator", is_flag=True, help="Skip the moderator synthesis")
@click.option("--output", "output_path", default=None, help="Output directory (default: from config)")
@click.option("--no-save", is_flag=True, help="Do not write a markdown transcript")
@click.option("--sse", "as_sse", is_flag=True, help="Print raw server-sent events instead of formatted output")
@click.option("--stats", "show_stats", is_flag=True, help="Print session counters at the end")
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
@click.option("--skip-health-check", is_flag=True, default=False,
              help="Skip the API connectivity check at startup")
def main(
    question: str | None,
    question_file: str | None,
    rounds: int | None,
    models: str | None,
    moderator_engine: str,
    moderator_style: str | None,
    language: str | None,
    no_moderator: bool,
    output_path: str | None,
    no_save: bool,
    as_sse: bool,
    show_stats: bool,
    verbose: bool,
    skip_health_check: bool,
) -> None:
    """AI Agora -- ask several AI models at once and get a moderated answer.

    \b
    Examples:
      agora "What is AI?"
      agora "Is coffee bad for you?" --rounds 2 --models gpt,claude
      agora "REST or GraphQL?" --rounds 3 --moderator claude --style analytical
      agora --file question.txt --sse
    """
    load_dotenv()
    _setup_logging(verbose)

    try:
        config = load_config()
    except FileNotFoundError as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(1)

    if question_file:
        question_text = Path(question_file).read_text(encoding="utf-8").strip()
    elif question:
        question_text = question
    else:
        console.print("[bold red]Error:[/bold red] Provide a QUESTION argument or --file.")
        sys.exit(1)

    all_providers = build_all_providers(config)
    if not all_providers:
        console.print("[bold red]Error:[/bold red] No providers available. Check API keys in .env.")
        sys.exit(1)

    if not skip_health_check and not as_sse:
        all_providers = _check_and_filter_providers(all_providers)

    payload = _build_payload(
        question_text, config, rounds, models, moderator_engine, moderator_style, language, no_moderator
    )
    try:
        request = parse_request(payload, config.defaults)
    except RequestError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        sys.exit(1)

    orchestrator = DebateOrchestrator(all_providers, config.prompts, config.defaults)

    if as_sse:
        asyncio.run(_stream_sse(orchestrator, request))
        return

    output_dir = None if no_save else (Path(output_path) if output_path else config.defaults.output_dir)
    try:
        asyncio.run(_run_single(orchestrator, request, output_dir))
    except RequestError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        sys.exit(1)

    if show_stats:
        print_stats(orchestrator.metrics.snapshot())


if __name__ == "__main__":
    main()
