"""Rich console rendering of debate events and markdown file save for results."""

import logging
import re
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from agora.events import DebateEvent, EventType
from agora.models import DebateResult, ProviderId

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)


def _slug(text: str, max_len: int = 40) -> str:
    """Convert text to a filename-safe slug."""
    slug = re.sub(r"[^\w\s-]", "", text.lower())
    slug = re.sub(r"[\s_-]+", "-", slug).strip("-")
    return slug[:max_len]


def _label(provider_value: str) -> str:
    try:
        return ProviderId(provider_value).label
    except ValueError:
        return provider_value


def print_event(event: DebateEvent) -> None:
    """Print one debate event. Fragments are skipped; full messages are shown."""
    data = event.data
    match event.type:
        case EventType.META:
            console.print(
                Text(
                    f"Panel: {', '.join(_label(p) for p in data['providers'])} | "
                    f"Rounds: {data['rounds']} | Language: {data['language']} | "
                    f"Moderator: {data['moderator_engine']} ({data['moderator_style']})"
                    + (" | sensitive topic" if data.get("serious") else ""),
                    style="dim",
                )
            )
        case EventType.ROUND_START:
            console.print(Rule(f"[bold cyan]Round {data['round']}[/bold cyan]"))
        case EventType.MESSAGE:
            console.print(
                Panel(
                    Markdown(data["text"]),
                    title=f"[bold]{_label(data['provider'])}[/bold]",
                    border_style="dim",
                )
            )
        case EventType.PROVIDER_ERROR:
            console.print(f"[red]FAIL[/red] {_label(data['provider'])}: {data['message']}")
        case EventType.MODERATOR_MESSAGE:
            console.print(Rule(f"[bold green]Moderator ({_label(data['engine'])})[/bold green]"))
            console.print(Markdown(data["text"]))
        case EventType.ERROR:
            console.print(f"[bold red]Error ({data.get('phase', 'request')}):[/bold red] {data['message']}")
        case EventType.DONE:
            console.print(Text(f"Finished in {data.get('duration_sec', 0):.1f}s", style="dim"))
        case _:
            pass


def print_stats(snapshot: dict) -> None:
    """Print the process metrics as a two-column table."""
    table = Table(title="Session stats", show_header=False, box=None)
    for key, value in snapshot.items():
        table.add_row(key, str(value))
    console.print(table)


def save_to_file(result: DebateResult, output_dir: Path, slug_override: str | None = None) -> Path:
    """Save the full debate transcript as a markdown file.

    Args:
        result: The completed DebateResult.
        output_dir: Directory to save the file in.
        slug_override: If provided, use this as the filename stem instead of
            deriving one from the question text.

    Returns:
        Path to the saved file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    slug = slug_override if slug_override is not None else _slug(result.request.prompt)
    filepath = output_dir / f"{timestamp}_{slug}.md"

    moderator = result.moderator
    if moderator is None:
        moderator_label = "disabled"
    elif moderator.engine is not None:
        moderator_label = f"{moderator.engine.label} ({result.request.moderator_style.value})"
    else:
        moderator_label = "unavailable"

    lines: list[str] = [
        f"# AI Agora: {result.request.prompt[:80]}",
        "",
        f"**Date:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        f"**Panel:** {', '.join(p.label for p in result.request.providers)}",
        f"**Moderator:** {moderator_label}",
        f"**Rounds:** {len(result.rounds)}",
        f"**Language:** {result.language}",
        f"**Duration:** {result.total_duration_sec:.1f}s",
        "",
        "---",
        "",
    ]

    for rnd in result.rounds:
        lines.append(f"## Round {rnd.number}")
        lines.append("")
        for entry in rnd.entries():
            suffix = " (unavailable)" if entry.failed else ""
            lines.append(f"### {entry.provider.label}{suffix}")
            lines.append("")
            lines.append(entry.text)
            lines.append("")

    if moderator is not None:
        lines += ["## Moderator", ""]
        lines.append(moderator.text if moderator.ok else f"*{moderator.error}*")
        lines.append("")

    filepath.write_text("\n".join(lines), encoding="utf-8")
    logger.info("Debate saved to: %s", filepath)
    return filepath
