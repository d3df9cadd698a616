"""Typer CLI for inspecting and exercising the enhancement pipeline."""

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import LLMConfig, load_llm_config, redacted_config
from .logging_config import setup_logging
from .safety import DEFAULT_SAFETY_THRESHOLD, count_operations, find_regressions

app = typer.Typer(
    name="codegen-enhancer",
    help="LLM enhancement of recorded Playwright scripts",
    add_completion=False,
)
console = Console()


def _load(config_path: Optional[Path]) -> LLMConfig:
    if config_path is not None and not config_path.exists():
        console.print(f"[red]Error:[/red] Config file not found: {config_path}")
        raise typer.Exit(1)
    return load_llm_config(config_path)


@app.command("config")
def show_config(
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="LLM config file (default: playwright.llm.json)"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the full config as JSON"),
):
    """Show the resolved configuration (credentials masked)."""
    config = _load(config_path)
    data = redacted_config(config)

    if as_json:
        console.print_json(json.dumps(data))
        return

    block = config.active_provider_config()
    model = getattr(block, "model", None) or getattr(block, "deployment_name", None)
    settings = config.enhancer
    console.print(
        Panel.fit(
            f"[bold]Codegen Enhancer[/bold]\n\n"
            f"🤖 Provider: {config.provider}"
            f"{f' ({model})' if model else ''}"
            f"{'' if block else ' [red](not configured)[/red]'}\n"
            f"⚙️  Enabled: {'yes' if settings.enabled else 'no'}\n"
            f"⏱️  Request timeout: {settings.request_timeout:g}s\n"
            f"⌨️  Quiet periods: {', '.join(f'{k}={v:g}s' for k, v in settings.quiet_periods().items())}\n"
            f"🛡️  Safety threshold: {settings.safety_threshold:.0%}\n"
            f"🔍 Debug: {'enabled' if config.debug else 'disabled'}",
            border_style="green" if block else "red",
        )
    )


@app.command("enhance-script")
def enhance_script(
    script: Path = typer.Argument(..., help="Generated test script to enhance"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="LLM config file"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write result here instead of stdout"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
):
    """Run the whole-script pass over SCRIPT."""
    from .session import EnhancementSession

    if not script.exists():
        console.print(f"[red]Error:[/red] Script not found: {script}")
        raise typer.Exit(1)

    setup_logging(debug=debug)
    config = _load(config_path)
    # Running the command is the opt-in
    config = config.model_copy(
        update={"enhancer": config.enhancer.model_copy(update={"enabled": True})}
    )
    original = script.read_text(encoding="utf-8")

    async def run() -> str:
        async with EnhancementSession(config) as session:
            return await session.enhance_complete_script(original)

    enhanced = asyncio.run(run())

    if enhanced == original:
        console.print("[yellow]Warning:[/yellow] Script left unchanged", highlight=False)
    if output:
        output.write_text(enhanced, encoding="utf-8")
        console.print(f"[green]✓[/green] Wrote {output}")
    else:
        typer.echo(enhanced)


@app.command("check-script")
def check_script(
    original: Path = typer.Argument(..., help="Original script"),
    rewritten: Path = typer.Argument(..., help="Rewritten script"),
    threshold: float = typer.Option(
        DEFAULT_SAFETY_THRESHOLD, "--threshold", "-t", min=0.0, max=1.0,
        help="Minimum kept share of each operation",
    ),
):
    """Compare operation counts of two scripts the way the safety check does."""
    for path in (original, rewritten):
        if not path.exists():
            console.print(f"[red]Error:[/red] Script not found: {path}")
            raise typer.Exit(1)

    before = count_operations(original.read_text(encoding="utf-8"))
    after = count_operations(rewritten.read_text(encoding="utf-8"))
    regressions = find_regressions(before, after, threshold)

    table = Table(title="Operation counts")
    table.add_column("Operation")
    table.add_column("Original", justify="right")
    table.add_column("Rewritten", justify="right")
    table.add_column("Status")
    for name, count in before.items():
        status = "[red]dropped[/red]" if name in regressions else "[green]ok[/green]"
        table.add_row(name, str(count), str(after[name]), status)
    console.print(table)

    if regressions:
        console.print(f"[red]Rejected:[/red] {', '.join(regressions)} below {threshold:.0%}")
        raise typer.Exit(1)
    console.print("[green]✓[/green] Rewrite accepted")


if __name__ == "__main__":
    app()
