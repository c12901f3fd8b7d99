"""
CLI interface for Tuttu Meter.

Prices token usage and reports per-turn Tuttu token costs of call logs.
"""

import logging
import sys
from typing import List, Optional

import typer
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from tuttu_meter.calls.call_log import CallLogError, load_call_log
from tuttu_meter.config.loader import MeterConfig, default_meter_config, load_meter_config
from tuttu_meter.core.aggregate import summarize_conversation
from tuttu_meter.core.formatting import describe_call_breakdown, format_number
from tuttu_meter.core.grouping import UserTurnGroup, group_into_user_turns, strip_artifact_prefix
from tuttu_meter.core.pricing import (
    USD_PER_MILLION_TUTTU_TOKENS,
    calculate_tuttu_tokens,
    format_tuttu_token_price,
)
from tuttu_meter.core.providers import Provider
from tuttu_meter.core.usage import Usage

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Tuttu Meter CLI."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )
    if ctx.invoked_subcommand is None:
        console.print("Tuttu Meter - Use --help to see available commands")


@app.command()
def price(
    tuttu_tokens: int = typer.Argument(..., help="Number of Tuttu tokens"),
    rate: float = typer.Option(
        USD_PER_MILLION_TUTTU_TOKENS,
        "--rate",
        "-r",
        help="Dollars per million Tuttu tokens"
    ),
):
    """Show the dollar price of a Tuttu token count."""
    if rate <= 0:
        console.print("[red]Error:[/] --rate must be > 0")
        sys.exit(EXIT_CODE_FAIL)
    console.print(f"${format_tuttu_token_price(tuttu_tokens, rate)}")


@app.command()
def calculate(
    provider: str = typer.Option(..., "--provider", "-p", help="Anthropic, Bedrock, OpenAI, XAI or Google"),
    prompt: int = typer.Option(0, "--prompt", help="Prompt tokens"),
    completion: int = typer.Option(0, "--completion", help="Completion tokens"),
    cached: int = typer.Option(0, "--cached", help="Cached prompt tokens (Anthropic, OpenAI, XAI, Google)"),
    cache_write: int = typer.Option(0, "--cache-write", help="Bedrock cache write tokens"),
    cache_read: int = typer.Option(0, "--cache-read", help="Bedrock cache read tokens"),
    thoughts: int = typer.Option(0, "--thoughts", help="Google thinking tokens"),
):
    """Price a single call's token usage in Tuttu tokens."""
    resolved = Provider.from_name(provider)
    is_google = resolved is Provider.GOOGLE
    usage = Usage(
        prompt_tokens=prompt,
        completion_tokens=completion,
        total_tokens=prompt + completion,
        cached_prompt_tokens=0 if is_google else cached,
        bedrock_cache_write_input_tokens=cache_write,
        bedrock_cache_read_input_tokens=cache_read,
        google_cached_content_token_count=cached if is_google else 0,
        google_thoughts_token_count=thoughts,
    )
    result = calculate_tuttu_tokens(usage, resolved)

    if resolved is Provider.UNKNOWN:
        console.print(f"[yellow]Unknown provider '{escape(provider)}'; usage is not billed[/]")

    console.print(
        f"[bold]{format_number(result.tuttu_tokens)}[/bold] Tuttu tokens "
        f"(${format_tuttu_token_price(result.tuttu_tokens)})"
    )
    console.print(f"Breakdown: {describe_call_breakdown(result.breakdown)}")


@app.command()
def report(
    call_log: str = typer.Argument(..., help="Call log file (JSON array or JSON Lines)"),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Meter configuration YAML"
    ),
):
    """
    Report Tuttu token usage per user turn for a call log.

    Calls are grouped into user turns: every call that stopped for tool
    calls plus the call that finished the turn.
    """
    try:
        config = load_meter_config(config_path) if config_path else default_meter_config()
        calls = load_call_log(call_log, config)
    except (FileNotFoundError, CallLogError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Error:[/] {escape(str(e))}")
        sys.exit(EXIT_CODE_FAIL)

    if not calls:
        console.print("\n[bold yellow]No LLM calls found in call log[/]\n")
        sys.exit(EXIT_CODE_PASS)

    groups = group_into_user_turns(calls)
    _display_report(groups, config)
    sys.exit(EXIT_CODE_PASS)


def _shorten(text: str, limit: int = 80) -> str:
    """First non-empty line of a message, capped for display."""
    lines = [line for line in text.split("\n") if line.strip()]
    first = lines[0] if lines else ""
    return first if len(first) <= limit else first[:limit - 3] + "..."


def _format_prompt_tokens(prompt_tokens, cached_prompt_tokens) -> str:
    text = format_number(prompt_tokens - cached_prompt_tokens)
    if cached_prompt_tokens:
        text += f" (+{format_number(cached_prompt_tokens)} cached)"
    return text


def _display_report(groups: List[UserTurnGroup], config: MeterConfig):
    """Display per-turn usage and conversation totals."""
    rate = config.display.usd_per_million_tuttu_tokens

    console.print("\n[bold]Tuttu Token Usage Report[/bold]")
    console.print("-" * 40)

    table = Table()
    table.add_column("#", justify="right")
    table.add_column("User message")
    table.add_column("Model(s)")
    table.add_column("Calls", justify="right")
    table.add_column("Uncached prompt", justify="right")
    table.add_column("Completion", justify="right")
    table.add_column("Tuttu tokens", justify="right")
    table.add_column("Price", justify="right")

    for index, group in enumerate(groups, start=1):
        summary = group.summary
        table.add_row(
            str(index),
            escape(_shorten(strip_artifact_prefix(summary.triggering_user_message))),
            escape(", ".join(model or "?" for model in summary.model_ids)),
            str(len(group.calls)),
            _format_prompt_tokens(summary.prompt_tokens, summary.cached_prompt_tokens),
            format_number(summary.completion_tokens),
            format_number(summary.tuttu_tokens),
            f"${format_tuttu_token_price(summary.tuttu_tokens, rate)}",
        )
    console.print(table)

    totals = summarize_conversation(groups)
    console.print(f"\n[bold]Turns:[/bold] {totals.turn_count}  [bold]Calls:[/bold] {totals.call_count}")
    console.print(
        f"[bold]Prompt tokens:[/bold] "
        f"{_format_prompt_tokens(totals.prompt_tokens, totals.cached_prompt_tokens)} uncached"
    )
    console.print(f"[bold]Completion tokens:[/bold] {format_number(totals.completion_tokens)}")
    console.print(
        f"[bold]Total:[/bold] {format_number(totals.tuttu_tokens)} Tuttu tokens "
        f"(${format_tuttu_token_price(totals.tuttu_tokens, rate)})"
    )
    print()


if __name__ == "__main__":
    app()
