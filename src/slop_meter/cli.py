"""
Command-line interface for slop-meter.
"""

import asyncio
import re
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console

from . import __version__
from .aggregator import likelihood_label
from .analyzer import SlopMeter
from .cache import FileCacheStore
from .detectors import CodePatternDetector, CommentDetector
from .errors import SlopMeterError, describe_error
from .file_classifier import FileClassifier
from .github import GitHubClient
from .local_repo import LocalRepository
from .logging import configure_logging
from .models import RepoAnalysis
from .reporter import Reporter, score_color

DEFAULT_CACHE_FILE = Path.home() / ".cache" / "slop-meter" / "cache.json"

GITHUB_URL = re.compile(
    r"^(?:https?://)?(?:www\.)?github\.com/([^/\s]+)/([^/\s#?]+?)(?:\.git)?/?(?:[#?].*)?$"
)
OWNER_REPO = re.compile(r"^([\w.-]+)/([\w.-]+)$")


console = Console()


def parse_repo_reference(reference: str) -> tuple[str, str]:
    """Split ``owner/repo`` or a github.com URL into its two parts."""
    reference = reference.strip()
    for pattern in (GITHUB_URL, OWNER_REPO):
        match = pattern.match(reference)
        if match:
            return match.group(1), match.group(2)
    raise click.BadParameter(
        f"Expected OWNER/REPO or a github.com URL, got {reference!r}",
        param_hint="REPO",
    )


@click.group()
@click.version_option(version=__version__)
def main():
    """
    Slop Meter - Estimate how likely a repository is AI-generated.

    Scores GitHub repositories (or local checkouts) from commit history,
    AI tooling files, comment style, file repetition and layout.
    """
    pass


@main.command()
@click.argument("repo", required=False)
@click.option(
    "--local", "-l",
    "local_path",
    type=click.Path(exists=True, file_okay=False),
    help="Analyze a local git checkout instead of GitHub"
)
@click.option(
    "--output", "-o",
    type=click.Choice(["console", "json", "markdown"]),
    default="console",
    help="Output format"
)
@click.option(
    "--output-file", "-f",
    type=click.Path(),
    help="Output file path (defaults to stdout for json/markdown)"
)
@click.option(
    "--token",
    envvar="GITHUB_TOKEN",
    help="GitHub token (defaults to $GITHUB_TOKEN)"
)
@click.option(
    "--cache-file",
    type=click.Path(dir_okay=False),
    envvar="SLOP_METER_CACHE",
    default=str(DEFAULT_CACHE_FILE),
    show_default=True,
    help="Where final results are cached"
)
@click.option(
    "--no-cache",
    is_flag=True,
    help="Neither read nor write the result cache"
)
@click.option(
    "--provisional-only",
    is_flag=True,
    help="Stop after the fast commit-history pass"
)
@click.option(
    "--detailed", "-d",
    is_flag=True,
    help="Show feature contributions and diagnostics"
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Enable debug logging"
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False),
    help="Also write a debug log to this file"
)
def analyze(
    repo: Optional[str],
    local_path: Optional[str],
    output: str,
    output_file: Optional[str],
    token: Optional[str],
    cache_file: str,
    no_cache: bool,
    provisional_only: bool,
    detailed: bool,
    verbose: bool,
    log_file: Optional[str],
):
    """
    Estimate the AI-generation likelihood of a repository.

    REPO is OWNER/REPO or a GitHub URL. With --local it is optional.

    Examples:

        slop-meter analyze octocat/hello-world

        slop-meter analyze https://github.com/user/repo -o json -f report.json

        slop-meter analyze --local ./my-checkout --detailed
    """
    configure_logging(verbose=verbose, log_file=Path(log_file) if log_file else None)

    if local_path is None and repo is None:
        raise click.UsageError("Provide REPO or --local PATH")

    cache = None if no_cache else FileCacheStore(Path(cache_file))
    reporter = Reporter(console=console)

    def show_provisional(analysis: RepoAnalysis) -> None:
        if output != "console":
            return
        color = score_color(analysis.slop_score)
        console.print(
            f"[dim]Provisional:[/dim] [{color}]{analysis.slop_score}/100[/{color}] "
            f"[dim]({likelihood_label(analysis.slop_score)}, commit history only)[/dim]"
        )

    try:
        if local_path is not None:
            source = LocalRepository(local_path)
            owner = "local"
            name = repo or source.name
            result = asyncio.run(
                _run(source, owner, name, cache, provisional_only, show_provisional)
            )
        else:
            owner, name = parse_repo_reference(repo)
            if output == "console":
                console.print(f"[bold blue]Analyzing:[/bold blue] {owner}/{name}")
            result = asyncio.run(
                _run_github(token, owner, name, cache, provisional_only, show_provisional)
            )
    except SlopMeterError as e:
        console.print(f"[red]Error:[/red] {describe_error(e)}")
        sys.exit(3)

    # Output results
    if output == "console":
        reporter.print_summary(result, detailed=detailed)
    else:
        rendered = reporter.to_json(result) if output == "json" else reporter.to_markdown(result)
        if output_file:
            Path(output_file).write_text(rendered, encoding="utf-8")
            console.print(f"[green]Report saved to {output_file}[/green]")
        else:
            click.echo(rendered)

    # Exit with appropriate code
    # 0: low likelihood (<=20)
    # 1: moderate likelihood (<=60)
    # 2: high likelihood
    if result.slop_score <= 20:
        sys.exit(0)
    elif result.slop_score <= 60:
        sys.exit(1)
    else:
        sys.exit(2)


async def _run_github(token, owner, repo, cache, provisional_only, on_provisional) -> RepoAnalysis:
    async with GitHubClient(token=token) as client:
        return await _run(client, owner, repo, cache, provisional_only, on_provisional)


async def _run(source, owner, repo, cache, provisional_only, on_provisional) -> RepoAnalysis:
    meter = SlopMeter(source, cache=cache)
    if provisional_only:
        return await meter.analyze(owner, repo)
    return await meter.analyze_until_final(owner, repo, on_provisional=on_provisional)


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
def check(file: str):
    """
    Check a single file for AI comment and boilerplate patterns.

    Examples:

        slop-meter check ./my_script.py

        slop-meter check README.md
    """
    content = Path(file).read_text(encoding="utf-8", errors="replace")
    if not content.strip():
        console.print("[red]Error: No content to analyze[/red]")
        sys.exit(1)

    comments = None
    if FileClassifier().is_code(file):
        comments = CommentDetector().detect(content)
    patterns = CodePatternDetector().detect(file, content)

    console.print()
    console.print(f"[bold cyan]{file}[/bold cyan]")
    if comments is not None:
        console.print(
            f"[bold]Comment signal:[/bold] {comments.comment_signal:.0%} "
            f"({comments.matched_lines} prompt-like lines, {comments.verbose_blocks} verbose blocks)"
        )
    console.print(
        f"[bold]Boilerplate signal:[/bold] {patterns.signal:.0%} "
        f"({patterns.pattern_matches} markers)"
    )

    if patterns.labels:
        console.print()
        console.print("[bold]Markers Detected:[/bold]")
        for label, count in sorted(patterns.labels.items(), key=lambda item: item[1], reverse=True):
            console.print(f"  • {label}: {count}")

    if comments is not None:
        for indicator in comments.indicators:
            console.print(f"  • {indicator.type}: {indicator.description}")

    signal = max(patterns.signal, comments.comment_signal if comments else 0.0)
    sys.exit(0 if signal < 0.5 else 1)


@main.command("clear-cache")
@click.option(
    "--cache-file",
    type=click.Path(dir_okay=False),
    envvar="SLOP_METER_CACHE",
    default=str(DEFAULT_CACHE_FILE),
    show_default=True,
    help="Cache file to clear"
)
def clear_cache(cache_file: str):
    """Remove every cached final result."""
    removed = FileCacheStore(Path(cache_file)).clear()
    console.print(f"Removed {removed} cached result(s) from {cache_file}")


@main.command()
def info():
    """Show information about slop-meter and its signals."""
    console.print()
    console.print("[bold blue]Slop Meter[/bold blue]")
    console.print(f"Version: {__version__}")
    console.print()
    console.print("[bold]Two-phase analysis:[/bold]")
    console.print("  A provisional score from commit history alone, then a final")
    console.print("  score once the file tree and a sample of files are inspected.")
    console.print()
    console.print("[bold]Signals:[/bold]")
    console.print()
    console.print("  [cyan]AI Config Files[/cyan]")
    console.print("    .cursorrules, CLAUDE.md, copilot instructions and friends,")
    console.print("    plus AI-named paths and agent workflow directories.")
    console.print()
    console.print("  [cyan]Commit History[/cyan]")
    console.print("    Narrative commit messages, attribution trailers,")
    console.print("    bursty cadence and bulk commits with terse subjects.")
    console.print()
    console.print("  [cyan]Comment Patterns[/cyan]")
    console.print("    Comments that narrate obvious code, plus leftover")
    console.print("    assistant phrasing and placeholders in sampled files.")
    console.print()
    console.print("  [cyan]Repetition[/cyan]")
    console.print("    Token overlap between sampled files.")
    console.print()
    console.print("  [cyan]Structure Uniformity[/cyan]")
    console.print("    Many directories sharing the same file layout.")
    console.print()
    console.print("[bold]Score bands:[/bold]")
    console.print("  0-20 low, 21-60 moderate, 61-100 high likelihood")
    console.print()
    console.print("[bold]Usage:[/bold]")
    console.print("  slop-meter analyze <owner/repo>")
    console.print("  slop-meter analyze --local <path>")
    console.print("  slop-meter check <file>")
    console.print()
    console.print("For more details: slop-meter --help")


if __name__ == "__main__":
    main()
