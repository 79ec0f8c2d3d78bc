"""
Report generation for slop analysis results.

Generates human-readable and machine-readable reports.
"""

import json
from datetime import datetime, timezone
from typing import Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .aggregator import likelihood_label, likelihood_tone, slop_level
from .models import RepoAnalysis, Severity

TONE_COLORS = {
    "safe": "green",
    "warning": "yellow",
    "danger": "red",
}

SEVERITY_COLORS = {
    Severity.LOW: "dim",
    Severity.MEDIUM: "yellow",
    Severity.HIGH: "red",
}


class Reporter:
    """Generate reports from analysis results."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def print_summary(self, analysis: RepoAnalysis, detailed: bool = False) -> None:
        """Print a summary report to the console."""
        self.console.print()
        stage = analysis.stage.value.title()
        title = f"[bold]Slop Meter Report[/bold] - {analysis.repo_name} [dim]({stage})[/dim]"
        self.console.print(Panel(title, style="blue"))

        color = score_color(analysis.slop_score)
        label = likelihood_label(analysis.slop_score).title()
        cached = " [dim](cached)[/dim]" if analysis.cache.is_cached else ""
        self.console.print(Panel(
            f"[bold]AI Likelihood:[/bold] [{color}]{analysis.slop_score}/100 ({label})[/{color}]{cached}\n"
            f"{score_bar(analysis.slop_score)}\n\n"
            f"[bold]Confidence:[/bold] {analysis.confidence.value.title()}\n"
            f"[bold]Verdict:[/bold] {slop_level(analysis.slop_score)}",
            title="Summary",
            border_style=color,
        ))

        self._print_indicators(analysis)
        self._print_breakdown(analysis)
        if detailed:
            self._print_contributions(analysis)
            self._print_diagnostics(analysis)

    def _print_indicators(self, analysis: RepoAnalysis) -> None:
        if not analysis.indicators:
            self.console.print(Panel(
                "[green]No AI indicators found.[/green]",
                title="Indicators",
            ))
            return

        table = Table(title="Indicators", box=box.ROUNDED)
        table.add_column("Severity", justify="center")
        table.add_column("Type", style="bold")
        table.add_column("Description")

        for indicator in analysis.indicators:
            color = SEVERITY_COLORS[indicator.severity]
            table.add_row(
                f"[{color}]{indicator.severity.value}[/{color}]",
                indicator.type,
                indicator.description,
            )

        self.console.print(table)

    def _print_breakdown(self, analysis: RepoAnalysis) -> None:
        table = Table(title="Score Breakdown", box=box.ROUNDED)
        table.add_column("Bucket", style="bold")
        table.add_column("Points", justify="right")

        for bucket, points in analysis.score_breakdown.to_dict().items():
            table.add_row(bucket.title(), str(points))

        self.console.print(table)

    def _print_contributions(self, analysis: RepoAnalysis) -> None:
        contributions = analysis.diagnostics.score_contributions
        if not contributions:
            return

        table = Table(title="Feature Contributions", box=box.ROUNDED)
        table.add_column("Feature", style="cyan")
        table.add_column("Value", justify="right")
        table.add_column("Weight", justify="right")
        table.add_column("Points", justify="right")
        table.add_column("Note", style="dim")

        for c in sorted(contributions, key=lambda c: c.contribution, reverse=True):
            table.add_row(
                c.feature,
                f"{c.normalized:.2f}",
                f"{c.weight:.2f}",
                f"{c.contribution:.2f}",
                c.notes,
            )

        self.console.print(table)

    def _print_diagnostics(self, analysis: RepoAnalysis) -> None:
        diagnostics = analysis.diagnostics
        timing = diagnostics.timing
        lines = [
            f"Requests: {diagnostics.request_count}",
            f"Sampled files: {diagnostics.sampled_files}",
            f"Evidence strength: {diagnostics.evidence_strength:.2f}",
            f"First badge: {timing.time_to_first_badge}ms",
        ]
        if timing.time_to_final_score is not None:
            lines.append(f"Final score: {timing.time_to_final_score}ms")
        if analysis.cache.cache_key:
            lines.append(f"Cache key: {analysis.cache.cache_key}")
        self.console.print(Panel("\n".join(lines), title="Diagnostics", border_style="dim"))

    def to_json(self, analysis: RepoAnalysis) -> str:
        """Convert analysis to JSON format."""
        return json.dumps(analysis.to_dict(), indent=2)

    def to_markdown(self, analysis: RepoAnalysis) -> str:
        """Convert analysis to Markdown format."""
        analyzed = datetime.fromtimestamp(analysis.timestamp / 1000, tz=timezone.utc)
        lines = [
            f"# Slop Meter Report: {analysis.repo_name}",
            "",
            f"**Analyzed:** {analyzed.strftime('%Y-%m-%d %H:%M:%S')} UTC",
            f"**Stage:** {analysis.stage.value}",
            "",
            "## Summary",
            "",
            "| Metric | Value |",
            "|--------|-------|",
            f"| AI Likelihood | {analysis.slop_score}/100 ({likelihood_label(analysis.slop_score)}) |",
            f"| Confidence | {analysis.confidence.value.title()} |",
            f"| Verdict | {slop_level(analysis.slop_score)} |",
            f"| Sampled Files | {analysis.diagnostics.sampled_files} |",
            "",
            "## Score Breakdown",
            "",
            "| Bucket | Points |",
            "|--------|--------|",
        ]

        for bucket, points in analysis.score_breakdown.to_dict().items():
            lines.append(f"| {bucket.title()} | {points} |")

        lines.extend([
            "",
            "## Indicators",
            "",
        ])

        if analysis.indicators:
            for indicator in analysis.indicators:
                lines.append(
                    f"- **{indicator.type}** ({indicator.severity.value}): {indicator.description}"
                )
        else:
            lines.append("- No AI indicators found")

        return "\n".join(lines)


def score_color(score: float) -> str:
    return TONE_COLORS[likelihood_tone(score)]


def score_bar(score: float, width: int = 40) -> str:
    """Create a visual likelihood bar."""
    filled = int(max(0, min(score, 100)) / 100 * width)
    empty = width - filled
    color = score_color(score)
    return f"Human [{color}]{'█' * filled}[/{color}][dim]{'░' * empty}[/dim] AI"
