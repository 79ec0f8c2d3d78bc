"""
Commit history analysis.

Three independent signals come out of the commit log:

- language: messages written in the narrative, bullet-pointed style that
  assistants produce, plus explicit tool attribution trailers;
- burst: commits landing minutes apart at an unnaturally even cadence;
- bulk: huge changes described by a terse subject.
"""

import re
from dataclasses import dataclass, field
from typing import Optional, Sequence

from ..models import CommitRecord, Severity, SlopIndicator
from ..signals import average, bounded_scale, clamp, ratio, stddev


NARRATIVE_OPENERS = re.compile(
    r"^(?:implement(?:ed|s)?|introduce[sd]?|enhance[sd]?|streamline[sd]?|add (?:comprehensive|robust|detailed|extensive)"
    r"|refactor\b.*\bfor (?:better|improved)|improve[sd]?\b.*\b(?:handling|readability|maintainability|experience))\b",
    re.IGNORECASE,
)

BUZZWORDS = re.compile(
    r"\b(?:comprehensive|robust|seamless(?:ly)?|leverag(?:e|es|ed|ing)|streamlin(?:e|es|ed|ing)"
    r"|enhanc(?:e|es|ed|ing|ement|ements)|utiliz(?:e|es|ed|ing)|ensur(?:e|es|ing) (?:that|proper))\b",
    re.IGNORECASE,
)

EXPLANATORY_CLAUSE = re.compile(
    r"\b(?:to ensure|for better|for improved|in order to|to improve|to provide|to support)\b",
    re.IGNORECASE,
)

CONVENTIONAL_PREFIX = re.compile(
    r"^(?:feat|fix|docs|style|refactor|perf|test|chore|build|ci)(?:\([^)]+\))?!?:\s",
    re.IGNORECASE,
)

BULLET_LINE = re.compile(r"^\s*[-*•]\s+\S")

ATTRIBUTION_MARKERS = [
    re.compile(
        r"co-authored-by:.*\b(?:claude|copilot|cursor|chatgpt|openai|gpt|gemini|codex|aider|devin|windsurf)\b",
        re.IGNORECASE,
    ),
    re.compile(
        r"\bgenerated (?:with|by|using) \[?(?:claude|copilot|cursor|chatgpt|ai|codex|aider)",
        re.IGNORECASE,
    ),
    re.compile("\U0001F916"),
]


@dataclass
class CommitConfig:
    """Configuration for commit history analysis."""
    rapid_gap_minutes: float = 10.0
    regular_cadence_max_median_gap_minutes: float = 120.0
    min_dated_commits: int = 5
    bulk_file_threshold: int = 15
    bulk_line_threshold: int = 400
    terse_subject_words: int = 6
    min_bullets: int = 3
    long_body_chars: int = 300
    styled_threshold: float = 0.5


@dataclass
class CommitResult:
    ai_signal: float = 0.0
    burst_signal: float = 0.0
    bulk_signal: float = 0.0
    indicators: list[SlopIndicator] = field(default_factory=list)
    styled_commits: int = 0
    attributed_commits: int = 0
    bulk_commits: int = 0

    @property
    def combined_burst_signal(self) -> float:
        """Cadence and bulk folded into one feature for the aggregator."""
        return max(self.burst_signal, self.bulk_signal * 0.8)


class CommitAnalyzer:
    """Derive language, cadence and bulk signals from a commit history."""

    def __init__(self, config: Optional[CommitConfig] = None):
        self.config = config or CommitConfig()

    def analyze(self, commits: Sequence[CommitRecord]) -> CommitResult:
        if not commits:
            return CommitResult()

        ai_signal, styled, attributed, bullet_commits = self._language_signal(commits)
        burst_signal = self._burst_signal(commits)
        bulk_signal, bulk = self._bulk_signal(commits)

        indicators = []
        if ai_signal >= 0.35:
            indicators.append(SlopIndicator(
                type="AI-style Commit Messages",
                description=f"{styled} of {len(commits)} commit messages use AI-typical narrative phrasing",
                severity=Severity.HIGH if ai_signal >= 0.6 else Severity.MEDIUM,
            ))
        if attributed:
            indicators.append(SlopIndicator(
                type="AI-attributed Commits",
                description=f"{attributed} commit(s) carry AI tool attribution trailers",
                severity=Severity.HIGH,
            ))
        if burst_signal >= 0.35:
            indicators.append(SlopIndicator(
                type="Bursty Commit Cadence",
                description="Commits land minutes apart at an unusually regular cadence",
                severity=Severity.HIGH if burst_signal >= 0.6 else Severity.MEDIUM,
            ))
        if bulk_signal >= 0.3:
            indicators.append(SlopIndicator(
                type="Bulk Commits",
                description=f"{bulk} large commit(s) described by terse messages",
                severity=Severity.HIGH if bulk_signal >= 0.6 else Severity.MEDIUM,
            ))

        return CommitResult(
            ai_signal=ai_signal,
            burst_signal=burst_signal,
            bulk_signal=bulk_signal,
            indicators=indicators,
            styled_commits=styled,
            attributed_commits=attributed,
            bulk_commits=bulk,
        )

    def message_style_score(self, message: str) -> float:
        """Score a single message for AI-assisted narrative style."""
        subject = message.strip().split("\n")[0].strip()
        score = 0.0
        if NARRATIVE_OPENERS.search(subject):
            score += 0.5
        if BUZZWORDS.search(message):
            score += 0.3
        if EXPLANATORY_CLAUSE.search(subject):
            score += 0.3
        if self._bullet_count(message) >= self.config.min_bullets:
            score += 0.4
        if len(self._body(message)) >= self.config.long_body_chars:
            score += 0.2
        if CONVENTIONAL_PREFIX.search(subject):
            score += 0.15
        return min(score, 1.0)

    def _language_signal(self, commits: Sequence[CommitRecord]) -> tuple[float, int, int, int]:
        styled = 0
        attributed = 0
        bullet_commits = 0
        for commit in commits:
            if self.message_style_score(commit.message) >= self.config.styled_threshold:
                styled += 1
            if any(marker.search(commit.message) for marker in ATTRIBUTION_MARKERS):
                attributed += 1
            if self._bullet_count(commit.message) >= self.config.min_bullets:
                bullet_commits += 1

        total = len(commits)
        signal = clamp(
            bounded_scale(ratio(styled, total), 0.1, 0.6) * 0.6
            + bounded_scale(ratio(attributed, total), 0.0, 0.3) * 0.5
            + bounded_scale(ratio(bullet_commits, total), 0.05, 0.4) * 0.2,
            0.0,
            1.0,
        )
        return signal, styled, attributed, bullet_commits

    def _burst_signal(self, commits: Sequence[CommitRecord]) -> float:
        dates = sorted(c.author_date for c in commits if c.author_date is not None)
        if len(dates) < self.config.min_dated_commits:
            return 0.0

        gaps = [
            max((later - earlier).total_seconds() / 60.0, 0.0)
            for earlier, later in zip(dates, dates[1:])
        ]
        rapid_ratio = ratio(
            sum(1 for gap in gaps if gap < self.config.rapid_gap_minutes), len(gaps)
        )

        regularity = 0.0
        ordered = sorted(gaps)
        median_gap = ordered[len(ordered) // 2]
        mean_gap = average(gaps)
        if mean_gap > 0 and median_gap <= self.config.regular_cadence_max_median_gap_minutes:
            variation = stddev(gaps) / mean_gap
            regularity = 1.0 - bounded_scale(variation, 0.3, 1.2)

        return clamp(bounded_scale(rapid_ratio, 0.2, 0.7) * 0.75 + regularity * 0.25, 0.0, 1.0)

    def _bulk_signal(self, commits: Sequence[CommitRecord]) -> tuple[float, int]:
        with_stats = [
            c for c in commits
            if c.changed_files is not None or c.changed_lines is not None
        ]
        if not with_stats:
            return 0.0, 0

        bulk = 0
        for commit in with_stats:
            large = (
                (commit.changed_files or 0) >= self.config.bulk_file_threshold
                or (commit.changed_lines or 0) >= self.config.bulk_line_threshold
            )
            terse = len(commit.subject.split()) <= self.config.terse_subject_words
            if large and terse:
                bulk += 1

        return bounded_scale(ratio(bulk, len(with_stats)), 0.05, 0.4), bulk

    def _body(self, message: str) -> str:
        return message.strip().partition("\n")[2].strip()

    def _bullet_count(self, message: str) -> int:
        return sum(1 for line in message.split("\n")[1:] if BULLET_LINE.match(line))
