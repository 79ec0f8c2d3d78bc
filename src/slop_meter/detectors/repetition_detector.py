"""
Cross-file repetition analysis.

Sampled files are normalized so literal values and formatting do not hide
structural duplication, reduced to token sets, and compared pairwise.
"""

import re
from dataclasses import dataclass, field
from itertools import combinations
from typing import Optional, Sequence

from ..models import SampledFile, Severity, SlopIndicator
from ..signals import average, bounded_scale, round_half_up, similarity_coefficient


STRING_LITERAL = re.compile(r"""(["'`])(?:\\.|(?!\1).)*\1""")
INTEGER_LITERAL = re.compile(r"\b\d+\b")
PUNCTUATION = re.compile(r"[^\w\s]", re.ASCII)
WHITESPACE = re.compile(r"\s+")


@dataclass
class RepetitionConfig:
    """Configuration for repetition analysis."""
    min_token_length: int = 3
    max_tokens: int = 500
    similarity_floor: float = 0.16
    similarity_ceiling: float = 0.5
    indicator_threshold: float = 0.24
    high_threshold: float = 0.36


@dataclass
class RepetitionResult:
    repetition_signal: float
    average_similarity: float
    indicators: list[SlopIndicator] = field(default_factory=list)


class RepetitionDetector:
    """Measure average pairwise token-set similarity across samples."""

    def __init__(self, config: Optional[RepetitionConfig] = None):
        self.config = config or RepetitionConfig()

    def detect(self, samples: Sequence[SampledFile]) -> RepetitionResult:
        if len(samples) < 2:
            return RepetitionResult(repetition_signal=0.0, average_similarity=0.0)

        token_sets = [self.token_set(normalize_content(s.content)) for s in samples]
        similarities = [
            similarity_coefficient(a, b) for a, b in combinations(token_sets, 2)
        ]

        avg_similarity = average(similarities)
        signal = bounded_scale(
            avg_similarity, self.config.similarity_floor, self.config.similarity_ceiling
        )

        indicators = []
        if avg_similarity >= self.config.indicator_threshold:
            indicators.append(SlopIndicator(
                type="High Cross-file Similarity",
                description=f"Average sampled similarity {int(round_half_up(avg_similarity * 100))}%",
                severity=(
                    Severity.HIGH
                    if avg_similarity >= self.config.high_threshold
                    else Severity.MEDIUM
                ),
            ))

        return RepetitionResult(
            repetition_signal=signal,
            average_similarity=avg_similarity,
            indicators=indicators,
        )

    def token_set(self, normalized: str) -> set[str]:
        tokens = [t for t in normalized.split(" ") if len(t) >= self.config.min_token_length]
        return set(tokens[:self.config.max_tokens])


def normalize_content(content: str) -> str:
    """Replace literals with placeholders, drop punctuation, lowercase."""
    content = STRING_LITERAL.sub("STR", content)
    content = INTEGER_LITERAL.sub("NUM", content)
    content = PUNCTUATION.sub(" ", content)
    content = WHITESPACE.sub(" ", content)
    return content.strip().lower()
