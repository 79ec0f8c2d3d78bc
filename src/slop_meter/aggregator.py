"""
Aggregation and scoring system.

Combines detector signals into a single 0-100 slop score with a
confidence band, an evidence-strength scalar and a per-feature breakdown.
"""

from dataclasses import dataclass, field
from typing import Callable, Optional

from .models import Confidence, FeatureContribution, ScoreBreakdown, SlopScore
from .signals import average, clamp, round2, round_half_up


@dataclass
class AggregatorConfig:
    """Feature weights. They sum to 1.0."""
    config_weight: float = 0.16
    commit_language_weight: float = 0.29
    commit_burst_weight: float = 0.12
    comment_pattern_weight: float = 0.18
    repetition_weight: float = 0.15
    structure_uniformity_weight: float = 0.10

    def weights(self) -> dict[str, float]:
        return {
            "configSignal": self.config_weight,
            "commitLanguageSignal": self.commit_language_weight,
            "commitBurstSignal": self.commit_burst_weight,
            "commentPatternSignal": self.comment_pattern_weight,
            "repetitionSignal": self.repetition_weight,
            "structureUniformitySignal": self.structure_uniformity_weight,
        }


@dataclass
class ScoringFeatures:
    """Inputs to the aggregator."""
    config_signal: float = 0.0
    commit_language_signal: float = 0.0
    commit_burst_signal: float = 0.0
    comment_pattern_signal: float = 0.0
    repetition_signal: float = 0.0
    structure_uniformity_signal: float = 0.0
    evidence_signals: int = 0
    signal_values: list[float] = field(default_factory=list)
    indicator_count: int = 0
    medium_high_indicator_count: int = 0


FEATURE_NOTES = {
    "configSignal": "AI-specific config and instruction files",
    "commitLanguageSignal": "Commit language and narrative structure typical of AI-assisted workflows",
    "commitBurstSignal": "Bursty commit cadence and bulk-change messaging",
    "commentPatternSignal": "Prompt-like comments and AI boilerplate phrasing",
    "repetitionSignal": "Similarity across sampled code files",
    "structureUniformitySignal": "Uniform scaffold/module shape patterns",
}

BREAKDOWN_BUCKETS = {
    "configs": ("configSignal",),
    "commits": ("commitLanguageSignal", "commitBurstSignal"),
    "patterns": ("commentPatternSignal",),
    "structure": ("structureUniformitySignal",),
    "repetition": ("repetitionSignal",),
}


@dataclass(frozen=True)
class RuleContext:
    """Everything an escalation rule may look at."""
    raw_score: float
    features: ScoringFeatures
    strong_signals: int
    evidence_strength: float


@dataclass(frozen=True)
class EscalationRule:
    """
    A single score adjustment.

    Exactly one of ``bump``, ``floor`` or ``cap`` is set. Bumps add to the
    raw score, floors raise the running score, caps lower it.
    """
    name: str
    applies: Callable[[RuleContext], bool]
    bump: Optional[float] = None
    floor: Optional[float] = None
    cap: Optional[float] = None

    def apply(self, adjusted: float, context: RuleContext) -> float:
        if self.bump is not None:
            return context.raw_score + self.bump
        if self.floor is not None:
            return max(adjusted, self.floor)
        if self.cap is not None:
            return min(adjusted, self.cap)
        return adjusted


# Applied in this order. The low-evidence cap must stay last.
ESCALATION_RULES: tuple[EscalationRule, ...] = (
    EscalationRule(
        "corroborated-low-score",
        lambda c: c.raw_score < 25 and c.strong_signals >= 2,
        bump=12,
    ),
    EscalationRule(
        "comments-with-bursts",
        lambda c: (
            c.raw_score < 35
            and c.features.comment_pattern_signal >= 0.2
            and c.features.commit_burst_signal >= 0.35
        ),
        floor=30,
    ),
    EscalationRule(
        "language-with-bursts",
        lambda c: (
            c.features.commit_language_signal >= 0.5
            and c.features.commit_burst_signal >= 0.35
            and c.raw_score < 45
        ),
        floor=42,
    ),
    EscalationRule(
        "bursts-comments-indicators",
        lambda c: (
            c.features.commit_burst_signal >= 0.45
            and c.features.comment_pattern_signal >= 0.14
            and c.features.medium_high_indicator_count >= 3
        ),
        floor=62,
    ),
    EscalationRule(
        "language-with-indicators",
        lambda c: (
            c.features.commit_language_signal >= 0.35
            and c.features.medium_high_indicator_count >= 2
            and c.features.indicator_count >= 4
        ),
        floor=56,
    ),
    EscalationRule(
        "language-bursts-indicators",
        lambda c: (
            c.features.commit_language_signal >= 0.5
            and c.features.commit_burst_signal >= 0.35
            and c.features.medium_high_indicator_count >= 3
        ),
        floor=62,
    ),
    EscalationRule(
        "many-indicators",
        lambda c: c.features.medium_high_indicator_count >= 4 and c.evidence_strength >= 0.45,
        floor=68,
    ),
    EscalationRule(
        "overwhelming-indicators",
        lambda c: c.features.medium_high_indicator_count >= 5 and c.evidence_strength >= 0.5,
        floor=75,
    ),
    EscalationRule(
        "low-evidence-cap",
        lambda c: c.evidence_strength < 0.2,
        cap=40,
    ),
)


class ScoreAggregator:
    """Turn feature signals into a slop score. Pure: no clock, no randomness."""

    def __init__(
        self,
        config: Optional[AggregatorConfig] = None,
        rules: tuple[EscalationRule, ...] = ESCALATION_RULES,
    ):
        self.config = config or AggregatorConfig()
        self.rules = rules

    def score(self, features: ScoringFeatures) -> SlopScore:
        weights = self.config.weights()
        raw_values = {
            "configSignal": features.config_signal,
            "commitLanguageSignal": features.commit_language_signal,
            "commitBurstSignal": features.commit_burst_signal,
            "commentPatternSignal": features.comment_pattern_signal,
            "repetitionSignal": features.repetition_signal,
            "structureUniformitySignal": features.structure_uniformity_signal,
        }
        contributions = [
            self._contribution(name, raw_values[name], weights[name])
            for name in weights
        ]

        raw_score = sum(item.contribution for item in contributions)
        evidence_strength = derive_evidence_strength(
            features.evidence_signals, features.signal_values
        )
        confidence = score_confidence(raw_score, evidence_strength)

        context = RuleContext(
            raw_score=raw_score,
            features=features,
            strong_signals=sum(1 for v in features.signal_values if v >= 0.25),
            evidence_strength=evidence_strength,
        )
        adjusted = raw_score
        applied = []
        for rule in self.rules:
            if rule.applies(context):
                adjusted = rule.apply(adjusted, context)
                applied.append(rule.name)

        return SlopScore(
            overall=int(round_half_up(clamp(adjusted, 0, 100))),
            breakdown=ScoreBreakdown(**{
                bucket: sum_contributions(contributions, members)
                for bucket, members in BREAKDOWN_BUCKETS.items()
            }),
            confidence=confidence,
            evidence_strength=round2(evidence_strength),
            contributions=contributions,
            raw_score=round2(raw_score),
            applied_rules=applied,
        )

    def _contribution(self, feature: str, raw: float, weight: float) -> FeatureContribution:
        normalized = clamp(raw, 0.0, 1.0)
        return FeatureContribution(
            feature=feature,
            raw=round2(raw),
            normalized=round2(normalized),
            weight=round2(weight),
            contribution=round2(normalized * weight * 100),
            notes=FEATURE_NOTES.get(feature, ""),
        )


def sum_contributions(contributions: list[FeatureContribution], members: tuple[str, ...]) -> int:
    return int(round_half_up(sum(c.contribution for c in contributions if c.feature in members)))


def derive_evidence_strength(evidence_signals: int, signal_values: list[float]) -> float:
    """
    How many independent signals fired, blended with the strongest ones.

    The count term saturates at six signals; the top-3 average and the
    single maximum let a few strong signals stand in for many weak ones.
    """
    count_strength = clamp(evidence_signals / 6, 0.0, 1.0)
    if not signal_values:
        return count_strength

    ordered = sorted(signal_values, reverse=True)
    avg_top = average(ordered[:3])
    max_signal = ordered[0]
    return clamp(max(count_strength, avg_top * 1.1, max_signal * 0.45), 0.0, 1.0)


def score_confidence(score: float, evidence_strength: float) -> Confidence:
    if evidence_strength < 0.22 or score < 12:
        return Confidence.LOW
    if evidence_strength < 0.7 or score < 45:
        return Confidence.MEDIUM
    return Confidence.HIGH


def likelihood_label(score: float) -> str:
    if score <= 20:
        return "low"
    if score <= 60:
        return "moderate"
    return "high"


def likelihood_tone(score: float) -> str:
    if score <= 20:
        return "safe"
    if score <= 60:
        return "warning"
    return "danger"


def slop_level(score: float) -> str:
    if score <= 20:
        return "clean"
    if score <= 60:
        return "suspicious"
    return "slop"
