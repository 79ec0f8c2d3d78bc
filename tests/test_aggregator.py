"""Tests for the score aggregator and its escalation rules."""

import pytest

from slop_meter.aggregator import (
    AggregatorConfig,
    ESCALATION_RULES,
    ScoreAggregator,
    ScoringFeatures,
    derive_evidence_strength,
    likelihood_label,
    likelihood_tone,
    score_confidence,
    slop_level,
)
from slop_meter.models import Confidence

FEATURE_FIELDS = [
    "config_signal",
    "commit_language_signal",
    "commit_burst_signal",
    "comment_pattern_signal",
    "repetition_signal",
    "structure_uniformity_signal",
]


@pytest.fixture
def aggregator():
    return ScoreAggregator()


def test_default_weights_sum_to_one():
    assert sum(AggregatorConfig().weights().values()) == pytest.approx(1.0)


def test_rules_run_in_documented_order():
    assert [rule.name for rule in ESCALATION_RULES] == [
        "corroborated-low-score",
        "comments-with-bursts",
        "language-with-bursts",
        "bursts-comments-indicators",
        "language-with-indicators",
        "language-bursts-indicators",
        "many-indicators",
        "overwhelming-indicators",
        "low-evidence-cap",
    ]


def test_all_zero_features(aggregator):
    result = aggregator.score(ScoringFeatures())
    assert result.overall == 0
    assert result.confidence is Confidence.LOW
    assert result.evidence_strength == 0
    assert result.applied_rules == ["low-evidence-cap"]
    assert result.breakdown.to_dict() == {
        "configs": 0, "commits": 0, "patterns": 0, "structure": 0, "repetition": 0,
    }


def test_saturated_features(aggregator):
    features = ScoringFeatures(
        **{name: 1.0 for name in FEATURE_FIELDS},
        evidence_signals=6,
        signal_values=[1.0] * 6,
    )
    result = aggregator.score(features)
    assert result.overall == 100
    assert result.confidence is Confidence.HIGH
    assert result.evidence_strength == 1.0
    assert result.breakdown.to_dict() == {
        "configs": 16, "commits": 41, "patterns": 18, "structure": 10, "repetition": 15,
    }


def test_contributions_are_weighted_and_rounded(aggregator):
    result = aggregator.score(ScoringFeatures(
        commit_language_signal=0.5,
        config_signal=1.7,
        evidence_signals=1,
        signal_values=[0.5],
    ))
    rows = {c.feature: c for c in result.contributions}
    assert rows["commitLanguageSignal"].contribution == 14.5
    assert rows["configSignal"].raw == 1.7
    assert rows["configSignal"].normalized == 1.0
    assert rows["configSignal"].contribution == 16.0
    assert rows["configSignal"].notes


def test_breakdown_buckets_are_integers(aggregator):
    result = aggregator.score(ScoringFeatures(
        commit_language_signal=0.5,
        commit_burst_signal=0.35,
        signal_values=[0.5],
        evidence_signals=1,
    ))
    assert result.breakdown.commits == 19


def test_corroborated_low_score_bump(aggregator):
    result = aggregator.score(ScoringFeatures(
        commit_language_signal=0.3,
        comment_pattern_signal=0.3,
        evidence_signals=2,
        signal_values=[0.3, 0.3],
    ))
    assert result.raw_score == 14.1
    assert result.applied_rules == ["corroborated-low-score"]
    assert result.overall == 26


def test_comments_with_bursts_floor(aggregator):
    result = aggregator.score(ScoringFeatures(
        comment_pattern_signal=0.25,
        commit_burst_signal=0.4,
        evidence_signals=1,
        signal_values=[0.4],
    ))
    assert result.applied_rules == ["comments-with-bursts"]
    assert result.overall == 30


def test_language_with_bursts_floor(aggregator):
    result = aggregator.score(ScoringFeatures(
        commit_language_signal=0.5,
        commit_burst_signal=0.35,
        evidence_signals=1,
        signal_values=[0.5],
    ))
    assert result.applied_rules == ["language-with-bursts"]
    assert result.overall == 42
    # Confidence comes from the unadjusted score
    assert result.confidence is Confidence.MEDIUM


def test_bursts_comments_indicators_floor(aggregator):
    result = aggregator.score(ScoringFeatures(
        commit_burst_signal=0.45,
        comment_pattern_signal=0.14,
        medium_high_indicator_count=3,
        indicator_count=3,
        evidence_signals=1,
        signal_values=[0.45],
    ))
    assert result.applied_rules == ["bursts-comments-indicators"]
    assert result.overall == 62


def test_language_with_indicators_floor(aggregator):
    result = aggregator.score(ScoringFeatures(
        commit_language_signal=0.35,
        medium_high_indicator_count=2,
        indicator_count=4,
        evidence_signals=1,
        signal_values=[0.35],
    ))
    assert result.applied_rules == ["language-with-indicators"]
    assert result.overall == 56


def test_language_bursts_indicators_floor(aggregator):
    result = aggregator.score(ScoringFeatures(
        commit_language_signal=0.5,
        commit_burst_signal=0.35,
        medium_high_indicator_count=3,
        indicator_count=3,
        evidence_signals=1,
        signal_values=[0.5],
    ))
    assert result.applied_rules == ["language-with-bursts", "language-bursts-indicators"]
    assert result.overall == 62


def test_many_indicators_floor(aggregator):
    result = aggregator.score(ScoringFeatures(
        commit_language_signal=0.1,
        medium_high_indicator_count=4,
        indicator_count=4,
        evidence_signals=1,
        signal_values=[0.5],
    ))
    assert result.applied_rules == ["many-indicators"]
    assert result.overall == 68


def test_overwhelming_indicators_floor(aggregator):
    result = aggregator.score(ScoringFeatures(
        commit_language_signal=0.1,
        medium_high_indicator_count=5,
        indicator_count=5,
        evidence_signals=1,
        signal_values=[0.5],
    ))
    assert result.applied_rules == ["many-indicators", "overwhelming-indicators"]
    assert result.overall == 75


def test_low_evidence_cap_overrides_floors(aggregator):
    result = aggregator.score(ScoringFeatures(
        commit_burst_signal=0.45,
        comment_pattern_signal=0.14,
        medium_high_indicator_count=3,
        indicator_count=3,
    ))
    assert result.applied_rules == ["bursts-comments-indicators", "low-evidence-cap"]
    assert result.overall == 40


def test_low_evidence_cap_limits_high_raw_score(aggregator):
    result = aggregator.score(ScoringFeatures(
        **{name: 1.0 for name in FEATURE_FIELDS},
        evidence_signals=1,
    ))
    assert result.raw_score == 100
    assert result.overall == 40


def test_scoring_is_idempotent(aggregator):
    features = ScoringFeatures(
        config_signal=0.4,
        commit_language_signal=0.6,
        commit_burst_signal=0.5,
        comment_pattern_signal=0.3,
        repetition_signal=0.2,
        structure_uniformity_signal=0.1,
        evidence_signals=5,
        signal_values=[0.4, 0.6, 0.5, 0.3, 0.2, 0.1],
        indicator_count=4,
        medium_high_indicator_count=3,
    )
    assert aggregator.score(features) == aggregator.score(features)


@pytest.mark.parametrize("feature", FEATURE_FIELDS)
def test_score_is_monotonic_with_enough_evidence(aggregator, feature):
    base = {
        "config_signal": 0.1,
        "commit_language_signal": 0.2,
        "commit_burst_signal": 0.4,
        "comment_pattern_signal": 0.1,
        "repetition_signal": 0.1,
        "structure_uniformity_signal": 0.1,
    }
    previous = -1
    for step in range(21):
        values = dict(base, **{feature: step / 20})
        result = aggregator.score(ScoringFeatures(
            **values,
            evidence_signals=1,
            signal_values=[0.9],
            indicator_count=2,
            medium_high_indicator_count=1,
        ))
        assert result.overall >= previous
        previous = result.overall


@pytest.mark.parametrize("feature", FEATURE_FIELDS)
def test_score_is_monotonic_and_capped_with_weak_evidence(aggregator, feature):
    previous = -1
    for step in range(21):
        values = {"commit_burst_signal": 0.5}
        values[feature] = step / 20
        result = aggregator.score(ScoringFeatures(**values))
        assert result.overall <= 40
        assert result.overall >= previous
        previous = result.overall


def test_derive_evidence_strength():
    assert derive_evidence_strength(6, []) == 1.0
    assert derive_evidence_strength(3, []) == 0.5
    assert derive_evidence_strength(0, [0.9, 0.1]) == pytest.approx(0.55)
    assert derive_evidence_strength(0, [0.4]) == pytest.approx(0.44)


def test_score_confidence_bands():
    assert score_confidence(50, 0.8) is Confidence.HIGH
    assert score_confidence(50, 0.5) is Confidence.MEDIUM
    assert score_confidence(30, 0.9) is Confidence.MEDIUM
    assert score_confidence(10, 0.9) is Confidence.LOW
    assert score_confidence(50, 0.21) is Confidence.LOW


def test_display_helpers():
    assert [likelihood_label(s) for s in (20, 21, 60, 61)] == ["low", "moderate", "moderate", "high"]
    assert [likelihood_tone(s) for s in (0, 40, 90)] == ["safe", "warning", "danger"]
    assert [slop_level(s) for s in (0, 40, 90)] == ["clean", "suspicious", "slop"]
