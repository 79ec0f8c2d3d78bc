"""Tests for the two-phase analysis orchestrator."""

import asyncio
from datetime import datetime, timezone

import pytest

from conftest import AI_MESSAGE, PLAIN_CONTENTS, FakeSource, RecordingSink, make_commits
from slop_meter.analyzer import AnalyzerConfig, SlopMeter, dedupe_indicators
from slop_meter.cache import MemoryCacheStore
from slop_meter.errors import (
    AnalysisRequestError,
    AuthRequiredOrNotFound,
    RateLimited,
    TransportError,
)
from slop_meter.models import Confidence, RepoInfo, Severity, SlopIndicator, Stage
from slop_meter.publish import Broadcaster


NARRATED_PY = """def total(items):
    # This function takes a list of items and returns the total
    # First we initialize the result
    # Loop through the items and add each one
    result = 0
    for item in items:
        result += item
    # Return the result
    return result
"""

NARRATED_JS = """// Check if the user exists
// Here we look up the user by id
// Return the result to the caller
const user = users.find((u) => u.id === id);

// Step 1: validate the payload
// Make sure that the email is present
// Handle the error if validation fails
validate(payload);
"""

LEGACY_INFO = RepoInfo(
    default_branch="master",
    created_at=datetime(2015, 3, 1, tzinfo=timezone.utc),
    star_count=900,
)


def run_to_completion(meter, owner="acme", repo="widgets", recipient=None):
    """Run analyze() and let the deep pass finish. Returns (first response, sink)."""
    sink = recipient or RecordingSink()

    async def scenario():
        first = await meter.analyze(owner, repo, recipient=sink)
        await meter.wait_for_pending()
        return first

    return asyncio.run(scenario()), sink


def test_provisional_is_returned_before_final_is_published(plain_source, clock):
    sink = RecordingSink()
    meter = SlopMeter(plain_source, cache=MemoryCacheStore(), clock=clock)

    async def scenario():
        provisional = await meter.analyze("acme", "widgets", recipient=sink)
        published_before = list(sink.records)
        await meter.wait_for_pending()
        return provisional, published_before

    provisional, published_before = asyncio.run(scenario())

    assert published_before == []
    assert provisional.stage is Stage.PROVISIONAL
    assert provisional.repo_id == "acme/widgets"
    assert provisional.diagnostics.request_count == 2
    assert provisional.diagnostics.sampled_files == 0
    features = provisional.diagnostics.feature_values
    for name in ("configSignal", "commentPatternSignal", "repetitionSignal", "structureUniformitySignal"):
        assert features[name] == 0

    assert len(sink.records) == 1
    final = sink.records[0]
    assert final.stage is Stage.FINAL
    assert final.repo_id == provisional.repo_id
    assert final.cache.is_cached is False
    assert final.cache.cache_key == f"acme/widgets:main:{100:040x}"
    assert final.diagnostics.sampled_files == 4
    assert final.diagnostics.request_count == 7
    assert final.diagnostics.timing.time_to_first_badge == provisional.diagnostics.timing.time_to_first_badge
    assert final.diagnostics.timing.time_to_final_score is not None
    assert "pathKeywordSignal" in final.diagnostics.feature_values
    assert all(i.type != "Deep Analysis Incomplete" for i in final.indicators)


def test_final_is_cached(plain_source, clock):
    cache = MemoryCacheStore()
    meter = SlopMeter(plain_source, cache=cache, clock=clock)
    _, sink = run_to_completion(meter)

    cached = cache.get(f"acme/widgets:main:{100:040x}")
    assert cached is not None
    assert cached.stage is Stage.FINAL
    assert cached.slop_score == sink.records[0].slop_score


def test_deep_pass_failure_publishes_degraded_final(clock):
    source = FakeSource(
        commits=make_commits([AI_MESSAGE] * 10),
        contents=PLAIN_CONTENTS,
        failures={"get_file_tree": RuntimeError("tree listing exploded")},
    )
    cache = MemoryCacheStore()
    meter = SlopMeter(source, cache=cache, clock=clock)
    provisional, sink = run_to_completion(meter)

    assert len(sink.records) == 1
    final = sink.records[0]
    assert final.stage is Stage.FINAL
    assert final.confidence is Confidence.LOW
    assert final.slop_score == provisional.slop_score
    assert final.indicators[-1] == SlopIndicator(
        type="Deep Analysis Incomplete",
        description="Final pass did not complete; showing provisional likelihood only",
        severity=Severity.LOW,
    )
    assert final.indicators[:-1] == provisional.indicators
    assert final.diagnostics.timing.time_to_final_score is not None
    assert len(cache) == 0


def test_failed_sample_fetch_only_skips_that_file(clock):
    source = FakeSource(contents=PLAIN_CONTENTS, broken_files={"widgets/io.py"})
    meter = SlopMeter(source, clock=clock)
    _, sink = run_to_completion(meter)

    final = sink.records[0]
    assert final.stage is Stage.FINAL
    assert final.diagnostics.sampled_files == 3
    assert final.diagnostics.request_count == 7
    assert all(i.type != "Deep Analysis Incomplete" for i in final.indicators)


def test_fresh_cache_entry_short_circuits_both_passes(plain_source, clock):
    cache = MemoryCacheStore()
    run_to_completion(SlopMeter(plain_source, cache=cache, clock=clock))

    clock.advance(600)
    second_source = FakeSource(contents=PLAIN_CONTENTS)
    result, sink = run_to_completion(SlopMeter(second_source, cache=cache, clock=clock))

    assert result.stage is Stage.FINAL
    assert result.cache.is_cached is True
    assert result.cache.cache_key == f"acme/widgets:main:{100:040x}"
    assert second_source.count("get_file_tree") == 0
    assert second_source.count("get_file_content") == 0
    assert sink.records == []


def test_stale_cache_entry_is_recomputed(plain_source, clock):
    cache = MemoryCacheStore()
    run_to_completion(SlopMeter(plain_source, cache=cache, clock=clock))

    clock.advance(3600)
    second_source = FakeSource(contents=PLAIN_CONTENTS)
    result, sink = run_to_completion(SlopMeter(second_source, cache=cache, clock=clock))

    assert result.stage is Stage.PROVISIONAL
    assert second_source.count("get_file_tree") == 1
    assert len(sink.records) == 1


def test_custom_ttl(plain_source, clock):
    cache = MemoryCacheStore()
    config = AnalyzerConfig(cache_ttl_seconds=60)
    run_to_completion(SlopMeter(plain_source, cache=cache, config=config, clock=clock))

    clock.advance(61)
    result, _ = run_to_completion(
        SlopMeter(FakeSource(contents=PLAIN_CONTENTS), cache=cache, config=config, clock=clock)
    )
    assert result.stage is Stage.PROVISIONAL


@pytest.mark.parametrize("method, error, category", [
    ("get_repo_info", RateLimited("Failed to fetch repo info: 403"), "RATE_LIMIT:"),
    ("get_commit_history", AuthRequiredOrNotFound("Failed to fetch commit history: 404"), "AUTH_REQUIRED:"),
    ("get_repo_info", TransportError("connection reset"), "NETWORK_ERROR:"),
])
def test_commit_pass_failure_is_fatal_and_categorized(method, error, category, clock):
    source = FakeSource(contents=PLAIN_CONTENTS, failures={method: error})
    sink = RecordingSink()
    meter = SlopMeter(source, clock=clock)

    with pytest.raises(AnalysisRequestError) as excinfo:
        asyncio.run(meter.analyze("acme", "widgets", recipient=sink))

    assert str(excinfo.value).startswith(category)
    assert excinfo.value.__cause__ is error
    assert source.count("get_file_tree") == 0
    assert sink.records == []


def test_empty_history_uses_no_commits_key(clock):
    source = FakeSource(commits=[], contents=PLAIN_CONTENTS)
    provisional, sink = run_to_completion(SlopMeter(source, clock=clock))

    assert provisional.cache.cache_key == "acme/widgets:main:no-commits"
    assert provisional.slop_score == 0
    assert sink.records[0].stage is Stage.FINAL


def test_legacy_dampener_attenuates_commit_signals(clock):
    commits = make_commits([AI_MESSAGE] * 10, gap_minutes=3)
    modern_source = FakeSource(commits=commits, contents=PLAIN_CONTENTS)
    legacy_source = FakeSource(commits=commits, contents=PLAIN_CONTENTS, repo_info=LEGACY_INFO)

    _, modern = run_to_completion(SlopMeter(modern_source, clock=clock))
    _, legacy = run_to_completion(SlopMeter(legacy_source, clock=clock))

    modern_values = modern.records[0].diagnostics.feature_values
    legacy_values = legacy.records[0].diagnostics.feature_values
    assert modern_values["commitLanguageSignal"] == 0.8
    assert legacy_values["commitLanguageSignal"] == 0.5
    assert modern_values["commitBurstSignal"] == 1.0
    assert legacy_values["commitBurstSignal"] == 0.65
    assert legacy_values["legacyRepoDampener"] == 1
    assert modern_values["legacyRepoDampener"] == 0
    assert any(i.type == "Legacy Repo Dampener" for i in legacy.records[0].indicators)
    assert not any(i.type == "Legacy Repo Dampener" for i in modern.records[0].indicators)


def test_legacy_dampener_skipped_with_config_files(clock):
    contents = dict(PLAIN_CONTENTS, **{"CLAUDE.md": "Prefer small functions.\n"})
    source = FakeSource(
        commits=make_commits([AI_MESSAGE] * 10, gap_minutes=3),
        contents=contents,
        repo_info=LEGACY_INFO,
    )
    _, sink = run_to_completion(SlopMeter(source, clock=clock))

    final = sink.records[0]
    assert final.diagnostics.feature_values["commitLanguageSignal"] == 0.8
    assert any(i.type == "Legacy Repo Dampener" for i in final.indicators)


def test_config_file_raises_config_signal(clock):
    source = FakeSource(contents=PLAIN_CONTENTS, extra_paths=[".cursorrules"])
    _, sink = run_to_completion(SlopMeter(source, clock=clock))

    final = sink.records[0]
    assert final.diagnostics.feature_values["configSignal"] == 0.65
    config_indicator = next(i for i in final.indicators if i.type == "AI Config Files")
    assert config_indicator.description == "Found AI config files: .cursorrules"
    assert config_indicator.severity is Severity.MEDIUM


def test_ai_heavy_repository_scores_high(clock):
    contents = dict(PLAIN_CONTENTS, **{
        "CLAUDE.md": "Always write tests.\n",
        "src/total.py": NARRATED_PY,
        "src/user.js": NARRATED_JS,
    })
    source = FakeSource(commits=make_commits([AI_MESSAGE] * 10, gap_minutes=3), contents=contents)
    provisional, sink = run_to_completion(SlopMeter(source, clock=clock))
    final = sink.records[0]

    assert provisional.slop_score == 42
    assert final.slop_score >= 68
    assert final.confidence is not Confidence.LOW
    comment_indicator = next(i for i in final.indicators if i.type == "Prompt-like Comment Pattern")
    assert comment_indicator.severity is Severity.HIGH
    assert final.diagnostics.feature_values["matchedCommentLines"] == 10


def test_comment_detector_skips_non_code_samples(clock):
    contents = dict(PLAIN_CONTENTS, **{
        "notes/steps.txt": NARRATED_PY,
        "notes/steps.py": NARRATED_PY,
    })
    source = FakeSource(contents=contents)
    _, sink = run_to_completion(SlopMeter(source, clock=clock))

    values = sink.records[0].diagnostics.feature_values
    assert values["matchedCommentLines"] == 4
    assert values["commentHitRate"] == round(1 / 6, 2)


def test_failing_recipient_does_not_block_broadcast(plain_source, clock):
    class GoneSink:
        def publish(self, analysis):
            raise RuntimeError("tab closed")

    listener = RecordingSink()
    broadcaster = Broadcaster()
    broadcaster.subscribe(listener)
    meter = SlopMeter(plain_source, broadcaster=broadcaster, clock=clock)

    run_to_completion(meter, recipient=GoneSink())

    assert [r.stage for r in listener.records] == [Stage.FINAL]


def test_published_records_are_independent_copies(plain_source, clock):
    cache = MemoryCacheStore()
    meter = SlopMeter(plain_source, cache=cache, clock=clock)
    _, sink = run_to_completion(meter)

    sink.records[0].indicators.append(
        SlopIndicator(type="Tampered", description="x", severity=Severity.HIGH)
    )
    cached = cache.get(sink.records[0].cache.cache_key)
    assert all(i.type != "Tampered" for i in cached.indicators)


def test_analyze_until_final(plain_source, clock):
    seen = []
    meter = SlopMeter(plain_source, clock=clock)

    final = asyncio.run(meter.analyze_until_final("acme", "widgets", on_provisional=seen.append))

    assert final.stage is Stage.FINAL
    assert [r.stage for r in seen] == [Stage.PROVISIONAL]


def test_request_counters_are_per_run(clock):
    meter = SlopMeter(FakeSource(contents=PLAIN_CONTENTS), clock=clock)
    sink = RecordingSink()

    async def scenario():
        await meter.analyze("acme", "widgets", recipient=sink)
        await meter.analyze("acme", "gadgets", recipient=sink)
        await meter.wait_for_pending()

    asyncio.run(scenario())
    assert sorted(r.diagnostics.request_count for r in sink.records) == [7, 7]
    assert {r.repo_id for r in sink.records} == {"acme/widgets", "acme/gadgets"}


def test_dedupe_indicators_keeps_first_occurrence():
    a = SlopIndicator("Bulk Commits", "3 large commit(s)", Severity.MEDIUM)
    b = SlopIndicator("Bulk Commits", "3 large commit(s)", Severity.HIGH)
    c = SlopIndicator("Bulk Commits", "4 large commit(s)", Severity.HIGH)
    assert dedupe_indicators([a, b, c]) == [a, c]
