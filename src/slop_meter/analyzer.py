"""
Main analyzer orchestrating all detection modules.

An analysis runs in two phases. The commit pass is cheap: its provisional
result is returned to the caller directly. The deep pass (tree walk, file
sampling, per-file detectors) then runs as an independent task whose only
output is the final record handed to the publication sinks.
"""

import asyncio
import copy
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional

from .aggregator import AggregatorConfig, ScoreAggregator, ScoringFeatures
from .cache import CacheStore
from .detectors.code_pattern_detector import CodePatternDetector
from .detectors.comment_detector import CommentConfig, CommentDetector, empty_result
from .detectors.commit_analyzer import CommitAnalyzer, CommitConfig, CommitResult
from .detectors.config_detector import ConfigFileDetector
from .detectors.path_heuristics import sweep_paths
from .detectors.repetition_detector import RepetitionConfig, RepetitionDetector
from .detectors.structure_detector import StructureDetector
from .errors import AnalysisRequestError, DeepPassFailure, describe_error
from .file_classifier import FileClassifier
from .logging import get_logger
from .models import (
    AnalysisDiagnostics,
    CacheInfo,
    Confidence,
    RepoAnalysis,
    RepoInfo,
    SampledFile,
    Severity,
    SlopIndicator,
    SlopScore,
    Stage,
    TimingInfo,
)
from .publish import Broadcaster, FinalResultWaiter, PublicationSink, deliver
from .sampling import map_with_concurrency, pick_sample_files
from .signals import bounded_scale, clamp, count_strong_signals, ratio, round2
from .source import RepositoryDataSource

logger = get_logger("analyzer")


@dataclass
class AnalyzerConfig:
    """Configuration for the main analyzer."""
    cache_ttl_seconds: int = 60 * 60
    max_sampled_files: int = 28
    fetch_concurrency: int = 4

    # Legacy repository dampener
    legacy_cutoff: datetime = datetime(2020, 1, 1, tzinfo=timezone.utc)
    legacy_min_stars: int = 150

    # Sub-configs
    aggregator_config: Optional[AggregatorConfig] = None
    commit_config: Optional[CommitConfig] = None
    comment_config: Optional[CommentConfig] = None
    repetition_config: Optional[RepetitionConfig] = None


class RequestCounter:
    """Outbound request tally owned by a single analysis run."""

    def __init__(self, count: int = 0):
        self.count = count

    async def track(self, request: Awaitable[Any]) -> Any:
        self.count += 1
        return await request


@dataclass
class AnalysisRun:
    """State carried from the commit pass into the deep pass."""
    owner: str
    repo: str
    repo_info: RepoInfo
    cache_key: str
    commit_result: CommitResult
    started_at: int
    counter: RequestCounter
    recipient: Optional[PublicationSink] = None
    provisional: Optional[RepoAnalysis] = None

    @property
    def repo_id(self) -> str:
        return f"{self.owner}/{self.repo}"


@dataclass
class SampleEvidence:
    """Per-file detector results folded across every fetched sample."""
    sample_count: int = 0
    comment_signal_total: float = 0.0
    comment_signal_max: float = 0.0
    comment_hits: int = 0
    matched_comment_lines: int = 0
    verbose_blocks: int = 0
    code_pattern_total: float = 0.0
    code_pattern_max: float = 0.0
    code_pattern_matches: int = 0
    code_pattern_files: list[tuple[str, int]] = field(default_factory=list)

    @property
    def comment_hit_rate(self) -> float:
        return ratio(self.comment_hits, max(self.sample_count, 1))

    def comment_pattern_signal(self) -> float:
        samples = max(self.sample_count, 1)
        return clamp(
            ratio(self.comment_signal_total, samples) * 0.35
            + self.comment_signal_max * 0.25
            + ratio(self.code_pattern_total, samples) * 0.15
            + self.code_pattern_max * 0.1
            + bounded_scale(self.comment_hit_rate, 0.08, 0.45) * 0.1
            + bounded_scale(self.matched_comment_lines, 3, 24) * 0.25,
            0.0,
            1.0,
        )

    def indicators(self) -> list[SlopIndicator]:
        indicators = []
        lines = self.matched_comment_lines
        if lines > 0:
            indicators.append(SlopIndicator(
                type="Prompt-like Comment Pattern",
                description=f"Detected {lines} AI-like comment lines across {self.verbose_blocks} block(s)",
                severity=Severity.HIGH if lines >= 8 else Severity.MEDIUM if lines >= 3 else Severity.LOW,
            ))

        matches = self.code_pattern_matches
        if matches > 0:
            indicators.append(SlopIndicator(
                type="AI Boilerplate Trace",
                description=f"{matches} prompt-like marker(s) across {len(self.code_pattern_files)} file(s)",
                severity=Severity.HIGH if matches >= 12 else Severity.MEDIUM if matches >= 4 else Severity.LOW,
            ))
            top = sorted(self.code_pattern_files, key=lambda entry: entry[1], reverse=True)[:3]
            indicators.append(SlopIndicator(
                type="AI Boilerplate Trace",
                description="Top files: " + ", ".join(f"{path} ({count})" for path, count in top),
                severity=Severity.LOW,
            ))
        return indicators


class SlopMeter:
    """Main slop analysis orchestrator."""

    def __init__(
        self,
        source: RepositoryDataSource,
        cache: Optional[CacheStore] = None,
        broadcaster: Optional[Broadcaster] = None,
        config: Optional[AnalyzerConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.source = source
        self.cache = cache
        self.broadcaster = broadcaster or Broadcaster()
        self.config = config or AnalyzerConfig()
        self._clock = clock

        # Initialize components
        self.file_classifier = FileClassifier()
        self.commit_analyzer = CommitAnalyzer(self.config.commit_config)
        self.config_detector = ConfigFileDetector()
        self.structure_detector = StructureDetector()
        self.comment_detector = CommentDetector(self.config.comment_config)
        self.code_pattern_detector = CodePatternDetector()
        self.repetition_detector = RepetitionDetector(self.config.repetition_config)
        self.aggregator = ScoreAggregator(self.config.aggregator_config)

        self._pending: set[asyncio.Task] = set()

    async def analyze(
        self,
        owner: str,
        repo: str,
        recipient: Optional[PublicationSink] = None,
    ) -> RepoAnalysis:
        """
        Analyze a repository.

        Returns a cached final record when a fresh one exists. Otherwise
        returns the provisional record and schedules the deep pass, whose
        final record is delivered to ``recipient`` and the broadcaster.

        Raises:
            AnalysisRequestError: repository metadata or commit history
                could not be fetched. The message is user-facing.
        """
        repo_id = f"{owner}/{repo}"
        started_at = self._now_ms()
        counter = RequestCounter()

        try:
            repo_info = await counter.track(self.source.get_repo_info(owner, repo))
            commits = await counter.track(self.source.get_commit_history(owner, repo))
        except Exception as e:
            message = describe_error(e)
            logger.warning("Analysis of %s failed: %s", repo_id, message)
            raise AnalysisRequestError(message) from e

        latest_sha = commits[0].sha if commits else "no-commits"
        cache_key = f"{repo_id}:{repo_info.default_branch}:{latest_sha}"

        cached = self._fresh_cached(cache_key)
        if cached is not None:
            logger.debug("Serving %s from cache", cache_key)
            return cached

        run = AnalysisRun(
            owner=owner,
            repo=repo,
            repo_info=repo_info,
            cache_key=cache_key,
            commit_result=self.commit_analyzer.analyze(commits),
            started_at=started_at,
            counter=counter,
            recipient=recipient,
        )
        run.provisional = self._provisional_analysis(run)

        task = asyncio.create_task(self._run_deep_pass(run), name=f"deep-pass:{repo_id}")
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

        return copy.deepcopy(run.provisional)

    async def analyze_until_final(
        self,
        owner: str,
        repo: str,
        on_provisional: Optional[Callable[[RepoAnalysis], Any]] = None,
    ) -> RepoAnalysis:
        """Analyze and wait for the final record of this run."""
        waiter = FinalResultWaiter(f"{owner}/{repo}")
        analysis = await self.analyze(owner, repo, recipient=waiter)
        if analysis.is_final:
            return analysis
        if on_provisional is not None:
            on_provisional(analysis)
        return await waiter.wait()

    async def wait_for_pending(self) -> None:
        """Wait until every scheduled deep pass has published."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    # ------------------------------------------------------------------
    # Commit pass

    def _fresh_cached(self, cache_key: str) -> Optional[RepoAnalysis]:
        if self.cache is None:
            return None
        cached = self.cache.get(cache_key)
        if cached is None:
            return None
        if self._now_ms() - cached.timestamp >= self.config.cache_ttl_seconds * 1000:
            return None
        return replace(cached, cache=CacheInfo(is_cached=True, cache_key=cache_key))

    def _provisional_analysis(self, run: AnalysisRun) -> RepoAnalysis:
        commit = run.commit_result
        burst = commit.combined_burst_signal
        indicators = list(commit.indicators)

        scoring = self.aggregator.score(ScoringFeatures(
            commit_language_signal=commit.ai_signal,
            commit_burst_signal=burst,
            evidence_signals=count_strong_signals(
                [commit.ai_signal, commit.burst_signal, commit.bulk_signal]
            ),
            signal_values=[commit.ai_signal, burst],
            indicator_count=len(indicators),
            medium_high_indicator_count=sum(1 for i in indicators if i.is_significant),
        ))

        feature_values = {
            "configSignal": 0,
            "commitLanguageSignal": round2(commit.ai_signal),
            "commitBurstSignal": round2(burst),
            "commentPatternSignal": 0,
            "repetitionSignal": 0,
            "structureUniformitySignal": 0,
        }
        now = self._now_ms()
        timing = TimingInfo(started_at=run.started_at, time_to_first_badge=now - run.started_at)
        return self._build_analysis(
            run, Stage.PROVISIONAL, scoring, indicators, feature_values, timing, sampled_files=0
        )

    # ------------------------------------------------------------------
    # Deep pass

    async def _run_deep_pass(self, run: AnalysisRun) -> None:
        try:
            final = await self._deep_pass(run)
        except DeepPassFailure:
            logger.exception("Deep analysis of %s failed", run.repo_id)
            final = self._degraded_final(run)
        await self._publish(final, run.recipient)

    async def _deep_pass(self, run: AnalysisRun) -> RepoAnalysis:
        try:
            files = await run.counter.track(
                self.source.get_file_tree(run.owner, run.repo, run.repo_info.default_branch)
            )
            config_result = self.config_detector.detect(files)
            structure_result = self.structure_detector.detect(files)

            samples = await self._fetch_samples(run, self.file_classifier.analyzable(files))
            evidence = self._collect_sample_evidence(samples)
            repetition_result = self.repetition_detector.detect(samples)
            paths = sweep_paths(files)

            base_config_signal = (
                min(0.45 + len(config_result.files) * 0.2, 1.0) if config_result.found else 0.0
            )
            config_signal = clamp(
                base_config_signal + paths.keyword_signal * 0.4 + paths.workflow_signal * 0.5,
                0.0,
                1.0,
            )
            comment_pattern_signal = evidence.comment_pattern_signal()
            commit_language_signal = run.commit_result.ai_signal
            commit_burst_signal = run.commit_result.combined_burst_signal

            is_legacy = self._is_legacy_repo(run.repo_info)
            weak_corroboration = (
                evidence.matched_comment_lines < 6
                and evidence.code_pattern_matches < 10
                and len(config_result.files) == 0
            )
            if is_legacy and weak_corroboration:
                commit_language_signal *= 0.62
                commit_burst_signal *= 0.65
                config_signal = min(config_signal, 0.18)

            indicators = list(run.commit_result.indicators)
            indicators += evidence.indicators()
            indicators += repetition_result.indicators
            indicators += structure_result.indicators
            indicators += paths.indicators()
            if config_result.found:
                indicators.append(SlopIndicator(
                    type="AI Config Files",
                    description=f"Found AI config files: {', '.join(config_result.files)}",
                    severity=config_result.severity,
                ))
            if is_legacy:
                indicators.append(SlopIndicator(
                    type="Legacy Repo Dampener",
                    description="Reduced commit/path-only confidence for long-established repository history",
                    severity=Severity.LOW,
                ))
            indicators = dedupe_indicators(indicators)

            signal_values = [
                config_signal,
                commit_language_signal,
                commit_burst_signal,
                comment_pattern_signal,
                repetition_result.repetition_signal,
                structure_result.uniformity_signal,
                paths.workflow_signal,
            ]
            scoring = self.aggregator.score(ScoringFeatures(
                config_signal=config_signal,
                commit_language_signal=commit_language_signal,
                commit_burst_signal=commit_burst_signal,
                comment_pattern_signal=comment_pattern_signal,
                repetition_signal=repetition_result.repetition_signal,
                structure_uniformity_signal=structure_result.uniformity_signal,
                evidence_signals=count_strong_signals(signal_values),
                signal_values=signal_values,
                indicator_count=len(indicators),
                medium_high_indicator_count=sum(1 for i in indicators if i.is_significant),
            ))

            feature_values = {
                "configSignal": round2(config_signal),
                "commitLanguageSignal": round2(commit_language_signal),
                "commitBurstSignal": round2(commit_burst_signal),
                "commentPatternSignal": round2(comment_pattern_signal),
                "repetitionSignal": round2(repetition_result.repetition_signal),
                "structureUniformitySignal": round2(structure_result.uniformity_signal),
                "pathKeywordSignal": round2(paths.keyword_signal),
                "pathKeywordMatches": paths.keyword_matches,
                "workflowPathSignal": round2(paths.workflow_signal),
                "aiWorkflowPathMatches": paths.workflow_matches,
                "legacyRepoDampener": 1 if is_legacy else 0,
                "verboseCommentBlocks": evidence.verbose_blocks,
                "matchedCommentLines": evidence.matched_comment_lines,
                "commentHitRate": round2(evidence.comment_hit_rate),
                "repeatedShapes": structure_result.repeated_shapes,
                "averageSimilarity": round2(repetition_result.average_similarity),
            }
            timing = TimingInfo(
                started_at=run.started_at,
                time_to_first_badge=run.provisional.diagnostics.timing.time_to_first_badge,
                time_to_final_score=self._now_ms() - run.started_at,
            )
            final = self._build_analysis(
                run, Stage.FINAL, scoring, indicators, feature_values, timing,
                sampled_files=len(samples),
            )

            if self.cache is not None:
                self.cache.set(run.cache_key, final)
            logger.debug(
                "Final score for %s: %d (%d requests, %d samples)",
                run.repo_id, final.slop_score, run.counter.count, len(samples),
            )
            return final
        except Exception as e:
            raise DeepPassFailure(f"Deep analysis of {run.repo_id} failed: {e}") from e

    async def _fetch_samples(self, run: AnalysisRun, candidates) -> list[SampledFile]:
        selected = pick_sample_files(
            candidates, self.config.max_sampled_files, self.file_classifier
        )
        ref = run.repo_info.default_branch

        async def fetch(node) -> Optional[SampledFile]:
            try:
                content = await run.counter.track(
                    self.source.get_file_content(run.owner, run.repo, node.path, ref)
                )
            except Exception as e:
                logger.warning("Skipping sampled file %s: %s", node.path, e)
                return None
            return SampledFile(path=node.path, content=content)

        fetched = await map_with_concurrency(selected, self.config.fetch_concurrency, fetch)
        return [sample for sample in fetched if sample is not None]

    def _collect_sample_evidence(self, samples: list[SampledFile]) -> SampleEvidence:
        evidence = SampleEvidence(sample_count=len(samples))
        for sample in samples:
            if self.file_classifier.is_code(sample.path):
                comments = self.comment_detector.detect(sample.content)
            else:
                comments = empty_result()
            patterns = self.code_pattern_detector.detect(sample.path, sample.content)

            evidence.verbose_blocks += comments.verbose_blocks
            evidence.matched_comment_lines += comments.matched_lines
            evidence.comment_signal_total += comments.comment_signal
            evidence.comment_signal_max = max(evidence.comment_signal_max, comments.comment_signal)
            if comments.matched_lines > 0:
                evidence.comment_hits += 1

            evidence.code_pattern_total += patterns.signal
            evidence.code_pattern_max = max(evidence.code_pattern_max, patterns.signal)
            evidence.code_pattern_matches += patterns.pattern_matches
            if patterns.pattern_matches > 0:
                evidence.code_pattern_files.append((sample.path, patterns.pattern_matches))
        return evidence

    def _degraded_final(self, run: AnalysisRun) -> RepoAnalysis:
        provisional = copy.deepcopy(run.provisional)
        provisional.diagnostics.timing.time_to_final_score = self._now_ms() - run.started_at
        return replace(
            provisional,
            stage=Stage.FINAL,
            confidence=Confidence.LOW,
            indicators=dedupe_indicators(provisional.indicators + [SlopIndicator(
                type="Deep Analysis Incomplete",
                description="Final pass did not complete; showing provisional likelihood only",
                severity=Severity.LOW,
            )]),
            timestamp=self._now_ms(),
        )

    async def _publish(self, analysis: RepoAnalysis, recipient: Optional[PublicationSink]) -> None:
        await deliver(recipient, copy.deepcopy(analysis))
        await deliver(self.broadcaster, copy.deepcopy(analysis))

    # ------------------------------------------------------------------
    # Helpers

    def _build_analysis(
        self,
        run: AnalysisRun,
        stage: Stage,
        scoring: SlopScore,
        indicators: list[SlopIndicator],
        feature_values: dict,
        timing: TimingInfo,
        sampled_files: int,
    ) -> RepoAnalysis:
        return RepoAnalysis(
            repo_id=run.repo_id,
            repo_name=run.repo_id,
            slop_score=scoring.overall,
            confidence=scoring.confidence,
            stage=stage,
            indicators=indicators,
            score_breakdown=scoring.breakdown,
            diagnostics=AnalysisDiagnostics(
                timing=timing,
                request_count=run.counter.count,
                sampled_files=sampled_files,
                feature_values=feature_values,
                score_contributions=scoring.contributions,
                evidence_strength=scoring.evidence_strength,
            ),
            cache=CacheInfo(is_cached=False, cache_key=run.cache_key),
            timestamp=self._now_ms(),
        )

    def _is_legacy_repo(self, repo_info: RepoInfo) -> bool:
        created_at = repo_info.created_at
        if created_at is None:
            return False
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        stars = repo_info.star_count or 0
        return created_at < self.config.legacy_cutoff and stars >= self.config.legacy_min_stars

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)


def dedupe_indicators(indicators: list[SlopIndicator]) -> list[SlopIndicator]:
    """Drop repeats of the same (type, description), keeping first occurrence."""
    seen = set()
    deduped = []
    for indicator in indicators:
        key = (indicator.type, indicator.description)
        if key in seen:
            continue
        seen.add(key)
        deduped.append(indicator)
    return deduped
