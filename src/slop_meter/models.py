"""Data models for slop analysis results."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class Severity(Enum):
    """Severity of a single piece of evidence."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def from_count(cls, count: int) -> "Severity":
        """0 matches -> low, 1 -> medium, 2+ -> high."""
        if count > 1:
            return cls.HIGH
        elif count == 1:
            return cls.MEDIUM
        return cls.LOW


class Confidence(Enum):
    """Confidence band attached to a slop score."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Stage(Enum):
    """Delivery stage of an analysis run."""
    PROVISIONAL = "provisional"
    FINAL = "final"


@dataclass(frozen=True)
class FileNode:
    """One entry of a flattened repository tree."""
    name: str
    path: str
    type: str  # "file" or "dir"
    url: Optional[str] = None

    @property
    def is_file(self) -> bool:
        return self.type == "file"

    @classmethod
    def from_path(cls, path: str, type: str = "file", url: Optional[str] = None) -> "FileNode":
        return cls(name=path.rsplit("/", 1)[-1], path=path, type=type, url=url)


@dataclass(frozen=True)
class SampledFile:
    """A file whose text content was fetched for per-file detectors."""
    path: str
    content: str


@dataclass(frozen=True)
class SlopIndicator:
    """A human-readable unit of evidence."""
    type: str
    description: str
    severity: Severity

    @property
    def is_significant(self) -> bool:
        """Medium and high indicators count towards escalation rules."""
        return self.severity is not Severity.LOW

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "description": self.description,
            "severity": self.severity.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SlopIndicator":
        return cls(
            type=data["type"],
            description=data["description"],
            severity=Severity(data["severity"]),
        )


@dataclass(frozen=True)
class FeatureContribution:
    """One weighted row of the score computation."""
    feature: str
    raw: float
    normalized: float
    weight: float
    contribution: float
    notes: str = ""

    def to_dict(self) -> dict:
        return {
            "feature": self.feature,
            "raw": self.raw,
            "normalized": self.normalized,
            "weight": self.weight,
            "contribution": self.contribution,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FeatureContribution":
        return cls(
            feature=data["feature"],
            raw=data["raw"],
            normalized=data["normalized"],
            weight=data["weight"],
            contribution=data["contribution"],
            notes=data.get("notes", ""),
        )


@dataclass
class ScoreBreakdown:
    """Contributions grouped into display buckets."""
    configs: float = 0
    commits: float = 0
    patterns: float = 0
    structure: float = 0
    repetition: float = 0

    def to_dict(self) -> dict:
        return {
            "configs": self.configs,
            "commits": self.commits,
            "patterns": self.patterns,
            "structure": self.structure,
            "repetition": self.repetition,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ScoreBreakdown":
        return cls(**{key: data.get(key, 0) for key in cls().to_dict()})


@dataclass
class SlopScore:
    """Output of the score aggregator."""
    overall: int
    breakdown: ScoreBreakdown
    confidence: Confidence
    evidence_strength: float
    contributions: list[FeatureContribution] = field(default_factory=list)
    raw_score: float = 0.0
    applied_rules: list[str] = field(default_factory=list)


@dataclass
class TimingInfo:
    """Wall-clock timings in milliseconds."""
    started_at: int
    time_to_first_badge: int
    time_to_final_score: Optional[int] = None

    def to_dict(self) -> dict:
        data = {
            "startedAt": self.started_at,
            "timeToFirstBadge": self.time_to_first_badge,
        }
        if self.time_to_final_score is not None:
            data["timeToFinalScore"] = self.time_to_final_score
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "TimingInfo":
        return cls(
            started_at=data["startedAt"],
            time_to_first_badge=data["timeToFirstBadge"],
            time_to_final_score=data.get("timeToFinalScore"),
        )


@dataclass
class AnalysisDiagnostics:
    """Supporting numbers for a single analysis run."""
    timing: TimingInfo
    request_count: int = 0
    sampled_files: int = 0
    feature_values: dict[str, float] = field(default_factory=dict)
    score_contributions: list[FeatureContribution] = field(default_factory=list)
    evidence_strength: float = 0.0

    def to_dict(self) -> dict:
        return {
            "timingMs": self.timing.to_dict(),
            "requestCount": self.request_count,
            "sampledFiles": self.sampled_files,
            "featureValues": dict(self.feature_values),
            "scoreContributions": [c.to_dict() for c in self.score_contributions],
            "evidenceStrength": self.evidence_strength,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AnalysisDiagnostics":
        return cls(
            timing=TimingInfo.from_dict(data["timingMs"]),
            request_count=data.get("requestCount", 0),
            sampled_files=data.get("sampledFiles", 0),
            feature_values=dict(data.get("featureValues", {})),
            score_contributions=[
                FeatureContribution.from_dict(c) for c in data.get("scoreContributions", [])
            ],
            evidence_strength=data.get("evidenceStrength", 0.0),
        )


@dataclass
class CacheInfo:
    """Cache metadata attached to a delivered analysis."""
    is_cached: bool = False
    cache_key: Optional[str] = None

    def to_dict(self) -> dict:
        data = {"isCached": self.is_cached}
        if self.cache_key is not None:
            data["cacheKey"] = self.cache_key
        return data


@dataclass
class RepoAnalysis:
    """Complete analysis of a repository, provisional or final."""
    repo_id: str
    repo_name: str
    slop_score: int
    confidence: Confidence
    stage: Stage
    indicators: list[SlopIndicator]
    score_breakdown: ScoreBreakdown
    diagnostics: AnalysisDiagnostics
    cache: CacheInfo = field(default_factory=CacheInfo)
    timestamp: int = 0  # epoch milliseconds
    semantics: str = "likelihood"

    @property
    def is_final(self) -> bool:
        return self.stage is Stage.FINAL

    def to_dict(self) -> dict:
        """Serialize to the consumer-facing JSON shape."""
        return {
            "repoId": self.repo_id,
            "repoName": self.repo_name,
            "slopScore": self.slop_score,
            "confidence": self.confidence.value,
            "stage": self.stage.value,
            "semantics": self.semantics,
            "indicators": [i.to_dict() for i in self.indicators],
            "scoreBreakdown": self.score_breakdown.to_dict(),
            "diagnostics": self.diagnostics.to_dict(),
            "cache": self.cache.to_dict(),
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RepoAnalysis":
        cache = data.get("cache", {})
        return cls(
            repo_id=data["repoId"],
            repo_name=data["repoName"],
            slop_score=data["slopScore"],
            confidence=Confidence(data["confidence"]),
            stage=Stage(data["stage"]),
            indicators=[SlopIndicator.from_dict(i) for i in data.get("indicators", [])],
            score_breakdown=ScoreBreakdown.from_dict(data.get("scoreBreakdown", {})),
            diagnostics=AnalysisDiagnostics.from_dict(data["diagnostics"]),
            cache=CacheInfo(
                is_cached=cache.get("isCached", False),
                cache_key=cache.get("cacheKey"),
            ),
            timestamp=data.get("timestamp", 0),
            semantics=data.get("semantics", "likelihood"),
        )


@dataclass(frozen=True)
class RepoInfo:
    """Repository metadata needed by the analyzer."""
    default_branch: str
    created_at: Optional[datetime] = None
    star_count: Optional[int] = None


@dataclass(frozen=True)
class CommitRecord:
    """A single commit from the history, most recent first."""
    sha: str
    message: str
    author_date: Optional[datetime] = None
    changed_files: Optional[int] = None
    additions: Optional[int] = None
    deletions: Optional[int] = None

    @property
    def subject(self) -> str:
        return self.message.strip().split("\n")[0].strip()

    @property
    def changed_lines(self) -> Optional[int]:
        if self.additions is None and self.deletions is None:
            return None
        return (self.additions or 0) + (self.deletions or 0)
