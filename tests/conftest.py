"""Shared fixtures: an in-memory repository source and a recording sink."""

from datetime import datetime, timedelta, timezone

import pytest

from slop_meter.errors import SampledFileFetchError
from slop_meter.models import (
    AnalysisDiagnostics,
    CacheInfo,
    CommitRecord,
    Confidence,
    FeatureContribution,
    FileNode,
    RepoAnalysis,
    RepoInfo,
    ScoreBreakdown,
    Severity,
    SlopIndicator,
    Stage,
    TimingInfo,
)
from slop_meter.source import RepositoryDataSource

AI_MESSAGE = (
    "Implement comprehensive user authentication flow\n"
    "\n"
    "- Add login endpoint\n"
    "- Add logout endpoint\n"
    "- Add session handling\n"
)


def make_commits(messages, start=None, gap_minutes=3.0, **stats):
    """Most-recent-first commits spaced ``gap_minutes`` apart."""
    start = start or datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)
    commits = []
    for i, message in enumerate(messages):
        commits.append(CommitRecord(
            sha=f"{i:040x}",
            message=message,
            author_date=start - timedelta(minutes=gap_minutes * i),
            **stats,
        ))
    return commits


def human_commits(count=8):
    """Terse messages at irregular, multi-day gaps."""
    start = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)
    gaps_hours = [30, 75, 4, 130, 52, 9, 200, 18, 61, 33]
    messages = ["fix typo", "bump deps", "handle empty input", "tidy", "release 1.2"]
    commits = []
    when = start
    for i in range(count):
        commits.append(CommitRecord(
            sha=f"{i + 100:040x}",
            message=messages[i % len(messages)],
            author_date=when,
        ))
        when = when - timedelta(hours=gaps_hours[i % len(gaps_hours)])
    return commits


def make_tree(contents, extra_paths=()):
    """File nodes for every content path plus any extra paths; parent dirs included."""
    nodes = []
    seen_dirs = set()
    for path in list(contents) + list(extra_paths):
        parts = path.split("/")[:-1]
        for depth in range(1, len(parts) + 1):
            directory = "/".join(parts[:depth])
            if directory not in seen_dirs:
                seen_dirs.add(directory)
                nodes.append(FileNode.from_path(directory, type="dir"))
        nodes.append(FileNode.from_path(path))
    return nodes


class FakeSource(RepositoryDataSource):
    """In-memory repository data source that records every call."""

    def __init__(
        self,
        repo_info=None,
        commits=None,
        contents=None,
        extra_paths=(),
        failures=None,
        broken_files=(),
    ):
        self.repo_info = repo_info or RepoInfo(
            default_branch="main",
            created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
            star_count=3,
        )
        self.commits = commits if commits is not None else human_commits()
        self.contents = dict(contents or {})
        self.files = make_tree(self.contents, extra_paths)
        self.failures = dict(failures or {})
        self.broken_files = set(broken_files)
        self.calls = []

    def _record(self, name, *args):
        self.calls.append((name,) + args)
        if name in self.failures:
            raise self.failures[name]

    def count(self, name):
        return sum(1 for call in self.calls if call[0] == name)

    async def get_repo_info(self, owner, repo):
        self._record("get_repo_info", owner, repo)
        return self.repo_info

    async def get_commit_history(self, owner, repo):
        self._record("get_commit_history", owner, repo)
        return list(self.commits)

    async def get_file_tree(self, owner, repo, ref):
        self._record("get_file_tree", owner, repo, ref)
        return list(self.files)

    async def get_file_content(self, owner, repo, path, ref):
        self._record("get_file_content", owner, repo, path, ref)
        if path in self.broken_files:
            raise SampledFileFetchError(path, f"Failed to fetch file content: 500 for {path}")
        if path not in self.contents:
            raise SampledFileFetchError(path)
        return self.contents[path]


class RecordingSink:
    """Publication sink that keeps every record it receives."""

    def __init__(self):
        self.records = []

    def publish(self, analysis):
        self.records.append(analysis)


class FakeClock:
    """Manually advanced clock returning epoch seconds."""

    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


PLAIN_CONTENTS = {
    "README.md": "# widgets\n\nSmall utilities for widget inventories.\n",
    "setup.cfg": "[metadata]\nname = widgets\n",
    "widgets/core.py": (
        "import math\n\n\n"
        "def area(radius):\n"
        "    return math.pi * radius ** 2\n"
    ),
    "widgets/io.py": (
        "import json\n\n\n"
        "def load(path):\n"
        "    with open(path) as handle:\n"
        "        return json.load(handle)\n"
    ),
    "docs/usage.txt": "Call area() with a radius in metres.\n",
}


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def plain_source():
    return FakeSource(contents=PLAIN_CONTENTS)


@pytest.fixture
def analysis():
    """A final record with one of everything."""
    return RepoAnalysis(
        repo_id="acme/widgets",
        repo_name="acme/widgets",
        slop_score=57,
        confidence=Confidence.MEDIUM,
        stage=Stage.FINAL,
        indicators=[SlopIndicator("Bulk Commits", "3 large commit(s) described by terse messages", Severity.MEDIUM)],
        score_breakdown=ScoreBreakdown(configs=10, commits=30, patterns=5, structure=2, repetition=1),
        diagnostics=AnalysisDiagnostics(
            timing=TimingInfo(started_at=1000, time_to_first_badge=120, time_to_final_score=900),
            request_count=12,
            sampled_files=9,
            feature_values={"configSignal": 0.65, "pathKeywordMatches": 2},
            score_contributions=[
                FeatureContribution("configSignal", 0.65, 0.65, 0.16, 10.4, "AI-specific config and instruction files"),
            ],
            evidence_strength=0.81,
        ),
        cache=CacheInfo(is_cached=False, cache_key="acme/widgets:main:abc"),
        timestamp=1_700_000_000_000,
    )
