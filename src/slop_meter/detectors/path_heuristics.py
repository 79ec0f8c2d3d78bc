"""Regex sweeps over the full path list for AI-tool path fragments."""

import re
from dataclasses import dataclass
from typing import Iterable

from ..models import FileNode, Severity, SlopIndicator
from ..signals import bounded_scale


PATH_KEYWORD_PATTERN = re.compile(
    r"(?:^|/)(?:ai|copilot|cursor|claude|chatgpt|gpt|openai|llm|prompt|prompts|instructions?)(?:/|\.|_|-)",
    re.IGNORECASE,
)

WORKFLOW_PATH_PATTERN = re.compile(
    r"(\.opencode/|\.cursor/|\.aider/|\.github/copilot|AGENTS\.md|CLAUDE\.md|openspec)",
    re.IGNORECASE,
)


@dataclass
class PathSweepResult:
    keyword_matches: int
    keyword_signal: float
    workflow_matches: int
    workflow_signal: float

    def indicators(self) -> list[SlopIndicator]:
        indicators = []
        if self.keyword_matches > 0:
            indicators.append(SlopIndicator(
                type="AI-oriented File Paths",
                description=f"{self.keyword_matches} file path(s) reference AI/prompt/instruction keywords",
                severity=Severity.MEDIUM if self.keyword_matches >= 4 else Severity.LOW,
            ))
        if self.workflow_matches > 0:
            indicators.append(SlopIndicator(
                type="AI Workflow Files",
                description=f"{self.workflow_matches} workflow/instruction file path(s) detected",
                severity=Severity.MEDIUM if self.workflow_matches >= 3 else Severity.LOW,
            ))
        return indicators


def sweep_paths(files: Iterable[FileNode]) -> PathSweepResult:
    """Count files whose path mentions AI keywords or AI workflow locations."""
    paths = [node.path for node in files if node.is_file]
    keyword_matches = sum(1 for p in paths if PATH_KEYWORD_PATTERN.search(p))
    workflow_matches = sum(1 for p in paths if WORKFLOW_PATH_PATTERN.search(p))
    return PathSweepResult(
        keyword_matches=keyword_matches,
        keyword_signal=bounded_scale(keyword_matches, 1, 12),
        workflow_matches=workflow_matches,
        workflow_signal=bounded_scale(workflow_matches, 1, 10),
    )
