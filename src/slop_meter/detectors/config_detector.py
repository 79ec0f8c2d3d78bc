"""Detect AI-assistant instruction and configuration files."""

from dataclasses import dataclass, field
from typing import Iterable

from ..models import FileNode, Severity


# Exact, case-sensitive names. A path ending in one of these also matches,
# so nested entries such as ".github/copilot-instructions.md" are found.
AI_CONFIG_FILES = (
    ".cursorrules",
    ".copilot-instructions",
    "copilot.yml",
    ".windsurfrules",
    ".ai-instructions",
    "ai-instructions.md",
    ".github/copilot-instructions.md",
    ".github/instructions.md",
    "CLAUDE.md",
    ".cursor/rules",
    ".continue/config.json",
)


@dataclass
class ConfigResult:
    """Matched AI config files."""
    found: bool
    files: list[str] = field(default_factory=list)
    severity: Severity = Severity.LOW


class ConfigFileDetector:
    """Match tree entries against the known AI config filenames."""

    def __init__(self, config_files: tuple[str, ...] = AI_CONFIG_FILES):
        self.config_files = config_files

    def detect(self, files: Iterable[FileNode]) -> ConfigResult:
        matched = [
            node.path for node in files
            if any(node.name == name or node.path.endswith(name) for name in self.config_files)
        ]
        return ConfigResult(
            found=bool(matched),
            files=matched,
            severity=Severity.from_count(len(matched)),
        )
