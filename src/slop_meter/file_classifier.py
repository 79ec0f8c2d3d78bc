"""Classify repository paths for sampling and per-file detectors."""

import re
from typing import Iterable

from .models import FileNode


# Source code: the comment detector only runs on these
CODE_EXTENSIONS = {
    ".ts", ".tsx", ".js", ".jsx",
    ".py",
    ".go",
    ".rs",
    ".java",
    ".cs",
    ".rb",
}

DOC_EXTENSIONS = {".md", ".txt"}

CONFIG_EXTENSIONS = {".yml", ".yaml", ".json", ".toml", ".ini"}

# Anything outside this allowlist is never fetched
ANALYZABLE_EXTENSIONS = CODE_EXTENSIONS | DOC_EXTENSIONS | CONFIG_EXTENSIONS

# Paths likely to carry AI-authorship evidence; sampled first
PRIORITY_PATTERN = re.compile(
    r"(ai|copilot|cursor|claude|gpt|prompt|instruction|generated|scaffold|template|readme|contributing|guide)",
    re.IGNORECASE,
)


def _extension(path: str) -> str:
    name = path.rsplit("/", 1)[-1]
    dot = name.rfind(".")
    return name[dot:].lower() if dot >= 0 else ""


class FileClassifier:
    """Decide which files are worth fetching and which are source code."""

    def __init__(self):
        self.code_extensions = CODE_EXTENSIONS
        self.analyzable_extensions = ANALYZABLE_EXTENSIONS

    def is_code(self, path: str) -> bool:
        return _extension(path) in self.code_extensions

    def is_analyzable(self, node: FileNode) -> bool:
        return node.is_file and _extension(node.name) in self.analyzable_extensions

    def is_priority(self, path: str) -> bool:
        return PRIORITY_PATTERN.search(path) is not None

    def analyzable(self, files: Iterable[FileNode]) -> list[FileNode]:
        return [f for f in files if self.is_analyzable(f)]
