"""
Prompt-like comment detection.

AI assistants narrate code the way they narrate a chat answer: "Here we
initialize the list", "Step 2: loop through the items", "This function
handles...". These comments explain the obvious and come in blocks.
"""

import re
from dataclasses import dataclass, field
from typing import Optional

from ..models import Severity, SlopIndicator
from ..signals import bounded_scale, clamp


LINE_COMMENT_PREFIXES = ("//", "#", "--")
BLOCK_COMMENT_PREFIXES = ("/*", "*/", "*")
DOCSTRING_DELIMITERS = ('"""', "'''")

# Lines such as "#!/usr/bin/env" or "#include" are code, not comments
NON_COMMENT_HASH = re.compile(r"^#(?:!|include\b|define\b|if\b|endif\b|pragma\b|region\b|endregion\b)")

PROMPT_LIKE_PATTERNS = [
    re.compile(r"^(?:this|the following) (?:function|method|class|component|module|code|hook|file|helper|block|line)s? (?:is|will|handles?|does|takes|returns|creates|is used to|is responsible)\b"),
    re.compile(r"^here (?:we|is|are|i)\b"),
    re.compile(r"^(?:now |first |then |next )?we (?:need to|will|can|have to|should)\b"),
    re.compile(r"^step \d+\s*[:.)-]"),
    re.compile(r"^(?:first|next|then|finally),? (?:we|let's|check|create|initialize|set|call|return|update|add)\b"),
    re.compile(r"^(?:initialize|initializing|init) (?:the |a |an |our )?\w+"),
    re.compile(r"^(?:loop|iterate|iterating) (?:through|over)\b"),
    re.compile(r"^check (?:if|whether)\b"),
    re.compile(r"^return (?:the )?(?:result|value|data|response|final)\b"),
    re.compile(r"^(?:helper|utility) (?:function|method) (?:to|for|that)\b"),
    re.compile(r"^(?:make sure|ensure) (?:that|we|the)\b"),
    re.compile(r"^(?:import|define|declare) (?:the |all |necessary |required )"),
    re.compile(r"^(?:handle|handling) (?:the |any |potential )?(?:error|errors|edge cases?|exceptions?)\b"),
    re.compile(r"\bfor (?:better|improved) (?:readability|maintainability|performance|clarity)\b"),
    re.compile(r"\bthis (?:ensures|allows|makes sure|guarantees)\b"),
    re.compile(r"^note:\s"),
    re.compile(r"^(?:create|add|update|set|get) (?:a |an |the )?new \w+"),
]


@dataclass
class CommentConfig:
    """Configuration for comment detection."""
    min_block_lines: int = 3
    max_matched_lines: int = 12
    max_verbose_blocks: int = 3


@dataclass
class CommentResult:
    verbose_blocks: int = 0
    matched_lines: int = 0
    comment_signal: float = 0.0
    indicators: list[SlopIndicator] = field(default_factory=list)


class CommentDetector:
    """Find runs of comments that read like an assistant explaining itself."""

    def __init__(self, config: Optional[CommentConfig] = None):
        self.config = config or CommentConfig()

    def detect(self, content: str) -> CommentResult:
        matched_lines = 0
        verbose_blocks = 0
        run_length = 0
        run_matches = 0
        in_docstring = False

        for line in content.split("\n"):
            text, in_docstring = self._comment_text(line.strip(), in_docstring)
            if text is None:
                verbose_blocks += self._close_run(run_length, run_matches)
                run_length = run_matches = 0
                continue

            run_length += 1
            if text and is_prompt_like(text):
                matched_lines += 1
                run_matches += 1

        verbose_blocks += self._close_run(run_length, run_matches)

        signal = clamp(
            bounded_scale(matched_lines, 0, self.config.max_matched_lines) * 0.7
            + bounded_scale(verbose_blocks, 0, self.config.max_verbose_blocks) * 0.3,
            0.0,
            1.0,
        )

        indicators = []
        if verbose_blocks >= 2:
            indicators.append(SlopIndicator(
                type="Verbose Comment Blocks",
                description=f"{verbose_blocks} comment blocks narrate obvious code",
                severity=Severity.HIGH if verbose_blocks >= 4 else Severity.MEDIUM,
            ))

        return CommentResult(
            verbose_blocks=verbose_blocks,
            matched_lines=matched_lines,
            comment_signal=signal,
            indicators=indicators,
        )

    def _close_run(self, run_length: int, run_matches: int) -> int:
        return 1 if run_length >= self.config.min_block_lines and run_matches > 0 else 0

    def _comment_text(self, stripped: str, in_docstring: bool) -> tuple[Optional[str], bool]:
        """Return (comment text or None for code lines, docstring state after the line)."""
        for delimiter in DOCSTRING_DELIMITERS:
            if delimiter in stripped:
                toggles = stripped.count(delimiter) % 2 == 1
                text = stripped.replace(delimiter, "").strip().lower()
                if in_docstring or stripped.startswith(delimiter):
                    return text, in_docstring != toggles
                return None, in_docstring != toggles

        if in_docstring:
            return stripped.lower(), True

        if not stripped:
            return None, False

        if stripped.startswith("#") and NON_COMMENT_HASH.match(stripped):
            return None, False

        for prefix in LINE_COMMENT_PREFIXES + BLOCK_COMMENT_PREFIXES:
            if stripped.startswith(prefix):
                return stripped.lstrip("/#-*").strip().lower(), False

        return None, False


def is_prompt_like(text: str) -> bool:
    return any(pattern.search(text) for pattern in PROMPT_LIKE_PATTERNS)


def empty_result() -> CommentResult:
    """Stub result for files that are not source code."""
    return CommentResult()
