"""
Prompt residue detection.

These patterns are based on text that assistants leave behind when their
answers are pasted into a repository: conversational phrases, placeholder
values, templated TODOs and stock README headings.
"""

import re
from collections import Counter
from dataclasses import dataclass, field

from ..signals import bounded_scale


# (pattern, label); matched against lowercased content
CONVERSATIONAL_PATTERNS = [
    (r"\bhere(?:'s| is) (?:a|an|the) (?:simple |basic |complete |updated )?(?:example|implementation|solution|version|code|function|class)\b", "AI intro phrase"),
    (r"\blet me (?:explain|show|help|create|write|know)\b", "AI conversational phrase"),
    (r"\bi(?:'ll| will) (?:create|write|implement|show|add)\b", "AI action phrase"),
    (r"\bas an ai\b", "AI self-reference"),
    (r"\bhope this helps\b", "AI politeness"),
    (r"\bfeel free to\b", "AI politeness"),
    (r"\bdon't hesitate to\b", "AI politeness"),
    (r"\bhappy to help\b", "AI politeness"),
    (r"\bcertainly!|\bsure! here\b", "AI politeness"),
]

PLACEHOLDER_PATTERNS = [
    (r"\byour_[a-z_]+_here\b", "AI placeholder pattern"),
    (r"<your[_-][^>\n]*>", "AI placeholder pattern"),
    (r"\breplace (?:this |with )?(?:with )?your\b", "AI placeholder instruction"),
]

TODO_PATTERNS = [
    (r"\b(?:todo|fixme):?\s*(?:implement|add (?:error handling|validation|tests?)|replace with (?:actual|real))", "AI-style TODO"),
    (r"\b(?:implement|add) (?:your|actual|real) (?:logic|implementation) here\b", "AI placeholder instruction"),
    (r"\.\.\. ?(?:rest of (?:the )?code|existing code)", "Elided code marker"),
]

# Case-sensitive, multiline: stock headings of generated READMEs
DOC_PATTERNS = [
    (r"^#{2,3} (?:[\U0001F300-\U0001FAFF\u2600-\u27BF]\uFE0F? )?(?:Features|Getting Started|Prerequisites|Key Features|Tech Stack|Project Structure)\s*$", "Templated README heading"),
    (r"^[*-] [\U0001F300-\U0001FAFF\u2600-\u27BF]\uFE0F? \*\*", "Emoji feature bullet"),
]


@dataclass
class CodePatternResult:
    signal: float = 0.0
    pattern_matches: int = 0
    labels: dict[str, int] = field(default_factory=dict)


class CodePatternDetector:
    """Count prompt residue markers in one file."""

    max_matches = 8

    def __init__(self):
        self._lower_patterns = [
            (re.compile(p), label)
            for p, label in CONVERSATIONAL_PATTERNS + PLACEHOLDER_PATTERNS + TODO_PATTERNS
        ]
        self._doc_patterns = [(re.compile(p, re.MULTILINE), label) for p, label in DOC_PATTERNS]

    def detect(self, path: str, content: str) -> CodePatternResult:
        labels: Counter = Counter()
        content_lower = content.lower()

        for pattern, label in self._lower_patterns:
            hits = len(pattern.findall(content_lower))
            if hits:
                labels[label] += hits

        if path.lower().endswith((".md", ".txt")):
            for pattern, label in self._doc_patterns:
                hits = len(pattern.findall(content))
                if hits:
                    labels[label] += hits

        matches = sum(labels.values())
        return CodePatternResult(
            signal=bounded_scale(matches, 0, self.max_matches),
            pattern_matches=matches,
            labels=dict(labels),
        )
