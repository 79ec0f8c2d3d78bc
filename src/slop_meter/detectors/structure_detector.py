"""
Structure analysis for scaffolding signatures.

Generated projects tend to stamp out the same module layout again and
again: directories holding an identical set of filenames, and the same
filenames recurring across the tree.
"""

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import Iterable

from ..models import FileNode, Severity, SlopIndicator
from ..signals import bounded_scale, ratio


@dataclass
class StructureResult:
    uniformity_signal: float
    repeated_shapes: int
    name_repetition_ratio: float = 0.0
    indicators: list[SlopIndicator] = field(default_factory=list)


class StructureDetector:
    """Find repeated directory shapes and repeated filenames."""

    min_shape_files = 2
    min_shape_repeats = 3

    def detect(self, files: Iterable[FileNode]) -> StructureResult:
        file_nodes = [node for node in files if node.is_file]

        groups: dict[str, list[str]] = defaultdict(list)
        for node in file_nodes:
            parent, _, leaf = node.path.rpartition("/")
            groups[parent].append(leaf)

        shape_counts = Counter("|".join(sorted(names)) for names in groups.values())

        repeated_shapes = 0
        directories_with_repeated_shape = 0
        for shape, count in shape_counts.items():
            if not shape:
                continue
            if count >= self.min_shape_repeats and len(shape.split("|")) >= self.min_shape_files:
                repeated_shapes += 1
                directories_with_repeated_shape += count

        repeated_ratio = ratio(directories_with_repeated_shape, max(len(groups), 1))
        uniformity = bounded_scale(
            repeated_ratio * 1.2 + bounded_scale(repeated_shapes, 1, 6),
            0.15,
            1.6,
        )

        indicators = []
        if repeated_shapes > 0:
            indicators.append(SlopIndicator(
                type="Uniform Module Scaffolds",
                description=f"{repeated_shapes} repeating directory scaffold shapes detected",
                severity=Severity.HIGH if repeated_shapes >= 3 else Severity.MEDIUM,
            ))

        name_ratio = name_repetition_ratio(file_nodes)
        if name_ratio > 0.55:
            indicators.append(SlopIndicator(
                type="Repeated File Templates",
                description="High ratio of repeated filenames across directories",
                severity=Severity.HIGH if name_ratio > 0.72 else Severity.MEDIUM,
            ))

        return StructureResult(
            uniformity_signal=min(uniformity + name_ratio * 0.25, 1.0),
            repeated_shapes=repeated_shapes,
            name_repetition_ratio=name_ratio,
            indicators=indicators,
        )


def name_repetition_ratio(files: Iterable[FileNode]) -> float:
    """Fraction of files whose bare filename appears more than once."""
    names = Counter(node.name for node in files if node.is_file)
    total = sum(names.values())
    if total == 0:
        return 0.0
    repeated = sum(count for count in names.values() if count > 1)
    return repeated / total
