"""Detection modules for AI-generated repositories."""

from .code_pattern_detector import CodePatternDetector, CodePatternResult
from .comment_detector import CommentConfig, CommentDetector, CommentResult
from .commit_analyzer import CommitAnalyzer, CommitConfig, CommitResult
from .config_detector import ConfigFileDetector, ConfigResult
from .path_heuristics import PathSweepResult, sweep_paths
from .repetition_detector import RepetitionConfig, RepetitionDetector, RepetitionResult
from .structure_detector import StructureDetector, StructureResult

__all__ = [
    "CodePatternDetector",
    "CodePatternResult",
    "CommentConfig",
    "CommentDetector",
    "CommentResult",
    "CommitAnalyzer",
    "CommitConfig",
    "CommitResult",
    "ConfigFileDetector",
    "ConfigResult",
    "PathSweepResult",
    "sweep_paths",
    "RepetitionConfig",
    "RepetitionDetector",
    "RepetitionResult",
    "StructureDetector",
    "StructureResult",
]
