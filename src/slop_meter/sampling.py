"""
Deterministic file sampling and bounded-concurrency fetching.

Sampling is reproducible for a fixed tree: priority paths first, then
root-level files, then an evenly strided pass over everything else.
"""

import asyncio
import math
from typing import Awaitable, Callable, Optional, Sequence, TypeVar

from .file_classifier import FileClassifier
from .models import FileNode

T = TypeVar("T")
R = TypeVar("R")

PRIORITY_SHARE = 0.45
ROOT_SHARE = 0.6


def pick_sample_files(
    files: Sequence[FileNode],
    max_files: int,
    classifier: Optional[FileClassifier] = None,
) -> list[FileNode]:
    """Select up to ``max_files`` files to fetch."""
    if len(files) <= max_files:
        return list(files)

    classifier = classifier or FileClassifier()
    root_files = [f for f in files if "/" not in f.path]
    root_paths = {f.path for f in root_files}
    prioritized = [f for f in files if classifier.is_priority(f.path)]
    rest = [
        f for f in files
        if not classifier.is_priority(f.path) and f.path not in root_paths
    ]

    selection: list[FileNode] = []
    selected: set[str] = set()

    def push_unique(node: FileNode) -> None:
        if node.path in selected:
            return
        selected.add(node.path)
        selection.append(node)

    for node in prioritized:
        if len(selection) >= math.ceil(max_files * PRIORITY_SHARE):
            break
        push_unique(node)

    for node in root_files:
        if len(selection) >= math.ceil(max_files * ROOT_SHARE):
            break
        push_unique(node)

    remaining_slots = max_files - len(selection)
    if remaining_slots <= 0:
        return selection[:max_files]

    step = len(rest) / remaining_slots
    for i in range(remaining_slots):
        index = math.floor(i * step)
        if index < len(rest):
            push_unique(rest[index])

    return selection[:max_files]


async def map_with_concurrency(
    items: Sequence[T],
    concurrency: int,
    mapper: Callable[[T], Awaitable[R]],
) -> list[R]:
    """
    Run ``mapper`` over ``items`` with at most ``concurrency`` calls in flight.

    Workers pull from a shared, monotonically advancing index, so a slow
    item only holds up its own worker. Results keep the input order.
    """
    results: list = [None] * len(items)
    next_index = 0

    async def worker() -> None:
        nonlocal next_index
        while next_index < len(items):
            current = next_index
            next_index += 1
            results[current] = await mapper(items[current])

    workers = [worker() for _ in range(min(max(concurrency, 1), len(items)))]
    await asyncio.gather(*workers)
    return results
