"""
Self-reference filtering for diffs and repository trees.

The agent's own directory is removed from everything it analyzes so that
changes to the agent never end up analyzing or testing the agent itself.
"""

import re
from typing import Iterable, List

from impact_agent.config import DIFF_FILE_MARKER, MAX_TREE_ENTRIES
from impact_agent.models.source import TreeEntry

_SEGMENT_SPLIT = re.compile(r"(?m)^" + re.escape(DIFF_FILE_MARKER))


def _normalize_dir(directory: str) -> str:
    return directory.strip().strip("/")


def is_self_reference(path: str, directory: str) -> bool:
    """Return True when ``path`` lies inside ``directory``."""
    directory = _normalize_dir(directory)
    if not directory:
        return False
    path = path.lstrip("/")
    return path == directory or path.startswith(directory + "/")


def _touches(segment: str, directory: str) -> bool:
    header = segment.split("\n", 1)[0]
    return header.startswith(f"a/{directory}/") or f" b/{directory}/" in header


def filter_self_references(diff: str, directory: str) -> str:
    """
    Drop the per-file segments of a unified diff that touch ``directory``.

    The text is partitioned on the ``diff --git`` marker at line starts.
    A segment is discarded when its header names the directory on either
    side of the comparison; the rest is rejoined with the same marker, so
    applying the filter twice gives the same result as applying it once.

    Args:
        diff: Raw unified diff
        directory: Directory to exclude, relative to the repository root

    Returns:
        Diff text without the excluded segments
    """
    directory = _normalize_dir(directory)
    if not diff or not directory:
        return diff

    preamble, *segments = _SEGMENT_SPLIT.split(diff)
    kept = [segment for segment in segments if not _touches(segment, directory)]

    return DIFF_FILE_MARKER.join([preamble] + kept)


def filter_tree(
    entries: Iterable[TreeEntry],
    directory: str,
    limit: int = MAX_TREE_ENTRIES,
) -> List[TreeEntry]:
    """Exclude self-referential entries, then cap the tree at ``limit`` entries."""
    kept = [entry for entry in entries if not is_self_reference(entry.path, directory)]
    return kept[:limit]
