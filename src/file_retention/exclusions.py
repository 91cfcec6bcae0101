"""Locate directories protected by an exclusion marker file."""

from __future__ import annotations

import os
from pathlib import Path

DEFAULT_MARKER = "ignore"


def has_marker(directory: Path, marker_name: str = DEFAULT_MARKER) -> bool:
    """Check whether a directory directly contains the marker file."""
    return (directory / marker_name).is_file()


class ExclusionResolver:
    """Finds every directory in a tree that carries the exclusion marker.

    A marker protects only the files sitting next to it. Subdirectories of a
    marked directory are still cleaned unless they hold a marker of their own.
    """

    def __init__(self, marker_name: str = DEFAULT_MARKER) -> None:
        self.marker_name = marker_name

    def resolve(self, root: Path, marker_name: str | None = None) -> frozenset[Path]:
        """Collect marked directories below (and including) ``root``.

        Unreadable subdirectories are passed over silently; the scanner is
        responsible for reporting them.

        Args:
            root: Absolute directory the rule cleans.
            marker_name: Marker file name. Uses the resolver's own if None.

        Returns:
            Directories whose own files must not be deleted.

        """
        marker_name = marker_name or self.marker_name
        marked: set[Path] = set()

        for dirpath, _dirnames, filenames in os.walk(root):
            if marker_name in filenames:
                directory = Path(dirpath)
                if has_marker(directory, marker_name):
                    marked.add(directory)

        return frozenset(marked)
