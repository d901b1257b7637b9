"""
Priority Resolver
=================
Maps a normalized document type (plus its source path) to an execution rank.
Lower ranks migrate first.  Types missing from the table rank strictly after
every known type, so unknown content always migrates last.
"""

import posixpath
from typing import Mapping

from migration.type_mapping import ROOT_LEVEL_FILES

DEFAULT_TYPE_PRIORITIES: dict[str, int] = {
    "readme":          0,
    "contributing":    0,
    "license":         0,
    "code-of-conduct": 0,
    "changelog":       1,
    "register":        1,
    "todo":            1,
    "issues":          1,
    "guide":           2,
    "guide-user":      2,
    "guide-developer": 2,
    "tutorial":        2,
    "howto":           2,
    "architecture":    2,
    "design-doc":      2,
    "adr":             2,
    "specification":   3,
    "spec":            3,
    "api-reference":   3,
    "api":             3,
    "proposal":        3,
    "rfc":             3,
    "example":         4,
    "template":        4,
    "generic":         5,
    "other":           5,
}

_INDEX_FILES = frozenset({"index.md", "readme.md"})


class PriorityResolver:
    """
    Parameters
    ----------
    priorities : Mapping[str, int] | None
        type -> rank table.  Defaults to ``DEFAULT_TYPE_PRIORITIES``.
    boost_well_known_files : bool
        When True, a known type whose file is a well-known root file
        (README.md, CHANGELOG.md, ...) or an index file is moved one rank
        earlier for each match, never below 0.
    """

    def __init__(
        self,
        priorities: Mapping[str, int] | None = None,
        boost_well_known_files: bool = True,
    ) -> None:
        table = dict(DEFAULT_TYPE_PRIORITIES if priorities is None else priorities)
        for doc_type, rank in table.items():
            if not isinstance(rank, int) or rank < 0:
                raise ValueError(f"Priority for '{doc_type}' must be an int >= 0, got {rank!r}")
        self.priorities       = table
        self.fallback         = max(table.values(), default=-1) + 1
        self.boost_well_known = boost_well_known_files

    def priority_of(self, document_type: str, source_path: str) -> int:
        rank = self.priorities.get(document_type)
        if rank is None:
            return self.fallback

        if self.boost_well_known:
            file_name = posixpath.basename(source_path.replace("\\", "/"))
            if file_name in ROOT_LEVEL_FILES:
                rank = max(0, rank - 1)
            if file_name.lower() in _INDEX_FILES:
                rank = max(0, rank - 1)
        return rank

    @staticmethod
    def sort_key(task) -> tuple[int, str]:
        """Execution order: priority ascending, then source path."""
        return (task.priority, task.source_path)
