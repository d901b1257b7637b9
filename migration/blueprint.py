"""
Blueprint Extractor
===================
Turns a blueprint (YAML produced by the analysis stage) into a flat list of
documents to migrate.

Blueprints come in several shapes.  Each recognised shape is a path to a list
of document entries:

    migration_plan.documents
    migration_plan.files
    discovered_documents
    documents
    files

All recognised lists are read, in the order above.  Anything else in the
blueprint is ignored.  A blueprint with none of these lists raises PlanError;
a malformed entry inside a recognised list is skipped, and so is an entry
whose source or target path leaves the project root.

Each document entry accepts:
    path | source_path | source          (required)
    target_path | target
    type | doc_type | document_type
    has_frontmatter | hasFrontmatter
    title
"""

import logging
import posixpath
from dataclasses import dataclass
from pathlib import Path, PureWindowsPath
from typing import Any, Mapping

import yaml

from migration.type_mapping import (
    detect_document_type,
    normalize_doc_type,
    resolve_target_path,
    to_posix,
)

logger = logging.getLogger(__name__)


class PlanError(Exception):
    """Raised when a blueprint cannot be turned into a migration plan."""


@dataclass(frozen=True)
class MigrationTask:
    source_path:   str
    target_path:   str
    document_type: str


@dataclass(frozen=True)
class BlueprintShape:
    """A recognised location of a document list inside a blueprint."""
    name: str
    keys: tuple[str, ...]

    def locate(self, blueprint: Mapping[str, Any]) -> list | None:
        node: Any = blueprint
        for key in self.keys:
            if not isinstance(node, Mapping) or key not in node:
                return None
            node = node[key]
        return node if isinstance(node, list) else None


BLUEPRINT_SHAPES: tuple[BlueprintShape, ...] = (
    BlueprintShape("migration_plan.documents", ("migration_plan", "documents")),
    BlueprintShape("migration_plan.files",     ("migration_plan", "files")),
    BlueprintShape("discovered_documents",     ("discovered_documents",)),
    BlueprintShape("documents",                ("documents",)),
    BlueprintShape("files",                    ("files",)),
)


@dataclass(frozen=True)
class BlueprintDocument:
    """A migration candidate plus the filesystem facts the planner needs."""
    task:              MigrationTask
    needs_move:        bool
    needs_frontmatter: bool
    needs_creation:    bool
    source_exists:     bool
    title:             str | None
    shape:             str


class BlueprintExtractor:
    """
    Parameters
    ----------
    root_dir : str | Path
        Project root that relative blueprint paths are resolved against.
    shapes : tuple[BlueprintShape, ...]
        Recognised document-list locations (defaults to BLUEPRINT_SHAPES).
    """

    def __init__(
        self,
        root_dir: str | Path = ".",
        shapes: tuple[BlueprintShape, ...] = BLUEPRINT_SHAPES,
    ) -> None:
        self.root_dir = Path(root_dir)
        self.shapes   = shapes

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @staticmethod
    def parse(blueprint_text: str) -> dict:
        """Parse blueprint YAML into a mapping or raise PlanError."""
        try:
            parsed = yaml.safe_load(blueprint_text)
        except yaml.YAMLError as exc:
            raise PlanError(f"Failed to parse blueprint YAML: {exc}") from exc
        if not isinstance(parsed, dict):
            raise PlanError(
                f"Blueprint must be a mapping, got {type(parsed).__name__}."
            )
        return parsed

    def extract(self, blueprint: str | Mapping[str, Any]) -> list[BlueprintDocument]:
        """
        Return every document candidate in *blueprint* (text or parsed mapping),
        in encounter order, first occurrence of each source path only.
        """
        if isinstance(blueprint, str):
            blueprint = self.parse(blueprint)

        sections: list[tuple[str, list]] = []
        for shape in self.shapes:
            entries = shape.locate(blueprint)
            if entries is not None:
                sections.append((shape.name, entries))
        if not sections:
            raise PlanError(
                "Blueprint contains no recognised document list. Expected one of: "
                + ", ".join(shape.name for shape in self.shapes)
            )

        documents: list[BlueprintDocument] = []
        seen: set[str] = set()
        for shape_name, entries in sections:
            for entry in entries:
                doc = self._build_document(entry, shape_name)
                if doc is None:
                    continue
                if doc.task.source_path in seen:
                    logger.debug("Duplicate blueprint entry skipped: %s", doc.task.source_path)
                    continue
                seen.add(doc.task.source_path)
                documents.append(doc)

        logger.info(
            "Extracted %d document(s) from blueprint sections: %s",
            len(documents), ", ".join(name for name, _ in sections),
        )
        return documents

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _build_document(self, entry: Any, shape_name: str) -> BlueprintDocument | None:
        if not isinstance(entry, Mapping):
            logger.debug("Skipping non-mapping entry in %s: %r", shape_name, entry)
            return None

        raw_source = _first_str(entry, "path", "source_path", "source")
        if raw_source is None:
            logger.debug("Skipping entry without a source path in %s: %r", shape_name, entry)
            return None
        source_path = to_posix(raw_source)

        raw_type = _first_str(entry, "type", "doc_type", "document_type")
        doc_type = normalize_doc_type(raw_type or detect_document_type(source_path)) or "unknown"

        raw_target  = _first_str(entry, "target_path", "target")
        target_path = to_posix(raw_target) if raw_target else resolve_target_path(source_path, doc_type)

        for path in (source_path, target_path):
            if not self._inside_root(path):
                logger.debug("Skipping entry outside the project root in %s: %r", shape_name, path)
                return None

        source_exists = self._exists(source_path)
        target_exists = source_exists if target_path == source_path else self._exists(target_path)

        needs_creation  = not source_exists and not target_exists
        needs_move      = source_exists and source_path != target_path
        has_frontmatter = bool(entry.get("has_frontmatter", entry.get("hasFrontmatter", False)))

        title = _first_str(entry, "title")
        if title is None:
            title = posixpath.splitext(posixpath.basename(source_path))[0] or None

        return BlueprintDocument(
            task=MigrationTask(
                source_path=source_path,
                target_path=target_path,
                document_type=doc_type,
            ),
            needs_move=needs_move,
            needs_frontmatter=needs_creation or not has_frontmatter,
            needs_creation=needs_creation,
            source_exists=source_exists,
            title=title,
            shape=shape_name,
        )

    def _inside_root(self, relative_path: str) -> bool:
        if posixpath.isabs(relative_path) or PureWindowsPath(relative_path).drive:
            return False
        if relative_path == ".." or relative_path.startswith("../"):
            return False
        root = self.root_dir.resolve()
        try:
            (root / relative_path).resolve().relative_to(root)
        except ValueError:
            return False
        except (OSError, RuntimeError) as exc:
            logger.debug("Could not resolve %s: %s", relative_path, exc)
            return False
        return True

    def _exists(self, relative_path: str) -> bool:
        try:
            return (self.root_dir / relative_path).is_file()
        except OSError as exc:
            logger.debug("Existence check failed for %s: %s", relative_path, exc)
            return False


def _first_str(entry: Mapping[str, Any], *keys: str) -> str | None:
    for key in keys:
        value = entry.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None
