"""
Document Type Mapping
=====================
Maps documentation files to normalized document types, PKF target
directories and frontmatter schema names.

Detection order for a file with no explicit type hint:
  1. Path patterns (first match wins)
  2. Content hints (only when content is supplied)
  3. "generic"
"""

import posixpath
import re

# ---------------------------------------------------------------------------
# Type -> target directory
# ---------------------------------------------------------------------------

TYPE_TO_DIRECTORY: dict[str, str] = {
    # README types stay at root or section roots
    "readme":             "",
    "project-readme":     "",

    "guide":              "docs/guides",
    "guide-user":         "docs/guides",
    "guide-developer":    "docs/guides",
    "user-guide":         "docs/guides",
    "developer-guide":    "docs/guides",
    "getting-started":    "docs/guides",
    "installation-guide": "docs/guides",
    "tutorial":           "docs/guides",
    "howto":              "docs/guides",
    "quickstart":         "docs/guides",
    "walkthrough":        "docs/guides",

    "api":                "docs/api",
    "api-reference":      "docs/api",
    "api-doc":            "docs/api",
    "openapi":            "docs/api",
    "rest-api":           "docs/api",
    "graphql-api":        "docs/api",

    "architecture":       "docs/architecture",
    "design-doc":         "docs/architecture",
    "system-design":      "docs/architecture",
    "component-design":   "docs/architecture",

    "adr":                "docs/architecture/decisions",
    "decision-record":    "docs/architecture/decisions",

    "spec":               "docs/framework/specifications",
    "specification":      "docs/framework/specifications",

    "reference":          "docs/references",

    "proposal":           "docs/proposals/active",
    "rfc":                "docs/proposals/active",
    "enhancement":        "docs/proposals/active",

    "register":           "docs/registers",
    "todo":               "docs/registers",
    "issue":              "docs/registers",
    "issues":             "docs/registers",
    "changelog":          "docs/registers",

    "config":             "docs",
    "configuration":      "docs",

    "template":           "docs/framework/templates",

    "example":            "docs/examples",
    "sample":             "docs/examples",

    "contributing":       "",
    "code-of-conduct":    "",
    "license":            "",

    "research":           "docs/research",
    "notes":              "docs/notes",

    "implementation-plan": "docs/implementation",
    "workstream":          "docs/implementation",

    "generic":            "docs",
    "other":              "docs",
}

# ---------------------------------------------------------------------------
# Type -> frontmatter schema
# ---------------------------------------------------------------------------

_SCHEMA_GROUPS: dict[str, tuple[str, ...]] = {
    "guide": (
        "guide", "guide-user", "guide-developer", "user-guide", "developer-guide",
        "getting-started", "installation-guide", "tutorial", "howto",
        "quickstart", "walkthrough",
    ),
    "spec": (
        "api", "api-reference", "api-doc", "openapi", "rest-api", "graphql-api",
        "spec", "specification",
    ),
    "adr":      ("adr", "decision-record"),
    "proposal": ("proposal", "rfc", "enhancement"),
    "register": ("register", "todo", "issue", "issues", "changelog"),
}

DOC_TYPE_TO_SCHEMA: dict[str, str] = {
    doc_type: "base-doc" for doc_type in TYPE_TO_DIRECTORY
}
for _schema, _types in _SCHEMA_GROUPS.items():
    for _doc_type in _types:
        DOC_TYPE_TO_SCHEMA[_doc_type] = _schema

# ---------------------------------------------------------------------------
# Well-known file names
# ---------------------------------------------------------------------------

ROOT_LEVEL_FILES: frozenset = frozenset({
    "README.md", "CHANGELOG.md", "CONTRIBUTING.md", "CODE_OF_CONDUCT.md",
    "LICENSE.md", "LICENSE", "CLAUDE.md", "RULES.md", "CONVENTIONS.md",
})

PACKAGE_ROOT_FILES: frozenset = frozenset({"README.md", "CHANGELOG.md", "CLAUDE.md"})

_TYPE_ALIASES: dict[str, str] = {
    "user-guide":      "guide-user",
    "developer-guide": "guide-developer",
    "dev-guide":       "guide-developer",
    "api-docs":        "api-reference",
    "api-doc":         "api-reference",
    "decision":        "adr",
    "arch-decision":   "adr",
    "todo-list":       "todo",
    "issue-tracker":   "issues",
    "changelog-entry": "changelog",
}

# Evaluated in order against the lower-cased, forward-slashed path.
_DETECTION_PATTERNS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"(^|/)readme\.md$"),                  "readme"),
    (re.compile(r"changelog\.md$"),                    "changelog"),
    (re.compile(r"changes\.md$"),                      "changelog"),
    (re.compile(r"history\.md$"),                      "changelog"),
    (re.compile(r"contributing\.md$"),                 "contributing"),
    (re.compile(r"code[_-]of[_-]conduct\.md$"),        "code-of-conduct"),
    (re.compile(r"license\.md$"),                      "license"),
    (re.compile(r"adrs?/.*\.md$"),                     "adr"),
    (re.compile(r"decisions?/.*\.md$"),                "adr"),
    (re.compile(r"adr-\d+"),                           "adr"),
    (re.compile(r"proposals?/.*\.md$"),                "proposal"),
    (re.compile(r"rfcs?/.*\.md$"),                     "rfc"),
    (re.compile(r"prop-\d+"),                          "proposal"),
    (re.compile(r"apis?/.*\.md$"),                     "api-reference"),
    (re.compile(r"api[-_]?(reference|docs?)\.md$"),    "api-reference"),
    (re.compile(r"architecture/.*\.md$"),              "architecture"),
    (re.compile(r"design/.*\.md$"),                    "architecture"),
    (re.compile(r"guides?/.*\.md$"),                   "guide"),
    (re.compile(r"tutorials?/.*\.md$"),                "tutorial"),
    (re.compile(r"howto/.*\.md$"),                     "howto"),
    (re.compile(r"getting[-_]?started\.md$"),          "getting-started"),
    (re.compile(r"quickstart\.md$"),                   "quickstart"),
    (re.compile(r"examples?/.*\.md$"),                 "example"),
    (re.compile(r"samples?/.*\.md$"),                  "sample"),
    (re.compile(r"registers?/.*\.md$"),                "register"),
    (re.compile(r"todo\.md$"),                         "todo"),
    (re.compile(r"issues\.md$"),                       "issues"),
    (re.compile(r"templates?/.*\.md$"),                "template"),
    (re.compile(r"\.template\.md$"),                   "template"),
    (re.compile(r"specifications?/.*\.md$"),           "specification"),
    (re.compile(r"specs?/.*\.md$"),                    "spec"),
    (re.compile(r"research/.*\.md$"),                  "research"),
    (re.compile(r"implementation/.*\.md$"),            "implementation-plan"),
    (re.compile(r"workstreams?/.*\.md$"),              "workstream"),
    (re.compile(r"ws-\d+.*\.md$"),                     "workstream"),
]

_CONTENT_HINTS: list[tuple[tuple[str, ...], str]] = [
    (("## api", "### endpoints", "## methods"),                          "api-reference"),
    (("## architecture", "## design", "## system overview"),             "architecture"),
    (("## getting started", "## installation", "## prerequisites"),      "guide"),
]

_EXCLUDED_DIRS: tuple[str, ...] = (
    "node_modules/", ".git/", ".next/", ".nuxt/", "dist/", "build/", "coverage/",
    ".cache/", ".turbo/", "vendor/", "__pycache__/", ".venv/", "venv/", ".pkf-backup/",
)


# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------

def to_posix(path: str) -> str:
    """Normalize a relative path to forward slashes with no redundant parts."""
    return posixpath.normpath(path.replace("\\", "/"))


def normalize_doc_type(doc_type: str) -> str:
    """
    Return the canonical form of a document type.

    >>> normalize_doc_type("User Guide")
    'guide-user'
    >>> normalize_doc_type("decision")
    'adr'
    """
    normalized = re.sub(r"[_\s]+", "-", doc_type.strip().lower())
    return _TYPE_ALIASES.get(normalized, normalized)


def detect_document_type(file_path: str, content: str | None = None) -> str:
    """Detect a document type from its path, then from content hints."""
    normalized = file_path.lower().replace("\\", "/")

    for pattern, doc_type in _DETECTION_PATTERNS:
        if pattern.search(normalized):
            return doc_type

    if content:
        lowered = content.lower()
        for markers, doc_type in _CONTENT_HINTS:
            if any(marker in lowered for marker in markers):
                return doc_type

    return "generic"


def resolve_target_path(source_path: str, doc_type: str) -> str:
    """
    Resolve the PKF-compliant target path (relative, forward slashes) for a
    document of the given type.
    """
    source    = to_posix(source_path)
    file_name = posixpath.basename(source)
    doc_type  = normalize_doc_type(doc_type)

    # Monorepo package READMEs stay inside their package
    parts = source.split("/")
    for index, part in enumerate(parts[:-2]):
        if part in ("packages", "libs") and file_name in PACKAGE_ROOT_FILES:
            return posixpath.join(part, parts[index + 1], file_name)

    if file_name in ROOT_LEVEL_FILES:
        return file_name

    target_dir = TYPE_TO_DIRECTORY.get(doc_type, TYPE_TO_DIRECTORY["generic"])
    if not target_dir:
        return file_name

    # Examples keep their sub-directory structure
    if doc_type in ("example", "sample"):
        marker = source.lower().find("examples/")
        if marker >= 0:
            sub_path = source[marker + len("examples/"):]
            return posixpath.join("docs/examples", sub_path or file_name)

    return posixpath.join(target_dir, file_name)


def get_schema_for_doc_type(doc_type: str) -> str:
    return DOC_TYPE_TO_SCHEMA.get(normalize_doc_type(doc_type), "base-doc")


def get_required_directories(doc_types) -> list[str]:
    """Return every directory (parents included) needed for the given types."""
    dirs = {"docs", "docs/registers"}
    for doc_type in doc_types:
        target_dir = TYPE_TO_DIRECTORY.get(normalize_doc_type(doc_type))
        if not target_dir:
            continue
        parts = target_dir.split("/")
        for depth in range(1, len(parts) + 1):
            dirs.add("/".join(parts[:depth]))
    return sorted(dirs)


def should_exclude_from_reorganization(file_path: str) -> bool:
    normalized = file_path.lower().replace("\\", "/")
    return any(excluded in normalized for excluded in _EXCLUDED_DIRS)
