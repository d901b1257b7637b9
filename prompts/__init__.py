"""
Prompt Loader
=============
Loader for the LLM prompt files stored in the prompts/ directory.

Prompts live as plain text (.txt) or Markdown (.md) files so they can be
edited and reviewed independently of the Python source.

    from prompts import load_prompt

    system_prompt = load_prompt("migration_system.txt")

Each file is cached on first read.

Prompt files
------------
    migration_system.txt    -- System prompt for the MigrationAgent frontmatter loop
"""

import logging
from functools import lru_cache
from pathlib import Path

logger = logging.getLogger(__name__)

PROMPTS_DIR: Path = Path(__file__).parent


@lru_cache(maxsize=None)
def load_prompt(filename: str) -> str:
    """
    Load and cache a prompt file from the prompts/ directory.

    Raises
    ------
    FileNotFoundError
        If ``filename`` does not exist under ``prompts/``.
    """
    path = PROMPTS_DIR / filename
    if not path.exists():
        raise FileNotFoundError(
            f"Prompt file not found: {path}\n"
            f"Available prompts: {list_prompts()}"
        )
    content = path.read_text(encoding="utf-8").rstrip()
    logger.debug("Loaded prompt '%s' (%d chars)", filename, len(content))
    return content


def list_prompts() -> list[str]:
    """Return the names of all prompt files in the prompts/ directory."""
    return sorted(
        f.name
        for f in PROMPTS_DIR.iterdir()
        if f.is_file() and f.suffix in {".txt", ".md"}
    )
