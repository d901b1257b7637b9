"""
Plan Summary Rendering
======================
Renders a MigrationPlan as Markdown for human review (approval gate, CLI
--mode plan).  The layout lives in templates/plan_summary.md.jinja2.
"""

import logging
from pathlib import Path

from jinja2 import Environment, FileSystemLoader

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).parent.parent / "templates"
PLAN_SUMMARY_TEMPLATE = "plan_summary.md.jinja2"


def task_actions(task) -> str:
    """Short description of what a task will do, e.g. 'move + frontmatter'."""
    actions = []
    if task.needs_creation:
        actions.append("create")
    if task.needs_move:
        actions.append("move")
    if task.needs_frontmatter:
        actions.append("frontmatter")
    return " + ".join(actions) or "none"


def render_plan_summary(plan, templates_dir: str | Path = TEMPLATES_DIR) -> str:
    env = Environment(
        loader=FileSystemLoader(str(templates_dir)),
        autoescape=False,
        keep_trailing_newline=True,
    )
    template = env.get_template(PLAN_SUMMARY_TEMPLATE)
    rendered = template.render(plan=plan, actions=task_actions)
    logger.debug("Rendered plan summary (%d chars)", len(rendered))
    return rendered
