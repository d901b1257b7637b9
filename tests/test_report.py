"""
Unit tests for plan summary rendering.
"""

from types import SimpleNamespace

from migration.planner import MigrationPlanner
from migration.report import render_plan_summary, task_actions


def test_task_actions():
    task = SimpleNamespace(needs_creation=False, needs_move=True, needs_frontmatter=True)
    assert task_actions(task) == "move + frontmatter"
    task = SimpleNamespace(needs_creation=False, needs_move=False, needs_frontmatter=False)
    assert task_actions(task) == "none"


def test_summary_lists_tasks_in_order(project_root, write_file, make_blueprint):
    write_file("old/setup.md", "# Setup\n")
    plan = MigrationPlanner(project_root).create_plan(make_blueprint(
        ("old/setup.md", "guide"), ("README.md", "readme"),
    ))
    summary = render_plan_summary(plan)

    assert summary.startswith("# Migration Plan")
    assert "| Files | 2 |" in summary
    assert "| guide | 1 |" in summary
    assert summary.index("`README.md`") < summary.index("`old/setup.md`")
    assert "`docs/guides/setup.md` | move + frontmatter |" in summary
    assert "## Warnings" not in summary


def test_summary_includes_warnings(project_root, write_file, make_blueprint):
    write_file("bad.md").write_bytes(b"\xff\xfe")
    plan = MigrationPlanner(project_root).create_plan(make_blueprint(("bad.md", "guide")))
    summary = render_plan_summary(plan)
    assert "## Warnings" in summary
    assert "- `bad.md`:" in summary
