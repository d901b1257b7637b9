"""
Unit tests for MigrationPlanner.
"""

import json
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import patch

import pytest

from migration.config import PKFConfig
from migration.planner import CostEstimate, ExtendedMigrationTask, MigrationPlanner, PlanError
from migration.priority import PriorityResolver


class TestCreatePlan:

    def test_adr_before_guide_scenario(self, project_root, make_blueprint):
        planner = MigrationPlanner(
            project_root, priority_resolver=PriorityResolver({"adr": 0, "guide": 1}),
        )
        plan = planner.create_plan(make_blueprint(
            ("docs/guides/setup.md", "guide"),
            ("docs/decisions/002.md", "adr"),
            ("docs/decisions/001.md", "adr"),
        ))
        assert [t.document_type for t in plan.tasks] == ["adr", "adr", "guide"]
        assert [t.source_path for t in plan.tasks[:2]] == ["docs/decisions/001.md", "docs/decisions/002.md"]
        assert plan.by_type == {"guide": 1, "adr": 2}
        assert list(plan.by_type) == ["guide", "adr"]
        assert plan.total_files == sum(plan.by_type.values()) == 3

    def test_types_are_normalised(self, project_root, make_blueprint):
        plan = MigrationPlanner(project_root).create_plan(make_blueprint(
            ("a.md", "User Guide"), ("b.md", "decision"),
        ))
        assert plan.by_type == {"guide-user": 1, "adr": 1}

    def test_unknown_types_migrate_last(self, project_root, make_blueprint):
        plan = MigrationPlanner(project_root).create_plan(make_blueprint(
            ("a.md", "mystery"), ("z.md", "example"), ("README.md", "readme"),
        ))
        assert [t.document_type for t in plan.tasks] == ["readme", "example", "mystery"]

    def test_existing_content_is_estimated(self, project_root, write_file, make_blueprint):
        write_file("old/setup.md", "a" * 400)
        plan = MigrationPlanner(project_root).create_plan(make_blueprint(("old/setup.md", "guide")))
        task = plan.tasks[0]
        assert task.estimated_tokens == 120
        assert task.needs_move
        assert task.target_path == "docs/guides/setup.md"
        assert not plan.warnings

    def test_missing_document_uses_placeholder(self, project_root, make_blueprint):
        config = PKFConfig()
        config.planning.placeholder_tokens_per_doc = 777
        plan = MigrationPlanner(project_root, config=config).create_plan(
            make_blueprint(("docs/guides/new.md", "guide"))
        )
        assert plan.tasks[0].needs_creation
        assert plan.tasks[0].estimated_tokens == 777
        assert not plan.warnings

    def test_unreadable_document_degrades_with_warning(self, project_root, write_file, make_blueprint):
        write_file("broken.md").write_bytes(b"\xff\xfe\x00binary")
        write_file("fine.md", "hello")
        plan = MigrationPlanner(project_root).create_plan(make_blueprint(
            ("broken.md", "guide"), ("fine.md", "guide"),
        ))
        assert plan.total_files == 2
        assert [w.path for w in plan.warnings] == ["broken.md"]
        broken = next(t for t in plan.tasks if t.source_path == "broken.md")
        assert broken.estimated_tokens == PKFConfig().planning.placeholder_tokens_per_doc

    def test_plan_error_propagates(self, project_root):
        with pytest.raises(PlanError):
            MigrationPlanner(project_root).create_plan("nothing: here\n")

    def test_planner_does_not_write(self, project_root, write_file, make_blueprint):
        write_file("old/setup.md", "content")
        before = sorted(p.relative_to(project_root) for p in project_root.rglob("*"))
        MigrationPlanner(project_root).create_plan(make_blueprint(("old/setup.md", "guide")))
        after = sorted(p.relative_to(project_root) for p in project_root.rglob("*"))
        assert before == after

    def test_reads_are_bounded_by_config(self, project_root, make_blueprint):
        config = PKFConfig()
        config.analysis.max_parallel_inspections = 2
        with patch("migration.planner.ThreadPoolExecutor", wraps=ThreadPoolExecutor) as pool:
            MigrationPlanner(project_root, config=config).create_plan(
                make_blueprint(("a.md", "guide"), ("b.md", "guide"), ("c.md", "guide"))
            )
        assert pool.call_args.kwargs["max_workers"] == 2

    def test_to_dict_is_json_safe(self, project_root, make_blueprint):
        plan = MigrationPlanner(project_root).create_plan(make_blueprint(("a.md", "guide")))
        payload = json.loads(json.dumps(plan.to_dict()))
        assert payload["total_files"] == 1
        assert payload["tasks"][0]["document_type"] == "guide"
        assert payload["by_type"] == {"guide": 1}


class TestCosts:

    @pytest.fixture
    def planner(self, project_root):
        return MigrationPlanner(project_root)

    def _tasks(self, *tokens):
        return [
            ExtendedMigrationTask(f"{i}.md", f"docs/{i}.md", "guide", estimated_tokens=t)
            for i, t in enumerate(tokens)
        ]

    def test_empty_plan_costs_nothing(self, planner):
        assert planner.estimate_costs([]) == CostEstimate(0, 0.0, 0.0)

    def test_cost_formula(self, planner):
        cost = planner.estimate_costs(self._tasks(1_000_000))
        # 1M input tokens at $0.80 + 1000 output tokens at $4.00 / M
        assert cost.total_cost == pytest.approx(0.80 + 0.004)
        assert cost.total_tokens == 1_001_000

    def test_time_scales_with_workers(self, project_root):
        config = PKFConfig()
        config.analysis.max_parallel_inspections = 2
        cost = MigrationPlanner(project_root, config=config).estimate_costs(self._tasks(1, 1, 1, 1))
        assert cost.time_minutes == pytest.approx(4 * 0.5 / 2)

    def test_cost_monotonic_in_tokens(self, planner):
        previous = -1.0
        for tokens in (0, 10, 1_000, 50_000, 2_000_000):
            cost = planner.estimate_costs(self._tasks(tokens, tokens)).total_cost
            assert cost >= 0
            assert cost >= previous
            previous = cost
