"""
Unit tests for WorkflowStateManager.
"""

import json
import os
from unittest.mock import patch

import pytest

from state.workflow_state import (
    STATE_FILE_NAME,
    Checkpoint,
    StateSaveError,
    WorkflowStage,
    WorkflowState,
    WorkflowStateManager,
)


class TestWorkflowStateManager:

    @pytest.fixture
    def manager(self, project_root):
        return WorkflowStateManager(project_root)

    def test_initial_state(self, manager):
        state = manager.create_initial_state()
        assert state.stage is WorkflowStage.NOT_STARTED
        assert state.checkpoints == []

    def test_load_without_file(self, manager):
        assert manager.load() is None
        assert manager.can_resume() is False

    def test_can_resume_without_loaded_state(self, project_root):
        assert WorkflowStateManager(project_root).can_resume() is False

    def test_checkpoint_on_fresh_state(self, manager):
        manager.checkpoint("executing", "moved 3 files")
        assert manager.state.stage is WorkflowStage.EXECUTING
        assert len(manager.state.checkpoints) == 1
        assert manager.state.checkpoints[0].description == "moved 3 files"
        assert manager.can_resume() is True

    def test_checkpoint_is_durable(self, manager, project_root):
        manager.checkpoint(WorkflowStage.PLANNING, "plan created", data={"total_files": 2})
        reloaded = WorkflowStateManager(project_root)
        state = reloaded.load()
        assert state.stage is WorkflowStage.PLANNING
        assert state.checkpoints[0].data == {"total_files": 2}
        assert reloaded.can_resume()

    def test_checkpoint_rejects_unknown_stage(self, manager):
        with pytest.raises(ValueError):
            manager.checkpoint("dancing", "nope")

    @pytest.mark.parametrize("stage, resumable", [
        (WorkflowStage.NOT_STARTED, False),
        (WorkflowStage.CONFIGURING, True),
        (WorkflowStage.PLANNING, True),
        (WorkflowStage.EXECUTING, True),
        (WorkflowStage.VERIFYING, True),
        (WorkflowStage.COMPLETE, False),
        (WorkflowStage.FAILED, False),
    ])
    def test_can_resume_by_stage(self, manager, project_root, stage, resumable):
        manager.save(WorkflowState(stage=stage))
        fresh = WorkflowStateManager(project_root)
        fresh.load()
        assert fresh.can_resume() is resumable

    def test_round_trip(self, manager):
        state = WorkflowState(
            stage=WorkflowStage.EXECUTING,
            checkpoints=[
                Checkpoint(WorkflowStage.CONFIGURING, "config", "2026-01-01T00:00:00+00:00"),
                Checkpoint(WorkflowStage.EXECUTING, "task", "2026-01-01T00:01:00+00:00",
                           data={"source_path": "a.md", "success": True}),
            ],
            api_call_count=3,
            total_cost=0.25,
            total_tokens=1234,
            extra={"custom_field": {"nested": [1, 2]}},
        )
        manager.save(state)
        loaded = WorkflowStateManager(manager.working_dir).load()
        assert loaded == state

    def test_state_file_format(self, manager, project_root):
        manager.checkpoint("configuring", "start")
        payload = json.loads((project_root / STATE_FILE_NAME).read_text())
        assert payload["stage"] == "configuring"
        assert payload["checkpoints"][0]["stage"] == "configuring"
        assert "data" not in payload["checkpoints"][0]
        assert "timestamp" in payload["checkpoints"][0]

    def test_corrupt_file_means_no_state(self, manager, project_root):
        (project_root / STATE_FILE_NAME).write_text("{not json")
        assert manager.load() is None
        assert manager.can_resume() is False

    def test_wrong_shape_means_no_state(self, manager, project_root):
        (project_root / STATE_FILE_NAME).write_text(json.dumps({"stage": "bogus"}))
        assert manager.load() is None

    def test_clear(self, manager, project_root):
        manager.checkpoint("planning", "x")
        manager.clear()
        assert not (project_root / STATE_FILE_NAME).exists()
        assert manager.state is None
        manager.clear()   # missing file is fine


class TestAtomicSave:

    def test_failed_rename_keeps_previous_state(self, project_root):
        manager = WorkflowStateManager(project_root)
        manager.checkpoint("planning", "before")

        with patch("state.workflow_state.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(StateSaveError):
                manager.checkpoint("executing", "after")

        loaded = WorkflowStateManager(project_root).load()
        assert loaded.stage is WorkflowStage.PLANNING
        assert [cp.description for cp in loaded.checkpoints] == ["before"]

    def test_failed_checkpoint_leaves_memory_unchanged(self, project_root):
        manager = WorkflowStateManager(project_root)
        manager.checkpoint("planning", "before")
        updated_at = manager.state.updated_at

        with patch("state.workflow_state.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(StateSaveError):
                manager.checkpoint("executing", "after")

        assert manager.state.stage is WorkflowStage.PLANNING
        assert [cp.description for cp in manager.state.checkpoints] == ["before"]
        assert manager.state.updated_at == updated_at

        manager.checkpoint("verifying", "next")
        loaded = WorkflowStateManager(project_root).load()
        assert [cp.description for cp in loaded.checkpoints] == ["before", "next"]

    def test_failed_save_leaves_no_temp_files(self, project_root):
        manager = WorkflowStateManager(project_root)
        with patch("state.workflow_state.os.replace", side_effect=OSError("boom")):
            with pytest.raises(StateSaveError):
                manager.save(WorkflowState())
        assert os.listdir(project_root) == []

    def test_failed_write_keeps_previous_state(self, project_root):
        manager = WorkflowStateManager(project_root)
        manager.save(WorkflowState(stage=WorkflowStage.CONFIGURING))

        with patch("state.workflow_state.os.fsync", side_effect=OSError("io error")):
            with pytest.raises(StateSaveError):
                manager.save(WorkflowState(stage=WorkflowStage.EXECUTING))

        assert WorkflowStateManager(project_root).load().stage is WorkflowStage.CONFIGURING

    def test_save_error_is_os_error(self):
        assert issubclass(StateSaveError, OSError)
