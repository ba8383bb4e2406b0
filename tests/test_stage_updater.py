"""
Tests for the stage update engine.

Covers transition validation, data merging, auto-completion of earlier
stages, plan status recomputation and failure reporting.
"""

import pytest
import yaml

from devplan.core.plans import StageUpdater, load_plan, update_stage
from devplan.core.plans.models import PlanStatus
from devplan.core.plans.updater import merge_section_data


def _status(path):
    return yaml.safe_load(path.read_text())["status"]


# ==============================================================================
# Forward moves
# ==============================================================================


class TestSequentialUpdate:
    """Test moving one stage forward."""

    def test_next_stage(self, medium_plan):
        """Test a plain next-stage update."""
        result = update_stage(medium_plan, "context_gathering")

        assert result.success is True
        assert result.stage == "context_gathering"
        assert result.warnings == []

        plan = load_plan(medium_plan)
        assert plan.current_stage == "context_gathering"
        assert plan.is_stage_complete("scope_analysis")
        assert plan.is_stage_complete("context_gathering")
        assert not plan.is_stage_complete("solution_design")

    def test_updated_at_refreshed(self, medium_plan):
        """Test that the result and file carry the new timestamp."""
        before = load_plan(medium_plan)
        result = update_stage(medium_plan, "context_gathering")
        after = load_plan(medium_plan)

        assert result.updated_at == after.updated_at
        assert after.updated_at >= before.updated_at
        assert after.created_at == before.created_at

    def test_incomplete_flag(self, medium_plan):
        """Test that mark_complete=False leaves the target stage open."""
        result = update_stage(medium_plan, "context_gathering", mark_complete=False)

        assert result.success
        plan = load_plan(medium_plan)
        assert plan.current_stage == "context_gathering"
        assert plan.is_stage_complete("scope_analysis")
        assert not plan.is_stage_complete("context_gathering")

    def test_same_stage_update(self, medium_plan):
        """Test updating the current stage in place."""
        result = update_stage(
            medium_plan, "scope_analysis", section_data={"findings": {"scope": "small"}}
        )
        assert result.success
        assert result.warnings == []
        assert load_plan(medium_plan).progress["scope_analysis"]["findings"] == {"scope": "small"}


class TestForwardJump:
    """Test jumping more than one stage ahead."""

    def test_blocked_by_incomplete_stages(self, medium_plan):
        """Test that skipping incomplete stages fails without force."""
        original = medium_plan.read_text()
        result = update_stage(medium_plan, "implementation")

        assert result.success is False
        assert result.error_category == "validation"
        assert "Cannot jump to implementation" in result.error
        assert "Missing stages: context_gathering, solution_design" in result.error
        assert medium_plan.read_text() == original

    def test_force_skips(self, medium_plan):
        """Test that force proceeds, warns and completes earlier stages."""
        result = update_stage(medium_plan, "implementation", force=True)

        assert result.success
        assert result.warnings == [
            "Forcing jump to implementation (skipping: context_gathering, solution_design)"
        ]
        plan = load_plan(medium_plan)
        assert plan.current_stage == "implementation"
        for stage in ("scope_analysis", "context_gathering", "solution_design", "implementation"):
            assert plan.is_stage_complete(stage)
        assert not plan.is_stage_complete("validation")

    def test_intermediate_stages_complete(self, make_plan):
        """Test that a jump over completed stages succeeds with a note."""
        path = make_plan(
            progress={
                "context_gathering": {"complete": True},
                "solution_design": {"complete": True},
            }
        )
        result = update_stage(path, "implementation")

        assert result.success
        assert result.warnings == [
            "Jumping from scope_analysis to implementation (intermediate stages complete)"
        ]

    def test_current_stage_not_required_complete(self, make_plan):
        """Test that only stages strictly between current and target are checked."""
        path = make_plan(progress={"context_gathering": {"complete": True}})
        result = update_stage(path, "solution_design")

        assert result.success
        assert load_plan(path).is_stage_complete("scope_analysis")

    def test_untracked_intermediate_stage_ignored(self, make_plan):
        """Test that intermediate stages the plan does not track are not required."""
        path = make_plan(workflow_type="small")
        result = update_stage(path, "implementation")

        assert result.success is False
        assert "Missing stages: context_gathering." in result.error
        assert "solution_design" not in result.error

    def test_advance_to_untracked_stage(self, make_plan):
        """Test that moving to a standard stage the workflow lacks synthesizes it."""
        path = make_plan(workflow_type="micro")
        result = update_stage(
            path, "validation", section_data={"results": {"tests": "passing"}}
        )

        assert result.success
        assert result.warnings == ["All stages complete - marking plan as completed"]
        progress = load_plan(path).progress["validation"]
        assert progress["complete"] is True
        assert progress["results"] == {"tests": "passing"}
        assert progress["fix_cycles"] == []


# ==============================================================================
# Backward moves and custom stages
# ==============================================================================


class TestBackwardAndCustom:
    """Test moving backwards and into custom stages."""

    def test_backwards_warns(self, make_plan):
        """Test that moving backwards is allowed with a warning."""
        path = make_plan(initial_stage="implementation")
        result = update_stage(path, "context_gathering")

        assert result.success
        assert result.warnings == ["Moving backwards from implementation to context_gathering"]
        plan = load_plan(path)
        assert plan.current_stage == "context_gathering"
        assert not plan.is_stage_complete("scope_analysis")
        assert plan.is_stage_complete("context_gathering")

    def test_custom_stage(self, medium_plan):
        """Test that custom stages are allowed and get the generic shape."""
        result = update_stage(
            medium_plan, "security_review", mark_complete=False, section_data={}
        )

        assert result.success
        assert result.warnings == [
            "Custom stage detected: security_review. "
            "This stage is not in the standard workflow stages.",
            "Cannot validate stage order between scope_analysis and security_review",
        ]
        plan = load_plan(medium_plan)
        assert plan.current_stage == "security_review"
        assert plan.progress["security_review"] == {"complete": False, "data": {}, "notes": []}
        assert not plan.is_stage_complete("scope_analysis")

    def test_from_custom_stage(self, medium_plan):
        """Test leaving a custom stage for a standard one."""
        update_stage(medium_plan, "security_review")
        result = update_stage(medium_plan, "validation")

        assert result.success
        assert result.warnings == [
            "Cannot validate stage order between security_review and validation"
        ]


# ==============================================================================
# Section data
# ==============================================================================


class TestSectionData:
    """Test merging caller data into stage progress."""

    def test_mapping_merged_one_level(self, medium_plan):
        """Test that nested mappings keep untouched keys."""
        update_stage(medium_plan, "scope_analysis", section_data={"findings": {"a": 1}})
        update_stage(medium_plan, "scope_analysis", section_data={"findings": {"b": 2}})

        assert load_plan(medium_plan).progress["scope_analysis"]["findings"] == {"a": 1, "b": 2}

    def test_list_replaced(self, make_plan):
        """Test that list values replace rather than append."""
        path = make_plan(initial_stage="implementation")
        update_stage(path, "implementation", section_data={"changes": ["a.py"]})
        update_stage(path, "implementation", section_data={"changes": ["b.py"]})

        assert load_plan(path).progress["implementation"]["changes"] == ["b.py"]

    def test_new_fields_added(self, medium_plan):
        """Test that arbitrary new fields land in the stage record."""
        update_stage(medium_plan, "scope_analysis", section_data={"estimate": "2d"})
        assert load_plan(medium_plan).progress["scope_analysis"]["estimate"] == "2d"

    def test_merge_helper(self):
        """Test merge_section_data directly."""
        progress = {"complete": False, "findings": {"a": 1}, "changes": ["x"], "note": "old"}
        merge_section_data(
            progress, {"findings": {"b": 2}, "changes": ["y"], "note": {"text": "new"}}
        )
        assert progress == {
            "complete": False,
            "findings": {"a": 1, "b": 2},
            "changes": ["y"],
            "note": {"text": "new"},
        }


# ==============================================================================
# Plan status
# ==============================================================================


class TestPlanStatus:
    """Test plan status recomputation."""

    def test_all_complete_marks_plan_completed(self, make_plan):
        """Test that completing every tracked stage completes the plan."""
        path = make_plan(workflow_type="micro")
        result = update_stage(path, "implementation")

        assert result.success
        assert "All stages complete - marking plan as completed" in result.warnings
        assert _status(path) == "completed"

    def test_completed_plan_reopened(self, make_plan):
        """Test that an incomplete stage reopens a completed plan."""
        path = make_plan(workflow_type="micro")
        update_stage(path, "implementation")

        result = update_stage(
            path, "security_review", mark_complete=False, section_data={"notes": ["follow-up"]}
        )

        assert result.success
        assert "Plan is already marked as completed - updating anyway" in result.warnings
        assert "Plan status changed from completed to active" in result.warnings
        assert _status(path) == "active"

    def test_failed_plan_warns(self, make_plan):
        """Test that updating a failed plan warns but proceeds."""
        path = make_plan(status="failed")
        result = update_stage(path, "context_gathering")

        assert result.success
        assert "Plan is marked as failed - updating anyway" in result.warnings
        assert load_plan(path).status == PlanStatus.FAILED


# ==============================================================================
# Failures
# ==============================================================================


class TestUpdateFailures:
    """Test failures reported through UpdateResult."""

    def test_missing_plan(self, tmp_path):
        """Test that a missing file is not_found."""
        result = StageUpdater(tmp_path / "missing.yaml").update_stage("implementation")

        assert result.success is False
        assert result.error_category == "not_found"
        assert "Plan file not found" in result.error
        assert result.warnings == []

    def test_corrupt_plan(self, tmp_path):
        """Test that unparseable YAML is corrupt."""
        path = tmp_path / "plan.yaml"
        path.write_text("{ not: [valid")
        result = update_stage(path, "implementation")

        assert result.success is False
        assert result.error_category == "corrupt"
        assert "Error loading plan file" in result.error

    @pytest.mark.parametrize("force", [False, True])
    def test_bad_progress_entry(self, medium_plan, force):
        """Test that a non-mapping progress entry is a structure error."""
        data = yaml.safe_load(medium_plan.read_text())
        data["progress"]["context_gathering"] = "done"
        medium_plan.write_text(yaml.safe_dump(data, sort_keys=False))

        result = update_stage(medium_plan, "context_gathering", force=force)
        assert result.success is False
        assert result.error_category == "validation"
