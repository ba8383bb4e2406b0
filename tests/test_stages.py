"""
Tests for the stage schema registry.
"""

import pytest

from devplan.core.stages import (
    STAGE_ORDER,
    STANDARD_STAGES,
    CustomStageProgress,
    ValidationProgress,
    create_stage_progress,
    is_standard_stage,
    progress_model_for,
    stage_index,
)


class TestStageOrdering:
    """Test canonical stage ordering."""

    def test_seven_standard_stages(self):
        """Test the standard stages in order."""
        assert STANDARD_STAGES == [
            "scope_analysis",
            "context_gathering",
            "solution_design",
            "implementation",
            "validation",
            "documentation",
            "knowledge_capture",
        ]

    def test_stage_order_indexes(self):
        """Test that STAGE_ORDER matches list positions."""
        assert STAGE_ORDER["scope_analysis"] == 0
        assert STAGE_ORDER["knowledge_capture"] == 6

    def test_custom_stage_has_no_index(self):
        """Test that custom stages are outside the ordering."""
        assert stage_index("security_review") is None
        assert not is_standard_stage("security_review")
        assert is_standard_stage("validation")


class TestCreateStageProgress:
    """Test starting shapes of stage progress records."""

    @pytest.mark.parametrize(
        "stage,expected",
        [
            ("scope_analysis", {"complete": False, "findings": {}}),
            ("context_gathering", {"complete": False, "findings": {}}),
            ("solution_design", {"complete": False, "artifacts": {}, "checklist": []}),
            ("implementation", {"complete": False, "changes": []}),
            ("documentation", {"complete": False, "files": []}),
            ("knowledge_capture", {"complete": False, "learnings": {}}),
        ],
    )
    def test_standard_shapes(self, stage, expected):
        """Test the empty record of each standard stage."""
        assert create_stage_progress(stage) == expected

    def test_validation_shape(self):
        """Test the validation stage's fix loop fields."""
        assert create_stage_progress("validation") == {
            "complete": False,
            "results": {},
            "validation_status": "in_progress",
            "issues_found": [],
            "fix_cycles": [],
        }

    def test_custom_shape(self):
        """Test that unknown names get the generic custom shape."""
        assert create_stage_progress("security_review") == {
            "complete": False,
            "data": {},
            "notes": [],
        }

    def test_records_are_independent(self):
        """Test that each call returns fresh containers."""
        first = create_stage_progress("implementation")
        first["changes"].append("x")
        assert create_stage_progress("implementation")["changes"] == []

    def test_progress_model_lookup(self):
        """Test model resolution by stage name."""
        assert progress_model_for("validation") is ValidationProgress
        assert progress_model_for("anything_else") is CustomStageProgress
