"""
Pytest configuration and shared fixtures.

Provides temporary project directories, workflow catalogs and ready-made
plan files used across the test suite.
"""

from pathlib import Path

import pytest
import yaml

from devplan.core.config import DevplanConfig, clear_cache
from devplan.core.plans import PlanWorkspace, generate_plan, save_plan
from devplan.core.workflows import WorkflowCatalog

# ==============================================================================
# Isolation
# ==============================================================================


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep every test away from the real user config and DEVPLAN_* env vars."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    for name in ("DEVPLAN_PLANS_DIR", "DEVPLAN_DEFAULT_WORKFLOW", "DEVPLAN_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    clear_cache()
    yield
    clear_cache()


# ==============================================================================
# Directory Fixtures
# ==============================================================================


@pytest.fixture
def project_dir(tmp_path):
    """
    Provide a temporary project directory.

    Creates:
    - .git/ directory (project root marker)
    """
    project = tmp_path / "project"
    project.mkdir()
    (project / ".git").mkdir()
    return project


@pytest.fixture
def plans_dir(project_dir):
    """Provide the project's .llms directory."""
    directory = project_dir / ".llms"
    directory.mkdir()
    return directory


# ==============================================================================
# Catalog and Workspace Fixtures
# ==============================================================================


@pytest.fixture
def catalog(plans_dir):
    """Workflow catalog with no workflows file (built-in workflows)."""
    return WorkflowCatalog(plans_dir)


@pytest.fixture
def workspace(project_dir):
    """Plan workspace with default configuration."""
    return PlanWorkspace(project_dir, DevplanConfig())


@pytest.fixture
def write_workflows(plans_dir):
    """Write a workflows.yml with the given mapping and return its path."""

    def _write(data: dict) -> Path:
        path = plans_dir / "workflows.yml"
        path.write_text(yaml.safe_dump(data, sort_keys=False))
        return path

    return _write


# ==============================================================================
# Plan Fixtures
# ==============================================================================


@pytest.fixture
def make_plan(plans_dir, catalog):
    """
    Create a plan file and return its path.

    Accepts the generate_plan keyword arguments plus ``name`` (file name)
    and ``progress`` overrides merged into the generated stages.
    """

    def _make(
        task: str = "Build login page",
        workflow_type: str = "medium",
        name: str = "plan.yaml",
        progress: dict | None = None,
        **kwargs,
    ) -> Path:
        plan = generate_plan(
            task, "build-login-page", catalog=catalog, workflow_type=workflow_type, **kwargs
        )
        for stage, data in (progress or {}).items():
            plan.progress.setdefault(stage, {"complete": False}).update(data)
        path = plans_dir / name
        save_plan(path, plan)
        return path

    return _make


@pytest.fixture
def medium_plan(make_plan):
    """A fresh medium plan at scope_analysis with nothing complete."""
    return make_plan()
