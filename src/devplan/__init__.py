"""
Devplan - development plan tracker

Persists hierarchical development plans as YAML records and advances them
through workflow stages, with a CLI and a stdio tool server on top.
"""

__version__ = "0.4.0"

# Re-export core models for convenience
from devplan.core.plans.models import PlanRecord, PlanStatus, Priority

__all__ = ["PlanRecord", "PlanStatus", "Priority", "__version__"]
