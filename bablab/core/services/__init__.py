"""Service-layer workflows for CLI and API orchestration."""

from bablab.core.services.research_service import (
    StudyOutcome,
    load_run_manifest,
    new_run_id,
    run_study,
)

__all__ = ["StudyOutcome", "load_run_manifest", "new_run_id", "run_study"]
