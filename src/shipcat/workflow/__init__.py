"""Release workflow."""

from shipcat.workflow.graph import create_workflow

__all__ = ["create_workflow"]
