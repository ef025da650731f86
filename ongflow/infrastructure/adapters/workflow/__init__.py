"""Workflow engine adapters."""

from ongflow.infrastructure.adapters.workflow.bonita_gateway import (
    BonitaWorkflowGateway,
)

__all__: list[str] = ["BonitaWorkflowGateway"]
