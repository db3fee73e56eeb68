"""
LangGraph State Definition for the audit workflow.

Defines the state that flows through the five step nodes.
"""

from typing import TypedDict, Dict, List, Optional

from audit_agent.models import (
    GeoLocation,
    GroundingChunk,
    PromptTemplates,
    StepResult,
    WorkflowData,
)


class WorkflowState(TypedDict, total=False):
    """
    State passed between step nodes.

    `data` accumulates step results; each node reads the result of the step
    before it from there.
    """

    # Run identification
    run_id: str

    # Input
    data: WorkflowData
    templates: PromptTemplates
    location: Optional[GeoLocation]
    start_step: int

    # Progress
    current_step: int
    last_result: Optional[StepResult]
    citations: Dict[int, List[GroundingChunk]]

    # Failure
    error: Optional[str]
    failed_step: Optional[int]


def create_initial_state(
    run_id: str,
    data: WorkflowData,
    templates: PromptTemplates,
    location: Optional[GeoLocation] = None,
    start_step: int = 1
) -> WorkflowState:
    """Build the state a run starts from."""
    return WorkflowState(
        run_id=run_id,
        data=data,
        templates=templates,
        location=location,
        start_step=start_step,
        current_step=start_step,
        last_result=None,
        citations={},
        error=None,
        failed_step=None,
    )
