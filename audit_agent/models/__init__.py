"""
Data models for the audit workflow.
"""

from .schemas import (
    STEP_IDS,
    GeoLocation,
    GroundingChunk,
    GroundingSource,
    PromptTemplate,
    PromptTemplates,
    RunSummary,
    StepDefinition,
    StepRequest,
    StepResult,
    StepStatus,
    UserPreferences,
    WorkflowData,
    WorkflowEvent,
    WorkflowRun,
    WorkflowStep,
)

__all__ = [
    "STEP_IDS",
    "GeoLocation",
    "GroundingChunk",
    "GroundingSource",
    "PromptTemplate",
    "PromptTemplates",
    "RunSummary",
    "StepDefinition",
    "StepRequest",
    "StepResult",
    "StepStatus",
    "UserPreferences",
    "WorkflowData",
    "WorkflowEvent",
    "WorkflowRun",
    "WorkflowStep",
]
