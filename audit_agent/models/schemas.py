"""
Data models for the audit workflow.

Plain request/response records for the five workflow steps, the prompt
templates users edit, and the preferences object persisted to the store.
"""
from datetime import datetime
from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field


STEP_IDS = (1, 2, 3, 4, 5)


# ===== Step State =====

class StepStatus(str, Enum):
    """Lifecycle of a single workflow step."""
    PENDING = "pending"
    LOADING = "loading"
    COMPLETED = "completed"
    ERROR = "error"


class GroundingSource(BaseModel):
    """A web or maps source returned by search grounding."""
    uri: str = Field(..., description="Source URL")
    title: str = Field(default="", description="Source title")


class GroundingChunk(BaseModel):
    """One grounding chunk attached to a model response."""
    web: Optional[GroundingSource] = Field(default=None, description="Web search source")
    maps: Optional[GroundingSource] = Field(default=None, description="Maps source")

    @property
    def source(self) -> Optional[GroundingSource]:
        return self.web or self.maps


class StepDefinition(BaseModel):
    """Static description of a workflow step, shown in the UI and settings."""
    id: int = Field(..., ge=1, le=5, description="Step number (1-5)")
    title: str
    description: str
    purpose: str
    expected_output: str
    example_system_role: str
    example_user_prompt: str
    system_role_examples: List[str] = Field(default_factory=list)
    user_prompt_examples: List[str] = Field(default_factory=list)


class WorkflowStep(StepDefinition):
    """A step definition plus its runtime state."""
    status: StepStatus = Field(default=StepStatus.PENDING)
    content: str = Field(default="", description="Markdown output of the step")
    citations: List[GroundingChunk] = Field(default_factory=list)
    edited: bool = Field(default=False, description="Content was edited by the user")


# ===== Prompt Templates =====

class PromptTemplate(BaseModel):
    """System role and user prompt for one step."""
    system_role: str = Field(..., description="System instruction given to the model")
    user_prompt: str = Field(..., description="Instruction placed before the step context")


class PromptTemplates(BaseModel):
    """Prompt templates for all five steps."""
    step1: PromptTemplate
    step2: PromptTemplate
    step3: PromptTemplate
    step4: PromptTemplate
    step5: PromptTemplate

    def get(self, step_id: int) -> PromptTemplate:
        """Return the template for a step."""
        if step_id not in STEP_IDS:
            raise KeyError(f"step{step_id}")
        return getattr(self, f"step{step_id}")

    def with_template(self, step_id: int, template: PromptTemplate) -> "PromptTemplates":
        """Return a copy with one step's template replaced."""
        if step_id not in STEP_IDS:
            raise KeyError(f"step{step_id}")
        return self.model_copy(update={f"step{step_id}": template})


# ===== Workflow Data =====

class WorkflowData(BaseModel):
    """Input document and the chained results of each step."""
    audit_report: str = Field(default="", description="Source document text")
    step1_result: str = ""
    step2_result: str = ""
    step3_result: str = ""
    step4_result: str = ""
    step5_result: str = ""

    def result_for(self, step_id: int) -> str:
        if step_id == 0:
            return self.audit_report
        return getattr(self, f"step{step_id}_result")

    def with_result(self, step_id: int, text: str) -> "WorkflowData":
        """Return a copy with one step result replaced."""
        if step_id not in STEP_IDS:
            raise KeyError(f"step{step_id}_result")
        return self.model_copy(update={f"step{step_id}_result": text})

    def cleared_from(self, step_id: int) -> "WorkflowData":
        """Return a copy with the results of step_id and every later step emptied."""
        return self.model_copy(update={
            f"step{i}_result": "" for i in STEP_IDS if i >= step_id
        })


class GeoLocation(BaseModel):
    """User location forwarded to search grounding."""
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class StepRequest(BaseModel):
    """Fully resolved LLM call for one step."""
    step_id: int
    model: str
    system_instruction: str
    user_content: str
    use_search: bool = False
    thinking_budget: Optional[int] = None
    location: Optional[GeoLocation] = None


class StepResult(BaseModel):
    """Output of one LLM call."""
    text: str
    citations: List[GroundingChunk] = Field(default_factory=list)
    model: str = ""
    prompt_tokens: int = 0
    completion_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


# ===== Workflow Events and Runs =====

class WorkflowEvent(BaseModel):
    """Progress update emitted while a workflow runs."""
    type: Literal["step_started", "step_completed", "step_failed", "workflow_completed"]
    step_id: Optional[int] = None
    result: Optional[StepResult] = None
    message: Optional[str] = None
    data: Optional[WorkflowData] = None


class WorkflowRun(BaseModel):
    """Final record of a workflow run."""
    run_id: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    start_step: int = 1
    status: Literal["running", "completed", "failed"] = "running"
    steps: List[WorkflowStep] = Field(default_factory=list)
    data: WorkflowData = Field(default_factory=WorkflowData)
    error: Optional[str] = None

    @property
    def duration_seconds(self) -> float:
        if not self.finished_at:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()


# ===== Persisted Preferences =====

class UserPreferences(BaseModel):
    """Settings object persisted verbatim to the local store."""
    prompts: PromptTemplates
    theme: Literal["light", "dark"] = "light"


class RunSummary(BaseModel):
    """Row of the run history."""
    run_id: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    status: str
    start_step: int = 1
    input_excerpt: str = ""
    error_message: Optional[str] = None
    outputs: Dict[int, str] = Field(default_factory=dict)
