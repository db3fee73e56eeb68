"""
Audit Workflow Engine
LangGraph StateGraph running the five steps in order, each step feeding
its output to the next.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

from langchain_core.runnables import RunnableConfig
from langgraph.graph import StateGraph, START, END

from audit_agent.core.graph_state import WorkflowState, create_initial_state
from audit_agent.core.prompts import initial_steps
from audit_agent.core.step_runner import run_step
from audit_agent.exceptions import (
    AuditAgentError,
    EmptyInputError,
    InvalidStepError,
    WorkflowError,
)
from audit_agent.models import (
    STEP_IDS,
    GeoLocation,
    PromptTemplates,
    StepStatus,
    WorkflowData,
    WorkflowEvent,
    WorkflowRun,
    WorkflowStep,
)
from audit_agent.utils.llm import LLMClient
from audit_agent.utils.logger import get_logger
from audit_agent.utils.metrics import track_step_execution, track_workflow

logger = get_logger(__name__)

LAST_STEP = STEP_IDS[-1]


def node_name(step_id: int) -> str:
    return f"step_{step_id}"


def route_start(state: WorkflowState) -> str:
    """Enter the graph at the requested start step."""
    return node_name(state.get("start_step", 1))


def should_continue(state: WorkflowState) -> str:
    """Stop the chain as soon as a step fails."""
    if state.get("error"):
        logger.warning(
            f"Stopping workflow after failed step {state.get('failed_step')}",
            extra={"run_id": state.get("run_id")}
        )
        return "stop"
    return "continue"


def prepare_steps(steps: List[WorkflowStep], start_step: int) -> List[WorkflowStep]:
    """Reset start_step and every later step to pending; keep earlier ones."""
    prepared = []
    for step in steps:
        if step.id >= start_step:
            step = step.model_copy(update={
                "status": StepStatus.PENDING,
                "content": "",
                "citations": [],
                "edited": False,
            })
        prepared.append(step)
    return prepared


def apply_event(run: WorkflowRun, event: WorkflowEvent) -> WorkflowRun:
    """Fold one workflow event into a run record (in place) and return it."""
    steps_by_id = {step.id: step for step in run.steps}
    step = steps_by_id.get(event.step_id) if event.step_id is not None else None

    if event.type == "step_started" and step:
        step.status = StepStatus.LOADING

    elif event.type == "step_completed" and step and event.result:
        step.status = StepStatus.COMPLETED
        step.content = event.result.text
        step.citations = list(event.result.citations)
        run.data = run.data.with_result(step.id, event.result.text)

    elif event.type == "step_failed":
        for candidate in run.steps:
            if candidate.status == StepStatus.LOADING:
                candidate.status = StepStatus.ERROR
        run.status = "failed"
        run.error = event.message
        run.finished_at = datetime.now(timezone.utc)

    elif event.type == "workflow_completed":
        run.status = "completed"
        if event.data is not None:
            run.data = event.data
        run.finished_at = datetime.now(timezone.utc)

    return run


class WorkflowEngine:
    """LangGraph engine for the five-step audit workflow."""

    def __init__(self, client: Optional[LLMClient] = None):
        """
        Args:
            client: LLM client to use for every run; when omitted each run
                creates its own and closes it when the run ends
        """
        self.client = client
        self.graph = self._build_graph()
        logger.debug("Workflow engine initialized")

    def _make_step_node(self, step_id: int):
        async def step_node(state: WorkflowState, config: RunnableConfig) -> Dict[str, Any]:
            client = config["configurable"]["llm_client"]
            with track_step_execution(step_id):
                try:
                    result = await run_step(
                        step_id,
                        state["data"],
                        state["templates"],
                        client,
                        location=state.get("location")
                    )
                except AuditAgentError as e:
                    return {
                        "current_step": step_id,
                        "last_result": None,
                        "error": str(e),
                        "failed_step": step_id,
                    }

            citations = dict(state.get("citations") or {})
            citations[step_id] = result.citations
            return {
                "data": state["data"].with_result(step_id, result.text),
                "current_step": step_id,
                "last_result": result,
                "citations": citations,
            }

        step_node.__name__ = f"step_{step_id}_node"
        return step_node

    def _build_graph(self):
        """Build the linear step_1 -> ... -> step_5 graph."""
        workflow = StateGraph(WorkflowState)

        for step_id in STEP_IDS:
            workflow.add_node(node_name(step_id), self._make_step_node(step_id))

        # Resuming from a later step enters the chain part-way
        workflow.add_conditional_edges(
            START,
            route_start,
            {node_name(step_id): node_name(step_id) for step_id in STEP_IDS}
        )

        for step_id in STEP_IDS[:-1]:
            workflow.add_conditional_edges(
                node_name(step_id),
                should_continue,
                {
                    "continue": node_name(step_id + 1),
                    "stop": END
                }
            )
        workflow.add_edge(node_name(LAST_STEP), END)

        return workflow.compile()

    async def stream(
        self,
        data: WorkflowData,
        templates: PromptTemplates,
        location: Optional[GeoLocation] = None,
        start_step: int = 1,
        run_id: Optional[str] = None
    ) -> AsyncIterator[WorkflowEvent]:
        """
        Run the workflow and yield progress events.

        Args:
            data: Input document plus any earlier step results
            templates: Prompt templates to use
            location: Optional location for search grounding
            start_step: Step to start from; earlier results are reused
            run_id: Optional run identifier for logging

        Yields:
            step_started / step_completed / step_failed / workflow_completed events

        Raises:
            EmptyInputError: If the input document is blank
            InvalidStepError: If start_step is not one of the five steps
            WorkflowError: If start_step needs a result that is missing
            ConfigurationError: If no client was given and the API key is missing
        """
        if not data.audit_report.strip():
            raise EmptyInputError()
        if start_step not in STEP_IDS:
            raise InvalidStepError(start_step)
        if start_step > 1 and not data.result_for(start_step - 1).strip():
            raise WorkflowError(
                f"Step {start_step} needs the output of step {start_step - 1}. "
                "Run the earlier steps first."
            )

        run_id = run_id or uuid.uuid4().hex
        data = data.cleared_from(start_step)
        initial_state = create_initial_state(run_id, data, templates, location, start_step)

        # Pooled SDK connections are bound to the current event loop
        client = self.client or LLMClient()
        run_config: RunnableConfig = {"configurable": {"llm_client": client}}

        logger.info(
            "Starting workflow",
            extra={"run_id": run_id, "start_step": start_step, "input_length": len(data.audit_report)}
        )

        try:
            with track_workflow() as tracker:
                yield WorkflowEvent(type="step_started", step_id=start_step)

                async for chunk in self.graph.astream(initial_state, config=run_config, stream_mode="updates"):
                    for name, update in chunk.items():
                        if not name.startswith("step_") or not update:
                            continue

                        step_id = update["current_step"]
                        if update.get("error"):
                            tracker.failure()
                            logger.error(
                                f"Workflow failed at step {step_id}",
                                extra={"run_id": run_id, "step_id": step_id}
                            )
                            yield WorkflowEvent(type="step_failed", step_id=step_id, message=update["error"])
                            return

                        data = update["data"]
                        yield WorkflowEvent(type="step_completed", step_id=step_id, result=update["last_result"])
                        if step_id < LAST_STEP:
                            yield WorkflowEvent(type="step_started", step_id=step_id + 1)

                tracker.success()
                logger.info("Workflow completed", extra={"run_id": run_id})
                yield WorkflowEvent(type="workflow_completed", data=data)
        finally:
            if client is not self.client:
                await client.aclose()

    async def run(
        self,
        data: WorkflowData,
        templates: PromptTemplates,
        location: Optional[GeoLocation] = None,
        start_step: int = 1,
        steps: Optional[List[WorkflowStep]] = None,
        on_event: Optional[Callable[[WorkflowEvent], None]] = None
    ) -> WorkflowRun:
        """
        Run the workflow to the end (or first failure) and return the run record.

        Args:
            steps: Current step states; earlier steps are kept when resuming
            on_event: Called with every event as it arrives
        """
        run = WorkflowRun(
            run_id=uuid.uuid4().hex,
            started_at=datetime.now(timezone.utc),
            start_step=start_step,
            steps=prepare_steps(steps or initial_steps(), start_step),
            data=data.cleared_from(start_step) if start_step in STEP_IDS else data,
        )

        async for event in self.stream(data, templates, location, start_step, run_id=run.run_id):
            apply_event(run, event)
            if on_event:
                on_event(event)

        return run
