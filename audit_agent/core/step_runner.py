"""
Step Runner
Builds the LLM request for one workflow step and executes it.
"""

from typing import Optional

from audit_agent.core.prompts import CONTEXT_LABELS, SEARCH_GROUNDING_INSTRUCTION
from audit_agent.exceptions import InvalidStepError, StepExecutionError
from audit_agent.models import (
    STEP_IDS,
    GeoLocation,
    PromptTemplates,
    StepRequest,
    StepResult,
    WorkflowData,
)
from audit_agent.settings import settings
from audit_agent.utils.llm import LLMClient
from audit_agent.utils.logger import get_logger
from audit_agent.utils.metrics import get_metrics_collector

logger = get_logger(__name__)

NO_RESPONSE_TEXT = "No response generated."

# Proposal and documentation steps reason at length; the others favor speed.
THINKING_STEPS = {2, 4}
SEARCH_STEPS = {1}


def build_step_request(
    step_id: int,
    data: WorkflowData,
    templates: PromptTemplates,
    location: Optional[GeoLocation] = None
) -> StepRequest:
    """
    Resolve the model, instructions and context for one step.

    Args:
        step_id: Step number (1-5)
        data: Input document and results of earlier steps
        templates: Prompt templates to use
        location: Optional location for search grounding (step 1 only)

    Returns:
        StepRequest ready for the LLM client

    Raises:
        InvalidStepError: If step_id is not one of the five steps
    """
    if step_id not in STEP_IDS:
        raise InvalidStepError(step_id)

    template = templates.get(step_id)
    context = data.result_for(step_id - 1)

    system_instruction = template.system_role
    if step_id in SEARCH_STEPS:
        system_instruction = f"{template.system_role}\n\n{SEARCH_GROUNDING_INSTRUCTION}"

    return StepRequest(
        step_id=step_id,
        model=settings.pro_model if step_id in THINKING_STEPS else settings.flash_model,
        system_instruction=system_instruction,
        user_content=f"{template.user_prompt}\n\n{CONTEXT_LABELS[step_id]}:\n{context}",
        use_search=step_id in SEARCH_STEPS,
        thinking_budget=settings.thinking_budget if step_id in THINKING_STEPS else None,
        location=location if step_id in SEARCH_STEPS else None
    )


async def run_step(
    step_id: int,
    data: WorkflowData,
    templates: PromptTemplates,
    client: LLMClient,
    location: Optional[GeoLocation] = None
) -> StepResult:
    """
    Execute one workflow step with the run's LLM client.

    Raises:
        InvalidStepError: If step_id is not one of the five steps
        StepExecutionError: If the provider call fails
    """
    request = build_step_request(step_id, data, templates, location)

    logger.info(
        f"Running step {step_id}",
        extra={"step_id": step_id, "model": request.model, "use_search": request.use_search}
    )

    try:
        result = await client.generate(request)
    except Exception as e:
        logger.error(
            f"Error in step {step_id}: {str(e)}",
            extra={"step_id": step_id, "error_type": type(e).__name__}
        )
        get_metrics_collector().record_error(type(e).__name__, str(e))
        raise StepExecutionError(step_id, e) from e

    if not result.text.strip():
        logger.warning(f"Step {step_id} returned an empty response", extra={"step_id": step_id})
        result = result.model_copy(update={"text": NO_RESPONSE_TEXT})

    return result
