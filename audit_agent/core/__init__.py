"""
Core workflow: step catalog, step runner, PDF ingestion and the LangGraph engine.
"""

from .pdf_processor import ExtractedDocument, extract_pdf_text, validate_pdf
from .prompts import (
    DEFAULT_PROMPT_TEMPLATES,
    STEP_DEFINITIONS,
    default_prompt_templates,
    get_step_definition,
    initial_steps,
    reset_prompt,
)
from .step_runner import build_step_request, run_step
from .workflow import WorkflowEngine, apply_event, prepare_steps

__all__ = [
    "ExtractedDocument",
    "extract_pdf_text",
    "validate_pdf",
    "DEFAULT_PROMPT_TEMPLATES",
    "STEP_DEFINITIONS",
    "default_prompt_templates",
    "get_step_definition",
    "initial_steps",
    "reset_prompt",
    "build_step_request",
    "run_step",
    "WorkflowEngine",
    "apply_event",
    "prepare_steps",
]
