"""
Utils package for the audit agent.
"""

from .llm import LLMClient
from .logger import get_logger, setup_logging
from .metrics import get_metrics_collector, track_step_execution, track_workflow

__all__ = [
    "LLMClient",
    "get_logger",
    "setup_logging",
    "get_metrics_collector",
    "track_step_execution",
    "track_workflow"
]
