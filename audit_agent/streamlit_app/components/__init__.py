"""
UI components for the Streamlit app.
"""

from .prompt_editor import render_prompt_settings, sync_prompt_widgets
from .step_view import render_citations, render_step

__all__ = [
    "render_prompt_settings",
    "sync_prompt_widgets",
    "render_citations",
    "render_step",
]
