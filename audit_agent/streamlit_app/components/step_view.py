"""
Step result view: status placeholders, markdown output, sources, inline
editing, copy/download and re-run controls.
"""

from typing import Callable

import streamlit as st

from audit_agent.models import StepStatus, WorkflowStep


def render_citations(step: WorkflowStep):
    """List grounding sources under the step output."""
    sources = [chunk.source for chunk in step.citations if chunk.source]
    if not sources:
        return

    st.markdown("**Sources**")
    seen = set()
    for source in sources:
        if source.uri in seen:
            continue
        seen.add(source.uri)
        st.markdown(f"- [{source.title or source.uri}]({source.uri})")


def edit_text_key(step_id: int) -> str:
    return f"edit_text_{step_id}"


def editing_key(step_id: int) -> str:
    return f"editing_{step_id}"


def _stop_editing(step_id: int):
    st.session_state[editing_key(step_id)] = False


def _save_and_stop(step_id: int, on_save: Callable[[int, str], None]):
    on_save(step_id, st.session_state[edit_text_key(step_id)])
    _stop_editing(step_id)


def render_step(
    step: WorkflowStep,
    processing: bool,
    can_rerun: bool,
    on_save: Callable[[int, str], None],
    on_rerun: Callable[[int], None]
):
    """
    Render one step.

    Args:
        step: Step to show
        processing: A workflow is running; editing and re-running are disabled
        can_rerun: The step's input is available, so it can be run again
        on_save: Callback(step_id, content) for saved inline edits
        on_rerun: Callback(step_id) to run the workflow from this step
    """
    with st.expander("About this step", expanded=False):
        st.write(f"**Purpose:** {step.purpose}")
        st.write(f"**Expected output:** {step.expected_output}")

    if step.status == StepStatus.PENDING:
        st.info("⏳ Waiting for workflow to reach this step...")

    elif step.status == StepStatus.LOADING:
        st.info("🤖 AI Agent is thinking...")
        st.caption(step.description)

    elif step.status == StepStatus.ERROR:
        st.error("❌ Generation Failed. Check your API key or try again.")
        st.button(
            "🔁 Retry this step",
            key=f"retry_{step.id}",
            disabled=processing or not can_rerun,
            on_click=on_rerun,
            args=(step.id,)
        )

    elif step.status == StepStatus.COMPLETED:
        if step.edited:
            st.caption("✏️ Edited by you. Re-run the following steps to use your changes.")

        editing = st.toggle("Edit output", key=editing_key(step.id), disabled=processing)
        if editing:
            if edit_text_key(step.id) not in st.session_state:
                st.session_state[edit_text_key(step.id)] = step.content
            st.text_area("Edit output (markdown)", key=edit_text_key(step.id), height=400)

            col1, col2 = st.columns(2)
            with col1:
                st.button(
                    "💾 Save edits",
                    key=f"save_edit_{step.id}",
                    type="primary",
                    on_click=_save_and_stop,
                    args=(step.id, on_save)
                )
            with col2:
                st.button("Cancel", key=f"cancel_edit_{step.id}", on_click=_stop_editing, args=(step.id,))
        else:
            st.session_state.pop(edit_text_key(step.id), None)
            st.markdown(step.content)
            render_citations(step)

        st.divider()
        with st.expander("📋 Copy to Clipboard"):
            st.code(step.content, language="markdown")

        col1, col2 = st.columns(2)
        with col1:
            st.download_button(
                label="📥 Download Markdown",
                data=step.content,
                file_name=f"step_{step.id}.md",
                mime="text/markdown",
                key=f"download_step_{step.id}"
            )
        with col2:
            st.button(
                "🔁 Re-run from this step",
                key=f"rerun_{step.id}",
                disabled=processing or not can_rerun,
                on_click=on_rerun,
                args=(step.id,)
            )
