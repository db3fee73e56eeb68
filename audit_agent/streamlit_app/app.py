"""
Streamlit UI for the UX Audit Agent
Main application file.

Walks the user through the five-step workflow: paste text or upload a PDF,
optionally adjust prompts, run the agent and review each step's output.
"""

import asyncio
import uuid
from datetime import datetime, timezone

import pandas as pd
import streamlit as st

from audit_agent.core.pdf_processor import extract_pdf_text
from audit_agent.core.prompts import initial_steps
from audit_agent.core.workflow import WorkflowEngine, apply_event, prepare_steps
from audit_agent.database import Database, get_database
from audit_agent.exceptions import AuditAgentError
from audit_agent.models import STEP_IDS, StepStatus, WorkflowData, WorkflowRun, WorkflowStep
from audit_agent.settings import settings
from audit_agent.streamlit_app.components import render_prompt_settings, render_step
from audit_agent.utils.logger import get_logger

logger = get_logger(__name__)

INPUT_VIEW = "input"
SETTINGS_VIEW = "settings"
HISTORY_VIEW = "history"

STATUS_MARKERS = {
    StepStatus.PENDING: "",
    StepStatus.LOADING: " ⏳",
    StepStatus.COMPLETED: " ✅",
    StepStatus.ERROR: " ❌",
}

DARK_THEME_CSS = """
<style>
.stApp, [data-testid="stSidebar"], [data-testid="stHeader"] {
    background-color: #0f172a;
    color: #e2e8f0;
}
.stApp p, .stApp li, .stApp label, .stApp h1, .stApp h2, .stApp h3 {
    color: #e2e8f0;
}
</style>
"""

# Configure Streamlit page
st.set_page_config(
    page_title=settings.app_title,
    page_icon=settings.app_icon,
    layout="wide",
    initial_sidebar_state="expanded"
)


@st.cache_resource
def get_store() -> Database:
    """Get the preferences and history store."""
    return get_database()


@st.cache_resource
def get_engine() -> WorkflowEngine:
    """Get the compiled workflow engine."""
    return WorkflowEngine()


db = get_store()


def init_session_state():
    """Initialize session state on first load."""
    defaults = {
        "audit_report": "",
        "steps": initial_steps(),
        "data": WorkflowData(),
        "processing": False,
        "error": None,
        "view": INPUT_VIEW,
        "pending_start": None,
        "last_pdf": None,
    }
    for key, value in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = value

    if "preferences" not in st.session_state:
        st.session_state.preferences = db.load_preferences()


def get_step(step_id: int) -> WorkflowStep:
    return next(step for step in st.session_state.steps if step.id == step_id)


def can_run_from(step_id: int) -> bool:
    """A step can run when the input exists and the previous step has output."""
    if not st.session_state.audit_report.strip():
        return False
    if step_id == 1:
        return True
    return bool(st.session_state.data.result_for(step_id - 1).strip())


# ===== Callbacks =====

def request_start(step_id: int = 1):
    st.session_state.pending_start = step_id


def reset_workflow():
    st.session_state.steps = initial_steps()
    st.session_state.data = WorkflowData()
    st.session_state.audit_report = ""
    st.session_state.view = INPUT_VIEW
    st.session_state.error = None
    st.session_state.processing = False
    st.session_state.last_pdf = None


def dismiss_error():
    st.session_state.error = None


def on_navigate():
    st.session_state.view = st.session_state.nav


def on_input_change():
    st.session_state.audit_report = st.session_state.audit_report_input


def save_step_edit(step_id: int, content: str):
    """Replace a step's output with the user's edit; later steps read the edit."""
    st.session_state.steps = [
        step.model_copy(update={"content": content, "edited": True}) if step.id == step_id else step
        for step in st.session_state.steps
    ]
    st.session_state.data = st.session_state.data.with_result(step_id, content)
    logger.info("Step output edited", extra={"step_id": step_id, "content_length": len(content)})


def toggle_theme():
    preferences = st.session_state.preferences.model_copy(update={
        "theme": "dark" if st.session_state.dark_mode else "light"
    })
    st.session_state.preferences = preferences
    db.save_preferences(preferences)


# ===== Workflow Execution =====

async def execute_workflow(start_step: int) -> WorkflowRun:
    """Run the workflow, updating the progress display as steps start and finish."""
    data = st.session_state.data.model_copy(update={"audit_report": st.session_state.audit_report})
    run = WorkflowRun(
        run_id=uuid.uuid4().hex,
        started_at=datetime.now(timezone.utc),
        start_step=start_step,
        steps=prepare_steps(st.session_state.steps, start_step),
        data=data.cleared_from(start_step),
    )

    progress_bar = st.progress(0)
    status_text = st.empty()
    steps_to_run = len(STEP_IDS) - start_step + 1

    try:
        async for event in get_engine().stream(
            data,
            st.session_state.preferences.prompts,
            start_step=start_step,
            run_id=run.run_id
        ):
            apply_event(run, event)

            if event.type == "step_started":
                step = get_step(event.step_id)
                status_text.text(f"📄 {step.title}: {step.description}")
            elif event.type == "step_completed":
                progress_bar.progress((event.step_id - start_step + 1) / steps_to_run)
            elif event.type == "step_failed":
                st.session_state.error = event.message
            elif event.type == "workflow_completed":
                progress_bar.progress(1.0)
                status_text.success("✅ Workflow complete!")

    except AuditAgentError as e:
        st.session_state.error = str(e)
    finally:
        st.session_state.steps = run.steps
        st.session_state.data = run.data

    if run.finished_at:
        db.record_run(run)
    return run


def start_pending_workflow():
    """Run a workflow requested by a button callback, then redraw."""
    start_step = st.session_state.pending_start
    if start_step is None:
        return

    st.session_state.pending_start = None
    st.session_state.error = None
    st.session_state.processing = True
    try:
        run = asyncio.run(execute_workflow(start_step))
    finally:
        st.session_state.processing = False

    reached = [step.id for step in run.steps if step.status != StepStatus.PENDING]
    st.session_state.view = max(reached) if reached else INPUT_VIEW
    st.rerun()


# ===== Views =====

def render_sidebar():
    with st.sidebar:
        st.header("Workflow")

        options = [INPUT_VIEW, *STEP_IDS, SETTINGS_VIEW, HISTORY_VIEW]

        def label(option) -> str:
            if option == INPUT_VIEW:
                return "📄 Audit Input"
            if option == SETTINGS_VIEW:
                return "⚙️ Prompt Settings"
            if option == HISTORY_VIEW:
                return "📋 History"
            step = get_step(option)
            return f"{step.title}{STATUS_MARKERS[step.status]}"

        st.session_state.nav = st.session_state.view
        st.radio(
            "View",
            options,
            format_func=label,
            key="nav",
            on_change=on_navigate,
            label_visibility="collapsed"
        )

        st.divider()
        st.button(
            "▶️ Start Workflow",
            type="primary",
            use_container_width=True,
            disabled=st.session_state.processing or not st.session_state.audit_report.strip(),
            on_click=request_start,
            args=(1,)
        )
        st.button(
            "↺ Reset",
            use_container_width=True,
            disabled=st.session_state.processing,
            on_click=reset_workflow
        )

        st.divider()
        st.toggle(
            "🌙 Dark mode",
            value=st.session_state.preferences.theme == "dark",
            key="dark_mode",
            on_change=toggle_theme
        )

        st.divider()
        st.subheader("Workflow Guide")
        st.markdown(
            "1. Paste your audit text or upload a PDF.\n"
            "2. (Optional) Adjust prompts in Settings.\n"
            "3. Run the agent workflow.\n"
            "4. Review the AI-generated analysis."
        )
        st.caption(f"Provider: {settings.llm_provider} · v{settings.app_version}")


def render_input_view():
    st.header("Input Audit Report")
    st.warning(
        "Paste the text content of your audit report below, or upload a PDF. The AI agents "
        "will analyze this text to generate the subsequent artifacts."
    )

    uploaded_file = st.file_uploader(
        "Upload a PDF",
        type=["pdf"],
        help=f"Maximum file size: {settings.max_pdf_size_mb} MB"
    )
    if uploaded_file is not None and uploaded_file.file_id != st.session_state.last_pdf:
        st.session_state.last_pdf = uploaded_file.file_id
        try:
            with st.spinner("Extracting text..."):
                document = extract_pdf_text(uploaded_file.getvalue())
            st.session_state.audit_report = document.text
            st.success(
                f"✅ Extracted {document.word_count:,} words from {document.page_count} pages"
            )
        except AuditAgentError as e:
            st.session_state.error = str(e)
            st.rerun()

    st.session_state.audit_report_input = st.session_state.audit_report
    st.text_area(
        "Audit report",
        key="audit_report_input",
        height=450,
        placeholder="Paste your UX Audit Report text here...",
        on_change=on_input_change,
        label_visibility="collapsed"
    )

    col1, col2 = st.columns(2)
    with col1:
        st.caption(f"{len(st.session_state.audit_report):,} characters")
    with col2:
        if st.session_state.audit_report.strip():
            st.caption("Ready to analyze")


def render_step_view(step_id: int):
    step = get_step(step_id)
    header_col, badge_col = st.columns([5, 1])
    with header_col:
        st.header(step.title)
    with badge_col:
        if step.status == StepStatus.COMPLETED:
            st.success("Completed")

    render_step(
        step,
        processing=st.session_state.processing,
        can_rerun=can_run_from(step_id),
        on_save=save_step_edit,
        on_rerun=request_start
    )


def render_history_view():
    st.header("📋 Run History")

    runs = db.get_recent_runs(limit=settings.history_limit)
    if not runs:
        st.info("No workflow runs yet")
        return

    df = pd.DataFrame([
        {
            "Started": run.started_at,
            "Status": run.status,
            "From step": run.start_step,
            "Steps with output": len(run.outputs),
            "Input": run.input_excerpt[:80],
        }
        for run in runs
    ])
    st.dataframe(df, use_container_width=True, hide_index=True)

    selected_idx = st.selectbox(
        "Select a run to view its outputs",
        range(len(runs)),
        format_func=lambda i: f"{runs[i].started_at:%Y-%m-%d %H:%M:%S} ({runs[i].status})"
    )
    selected = runs[selected_idx]
    if selected.error_message:
        st.error(selected.error_message)
    for step_id, text in sorted(selected.outputs.items()):
        with st.expander(get_step(step_id).title, expanded=False):
            st.markdown(text)


def render_error_banner():
    if not st.session_state.error:
        return
    col1, col2 = st.columns([6, 1])
    with col1:
        st.error(f"**Workflow Error**\n\n{st.session_state.error}")
    with col2:
        st.button("Dismiss", on_click=dismiss_error)


def main():
    """Main application."""
    init_session_state()

    if st.session_state.preferences.theme == "dark":
        st.markdown(DARK_THEME_CSS, unsafe_allow_html=True)

    st.title(f"{settings.app_icon} {settings.app_title}")

    start_pending_workflow()
    render_sidebar()
    render_error_banner()

    view = st.session_state.view
    if view == INPUT_VIEW:
        render_input_view()
    elif view == SETTINGS_VIEW:
        st.header("Prompt Configuration")
        render_prompt_settings(db)
    elif view == HISTORY_VIEW:
        render_history_view()
    else:
        render_step_view(view)


main()
