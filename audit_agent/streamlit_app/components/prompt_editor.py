"""
Prompt settings view.

Every change is written straight to the preferences store so edits survive
a browser reload.
"""

import streamlit as st

from audit_agent.core.prompts import STEP_DEFINITIONS, default_prompt_templates, reset_prompt
from audit_agent.database import Database
from audit_agent.models import PromptTemplate, UserPreferences

EXAMPLE_PLACEHOLDER = "Insert an example..."


def _role_key(step_id: int) -> str:
    return f"prompt_role_{step_id}"


def _user_key(step_id: int) -> str:
    return f"prompt_user_{step_id}"


def sync_prompt_widgets(preferences: UserPreferences, force: bool = False):
    """Copy stored templates into widget state."""
    for definition in STEP_DEFINITIONS:
        template = preferences.prompts.get(definition.id)
        if force or _role_key(definition.id) not in st.session_state:
            st.session_state[_role_key(definition.id)] = template.system_role
        if force or _user_key(definition.id) not in st.session_state:
            st.session_state[_user_key(definition.id)] = template.user_prompt


def _save(db: Database, preferences: UserPreferences):
    st.session_state.preferences = preferences
    db.save_preferences(preferences)


def _on_prompt_change(db: Database, step_id: int):
    template = PromptTemplate(
        system_role=st.session_state[_role_key(step_id)],
        user_prompt=st.session_state[_user_key(step_id)]
    )
    preferences = st.session_state.preferences
    _save(db, preferences.model_copy(update={
        "prompts": preferences.prompts.with_template(step_id, template)
    }))


def _on_example_selected(db: Database, step_id: int, field: str):
    select_key = f"example_{field}_{step_id}"
    example = st.session_state[select_key]
    if example == EXAMPLE_PLACEHOLDER:
        return

    target_key = _role_key(step_id) if field == "role" else _user_key(step_id)
    st.session_state[target_key] = example
    st.session_state[select_key] = EXAMPLE_PLACEHOLDER
    _on_prompt_change(db, step_id)


def _on_reset_step(db: Database, step_id: int):
    preferences = st.session_state.preferences
    preferences = preferences.model_copy(update={
        "prompts": reset_prompt(preferences.prompts, step_id)
    })
    _save(db, preferences)
    template = preferences.prompts.get(step_id)
    st.session_state[_role_key(step_id)] = template.system_role
    st.session_state[_user_key(step_id)] = template.user_prompt


def _on_reset_all(db: Database):
    preferences = st.session_state.preferences.model_copy(update={
        "prompts": default_prompt_templates()
    })
    _save(db, preferences)
    sync_prompt_widgets(preferences, force=True)
    st.session_state.confirm_reset_all = False


def render_prompt_settings(db: Database):
    """Render the per-step prompt editors."""
    st.info(
        "Customize the instructions for each step. The application automatically appends the "
        "necessary context (the audit report or the previous step's output) to your prompt."
    )
    sync_prompt_widgets(st.session_state.preferences)

    for definition in STEP_DEFINITIONS:
        step_id = definition.id
        with st.container(border=True):
            header_col, reset_col = st.columns([5, 1])
            with header_col:
                st.subheader(definition.title)
                st.caption(definition.purpose)
            with reset_col:
                st.button(
                    "↺ Reset",
                    key=f"reset_prompt_{step_id}",
                    help="Reset this prompt to default",
                    on_click=_on_reset_step,
                    args=(db, step_id)
                )

            st.text_area(
                "System role",
                key=_role_key(step_id),
                height=120,
                on_change=_on_prompt_change,
                args=(db, step_id)
            )
            st.selectbox(
                "Role examples",
                [EXAMPLE_PLACEHOLDER] + [f"You are a {role}" for role in definition.system_role_examples],
                key=f"example_role_{step_id}",
                on_change=_on_example_selected,
                args=(db, step_id, "role"),
                label_visibility="collapsed"
            )

            st.text_area(
                "User prompt",
                key=_user_key(step_id),
                height=140,
                on_change=_on_prompt_change,
                args=(db, step_id)
            )
            st.selectbox(
                "Prompt examples",
                [EXAMPLE_PLACEHOLDER] + definition.user_prompt_examples,
                key=f"example_user_{step_id}",
                on_change=_on_example_selected,
                args=(db, step_id, "user"),
                label_visibility="collapsed"
            )
            st.caption("Step context (automatically appended)")

    st.divider()
    if not st.session_state.get("confirm_reset_all"):
        if st.button("↩️ Reset All to Defaults"):
            st.session_state.confirm_reset_all = True
            st.rerun()
    else:
        st.warning("Are you sure you want to reset all prompts to their default values?")
        col1, col2 = st.columns(2)
        with col1:
            st.button("Yes, reset all", type="primary", on_click=_on_reset_all, args=(db,))
        with col2:
            if st.button("Cancel"):
                st.session_state.confirm_reset_all = False
                st.rerun()
