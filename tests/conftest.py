"""Shared fixtures for the audit agent tests.

Environment is pinned before any audit_agent import so the global settings
never touch real API keys, log files or metrics files.
"""

import os
import tempfile
from pathlib import Path
from typing import List, Optional

_TEST_HOME = Path(tempfile.mkdtemp(prefix="audit-agent-tests-"))

os.environ.update({
    "LLM_PROVIDER": "gemini",
    "GEMINI_API_KEY": "",
    "API_KEY": "",
    "OPENAI_API_KEY": "",
    "LOG_FILE": "",
    "LOG_LEVEL": "DEBUG",
    "ENABLE_METRICS": "false",
    "METRICS_FILE": str(_TEST_HOME / "metrics.json"),
    "DB_PATH": str(_TEST_HOME / "audit_agent.db"),
})

import pytest  # noqa: E402

from audit_agent.core.prompts import default_prompt_templates  # noqa: E402
from audit_agent.database import Database  # noqa: E402
from audit_agent.models import PromptTemplates, StepRequest, StepResult, WorkflowData  # noqa: E402

SAMPLE_REPORT = (
    "UX audit of the checkout flow.\n"
    "1. The primary button has insufficient contrast.\n"
    "2. Form errors are only shown after submit.\n"
    "3. The shipping step has no progress indicator."
)


class FakeLLMClient:
    """Stands in for LLMClient; answers every step with a predictable text."""

    def __init__(self, fail_at: Optional[int] = None, text: Optional[str] = None):
        self.fail_at = fail_at
        self.text = text
        self.requests: List[StepRequest] = []

    async def generate(self, request: StepRequest) -> StepResult:
        self.requests.append(request)
        if request.step_id == self.fail_at:
            raise RuntimeError(f"provider unavailable at step {request.step_id}")
        text = self.text if self.text is not None else f"Output of step {request.step_id}"
        return StepResult(text=text, model=request.model, prompt_tokens=10, completion_tokens=20)

    @property
    def step_ids(self) -> List[int]:
        return [request.step_id for request in self.requests]


@pytest.fixture
def fake_client() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture
def templates() -> PromptTemplates:
    return default_prompt_templates()


@pytest.fixture
def report_data() -> WorkflowData:
    return WorkflowData(audit_report=SAMPLE_REPORT)


@pytest.fixture
def completed_data() -> WorkflowData:
    """Input plus results for every step."""
    data = WorkflowData(audit_report=SAMPLE_REPORT)
    for step_id in range(1, 6):
        data = data.with_result(step_id, f"Output of step {step_id}")
    return data


@pytest.fixture
def db(tmp_path) -> Database:
    return Database(db_path=str(tmp_path / "store.db"))
