"""Tests for the LangGraph workflow engine."""

import asyncio
from datetime import datetime, timezone
from typing import List

import pytest

from audit_agent.core.prompts import initial_steps
from audit_agent.core import workflow as workflow_module
from audit_agent.core.workflow import WorkflowEngine, apply_event, prepare_steps
from audit_agent.exceptions import ConfigurationError, EmptyInputError, InvalidStepError, WorkflowError
from audit_agent.models import (
    StepResult,
    StepStatus,
    WorkflowData,
    WorkflowEvent,
    WorkflowRun,
)
from audit_agent.settings import settings
from tests.conftest import FakeLLMClient


async def collect(engine, *args, **kwargs):
    return [event async for event in engine.stream(*args, **kwargs)]


class TestWorkflowStream:

    @pytest.mark.asyncio
    async def test_runs_all_steps_in_order(self, fake_client, report_data, templates) -> None:
        engine = WorkflowEngine(client=fake_client)

        events = await collect(engine, report_data, templates)

        assert fake_client.step_ids == [1, 2, 3, 4, 5]
        assert [(event.type, event.step_id) for event in events] == [
            ("step_started", 1), ("step_completed", 1),
            ("step_started", 2), ("step_completed", 2),
            ("step_started", 3), ("step_completed", 3),
            ("step_started", 4), ("step_completed", 4),
            ("step_started", 5), ("step_completed", 5),
            ("workflow_completed", None),
        ]
        assert events[-1].data.step5_result == "Output of step 5"

    @pytest.mark.asyncio
    async def test_each_step_receives_previous_output(self, fake_client, report_data, templates) -> None:
        engine = WorkflowEngine(client=fake_client)

        await collect(engine, report_data, templates)

        first, *rest = fake_client.requests
        assert first.user_content.endswith(report_data.audit_report)
        for request in rest:
            assert request.user_content.endswith(f"Output of step {request.step_id - 1}")

    @pytest.mark.asyncio
    async def test_failure_stops_later_steps(self, report_data, templates) -> None:
        client = FakeLLMClient(fail_at=3)
        engine = WorkflowEngine(client=client)

        events = await collect(engine, report_data, templates)

        assert client.step_ids == [1, 2, 3]
        assert events[-1].type == "step_failed"
        assert events[-1].step_id == 3
        assert "Failed to generate content for step 3" in events[-1].message
        assert not any(event.type == "workflow_completed" for event in events)

    @pytest.mark.asyncio
    async def test_resume_reuses_earlier_results(self, fake_client, completed_data, templates) -> None:
        edited = completed_data.with_result(2, "Edited proposal")
        engine = WorkflowEngine(client=fake_client)

        events = await collect(engine, edited, templates, start_step=3)

        assert fake_client.step_ids == [3, 4, 5]
        assert fake_client.requests[0].user_content.endswith("IMPROVEMENTS PROPOSAL:\nEdited proposal")
        assert events[0].type == "step_started" and events[0].step_id == 3
        assert events[-1].data.step2_result == "Edited proposal"

    @pytest.mark.asyncio
    async def test_blank_input_is_rejected(self, fake_client, templates) -> None:
        engine = WorkflowEngine(client=fake_client)

        with pytest.raises(EmptyInputError, match="Please provide the audit report text"):
            await collect(engine, WorkflowData(audit_report="   \n"), templates)
        assert fake_client.requests == []

    @pytest.mark.asyncio
    async def test_unknown_start_step(self, fake_client, report_data, templates) -> None:
        engine = WorkflowEngine(client=fake_client)

        with pytest.raises(InvalidStepError):
            await collect(engine, report_data, templates, start_step=6)

    @pytest.mark.asyncio
    async def test_resume_needs_previous_result(self, fake_client, report_data, templates) -> None:
        engine = WorkflowEngine(client=fake_client)

        with pytest.raises(WorkflowError, match="needs the output of step 3"):
            await collect(engine, report_data, templates, start_step=4)


class TestWorkflowRun:

    @pytest.mark.asyncio
    async def test_completed_run_record(self, fake_client, report_data, templates) -> None:
        seen = []
        engine = WorkflowEngine(client=fake_client)

        run = await engine.run(report_data, templates, on_event=seen.append)

        assert run.status == "completed"
        assert run.finished_at is not None
        assert all(step.status == StepStatus.COMPLETED for step in run.steps)
        assert run.steps[3].content == "Output of step 4"
        assert run.data.step1_result == "Output of step 1"
        assert len(seen) == 11

    @pytest.mark.asyncio
    async def test_failed_run_record(self, report_data, templates) -> None:
        engine = WorkflowEngine(client=FakeLLMClient(fail_at=2))

        run = await engine.run(report_data, templates)

        statuses = [step.status for step in run.steps]
        assert statuses == [
            StepStatus.COMPLETED,
            StepStatus.ERROR,
            StepStatus.PENDING,
            StepStatus.PENDING,
            StepStatus.PENDING,
        ]
        assert run.status == "failed"
        assert "step 2" in run.error


class TestRunHelpers:

    def test_prepare_steps_resets_from_start(self) -> None:
        steps = [
            step.model_copy(update={"status": StepStatus.COMPLETED, "content": f"c{step.id}", "edited": True})
            for step in initial_steps()
        ]

        prepared = prepare_steps(steps, 4)

        assert [step.content for step in prepared] == ["c1", "c2", "c3", "", ""]
        assert prepared[3].status == StepStatus.PENDING
        assert prepared[4].edited is False
        assert steps[3].content == "c4"

    def test_apply_event_sequence(self) -> None:
        run = WorkflowRun(
            run_id="r1",
            started_at=datetime.now(timezone.utc),
            steps=initial_steps(),
            data=WorkflowData(audit_report="report"),
        )

        apply_event(run, WorkflowEvent(type="step_started", step_id=1))
        assert run.steps[0].status == StepStatus.LOADING

        apply_event(run, WorkflowEvent(type="step_completed", step_id=1, result=StepResult(text="analysis")))
        assert run.steps[0].status == StepStatus.COMPLETED
        assert run.data.step1_result == "analysis"

        apply_event(run, WorkflowEvent(type="step_started", step_id=2))
        apply_event(run, WorkflowEvent(type="step_failed", step_id=2, message="boom"))
        assert run.steps[1].status == StepStatus.ERROR
        assert run.status == "failed"
        assert run.error == "boom"
        assert run.finished_at is not None


class LoopBoundClient(FakeLLMClient):
    """Fails like a pooled SDK transport when reused on a different event loop."""

    instances: List["LoopBoundClient"] = []

    def __init__(self):
        super().__init__()
        self.loop = None
        self.closed = False
        LoopBoundClient.instances.append(self)

    async def generate(self, request):
        loop = asyncio.get_running_loop()
        if self.closed or (self.loop is not None and self.loop is not loop):
            raise RuntimeError("Event loop is closed")
        self.loop = loop
        return await super().generate(request)

    async def aclose(self):
        self.closed = True


class TestClientLifecycle:

    @pytest.fixture
    def loop_bound_clients(self, monkeypatch) -> List[LoopBoundClient]:
        monkeypatch.setattr(LoopBoundClient, "instances", [])
        monkeypatch.setattr(workflow_module, "LLMClient", LoopBoundClient)
        return LoopBoundClient.instances

    def test_each_run_gets_its_own_client(self, loop_bound_clients, report_data, templates) -> None:
        engine = WorkflowEngine()

        first = asyncio.run(engine.run(report_data, templates))
        second = asyncio.run(engine.run(report_data, templates))

        assert first.status == "completed", first.error
        assert second.status == "completed", second.error
        assert len(loop_bound_clients) == 2
        assert loop_bound_clients[0] is not loop_bound_clients[1]
        assert all(client.closed for client in loop_bound_clients)

    @pytest.mark.asyncio
    async def test_client_is_closed_after_failed_run(
        self, loop_bound_clients, monkeypatch, report_data, templates
    ) -> None:
        async def failing(self, request):
            raise RuntimeError("quota")

        monkeypatch.setattr(LoopBoundClient, "generate", failing)

        run = await WorkflowEngine().run(report_data, templates)

        assert run.status == "failed"
        assert loop_bound_clients[0].closed

    @pytest.mark.asyncio
    async def test_injected_client_is_left_open(self, loop_bound_clients, report_data, templates) -> None:
        client = LoopBoundClient()
        engine = WorkflowEngine(client=client)

        await engine.run(report_data, templates)
        await engine.run(report_data, templates)

        assert client.closed is False
        assert len(client.requests) == 10

    @pytest.mark.asyncio
    async def test_missing_api_key_fails_before_any_event(self, monkeypatch, report_data, templates) -> None:
        monkeypatch.setattr(settings, "llm_provider", "gemini")
        monkeypatch.setattr(settings, "gemini_api_key", "")

        with pytest.raises(ConfigurationError, match="API Key is missing. Please set API_KEY"):
            await collect(WorkflowEngine(), report_data, templates)
