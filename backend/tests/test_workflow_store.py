"""Tests for workflow definition/instance persistence and state transitions."""

from datetime import datetime, timedelta

import pytest

from core.exceptions import ValidationError
from services.workflow_store import WorkflowDefinitionService, WorkflowInstanceService

T0 = datetime(2026, 3, 2, 15, 0, 0)


@pytest.mark.integration
class TestWorkflowDefinitionService:

    async def test_create_definition_starts_at_version_one(self, db_session):
        svc = WorkflowDefinitionService(db_session)
        wf = await svc.create_definition({
            "name": "Welcome",
            "trigger": "form_submit",
            "trigger_status": "won",
            "steps": [{"type": "task"}],
            "version": 7,
        })
        assert wf.id
        assert wf.version == 1
        assert wf.trigger_status is None
        assert wf.enabled is True

    async def test_update_bumps_version_only_when_steps_change(self, db_session):
        svc = WorkflowDefinitionService(db_session)
        wf = await svc.create_definition({"name": "W", "trigger": "form_submit", "steps": [{"type": "task"}]})

        wf = await svc.update_definition(wf.id, {"name": "Renamed"})
        assert wf.version == 1

        wf = await svc.update_definition(wf.id, {"steps": [{"type": "task"}]})
        assert wf.version == 1

        wf = await svc.update_definition(wf.id, {"steps": [{"type": "task"}, {"type": "delay"}]})
        assert wf.version == 2

    async def test_update_to_status_change_requires_trigger_status(self, db_session):
        svc = WorkflowDefinitionService(db_session)
        wf = await svc.create_definition({"name": "W", "trigger": "form_submit", "steps": []})

        with pytest.raises(ValidationError):
            await svc.update_definition(wf.id, {"trigger": "status_change"})

    async def test_leaving_status_change_clears_trigger_status(self, db_session):
        svc = WorkflowDefinitionService(db_session)
        wf = await svc.create_definition(
            {"name": "W", "trigger": "status_change", "trigger_status": "won", "steps": []}
        )

        wf = await svc.update_definition(wf.id, {"trigger": "booking"})

        assert wf.trigger == "booking"
        assert wf.trigger_status is None

    async def test_update_missing_returns_none(self, db_session):
        assert await WorkflowDefinitionService(db_session).update_definition("nope", {"name": "x"}) is None

    async def test_find_enabled_by_trigger(self, db_session, create_workflow):
        await create_workflow([], trigger="form_submit", id="wf_form")
        await create_workflow([], trigger="form_submit", enabled=False, id="wf_form_off")
        await create_workflow([], trigger="booking", id="wf_booking")
        await create_workflow([], trigger="status_change", trigger_status="won", id="wf_won")
        await create_workflow([], trigger="status_change", trigger_status="lost", id="wf_lost")

        svc = WorkflowDefinitionService(db_session)
        assert [wf.id for wf in await svc.find_enabled_by_trigger("form_submit")] == ["wf_form"]
        assert [wf.id for wf in await svc.find_enabled_by_trigger("booking")] == ["wf_booking"]
        won = await svc.find_enabled_by_trigger("status_change", trigger_status="won")
        assert [wf.id for wf in won] == ["wf_won"]

    async def test_soft_deleted_definitions_do_not_match(self, db_session, create_workflow):
        await create_workflow([], trigger="booking", id="wf_booking")
        svc = WorkflowDefinitionService(db_session)
        assert await svc.soft_delete("wf_booking") is True
        await db_session.commit()

        assert list(await svc.find_enabled_by_trigger("booking")) == []
        assert await svc.get_by_id("wf_booking") is None


@pytest.mark.integration
class TestWorkflowInstanceQueries:

    async def test_find_due_returns_only_active_past_due(self, db_session, create_workflow, create_instance):
        await create_workflow([], id="wf")
        due = await create_instance("wf", next_execution_at=T0 - timedelta(minutes=1))
        exactly_now = await create_instance("wf", next_execution_at=T0)
        await create_instance("wf", next_execution_at=T0 + timedelta(seconds=1))
        await create_instance("wf", status="completed", next_execution_at=T0 - timedelta(hours=1))
        await create_instance("wf", status="cancelled", next_execution_at=T0 - timedelta(hours=1))

        ids = await WorkflowInstanceService(db_session).find_due(T0)

        assert ids == [due.id, exactly_now.id]

    async def test_claim_is_exclusive(self, session_factory, create_workflow, create_instance, load_instance):
        await create_workflow([], id="wf")
        instance = await create_instance("wf", next_execution_at=T0)
        lease = T0 + timedelta(minutes=5)

        async with session_factory() as session:
            svc = WorkflowInstanceService(session)
            assert await svc.claim(instance.id, T0, lease) is True
            await session.commit()
        async with session_factory() as session:
            assert await WorkflowInstanceService(session).claim(instance.id, T0, lease) is False

        assert (await load_instance(instance.id)).next_execution_at == lease

    async def test_claim_skips_non_active(self, db_session, create_workflow, create_instance):
        await create_workflow([], id="wf")
        instance = await create_instance("wf", status="error", next_execution_at=T0)
        assert await WorkflowInstanceService(db_session).claim(instance.id, T0, T0) is False

    async def test_claim_skips_soft_deleted(self, db_session, create_workflow, create_instance):
        await create_workflow([], id="wf")
        instance = await create_instance("wf", next_execution_at=T0, is_deleted=True)
        assert await WorkflowInstanceService(db_session).claim(instance.id, T0, T0) is False

    async def test_transition_only_applies_to_active(self, session_factory, create_workflow, create_instance, load_instance):
        await create_workflow([], id="wf")
        active = await create_instance("wf")
        cancelled = await create_instance("wf", status="cancelled")

        async with session_factory() as session:
            svc = WorkflowInstanceService(session)
            assert await svc.transition(active.id, {"current_step_index": 1}) is True
            assert await svc.transition(cancelled.id, {"current_step_index": 1}) is False
            await session.commit()

        assert (await load_instance(active.id)).current_step_index == 1
        assert (await load_instance(cancelled.id)).current_step_index == 0

    async def test_active_count_by_workflow(self, db_session, create_workflow, create_instance):
        await create_workflow([], id="wf_a")
        await create_workflow([], id="wf_b")
        await create_instance("wf_a")
        await create_instance("wf_a")
        await create_instance("wf_a", status="completed")
        await create_instance("wf_b", status="error")

        counts = await WorkflowInstanceService(db_session).active_count_by_workflow()

        assert counts == {"wf_a": 2}


@pytest.mark.integration
class TestCancelActiveForContact:

    async def test_cancels_every_active_instance_for_email(self, session_factory, create_workflow, create_instance, load_instance):
        await create_workflow([], id="wf")
        first = await create_instance("wf", contact_email="pat@example.com")
        second = await create_instance("wf", contact_email="pat@example.com")
        done = await create_instance("wf", contact_email="pat@example.com", status="completed")
        other = await create_instance("wf", contact_email="sam@example.com")

        async with session_factory() as session:
            count = await WorkflowInstanceService(session).cancel_active_for_contact(
                "pat@example.com", "New booking", T0
            )
        assert count == 2

        for instance_id in (first.id, second.id):
            instance = await load_instance(instance_id)
            assert instance.status == "cancelled"
            assert instance.cancellation_reason == "New booking"
            assert instance.cancelled_at == T0
            assert instance.next_execution_at is None
        assert (await load_instance(done.id)).status == "completed"
        assert (await load_instance(other.id)).status == "active"

    async def test_failure_cancels_nothing(
        self, session_factory, create_workflow, create_instance, load_instance, monkeypatch
    ):
        """A failure part-way through leaves every instance active."""
        await create_workflow([], id="wf")
        instances = [await create_instance("wf", contact_email="pat@example.com") for _ in range(3)]

        original = WorkflowInstanceService._apply_cancellation
        calls = {"n": 0}

        def flaky(self, instance, reason, now):
            calls["n"] += 1
            if calls["n"] == 3:
                raise RuntimeError("write failed")
            original(self, instance, reason, now)

        monkeypatch.setattr(WorkflowInstanceService, "_apply_cancellation", flaky)

        async with session_factory() as session:
            with pytest.raises(RuntimeError, match="write failed"):
                await WorkflowInstanceService(session).cancel_active_for_contact(
                    "pat@example.com", "New booking", T0
                )

        for instance in instances:
            reloaded = await load_instance(instance.id)
            assert reloaded.status == "active"
            assert reloaded.cancelled_at is None

    async def test_no_matches_returns_zero(self, db_session):
        count = await WorkflowInstanceService(db_session).cancel_active_for_contact("x@y.z", "r", T0)
        assert count == 0
