"""Tests for the messaging gateway: content resolution, sends and the communication log."""

import pytest

from db.models import AppSetting, EmailTemplate, SmsTemplate
from messaging.gateway import MessagingGateway


@pytest.mark.integration
class TestSendEmail:

    async def test_template_send_renders_and_logs(self, gateway, email_provider, create_templates, load_logs):
        """Email template is rendered, sent and logged as sent."""
        await create_templates(email={"welcome": ("Welcome {{firstName}}", "<p>About {{service}}</p>")})

        outcome = await gateway.send_email(
            "pat@example.com",
            template_id="welcome",
            variables={"firstName": "Pat", "service": "Roofing"},
            contact_id="lead-1",
            workflow_id="wf_welcome",
        )

        assert outcome.success is True
        assert outcome.id == "email-1"
        assert email_provider.sent == [{
            "from": "Test Co <noreply@example.com>",
            "to": "pat@example.com",
            "subject": "Welcome Pat",
            "html": "<p>About Roofing</p>",
        }]

        logs = await load_logs()
        assert len(logs) == 1
        log = logs[0]
        assert log.type == "email"
        assert log.status == "sent"
        assert log.provider == "resend"
        assert log.provider_message_id == "email-1"
        assert log.recipient == "pat@example.com"
        assert log.contact_id == "lead-1"
        assert log.workflow_id == "wf_welcome"
        assert log.content == {"templateId": "welcome", "subject": "Welcome Pat"}
        assert log.error is None

    async def test_inline_html_wins_over_template(self, gateway, email_provider, create_templates):
        await create_templates(email={"welcome": ("Template subject", "<p>template</p>")})

        outcome = await gateway.send_email(
            "pat@example.com", template_id="welcome", subject="Inline", html="<p>inline</p>"
        )

        assert outcome.success is True
        assert email_provider.sent[0]["subject"] == "Inline"
        assert email_provider.sent[0]["html"] == "<p>inline</p>"

    async def test_template_subject_wins_over_inline_subject(self, gateway, email_provider, create_templates):
        await create_templates(email={"welcome": ("Template subject", "<p>template</p>")})

        await gateway.send_email("pat@example.com", template_id="welcome", subject="Inline")

        assert email_provider.sent[0]["subject"] == "Template subject"
        assert email_provider.sent[0]["html"] == "<p>template</p>"

    async def test_empty_subject_uses_default(self, gateway, email_provider):
        await gateway.send_email("pat@example.com", html="<p>Hi</p>")
        assert email_provider.sent[0]["subject"] == "Message from Test Co"

    async def test_legacy_settings_templates_fallback(self, gateway, email_provider, db_session):
        db_session.add(AppSetting(key="email_templates", value={"old_welcome": "<p>Hi {{firstName}}</p>"}))
        await db_session.commit()

        outcome = await gateway.send_email("pat@example.com", template_id="old_welcome", variables={})

        assert outcome.success is True
        assert email_provider.sent[0]["html"] == "<p>Hi Friend</p>"
        assert email_provider.sent[0]["subject"] == "Message from Test Co"

    async def test_deleted_template_is_not_used(self, gateway, email_provider, db_session):
        template = EmailTemplate(id="gone", name="gone", subject="s", html="<p>x</p>")
        template.soft_delete()
        db_session.add(template)
        await db_session.commit()

        outcome = await gateway.send_email("pat@example.com", template_id="gone")

        assert outcome.success is False
        assert email_provider.sent == []

    async def test_missing_template_fails_and_logs(self, gateway, email_provider, load_logs):
        outcome = await gateway.send_email("pat@example.com", template_id="nope", workflow_id="wf_x")

        assert outcome.success is False
        assert "not found" in outcome.error
        assert email_provider.sent == []
        logs = await load_logs()
        assert len(logs) == 1
        assert logs[0].status == "failed"
        assert logs[0].error == outcome.error
        assert logs[0].content == {"templateId": "nope"}

    async def test_provider_error_fails_and_logs(self, gateway, email_provider, provider_error, load_logs):
        email_provider.fail_with = provider_error

        outcome = await gateway.send_email("pat@example.com", html="<p>x</p>")

        assert outcome.success is False
        assert outcome.error == "resend returned 422: invalid from address"
        logs = await load_logs()
        assert [log.status for log in logs] == ["failed"]

    async def test_unexpected_exception_is_reported_not_raised(self, gateway, email_provider, load_logs):
        email_provider.fail_with = RuntimeError("socket closed")

        outcome = await gateway.send_email("pat@example.com", html="<p>x</p>")

        assert outcome.success is False
        assert outcome.error == "socket closed"
        assert len(await load_logs()) == 1

    async def test_unconfigured_provider_fails_and_logs(self, session_factory, load_logs):
        gateway = MessagingGateway(
            email_provider=None,
            sms_provider=None,
            session_factory=session_factory,
            email_from="a@b.co",
            sms_from="",
            default_subject="s",
        )

        outcome = await gateway.send_email("pat@example.com", html="<p>x</p>")

        assert outcome.success is False
        assert outcome.error == "Email provider not configured"
        logs = await load_logs()
        assert len(logs) == 1
        assert logs[0].provider == "resend"
        assert logs[0].status == "failed"

    async def test_no_recipient_skips_without_log(self, gateway, email_provider, load_logs):
        assert await gateway.send_email(None, html="<p>x</p>") is None
        assert await gateway.send_email("", html="<p>x</p>") is None
        assert email_provider.sent == []
        assert await load_logs() == []


@pytest.mark.integration
class TestSendSms:

    async def test_template_send_normalizes_destination(self, gateway, sms_provider, create_templates, load_logs):
        await create_templates(sms={"sms_welcome": "Hi {{firstName}}, thanks!"})

        outcome = await gateway.send_sms(
            "(512) 555-0100", template_id="sms_welcome", variables={"name": "Pat"}
        )

        assert outcome.success is True
        assert sms_provider.sent == [{"src": "15550000000", "dst": "15125550100", "text": "Hi Pat, thanks!"}]
        logs = await load_logs()
        assert logs[0].type == "sms"
        assert logs[0].provider == "plivo"
        assert logs[0].recipient == "15125550100"
        assert logs[0].content == {"templateId": "sms_welcome", "body": "Hi Pat, thanks!"}

    async def test_legacy_message_field_is_used(self, gateway, sms_provider, db_session):
        db_session.add(SmsTemplate(id="old", name="old", content=None, message="Legacy {{firstName}}"))
        await db_session.commit()

        outcome = await gateway.send_sms("15125550100", template_id="old", variables={"firstName": "Al"})

        assert outcome.success is True
        assert sms_provider.sent[0]["text"] == "Legacy Al"

    async def test_inline_text(self, gateway, sms_provider):
        outcome = await gateway.send_sms("5125550100", text="Quick note for {{firstName}}")
        assert outcome.success is True
        assert sms_provider.sent[0]["text"] == "Quick note for Friend"

    async def test_missing_template_fails(self, gateway, sms_provider, load_logs):
        outcome = await gateway.send_sms("5125550100", template_id="missing")
        assert outcome.success is False
        assert "not found" in outcome.error
        assert sms_provider.sent == []
        assert (await load_logs())[0].status == "failed"

    async def test_missing_sender_number_fails(self, session_factory, sms_provider):
        gateway = MessagingGateway(
            email_provider=None,
            sms_provider=sms_provider,
            session_factory=session_factory,
            email_from="a@b.co",
            sms_from="",
            default_subject="s",
        )
        outcome = await gateway.send_sms("5125550100", text="hi")
        assert outcome.success is False
        assert outcome.error == "SMS sender number not configured"

    async def test_no_recipient_skips(self, gateway, load_logs):
        assert await gateway.send_sms(None, text="hi") is None
        assert await load_logs() == []


@pytest.mark.integration
class TestSendDispatch:

    async def test_send_routes_by_channel(self, gateway, email_provider, sms_provider):
        email = await gateway.send("email", "pat@example.com", content={"subject": "S", "html": "<p>b</p>"})
        sms = await gateway.send("sms", "5125550100", content={"text": "t"})

        assert email.success and sms.success
        assert len(email_provider.sent) == 1
        assert len(sms_provider.sent) == 1

    async def test_outcome_dict_shapes(self, gateway, email_provider, provider_error):
        ok = await gateway.send("email", "pat@example.com", content={"html": "<p>b</p>"})
        email_provider.fail_with = provider_error
        failed = await gateway.send("email", "pat@example.com", content={"html": "<p>b</p>"})

        assert ok.to_dict() == {"success": True, "id": "email-1"}
        assert failed.to_dict() == {"success": False, "error": provider_error.message}
