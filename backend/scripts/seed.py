"""Database seed script: default workflows plus email and SMS templates.

Existing rows (by id) are left untouched, so the script can be re-run.

Run: python -m scripts.seed
"""

import asyncio
import sys
import os

# Ensure project root is in path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

COMPANY_PHONE = "(512) 945-9783"

WORKFLOWS = [
    {
        "id": "wf_welcome",
        "name": "New Form Lead Welcome",
        "trigger": "form_submit",
        "category": "nurture",
        "steps": [
            {"type": "email", "templateId": "welcome", "delay_minutes": 0},
            {"type": "sms", "templateId": "sms_welcome", "delay_minutes": 2},
            {"type": "task", "description": "Review new lead submission", "delay_minutes": 0},
            {"type": "email", "templateId": "follow_up_no_response", "delay_minutes": 2880},  # 48h
        ],
    },
    {
        "id": "wf_booking",
        "name": "Booking Confirmation & Reminders",
        "trigger": "booking",
        "category": "booking",
        "steps": [
            {"type": "email", "templateId": "booking_confirmed", "delay_minutes": 0},
            {"type": "sms", "templateId": "sms_booking_confirmed", "delay_minutes": 0},
            {"type": "task", "description": "Prepare for consultation", "delay_minutes": 0},
        ],
    },
    {
        "id": "wf_project_thanks",
        "name": "Project Completion Thank You",
        "trigger": "status_change",
        "trigger_status": "won",
        "category": "retention",
        "steps": [
            {"type": "email", "templateId": "thank_you_post_project", "delay_minutes": 0},
            {"type": "sms", "templateId": "sms_thank_you", "delay_minutes": 10},
        ],
    },
]

_FOOTER = (
    '<hr style="border: 0; border-top: 1px solid #eee; margin: 20px 0;">'
    '<p style="font-size: 14px; color: #666;"><strong>{company}</strong><br>' + COMPANY_PHONE + "</p>"
)

EMAIL_TEMPLATES = [
    {
        "id": "welcome",
        "name": "Welcome Email",
        "category": "nurture",
        "subject": "Thanks for contacting {company}, {{firstName}}!",
        "html": (
            '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; color: #333;">'
            "<h1>Thanks for Reaching Out!</h1>"
            "<p>Hi {{firstName}},</p>"
            "<p>We've received your inquiry about <strong>{{service}}</strong> and one of our team "
            "members will get back to you shortly (usually within 24 hours).</p>"
            "<p>Urgent questions? Call us at <strong>" + COMPANY_PHONE + "</strong>.</p>"
            + _FOOTER + "</div>"
        ),
    },
    {
        "id": "booking_confirmed",
        "name": "Booking Confirmed",
        "category": "booking",
        "subject": "Your Consultation is Confirmed!",
        "html": (
            '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; color: #333;">'
            "<h1>Booking Confirmed</h1>"
            "<p>Hi {{firstName}},</p>"
            "<p>Your consultation with <strong>{company}</strong> is confirmed.</p>"
            "<p><strong>Date:</strong> {{appointmentDate}}<br>"
            "<strong>Time:</strong> {{appointmentTime}}</p>"
            "<p>We look forward to discussing your project!</p>"
            + _FOOTER + "</div>"
        ),
    },
    {
        "id": "follow_up_no_response",
        "name": "Follow Up (No Response)",
        "category": "nurture",
        "subject": "Following up on your project inquiry",
        "html": (
            '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; color: #333;">'
            "<p>Hi {{firstName}},</p>"
            "<p>I wanted to follow up on your inquiry about <strong>{{service}}</strong>. "
            "Are you still interested in moving forward?</p>"
            "<p>Just hit reply or give us a call at <strong>" + COMPANY_PHONE + "</strong>.</p>"
            "<p>Best regards,<br><strong>The {company} Team</strong></p></div>"
        ),
    },
    {
        "id": "thank_you_post_project",
        "name": "Thank You (Post Project)",
        "category": "retention",
        "subject": "Thank you for choosing {company}!",
        "html": (
            '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; color: #333;">'
            "<h1>Thank You!</h1>"
            "<p>Hi {{firstName}},</p>"
            "<p>It was a pleasure working with you. If you have a moment, reply to this email "
            "and tell us how we did.</p>"
            + _FOOTER + "</div>"
        ),
    },
]

SMS_TEMPLATES = [
    {
        "id": "sms_welcome",
        "name": "Welcome SMS",
        "category": "nurture",
        "content": "Hi {{firstName}}, thanks for contacting {company}! We'll call you shortly "
                   "to discuss your project. Questions? Call us: " + COMPANY_PHONE,
        "variables": ["firstName"],
    },
    {
        "id": "sms_booking_confirmed",
        "name": "Booking Confirmed SMS",
        "category": "booking",
        "content": "Confirmed! Your appointment is {{appointmentDate}} at {{appointmentTime}}. "
                   "See you then! - {company}",
        "variables": ["appointmentDate", "appointmentTime"],
    },
    {
        "id": "sms_thank_you",
        "name": "Thank You SMS",
        "category": "retention",
        "content": "Thanks for choosing {company}, {{firstName}}! Reply anytime if you need "
                   "anything else.",
        "variables": ["firstName"],
    },
]


def _company(text: str, company: str) -> str:
    return text.replace("{company}", company)


async def seed():
    """Seed the database with default data."""
    from app.config import get_settings
    from db.database import AsyncSessionLocal, init_db
    from services.template_service import EmailTemplateService, SmsTemplateService
    from services.workflow_store import WorkflowDefinitionService

    company = get_settings().COMPANY_NAME

    # Initialize DB tables
    await init_db()

    async with AsyncSessionLocal() as db:
        workflows = WorkflowDefinitionService(db)
        for wf in WORKFLOWS:
            if await workflows.exists(wf["id"], include_deleted=True):
                print(f"[seed] Workflow exists: {wf['id']}")
                continue
            await workflows.create_definition(dict(wf, enabled=True))
            print(f"[seed] Created workflow: {wf['name']} ({wf['id']})")

        email_templates = EmailTemplateService(db)
        for t in EMAIL_TEMPLATES:
            if await email_templates.exists(t["id"], include_deleted=True):
                print(f"[seed] Email template exists: {t['id']}")
                continue
            await email_templates.create_template(
                dict(t, subject=_company(t["subject"], company), html=_company(t["html"], company))
            )
            print(f"[seed] Created email template: {t['id']}")

        sms_templates = SmsTemplateService(db)
        for t in SMS_TEMPLATES:
            if await sms_templates.exists(t["id"], include_deleted=True):
                print(f"[seed] SMS template exists: {t['id']}")
                continue
            await sms_templates.create_template(dict(t, content=_company(t["content"], company)))
            print(f"[seed] Created SMS template: {t['id']}")

        await db.commit()

    print("[seed] Done.")


if __name__ == "__main__":
    asyncio.run(seed())
