"""Ready-made outreach messages; ``{{name}}`` is filled in per recipient."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class MessageTemplate:
    id: str
    name: str
    content: str
    subject: str | None = None


EMAIL_TEMPLATES: tuple[MessageTemplate, ...] = (
    MessageTemplate(
        id="birthday",
        name="Birthday Wish",
        subject="Happy Birthday {{name}}!",
        content=(
            "Dear {{name}},\n\nWishing you a very Happy Birthday! May your day be filled with joy "
            "and laughter.\n\nThank you for being a part of our family.\n\nWarm regards,\nThe Team"
        ),
    ),
    MessageTemplate(
        id="anniversary",
        name="Anniversary Wish",
        subject="Happy Anniversary {{name}}!",
        content=(
            "Dear {{name}},\n\nWishing you a wonderful Anniversary! Thank you for your continued "
            "support and journey with us.\n\nBest wishes,\nThe Team"
        ),
    ),
    MessageTemplate(
        id="newsletter",
        name="Newsletter",
        subject="Updates from our trust",
        content=(
            "Dear {{name}},\n\nWe are excited to share this month's progress with you.\n\n"
            "[Highlights]\n\nThank you for your continued support."
        ),
    ),
    MessageTemplate(
        id="thankyou",
        name="Thank You",
        subject="Thank you for your generous donation",
        content=(
            "Dear {{name}},\n\nThank you for your generous donation. Your support helps us achieve "
            "our mission.\n\nWarm regards,\nThe Team"
        ),
    ),
    MessageTemplate(
        id="impact",
        name="Impact Story",
        subject="See the lives you changed",
        content=(
            "Dear {{name}},\n\nBecause of you, we were able to...\n\n[Impact Story]\n\n"
            "This would not be possible without you."
        ),
    ),
    MessageTemplate(
        id="appeal",
        name="Urgent Appeal",
        subject="We need your help",
        content=(
            "Dear {{name}},\n\nWe are facing an urgent situation and need your support "
            "specifically for...\n\nEvery contribution counts."
        ),
    ),
    MessageTemplate(
        id="volunteer",
        name="Volunteer",
        subject="Join us on the ground",
        content=(
            "Dear {{name}},\n\nWe are looking for volunteers for our upcoming event. "
            "Would you be interested in joining us?"
        ),
    ),
    MessageTemplate(
        id="tax",
        name="Tax Certificate",
        subject="Your Tax Exemption Certificate",
        content=(
            "Dear {{name}},\n\nPlease find attached your tax exemption certificate for the "
            "financial year.\n\nThank you for your support."
        ),
    ),
)

WHATSAPP_TEMPLATES: tuple[MessageTemplate, ...] = (
    MessageTemplate(
        id="birthday_wa",
        name="Birthday",
        content="Happy Birthday {{name}}! 🎂 Wishing you a fantastic day filled with joy!",
    ),
    MessageTemplate(
        id="anniversary_wa",
        name="Anniversary",
        content="Happy Anniversary {{name}}! 💖 Wishing you many more years of happiness together!",
    ),
    MessageTemplate(
        id="event_alert",
        name="Event Alert",
        content="Hi {{name}}! Join us for our upcoming event on [Date] at [Location]. Hope to see you there!",
    ),
    MessageTemplate(
        id="reminder",
        name="Reminder",
        content="Hi {{name}}, this is a gentle reminder regarding your pledge. Your support means a lot to us.",
    ),
    MessageTemplate(
        id="update",
        name="Update",
        content=(
            "Hi {{name}}! Just wanted to share a quick photo of our recent drive. "
            "Thanks to you, we served 500 meals today! 📸"
        ),
    ),
    MessageTemplate(
        id="festive",
        name="Greeting",
        content=(
            "Wishing you and your family a very Happy Festival, {{name}}! "
            "May this season bring you joy and light. ✨"
        ),
    ),
    MessageTemplate(
        id="thankyou_short",
        name="Thanks",
        content="Thank you for your support, {{name}}! We really appreciate it. 🙏",
    ),
)


def templates_for(channel: str) -> tuple[MessageTemplate, ...]:
    if channel == "Email":
        return EMAIL_TEMPLATES
    if channel == "WhatsApp":
        return WHATSAPP_TEMPLATES
    return ()


def find_template(channel: str, template_id: str) -> MessageTemplate | None:
    for template in templates_for(channel):
        if template.id == template_id:
            return template
    return None
