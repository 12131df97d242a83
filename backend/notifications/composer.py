"""
Builds the alert email for one recipient from the rules that fired.
"""

from datetime import date
from html import escape

from models import ComposedMessage, Recipient, RuleResult
from shared.config import FRONTEND_BASE_URL

SUBJECT = "Pharmacy Updates & Alerts"
DATE_FORMAT = "%B %d, %Y"
HTML_DIVIDER = "<hr/>"
TEXT_DIVIDER = "-" * 60


def compose_notification(
    recipient: Recipient,
    fragments: list[RuleResult],
    today: date,
    settings_url: str | None = None,
) -> ComposedMessage | None:
    """
    Assemble fired rule fragments into one email.

    Args:
        recipient: Who the email is for
        fragments: Rule results in evaluation order; non-fired ones are ignored
        today: Date shown in the greeting
        settings_url: Link in the footer (defaults to the frontend settings page)

    Returns:
        ComposedMessage, or None if no rule fired
    """
    fired = [result for result in fragments if result.fired]
    if not fired:
        return None

    if settings_url is None:
        settings_url = f"{FRONTEND_BASE_URL}/settings"

    date_formatted = today.strftime(DATE_FORMAT)

    return ComposedMessage(
        to=recipient.email,
        subject=SUBJECT,
        html=_build_html(recipient.display_name, date_formatted, fired, settings_url),
        text=_build_text(recipient.display_name, date_formatted, fired, settings_url),
        fragment_count=len(fired),
    )


def _render_html_section(result: RuleResult) -> str:
    items = "".join(f"<li>{escape(line)}</li>" for line in result.lines)
    section = f"<h3>{escape(result.title)}</h3>\n<ul>{items}</ul>\n"
    if result.note:
        section += f"<p>{escape(result.note)}</p>\n"
    return section


def _build_html(
    name: str, date_formatted: str, fired: list[RuleResult], settings_url: str
) -> str:
    sections = HTML_DIVIDER.join(_render_html_section(result) for result in fired)
    return f"""
<h2>Hello {escape(name)},</h2>
<p>Here is your update for {date_formatted}:</p>
{HTML_DIVIDER}
{sections}
<p style="font-size: 12px; color: grey;">
    You can manage these alerts in your <a href="{settings_url}">Settings</a>.
</p>
"""


def _build_text(
    name: str, date_formatted: str, fired: list[RuleResult], settings_url: str
) -> str:
    text = f"Hello {name},\n\nHere is your update for {date_formatted}:\n\n"

    sections = []
    for result in fired:
        section = f"{result.title}\n"
        section += "".join(f"  - {line}\n" for line in result.lines)
        if result.note:
            section += f"\n{result.note}\n"
        sections.append(section)

    text += f"\n{TEXT_DIVIDER}\n\n".join(sections)
    text += f"\n{TEXT_DIVIDER}\nYou can manage these alerts in your Settings: {settings_url}\n"
    return text
