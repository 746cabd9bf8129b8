"""Email composition from templates and semicolon-delimited task content."""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass

from tasklane.errors import ContentError

CONTENT_SEPARATOR = ";"
MISSING_RECIPIENT_MESSAGE = "content must contain at least recipient email"

# Same pattern producers validate recipients with before persisting a task.
_EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}$")


@dataclass(frozen=True, slots=True)
class EmailTemplateParts:
    """Subject and body templates of a stored email template."""

    subject_template: str
    body_template: str


@dataclass(frozen=True, slots=True)
class ComposedEmail:
    """A rendered email ready to hand to a mailer."""

    recipient: str
    subject: str
    body: str


def placeholder(index: int) -> str:
    """Return the 1-indexed placeholder token, e.g. ``{{1}}``."""
    return "{{" + str(index) + "}}"


def parse_content(content: str | None) -> tuple[str, list[str]]:
    """Split task content into recipient and ordered template variables.

    Every field is trimmed. Raises ContentError when the recipient is empty.
    """
    fields = (content or "").split(CONTENT_SEPARATOR)
    recipient = fields[0].strip()
    if not recipient:
        raise ContentError(MISSING_RECIPIENT_MESSAGE)
    return recipient, [field.strip() for field in fields[1:]]


def compose(template: EmailTemplateParts, variables: Sequence[str]) -> tuple[str, str]:
    """Substitute ``{{i}}`` in the body with the i-th variable.

    Substitution is literal and unescaped. Placeholders without a variable are
    left as-is and surplus variables are ignored. The subject is returned
    unchanged.
    """
    body = template.body_template
    for index, value in enumerate(variables, start=1):
        body = body.replace(placeholder(index), str(value).strip())
    return template.subject_template, body


def compose_from_content(template: EmailTemplateParts, content: str | None) -> ComposedEmail:
    """Parse content and render the template for its recipient."""
    recipient, variables = parse_content(content)
    subject, body = compose(template, variables)
    return ComposedEmail(recipient=recipient, subject=subject, body=body)


def is_valid_recipient(email: str) -> bool:
    """Return whether email looks like a deliverable address."""
    return bool(_EMAIL_RE.match(email.strip()))
