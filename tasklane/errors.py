"""Error taxonomy for task execution.

Missing rows are not errors: repositories return ``None`` and handlers treat
that as an intentional cancellation.
"""


class TaskLaneError(Exception):
    """Base exception for tasklane."""

    pass


class TaskValidationError(TaskLaneError, ValueError):
    """Raised when a task row cannot be executed as stored.

    Subclasses ``ValueError`` so the queue retry policy treats it as permanent.
    """

    pass


class PayloadError(TaskValidationError):
    """Raised when a job payload is not a decimal task id."""

    def __init__(self, payload: str) -> None:
        self.payload = payload
        super().__init__(f"failed to parse task ID: {payload!r}")


class ContentError(TaskValidationError):
    """Raised when task content does not start with a recipient email."""

    pass


class CronExpressionError(TaskValidationError):
    """Raised when a cron expression cannot be parsed."""

    def __init__(self, expression: str, reason: str = "") -> None:
        self.expression = expression
        detail = f": {reason}" if reason else ""
        super().__init__(f"invalid cron expression {expression!r}{detail}")


class TemplateNotFoundError(TaskLaneError):
    """Raised when a template id points at no template row."""

    def __init__(self, template_id: int) -> None:
        self.template_id = template_id
        super().__init__("email template not found")


class DownstreamError(TaskLaneError):
    """Base exception for failures of external side effects."""

    pass


class EmailDeliveryError(DownstreamError):
    """Raised when the SMTP transport fails to deliver a message."""

    pass


class WebhookError(DownstreamError):
    """Raised when a webhook call fails at transport level or returns non-2xx."""

    def __init__(self, message: str, *, http_status: int, body: str = "") -> None:
        self.http_status = http_status
        self.body = body
        super().__init__(message)


class WebhookTransportError(WebhookError):
    """Raised when a webhook call produced no HTTP response."""

    def __init__(self, message: str, *, http_status: int = 400) -> None:
        super().__init__(message, http_status=http_status)


class PersistenceError(TaskLaneError):
    """Raised when a repository call fails."""

    pass


class UnknownJobTypeError(TaskLaneError, ValueError):
    """Raised when no handler is registered for a job type."""

    def __init__(self, job_type: str) -> None:
        self.job_type = job_type
        super().__init__(f"no handler registered for job type {job_type!r}")
