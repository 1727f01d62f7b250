"""Request-level failures that are never recovered by a fallback."""


class QuizServiceError(Exception):
    """Base class; `status_code` is the HTTP class the API reports."""

    status_code = 500


class NotFoundError(QuizServiceError):
    status_code = 404


class ForbiddenError(QuizServiceError):
    status_code = 403


class PreconditionError(QuizServiceError):
    status_code = 400
