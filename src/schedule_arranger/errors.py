class SchedulingError(Exception):
    """Base class for errors raised by the scheduling core."""


class NotFoundError(SchedulingError):
    """The referenced schedule or candidate does not exist."""


class ForbiddenError(SchedulingError):
    """
    The caller is authenticated but does not own the schedule.

    Reported to clients exactly like NotFoundError so that the existence of
    schedules the caller cannot touch is not leaked.
    """


class InvalidInputError(SchedulingError):
    """A submitted value is malformed, e.g. an availability outside 0..2."""


class BadRequestError(SchedulingError):
    """The request is structurally wrong, e.g. neither edit nor delete was asked for."""


NOT_FOUND_OR_FORBIDDEN = "Not Found or Not Authorized"
