class SessionError(Exception):
    """Base class for live-session errors surfaced to the caller."""


class SessionAlreadyActiveError(SessionError):
    def __init__(self, session_id: str):
        super().__init__(f"A workout session is already live: {session_id}")
        self.session_id = session_id


class NoActiveSessionError(SessionError):
    def __init__(self):
        super().__init__("No active workout session")


class FinishInProgressError(SessionError):
    def __init__(self):
        super().__init__("The workout is already being saved")


class CommitError(SessionError):
    pass


class HeaderWriteError(CommitError):
    """The workout header could not be written; the session is still live and can be retried."""

    def __init__(self, session_id: str, reason: str):
        super().__init__(f"Failed to save workout {session_id}: {reason}")
        self.session_id = session_id
        self.reason = reason


class HeaderWriteTimeoutError(HeaderWriteError):
    def __init__(self, session_id: str, timeout: float | None):
        reason = "timed out" if timeout is None else f"timed out after {timeout:g}s"
        super().__init__(session_id, reason)
        self.timeout = timeout


class MealSaveError(Exception):
    def __init__(self, meal_id: str):
        super().__init__(f"Failed to save meal {meal_id}")
        self.meal_id = meal_id
