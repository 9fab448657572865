class InterviewRuntimeError(Exception):
    """Base for every typed failure surfaced to callers of the runtime."""

    status_code = 400

    def __init__(self, detail: str = ""):
        self.detail = str(detail or self.__class__.__name__)
        super().__init__(self.detail)


class Unauthorized(InterviewRuntimeError):
    # caller is authenticated but does not own the session
    status_code = 403


class InvalidTransition(InterviewRuntimeError):
    status_code = 409


class InvalidState(InterviewRuntimeError):
    status_code = 409


class InvalidScore(InterviewRuntimeError):
    status_code = 422


class NotFound(InterviewRuntimeError):
    status_code = 404


class SaveFailed(InterviewRuntimeError):
    # buffered scores could not be written before a terminal transition
    status_code = 503
