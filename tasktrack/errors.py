class TaskTrackError(Exception):
    """Base class for failures that end a request with a JSON envelope."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(TaskTrackError):
    status_code = 400


class ConflictError(TaskTrackError):
    # duplicate email; the client has always seen this as a 400
    status_code = 400


class AuthenticationError(TaskTrackError):
    status_code = 401


class NotFoundError(TaskTrackError):
    status_code = 404
