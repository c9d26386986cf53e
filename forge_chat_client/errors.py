from typing import Optional

UNKNOWN_ERROR_MESSAGE = "An unknown error occurred"


class ForgeClientError(Exception):
    """Base class for errors raised while talking to the completions API"""


class TransportError(ForgeClientError):
    """The API answered with a non-2xx status"""

    def __init__(self, status: int, url: Optional[str] = None):
        self.status = status
        self.url = url
        super().__init__(f"HTTP error! status: {status}")


class AuthenticationError(TransportError):
    """The API rejected the bearer token"""


class TaskFailureError(ForgeClientError):
    def __init__(self, status: str):
        self.status = status
        super().__init__(f"Task {status}")


class PollingTimeoutError(ForgeClientError, TimeoutError):
    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__("Polling timed out")


class PollCancelledError(ForgeClientError):
    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(f"Polling for task {task_id} was cancelled")


def transport_error_for(status: int, url: Optional[str] = None) -> TransportError:
    if status in (401, 403):
        return AuthenticationError(status, url)
    return TransportError(status, url)


def describe_error(error: BaseException) -> str:
    """Message shown to the user for any error raised by a submission"""
    message = str(error).strip()
    return message or UNKNOWN_ERROR_MESSAGE
