class JsonServerError(Exception):
    """Base class for errors raised by the JSON server"""


class StartupError(JsonServerError):
    """Invalid arguments or a data file that cannot be served at startup"""


class WatchSetupError(JsonServerError):
    """The data file's directory could not be watched"""


class ReloadReadError(JsonServerError):
    """The data file was unreadable or malformed at reload time"""

    def __init__(self, path: str, reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class ResourceNotFound(JsonServerError):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidPayload(JsonServerError):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
