class ServiceLevelError(Exception):
    def __init__(self, message: str = "An unexpected service-level error occurred."):
        self.message = message
        super().__init__(self.message)

    def __str__(self):
        return f"ServiceLevelError: {self.message}"

class ConfigurationError(Exception):
    def __init__(self, setting: str, message: str = None):
        self.setting = setting
        self.message = message or f"Missing {setting} environment variable"
        super().__init__(self.message)

    def __str__(self):
        return f"ConfigurationError: {self.message}"

class TokenVerificationError(Exception):
    """Base for every reason a token is refused. Never shown to clients as-is."""
    def __init__(self, message: str = "Invalid token"):
        self.message = message
        super().__init__(self.message)

    def __str__(self):
        return f"{type(self).__name__}: {self.message}"

class MalformedTokenError(TokenVerificationError):
    def __init__(self, message: str = "Invalid token format"):
        super().__init__(message)

class InvalidSignatureError(TokenVerificationError):
    def __init__(self, message: str = "Invalid token signature"):
        super().__init__(message)

class TokenExpiredError(TokenVerificationError):
    def __init__(self, exp: int, now: int):
        self.exp = exp
        self.now = now
        super().__init__(f"Token expired at {exp} (now {now})")

class WrongPurposeError(TokenVerificationError):
    def __init__(self, expected: str, actual):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Invalid token purpose: expected {expected}, got {actual}")
