"""
Errors raised by the keyword services.

The dispatcher never lets these reach an end user; the API turns them into
`status: fail` payloads.
"""


class LoaderError(Exception):
    """Base class for service errors"""
    code = "error"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class KeywordError(LoaderError):
    """Custom keyword is invalid, reserved or already taken"""
    code = "error:keyword"


class InvalidURLError(LoaderError):
    """Long URL is missing or uses a protocol that is not allowed"""
    code = "error:url"


class DuplicateURLError(LoaderError):
    """Long URL already shortened while unique URLs are enforced"""
    code = "error:url"

    def __init__(self, message: str, existing):
        super().__init__(message)
        self.existing = existing


class KeywordGenerationError(LoaderError):
    """No free keyword could be produced by the generation strategy"""
    code = "error:keyword"
    status_code = 500
