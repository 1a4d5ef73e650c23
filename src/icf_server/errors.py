"""
Exception types raised by the ICF client and action dispatcher.
"""


class ICFError(Exception):
    """Base class for all ICF server errors"""


class ConfigurationError(ICFError):
    """WHO ICD-API credentials or other settings are missing or invalid"""


class ValidationError(ICFError):
    """A caller-supplied parameter is missing or malformed"""


class AuthenticationError(ICFError):
    """
    The OAuth2 client-credentials exchange was rejected, or the token
    endpoint could not be reached (``status_code`` is then ``None``).
    """

    def __init__(self, status_code: int | None, body: str):
        self.status_code = status_code
        self.body = body
        if status_code is None:
            super().__init__(f"Authentication failed: {body}")
        else:
            super().__init__(f"Authentication failed: {status_code} - {body}")


class ApiError(ICFError):
    """An authenticated WHO ICD-API request failed"""

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"API request failed: {status_code} - {body}")
