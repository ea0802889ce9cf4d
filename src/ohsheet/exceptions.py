"""Exceptions raised by ohsheet."""


class OhSheetError(Exception):
    """Base exception for all ohsheet errors."""

    pass


class ConfigError(OhSheetError):
    """Raised when the OAuth client configuration cannot be loaded."""

    pass


class CredentialsNotFoundError(ConfigError):
    """Raised when the OAuth credentials file is missing or unreadable."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(
            f"Credentials file not found at {path}. "
            "Please download OAuth client credentials from Google Cloud Console."
        )


class AuthError(OhSheetError):
    """Base exception for authorization failures."""

    pass


class TokenError(AuthError):
    """Raised when a token cannot be exchanged, refreshed or stored."""

    pass


class ScopeMismatchError(TokenError):
    """Raised when a granted token does not cover the requested scopes."""

    def __init__(self, missing_scopes: set[str]):
        self.missing_scopes = missing_scopes
        super().__init__(f"Token missing required scopes: {missing_scopes}")


class AuthorizationRequired(AuthError):
    """Raised when interactive authorization is needed but nobody can answer it."""

    def __init__(self, url: str, message: str | None = None):
        self.url = url
        super().__init__(message or f"Authorization required. Visit: {url}")


class ApiError(OhSheetError):
    """Raised when a call to the Sheets API fails."""

    def __init__(self, reason: str, status: int | None = None):
        self.reason = reason
        self.status = status
        if status is None:
            super().__init__(reason)
        else:
            super().__init__(f"HTTP {status}: {reason}")
