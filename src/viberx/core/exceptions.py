class VibeRXError(Exception):
    pass


class AuthenticationError(VibeRXError):
    pass


class NoRefreshTokenError(AuthenticationError):
    pass


class RefreshRejectedError(AuthenticationError):
    pass


class NoActiveSessionError(AuthenticationError):
    pass


class RefreshFailedError(AuthenticationError):
    pass


class OAuthError(VibeRXError):
    pass


class ProviderRejectedError(OAuthError):
    def __init__(self, message: str, *, status_code: int, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ConfigurationError(VibeRXError):
    pass
