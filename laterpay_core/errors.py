"""Exception hierarchy for the LaterPay client."""

from __future__ import annotations


class LaterPayError(Exception):
    """Base class for every error raised by this package."""


class InvalidSecret(LaterPayError, ValueError):
    """The API key is empty, or an empty reference value was compared."""


class MalformedSignatureInput(LaterPayError, ValueError):
    """A signature is neither a string nor a one-element list of strings."""


class UnsupportedMethod(LaterPayError, ValueError):
    """The HTTP method is outside the supported verb set."""


class ConfigurationError(LaterPayError, ValueError):
    """Client configuration is invalid (unknown region, bad timeout, ...)."""


class UnsupportedTransport(LaterPayError, TypeError):
    """An object passed as transport does not implement ``send``/``is_available``."""


class NoTransportAvailable(LaterPayError, RuntimeError):
    """None of the candidate transports can be used in this environment."""


class TransportError(LaterPayError):
    """The remote service could not be reached or answered with an error."""

    kind = "connection_error"

    def __init__(self, message: str = "connection_error", *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class JWTError(LaterPayError, ValueError):
    """Base class for identify-token failures."""


class InvalidTokenEncoding(JWTError):
    pass


class JWTSignatureMismatch(JWTError):
    pass


class ImmatureToken(JWTError):
    pass


class ExpiredToken(JWTError):
    pass
