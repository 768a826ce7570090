"""LaterPay client core for Python.

This package centralises request canonicalization, signing, the identify
token, transports and the API client. Framework integrations import from here
to avoid duplicating logic.
"""

from .canonicalization import (
    SUPPORTED_METHODS,
    build_message,
    collect_items,
    encode_query,
    normalize_method,
    normalize_params,
    percent_encode,
)
from .client import Client
from .config import REGION_URLS, ClientConfig
from .errors import (
    ConfigurationError,
    ExpiredToken,
    ImmatureToken,
    InvalidSecret,
    InvalidTokenEncoding,
    JWTError,
    JWTSignatureMismatch,
    LaterPayError,
    MalformedSignatureInput,
    NoTransportAvailable,
    TransportError,
    UnsupportedMethod,
    UnsupportedTransport,
)
from .jwt import JWTSigner
from .signing import Signer, SigningConfig, sign, sign_and_encode, time_independent_compare, verify
from .tokens import CookieTokenStore, InMemoryTokenStore, TokenStore
from .transports import HttpRequest, RequestsTransport, Transport, UrllibTransport, select_transport

__all__ = [
    "Client",
    "ClientConfig",
    "ConfigurationError",
    "CookieTokenStore",
    "ExpiredToken",
    "HttpRequest",
    "ImmatureToken",
    "InMemoryTokenStore",
    "InvalidSecret",
    "InvalidTokenEncoding",
    "JWTError",
    "JWTSignatureMismatch",
    "JWTSigner",
    "LaterPayError",
    "MalformedSignatureInput",
    "NoTransportAvailable",
    "REGION_URLS",
    "RequestsTransport",
    "SUPPORTED_METHODS",
    "Signer",
    "SigningConfig",
    "TokenStore",
    "Transport",
    "TransportError",
    "UnsupportedMethod",
    "UnsupportedTransport",
    "UrllibTransport",
    "build_message",
    "collect_items",
    "encode_query",
    "normalize_method",
    "normalize_params",
    "percent_encode",
    "select_transport",
    "sign",
    "sign_and_encode",
    "time_independent_compare",
    "verify",
]
