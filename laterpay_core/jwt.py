"""HS256 tokens for the identify flow.

This is deliberately separate from :mod:`laterpay_core.signing`: it uses
SHA-256, a JOSE header and base64url segments instead of the canonical
request message.
"""

from __future__ import annotations

import base64
import binascii
import hmac
import json
import time
from hashlib import sha256
from typing import Any, Callable, Dict, Mapping, Optional

from .errors import (
    ExpiredToken,
    ImmatureToken,
    InvalidSecret,
    InvalidTokenEncoding,
    JWTSignatureMismatch,
)

HEADER = {"typ": "JWT", "alg": "HS256"}
TIME_CLAIMS = ("nbf", "iat", "exp")


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _pad_b64(segment: str) -> bytes:
    padding = "=" * ((4 - len(segment) % 4) % 4)
    return (segment + padding).encode("ascii")


def _b64url_decode(segment: str) -> bytes:
    try:
        return base64.urlsafe_b64decode(_pad_b64(segment))
    except (binascii.Error, ValueError) as exc:
        raise InvalidTokenEncoding("invalid base64url segment") from exc


def _encode_json(data: Mapping[str, Any]) -> str:
    return _b64url(json.dumps(data, separators=(",", ":")).encode("utf-8"))


def _decode_json(segment: str, what: str) -> Dict[str, Any]:
    try:
        loaded = json.loads(_b64url_decode(segment))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise InvalidTokenEncoding(f"invalid {what} encoding") from exc
    if not isinstance(loaded, dict):
        raise InvalidTokenEncoding(f"invalid {what} encoding")
    return loaded


class JWTSigner:
    """Encode and decode HS256 tokens keyed with the merchant's API key."""

    def __init__(self, secret: str, *, leeway: int = 30, clock: Callable[[], float] = time.time):
        if not secret:
            raise InvalidSecret("key may not be empty")
        self._secret = secret.encode("utf-8")
        self.leeway = leeway
        self._clock = clock

    def _digest(self, signing_input: str) -> bytes:
        return hmac.new(self._secret, signing_input.encode("ascii"), sha256).digest()

    def encode(self, payload: Optional[Mapping[str, Any]] = None) -> str:
        signing_input = f"{_encode_json(HEADER)}.{_encode_json(payload or {})}"
        return f"{signing_input}.{_b64url(self._digest(signing_input))}"

    def decode(self, token: str) -> Dict[str, Any]:
        """Validate ``token`` and return its claims.

        ``nbf``, ``iat`` and ``exp`` are checked when present, each with
        ``leeway`` seconds of tolerance for clock skew.
        """

        try:
            encoded_header, encoded_payload, encoded_signature = token.split(".")
        except ValueError as exc:
            raise InvalidTokenEncoding("wrong number of segments") from exc

        _decode_json(encoded_header, "header")
        payload = _decode_json(encoded_payload, "claims")
        signature = _b64url_decode(encoded_signature)

        expected = self._digest(f"{encoded_header}.{encoded_payload}")
        if not hmac.compare_digest(expected, signature):
            raise JWTSignatureMismatch("signature verification failed")

        for claim in TIME_CLAIMS:
            if claim in payload and not _is_timestamp(payload[claim]):
                raise InvalidTokenEncoding(f"invalid {claim} claim")

        now = self._clock()
        for claim in ("nbf", "iat"):
            if claim in payload and payload[claim] > now + self.leeway:
                raise ImmatureToken(f"cannot handle token prior to {payload[claim]}")
        if "exp" in payload and now - self.leeway >= payload["exp"]:
            raise ExpiredToken("expired token")
        return payload


def _is_timestamp(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
