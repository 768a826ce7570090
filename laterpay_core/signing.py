"""Request signing: HMAC over the canonical message, plus verification."""

from __future__ import annotations

import hmac
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

from .canonicalization import (
    GET,
    POST,
    ParameterSet,
    build_message,
    encode_query,
    normalize_method,
    normalize_params,
    strip_query,
)
from .errors import InvalidSecret, MalformedSignatureInput

Clock = Callable[[], float]


@dataclass(frozen=True)
class SigningConfig:
    """Fixed signing parameters; must match the remote service exactly."""

    algorithm: str = "sha224"
    reserved_keys: Sequence[str] = ("hmac", "gettoken")
    signature_key: str = "hmac"
    timestamp_key: str = "ts"


def time_independent_compare(known: str, given: str) -> bool:
    """Compare a computed signature with a received one in constant time.

    ``known`` is the locally computed value; an empty one can never
    authenticate anything and is rejected.
    """

    if not known:
        raise InvalidSecret("cannot safely compare against an empty reference value")
    return hmac.compare_digest(known.encode("utf-8"), given.encode("utf-8"))


class Signer:
    """Sign outgoing requests and verify signed callbacks.

    One instance may be shared freely between threads; it holds no state
    besides its configuration and clock.
    """

    def __init__(self, config: Optional[SigningConfig] = None, *, clock: Clock = time.time):
        self.config = config or SigningConfig()
        self._clock = clock

    def create_hmac(self, secret: str, message: str) -> str:
        return hmac.new(
            secret.encode("utf-8"), message.encode("utf-8"), self.config.algorithm
        ).hexdigest()

    def sign(
        self,
        secret: str,
        params: Optional[ParameterSet],
        url: str,
        method: str = POST,
    ) -> str:
        """Return the hex HMAC of ``(method, url, params)`` minus reserved keys."""

        if not secret:
            raise InvalidSecret("API key may not be empty")
        method = normalize_method(method)
        payload = {
            name: value
            for name, value in (params or {}).items()
            if name not in self.config.reserved_keys
        }
        message = build_message(payload, strip_query(url), method)
        return self.create_hmac(secret, message)

    def sign_and_encode(
        self,
        secret: str,
        params: Optional[ParameterSet],
        url: str,
        method: str = GET,
    ) -> str:
        """Return a query string carrying ``ts`` and the ``hmac`` signature.

        The result can be appended to ``url + "?"`` as is.
        """

        payload: dict[str, Any] = dict(params or {})
        payload.setdefault(self.config.timestamp_key, str(int(self._clock())))
        payload.pop(self.config.signature_key, None)

        query = encode_query(payload)
        signature = self.sign(secret, payload, url, method)
        return f"{query}&{self.config.signature_key}={signature}"

    def verify(
        self,
        signature: Any,
        secret: str,
        params: Optional[ParameterSet],
        url: str,
        method: str = POST,
    ) -> bool:
        """Return True only when ``signature`` matches the recomputed one."""

        given = _coerce_signature(signature)
        expected = self.sign(secret, params, url, method)
        return time_independent_compare(expected, given)

    def verify_query(
        self,
        secret: str,
        params: Optional[ParameterSet],
        url: str,
        method: str = GET,
    ) -> bool:
        """Verify a received parameter set that carries its own signature."""

        normalized = normalize_params(params)
        signature = normalized.pop(self.config.signature_key, None)
        if not signature:
            return False
        if len(signature) != 1:
            raise MalformedSignatureInput("received more than one signature")
        return self.verify(signature, secret, normalized, url, method)


def _coerce_signature(signature: Any) -> str:
    if isinstance(signature, (list, tuple)):
        if len(signature) != 1:
            raise MalformedSignatureInput("signature list must hold exactly one entry")
        signature = signature[0]
    if not isinstance(signature, str):
        raise MalformedSignatureInput(
            f"signature must be a string, got {type(signature).__name__}"
        )
    return signature


_default_signer = Signer()


def sign(secret: str, params: Optional[ParameterSet], url: str, method: str = POST) -> str:
    return _default_signer.sign(secret, params, url, method)


def sign_and_encode(
    secret: str, params: Optional[ParameterSet], url: str, method: str = GET
) -> str:
    return _default_signer.sign_and_encode(secret, params, url, method)


def verify(
    signature: Any,
    secret: str,
    params: Optional[ParameterSet],
    url: str,
    method: str = POST,
) -> bool:
    return _default_signer.verify(signature, secret, params, url, method)
