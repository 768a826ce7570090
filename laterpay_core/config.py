"""Client configuration and the region/environment URL table."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .errors import ConfigurationError, InvalidSecret

REGION_URLS: Mapping[str, Mapping[str, Mapping[str, str]]] = {
    "eu": {
        "live": {
            "root": "https://api.laterpay.net",
            "dialog": "https://web.laterpay.net",
            "merchant": "https://merchant.laterpay.net/",
        },
        "sandbox": {
            "root": "https://api.sandbox.laterpaytest.net",
            "dialog": "https://web.sandbox.laterpaytest.net",
        },
    },
    "us": {
        "live": {
            "root": "https://api.uselaterpay.com",
            "dialog": "https://web.uselaterpay.com",
            "merchant": "https://web.uselaterpay.com/merchant",
        },
        "sandbox": {
            "root": "https://api.sandbox.uselaterpaytest.com",
            "dialog": "https://web.sandbox.uselaterpaytest.com",
        },
    },
}

DEFAULT_TOKEN_NAME = "laterpay_token"
DEFAULT_USER_AGENT = "LaterPay Client - Python - v0.3"
API_VERSION = 2

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class ClientConfig:
    """Merchant credentials plus the environment the client talks to."""

    merchant_id: str
    api_key: str
    region: str = "eu"
    sandbox: bool = False
    token_name: str = DEFAULT_TOKEN_NAME
    api_version: int = API_VERSION
    user_agent: str = DEFAULT_USER_AGENT
    timeout: float = 30

    def __post_init__(self) -> None:
        region = str(self.region).lower()
        if region not in REGION_URLS:
            raise ConfigurationError(f"region {self.region!r} not supported")
        if not self.api_key:
            raise InvalidSecret("API key may not be empty")
        if self.timeout <= 0:
            raise ConfigurationError("timeout must be positive")
        object.__setattr__(self, "merchant_id", str(self.merchant_id))
        object.__setattr__(self, "api_key", str(self.api_key))
        object.__setattr__(self, "region", region)
        # Only a real boolean enables sandbox mode.
        object.__setattr__(self, "sandbox", self.sandbox is True)

    @property
    def environment(self) -> str:
        return "sandbox" if self.sandbox else "live"

    @property
    def root_url(self) -> str:
        return REGION_URLS[self.region][self.environment]["root"]

    @property
    def dialog_url(self) -> str:
        return REGION_URLS[self.region][self.environment]["dialog"]

    @property
    def merchant_url(self) -> Optional[str]:
        return REGION_URLS[self.region][self.environment].get("merchant")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ClientConfig":
        env = os.environ if environ is None else environ
        api_key = env.get("LATERPAY_API_KEY", "")
        if not api_key:
            raise InvalidSecret("LATERPAY_API_KEY is not set")
        try:
            timeout = float(env.get("LATERPAY_TIMEOUT", "30"))
        except ValueError as exc:
            raise ConfigurationError("LATERPAY_TIMEOUT must be a number") from exc
        return cls(
            merchant_id=env.get("LATERPAY_MERCHANT_ID", ""),
            api_key=api_key,
            region=env.get("LATERPAY_REGION", "eu"),
            sandbox=env.get("LATERPAY_SANDBOX", "").lower() in _TRUTHY,
            token_name=env.get("LATERPAY_TOKEN_NAME", DEFAULT_TOKEN_NAME),
            timeout=timeout,
        )
