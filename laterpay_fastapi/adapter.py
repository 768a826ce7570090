"""FastAPI adapter for the LaterPay client."""

import logging
from typing import Any, Callable, Optional

from laterpay_core import (
    Client,
    ClientConfig,
    CookieTokenStore,
    MalformedSignatureInput,
    Signer,
    Transport,
    UnsupportedMethod,
    collect_items,
    select_transport,
)

logger = logging.getLogger(__name__)

STATE_ATTR = "laterpay_client"


class FastAPIAdapter:
    """Cookie-backed clients and signature checks for FastAPI routes."""

    def __init__(
        self,
        *,
        app: Any,
        config: ClientConfig,
        signer: Optional[Signer] = None,
        transport: Optional[Transport] = None,
    ):
        self.app = app
        self.config = config
        self.signer = signer or Signer()
        self.transport = transport or select_transport()

    def install(self) -> None:
        """Register the middleware that writes token cookies on responses."""

        @self.app.middleware("http")
        async def laterpay_cookies(request: Any, call_next: Callable[[Any], Any]):
            response = await call_next(request)
            return self.apply_cookies(request, response)

    def client_for_request(self, request: Any) -> Client:
        client = getattr(request.state, STATE_ATTR, None)
        if client is None:
            client = Client(
                self.config,
                transport=self.transport,
                token_store=CookieTokenStore(request.cookies, self.config.token_name),
                signer=self.signer,
            )
            setattr(request.state, STATE_ATTR, client)
        return client

    def verify_request(self, request: Any) -> bool:
        params = collect_items(_iter_query(request.query_params))
        try:
            return self.signer.verify_query(
                self.config.api_key, params, str(request.url), request.method
            )
        except (MalformedSignatureInput, UnsupportedMethod):
            return False

    def apply_cookies(self, request: Any, response: Any) -> Any:
        client = getattr(request.state, STATE_ATTR, None)
        if client is not None and isinstance(client.token_store, CookieTokenStore):
            client.token_store.apply(response)
        return response

    def require_signature(self) -> Callable[..., Client]:
        """Build a dependency that rejects unsigned requests with 403.

        The dependency returns the request's client, with any ``lptoken``
        from the callback already stored.
        """

        from fastapi import HTTPException, Request  # deferred import

        def dependency(request: Request) -> Client:
            if not self.verify_request(request):
                logger.warning("Rejected LaterPay callback with invalid signature: %s", request.url.path)
                raise HTTPException(status_code=403, detail="invalid signature")
            client = self.client_for_request(request)
            token = request.query_params.get("lptoken")
            if token:
                client.set_token(token)
            return client

        return dependency


def _iter_query(params: Any):
    if hasattr(params, "multi_items"):
        return params.multi_items()
    return params.items()
