"""Django integration for the LaterPay client."""

from __future__ import annotations

import logging
from functools import wraps
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

REQUEST_ATTR = "laterpay"


class DjangoAdapter:
    """Attach a cookie-backed client to Django requests and guard callbacks."""

    def __init__(
        self,
        *,
        config: ClientConfig,
        signer: Optional[Signer] = None,
        transport: Optional[Transport] = None,
    ):
        self.config = config
        self.signer = signer or Signer()
        self.transport = transport or select_transport()

    def client_for_request(self, request: Any) -> Client:
        client = getattr(request, REQUEST_ATTR, None)
        if client is None:
            client = Client(
                self.config,
                transport=self.transport,
                token_store=CookieTokenStore(request.COOKIES, self.config.token_name),
                signer=self.signer,
            )
            setattr(request, REQUEST_ATTR, client)
        return client

    def verify_request(self, request: Any) -> bool:
        params = collect_items(
            (key, value) for key, values in request.GET.lists() for value in values
        )
        try:
            return self.signer.verify_query(
                self.config.api_key, params, request.build_absolute_uri(), request.method
            )
        except (MalformedSignatureInput, UnsupportedMethod):
            return False

    def apply_cookies(self, request: Any, response: Any) -> Any:
        client = getattr(request, REQUEST_ATTR, None)
        if client is not None and isinstance(client.token_store, CookieTokenStore):
            client.token_store.apply(response)
        return response

    def signed_view(self, view: Callable[..., Any]) -> Callable[..., Any]:
        """Decorate ``view`` so unsigned requests get a 403."""

        @wraps(view)
        def wrapped(request: Any, *args: Any, **kwargs: Any):
            if not self.verify_request(request):
                from django.http import HttpResponseForbidden  # deferred import

                logger.warning("Rejected LaterPay callback with invalid signature: %s", request.path)
                return HttpResponseForbidden("invalid signature")
            token = request.GET.get("lptoken")
            if token:
                self.client_for_request(request).set_token(token)
            return self.apply_cookies(request, view(request, *args, **kwargs))

        return wrapped

    def middleware(self, get_response: Callable[[Any], Any]) -> Callable[[Any], Any]:
        """Django middleware factory that persists token changes as cookies."""

        def middleware(request: Any) -> Any:
            return self.apply_cookies(request, get_response(request))

        return middleware
