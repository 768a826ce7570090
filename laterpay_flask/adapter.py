"""Flask integration for the LaterPay client."""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Optional

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

ENVIRON_KEY = "laterpay.client"


class FlaskAdapter:
    """Give each Flask request a cookie-backed client and guard signed callbacks."""

    def __init__(
        self,
        app: Any,
        *,
        config: ClientConfig,
        signer: Optional[Signer] = None,
        transport: Optional[Transport] = None,
    ):
        self.app = app
        self.config = config
        self.signer = signer or Signer()
        self.transport = transport or select_transport()
        if hasattr(app, "after_request"):
            app.after_request(self._after_request)

    def client_for_request(self, request: Any = None) -> Client:
        request = request if request is not None else _current_request()
        client = request.environ.get(ENVIRON_KEY)
        if client is None:
            store = CookieTokenStore(request.cookies, self.config.token_name)
            client = Client(
                self.config,
                transport=self.transport,
                token_store=store,
                signer=self.signer,
            )
            request.environ[ENVIRON_KEY] = client
        return client

    def verify_request(self, request: Any = None) -> bool:
        """Check the ``hmac`` query parameter of an incoming callback."""

        request = request if request is not None else _current_request()
        params = collect_items(_iter_query(request.args))
        try:
            return self.signer.verify_query(self.config.api_key, params, request.url, request.method)
        except (MalformedSignatureInput, UnsupportedMethod):
            return False

    def accept_callback(self, request: Any = None) -> bool:
        """Verify a callback and keep the ``lptoken`` it carries, if any."""

        request = request if request is not None else _current_request()
        if not self.verify_request(request):
            logger.warning("Rejected LaterPay callback with invalid signature: %s", request.path)
            return False
        token = request.args.get("lptoken")
        if token:
            self.client_for_request(request).set_token(token)
        return True

    def register(
        self,
        rule: str,
        *,
        handler: Callable[..., Any],
        methods: Iterable[str] = ("GET",),
        endpoint: str | None = None,
    ) -> None:
        """Route ``rule`` to ``handler``, answering 403 to unsigned requests."""

        endpoint = endpoint or handler.__name__

        def wrapped(*args: Any, **kwargs: Any):
            from flask import abort  # deferred import

            if not self.accept_callback():
                abort(403)
            return handler(*args, **kwargs)

        self.app.add_url_rule(rule, endpoint, wrapped, methods=list(methods))

    def apply_cookies(self, request: Any, response: Any) -> Any:
        client = request.environ.get(ENVIRON_KEY)
        if client is not None and isinstance(client.token_store, CookieTokenStore):
            client.token_store.apply(response)
        return response

    def _after_request(self, response: Any) -> Any:
        return self.apply_cookies(_current_request(), response)


def _current_request() -> Any:
    from flask import request as flask_request  # deferred import

    return flask_request


def _iter_query(args: Any) -> Iterable[tuple[str, str]]:
    if hasattr(args, "lists"):
        for key, values in args.lists():
            for value in values:
                yield key, value
    else:
        for key, value in args.items():
            yield key, value
