"""LaterPay API client: signed URLs, signed requests and token handling."""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from .canonicalization import GET, percent_encode
from .config import ClientConfig
from .errors import NoTransportAvailable, TransportError, UnsupportedTransport
from .jwt import JWTSigner
from .signing import Signer
from .tokens import InMemoryTokenStore, TokenStore
from .transports import HttpRequest, Transport, is_transport, select_transport

logger = logging.getLogger(__name__)


def _xdm_prefix() -> str:
    return uuid.uuid4().hex[:10]


class Client:
    """Entry point for talking to the LaterPay API as one merchant."""

    def __init__(
        self,
        config: ClientConfig,
        *,
        transport: Optional[Transport] = None,
        token_store: Optional[TokenStore] = None,
        signer: Optional[Signer] = None,
        jwt_signer: Optional[JWTSigner] = None,
    ):
        self.config = config
        self.signer = signer or Signer()
        self.jwt_signer = jwt_signer or JWTSigner(config.api_key)
        self.token_store = token_store or InMemoryTokenStore(config.token_name)
        self._transport: Optional[Transport] = None
        if transport is not None:
            self.set_transport(transport)
        else:
            try:
                self._transport = select_transport()
            except NoTransportAvailable:
                logger.warning("No HTTP transport available; remote calls will fail")

    # -- configuration ---------------------------------------------------

    @property
    def merchant_id(self) -> str:
        return self.config.merchant_id

    @property
    def api_key(self) -> str:
        return self.config.api_key

    @property
    def region(self) -> str:
        return self.config.region

    @property
    def sandbox(self) -> bool:
        return self.config.sandbox

    @property
    def transport(self) -> Optional[Transport]:
        return self._transport

    def set_transport(self, transport: Union[Transport, type]) -> "Client":
        """Use ``transport`` (instance or class) if it is available."""

        candidate = transport() if isinstance(transport, type) else transport
        if not is_transport(candidate):
            raise UnsupportedTransport(f"transport {type(candidate).__name__} is not supported")
        if candidate.is_available():
            self._transport = candidate
        else:
            logger.debug("Transport %s unavailable; keeping current", type(candidate).__name__)
        return self

    # -- token -----------------------------------------------------------

    @property
    def token(self) -> Optional[str]:
        return self.token_store.get()

    @property
    def token_name(self) -> str:
        return self.token_store.name

    def has_token(self) -> bool:
        return bool(self.token)

    def set_token(self, token: str) -> "Client":
        self.token_store.set(token)
        return self

    def delete_token(self) -> "Client":
        self.token_store.delete()
        return self

    # -- endpoints -------------------------------------------------------

    @property
    def access_url(self) -> str:
        return f"{self.config.root_url}/access"

    @property
    def token_url(self) -> str:
        return f"{self.config.root_url}/gettoken"

    @property
    def health_url(self) -> str:
        return f"{self.config.root_url}/validatesignature"

    def sign_and_encode(self, params: Mapping[str, Any], url: str, method: str = GET) -> str:
        return self.signer.sign_and_encode(self.api_key, params, url, method)

    def _signed_url(self, url: str, params: Mapping[str, Any]) -> str:
        return f"{url}?{self.sign_and_encode(params, url)}"

    def token_redirect_url(self, return_url: str) -> str:
        """URL that obtains a fresh token and redirects back to ``return_url``."""

        return self._signed_url(self.token_url, {"redir": return_url, "cp": self.merchant_id})

    def identify_url(self, return_url: str, content_ids: Iterable[str]) -> str:
        payload = {"back": return_url, "ids": list(content_ids)}
        token = self.jwt_signer.encode(payload)
        return f"{self.config.dialog_url}/ident/{self.merchant_id}/{token}"

    def controls_balance_url(self, forcelang: Optional[str] = None) -> str:
        data: Dict[str, Any] = {"cp": self.merchant_id}
        if forcelang is not None:
            data["forcelang"] = forcelang
        data["xdmprefix"] = _xdm_prefix()
        return self._signed_url(f"{self.config.dialog_url}/controls/balance", data)

    def account_links_url(
        self,
        show: Optional[str] = None,
        css_url: Optional[str] = None,
        next_url: Optional[str] = None,
        force_lang: Optional[str] = None,
        use_js_events: bool = False,
    ) -> str:
        """Signed URL of the account links widget.

        ``show`` takes ``g``, ``gg``, ``l``, ``s``, ``ss`` or a combination.
        """

        data: Dict[str, Any] = {"cp": self.merchant_id}
        if next_url is not None:
            data["next"] = next_url
        if force_lang is not None:
            data["forcelang"] = force_lang
        if css_url is not None:
            data["css"] = css_url
        if show is not None:
            data["show"] = show
        if use_js_events:
            data["jsevents"] = "1"
        data["xdmprefix"] = _xdm_prefix()
        return self._signed_url(f"{self.config.dialog_url}/controls/links", data)

    def _dialog_api_url(self, url: str) -> str:
        return f"{self.config.dialog_url}/dialog-api?url={percent_encode(url)}"

    def _account_dialog_url(self, action: str, return_url: str, use_js_events: bool) -> str:
        jsevents = "&jsevents=1" if use_js_events else ""
        url = (
            f"{self.config.dialog_url}/account/dialog/{action}"
            f"?next={percent_encode(return_url)}{jsevents}&cp={self.merchant_id}"
        )
        return self._dialog_api_url(url)

    def login_dialog_url(self, return_url: str, use_js_events: bool = False) -> str:
        return self._account_dialog_url("login", return_url, use_js_events)

    def signup_dialog_url(self, return_url: str, use_js_events: bool = False) -> str:
        return self._account_dialog_url("signup", return_url, use_js_events)

    def logout_dialog_url(self, return_url: str, use_js_events: bool = False) -> str:
        return self._account_dialog_url("logout", return_url, use_js_events)

    def web_url(
        self,
        data: Mapping[str, Any],
        endpoint: str,
        *,
        dialog: bool = True,
        jsevents: bool = False,
    ) -> str:
        """Signed purchase URL for ``endpoint`` on the dialog host."""

        params = dict(data)
        params.setdefault("cp", self.merchant_id)
        params["return_lptoken"] = 1
        if jsevents:
            params["jsevents"] = 1
        prefix = f"{self.config.dialog_url}/dialog" if dialog else self.config.dialog_url
        return self._signed_url(f"{prefix}/{endpoint}", params)

    def buy_url(self, data: Mapping[str, Any], **options: Any) -> str:
        return self.web_url(data, "buy", **options)

    def add_url(self, data: Mapping[str, Any], **options: Any) -> str:
        return self.web_url(data, "add", **options)

    def subscription_url(self, data: Mapping[str, Any], **options: Any) -> str:
        return self.web_url(data, "subscribe", **options)

    def donate_url(self, data: Mapping[str, Any], *, model: Optional[str] = None, **options: Any) -> str:
        return self.web_url(data, f"donate/{_revenue_path(model)}", **options)

    def contribute_url(self, data: Mapping[str, Any], *, model: Optional[str] = None, **options: Any) -> str:
        return self.web_url(data, f"contribute/{_revenue_path(model)}", **options)

    # -- remote calls ----------------------------------------------------

    def _headers(self) -> Dict[str, str]:
        return {
            "X-LP-APIVersion": str(self.config.api_version),
            "User-Agent": self.config.user_agent,
        }

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise NoTransportAvailable("no available transports")
        return self._transport

    def make_request(
        self,
        url: str,
        params: Optional[Mapping[str, Any]] = None,
        method: str = GET,
    ) -> Dict[str, Any]:
        """Send a signed request and return the decoded JSON response.

        The token is dropped when the service reports ``invalid_token`` and
        replaced when it hands out ``new_token``.
        """

        transport = self._require_transport()
        query = self.sign_and_encode(params or {}, url, method)
        request = HttpRequest(
            method=method,
            url=f"{url}?{query}",
            headers=self._headers(),
            timeout=self.config.timeout,
        )
        logger.debug("%s %s", request.method, url)
        raw = transport.send(request)

        try:
            response = json.loads(raw) if raw else None
        except json.JSONDecodeError:
            response = None
        if not response or not isinstance(response, dict):
            raise TransportError("connection_error")

        if response.get("status") == "invalid_token":
            logger.warning("LaterPay reported an invalid token; discarding it")
            self.delete_token()
        if response.get("new_token"):
            self.set_token(response["new_token"])
        return response

    def get_access(
        self,
        article_ids: Union[str, int, Iterable[str]],
        product_key: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Ask the service which of ``article_ids`` the current user may access."""

        if isinstance(article_ids, (str, int)):
            article_ids = [article_ids]
        ids = [str(item) for item in article_ids]
        if not self.token or not ids:
            return {}
        params: Dict[str, Any] = {
            "lptoken": self.token,
            "cp": self.merchant_id,
            "article_id": ids,
        }
        if product_key is not None:
            params["product"] = product_key
        return self.make_request(self.access_url, params)

    def check_health(self) -> bool:
        if self._transport is None:
            return False
        salt = uuid.uuid4().hex
        url = self._signed_url(self.health_url, {"salt": salt, "cp": self.merchant_id})
        try:
            self._transport.send(
                HttpRequest(method=GET, url=url, headers=self._headers(), timeout=self.config.timeout)
            )
        except TransportError as exc:
            logger.warning("LaterPay health check failed: %s", exc)
            return False
        return True


def _revenue_path(model: Optional[str]) -> str:
    return "pay_now" if model == "sis" else "pay_later"
