import hashlib
import json
from urllib.parse import parse_qsl, unquote, urlsplit

import pytest

from laterpay_core import (
    Client,
    ClientConfig,
    InMemoryTokenStore,
    JWTSigner,
    NoTransportAvailable,
    Signer,
    TransportError,
    UnsupportedTransport,
    collect_items,
)

API_KEY = "987654321"


class FakeTransport:
    def __init__(self, responses=None, *, available=True, error=None):
        self.responses = list(responses or [])
        self.available = available
        self.error = error
        self.requests = []

    def is_available(self):
        return self.available

    def send(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.responses.pop(0) if self.responses else ""


def make_client(transport=None, **overrides):
    options = {"merchant_id": "123456789", "api_key": API_KEY}
    options.update(overrides)
    return Client(
        ClientConfig(**options),
        transport=transport or FakeTransport(),
        signer=Signer(clock=lambda: 1700000000),
    )


def assert_signed(url, method="GET"):
    params = collect_items(parse_qsl(urlsplit(url).query, keep_blank_values=True))
    assert Signer().verify_query(API_KEY, params, url, method) is True
    return params


def test_client_exposes_configuration():
    client = make_client(region="US")
    assert client.merchant_id == "123456789"
    assert client.api_key == API_KEY
    assert client.region == "us"
    assert client.sandbox is False
    assert client.access_url == "https://api.uselaterpay.com/access"


def test_sandbox_urls():
    client = make_client(sandbox=True)
    assert client.token_url == "https://api.sandbox.laterpaytest.net/gettoken"
    assert client.health_url == "https://api.sandbox.laterpaytest.net/validatesignature"


def test_token_management():
    client = make_client()
    assert client.token is None
    assert client.has_token() is False

    client.set_token("abc")
    assert client.token == "abc"
    assert client.has_token() is True
    assert client.token_name == "laterpay_token"

    client.delete_token()
    assert client.token is None


def test_token_store_is_injectable():
    store = InMemoryTokenStore("custom", token="preset")
    client = Client(ClientConfig("1", API_KEY), transport=FakeTransport(), token_store=store)
    assert client.token == "preset"
    assert client.token_name == "custom"


def test_set_transport_accepts_instances_and_classes():
    client = make_client()
    replacement = FakeTransport()
    client.set_transport(replacement)
    assert client.transport is replacement

    client.set_transport(FakeTransport)
    assert isinstance(client.transport, FakeTransport)
    assert client.transport is not replacement


def test_set_transport_ignores_unavailable_transport():
    original = FakeTransport()
    client = make_client(original)
    client.set_transport(FakeTransport(available=False))
    assert client.transport is original


def test_set_transport_rejects_unsupported_objects():
    client = make_client()
    with pytest.raises(UnsupportedTransport):
        client.set_transport(object())


def test_token_redirect_url_is_signed():
    url = make_client().token_redirect_url("https://merchant.test/article")

    assert url.startswith("https://api.laterpay.net/gettoken?")
    params = assert_signed(url)
    assert params["redir"] == ["https://merchant.test/article"]
    assert params["cp"] == ["123456789"]
    assert params["ts"] == ["1700000000"]


def test_identify_url_carries_jwt():
    client = make_client()
    url = client.identify_url("https://merchant.test/", ["1", "2"])

    prefix = "https://web.laterpay.net/ident/123456789/"
    assert url.startswith(prefix)
    payload = JWTSigner(API_KEY).decode(url[len(prefix):])
    assert payload == {"back": "https://merchant.test/", "ids": ["1", "2"]}


def test_controls_balance_url():
    url = make_client().controls_balance_url(forcelang="de")
    assert url.startswith("https://web.laterpay.net/controls/balance?")
    params = assert_signed(url)
    assert params["forcelang"] == ["de"]
    assert len(params["xdmprefix"][0]) == 10


def test_account_links_url_options():
    url = make_client().account_links_url(
        show="gg", css_url="https://merchant.test/a.css", next_url="/next", use_js_events=True
    )
    params = assert_signed(url)
    assert params["show"] == ["gg"]
    assert params["css"] == ["https://merchant.test/a.css"]
    assert params["next"] == ["/next"]
    assert params["jsevents"] == ["1"]
    assert "forcelang" not in params


@pytest.mark.parametrize("action", ["login", "signup", "logout"])
def test_account_dialog_urls(action):
    client = make_client()
    url = getattr(client, f"{action}_dialog_url")("https://merchant.test/back", use_js_events=True)

    prefix = "https://web.laterpay.net/dialog-api?url="
    assert url.startswith(prefix)
    inner = unquote(url[len(prefix):])
    assert inner == (
        f"https://web.laterpay.net/account/dialog/{action}"
        "?next=https%3A%2F%2Fmerchant.test%2Fback&jsevents=1&cp=123456789"
    )


@pytest.mark.parametrize(
    "method, path",
    [
        ("buy_url", "/dialog/buy"),
        ("add_url", "/dialog/add"),
        ("subscription_url", "/dialog/subscribe"),
        ("donate_url", "/dialog/donate/pay_later"),
        ("contribute_url", "/dialog/contribute/pay_later"),
    ],
)
def test_web_urls(method, path):
    url = getattr(make_client(), method)({"article_id": "42"})
    assert url.startswith(f"https://web.laterpay.net{path}?")
    params = assert_signed(url)
    assert params["return_lptoken"] == ["1"]
    assert params["cp"] == ["123456789"]


def test_web_url_options():
    client = make_client()
    url = client.donate_url({"cp": "other"}, model="sis", dialog=False, jsevents=True)
    assert url.startswith("https://web.laterpay.net/donate/pay_now?")
    params = assert_signed(url)
    assert params["cp"] == ["other"]
    assert params["jsevents"] == ["1"]


def test_get_access_without_token_skips_request():
    transport = FakeTransport()
    client = make_client(transport)
    assert client.get_access(["1"]) == {}
    client.set_token("tok")
    assert client.get_access([]) == {}
    assert transport.requests == []


def test_get_access_sends_signed_request():
    body = {"status": "ok", "articles": {"1": {"access": True}}}
    transport = FakeTransport([json.dumps(body)])
    client = make_client(transport)
    client.set_token("tok")

    assert client.get_access(["1", "2"], product_key="p1") == body

    request = transport.requests[0]
    assert request.method == "GET"
    assert request.headers == {
        "X-LP-APIVersion": "2",
        "User-Agent": "LaterPay Client - Python - v0.3",
    }
    params = assert_signed(request.url)
    assert params["article_id"] == ["1", "2"]
    assert params["lptoken"] == ["tok"]
    assert params["product"] == ["p1"]


def test_make_request_handles_token_changes():
    transport = FakeTransport(
        [json.dumps({"status": "invalid_token"}), json.dumps({"status": "ok", "new_token": "fresh"})]
    )
    client = make_client(transport)
    client.set_token("old")

    client.make_request(client.access_url, {"cp": "1"})
    assert client.token is None

    client.make_request(client.access_url, {"cp": "1"})
    assert client.token == "fresh"


@pytest.mark.parametrize("raw", ["", "not json", "[]", "{}"])
def test_make_request_empty_or_invalid_body_is_connection_error(raw):
    client = make_client(FakeTransport([raw]))
    with pytest.raises(TransportError) as excinfo:
        client.make_request(client.access_url, {})
    assert excinfo.value.kind == "connection_error"


def test_make_request_without_transport():
    client = make_client()
    client._transport = None
    with pytest.raises(NoTransportAvailable):
        client.make_request(client.access_url, {})


def test_check_health():
    transport = FakeTransport(["ok"])
    client = make_client(transport)
    assert client.check_health() is True
    params = assert_signed(transport.requests[0].url)
    assert len(params["salt"][0]) == 32

    failing = make_client(FakeTransport(error=TransportError("down")))
    assert failing.check_health() is False


def test_check_health_does_not_need_md5(monkeypatch):
    def refuse(*args, **kwargs):
        raise ValueError("unsupported hash type md5")

    monkeypatch.setattr(hashlib, "md5", refuse)
    transport = FakeTransport(["ok"])
    assert make_client(transport).check_health() is True
    assert len(assert_signed(transport.requests[0].url)["salt"][0]) == 32
