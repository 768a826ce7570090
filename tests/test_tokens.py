from laterpay_core import CookieTokenStore, InMemoryTokenStore


class FakeResponse:
    def __init__(self):
        self.set_calls = []
        self.delete_calls = []

    def set_cookie(self, key, value, max_age=None, path="/"):
        self.set_calls.append((key, value, max_age, path))

    def delete_cookie(self, key, path="/"):
        self.delete_calls.append((key, path))


def test_in_memory_store():
    store = InMemoryTokenStore()
    assert store.name == "laterpay_token"
    assert store.get() is None
    store.set("t")
    assert store.get() == "t"
    store.delete()
    assert store.get() is None


def test_cookie_store_reads_initial_token():
    assert CookieTokenStore({"laterpay_token": "abc"}).get() == "abc"
    assert CookieTokenStore({"laterpay_token": ""}).get() is None
    assert CookieTokenStore({"other": "abc"}, "other").get() == "abc"


def test_cookie_store_writes_pending_changes_once():
    store = CookieTokenStore({})
    response = FakeResponse()

    assert store.apply(response) is response
    assert response.set_calls == []

    store.set("new")
    assert store.pending is True
    store.apply(response)
    store.apply(response)
    assert response.set_calls == [("laterpay_token", "new", 86400, "/")]
    assert store.pending is False


def test_cookie_store_delete():
    store = CookieTokenStore({"laterpay_token": "abc"}, path="/app")
    response = FakeResponse()
    store.delete()
    store.apply(response)
    assert store.get() is None
    assert response.delete_calls == [("laterpay_token", "/app")]
