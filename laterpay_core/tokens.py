"""Storage for the opaque LaterPay session token."""

from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol

from .config import DEFAULT_TOKEN_NAME

ONE_DAY = 24 * 60 * 60


class TokenStore(Protocol):
    name: str

    def get(self) -> Optional[str]:
        ...

    def set(self, token: str) -> None:
        ...

    def delete(self) -> None:
        ...


class InMemoryTokenStore:
    """Token kept on the instance; suitable for scripts and tests."""

    def __init__(self, name: str = DEFAULT_TOKEN_NAME, token: Optional[str] = None):
        self.name = name
        self._token = token

    def get(self) -> Optional[str]:
        return self._token

    def set(self, token: str) -> None:
        self._token = token

    def delete(self) -> None:
        self._token = None


class CookieTokenStore:
    """Token read from a request cookie and written back on the response.

    Changes are recorded until :meth:`apply` is called with a response object
    exposing ``set_cookie``/``delete_cookie`` (Flask, Django and Starlette
    responses all do).
    """

    def __init__(
        self,
        cookies: Mapping[str, str],
        name: str = DEFAULT_TOKEN_NAME,
        *,
        max_age: int = ONE_DAY,
        path: str = "/",
    ):
        self.name = name
        self.max_age = max_age
        self.path = path
        self._token = cookies.get(name) or None
        self._dirty = False

    def get(self) -> Optional[str]:
        return self._token

    def set(self, token: str) -> None:
        self._token = token
        self._dirty = True

    def delete(self) -> None:
        self._token = None
        self._dirty = True

    @property
    def pending(self) -> bool:
        return self._dirty

    def apply(self, response: Any) -> Any:
        if not self._dirty:
            return response
        if self._token is None:
            response.delete_cookie(self.name, path=self.path)
        else:
            response.set_cookie(self.name, self._token, max_age=self.max_age, path=self.path)
        self._dirty = False
        return response
