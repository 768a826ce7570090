"""HTTP transports behind a small capability interface.

The client only needs "send method + URL + headers + body, return the raw
body or fail". Anything with ``is_available()`` and ``send(request)`` can be
injected; the signing code never knows which implementation is in use.
"""

from __future__ import annotations

import logging
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional, Protocol, Sequence, runtime_checkable
from urllib.parse import urlencode

import requests

from .canonicalization import DELETE, GET, HEAD, normalize_method
from .errors import NoTransportAvailable, TransportError

logger = logging.getLogger(__name__)

# Methods whose data travels in the query string rather than the body.
QUERY_METHODS = (GET, HEAD, DELETE)


@dataclass(frozen=True)
class HttpRequest:
    method: str
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    data: Mapping[str, object] = field(default_factory=dict)
    timeout: float = 30

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", normalize_method(self.method))
        if not self.url:
            raise ValueError("no URL provided")

    @property
    def sends_body(self) -> bool:
        return self.method not in QUERY_METHODS

    def url_with_data(self) -> str:
        """Append ``data`` to the URL, keeping any query already present."""

        if not self.data:
            return self.url
        separator = "&" if "?" in self.url else "?"
        return f"{self.url}{separator}{urlencode(self.data, doseq=True)}"


@runtime_checkable
class Transport(Protocol):
    def is_available(self) -> bool:
        ...

    def send(self, request: HttpRequest) -> str:
        ...


class RequestsTransport:
    """Transport backed by the ``requests`` library."""

    name = "requests"

    def __init__(self, session: Optional[requests.Session] = None, *, verify: bool = True):
        self.session = session or requests.Session()
        self.verify = verify

    def is_available(self) -> bool:
        return True

    def send(self, request: HttpRequest) -> str:
        kwargs = {
            "headers": dict(request.headers),
            "timeout": request.timeout,
            "verify": self.verify,
        }
        if request.sends_body:
            kwargs["data"] = dict(request.data)
            url = request.url
        else:
            url = request.url_with_data()
        try:
            response = self.session.request(request.method, url, **kwargs)
            response.raise_for_status()
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else None
            raise TransportError(f"HTTP {status} from {request.method} request", status_code=status) from exc
        except requests.RequestException as exc:
            raise TransportError(str(exc) or "connection_error") from exc
        return response.text


class UrllibTransport:
    """Standard-library transport, for callers that inject it explicitly."""

    name = "urllib"

    def is_available(self) -> bool:
        return True

    def send(self, request: HttpRequest) -> str:
        body = None
        url = request.url
        headers = dict(request.headers)
        if request.sends_body:
            body = urlencode(request.data, doseq=True).encode("utf-8")
            headers.setdefault("Content-Type", "application/x-www-form-urlencoded")
        else:
            url = request.url_with_data()
        prepared = urllib.request.Request(url, data=body, headers=headers, method=request.method)
        try:
            with urllib.request.urlopen(prepared, timeout=request.timeout) as response:
                charset = response.headers.get_content_charset() or "utf-8"
                return response.read().decode(charset, errors="replace")
        except urllib.error.HTTPError as exc:
            raise TransportError(f"HTTP {exc.code} from {request.method} request", status_code=exc.code) from exc
        except (urllib.error.URLError, OSError) as exc:
            raise TransportError(str(exc) or "connection_error") from exc


DEFAULT_TRANSPORTS: Sequence[type] = (RequestsTransport,)


def is_transport(candidate: object) -> bool:
    return isinstance(candidate, Transport)


def select_transport(candidates: Optional[Iterable[object]] = None) -> Transport:
    """Return the first available transport among ``candidates``.

    Candidates may be instances or classes; classes are instantiated with no
    arguments.
    """

    for candidate in candidates if candidates is not None else DEFAULT_TRANSPORTS:
        transport = candidate() if isinstance(candidate, type) else candidate
        if is_transport(transport) and transport.is_available():
            logger.debug("Selected transport %s", type(transport).__name__)
            return transport
    raise NoTransportAvailable("no available transports")
