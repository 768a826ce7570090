"""Request canonicalization primitives used for signing.

The canonical message is what the HMAC is computed over, so client and server
must build it byte for byte the same way. Canonicalization follows these
rules:

1. Methods are upper-cased and must belong to the supported verb set.
2. Scalar parameter values are folded into one-element lists.
3. Names are sorted, then each name's values are sorted (code-point order,
   which matches raw UTF-8 byte order).
4. Names, values and the URL are percent-encoded per RFC 3986 (``%20`` for
   space, never ``+``).
5. The ``name=value`` block is ``&``-joined and percent-encoded a second time.
6. The message is ``METHOD&encoded-url&encoded-parameter-block``.
"""

from __future__ import annotations

from typing import Iterable, Mapping, MutableMapping, Sequence, Tuple, Union
from urllib.parse import quote

from .errors import UnsupportedMethod

GET = "GET"
HEAD = "HEAD"
POST = "POST"
PUT = "PUT"
DELETE = "DELETE"
PATCH = "PATCH"

SUPPORTED_METHODS = (GET, HEAD, POST, PUT, DELETE, PATCH)

ParamValue = Union[str, Sequence[str]]
ParameterSet = Mapping[str, ParamValue]
NormalizedParams = MutableMapping[str, list[str]]
QueryItems = Iterable[Tuple[str, str]]


def normalize_method(method: str) -> str:
    """Upper-case ``method`` and reject verbs outside the supported set."""

    normalized = str(method).upper()
    if normalized not in SUPPORTED_METHODS:
        raise UnsupportedMethod(f"method {method!r} not supported")
    return normalized


def normalize_params(params: ParameterSet | None) -> NormalizedParams:
    """Return ``{name: [value, ...]}`` for any mix of scalar and list values."""

    normalized: NormalizedParams = {}
    for name, value in (params or {}).items():
        if isinstance(value, (list, tuple)):
            normalized[str(name)] = [str(item) for item in value]
        else:
            normalized[str(name)] = [str(value)]
    return normalized


def collect_items(items: QueryItems) -> NormalizedParams:
    """Fold repeated ``(name, value)`` pairs into the normalized shape."""

    collected: NormalizedParams = {}
    for name, value in items:
        collected.setdefault(str(name), []).append(str(value))
    return collected


def percent_encode(text: str) -> str:
    return quote(str(text), safe="")


def strip_query(url: str) -> str:
    return url.split("?", 1)[0]


def encode_pairs(params: ParameterSet | None) -> list[str]:
    """Sorted, singly encoded ``name=value`` pairs, one per value."""

    normalized = normalize_params(params)
    pairs: list[str] = []
    for name in sorted(normalized):
        encoded_name = percent_encode(name)
        for value in sorted(normalized[name]):
            pairs.append(f"{encoded_name}={percent_encode(value)}")
    return pairs


def encode_query(params: ParameterSet | None) -> str:
    """Build the query string that is sent on the wire."""

    return "&".join(encode_pairs(params))


def build_message(params: ParameterSet | None, url: str, method: str) -> str:
    """Serialize ``(method, url, params)`` into the message that gets signed.

    Reserved keys are not filtered here; that is the signer's job.
    """

    parameter_block = percent_encode("&".join(encode_pairs(params)))
    encoded_url = percent_encode(strip_query(url))
    return "&".join((normalize_method(method), encoded_url, parameter_block))
