"""Developer tooling: CLI utilities for building and checking signatures."""

from __future__ import annotations

import argparse
import os
from typing import Dict, Iterable, List, Optional
from urllib.parse import parse_qsl, urlsplit

from .canonicalization import GET, SUPPORTED_METHODS, build_message, collect_items
from .errors import LaterPayError
from .signing import Signer


def parse_params(pairs: Iterable[str]) -> Dict[str, List[str]]:
    """Turn repeated ``name=value`` arguments into a parameter set."""

    items = []
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep:
            raise ValueError(f"parameter {pair!r} is not in name=value form")
        items.append((name, value))
    return collect_items(items)


def verify_signed_url(url: str, secret: str, method: str = GET) -> bool:
    """Check the ``hmac`` parameter of a fully signed URL."""

    query = urlsplit(url).query
    params = collect_items(parse_qsl(query, keep_blank_values=True))
    return Signer().verify_query(secret, params, url, method)


def _resolve_secret(value: Optional[str]) -> str:
    secret = value or os.getenv("LATERPAY_API_KEY", "")
    if not secret:
        raise ValueError("no secret given (use --secret or LATERPAY_API_KEY)")
    return secret


def run(argv: Iterable[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="laterpay-dev", description="LaterPay signing utilities")
    sub = parser.add_subparsers(dest="command")

    def add_request_args(cmd: argparse.ArgumentParser, *, with_secret: bool = True) -> None:
        cmd.add_argument("url")
        cmd.add_argument("-X", "--method", default=GET, type=str.upper, choices=SUPPORTED_METHODS)
        cmd.add_argument("-p", "--param", action="append", default=[], metavar="NAME=VALUE")
        if with_secret:
            cmd.add_argument("--secret")

    add_request_args(
        sub.add_parser("message", help="print the canonical message for a request"),
        with_secret=False,
    )
    add_request_args(sub.add_parser("sign", help="print the HMAC of a request"))
    add_request_args(sub.add_parser("encode", help="print a fully signed URL"))

    verify_cmd = sub.add_parser("verify", help="check the signature of a signed URL")
    verify_cmd.add_argument("url")
    verify_cmd.add_argument("-X", "--method", default=GET, type=str.upper, choices=SUPPORTED_METHODS)
    verify_cmd.add_argument("--secret")

    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        if args.command == "message":
            print(build_message(parse_params(args.param), args.url, args.method))
            return 0
        if args.command == "sign":
            secret = _resolve_secret(args.secret)
            print(Signer().sign(secret, parse_params(args.param), args.url, args.method))
            return 0
        if args.command == "encode":
            secret = _resolve_secret(args.secret)
            query = Signer().sign_and_encode(secret, parse_params(args.param), args.url, args.method)
            print(f"{args.url}?{query}")
            return 0
        if args.command == "verify":
            ok = verify_signed_url(args.url, _resolve_secret(args.secret), args.method)
            print("valid" if ok else "invalid")
            return 0 if ok else 1
    except (LaterPayError, ValueError) as exc:
        parser.error(str(exc))

    parser.print_help()
    return 1


if __name__ == "__main__":
    raise SystemExit(run())
