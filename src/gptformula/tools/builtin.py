"""Built-in toolkits.

math      calculate, round_number
text      word_count, change_case
datetime  current_datetime, days_between
web       fetch_url
"""
from __future__ import annotations

import ast
import ipaddress
import math
import operator
import socket
from datetime import date, datetime, timedelta, timezone
from typing import List, Literal
from urllib.parse import urlsplit

import requests
from pydantic import Field

from ..errors import ToolExecutionError
from .models import ToolDefinition, ToolInput
from .registry import ToolkitRegistry

# ---------------------------------------------------------------------------
# math
# ---------------------------------------------------------------------------

_BIN_OPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}
_UNARY_OPS = {ast.UAdd: operator.pos, ast.USub: operator.neg}
_MAX_EXPONENT = 1000
_MAX_INT_BITS = 4096


def _check_magnitude(value):
    if isinstance(value, int) and value.bit_length() > _MAX_INT_BITS:
        raise ToolExecutionError("number too large")
    return value


def _check_power(base, exponent):
    if abs(exponent) > _MAX_EXPONENT:
        raise ToolExecutionError("exponent too large")
    # |base ** exponent| has about exponent * log2|base| bits
    if isinstance(exponent, (int, float)) and exponent > 0 and abs(base) > 1:
        if exponent * math.log2(abs(base)) > _MAX_INT_BITS:
            raise ToolExecutionError("number too large")


def _eval_node(node):
    if isinstance(node, ast.Expression):
        return _eval_node(node.body)
    if isinstance(node, ast.Constant) and isinstance(node.value, (int, float)) and not isinstance(node.value, bool):
        return _check_magnitude(node.value)
    if isinstance(node, ast.BinOp) and type(node.op) in _BIN_OPS:
        left = _eval_node(node.left)
        right = _eval_node(node.right)
        if isinstance(node.op, ast.Pow):
            _check_power(left, right)
        return _check_magnitude(_BIN_OPS[type(node.op)](left, right))
    if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPS:
        return _UNARY_OPS[type(node.op)](_eval_node(node.operand))
    raise ToolExecutionError(f"unsupported expression element: {type(node).__name__}")


class CalculateInput(ToolInput):
    expression: str = Field(..., description="Arithmetic expression, e.g. '(12.5 * 4) / 3'")


def calculate(args: CalculateInput):
    try:
        tree = ast.parse(args.expression, mode="eval")
    except SyntaxError as exc:
        raise ToolExecutionError(f"invalid expression: {exc.msg}")
    try:
        return _eval_node(tree)
    except ZeroDivisionError:
        raise ToolExecutionError("division by zero")
    except OverflowError:
        raise ToolExecutionError("number too large")


class RoundInput(ToolInput):
    value: float
    digits: int = Field(0, ge=0, le=15)


def round_number(args: RoundInput):
    return round(args.value, args.digits)


# ---------------------------------------------------------------------------
# text
# ---------------------------------------------------------------------------

class TextInput(ToolInput):
    text: str


def word_count(args: TextInput) -> int:
    return len(args.text.split())


class ChangeCaseInput(ToolInput):
    text: str
    mode: Literal["upper", "lower", "title"] = "upper"


def change_case(args: ChangeCaseInput) -> str:
    if args.mode == "lower":
        return args.text.lower()
    if args.mode == "title":
        return args.text.title()
    return args.text.upper()


# ---------------------------------------------------------------------------
# datetime
# ---------------------------------------------------------------------------

class NowInput(ToolInput):
    timezone_offset_hours: float = Field(0, ge=-14, le=14, description="UTC offset in hours")


def current_datetime(args: NowInput) -> str:
    tz = timezone(timedelta(hours=args.timezone_offset_hours))
    return datetime.now(tz).isoformat(timespec="seconds")


class DaysBetweenInput(ToolInput):
    start: date = Field(..., description="ISO date, e.g. 2024-01-31")
    end: date = Field(..., description="ISO date, e.g. 2024-03-01")


def days_between(args: DaysBetweenInput) -> int:
    return (args.end - args.start).days


# ---------------------------------------------------------------------------
# web
# ---------------------------------------------------------------------------

class FetchUrlInput(ToolInput):
    url: str = Field(..., pattern=r"^https?://", description="http(s) URL to fetch")
    max_chars: int = Field(4000, ge=1, le=20000)


_CHUNK_BYTES = 8192


def _resolve_host(host: str, port: int) -> List[str]:
    try:
        infos = socket.getaddrinfo(host, port, type=socket.SOCK_STREAM)
    except socket.gaierror as exc:
        raise ToolExecutionError(f"cannot resolve host {host}: {exc}")
    return [info[4][0] for info in infos]


def _check_public_url(url: str) -> None:
    parts = urlsplit(url)
    host = parts.hostname
    if not host:
        raise ToolExecutionError("url has no host")
    try:
        addresses = [str(ipaddress.ip_address(host))]
    except ValueError:
        addresses = _resolve_host(host, parts.port or (443 if parts.scheme == "https" else 80))
    for address in addresses:
        ip = ipaddress.ip_address(address.split("%", 1)[0])
        if ip.version == 6 and ip.ipv4_mapped:
            ip = ip.ipv4_mapped
        if not ip.is_global:
            raise ToolExecutionError(f"refusing to fetch non-public address {ip}")


def _read_limited(r: requests.Response, max_chars: int) -> str:
    # utf-8 needs at most 4 bytes per character
    budget = max_chars * 4
    chunks = []
    for chunk in r.iter_content(chunk_size=_CHUNK_BYTES):
        chunks.append(chunk[:budget])
        budget -= len(chunks[-1])
        if budget <= 0:
            break
    body = b"".join(chunks)
    return body.decode(r.encoding or "utf-8", errors="replace")[:max_chars]


def fetch_url(args: FetchUrlInput) -> str:
    _check_public_url(args.url)
    try:
        with requests.get(args.url, timeout=15, stream=True, allow_redirects=False) as r:
            if r.is_redirect:
                return f"HTTP {r.status_code} redirect to {r.headers.get('location', '')}"
            if r.status_code >= 400:
                return f"HTTP {r.status_code}"
            return _read_limited(r, args.max_chars)
    except requests.RequestException as exc:
        raise ToolExecutionError(f"request failed: {exc}")


MATH_TOOLS = (
    ToolDefinition("calculate", "Evaluate an arithmetic expression.", CalculateInput, calculate),
    ToolDefinition("round_number", "Round a number to a number of decimal digits.", RoundInput, round_number),
)

TEXT_TOOLS = (
    ToolDefinition("word_count", "Count the words in a text.", TextInput, word_count),
    ToolDefinition("change_case", "Convert a text to upper, lower or title case.", ChangeCaseInput, change_case),
)

DATETIME_TOOLS = (
    ToolDefinition("current_datetime", "Current date and time at a UTC offset.", NowInput, current_datetime),
    ToolDefinition("days_between", "Number of days from start to end.", DaysBetweenInput, days_between),
)

WEB_TOOLS = (
    ToolDefinition("fetch_url", "Fetch a web page and return the start of its body.", FetchUrlInput, fetch_url),
)


def default_registry() -> ToolkitRegistry:
    return ToolkitRegistry(
        [
            ("math", MATH_TOOLS),
            ("text", TEXT_TOOLS),
            ("datetime", DATETIME_TOOLS),
            ("web", WEB_TOOLS),
        ]
    )
