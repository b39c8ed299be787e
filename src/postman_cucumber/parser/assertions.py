"""Assertion extractor for Postman test scripts.

Recovers structured expectations from ``pm.*`` test code by text matching.
Four matcher families run in a fixed order over the whole script and each one
appends what it finds:

1. ``pm.response.to.have.status(200)``
2. ``pm.expect(<expr>).to.be.oneOf([...])``
3. ``pm.expect(<expr>).to.<equal|eql|include|...>(<value>)``
4. ``const names = [...]`` later iterated with ``names.forEach`` / ``for (.. of names)``

Anything else is dropped. The extractor only under-approximates: an expression
it cannot map to a key is skipped rather than guessed. Matches are not
deduplicated across families, so one status check written in two styles
yields two assertions.
"""

import logging
import re
from typing import Callable

from postman_cucumber.normalize import strip_quotes

from .base import Assertion, AssertionKind

logger = logging.getLogger(__name__)

STATUS_RE = re.compile(r"response\.to\.have\.status\((\d+)\)")
ONE_OF_RE = re.compile(r"pm\.expect\(([^;\n]+?)\)\.to\.be\.oneOf\(\[([^\]]+)\]\)")
EXPECT_RE = re.compile(r"pm\.expect\(([^;\n]+?)\)\.to\.(\w+)\(([^;\n]+?)\)")
GROUP_RE = re.compile(r"\b(\w+)\s*=\s*\[([^\]]+)\](?=[\s\S]+?(?:\b\1\.forEach\b|\bof\s+\1\b))")
ALIAS_RE = re.compile(r"\b(?:var|let|const)\s+(\w+)\s*=\s*pm\.response\.json\(\)")

BODY_PATH_RE = re.compile(r"response\.json\(\)((?:\.\w+)*)$")
STATUS_CODE_RE = re.compile(r"response\.code$")
TEXT_RE = re.compile(r"response\.text\(\)$")

EXPECT_KINDS = {
    "equal": AssertionKind.EQUALITY,
    "equals": AssertionKind.EQUALITY,
    "eq": AssertionKind.EQUALITY,
    "eql": AssertionKind.EQUALITY,
    "contain": AssertionKind.MEMBERSHIP,
    "contains": AssertionKind.MEMBERSHIP,
    "include": AssertionKind.MEMBERSHIP,
    "includes": AssertionKind.MEMBERSHIP,
}

GROUP_KEY = "GroupName"


def extract_assertions(test_script: list[str] | None) -> list[Assertion]:
    """Extract assertions from the lines of a test script, in family order."""
    if not test_script:
        return []
    script = "\n".join(test_script)
    aliases = ALIAS_RE.findall(script)

    assertions: list[Assertion] = []
    for matcher in MATCHERS:
        assertions.extend(matcher(script, aliases))
    return assertions


def match_status(script: str, aliases: list[str]) -> list[Assertion]:
    return [
        Assertion(key="status", value=m.group(1), kind=AssertionKind.EQUALITY)
        for m in STATUS_RE.finditer(script)
    ]


def match_one_of(script: str, aliases: list[str]) -> list[Assertion]:
    found = []
    for m in ONE_OF_RE.finditer(script):
        key = resolve_key(m.group(1), aliases)
        if key is None:
            logger.debug("Dropping oneOf check on %r", m.group(1))
            continue
        options = [strip_quotes(v) for v in m.group(2).split(",")]
        found.append(Assertion(key=key, value=",".join(o for o in options if o), kind=AssertionKind.MEMBERSHIP))
    return found


def match_expect(script: str, aliases: list[str]) -> list[Assertion]:
    found = []
    for m in EXPECT_RE.finditer(script):
        kind = EXPECT_KINDS.get(m.group(2))
        key = resolve_key(m.group(1), aliases, text_key="text")
        if kind is None or key is None:
            logger.debug("Dropping expectation %r", m.group(0))
            continue
        found.append(Assertion(key=key, value=strip_quotes(m.group(3)), kind=kind))
    return found


def match_group(script: str, aliases: list[str]) -> list[Assertion]:
    found = []
    for m in GROUP_RE.finditer(script):
        for element in m.group(2).split(","):
            value = strip_quotes(element)
            if value:
                found.append(Assertion(key=GROUP_KEY, value=value, kind=AssertionKind.EXISTENCE))
    return found


MATCHERS: list[Callable[[str, list[str]], list[Assertion]]] = [
    match_status,
    match_one_of,
    match_expect,
    match_group,
]


def resolve_key(expr: str, aliases: list[str], text_key: str | None = None) -> str | None:
    """Map the expression under test to an assertion key.

    Returns a body dot path, ``"status"``, ``text_key`` for ``response.text()``,
    or ``"body"`` for expressions that do not read the response at all.
    Returns None when the expression reads the response in a way that has no
    key (indexing, method calls), so the caller can drop it.
    """
    expr = expr.strip()
    if "response.json()" in expr:
        m = BODY_PATH_RE.search(expr)
        return _dot_path(m.group(1)) if m else None
    for alias in aliases:
        m = re.fullmatch(rf"{re.escape(alias)}((?:\.\w+)*)", expr)
        if m:
            return _dot_path(m.group(1))
        if re.match(rf"{re.escape(alias)}\b", expr):
            return None
    if "response.code" in expr:
        return "status" if STATUS_CODE_RE.search(expr) else None
    if text_key and TEXT_RE.search(expr):
        return text_key
    return "body"


def _dot_path(suffix: str) -> str:
    return suffix.lstrip(".") or "body"
