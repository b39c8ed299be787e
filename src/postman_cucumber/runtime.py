"""Runtime support for the generated pytest-bdd step definitions.

The generated step module stays small: it parses step text and delegates to
these helpers to build and send the request and to check the response.
"""

import json
from pathlib import Path

import requests

from postman_cucumber.normalize import coerce_number, substitute_placeholders

HEADER_PREFIX = "header:"
BODY_PREFIX = "body:"
DEFAULT_TIMEOUT = 30


class _Undefined:
    def __repr__(self):
        return "undefined"


UNDEFINED = _Undefined()


class RuntimeEnvironment:
    """Key/value store the scenarios resolve ``{{placeholders}}`` against."""

    def __init__(self, values: dict | None = None):
        self.values = values or {}

    @classmethod
    def from_file(cls, file_path: Path) -> "RuntimeEnvironment":
        path = Path(file_path)
        if not path.exists():
            return cls()
        return cls(json.loads(path.read_text(encoding="utf-8")))

    @property
    def base_url(self) -> str:
        return str(self.values.get("baseUrl", ""))

    def resolve(self, text: str) -> str:
        return substitute_placeholders(text, self.values)

    def credential(self, user: str):
        return self.values.get(user)


def split_rows(rows: list[list[str]], env: RuntimeEnvironment | None = None) -> tuple[dict, dict]:
    """Split ``header:``/``body:`` table rows into request headers and JSON body.

    Each body value is JSON-decoded on its own; values that are not JSON are
    sent as strings.
    """
    env = env or RuntimeEnvironment()
    headers: dict = {}
    body: dict = {}
    for key, value in rows:
        value = env.resolve(value)
        lowered = key.lower()
        if lowered.startswith(HEADER_PREFIX):
            headers[key[len(HEADER_PREFIX):]] = value
        elif lowered.startswith(BODY_PREFIX):
            try:
                body[key[len(BODY_PREFIX):]] = json.loads(value)
            except json.JSONDecodeError:
                body[key[len(BODY_PREFIX):]] = value
    return headers, body


def join_url(base_url: str, path: str) -> str:
    if base_url and path and not base_url.endswith("/") and not path.startswith("/"):
        return f"{base_url}/{path}"
    return f"{base_url}{path}"


def send_request(
    env: RuntimeEnvironment,
    method: str,
    endpoint: str,
    rows: list[list[str]] | None = None,
    user: str | None = None,
    session: requests.Session | None = None,
) -> requests.Response:
    """Send one scenario request and return the response."""
    headers, body = split_rows(rows or [], env)
    if user:
        headers["Authorization"] = f"Bearer {env.credential(user)}"
    client = session or requests
    return client.request(
        method,
        join_url(env.base_url, env.resolve(endpoint)),
        headers=headers,
        json=body or None,
        timeout=DEFAULT_TIMEOUT,
    )


def lookup_path(body, path: str):
    """Follow a dot path through dicts and lists, UNDEFINED if any step is missing."""
    current = body
    for part in path.split("."):
        if isinstance(current, dict) and part in current:
            current = current[part]
        elif isinstance(current, list) and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
        else:
            return UNDEFINED
    return current


def response_body(response: requests.Response):
    try:
        return response.json()
    except ValueError:
        return response.text


def _same_value(actual, wanted) -> bool:
    # true is not 1 in JavaScript; 1 and 1.0 are the same number there
    if isinstance(actual, bool) != isinstance(wanted, bool):
        return False
    return actual == wanted


def match_response(response: requests.Response, rows: list[list[str]]) -> None:
    """Check every ``| key | expected |`` row against the response.

    ``status`` rows list acceptable codes separated by commas; other rows are
    body dot paths compared after numeric coercion of the expected value.
    """
    body = None
    for key, expected in rows:
        if key.lower() == "status":
            allowed = [coerce_number(code) for code in expected.split(",")]
            assert response.status_code in allowed, (
                f"Expected status in {allowed}, got {response.status_code}"
            )
            continue
        if body is None:
            body = response_body(response)
        actual = lookup_path(body, key)
        wanted = coerce_number(expected)
        assert _same_value(actual, wanted), f"Expected {key} to equal {wanted!r}, got {actual!r}"
