"""Request normalizer: RequestNode -> NormalizedRequest."""

import json
import logging
import re

from .base import BodySpec, NormalizedRequest, RequestNode
from .environment import resolve_auth

logger = logging.getLogger(__name__)

MODE_FULL = "full"
MODE_PATH_ONLY = "path-only"

BASE_URL_RE = re.compile(r"^(https?://[^/]+|{{[^}]+}})", re.IGNORECASE)
FILE_PLACEHOLDER = "<file upload>"


def normalize_request(node: RequestNode, env_store: dict | None = None, mode: str = MODE_FULL) -> NormalizedRequest:
    """Build the canonical method/path/headers/body/auth of a request.

    In ``path-only`` mode only the method and the path (taken from the raw URL
    with its host stripped) are kept.
    """
    if mode == MODE_PATH_ONLY:
        return NormalizedRequest(method=node.method, path=extract_path_only(node.raw_url))

    auth = resolve_auth(node.auth_token, env_store) if node.auth_token else None
    return NormalizedRequest(
        method=node.method,
        path="/".join(node.url_segments),
        headers=[h for h in node.headers if not h.disabled],
        body=normalize_body(node.body),
        auth=auth,
    )


def extract_path_only(raw_url: str) -> str:
    """Strip a leading ``scheme://host`` or ``{{host}}`` from a raw URL."""
    if not raw_url:
        return ""
    return BASE_URL_RE.sub("", raw_url, count=1)


def normalize_body(body: BodySpec) -> dict:
    if body.mode in ("urlencoded", "formdata"):
        return {p.key: p.value for p in body.pairs if not p.disabled}
    if body.mode == "graphql":
        return {
            "query": body.graphql_query,
            "variables": _graphql_variables(body.graphql_variables),
        }
    if body.mode == "file":
        return {"file": body.file_src or FILE_PLACEHOLDER}
    if body.mode == "raw":
        return _parse_raw(body.raw)
    return {}


def _graphql_variables(variables) -> str:
    # Postman usually stores variables as JSON text; compact it when it parses.
    if isinstance(variables, str):
        if not variables.strip():
            return "{}"
        try:
            variables = json.loads(variables)
        except json.JSONDecodeError:
            return variables
    return json.dumps(variables or {}, separators=(",", ":"))


def _parse_raw(raw: str) -> dict:
    if not raw.strip():
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        logger.debug("Raw body is not JSON, keeping it as text")
        return {"raw": raw}
    if not isinstance(parsed, dict):
        return {"raw": raw}
    return parsed
