"""Postman Collection v2.1 reader.

Parses Postman exported JSON into a FolderNode/RequestNode tree.
"""

import json
import logging
import re
from pathlib import Path

from postman_cucumber.errors import InvalidCollectionError

from .base import BodySpec, CollectionNode, FolderNode, KeyValue, RequestNode
from .request import extract_path_only

logger = logging.getLogger(__name__)


def load_collection(file_path: Path) -> list[CollectionNode]:
    """Read a Postman collection file and return its top-level nodes."""
    text = file_path.read_text(encoding="utf-8")
    try:
        collection = json.loads(text)
    except json.JSONDecodeError as e:
        raise InvalidCollectionError(f"{file_path} is not valid JSON: {e}") from e
    return parse_collection(collection)


def parse_collection(collection: dict) -> list[CollectionNode]:
    if not isinstance(collection, dict) or not isinstance(collection.get("item"), list):
        raise InvalidCollectionError("Invalid Postman collection: no top-level 'item' list")
    return _parse_items(collection["item"])


def _parse_items(items: list[dict]) -> list[CollectionNode]:
    """Recursively parse items (supports folders)."""
    nodes: list[CollectionNode] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        if "item" in item:
            nodes.append(FolderNode(name=item.get("name", ""), children=_parse_items(item["item"] or [])))
        elif "request" in item:
            nodes.append(_parse_request(item))
        else:
            logger.debug("Skipping item without 'item' or 'request': %r", item.get("name"))
    return nodes


def _parse_request(item: dict) -> RequestNode:
    req = item["request"]
    if isinstance(req, str):
        # v2.1 allows a bare URL string as shorthand for a GET request
        req = {"method": "GET", "url": req}

    url = req.get("url") or {}
    if isinstance(url, str):
        raw_url, segments = url, _segments_from_raw(url)
    elif url.get("path"):
        raw_url, segments = url.get("raw", ""), _parse_path(url["path"])
    else:
        raw_url = url.get("raw", "")
        segments = _segments_from_raw(raw_url)

    return RequestNode(
        name=item.get("name", ""),
        method=(req.get("method") or "GET").upper(),
        url_segments=segments,
        raw_url=raw_url,
        headers=_parse_pairs(req.get("header")),
        body=_parse_body(req.get("body")),
        auth_token=_parse_bearer(req.get("auth")),
        test_script=_parse_test_script(item.get("event")),
    )


def _parse_path(path) -> list[str]:
    if isinstance(path, str):
        return [p for p in path.split("/") if p]
    segments = []
    for segment in path:
        if isinstance(segment, dict):
            segment = segment.get("value", "")
        segments.append(str(segment))
    return segments


def _segments_from_raw(raw_url: str) -> list[str]:
    """Path segments of a raw URL: host, query string and fragment removed."""
    path = re.split(r"[?#]", extract_path_only(raw_url), maxsplit=1)[0]
    return [p for p in path.split("/") if p]


def _parse_pairs(pairs) -> list[KeyValue]:
    if not isinstance(pairs, list):
        return []
    return [
        KeyValue(key=p["key"], value=p.get("value", ""), disabled=p.get("disabled") is True)
        for p in pairs
        if isinstance(p, dict) and "key" in p
    ]


def _parse_body(body: dict | None) -> BodySpec:
    if not body:
        return BodySpec()
    mode = body.get("mode", "raw")
    if mode in ("urlencoded", "formdata"):
        return BodySpec(mode=mode, pairs=_parse_pairs(body.get(mode)))
    if mode == "graphql":
        graphql = body.get("graphql") or {}
        return BodySpec(
            mode=mode,
            graphql_query=graphql.get("query", ""),
            graphql_variables=graphql.get("variables"),
        )
    if mode == "file":
        return BodySpec(mode=mode, file_src=(body.get("file") or {}).get("src"))
    return BodySpec(mode="raw", raw=body.get("raw") or "")


def _parse_bearer(auth: dict | None) -> str | None:
    """Return the bearer token reference, or None for any other auth type."""
    if not auth or auth.get("type") != "bearer":
        return None
    entries = auth.get("bearer")
    if isinstance(entries, dict):
        # v2.0 exports store bearer as a plain mapping
        return entries.get("token")
    if not entries:
        return None
    for entry in entries:
        if entry.get("key") == "token":
            return entry.get("value")
    return entries[0].get("value")


def _parse_test_script(events: list[dict] | None) -> list[str] | None:
    """Collect the lines of every ``test`` script attached to an item."""
    if not isinstance(events, list):
        return None
    lines: list[str] | None = None
    for event in events:
        if event.get("listen") != "test":
            continue
        exec_ = (event.get("script") or {}).get("exec")
        if exec_ is None:
            continue
        if isinstance(exec_, str):
            exec_ = exec_.splitlines()
        lines = (lines or []) + list(exec_)
    return lines
