"""Plain Cypress spec writer.

Renders every folder of a collection as one ``<folder>.cy.js`` file holding a
``describe`` block with one ``it`` per request, without any Gherkin layer.
``{{name}}`` placeholders become ``Cypress.env('name')`` lookups, so specs are
written without an environment store and read it when Cypress runs.
Requests outside any folder go to ``root_requests.cy.js``.
"""

import json
import logging
import re
from pathlib import Path

from pydantic import BaseModel

from postman_cucumber.config import ConverterConfig
from postman_cucumber.normalize import PLACEHOLDER_RE
from postman_cucumber.parser.assertions import extract_assertions
from postman_cucumber.parser.base import CollectionNode, FolderNode, RequestNode
from postman_cucumber.parser.environment import load_postman_environment, write_env_store
from postman_cucumber.parser.postman import load_collection
from postman_cucumber.parser.request import MODE_PATH_ONLY, extract_path_only, normalize_body

logger = logging.getLogger(__name__)

ROOT_SPEC_FILE = "root_requests.cy.js"
ROOT_TITLE = "Root Requests"
DEFAULT_STATUS = 200


class SpecResult(BaseModel):
    """Summary of one spec generation run."""

    spec_files: list[Path]
    requests: int


def safe_name(name: str) -> str:
    return re.sub(r"[^a-z0-9]", "_", name, flags=re.IGNORECASE).lower()


# -- JS literals ---------------------------------------------------------------

def _escape_template(text: str) -> str:
    return text.replace("\\", "\\\\").replace("`", "\\`").replace("${", "\\${")


def js_template(text: str) -> str:
    """A JS template literal with every ``{{name}}`` read from ``Cypress.env``."""
    parts, last = [], 0
    for m in PLACEHOLDER_RE.finditer(text):
        parts.append(_escape_template(text[last:m.start()]))
        parts.append(f"${{Cypress.env({json.dumps(m.group(1))})}}")
        last = m.end()
    parts.append(_escape_template(text[last:]))
    return "`" + "".join(parts) + "`"


def js_value(value, indent: int = 0) -> str:
    """Render a JSON value as a JS expression.

    Strings holding placeholders become template literals; everything else is
    written as JSON, which is valid JS.
    """
    pad = " " * (indent + 2)
    if isinstance(value, dict):
        if not value:
            return "{}"
        items = [f"{pad}{json.dumps(k, ensure_ascii=False)}: {js_value(v, indent + 2)}" for k, v in value.items()]
        return "{\n" + ",\n".join(items) + "\n" + " " * indent + "}"
    if isinstance(value, list):
        if not value:
            return "[]"
        items = [f"{pad}{js_value(v, indent + 2)}" for v in value]
        return "[\n" + ",\n".join(items) + "\n" + " " * indent + "]"
    if isinstance(value, str) and PLACEHOLDER_RE.search(value):
        return js_template(value)
    return json.dumps(value, ensure_ascii=False)


# -- rendering -----------------------------------------------------------------

def expected_statuses(node: RequestNode) -> list[int]:
    """Status codes the request's test script accepts, in first-seen order."""
    codes: list[int] = []
    for assertion in extract_assertions(node.test_script):
        if assertion.key != "status":
            continue
        for code in assertion.value.split(","):
            code = code.strip()
            if code.isdigit() and int(code) not in codes:
                codes.append(int(code))
    return codes


def _headers(node: RequestNode) -> dict:
    headers = {h.key: h.value for h in node.headers if not h.disabled}
    if node.auth_token:
        headers["Authorization"] = f"Bearer {node.auth_token}"
    return headers


def _body(node: RequestNode, indent: int) -> str | None:
    if node.body.mode == "raw":
        if not node.body.raw.strip():
            return None
        try:
            return js_value(json.loads(node.body.raw), indent)
        except json.JSONDecodeError:
            return js_template(node.body.raw)
    body = normalize_body(node.body)
    return js_value(body, indent) if body else None


def render_it_block(node: RequestNode, mode: str) -> str:
    url = node.raw_url or "/".join(node.url_segments)
    lines = [
        f"  it({json.dumps(node.name, ensure_ascii=False)}, () => {{",
        "    cy.request({",
        f"      method: '{node.method}',",
    ]
    if mode == MODE_PATH_ONLY:
        lines.append(f"      url: {js_template(extract_path_only(url))},")
    else:
        lines.append(f"      url: {js_template(url)},")
        headers = _headers(node)
        if headers:
            lines.append(f"      headers: {js_value(headers, 6)},")
        body = _body(node, 6)
        if body is not None:
            lines.append(f"      body: {body},")
            if node.body.mode == "urlencoded":
                lines.append("      form: true,")
    lines.append("      failOnStatusCode: false,")
    lines.append("    }).then((response) => {")

    statuses = expected_statuses(node)
    if len(statuses) > 1:
        lines.append(f"      expect(response.status).to.be.oneOf({json.dumps(statuses)});")
    else:
        lines.append(f"      expect(response.status).to.eq({statuses[0] if statuses else DEFAULT_STATUS});")
    lines.extend(["    });", "  });"])
    return "\n".join(lines) + "\n"


def render_spec_file(title: str, requests: list[RequestNode], mode: str) -> str:
    blocks = [render_it_block(node, mode) for node in requests]
    return (
        '/// <reference types="cypress" />\n\n'
        f"describe({json.dumps(title, ensure_ascii=False)}, () => {{\n"
        + "\n".join(blocks)
        + "});\n"
    )


# -- files ---------------------------------------------------------------------

def group_by_spec_file(
    nodes: list[CollectionNode],
    output_dir: Path,
    folders: tuple[str, ...] = (),
    groups: dict[Path, tuple[str, list[RequestNode]]] | None = None,
) -> dict[Path, tuple[str, list[RequestNode]]]:
    """Map each spec file path to its ``describe`` title and requests, depth-first."""
    if groups is None:
        groups = {}
    for node in nodes:
        if isinstance(node, FolderNode):
            group_by_spec_file(node.children, output_dir, folders + (node.name,), groups)
            continue
        if folders:
            parts = [safe_name(f) for f in folders]
            path = output_dir.joinpath(*parts) / f"{parts[-1]}.cy.js"
            title = folders[-1]
        else:
            path, title = output_dir / ROOT_SPEC_FILE, ROOT_TITLE
        groups.setdefault(path, (title, []))[1].append(node)
    return groups


def write_cypress_specs(
    collection_path: Path,
    config: ConverterConfig,
    environment_path: Path | None = None,
) -> SpecResult:
    """Write one Cypress spec file per folder of the collection.

    Spec files are regenerated on every run.
    """
    nodes = load_collection(collection_path)
    if environment_path is not None:
        write_env_store(config.env_store, load_postman_environment(environment_path))
        logger.info("Environment variables written to %s", config.env_store)

    spec_files, count = [], 0
    for path, (title, requests) in group_by_spec_file(nodes, config.output_dir).items():
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(render_spec_file(title, requests, config.mode), encoding="utf-8")
        logger.info("Generated %s", path)
        spec_files.append(path)
        count += len(requests)
    return SpecResult(spec_files=spec_files, requests=count)
