"""Feature assembler: renders scenarios into per-folder Gherkin documents.

Each folder of the collection gets one ``.feature`` file. Scenarios are
appended in traversal order and never rewritten. A scenario whose key
(method, path and table rows, ignoring its name and auth) is already in the
document is skipped, including scenarios written by an earlier run: existing
files are parsed when first opened so re-running a conversion is idempotent.
"""

import json
import logging
import re
from pathlib import Path, PurePosixPath

from postman_cucumber.parser.base import Scenario

logger = logging.getLogger(__name__)

ROOT_FOLDER = "root"
MATCH_STEP = "Then the response should match"

WHEN_RE = re.compile(r'^When (?:User "(?:[^"]*)" |I )send a (\S+) request to "(.*)"(?: with)?$')

Row = tuple[str, str]


# -- rows and keys -------------------------------------------------------------

def request_rows(scenario: Scenario) -> list[Row]:
    """The ``header:`` and ``body:`` rows of the When step, in order."""
    rows = [(f"header:{h.key}", _cell_text(h.value)) for h in scenario.headers]
    rows.extend((f"body:{k}", _cell_text(v)) for k, v in scenario.body.items())
    return rows


def assertion_rows(scenario: Scenario) -> list[Row]:
    return [(a.key, a.value) for a in scenario.assertions]


def scenario_key(method: str, path: str, rows: list[Row], assertions: list[Row]) -> str:
    """Order-sensitive structural identity of a rendered scenario."""
    return json.dumps(
        {
            "method": method,
            "path": path,
            "rows": [list(r) for r in rows],
            "assertions": [list(a) for a in assertions],
        },
        ensure_ascii=False,
    )


def key_for(scenario: Scenario) -> str:
    return scenario_key(scenario.method, scenario.path, request_rows(scenario), assertion_rows(scenario))


def _cell_text(value) -> str:
    if isinstance(value, str):
        return value
    # Same text JSON.stringify gives for objects, arrays and literals
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


# -- rendering -----------------------------------------------------------------

def escape_cell(text: str) -> str:
    return text.replace("\\", "\\\\").replace("|", "\\|").replace("\n", "\\n")


def unescape_cell(text: str) -> str:
    return re.sub(r"\\(.)", lambda m: "\n" if m.group(1) == "n" else m.group(1), text)


def when_step(scenario: Scenario, with_table: bool) -> str:
    actor = f'User "{scenario.auth.identity}"' if scenario.auth else "I"
    suffix = " with" if with_table else ""
    return f'When {actor} send a {scenario.method} request to "{scenario.path}"{suffix}'


def render_scenario(scenario: Scenario) -> str:
    rows = request_rows(scenario)
    name = " ".join(scenario.display_name.split())
    lines = [f"  Scenario: {name}", f"    {when_step(scenario, bool(rows))}"]
    lines.extend(_table_row(r) for r in rows)
    checks = assertion_rows(scenario)
    if checks:
        lines.append(f"    {MATCH_STEP}")
        lines.extend(_table_row(r) for r in checks)
    return "\n".join(lines) + "\n\n"


def _table_row(row: Row) -> str:
    return f"      | {escape_cell(row[0])} | {escape_cell(row[1])} |"


def feature_header(folder_path: str) -> str:
    return f"Feature: {PurePosixPath(folder_path).name}\n\n"


# -- parsing existing documents ------------------------------------------------

def parse_scenario_keys(text: str) -> set[str]:
    """Recover the keys of the scenarios already written to a document."""
    keys: set[str] = set()
    current = None

    def _flush():
        if current and current["method"] is not None:
            keys.add(scenario_key(current["method"], current["path"], current["rows"], current["assertions"]))

    # Only "\n" ends a line; a "\r" inside a cell value is kept as written
    for raw_line in text.split("\n"):
        line = raw_line.strip()
        if line.startswith("Scenario:"):
            _flush()
            current = {"method": None, "path": "", "rows": [], "assertions": [], "table": None}
        elif current is None:
            continue
        elif WHEN_RE.match(line):
            m = WHEN_RE.match(line)
            current["method"], current["path"] = m.group(1), m.group(2)
            current["table"] = current["rows"]
        elif line == MATCH_STEP:
            current["table"] = current["assertions"]
        elif line.startswith("|") and current["table"] is not None:
            cells = _split_cells(line)
            if len(cells) == 2:
                current["table"].append((cells[0], cells[1]))
    _flush()
    return keys


def _split_cells(line: str) -> list[str]:
    cells, buffer, escaped = [], "", False
    for ch in line.strip()[1:]:
        if escaped:
            buffer += "\\" + ch
            escaped = False
        elif ch == "\\":
            escaped = True
        elif ch == "|":
            cells.append(unescape_cell(_trim_padding(buffer)))
            buffer = ""
        else:
            buffer += ch
    return cells


def _trim_padding(cell: str) -> str:
    # Rendered cells carry exactly one space of padding on each side
    if cell.startswith(" "):
        cell = cell[1:]
    if cell.endswith(" "):
        cell = cell[:-1]
    return cell


# -- documents -----------------------------------------------------------------

class FeatureDocument:
    """One ``.feature`` file plus the keys of the scenarios it holds."""

    def __init__(self, path: Path, folder_path: str):
        self.path = path
        self.folder_path = folder_path
        self.keys: set[str] = set()
        self._exists = path.exists()
        if self._exists:
            with path.open(encoding="utf-8", newline="") as f:
                self.keys = parse_scenario_keys(f.read())

    def __contains__(self, key: str) -> bool:
        return key in self.keys

    def append(self, scenario: Scenario, key: str) -> None:
        """Add a scenario block and persist it immediately."""
        block = render_scenario(scenario)
        if not self._exists:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            block = feature_header(self.folder_path) + block
        with self.path.open("a", encoding="utf-8", newline="") as f:
            f.write(block)
        self._exists = True
        self.keys.add(key)


class FeatureAssembler:
    """Deduplicates scenarios per folder and appends them to feature files."""

    def __init__(self, output_dir: Path):
        self.output_dir = output_dir
        self.documents: dict[str, FeatureDocument] = {}
        self.added = 0
        self.skipped = 0

    def document_for(self, folder_path: str) -> FeatureDocument:
        folder_path = folder_path or ROOT_FOLDER
        if folder_path not in self.documents:
            name = PurePosixPath(folder_path).name
            path = self.output_dir.joinpath(*PurePosixPath(folder_path).parts) / f"{name}.feature"
            self.documents[folder_path] = FeatureDocument(path, folder_path)
        return self.documents[folder_path]

    def add(self, folder_path: str, scenario: Scenario) -> bool:
        """Append the scenario unless its key is already in the folder's document.

        Returns True when a block was written.
        """
        document = self.document_for(folder_path)
        key = key_for(scenario)
        if key in document:
            logger.debug("Skipping duplicate scenario %r in %s", scenario.display_name, document.path)
            self.skipped += 1
            return False
        document.append(scenario, key)
        self.added += 1
        return True
