"""Auto-detect the kind of Postman document a file holds."""

import json
from pathlib import Path

import yaml

COLLECTION = "collection"
ENVIRONMENT = "environment"
UNKNOWN = "unknown"


def _load(text: str):
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError:
        pass

    # Try JSON specifically (tab-indented exports are not valid YAML)
    try:
        return json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return None


def detect_document(file_path: Path) -> str:
    """Detect whether a file is a Postman collection or environment.

    Returns: 'collection', 'environment', or 'unknown'.
    """
    data = _load(file_path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        return UNKNOWN

    info = data.get("info")
    if isinstance(info, dict) and ("_postman_id" in info or "schema" in info):
        return COLLECTION
    if isinstance(data.get("item"), list):
        return COLLECTION
    if data.get("_postman_variable_scope") == "environment" or isinstance(data.get("values"), list):
        return ENVIRONMENT
    return UNKNOWN
