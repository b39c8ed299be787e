"""Postman environment loading and bearer auth resolution.

A Postman environment document is flattened into a key/value store (a JSON
file, ``cypress.env.json`` by default) that both the converter and the
generated step definitions read.
"""

import json
from pathlib import Path

from postman_cucumber.errors import AuthResolutionError, InvalidEnvironmentError
from postman_cucumber.normalize import strip_placeholder

from .base import ResolvedAuth


def load_postman_environment(file_path: Path) -> dict:
    """Read a Postman environment file into a flat mapping of enabled values."""
    data = _read_object(file_path)
    return {
        v["key"]: v.get("value")
        for v in data.get("values", [])
        if "key" in v and v.get("enabled") is not False
    }


def write_env_store(file_path: Path, values: dict) -> None:
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_text(json.dumps(values, indent=2), encoding="utf-8")


def read_env_store(file_path: Path) -> dict | None:
    """Return the store contents, or None when it has not been materialized."""
    if not file_path.exists():
        return None
    return _read_object(file_path)


def _read_object(file_path: Path) -> dict:
    try:
        data = json.loads(file_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise InvalidEnvironmentError(f"{file_path} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise InvalidEnvironmentError(f"{file_path} does not hold a JSON object")
    return data


def resolve_auth(token: str, store: dict | None) -> ResolvedAuth:
    """Resolve a bearer placeholder such as ``{{alice}}`` to its credential.

    Raises AuthResolutionError when the store is missing or has no entry for
    the identity; a scenario cannot reference a credential that does not exist.
    """
    identity = strip_placeholder(token)
    if store is None:
        raise AuthResolutionError(
            f"Cannot resolve bearer token '{token}': environment store has not been loaded"
        )
    if identity not in store:
        raise AuthResolutionError(f"Cannot resolve bearer token '{token}': '{identity}' is not in the environment store")
    return ResolvedAuth(identity=identity, credential=store[identity])
