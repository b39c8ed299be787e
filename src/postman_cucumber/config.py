"""Converter settings.

Built by the CLI from its options; every option can also be supplied through
a ``POSTMAN_CUCUMBER_*`` environment variable.
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel

ENV_PREFIX = "POSTMAN_CUCUMBER"

TARGET_CYPRESS = "cypress"
TARGET_PYTEST_BDD = "pytest-bdd"
TARGET_CYPRESS_SPEC = "cypress-spec"

DEFAULT_OUTPUT_DIR = Path("cypress/e2e/postman")
DEFAULT_ENV_STORE = Path("cypress.env.json")
DEFAULT_STEPS_FILES = {
    TARGET_CYPRESS: Path("cypress/e2e/commonPostmanSteps.js"),
    TARGET_PYTEST_BDD: Path("tests/test_postman_steps.py"),
}


class ConverterConfig(BaseModel):
    """Where the converter writes, and how it normalizes requests."""

    output_dir: Path = DEFAULT_OUTPUT_DIR
    steps_file: Path | None = None  # defaults per target
    env_store: Path = DEFAULT_ENV_STORE
    mode: Literal["full", "path-only"] = "full"
    target: Literal["cypress", "pytest-bdd", "cypress-spec"] = TARGET_CYPRESS

    def resolved_steps_file(self) -> Path:
        return self.steps_file or DEFAULT_STEPS_FILES[self.target]
