"""Collection walker and conversion pipeline.

Walks the collection tree depth-first, turns every request into a Scenario,
hands it to the feature assembler and records the methods and bearer
identities seen. Once traversal is done the step definitions are synthesized
from that registry.
"""

import logging
from pathlib import Path

from pydantic import BaseModel

from postman_cucumber.config import ConverterConfig
from postman_cucumber.generator.feature import ROOT_FOLDER, FeatureAssembler
from postman_cucumber.generator.steps import render_steps
from postman_cucumber.normalize import path_segment
from postman_cucumber.parser.assertions import extract_assertions
from postman_cucumber.parser.base import CollectionNode, FolderNode, RequestNode, Scenario
from postman_cucumber.parser.environment import load_postman_environment, read_env_store, write_env_store
from postman_cucumber.parser.postman import load_collection
from postman_cucumber.parser.request import MODE_FULL, normalize_request

logger = logging.getLogger(__name__)


class StepRegistry:
    """Methods and bearer identities observed during one traversal, in first-seen order."""

    def __init__(self):
        self._methods: dict[str, None] = {}
        self._identities: dict[str, None] = {}
        self.anonymous = False

    def add_method(self, method: str) -> None:
        self._methods.setdefault(method, None)

    def add_identity(self, identity: str) -> None:
        self._identities.setdefault(identity, None)

    @property
    def methods(self) -> list[str]:
        return list(self._methods)

    @property
    def identities(self) -> list[str]:
        return list(self._identities)


class ConversionResult(BaseModel):
    """Summary of one conversion run."""

    scenarios_added: int
    duplicates_skipped: int
    feature_files: list[Path]
    steps_file: Path
    methods: list[str]
    identities: list[str]


def walk(
    nodes: list[CollectionNode],
    visit,
    folder_path: str = "",
) -> None:
    """Call ``visit(folder_path, request)`` for every request, depth-first."""
    for node in nodes:
        if isinstance(node, FolderNode):
            child_path = f"{folder_path}/{path_segment(node.name)}" if folder_path else path_segment(node.name)
            walk(node.children, visit, child_path)
        else:
            visit(folder_path or ROOT_FOLDER, node)


def build_scenario(
    node: RequestNode,
    env_store: dict | None = None,
    mode: str = MODE_FULL,
    registry: StepRegistry | None = None,
) -> Scenario:
    """Normalize one request, extract its assertions and record it in the registry."""
    request = normalize_request(node, env_store, mode)
    scenario = Scenario.build(node.name, request, extract_assertions(node.test_script))
    if registry is not None:
        registry.add_method(scenario.method)
        if scenario.auth:
            registry.add_identity(scenario.auth.identity)
        else:
            registry.anonymous = True
    return scenario


def collect_scenarios(
    nodes: list[CollectionNode],
    env_store: dict | None = None,
    mode: str = MODE_FULL,
) -> list[tuple[str, Scenario]]:
    """Normalize every request of the tree into (folder_path, Scenario) pairs."""
    scenarios: list[tuple[str, Scenario]] = []
    walk(nodes, lambda folder_path, node: scenarios.append((folder_path, build_scenario(node, env_store, mode))))
    return scenarios


def convert(collection_path: Path, config: ConverterConfig, environment_path: Path | None = None) -> ConversionResult:
    """Convert a Postman collection into feature files and step definitions."""
    nodes = load_collection(collection_path)

    if environment_path is not None:
        write_env_store(config.env_store, load_postman_environment(environment_path))
        logger.info("Environment variables written to %s", config.env_store)
    env_store = read_env_store(config.env_store)

    registry = StepRegistry()
    assembler = FeatureAssembler(config.output_dir)
    def _add(folder_path, node):
        assembler.add(folder_path, build_scenario(node, env_store, config.mode, registry))

    walk(nodes, _add)

    steps_file = config.resolved_steps_file()
    steps_file.parent.mkdir(parents=True, exist_ok=True)
    steps_file.write_text(render_steps(registry, config), encoding="utf-8")

    return ConversionResult(
        scenarios_added=assembler.added,
        duplicates_skipped=assembler.skipped,
        feature_files=[d.path for d in assembler.documents.values() if d.path.exists()],
        steps_file=steps_file,
        methods=registry.methods,
        identities=registry.identities,
    )
