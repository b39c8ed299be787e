"""CLI entry point for postman-cucumber."""

import logging
from pathlib import Path

import click
import yaml

from postman_cucumber.config import (
    DEFAULT_ENV_STORE,
    DEFAULT_OUTPUT_DIR,
    ENV_PREFIX,
    TARGET_CYPRESS_SPEC,
    ConverterConfig,
)
from postman_cucumber.errors import ConversionError, InvalidCollectionError
from postman_cucumber.generator.converter import collect_scenarios, convert
from postman_cucumber.generator.specs import write_cypress_specs
from postman_cucumber.parser.detect import COLLECTION, ENVIRONMENT, detect_document
from postman_cucumber.parser.environment import read_env_store
from postman_cucumber.parser.postman import load_collection

MODES = click.Choice(["full", "path-only"])
TARGETS = click.Choice(["cypress", "pytest-bdd", "cypress-spec"])


def _check_kind(file_path: Path, expected: str) -> None:
    kind = detect_document(file_path)
    if kind != expected:
        raise InvalidCollectionError(f"{file_path} does not look like a Postman {expected} (detected: {kind})")


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log debug details (skipped duplicates, dropped checks).")
def main(verbose: bool):
    """Postman to Cucumber: turn Postman collections into Gherkin features and step definitions."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@main.command("convert")
@click.argument("collection_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("environment_path", required=False, type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-o", "--output", type=click.Path(file_okay=False, path_type=Path), default=DEFAULT_OUTPUT_DIR,
              envvar=f"{ENV_PREFIX}_OUTPUT", show_default=True, help="Directory for the .feature (or .cy.js) files.")
@click.option("--steps-file", type=click.Path(dir_okay=False, path_type=Path), default=None,
              envvar=f"{ENV_PREFIX}_STEPS_FILE", help="Step definition file to write (default depends on --target).")
@click.option("--env-store", type=click.Path(dir_okay=False, path_type=Path), default=DEFAULT_ENV_STORE,
              envvar=f"{ENV_PREFIX}_ENV_STORE", show_default=True, help="Flat JSON store of environment values.")
@click.option("--mode", type=MODES, default="full", envvar=f"{ENV_PREFIX}_MODE", show_default=True,
              help="'path-only' keeps just method, path and assertions.")
@click.option("--target", type=TARGETS, default="cypress", envvar=f"{ENV_PREFIX}_TARGET", show_default=True,
              help="Test runner to generate step definitions for, or plain Cypress specs.")
def convert_cmd(collection_path: Path, environment_path: Path | None, output: Path, steps_file: Path | None,
                env_store: Path, mode: str, target: str):
    """Convert a Postman collection (and optional environment) into features."""
    config = ConverterConfig(output_dir=output, steps_file=steps_file, env_store=env_store, mode=mode, target=target)
    try:
        _check_kind(collection_path, COLLECTION)
        if environment_path is not None:
            _check_kind(environment_path, ENVIRONMENT)
        click.echo(f"Converting {collection_path} (mode: {mode}, target: {target})...")
        if target == TARGET_CYPRESS_SPEC:
            specs = write_cypress_specs(collection_path, config, environment_path)
        else:
            result = convert(collection_path, config, environment_path)
    except ConversionError as e:
        raise click.ClickException(str(e)) from e

    if environment_path is not None:
        click.echo(f"Environment variables written to {config.env_store}")
    if target == TARGET_CYPRESS_SPEC:
        click.echo(f"Generated {len(specs.spec_files)} spec files for {specs.requests} requests.")
        for spec in specs.spec_files:
            click.echo(f"  {spec}")
        return
    click.echo(f"Added {result.scenarios_added} scenarios, skipped {result.duplicates_skipped} duplicates.")
    for feature in result.feature_files:
        click.echo(f"  {feature}")
    click.echo(f"Step definitions written to {result.steps_file}")
    click.echo(f"Features written to {config.output_dir}")


@main.command()
@click.argument("collection_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--env-store", type=click.Path(dir_okay=False, path_type=Path), default=DEFAULT_ENV_STORE,
              envvar=f"{ENV_PREFIX}_ENV_STORE", show_default=True, help="Flat JSON store of environment values.")
@click.option("--mode", type=MODES, default="full", envvar=f"{ENV_PREFIX}_MODE", show_default=True)
def extract(collection_path: Path, env_store: Path, mode: str):
    """Print the scenarios of a collection as YAML without writing features."""
    try:
        _check_kind(collection_path, COLLECTION)
        pairs = collect_scenarios(load_collection(collection_path), read_env_store(env_store), mode)
    except ConversionError as e:
        raise click.ClickException(str(e)) from e

    documents = [
        {
            "folder": folder,
            "name": scenario.display_name,
            "method": scenario.method,
            "path": scenario.path,
            "user": scenario.auth.identity if scenario.auth else None,
            "assertions": [
                {"key": a.key, "value": a.value, "kind": a.kind.value} for a in scenario.assertions
            ],
        }
        for folder, scenario in pairs
    ]
    click.echo(yaml.safe_dump(documents, sort_keys=False, allow_unicode=True), nl=False)
