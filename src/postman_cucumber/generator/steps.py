"""Step definition synthesizer.

Emits one request handler per observed method and bearer identity, plus a
single response-matching handler, for either Cypress (cucumber-preprocessor)
or pytest-bdd. The handlers match the step text written by the feature
assembler, with and without a data table.
"""

import json
import os
import re
from pathlib import Path

from postman_cucumber.config import TARGET_PYTEST_BDD, ConverterConfig


def handler_actors(registry) -> list[str | None]:
    """Identities that need handlers; None stands for requests without auth."""
    actors: list[str | None] = [None] if registry.anonymous else []
    actors.extend(registry.identities)
    return actors


def render_steps(registry, config: ConverterConfig) -> str:
    if config.target == TARGET_PYTEST_BDD:
        return render_pytest_bdd_steps(registry, config)
    return render_cypress_steps(registry)


# -- Cypress -------------------------------------------------------------------

def _cucumber_literal(text: str) -> str:
    # (, ), {, } and / are special in Cucumber expressions
    return re.sub(r"([(){}/\\])", r"\\\1", text)


def _cucumber_actor(identity: str | None) -> str:
    return "I" if identity is None else f'User "{_cucumber_literal(identity)}"'


def render_cypress_steps(registry) -> str:
    parts = [_CYPRESS_PRELUDE]
    for identity in handler_actors(registry):
        user = "null" if identity is None else json.dumps(identity)
        for method in registry.methods:
            expression = f"{_cucumber_actor(identity)} send a {method} request to {{string}}"
            parts.append(
                f"When({json.dumps(expression)}, (endpoint) =>\n"
                f"  sendRequest('{method}', {user}, endpoint));\n"
                f"When({json.dumps(expression + ' with')}, (endpoint, dataTable) =>\n"
                f"  sendRequest('{method}', {user}, endpoint, dataTable));\n"
            )
    parts.append(_CYPRESS_MATCH)
    return "\n".join(parts)


_CYPRESS_PRELUDE = '''import { When, Then } from '@badeball/cypress-cucumber-preprocessor';

const resolvePlaceholders = (text) =>
  String(text).replace(/{{\\s*([^{}]+?)\\s*}}/g, (match, name) => {
    const value = Cypress.env(name);
    return value === undefined ? match : value;
  });

const joinUrl = (base, path) =>
  base && path && !base.endsWith('/') && !path.startsWith('/') ? `${base}/${path}` : `${base || ''}${path}`;

function sendRequest(method, user, endpoint, dataTable) {
  const headers = {};
  const body = {};
  if (dataTable) {
    dataTable.raw().forEach(([key, value]) => {
      const resolved = resolvePlaceholders(value);
      if (key.toLowerCase().startsWith('header:')) {
        headers[key.slice('header:'.length)] = resolved;
      } else if (key.toLowerCase().startsWith('body:')) {
        const field = key.slice('body:'.length);
        try {
          body[field] = JSON.parse(resolved);
        } catch {
          body[field] = resolved;
        }
      }
    });
  }
  const options = {
    method,
    url: joinUrl(Cypress.env('baseUrl'), resolvePlaceholders(endpoint)),
    headers,
    body: Object.keys(body).length ? body : undefined,
  };
  if (user) {
    options.auth = { bearer: Cypress.env(user) };
  }
  return cy.request(options).then((response) => {
    Cypress.env('lastResponse', response);
  });
}
'''

_CYPRESS_MATCH = '''Then('the response should match', (dataTable) => {
  const response = Cypress.env('lastResponse');
  dataTable.raw().forEach(([key, expected]) => {
    if (key.toLowerCase() === 'status') {
      expect(response.status).to.be.oneOf(expected.split(',').map(Number));
    } else {
      const val = key.split('.').reduce((o, k) => (o === undefined || o === null ? undefined : o[k]), response.body);
      const parsedExpected = expected.trim() !== '' && !isNaN(expected) ? Number(expected) : expected;
      expect(val).to.eql(parsedExpected);
    }
  });
});
'''


# -- pytest-bdd ----------------------------------------------------------------

def _parse_literal(text: str) -> str:
    # Braces are field delimiters for the parse library
    return text.replace("{", "{{").replace("}", "}}")


def _relative_to(target: Path, start: Path) -> str:
    return Path(os.path.relpath(target, start)).as_posix()


def render_pytest_bdd_steps(registry, config: ConverterConfig) -> str:
    steps_dir = config.resolved_steps_file().parent
    parts = [
        _PYTEST_BDD_PRELUDE.format(
            features=_relative_to(config.output_dir, steps_dir),
            env_store=_relative_to(config.env_store, steps_dir),
        )
    ]
    for identity in handler_actors(registry):
        actor = "I" if identity is None else f'User "{_parse_literal(identity)}"'
        user = "" if identity is None else f", user={identity!r}"
        for method in registry.methods:
            pattern = f'{actor} send a {method} request to "{{endpoint}}"'
            parts.append(
                f"@when(parsers.parse({pattern!r}))\n"
                f"def _(endpoint, runtime_env, context):\n"
                f'    context["response"] = send_request(runtime_env, {method!r}, endpoint{user})\n'
                f"\n\n"
                f"@when(parsers.parse({pattern + ' with'!r}))\n"
                f"def _(endpoint, datatable, runtime_env, context):\n"
                f'    context["response"] = send_request(runtime_env, {method!r}, endpoint, datatable{user})\n'
            )
    parts.append(_PYTEST_BDD_MATCH)
    return "\n\n".join(parts)


_PYTEST_BDD_PRELUDE = '''"""Step definitions for scenarios converted from a Postman collection."""

from pathlib import Path

import pytest
from pytest_bdd import parsers, scenarios, then, when

from postman_cucumber.runtime import RuntimeEnvironment, match_response, send_request

HERE = Path(__file__).parent

scenarios("{features}")


@pytest.fixture
def runtime_env():
    return RuntimeEnvironment.from_file(HERE / "{env_store}")


@pytest.fixture
def context():
    return {{}}
'''

_PYTEST_BDD_MATCH = '''@then("the response should match")
def _(datatable, context):
    match_response(context["response"], datatable)
'''
