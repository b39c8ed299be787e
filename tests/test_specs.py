from pathlib import Path

from postman_cucumber.config import ConverterConfig
from postman_cucumber.generator.specs import (
    expected_statuses,
    js_template,
    js_value,
    render_it_block,
    safe_name,
    write_cypress_specs,
)
from postman_cucumber.parser.base import BodySpec, KeyValue, RequestNode

FIXTURES = Path(__file__).parent / "fixtures"
COLLECTION = FIXTURES / "sample.postman_collection.json"
ENVIRONMENT = FIXTURES / "sample.postman_environment.json"

EXPECTED_CREATE_USER = """  it("Create user", () => {
    cy.request({
      method: 'POST',
      url: `https://api.example.com/users`,
      headers: {
        "Content-Type": "application/json",
        "Authorization": `Bearer ${Cypress.env("alice")}`
      },
      body: {
        "name": "Alice",
        "role": {
          "id": 7
        }
      },
      failOnStatusCode: false,
    }).then((response) => {
      expect(response.status).to.be.oneOf([200, 201]);
    });
  });
"""


def _config(tmp_path: Path, **kwargs) -> ConverterConfig:
    return ConverterConfig(
        output_dir=tmp_path / "specs",
        env_store=tmp_path / "cypress.env.json",
        target="cypress-spec",
        **kwargs,
    )


class TestJsLiterals:
    def test_safe_name(self):
        assert safe_name("User Management (v2)") == "user_management__v2_"

    def test_placeholders_read_cypress_env(self):
        assert js_template("{{baseUrl}}/users/{{ id }}") == '`${Cypress.env("baseUrl")}/users/${Cypress.env("id")}`'

    def test_template_special_characters_are_escaped(self):
        assert js_template("a`b${c}\\") == "`a\\`b\\${c}\\\\`"

    def test_value_without_placeholders_is_json(self):
        assert js_value({"a": [1, "x"]}) == '{\n  "a": [\n    1,\n    "x"\n  ]\n}'

    def test_nested_placeholder_becomes_template(self):
        assert js_value({"token": "{{alice}}"}) == '{\n  "token": `${Cypress.env("alice")}`\n}'


class TestRenderItBlock:
    def test_defaults_to_200(self):
        block = render_it_block(RequestNode(name="Ping", method="GET", raw_url="{{baseUrl}}/ping"), "full")
        assert "      url: `${Cypress.env(\"baseUrl\")}/ping`,\n" in block
        assert "expect(response.status).to.eq(200);" in block
        assert "headers:" not in block
        assert "body:" not in block

    def test_status_from_test_script(self):
        node = RequestNode(name="Del", method="DELETE", test_script=["pm.response.to.have.status(204);"])
        assert expected_statuses(node) == [204]
        assert "expect(response.status).to.eq(204);" in render_it_block(node, "full")

    def test_non_json_raw_body_is_template(self):
        node = RequestNode(name="Raw", method="POST", body=BodySpec(mode="raw", raw="id={{id}}"))
        assert '      body: `id=${Cypress.env("id")}`,\n' in render_it_block(node, "full")

    def test_urlencoded_body_is_sent_as_form(self):
        node = RequestNode(
            name="Login",
            method="POST",
            body=BodySpec(mode="urlencoded", pairs=[KeyValue(key="user", value="{{login}}")]),
        )
        block = render_it_block(node, "full")
        assert '        "user": `${Cypress.env("login")}`\n' in block
        assert "      form: true,\n" in block

    def test_path_only_drops_host_headers_and_body(self):
        node = RequestNode(
            name="Create",
            method="POST",
            raw_url="https://api.example.com/users",
            headers=[KeyValue(key="X-A", value="1")],
            body=BodySpec(mode="raw", raw='{"a": 1}'),
            auth_token="{{alice}}",
        )
        block = render_it_block(node, "path-only")
        assert "      url: `/users`,\n" in block
        assert "headers:" not in block
        assert "body:" not in block


class TestWriteCypressSpecs:
    def test_one_spec_file_per_folder(self, tmp_path):
        config = _config(tmp_path)
        result = write_cypress_specs(COLLECTION, config)

        specs = config.output_dir
        assert result.spec_files == [
            specs / "users" / "users.cy.js",
            specs / "users" / "admin" / "admin.cy.js",
            specs / "root_requests.cy.js",
        ]
        assert result.requests == 5

        users = (specs / "users" / "users.cy.js").read_text(encoding="utf-8")
        assert users.startswith('/// <reference types="cypress" />\n\ndescribe("Users", () => {\n')
        assert users.endswith("});\n")
        assert EXPECTED_CREATE_USER in users
        assert users.count("  it(") == 3
        assert 'describe("Root Requests"' in (specs / "root_requests.cy.js").read_text(encoding="utf-8")

    def test_environment_is_materialized(self, tmp_path):
        config = _config(tmp_path)
        write_cypress_specs(COLLECTION, config, ENVIRONMENT)
        assert config.env_store.exists()

    def test_rerun_rewrites_the_same_files(self, tmp_path):
        config = _config(tmp_path)
        write_cypress_specs(COLLECTION, config)
        before = {p: p.read_bytes() for p in config.output_dir.rglob("*.cy.js")}
        write_cypress_specs(COLLECTION, config)
        assert {p: p.read_bytes() for p in config.output_dir.rglob("*.cy.js")} == before
