from pathlib import Path

import pytest

from postman_cucumber.errors import AuthResolutionError, InvalidEnvironmentError
from postman_cucumber.parser.environment import (
    load_postman_environment,
    read_env_store,
    resolve_auth,
    write_env_store,
)

FIXTURES = Path(__file__).parent / "fixtures"


class TestEnvironmentStore:
    def test_disabled_values_are_excluded(self):
        values = load_postman_environment(FIXTURES / "sample.postman_environment.json")
        assert values == {"baseUrl": "http://localhost:8080", "alice": "alice-token"}

    def test_write_then_read(self, tmp_path):
        store = tmp_path / "nested" / "cypress.env.json"
        write_env_store(store, {"alice": "t"})
        assert read_env_store(store) == {"alice": "t"}

    def test_missing_store_reads_as_none(self, tmp_path):
        assert read_env_store(tmp_path / "missing.json") is None

    def test_corrupt_store_is_reported_with_its_path(self, tmp_path):
        store = tmp_path / "cypress.env.json"
        store.write_text("{not json", encoding="utf-8")
        with pytest.raises(InvalidEnvironmentError, match="cypress.env.json"):
            read_env_store(store)

    def test_environment_document_must_be_an_object(self, tmp_path):
        env = tmp_path / "env.json"
        env.write_text("[]", encoding="utf-8")
        with pytest.raises(InvalidEnvironmentError):
            load_postman_environment(env)


class TestResolveAuth:
    def test_resolves_identity(self):
        auth = resolve_auth("{{alice}}", {"alice": "alice-token"})
        assert auth.identity == "alice"
        assert auth.credential == "alice-token"

    def test_store_never_loaded(self):
        with pytest.raises(LookupError):
            resolve_auth("{{alice}}", None)

    def test_unknown_identity(self):
        with pytest.raises(AuthResolutionError, match="bob"):
            resolve_auth("{{bob}}", {"alice": "alice-token"})
