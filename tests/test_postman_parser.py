import json
from pathlib import Path

import pytest

from postman_cucumber.errors import InvalidCollectionError
from postman_cucumber.parser.base import FolderNode, RequestNode
from postman_cucumber.parser.detect import detect_document
from postman_cucumber.parser.postman import load_collection, parse_collection

FIXTURES = Path(__file__).parent / "fixtures"


class TestDetectDocument:
    def test_detect_collection(self):
        assert detect_document(FIXTURES / "sample.postman_collection.json") == "collection"

    def test_detect_environment(self):
        assert detect_document(FIXTURES / "sample.postman_environment.json") == "environment"

    def test_detect_unknown(self, tmp_path):
        other = tmp_path / "notes.md"
        other.write_text("# Just notes\n", encoding="utf-8")
        assert detect_document(other) == "unknown"

    def test_detect_tab_indented_export(self, tmp_path):
        exported = tmp_path / "tabbed.postman_collection.json"
        exported.write_text(json.dumps({"info": {"_postman_id": "1"}, "item": []}, indent="\t"), encoding="utf-8")
        assert detect_document(exported) == "collection"


class TestLoadCollection:
    def test_top_level_nodes(self):
        nodes = load_collection(FIXTURES / "sample.postman_collection.json")
        # the item with neither 'item' nor 'request' is skipped
        assert [n.name for n in nodes] == ["Users", "Health check"]
        assert isinstance(nodes[0], FolderNode)
        assert isinstance(nodes[1], RequestNode)

    def test_request_fields(self):
        users = load_collection(FIXTURES / "sample.postman_collection.json")[0]
        get_user = users.children[0]
        assert get_user.method == "GET"
        assert get_user.url_segments == ["users", "{{id}}"]
        assert get_user.raw_url == "{{baseUrl}}/users/{{id}}"
        assert get_user.test_script[1].strip() == "pm.response.to.have.status(200);"

    def test_only_test_events_are_read(self):
        users = load_collection(FIXTURES / "sample.postman_collection.json")[0]
        create = users.children[2]
        assert not any("500" in line for line in create.test_script)

    def test_bearer_and_headers(self):
        users = load_collection(FIXTURES / "sample.postman_collection.json")[0]
        create = users.children[2]
        assert create.auth_token == "{{alice}}"
        assert [(h.key, h.disabled) for h in create.headers] == [("Content-Type", False), ("X-Debug", True)]
        assert create.body.mode == "raw"

    def test_missing_item_list_is_fatal(self):
        with pytest.raises(InvalidCollectionError):
            parse_collection({"info": {"name": "x"}})

    def test_invalid_json_is_fatal(self, tmp_path):
        broken = tmp_path / "broken.json"
        broken.write_text("{", encoding="utf-8")
        with pytest.raises(InvalidCollectionError):
            load_collection(broken)

    def test_string_request_and_non_bearer_auth(self):
        nodes = parse_collection({
            "item": [
                {"name": "Ping", "request": "https://api.example.com/ping"},
                {"name": "Basic", "request": {"method": "post", "auth": {"type": "basic"}, "url": "x"}},
            ]
        })
        assert nodes[0].method == "GET"
        assert nodes[0].raw_url == "https://api.example.com/ping"
        assert nodes[0].url_segments == ["ping"]
        assert nodes[1].method == "POST"
        assert nodes[1].auth_token is None

    def test_url_without_path_uses_raw_url(self):
        nodes = parse_collection({
            "item": [
                {"name": "a", "request": {"url": "https://h/users/1?expand=roles"}},
                {"name": "b", "request": {"url": {"raw": "{{baseUrl}}/orders/2#top"}}},
            ]
        })
        assert nodes[0].url_segments == ["users", "1"]
        assert nodes[1].url_segments == ["orders", "2"]

    def test_body_modes(self):
        nodes = parse_collection({
            "item": [
                {"name": "form", "request": {"method": "POST", "body": {
                    "mode": "formdata", "formdata": [{"key": "a", "value": "1"}]}}},
                {"name": "gql", "request": {"method": "POST", "body": {
                    "mode": "graphql", "graphql": {"query": "{ me { id } }", "variables": "{}"}}}},
                {"name": "file", "request": {"method": "POST", "body": {"mode": "file", "file": {}}}},
            ]
        })
        assert [n.body.mode for n in nodes] == ["formdata", "graphql", "file"]
        assert nodes[0].body.pairs[0].key == "a"
        assert nodes[1].body.graphql_query == "{ me { id } }"
        assert nodes[2].body.file_src is None
