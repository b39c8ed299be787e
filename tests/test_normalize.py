from postman_cucumber.normalize import (
    coerce_number,
    path_segment,
    strip_placeholder,
    strip_quotes,
    substitute_placeholders,
)


class TestPathSegment:
    def test_whitespace_runs_collapse(self):
        assert path_segment("User  Management\tAPI") == "User_Management_API"

    def test_plain_name_passes_through(self):
        assert path_segment("Users") == "Users"


class TestPlaceholders:
    def test_strip_placeholder(self):
        assert strip_placeholder("{{alice}}") == "alice"

    def test_substitute_known_values(self):
        assert substitute_placeholders("users/{{id}}/posts/{{ post }}", {"id": 3, "post": "p1"}) == "users/3/posts/p1"

    def test_unknown_placeholders_are_kept(self):
        assert substitute_placeholders("users/{{id}}", {}) == "users/{{id}}"


class TestValues:
    def test_strip_quotes(self):
        assert strip_quotes(" 'abc' ") == "abc"
        assert strip_quotes('"a\'b"') == "a'b"

    def test_coerce_integer(self):
        assert coerce_number("200") == 200

    def test_coerce_float(self):
        assert coerce_number("1.5") == 1.5

    def test_non_numeric_stays_string(self):
        assert coerce_number("abc") == "abc"
        assert coerce_number("") == ""
        assert coerce_number("nan") == "nan"
