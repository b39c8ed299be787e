"""Data models for a parsed Postman collection and the scenarios built from it.

The collection reader turns Postman JSON into the FolderNode/RequestNode tree;
the normalizer and the assertion extractor turn each RequestNode into a
Scenario that the feature assembler can render and deduplicate.
"""

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class KeyValue(BaseModel):
    """One key/value row of a header list or a form/urlencoded body."""

    model_config = ConfigDict(frozen=True)

    key: str
    value: Any = ""
    disabled: bool = False


class BodySpec(BaseModel):
    """Request body as declared in the collection, tagged by ``mode``."""

    model_config = ConfigDict(frozen=True)

    mode: str = "none"  # none / urlencoded / formdata / graphql / file / raw
    pairs: list[KeyValue] = []
    graphql_query: str = ""
    graphql_variables: Any = None
    file_src: str | None = None
    raw: str = ""


class RequestNode(BaseModel):
    """A single request definition from the collection tree."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["request"] = "request"
    name: str
    method: str  # GET / POST / PUT / DELETE / PATCH ...
    url_segments: list[str] = []
    raw_url: str = ""
    headers: list[KeyValue] = []
    body: BodySpec = BodySpec()
    auth_token: str | None = None  # bearer placeholder, e.g. {{alice}}
    test_script: list[str] | None = None


class FolderNode(BaseModel):
    """A named folder holding requests and nested folders, in collection order."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["folder"] = "folder"
    name: str
    children: list["CollectionNode"] = []


CollectionNode = Annotated[Union[FolderNode, RequestNode], Field(discriminator="kind")]

FolderNode.model_rebuild()


class ResolvedAuth(BaseModel):
    """Bearer identity resolved against the environment store."""

    identity: str
    credential: Any = None


class AssertionKind(str, Enum):
    EQUALITY = "equality"
    MEMBERSHIP = "membership"
    EXISTENCE = "existence"


class Assertion(BaseModel):
    """One expectation recovered from a test script."""

    model_config = ConfigDict(frozen=True)

    key: str  # body dot path, "status", "body", "text" or "GroupName"
    value: str
    kind: AssertionKind


class NormalizedRequest(BaseModel):
    """Canonical form of a RequestNode, before assertions are attached."""

    method: str
    path: str
    headers: list[KeyValue] = []
    body: dict = {}
    auth: ResolvedAuth | None = None


class Scenario(BaseModel):
    """A normalized request with its assertions, ready to be rendered."""

    model_config = ConfigDict(frozen=True)

    display_name: str
    method: str
    path: str
    headers: list[KeyValue] = []
    body: dict = {}
    auth: ResolvedAuth | None = None
    assertions: list[Assertion] = []

    @classmethod
    def build(cls, name: str, request: NormalizedRequest, assertions: list[Assertion]) -> "Scenario":
        return cls(
            display_name=name,
            method=request.method,
            path=request.path,
            headers=request.headers,
            body=request.body,
            auth=request.auth,
            assertions=assertions,
        )
