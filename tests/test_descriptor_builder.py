"""Tests for aiplint.descriptor.builder: model construction and type resolution."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from aiplint.descriptor import (
    DescriptorError,
    NodeKind,
    ResolutionError,
    SourceLocation,
    build_model,
)

if TYPE_CHECKING:
    from aiplint.descriptor import DescriptorModel


def _doc(**overrides: Any) -> dict[str, Any]:
    doc: dict[str, Any] = {"path": "a/v1/a.proto", "package": "a.v1"}
    doc.update(overrides)
    return doc


# ---------------------------------------------------------------------------
# Structure
# ---------------------------------------------------------------------------


class TestBuildModel:
    """Tests for build_model(): shape of the resolved tree."""

    def test_library_structure(self, library_model: DescriptorModel) -> None:
        (f,) = library_model.files
        assert f.path == "library/v1/library.proto"
        assert f.package == "google.example.library.v1"
        assert [m.name for m in f.messages][:2] == ["Publisher", "Book"]
        assert [s.name for s in f.services] == ["Library"]
        book = library_model.message("google.example.library.v1.Book")
        assert [fld.name for fld in book.fields] == ["name", "display_name", "authors"]
        assert book.resource is not None
        assert book.resource.type == "library.googleapis.com/Book"

    def test_locations_carry_element(self, library_model: DescriptorModel) -> None:
        book = library_model.message("google.example.library.v1.Book")
        assert book.location == SourceLocation(
            "library/v1/library.proto", 20, "google.example.library.v1.Book"
        )
        assert book.fields[0].location.element == "google.example.library.v1.Book.name"
        assert str(book.location) == "library/v1/library.proto:20"

    def test_method_links_to_message_nodes(self, library_model: DescriptorModel) -> None:
        method = library_model.files[0].services[0].methods[0]
        assert method.full_name == "google.example.library.v1.Library.GetBook"
        assert method.request is library_model.message(
            "google.example.library.v1.GetBookRequest"
        )
        assert method.http is not None
        assert method.http.verb == "get"

    def test_field_owner(self, library_model: DescriptorModel) -> None:
        book = library_model.message("google.example.library.v1.Book")
        assert all(fld.message == book.full_name for fld in book.fields)

    def test_walk_order(self, library_model: DescriptorModel) -> None:
        kinds = [node.kind for node in library_model.walk()]
        assert kinds[0] is NodeKind.FILE
        assert kinds[1:3] == [NodeKind.MESSAGE, NodeKind.FIELD]
        assert kinds[-4:] == [NodeKind.SERVICE, NodeKind.METHOD, NodeKind.METHOD, NodeKind.METHOD]

    def test_walk_skips_dependencies(self) -> None:
        model = build_model(
            [
                _doc(messages=[{"name": "A"}]),
                _doc(path="dep.proto", package="dep", dependency=True, messages=[{"name": "D"}]),
            ]
        )
        names = [getattr(n, "full_name", "") for n in model.walk()]
        assert "dep.D" not in names
        assert "dep.D" in [n.full_name for n in model.walk(include_dependencies=True)]
        assert [f.path for f in model.linted_files] == ["a/v1/a.proto"]

    def test_nested_messages_and_map_types(self) -> None:
        model = build_model(
            [
                _doc(
                    messages=[
                        {
                            "name": "Outer",
                            "fields": [
                                {"name": "inner", "number": 1, "type": "Inner"},
                                {"name": "labels", "number": 2, "type": "map<string, Inner>"},
                                {"name": "state", "number": 3, "type": "State"},
                            ],
                            "messages": [{"name": "Inner"}],
                            "enums": [{"name": "State", "values": ["STATE_UNSPECIFIED"]}],
                        }
                    ]
                )
            ]
        )
        outer = model.message("a.v1.Outer")
        inner, labels, state = outer.fields
        assert inner.type.kind == "message"
        assert inner.type.name == "a.v1.Outer.Inner"
        assert labels.type.is_map
        assert str(labels.type) == "map<string, a.v1.Outer.Inner>"
        assert state.type.kind == "enum"
        assert state.type.name == "a.v1.Outer.State"


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


class TestResolution:
    """Tests for protobuf scoping rules."""

    def test_resolves_across_files(self) -> None:
        model = build_model(
            [
                _doc(messages=[{"name": "A", "fields": [{"name": "t", "number": 1, "type": "common.Time"}]}]),
                _doc(path="common.proto", package="common", dependency=True, messages=[{"name": "Time"}]),
            ]
        )
        assert model.message("a.v1.A").fields[0].type.name == "common.Time"

    def test_innermost_scope_wins(self) -> None:
        model = build_model(
            [
                _doc(
                    messages=[
                        {"name": "Item"},
                        {
                            "name": "Box",
                            "messages": [{"name": "Item"}],
                            "fields": [{"name": "item", "number": 1, "type": "Item"}],
                        },
                    ]
                )
            ]
        )
        assert model.message("a.v1.Box").fields[0].type.name == "a.v1.Box.Item"

    def test_leading_dot_is_fully_qualified(self) -> None:
        model = build_model(
            [
                _doc(
                    messages=[
                        {"name": "Item"},
                        {
                            "name": "Box",
                            "messages": [{"name": "Item"}],
                            "fields": [{"name": "item", "number": 1, "type": ".a.v1.Item"}],
                        },
                    ]
                )
            ]
        )
        assert model.message("a.v1.Box").fields[0].type.name == "a.v1.Item"

    def test_unresolved_field_type(self) -> None:
        doc = _doc(messages=[{"name": "A", "fields": [{"name": "b", "number": 1, "type": "Missing"}]}])
        with pytest.raises(ResolutionError) as excinfo:
            build_model([doc])
        assert excinfo.value.symbol == "Missing"
        assert excinfo.value.referrer == "a.v1.A.b"

    def test_unresolved_method_request(self) -> None:
        doc = _doc(
            messages=[{"name": "R"}],
            services=[{"name": "S", "methods": [{"name": "M", "request": "Nope", "response": "R"}]}],
        )
        with pytest.raises(ResolutionError, match="Nope"):
            build_model([doc])

    def test_method_type_must_be_message(self) -> None:
        doc = _doc(
            messages=[{"name": "R"}],
            enums=[{"name": "E"}],
            services=[{"name": "S", "methods": [{"name": "M", "request": "E", "response": "R"}]}],
        )
        with pytest.raises(DescriptorError, match="not a message"):
            build_model([doc])


# ---------------------------------------------------------------------------
# Malformed documents
# ---------------------------------------------------------------------------


class TestMalformedDocuments:
    """build_model() rejects malformed input with DescriptorError."""

    def test_missing_path(self) -> None:
        with pytest.raises(DescriptorError, match="path"):
            build_model([{"package": "x"}])

    def test_duplicate_path(self) -> None:
        with pytest.raises(DescriptorError, match="Duplicate descriptor document"):
            build_model([_doc(), _doc()])

    def test_duplicate_message(self) -> None:
        with pytest.raises(DescriptorError, match="Duplicate declaration"):
            build_model([_doc(messages=[{"name": "A"}, {"name": "A"}])])

    def test_invalid_map_key(self) -> None:
        doc = _doc(messages=[{"name": "A", "fields": [{"name": "m", "number": 1, "type": "map<double, string>"}]}])
        with pytest.raises(DescriptorError, match="invalid map key type"):
            build_model([doc])

    def test_repeated_map_rejected(self) -> None:
        doc = _doc(
            messages=[
                {
                    "name": "A",
                    "fields": [
                        {"name": "m", "number": 1, "type": "map<string, string>", "repeated": True}
                    ],
                }
            ]
        )
        with pytest.raises(DescriptorError, match="cannot be repeated"):
            build_model([doc])

    def test_unknown_behavior(self) -> None:
        doc = _doc(
            messages=[
                {"name": "A", "fields": [{"name": "x", "number": 1, "type": "string", "behaviors": ["SOMETIMES"]}]}
            ]
        )
        with pytest.raises(DescriptorError, match="invalid field behavior"):
            build_model([doc])

    def test_unknown_style(self) -> None:
        doc = _doc(messages=[{"name": "A", "resource": {"type": "x.com/A", "style": ["FANCY"]}}])
        with pytest.raises(DescriptorError, match="invalid resource style"):
            build_model([doc])

    def test_unknown_http_verb(self) -> None:
        doc = _doc(
            messages=[{"name": "R"}],
            services=[
                {
                    "name": "S",
                    "methods": [
                        {"name": "M", "request": "R", "response": "R", "http": {"verb": "fetch", "path": "/x"}}
                    ],
                }
            ],
        )
        with pytest.raises(DescriptorError, match="invalid HTTP verb"):
            build_model([doc])

    def test_field_without_type(self) -> None:
        doc = _doc(messages=[{"name": "A", "fields": [{"name": "x", "number": 1}]}])
        with pytest.raises(DescriptorError, match="'type' must be a non-empty string"):
            build_model([doc])

    @pytest.mark.parametrize("number", [None, "abc", 1.5, True])
    def test_field_number_must_be_integer(self, number: object) -> None:
        doc = _doc(messages=[{"name": "A", "fields": [{"name": "x", "number": number, "type": "string"}]}])
        with pytest.raises(DescriptorError, match="Field 'a.v1.A.x' number: expected an integer"):
            build_model([doc])

    def test_line_must_be_integer(self) -> None:
        doc = _doc(messages=[{"name": "A", "line": "twelve"}])
        with pytest.raises(DescriptorError, match="'a.v1.A' line: expected an integer"):
            build_model([doc])
