"""Functional tests for the contract writer and reader.

Contracts must be Pact v3 JSON with symbolic matching rules, deterministic
bytes, atomic replacement of the destination and a faithful read-back of
every matcher shape.
"""

from __future__ import annotations

import json
import os
import stat

import pytest
from jsonschema import Draft202012Validator

from pactmock.errors import SerializationError
from pactmock.logic import contract_writer
from pactmock.logic.contract_schema import CONTRACT_SCHEMA
from pactmock.logic.matchers import Literal, MinArray, Regex, TypeOf
from pactmock.models.interaction import Interaction, RequestSpec, ResponseSpec


def _all_products() -> Interaction:
    return Interaction(
        description="a request to retrieve all products",
        request=RequestSpec(method="GET", path="/Products"),
        response=ResponseSpec(
            status=200,
            headers={"Content-Type": "application/json; charset=utf-8"},
            body=MinArray({"id": TypeOf(27), "name": "burger", "type": TypeOf("food")}, 1),
        ),
    )


def _rich_interaction() -> Interaction:
    return Interaction(
        description="a request to create a product",
        provider_state="no products exist",
        provider_state_params={"category": "food"},
        request=RequestSpec(
            method="POST",
            path=Regex(r"/Products/\d+", "/Products/28"),
            headers={"Content-Type": "application/json", "X-Trace": Regex(r"[a-f0-9]{8}", "deadbeef")},
            query={"dryRun": "false", "tags": ["a", "b"]},
            body={
                "name": TypeOf("burger"),
                "codes": MinArray(Regex(r"[A-Z]{3}", "ABC"), 2),
                "meta": Literal({"source": "test"}),
                "price": 3.5,
            },
        ),
        response=ResponseSpec(status=201, headers={"Location": "/Products/28"}, body={"id": TypeOf(28)}),
    )


def test_write_produces_v3_document_with_symbolic_rules(tmp_path) -> None:  # type: ignore[no-untyped-def]
    path = contract_writer.write("ApiClient", "ProductService", [_all_products()], tmp_path / "pacts")
    assert path == tmp_path / "pacts" / "ApiClient-ProductService.json"

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["consumer"] == {"name": "ApiClient"}
    assert data["provider"] == {"name": "ProductService"}
    assert data["metadata"]["pactSpecification"] == {"version": "3.0.0"}

    response = data["interactions"][0]["response"]
    assert response["body"] == [{"id": 27, "name": "burger", "type": "food"}]
    assert response["matchingRules"]["body"] == {
        "$": {"combine": "AND", "matchers": [{"match": "type", "min": 1}]},
        "$[*].id": {"combine": "AND", "matchers": [{"match": "type"}]},
        "$[*].type": {"combine": "AND", "matchers": [{"match": "type"}]},
    }
    assert "providerStates" not in data["interactions"][0]
    assert list(Draft202012Validator(CONTRACT_SCHEMA).iter_errors(data)) == []


def test_request_side_rules_and_provider_state(tmp_path) -> None:  # type: ignore[no-untyped-def]
    path = contract_writer.write("ApiClient", "ProductService", [_rich_interaction()], tmp_path)
    item = json.loads(path.read_text(encoding="utf-8"))["interactions"][0]

    assert item["providerStates"] == [{"name": "no products exist", "params": {"category": "food"}}]
    request = item["request"]
    assert request["path"] == "/Products/28"
    assert request["query"] == {"dryRun": ["false"], "tags": ["a", "b"]}
    assert request["headers"]["X-Trace"] == "deadbeef"
    assert request["body"]["codes"] == ["ABC", "ABC"]

    rules = request["matchingRules"]
    assert rules["path"]["matchers"] == [{"match": "regex", "regex": r"/Products/\d+"}]
    assert rules["header"]["X-Trace"]["matchers"] == [{"match": "regex", "regex": "[a-f0-9]{8}"}]
    assert "query" not in rules
    assert rules["body"]["$.codes"]["matchers"] == [{"match": "type", "min": 2}]
    assert rules["body"]["$.codes[*]"]["matchers"] == [{"match": "regex", "regex": "[A-Z]{3}"}]
    assert rules["body"]["$.meta"]["matchers"] == [{"match": "equality"}]
    assert "$.price" not in rules["body"]


def test_read_back_yields_equal_interactions(tmp_path) -> None:  # type: ignore[no-untyped-def]
    written = [_all_products(), _rich_interaction()]
    path = contract_writer.write("ApiClient", "ProductService", written, tmp_path)

    document = contract_writer.read(path)
    assert document.consumer == "ApiClient"
    assert document.provider == "ProductService"
    assert list(document.interactions) == written


def test_output_is_deterministic(tmp_path) -> None:  # type: ignore[no-untyped-def]
    interactions = [_rich_interaction(), _all_products()]
    first = contract_writer.write("ApiClient", "ProductService", interactions, tmp_path / "a.json").read_bytes()
    second = contract_writer.write("ApiClient", "ProductService", interactions, tmp_path / "b.json").read_bytes()
    assert first == second
    assert first.endswith(b"\n")
    # Declaration order is kept even though keys are sorted
    descriptions = [i["description"] for i in json.loads(first)["interactions"]]
    assert descriptions == ["a request to create a product", "a request to retrieve all products"]


def test_contract_path_naming(tmp_path) -> None:  # type: ignore[no-untyped-def]
    assert contract_writer.contract_path(tmp_path, "A", "B") == tmp_path / "A-B.json"
    assert contract_writer.contract_path(tmp_path / "custom.json", "A", "B") == tmp_path / "custom.json"


def test_unserializable_body_leaves_existing_file_untouched(tmp_path) -> None:  # type: ignore[no-untyped-def]
    path = contract_writer.write("ApiClient", "ProductService", [_all_products()], tmp_path)
    before = path.read_bytes()

    broken = Interaction(
        description="broken",
        request=RequestSpec(method="GET", path="/Broken"),
        response=ResponseSpec(body={"when": object()}),
    )
    with pytest.raises(SerializationError):
        contract_writer.write("ApiClient", "ProductService", [broken], tmp_path)
    assert path.read_bytes() == before
    assert sorted(p.name for p in tmp_path.iterdir()) == ["ApiClient-ProductService.json"]


def test_failed_replace_cleans_up_temporary_file(tmp_path, monkeypatch) -> None:  # type: ignore[no-untyped-def]
    path = contract_writer.write("ApiClient", "ProductService", [_all_products()], tmp_path)
    before = path.read_bytes()

    def refuse(src, dst):  # type: ignore[no-untyped-def]
        raise OSError("disk full")

    monkeypatch.setattr(os, "replace", refuse)
    with pytest.raises(SerializationError, match="disk full"):
        contract_writer.write("ApiClient", "ProductService", [_rich_interaction()], tmp_path)
    assert path.read_bytes() == before
    assert not [p for p in tmp_path.iterdir() if p.name.endswith(".tmp")]


@pytest.mark.skipif(os.name != "posix", reason="POSIX permission bits")
def test_new_contract_gets_regular_file_mode(tmp_path) -> None:  # type: ignore[no-untyped-def]
    umask = os.umask(0o022)
    try:
        path = contract_writer.write("ApiClient", "ProductService", [_all_products()], tmp_path)
    finally:
        os.umask(umask)
    assert stat.S_IMODE(path.stat().st_mode) == 0o644


@pytest.mark.skipif(os.name != "posix", reason="POSIX permission bits")
def test_rewrite_keeps_existing_file_mode(tmp_path) -> None:  # type: ignore[no-untyped-def]
    path = contract_writer.write("ApiClient", "ProductService", [_all_products()], tmp_path)
    os.chmod(path, 0o640)
    contract_writer.write("ApiClient", "ProductService", [_rich_interaction()], tmp_path)
    assert stat.S_IMODE(path.stat().st_mode) == 0o640


def test_query_matchers_survive_round_trip(tmp_path) -> None:  # type: ignore[no-untyped-def]
    interaction = Interaction(
        description="paged products",
        request=RequestSpec(
            method="GET",
            path="/Products",
            query={"page": 2, "type": TypeOf("food"), "ids": MinArray("7", 1)},
        ),
        response=ResponseSpec(status=200),
    )
    path = contract_writer.write("ApiClient", "ProductService", [interaction], tmp_path)
    query = json.loads(path.read_text(encoding="utf-8"))["interactions"][0]["request"]["query"]
    assert query == {"ids": ["7"], "page": ["2"], "type": ["food"]}
    assert list(contract_writer.read(path).interactions) == [interaction]


def test_merge_mode_replaces_same_key_and_appends_new(tmp_path) -> None:  # type: ignore[no-untyped-def]
    a = _all_products()
    b = _rich_interaction()
    contract_writer.write("ApiClient", "ProductService", [a, b], tmp_path)

    a_prime = Interaction(
        description=a.description,
        request=a.request,
        response=ResponseSpec(status=200, body=MinArray({"id": TypeOf(1)}, 1)),
    )
    c = Interaction(
        description="a request to delete a product",
        request=RequestSpec(method="DELETE", path="/Products/27"),
        response=ResponseSpec(status=204),
    )
    path = contract_writer.write("ApiClient", "ProductService", [a_prime, c], tmp_path, mode="merge")
    assert list(contract_writer.read(path).interactions) == [a_prime, b, c]

    overwritten = contract_writer.write("ApiClient", "ProductService", [c], tmp_path)
    assert list(contract_writer.read(overwritten).interactions) == [c]


def test_unknown_write_mode_is_rejected(tmp_path) -> None:  # type: ignore[no-untyped-def]
    with pytest.raises(ValueError):
        contract_writer.write("ApiClient", "ProductService", [], tmp_path, mode="append")


def test_read_rejects_invalid_files(tmp_path) -> None:  # type: ignore[no-untyped-def]
    not_json = tmp_path / "not-json.json"
    not_json.write_text("{ nope", encoding="utf-8")
    with pytest.raises(SerializationError):
        contract_writer.read(not_json)

    wrong_shape = tmp_path / "wrong.json"
    wrong_shape.write_text(json.dumps({"consumer": {"name": "A"}, "interactions": []}), encoding="utf-8")
    with pytest.raises(SerializationError, match="schema"):
        contract_writer.read(wrong_shape)

    with pytest.raises(SerializationError):
        contract_writer.read(tmp_path / "missing.json")


def test_read_rejects_unsupported_matcher(tmp_path) -> None:  # type: ignore[no-untyped-def]
    path = contract_writer.write("ApiClient", "ProductService", [_all_products()], tmp_path)
    data = json.loads(path.read_text(encoding="utf-8"))
    data["interactions"][0]["response"]["matchingRules"]["body"]["$"]["matchers"] = [{"match": "include", "value": "x"}]
    path.write_text(json.dumps(data), encoding="utf-8")
    with pytest.raises(SerializationError):
        contract_writer.read(path)
