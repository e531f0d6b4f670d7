import re

import grpc
import pytest
from google.protobuf import wrappers_pb2

from grpcwiremock.builder import MockBuilder, MockBuilderError, ThenBuilder


class _FakeServer:
    def __init__(self):
        self.rules = []

    def _add_rule(self, rule):
        self.rules.append(rule)


def _hello():
    return wrappers_pb2.StringValue(value="Hello")


def test_invalid_mock_builder():
    expected = (
        "You must set one or more condition to match "
        "(eg. `.when().path(/* ToDo */).then()`)"
    )
    with pytest.raises(MockBuilderError, match=re.escape(expected)):
        MockBuilder.when().then()


def test_given_sets_path_only():
    rule = MockBuilder.given("/hello.Greeter/SayHello")
    assert rule.path == "/hello.Greeter/SayHello"
    assert rule.status_code is None
    assert rule.result is None


def test_return_status_leaves_original_untouched():
    rule = MockBuilder.given("/x")
    updated = rule.return_status(grpc.StatusCode.ALREADY_EXISTS)
    assert updated.status_code == grpc.StatusCode.ALREADY_EXISTS
    assert rule.status_code is None


def test_return_body_encodes_message():
    rule = MockBuilder.given("/x").return_body(_hello)
    assert rule.result == b"\n\x05Hello"


def test_when_then_chain_matches_given():
    via_when = (
        MockBuilder.when()
        .path("/hello.Greeter/SayHello")
        .then()
        .return_status(grpc.StatusCode.OK)
        .return_body(_hello)
        .into_mock()
    )
    via_given = (
        MockBuilder.given("/hello.Greeter/SayHello")
        .return_status(grpc.StatusCode.OK)
        .return_body(_hello)
    )
    assert via_when == via_given


def test_path_replaces_previous_path():
    then = MockBuilder.when().path("/a").path("/b").then()
    assert then == ThenBuilder(path="/b")


def test_equality_depends_on_status():
    a = MockBuilder.given("/x").return_status(grpc.StatusCode.OK)
    b = MockBuilder.given("/x").return_status(grpc.StatusCode.NOT_FOUND)
    assert (a == b) is False


def test_mount_without_response_fails():
    server = _FakeServer()
    with pytest.raises(MockBuilderError, match="Must set the status code or body"):
        MockBuilder.given("/x").mount(server)
    assert server.rules == []


def test_then_mount_without_response_fails():
    server = _FakeServer()
    with pytest.raises(MockBuilderError):
        MockBuilder.when().path("/x").then().mount(server)
    assert server.rules == []


def test_mount_registers_rule():
    server = _FakeServer()
    rule = MockBuilder.given("/x").return_status(grpc.StatusCode.ALREADY_EXISTS)
    rule.mount(server)
    assert server.rules == [rule]


def test_then_mount_registers_mock_builder():
    server = _FakeServer()
    MockBuilder.when().path("/").then().return_body(_hello).mount(server)
    assert server.rules == [MockBuilder(path="/", result=b"\n\x05Hello")]


def test_unencodable_body_raises():
    with pytest.raises(MockBuilderError, match="Unable to encode the message"):
        MockBuilder.given("/x").return_body(lambda: object())