"""Builders that describe a mocked gRPC response and mount it on a server."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Callable, Optional, Protocol

import grpc

__all__ = ["MockBuilderError", "MockBuilder", "WhenBuilder", "ThenBuilder"]

_MISSING_CONDITION = (
    "You must set one or more condition to match "
    "(eg. `.when().path(/* ToDo */).then()`)"
)
_MISSING_RESPONSE = (
    "Must set the status code or body before attempting to mount the rule."
)


class MockBuilderError(Exception):
    """Raised when a mock rule is incomplete or cannot be built."""


class _RuleSink(Protocol):
    def _add_rule(self, rule: "MockBuilder") -> None: ...


def _encode(factory: Callable[[], Any]) -> bytes:
    """Call ``factory`` and serialise the protobuf message it returns."""
    message = factory()
    if isinstance(message, (bytes, bytearray)):
        return bytes(message)
    try:
        return bytes(message.SerializeToString())
    except Exception as exc:
        raise MockBuilderError("Unable to encode the message") from exc


@dataclass(frozen=True)
class MockBuilder:
    """A rule matching a request path, with the status and body to reply with."""

    path: str
    status_code: Optional[grpc.StatusCode] = None
    result: Optional[bytes] = None

    @staticmethod
    def given(path: str) -> "MockBuilder":
        """Start a rule that matches requests to ``path``."""
        return MockBuilder(path=path)

    @staticmethod
    def when() -> "WhenBuilder":
        """Start a rule whose conditions are set step by step."""
        return WhenBuilder()

    def return_status(self, status: grpc.StatusCode) -> "MockBuilder":
        return replace(self, status_code=status)

    def return_body(self, factory: Callable[[], Any]) -> "MockBuilder":
        return replace(self, result=_encode(factory))

    def mount(self, server: _RuleSink) -> None:
        """Register this rule with ``server``."""
        if self.status_code is None and self.result is None:
            raise MockBuilderError(_MISSING_RESPONSE)
        server._add_rule(self)


@dataclass(frozen=True)
class WhenBuilder:
    """Collects the conditions a request must meet."""

    path_: Optional[str] = None

    def path(self, p: str) -> "WhenBuilder":
        return WhenBuilder(path_=p)

    def then(self) -> "ThenBuilder":
        if self.path_ is None:
            raise MockBuilderError(_MISSING_CONDITION)
        return ThenBuilder(path=self.path_)


@dataclass(frozen=True)
class ThenBuilder:
    """Collects the response returned for a matched request."""

    path: str
    status_code: Optional[grpc.StatusCode] = None
    result: Optional[bytes] = None

    def return_status(self, status: grpc.StatusCode) -> "ThenBuilder":
        return replace(self, status_code=status)

    def return_body(self, factory: Callable[[], Any]) -> "ThenBuilder":
        return replace(self, result=_encode(factory))

    def into_mock(self) -> MockBuilder:
        return MockBuilder(
            path=self.path, status_code=self.status_code, result=self.result
        )

    def mount(self, server: _RuleSink) -> None:
        self.into_mock().mount(server)