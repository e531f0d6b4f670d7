"""A gRPC server that answers requests from mounted mock rules."""

from __future__ import annotations

import logging
import random
import socket
import threading
import time
from concurrent import futures
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Tuple, Union

import grpc

from grpcwiremock.builder import MockBuilder, ThenBuilder

__all__ = ["UnmatchedRulesError", "RequestItem", "RuleItem", "GrpcServer"]

_log = logging.getLogger(__name__)

_HOST = "127.0.0.1"
_PORT_RANGE = (50000, 60000)
_PROBE_TIMEOUT = 0.025
_START_ATTEMPTS = 40


class UnmatchedRulesError(AssertionError):
    """Raised when a server stops while some of its rules were never used."""


@dataclass(frozen=True)
class RequestItem:
    """A single request handled by the mock server."""

    headers: Tuple[Tuple[str, Union[str, bytes]], ...]
    method: str
    uri: str


@dataclass
class RuleItem:
    """A mounted rule together with the requests it has answered."""

    rule: MockBuilder
    invocations_count: int = 0
    invocations: List[RequestItem] = field(default_factory=list)

    def record_request(self, request: RequestItem) -> None:
        self.invocations_count += 1
        self.invocations.append(request)


def _is_listening(host: str, port: int) -> bool:
    try:
        with socket.create_connection((host, port), timeout=_PROBE_TIMEOUT):
            return True
    except OSError:
        return False


class _Handler(grpc.GenericRpcHandler):
    """Routes every call of the server's service to the mock rules."""

    def __init__(self, server: "GrpcServer") -> None:
        self._server = server

    def service(self, handler_call_details: Any) -> Optional[grpc.RpcMethodHandler]:
        method = handler_call_details.method
        name = self._server.service_name
        if name is not None and not method.startswith(f"/{name}/"):
            return None
        server = self._server

        def behaviour(request: bytes, context: grpc.ServicerContext) -> bytes:
            code, body = server.handle_request(
                method, context.invocation_metadata(), request
            )
            if code is not grpc.StatusCode.OK:
                context.abort(code, "")
            return body if body is not None else b""

        return grpc.unary_unary_rpc_method_handler(behaviour)


class GrpcServer:
    """A mock gRPC server bound to the loopback interface."""

    def __init__(self, port: Optional[int] = None, service_name: Optional[str] = None) -> None:
        self.host = _HOST
        self.port = port if port is not None else self.find_unused_port()
        self.service_name = service_name
        self._rules: List[RuleItem] = []
        self._lock = threading.Lock()
        self._server: Optional[grpc.Server] = None

    @staticmethod
    def find_unused_port() -> int:
        """Pick a random port in 50000..59999 that nothing listens on."""
        while True:
            port = random.randrange(*_PORT_RANGE)
            if not _is_listening(_HOST, port):
                return port
            time.sleep(_PROBE_TIMEOUT)

    def start(self) -> "GrpcServer":
        """Bind and start serving; returns the server itself."""
        if self._server is not None:
            return self
        _log.info("Starting gRPC server in %s:%d", self.host, self.port)
        server = grpc.server(
            futures.ThreadPoolExecutor(max_workers=10),
            handlers=[_Handler(self)],
            options=[("grpc.so_reuseport", 0)],
        )
        try:
            bound = server.add_insecure_port(f"{self.host}:{self.port}")
        except RuntimeError as exc:
            raise OSError(f"Unable to bind to port {self.port}") from exc
        if bound == 0:
            raise OSError(f"Unable to bind to port {self.port}")
        server.start()
        for _ in range(_START_ATTEMPTS):
            if _is_listening(self.host, self.port):
                break
            time.sleep(_PROBE_TIMEOUT)
        self._server = server
        _log.info("Server started in %s:%d", self.host, self.port)
        return self

    def stop(self) -> None:
        """Stop serving; raise if any mounted rule was never matched."""
        server, self._server = self._server, None
        if server is None:
            return
        _log.info("Terminating server")
        server.stop(grace=None)
        with self._lock:
            unmatched = [
                item.rule.path for item in self._rules if item.invocations_count == 0
            ]
            self._rules.clear() if unmatched else None
        if unmatched:
            raise UnmatchedRulesError(
                "Server terminated with unmatched rules: \n" + "\n".join(unmatched)
            )

    def _add_rule(self, rule: MockBuilder) -> None:
        with self._lock:
            self._rules.append(RuleItem(rule=rule))

    def setup(self, rule: Union[MockBuilder, ThenBuilder]) -> MockBuilder:
        """Mount ``rule`` and return the key to look its requests up with."""
        rule.mount(self)
        return rule.into_mock() if isinstance(rule, ThenBuilder) else rule

    def reset(self) -> None:
        """Remove all rules."""
        with self._lock:
            self._rules.clear()

    def address(self) -> Tuple[str, int]:
        return (self.host, self.port)

    def handle_request(
        self,
        method: str,
        metadata: Iterable[Any],
        body: bytes,
    ) -> Tuple[grpc.StatusCode, Optional[bytes]]:
        """Answer a call to ``method``: the status to reply with and the body, if any."""
        _log.info("Request to %s", method)
        headers = tuple(
            (entry.key, entry.value) if hasattr(entry, "key") else tuple(entry)
            for entry in metadata
        )
        request = RequestItem(
            headers=headers,
            method="POST",
            uri=f"http://{self.host}:{self.port}{method}",
        )
        with self._lock:
            item = next((r for r in self._rules if r.rule.path == method), None)
            if item is None:
                _log.warning("Request unhandled")
                return grpc.StatusCode.UNIMPLEMENTED, None
            _log.info("Matched rule %r", item.rule)
            item.record_request(request)
            code = item.rule.status_code or grpc.StatusCode.OK
            return code, item.rule.result

    def find(self, rule: MockBuilder) -> Optional[List[RequestItem]]:
        """Requests matched by ``rule``, or None if it is not registered."""
        with self._lock:
            for item in self._rules:
                if item.rule == rule:
                    return list(item.invocations)
        return None

    def find_one(self, rule: MockBuilder) -> RequestItem:
        """The single request matched by ``rule``."""
        found = self.find(rule)
        if found is None:
            raise LookupError(
                "The given MockBuilder is not registered with the mock server."
            )
        if not found:
            raise LookupError("No request maching the given criteria.")
        if len(found) > 1:
            raise LookupError("More then one request matching the criteria.")
        return found[0]

    def find_request_count(self) -> int:
        with self._lock:
            return sum(item.invocations_count for item in self._rules)

    def rules_len(self) -> int:
        with self._lock:
            return len(self._rules)

    def rules_unmatched(self) -> int:
        with self._lock:
            return sum(1 for item in self._rules if item.invocations_count == 0)

    def __enter__(self) -> "GrpcServer":
        return self.start()

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        if exc_type is not None:
            self.reset()
        self.stop()