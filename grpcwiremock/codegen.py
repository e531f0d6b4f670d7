"""Creation of mock server classes bound to one gRPC service."""

from __future__ import annotations

from typing import Optional, Type

from grpcwiremock.server import GrpcServer

__all__ = ["generate"]


def generate(prefix: str, name: str) -> Type[GrpcServer]:
    """Create a ``GrpcServer`` subclass called ``name`` serving ``prefix``.

    ``prefix`` is the service part of the RPC path, e.g. ``hello.Greeter``
    for ``/hello.Greeter/SayHello``.
    """

    def __init__(self: GrpcServer, port: Optional[int] = None) -> None:
        GrpcServer.__init__(self, port, prefix)

    @classmethod
    def start_default(cls: Type[GrpcServer]) -> GrpcServer:
        """Start on an unused port."""
        return cls(GrpcServer.find_unused_port()).start()

    @classmethod
    def start_on(cls: Type[GrpcServer], port: int) -> GrpcServer:
        """Start on ``port``; raises OSError when the port is taken."""
        return cls(port).start()

    namespace = {
        "__init__": __init__,
        "__doc__": f"A mock gRPC server for the service {prefix}.",
        "__qualname__": name,
        "NAME": prefix,
        "start_default": start_default,
        "start_on": start_on,
    }
    return type(name, (GrpcServer,), namespace)