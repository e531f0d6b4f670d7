"""Mock gRPC server with rule builders for testing outgoing gRPC requests."""

__version__ = "0.0.3a3"
__all__ = ["builder", "server", "codegen"]