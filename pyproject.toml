[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "grpcwiremock"
version = "0.0.3a3"
description = "Mock gRPC server to test your outgoing gRPC requests"
requires-python = ">=3.10"
keywords = ["grpc", "mock", "testing"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Testing",
    "Topic :: Software Development :: Testing :: Mocking",
]
dependencies = [
    "grpcio",
]

[project.optional-dependencies]
test = [
    "pytest",
    "protobuf",
]

[tool.hatch.build.targets.wheel]
packages = ["grpcwiremock"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
