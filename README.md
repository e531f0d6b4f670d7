# grpcwiremock

A mock gRPC server for testing code that makes outgoing gRPC calls.
Start a server in your test and register rules that say what each RPC
path returns. Point your client at the server, then check which
requests it received.

## Installation

```
pip install grpcwiremock
```

## Usage

`grpcwiremock.codegen.generate(prefix, name)` creates a subclass of
`grpcwiremock.server.GrpcServer` that is bound to one service prefix.
Register rules on it with `grpcwiremock.builder.MockBuilder`.

```python
import grpc

from grpcwiremock.builder import MockBuilder
from grpcwiremock.codegen import generate

MyMockServer = generate("hello.Greeter", "MyMockServer")

with MyMockServer.start_default() as server:
    rule = server.setup(
        MockBuilder.when()
        .path("/hello.Greeter/SayHello")
        .then()
        .return_status(grpc.StatusCode.OK)
        .return_body(lambda: HelloReply(message="Hello"))
    )

    host, port = server.address()
    channel = grpc.insecure_channel(f"{host}:{port}")
    # ... call SayHello through the channel ...

    request = server.find_one(rule)
    print(request.uri)  # http://127.0.0.1:<port>/hello.Greeter/SayHello
```

A generated class has the following:

- `NAME`: the service prefix.
- `start_default()`: starts on a random unused port.
- `start_on(port)`: starts on the given port. It raises `OSError` if the
  port cannot be bound.

You can also build a `GrpcServer(port=None, service_name=None)` yourself
and call `start()`. If no port is given, an unused one is picked from
50000–59999. Without a `service_name`, the server answers calls to any
service. The server always listens on `127.0.0.1`.

A rule can also be stated directly:

```python
server.setup(
    MockBuilder.given("/hello.Greeter/SayHello")
    .return_status(grpc.StatusCode.ALREADY_EXISTS)
)
```

`return_body` takes a function that returns either a protobuf message
or raw `bytes`. The message is serialised when the rule is built. If
serialisation fails, `MockBuilderError` is raised.

## Behaviour

- A request goes to the first rule whose path matches the full method
  path. The reply carries the rule's status (`OK` by default) and its
  body. If the rule has no body, the body is empty.
- A request that no rule matches gets `UNIMPLEMENTED`. So does a call
  to a service other than the server's prefix.
- A rule must have a status or a body before it can be mounted.
  Otherwise `MockBuilderError` is raised. `MockBuilderError` is also
  raised when `when().then()` is called without a path.
- `setup(rule)` mounts a `MockBuilder` or `ThenBuilder`. It returns a
  `MockBuilder` that you can use as the key for lookups.
- `find(rule)` returns the recorded `RequestItem`s (`headers`, `method`,
  `uri`) for a registered rule. It returns `None` if the rule is not
  registered. `find_one(rule)` returns the single match and raises
  `LookupError` when:
  - the rule is not registered,
  - nothing matched, or
  - more than one request matched.
- `find_request_count()`, `rules_len()` and `rules_unmatched()` report
  on the traffic the server has handled and on the mounted rules.
- `stop()`, or leaving the `with` block normally, raises
  `UnmatchedRulesError` if any rule received no request. The error
  lists the paths of those rules, and the rules are cleared. If the
  `with` block ends with an exception, the rules are reset first, so
  the original exception is not masked.
- `reset()` removes all rules.

## Limits

Only unary–unary calls are answered. Rules match on the method path
alone, not on the request body or metadata.

## Running the tests

```
pip install -e ".[test]"
pytest
```