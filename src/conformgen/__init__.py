"""Schema-driven compiler of API conformance test programs.

The `conformgen` package reads a declarative registry of remotely
invokable actions (typed parameters, optional parameters, return shapes
and test cases) and compiles it into a standalone Python program that
checks an implementation of the API against the registry.

Key features:
- YAML action registries validated by immutable Pydantic models;
- type-directed literal resolution with the optional argument bitmask;
- one code emitter per assertion kind, composed into isolated units;
- a coverage audit of actions without enabled tests.

Generated programs depend on `conformgen.runtime` only.
"""
