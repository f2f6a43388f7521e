"""Test suite for the conformgen package.

This package contains unit and integration tests validating registry
loading, literal resolution, code emission, the coverage audit and the
execution of generated conformance programs against fake sessions.
"""
