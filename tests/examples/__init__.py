"""Registry sources and session hosts used by the test suite."""
