"""benchcmp: run and compare Go microbenchmarks across two git revisions."""

__version__ = "0.1.0"
