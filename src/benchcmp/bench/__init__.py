"""Benchmark subsystem for benchcmp.

Builds cached benchmark binaries per revision, runs them interleaved,
and statistically compares the collected output.
"""
