"""Benchmark helpers built on pandas / scipy."""
