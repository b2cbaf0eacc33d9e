"""Performance benchmarks for optsarima.

This package contains timings of the hot paths of the library: a single
constrained fit per objective and a complete stepwise search.
"""
