"""
Tests package for the Shapley-Shubik power index engine.

This package contains unit and integration tests for:
- Exact arithmetic and threshold resolution
- Exact and Monte Carlo power index computation
- Axiom validators and concentration metrics
- Batch runs, configuration and the CLI
"""
