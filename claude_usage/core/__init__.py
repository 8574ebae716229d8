"""
Core modules for Claude usage analysis.

This package contains the data model, pricing, aggregation, rate-limit and
insight calculations that run over validated usage entries.
"""
