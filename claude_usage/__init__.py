"""
Claude usage analysis.

Streams Claude conversation logs, validates each usage record and aggregates
token usage, cost and rate-limit consumption.
"""

__version__ = "0.1.0"
