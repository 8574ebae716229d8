"""
Command-line interface for Claude usage analysis.
"""
