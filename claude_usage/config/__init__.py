"""
Configuration for Claude usage analysis.

Loads and validates pricing, plan limits and token estimates.
"""
