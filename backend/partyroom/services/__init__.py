"""Room, presence and round-state services.

This package contains the store-side logic that HTTP routes call into,
keeping transport concerns separated from the coordination rules.
"""
