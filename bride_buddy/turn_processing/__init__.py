"""Chat turn processing.

This package centralizes validation, entitlement checks, context assembly and
save-marker extraction so every chat turn flows through the same pipeline and
shows up consistently in server logs.
"""
