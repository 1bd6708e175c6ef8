"""Prompt context primitives (system prompt stacking and wedding facts rendering).

Kept free of FastAPI and Redis concerns so it can be reused by the turn pipeline and tests.
"""
