"""
Domain layer - goal and domain-plan state engine.

This package contains the planning models and the rules that act on them,
isolated from external concerns like HTTP, Flask and storage.
"""
