"""Session services: registries, broadcast, combat and the start countdown.

This package holds the room logic used by the socket handlers and the
HTTP introspection routes, keeping transport concerns separated from the
match rules.
"""
