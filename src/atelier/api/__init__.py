"""Atelier Catalog - Gallery API layer.

Modules
-------
main
    FastAPI application factory, route handlers and the ``main()`` CLI
    entry point.
models
    Pydantic request models with their validation-gate checks.
"""
