"""Shared utilities — small formatting helpers and cross-cutting concerns.

Rules
-----
* No business logic.
* No I/O.
* Importable by any layer.
"""
