# confenv/__init__.py
"""
confenv – application configuration via environment variables.

Import `Registry` from `confenv.registry`, the stores from `confenv.store`
and `InvalidDomain` from `confenv.exceptions`.

    - ``MYAPP_DB_1_USER`` <-> ``Registry("myapp").param("db.1.user")``
    - Nested reads/writes with dot-notation, sequences as 1-based segments
    - Writes mirrored back into the environment for child processes
    - Scoped views via ``Registry.scope()``
    - Optional lifecycle restore and provenance tracking
"""

__version__ = "0.1.0"
