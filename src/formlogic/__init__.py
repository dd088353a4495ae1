"""
formlogic: form schema, conditional navigation and report aggregation core.

ARCHITECTURAL GUARANTEE:
------------------------
This package contains ZERO knowledge of:
    - UI rendering
    - Storage or synchronisation
    - File upload transport
    - Authentication

It consumes a schema and a response collection supplied by the caller
and produces navigation decisions and chart-ready rows.
All operations are pure functions of their inputs.
"""

__version__ = "0.1.0"
