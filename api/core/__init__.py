"""
Shared, cross-cutting code for the API.

`core/` should contain small building blocks that multiple features use
(settings, the backend client, error rendering). Keep table-specific queries
and business logic in the corresponding feature package (e.g. `records/`).
"""
