"""
Shared, cross-cutting code for the API.

`core/` holds settings and the document-store client that the feature
packages (`hektar/`, `upload/`) build on. Feature logic stays in the
feature package.
"""
