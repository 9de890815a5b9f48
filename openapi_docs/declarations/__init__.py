"""Endpoint declarations: value objects, security schemes and the registry.

Kept free of imports so that ``openapi_docs.core.config`` can import the
declaration types without pulling in the registry.
"""
