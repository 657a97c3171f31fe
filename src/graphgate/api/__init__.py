"""
HTTP layer: middleware and auxiliary routes around the GraphQL endpoint.
"""
