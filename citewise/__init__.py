"""Citewise: permission-scoped hybrid retrieval and grounded answers."""
