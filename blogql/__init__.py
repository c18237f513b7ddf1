"""GraphQL blog API: users, posts and comments behind a single endpoint."""

__version__ = "1.0.0"
