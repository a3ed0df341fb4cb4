"""Users API: a REST service for CRUD over a user resource."""

__version__ = "0.1.0"
