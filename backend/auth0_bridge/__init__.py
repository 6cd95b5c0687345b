"""Auth0 authorization code login bridge."""

__version__ = "0.1.0"
