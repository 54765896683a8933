"""Policy decision engine for dynamic OAuth/OIDC client registration."""

__version__ = "0.1.0"
