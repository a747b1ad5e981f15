"""API route handlers."""

from api.routes import health, wallet, github, merkle

__all__ = ["health", "wallet", "github", "merkle"]
