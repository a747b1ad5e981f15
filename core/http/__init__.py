"""
HTTP Client Module

Read-only HTTP client with bounded timeout and single retry.
"""

from .client import HttpClient, HttpError, HttpResponse

__all__ = [
    "HttpClient",
    "HttpError",
    "HttpResponse",
]
