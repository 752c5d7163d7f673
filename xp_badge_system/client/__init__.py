"""HTTP client for the e-learning progress API"""

from .http_client import HttpClient

__all__ = ["HttpClient"]
