"""HTTP access to the AppPanel API."""

from apppanel.net.client import NetworkClient

__all__ = ["NetworkClient"]
