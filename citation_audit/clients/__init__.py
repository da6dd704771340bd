"""Clients for external citation provider APIs."""
from citation_audit.clients.brightlocal_client import BrightLocalClient, ProviderClient

__all__ = ["BrightLocalClient", "ProviderClient"]
