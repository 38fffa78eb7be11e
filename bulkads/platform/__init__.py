"""
Advertising platform integration module.

This module contains the remote platform client facade, its Facebook Marketing
API implementation and the platform error hierarchy.
"""

from .client import FacebookAdsClient, RemotePlatformClient

__all__ = ['FacebookAdsClient', 'RemotePlatformClient']
