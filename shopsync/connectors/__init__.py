"""Data Connectors for the Shopify Insights backend"""

from shopsync.connectors.base import BaseConnector, ResourcePage
from shopsync.connectors.shopify_connector import ShopifyConnector

__all__ = [
    "BaseConnector",
    "ResourcePage",
    "ShopifyConnector"
]
