"""Shopify Insights Backend - multi-tenant Shopify data sync"""

__version__ = "1.0.0"
