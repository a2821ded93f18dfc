"""
Shopify Connector

Reads customers, products and orders from the Shopify Admin REST API
for a single tenant's store. Read-only, no retries: any failure is raised
to the caller.
"""
import httpx
from typing import Any, AsyncIterator, Dict, Optional

from shopsync.connectors.base import BaseConnector, ResourcePage
from shopsync.exceptions import TransportError, UpstreamError
from shopsync.utils.logger import log


class ShopifyConnector(BaseConnector):
    """
    Connector for Shopify Admin API

    Pages through collections using the cursor carried in the Link header.
    """

    def __init__(
        self,
        shop_domain: str,
        access_token: str,
        api_version: str = "2024-10",
        page_size: int = 250,
        timeout: float = 30.0,
        min_request_interval: float = 0.5,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize Shopify connector

        Args:
            shop_domain: Shopify store domain (e.g., "your-store.myshopify.com")
            access_token: Shopify Admin API access token
            api_version: API version to use
            page_size: Records per page (Shopify caps this at 250)
            timeout: Seconds per request
            min_request_interval: Minimum seconds between requests
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        super().__init__("shopify", min_request_interval=min_request_interval)

        self.shop_domain = shop_domain.replace('https://', '').replace('http://', '').rstrip('/')
        self.access_token = access_token
        self.api_version = api_version
        self.page_size = page_size
        self.timeout = timeout
        self.transport = transport
        self.base_url = f"https://{self.shop_domain}/admin/api/{api_version}"

    def _get_headers(self) -> Dict[str, str]:
        return {
            "X-Shopify-Access-Token": self.access_token,
            "Content-Type": "application/json",
        }

    async def _get(self, url: str, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        await self._rate_limit()

        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
                response = await client.get(url, params=params or None, headers=self._get_headers())
        except httpx.RequestError as e:
            log.error(f"Shopify request to {url} failed: {type(e).__name__}: {e}")
            raise TransportError(f"Could not reach Shopify: {type(e).__name__}: {e}", url=url) from e

        if not response.is_success:
            log.error(f"Shopify API error for {url}: {response.status_code} {response.reason_phrase}")
            raise UpstreamError(response.status_code, response.reason_phrase, url=url)

        return response

    async def fetch_page(
        self,
        resource: str,
        params: Optional[Dict[str, Any]] = None,
        url: Optional[str] = None
    ) -> ResourcePage:
        """
        Fetch one page of a collection.

        Args:
            resource: Collection name ('customers', 'products', 'orders')
            params: Query parameters for the first page
            url: Next-page URL from a previous page (carries page_info;
                 Shopify rejects other filters alongside it)

        Returns:
            ResourcePage with decoded records and the next-page URL, if any
        """
        if url is None:
            url = f"{self.base_url}/{resource}.json"
            response = await self._get(url, params)
        else:
            response = await self._get(url)

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamError(response.status_code, "invalid JSON body", url=url) from e

        records = data.get(resource, []) if isinstance(data, dict) else []
        next_link = response.links.get("next")

        return ResourcePage(
            resource=resource,
            records=records or [],
            next_url=next_link.get("url") if next_link else None
        )

    def customer_pages(self) -> AsyncIterator[ResourcePage]:
        return self.iter_pages("customers", limit=self.page_size)

    def product_pages(self) -> AsyncIterator[ResourcePage]:
        return self.iter_pages("products", limit=self.page_size)

    def order_pages(self) -> AsyncIterator[ResourcePage]:
        # status=any: open, closed and cancelled
        return self.iter_pages("orders", limit=self.page_size, status="any")

    async def authenticate(self) -> str:
        """
        Check the access token against shop.json

        Returns:
            The shop name
        """
        response = await self._get(f"{self.base_url}/shop.json")
        try:
            shop = response.json().get("shop") or {}
        except ValueError as e:
            raise UpstreamError(response.status_code, "invalid JSON body", url=str(response.url)) from e
        log.info(f"Authenticated with Shopify store: {shop.get('name', self.shop_domain)}")
        return shop.get("name", self.shop_domain)
