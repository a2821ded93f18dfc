"""
Base Connector Class

Data connectors inherit from this base class.
Provides request pacing and the paged-read contract the sync engine consumes.
"""
import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional

from shopsync.utils.logger import log


@dataclass
class ResourcePage:
    """One decoded page of a resource collection"""
    resource: str
    records: List[Dict[str, Any]] = field(default_factory=list)
    next_url: Optional[str] = None

    @property
    def has_next(self) -> bool:
        return self.next_url is not None


class BaseConnector(ABC):
    """
    Base class for external data source connectors

    Implements common patterns:
    - Request pacing (minimum interval between calls)
    - Lazy page iteration over a collection
    """

    def __init__(self, source_name: str, min_request_interval: float = 0.0):
        """
        Initialize connector

        Args:
            source_name: Name of data source (e.g., 'shopify')
            min_request_interval: Minimum seconds between two requests
        """
        self.source_name = source_name
        self.min_request_interval = min_request_interval
        self.last_request_time = 0.0
        self.request_count = 0

    @abstractmethod
    async def fetch_page(
        self,
        resource: str,
        params: Optional[Dict[str, Any]] = None,
        url: Optional[str] = None
    ) -> ResourcePage:
        """Fetch a single page of a resource collection"""
        pass

    async def iter_pages(self, resource: str, **params) -> AsyncIterator[ResourcePage]:
        """
        Yield pages of a collection lazily, one request per page.

        The next page is only requested once the caller asks for it.
        """
        page = await self.fetch_page(resource, params=params)
        page_number = 1
        log.debug(f"{self.source_name} {resource} page {page_number}: {len(page.records)} records")
        yield page

        while page.has_next:
            page = await self.fetch_page(resource, url=page.next_url)
            page_number += 1
            log.debug(f"{self.source_name} {resource} page {page_number}: {len(page.records)} records")
            yield page

    async def _rate_limit(self):
        """Sleep so consecutive requests are at least min_request_interval apart"""
        if self.min_request_interval > 0 and self.last_request_time:
            elapsed = time.monotonic() - self.last_request_time
            if elapsed < self.min_request_interval:
                await asyncio.sleep(self.min_request_interval - elapsed)
        self.last_request_time = time.monotonic()
        self.request_count += 1
