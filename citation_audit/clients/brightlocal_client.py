"""
BrightLocal Citation Tracker client with rate limiting using aiolimiter.
"""
import asyncio
import json
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from aiohttp import ClientError, ClientSession, ClientTimeout
from aiolimiter import AsyncLimiter
from loguru import logger

from citation_audit.config import (
    BRIGHTLOCAL_API_KEY,
    BRIGHTLOCAL_CATEGORY_ID,
    BRIGHTLOCAL_COUNTRY,
    BRIGHTLOCAL_URL,
    BUSINESS_TYPE,
    CONCURRENCY,
    REQUEST_TIMEOUT,
)
from citation_audit.errors import AuditDataError, ProviderError
from citation_audit.models import AuthoritativeRecord, ProviderListing

# Result groups returned by /v2/ct/get-results, merged in this order
RESULT_GROUPS = ("active", "pending", "possible")


class ProviderClient(ABC):
    """Interface the audit engine needs from a citation report provider."""

    @abstractmethod
    async def submit_report(self, location_id: str, record: AuthoritativeRecord) -> str:
        """Register the location's NAP with the provider and return a report id."""

    @abstractmethod
    async def run_report(self, report_id: str) -> None:
        """Start a scan for an existing report."""

    @abstractmethod
    async def get_report_status(self, report_id: str) -> str:
        ...

    @abstractmethod
    async def get_report_listings(self, report_id: str) -> List[ProviderListing]:
        ...

    @abstractmethod
    async def delete_report(self, report_id: str) -> None:
        ...

    async def close(self) -> None:
        """Release any held connections."""


def format_errors(errors: Any) -> str:
    """Render the provider's `errors` field for an exception message."""
    if not errors:
        return "unknown error"
    if isinstance(errors, list):
        return ", ".join(str(e) for e in errors)
    if isinstance(errors, str):
        return errors
    return json.dumps(errors)


class BrightLocalClient(ProviderClient):
    """
    Client for BrightLocal's location and Citation Tracker APIs.
    Constructed by whoever composes the engine and passed in explicitly.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = BRIGHTLOCAL_URL,
        rate_limiter: Optional[AsyncLimiter] = None,
        timeout: int = REQUEST_TIMEOUT,
    ):
        self.api_key = api_key or BRIGHTLOCAL_API_KEY
        if not self.api_key:
            raise ValueError("BRIGHTLOCAL_API_KEY must be set in environment or config")
        self.base_url = base_url.rstrip("/")
        # Token bucket: CONCURRENCY requests per second
        self.rate_limiter = rate_limiter or AsyncLimiter(max_rate=CONCURRENCY, time_period=1.0)
        self.timeout = timeout
        self._session: Optional[ClientSession] = None

    async def _get_session(self) -> ClientSession:
        """Get or create the aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = ClientSession(timeout=ClientTimeout(total=self.timeout))
        return self._session

    async def _request(
        self,
        path: str,
        method: str = "GET",
        params: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """
        Send a request to the BrightLocal API and return the decoded JSON body.

        GET requests carry parameters in the query string; other methods send
        them form-encoded in the body.

        Args:
            path: API path, e.g. "/v2/ct/get".
            method: HTTP method.
            params: Request parameters, `api-key` is added automatically.

        Returns:
            Parsed JSON response.
        """
        all_params = {"api-key": self.api_key, **(params or {})}
        url = f"{self.base_url}{path}"

        async with self.rate_limiter:
            session = await self._get_session()
            request_kwargs: Dict[str, Any] = {}
            if method == "GET":
                request_kwargs["params"] = all_params
            else:
                request_kwargs["data"] = all_params

            try:
                async with session.request(method, url, **request_kwargs) as resp:
                    if resp.status >= 400:
                        text = await resp.text()
                        raise ProviderError(
                            f"BrightLocal API {method} {path} failed ({resp.status}): {text}"
                        )
                    data = await resp.json(content_type=None)
            except (ClientError, asyncio.TimeoutError, ValueError) as e:
                logger.debug(f"⚠️ BrightLocal {method} {path} failed: {e}")
                raise ProviderError(f"BrightLocal API {method} {path} failed: {e}") from e

        if not isinstance(data, dict):
            raise ProviderError(f"BrightLocal API {method} {path} returned non-object body: {data!r}")
        logger.debug(f"BrightLocal {method} {path} success={data.get('success')}")
        return data

    async def search_business_category(self, category_name: str, country: str = BRIGHTLOCAL_COUNTRY) -> Optional[str]:
        """
        Look up a BrightLocal business category by name.

        Returns:
            Optional[str]: Id of the first matching category, or None if nothing matched.
        """
        res = await self._request("/v2/clients-and-locations/business-categories", "GET", {
            "country": country,
            "q": category_name,
        })
        categories = res.get("response")
        if not res.get("success") or not isinstance(categories, list) or not categories:
            return None
        first = categories[0]
        if not isinstance(first, dict) or first.get("id") is None:
            return None
        return str(first["id"])

    async def create_location(
        self,
        location_id: str,
        record: AuthoritativeRecord,
        website: Optional[str] = None,
        category_name: str = BUSINESS_TYPE,
    ) -> str:
        """
        Create a BrightLocal location holding the NAP data reports reference.
        The business category is looked up by name, falling back to
        BRIGHTLOCAL_CATEGORY_ID.

        Returns:
            str: BrightLocal location id.
        """
        category_id = await self.search_business_category(category_name) or BRIGHTLOCAL_CATEGORY_ID
        params = {
            "name": record.name,
            "telephone": record.phone,
            "city": record.city,
            "region": record.region,
            "postcode": record.postal_code,
            "country": BRIGHTLOCAL_COUNTRY,
            "url": website or re.sub(r"\s+", "", record.name.lower()) + ".com",
            "business-category-id": category_id,
            "location-reference": location_id,
        }
        if record.address_line:
            params["address1"] = record.address_line

        res = await self._request("/v2/clients-and-locations/locations/", "POST", params)
        bl_location_id = (res.get("response") or {}).get("location-id")
        if not res.get("success") or not bl_location_id:
            raise ProviderError(f"Failed to create BL location: {format_errors(res.get('errors'))}")
        return str(bl_location_id)

    async def create_report(self, bl_location_id: str, primary_location: str, business_type: str = BUSINESS_TYPE) -> str:
        """Create a Citation Tracker report for a BrightLocal location."""
        res = await self._request("/v2/ct/add", "POST", {
            "location-id": bl_location_id,
            "business-type": business_type,
            "primary-location": primary_location,
        })
        report_id = (res.get("response") or {}).get("report-id")
        if not res.get("success") or not report_id:
            raise ProviderError(f"Failed to create CT report: {format_errors(res.get('errors'))}")
        return str(report_id)

    async def submit_report(self, location_id: str, record: AuthoritativeRecord) -> str:
        primary_location = record.postal_code or record.city
        if not primary_location:
            raise AuditDataError(f"Location {location_id} has no postal code or city for competitor lookup")

        bl_location_id = await self.create_location(location_id, record)
        report_id = await self.create_report(bl_location_id, primary_location)
        logger.info(f"Created CT report {report_id} for location {location_id}")
        return report_id

    async def run_report(self, report_id: str) -> None:
        res = await self._request("/v2/ct/run", "POST", {"report-id": report_id})
        if not res.get("success"):
            raise ProviderError(f"Failed to run CT report {report_id}: {format_errors(res.get('errors'))}")

    async def get_report_status(self, report_id: str) -> str:
        res = await self._request("/v2/ct/get", "GET", {"report-id": report_id})
        # The report comes back under a top-level "report" key, not "response"
        report = res.get("report") or res.get("response")
        if not res.get("success") or not isinstance(report, dict) or "status" not in report:
            raise ProviderError(f"Failed to get CT report {report_id}: {format_errors(res.get('errors'))}")
        return str(report["status"])

    async def get_report_listings(self, report_id: str) -> List[ProviderListing]:
        """
        Fetch every citation for a report, merging the active, pending and
        possible groups into one list in that order.
        """
        res = await self._request("/v2/ct/get-results", "GET", {"report-id": report_id})
        response = res.get("response")
        if not res.get("success") or not isinstance(response, dict):
            raise ProviderError(f"Failed to get CT results for {report_id}: {format_errors(res.get('errors'))}")

        results = response.get("results") or {}
        listings: List[ProviderListing] = []
        for group in RESULT_GROUPS:
            for citation in results.get(group) or []:
                listings.append(ProviderListing.from_provider(citation))
        return listings

    async def delete_report(self, report_id: str) -> None:
        res = await self._request("/v2/ct/delete", "DELETE", {"report-id": report_id})
        if not res.get("success"):
            raise ProviderError(f"Failed to delete CT report {report_id}: {format_errors(res.get('errors'))}")

    async def close(self):
        """Close the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None
