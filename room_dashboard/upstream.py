"""Client for the upstream planning API.

The planning API returns every reservation of the building for a date
range as ``{"activities": [...]}``. This module wraps the HTTP call with
``httpx`` and turns the payload into ``PlanningResponse`` models. Nothing
is cached: every call goes to the network, with caching disabled on the
request too.

There is no retry here; the dashboard's periodic refresh is the retry.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

import httpx
from pydantic import ValidationError

from .config import settings
from .models import PlanningResponse

logger = logging.getLogger(__name__)


class UpstreamError(Exception):
    """The planning API answered with a non-success status or an unusable body."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def parse_date_param(value: Optional[str]) -> Optional[date]:
    """Parse a ``YYYY-MM-DD`` query parameter, returning None when invalid."""
    if not value or len(value) != 10:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


class PlanningClient:
    """Small async wrapper around the planning endpoint."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url or settings.upstream_base_url
        self.timeout = timeout if timeout is not None else settings.upstream_timeout_seconds
        self.transport = transport

    async def get_planning(self, start_date: str, end_date: str) -> httpx.Response:
        """Request the planning for ``[start_date, end_date]`` and return the raw response.

        Raises:
            httpx.RequestError: on connection failures and timeouts.
        """
        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self.transport, follow_redirects=True
        ) as client:
            return await client.get(
                self.base_url,
                params={"startDate": start_date, "endDate": end_date},
                headers={"Accept": "application/json", "Cache-Control": "no-cache"},
            )

    async def fetch_activities(self, start_date: str, end_date: str) -> PlanningResponse:
        """Fetch and parse the planning for a date range.

        Raises:
            UpstreamError: if the API answers with a non-2xx status or a body
                that does not match the expected shape.
            httpx.RequestError: on connection failures and timeouts.
        """
        response = await self.get_planning(start_date, end_date)
        if not response.is_success:
            logger.error(
                "Planning API returned %s for %s..%s", response.status_code, start_date, end_date
            )
            raise UpstreamError(response.status_code, "Failed to fetch room data")
        try:
            planning = PlanningResponse.model_validate_json(response.content)
        except ValidationError as exc:
            logger.error("Planning API returned an unexpected payload: %s", exc)
            raise UpstreamError(502, "Planning API returned an unexpected payload") from exc
        logger.debug("Fetched %d activities for %s..%s", len(planning.activities), start_date, end_date)
        return planning
