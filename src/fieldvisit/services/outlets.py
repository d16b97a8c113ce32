"""Outlet lookups"""
from typing import Any, Dict, List, Optional, Union
from urllib.parse import quote, urlencode

import structlog

from fieldvisit.models import Outlet, ResponseEnvelope
from fieldvisit.services.base import BaseService, clean_params, parse_data, parse_items

logger = structlog.get_logger(__name__)


class OutletService(BaseService):
    """Read access to ``/outlets``"""

    async def list_outlets(
        self, params: Optional[Dict[str, Any]] = None
    ) -> tuple[List[Outlet], ResponseEnvelope]:
        query = urlencode(clean_params(params), doseq=True)
        url = f"/outlets?{query}" if query else "/outlets"
        envelope = await self.api.request(
            url, "GET", token=self.token, label="FETCH_OUTLET_LIST"
        )
        outlets = parse_items(Outlet, envelope)
        logger.debug("Fetched outlets", count=len(outlets))
        return outlets, envelope

    async def get_outlet(self, outlet_id: Union[int, str]) -> Outlet:
        envelope = await self.api.request(
            f"/outlets/{quote(str(outlet_id), safe='')}",
            "GET",
            token=self.token,
            label="FETCH_OUTLET_ITEM",
        )
        return parse_data(Outlet, envelope)
