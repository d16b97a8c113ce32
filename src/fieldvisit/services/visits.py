"""Visit endpoints: listing, status check, check-in and check-out"""
from datetime import date
from typing import Any, Dict, List, Optional, Union
from urllib.parse import quote, urlencode

import structlog

from fieldvisit.models import (
    MultipartForm,
    PlanVisit,
    ResponseEnvelope,
    Transaction,
    UploadFile,
    Visit,
    VisitType,
)
from fieldvisit.services.base import BaseService, clean_params, parse_data, parse_items

logger = structlog.get_logger(__name__)

# Server messages that mark a business rejection of a new check-in
ACTIVE_VISIT_MARKER = "berjalan"
ALREADY_VISITED_MARKER = "sudah pernah visit"


def _segment(value: Union[int, str]) -> str:
    return quote(str(value), safe="")


class VisitService(BaseService):
    """Calls under ``/visit``, ``/visits`` and ``/planvisit``"""

    async def list_visits(
        self, params: Optional[Dict[str, Any]] = None
    ) -> tuple[List[Visit], ResponseEnvelope]:
        query = {"sort_column": "visit_date", "sort_direction": "desc"}
        query.update(clean_params(params))
        envelope = await self.api.request(
            f"/visits?{urlencode(query, doseq=True)}",
            "GET",
            token=self.token,
            label="FETCH_VISITS",
        )
        visits = parse_items(Visit, envelope)
        return visits, envelope

    async def list_plan_visits(
        self,
        visit_date: Optional[date] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> tuple[List[PlanVisit], ResponseEnvelope]:
        """Plan visits scheduled for one day, today when no date is given, earliest first"""
        query = {
            "per_page": 100,
            "filters[date]": (visit_date or date.today()).isoformat(),
            "sort_column": "visit_date",
            "sort_direction": "asc",
        }
        query.update(clean_params(params))
        envelope = await self.api.request(
            f"/planvisit?{urlencode(query, doseq=True)}",
            "GET",
            token=self.token,
            label="FETCH_PLANVISIT_LIST",
        )
        plan_visits = parse_items(PlanVisit, envelope)
        logger.debug("Fetched plan visits", count=len(plan_visits), date=query["filters[date]"])
        return plan_visits, envelope

    async def get_visit(self, visit_id: Union[int, str]) -> Visit:
        envelope = await self.api.request(
            f"/visit/{_segment(visit_id)}",
            "GET",
            token=self.token,
            label="FETCH_VISIT",
        )
        return parse_data(Visit, envelope)

    async def check_visit_status(self, outlet_id: Union[int, str]) -> ResponseEnvelope:
        """Ask whether a new visit may start at the outlet.

        Raises:
            BusinessRejection: an active visit exists or the outlet was visited today
        """
        if outlet_id is None or outlet_id == "":
            raise ValueError("Outlet ID tidak valid")
        logger.debug("Checking visit status", outlet_id=outlet_id)
        # Always asks the server: the answer changes with every check-in
        return await self.api.request(
            f"/visit/check?{urlencode({'outlet_id': outlet_id})}",
            "GET",
            token=self.token,
            skip_cache=True,
            label="GET_VISIT_STATUS",
        )

    async def check_in(
        self,
        outlet_id: Union[int, str],
        location: str,
        visit_type: Union[VisitType, str],
        photo: UploadFile,
        plan_visit_id: Optional[Union[int, str]] = None,
    ) -> ResponseEnvelope:
        visit_type = VisitType(visit_type)
        form = (
            MultipartForm()
            .add_field("outlet_id", str(outlet_id))
            .add_field("checkin_location", location)
            .add_field("type", visit_type.value)
        )
        if visit_type is VisitType.PLANNED and plan_visit_id is not None:
            form.add_field("plan_visit_id", str(plan_visit_id))
        form.add_file("checkin_photo", photo)
        logger.info("Submitting check-in",
                    outlet_id=outlet_id,
                    type=visit_type.value,
                    plan_visit_id=plan_visit_id)
        return await self.api.upload(
            "/visit", form, self.token, label="CHECK_IN_VISIT"
        )

    async def check_out(
        self,
        visit_id: Union[int, str],
        location: str,
        photo: UploadFile,
        transaction: Transaction,
        report: str,
    ) -> ResponseEnvelope:
        # The backend updates visits with POST, not PUT
        form = (
            MultipartForm()
            .add_field("checkout_location", location)
            .add_file("checkout_photo", photo)
            .add_field("transaction", Transaction(transaction).value)
            .add_field("report", report)
        )
        logger.info("Submitting check-out", visit_id=visit_id)
        return await self.api.upload(
            f"/visit/{_segment(visit_id)}", form, self.token, label="CHECK_OUT_VISIT"
        )

    async def delete_visit(self, visit_id: Union[int, str]) -> ResponseEnvelope:
        return await self.api.request(
            f"/visit/{_segment(visit_id)}",
            "DELETE",
            token=self.token,
            label="DELETE_VISIT",
        )
