"""Geofenced check-in: outlet or plan visit selection, location, visit status, photo, submission."""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import List, Optional, Union

import structlog

from fieldvisit.config import Settings
from fieldvisit.device import Camera, LocationProvider
from fieldvisit.exceptions import (
    ApiError,
    BusinessRejection,
    CameraUnavailable,
    GeofenceViolation,
    LocationPermissionDenied,
    LocationUnavailable,
)
from fieldvisit.geo.geofence import GeofencePolicy, GeofenceResult, GeofenceStatus
from fieldvisit.media import photo_upload, prepare_photo
from fieldvisit.models import (
    Coordinate,
    LocationSample,
    Outlet,
    PlanVisit,
    ResponseEnvelope,
    VisitType,
)
from fieldvisit.services.outlets import OutletService
from fieldvisit.services.visits import (
    ACTIVE_VISIT_MARKER,
    ALREADY_VISITED_MARKER,
    VisitService,
)
from fieldvisit.workflows import prompts
from fieldvisit.workflows.prompts import Prompt, PromptAction

logger = structlog.get_logger(__name__)


class CheckInStep(str, Enum):
    SELECTING_OUTLET = "selecting_outlet"
    ACQUIRING_LOCATION = "acquiring_location"
    BLOCKED = "blocked"
    TOO_FAR = "too_far"
    VALID = "valid"
    CAPTURING_PHOTO = "capturing_photo"
    SUBMITTING = "submitting"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


# Steps whose value follows the latest geofence evaluation
GEOFENCE_STEPS = {
    CheckInStep.ACQUIRING_LOCATION,
    CheckInStep.BLOCKED,
    CheckInStep.TOO_FAR,
    CheckInStep.VALID,
}

STEP_FOR_STATUS = {
    GeofenceStatus.BLOCKED: CheckInStep.BLOCKED,
    GeofenceStatus.TOO_FAR: CheckInStep.TOO_FAR,
    GeofenceStatus.VALID: CheckInStep.VALID,
}


@dataclass
class CheckInSession:
    """State of one check-in attempt at one outlet."""

    outlet: Outlet
    step: CheckInStep = CheckInStep.ACQUIRING_LOCATION
    current_location: Optional[LocationSample] = None
    geofence: Optional[GeofenceResult] = None
    distance_meters: Optional[float] = None
    validated: bool = False
    captured_photo_uri: Optional[str] = None
    visit_type: VisitType = VisitType.EXTRACALL
    plan_visit: Optional[PlanVisit] = None
    # Set while this session waits on the server or the camera
    busy: bool = False

    @property
    def outlet_id(self) -> Union[int, str]:
        return self.outlet.id

    @property
    def plan_visit_id(self) -> Optional[Union[int, str]]:
        return self.plan_visit.id if self.plan_visit is not None else None


class CheckInWorkflow:
    """Drives one check-in screen.

    Every change of outlet or location re-runs the geofence policy against
    the current session state. Results of awaited calls are only applied
    when the session that started them is still the active one.
    """

    def __init__(
        self,
        visits: VisitService,
        outlets: OutletService,
        location_provider: LocationProvider,
        camera: Camera,
        policy: Optional[GeofencePolicy] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or Settings()
        self.visits = visits
        self.outlets = outlets
        self.location_provider = location_provider
        self.camera = camera
        self.policy = policy or GeofencePolicy(self.settings.geofence_fallback_radius)

        self.session: Optional[CheckInSession] = None
        self.location: Optional[LocationSample] = None
        self.prompt: Optional[Prompt] = None
        self.result: Optional[ResponseEnvelope] = None
        self.visit_type = VisitType(self.settings.checkin_visit_type)
        self.plan_visits: List[PlanVisit] = []
        self.history: List[CheckInStep] = [CheckInStep.SELECTING_OUTLET]

        self._closed_step: Optional[CheckInStep] = None
        self._location_generation = 0
        self._selection_generation = 0
        self._plan_generation = 0

    @property
    def step(self) -> CheckInStep:
        if self.session is not None:
            return self.session.step
        return self._closed_step or CheckInStep.SELECTING_OUTLET

    @property
    def busy(self) -> bool:
        """True while the active session waits on a call or the camera; the UI disables its buttons."""
        return self.session is not None and self.session.busy

    def _set_step(self, step: CheckInStep) -> None:
        if self.session is None:
            return
        if self.session.step is not step:
            logger.debug("Check-in step changed",
                         outlet_id=self.session.outlet_id,
                         previous=self.session.step.value,
                         step=step.value)
        self.session.step = step
        self.history.append(step)

    # Outlet and location

    def set_visit_type(self, visit_type: Union[VisitType, str]) -> None:
        """Switch between planned and ad-hoc check-ins; a running session is discarded."""
        visit_type = VisitType(visit_type)
        if visit_type is self.visit_type:
            return
        self.visit_type = visit_type
        self._selection_generation += 1
        self.prompt = None
        self.result = None
        if self.session is not None:
            logger.info("Visit type changed, session discarded",
                        outlet_id=self.session.outlet_id,
                        visit_type=visit_type.value)
        self.session = None
        self._closed_step = None
        self.history.append(CheckInStep.SELECTING_OUTLET)

    async def load_plan_visits(self, visit_date: Optional[date] = None) -> bool:
        """Fetch the plan visits of the day into ``plan_visits``."""
        self._plan_generation += 1
        generation = self._plan_generation
        try:
            plan_visits, _ = await self.visits.list_plan_visits(visit_date)
        except ApiError as e:
            if generation == self._plan_generation:
                self.prompt = Prompt(prompts.PLAN_VISIT_FAILED_TITLE, e.message)
            return False
        if generation != self._plan_generation:
            return False
        self.plan_visits = plan_visits
        return True

    def select_outlet(self, outlet: Outlet, plan_visit: Optional[PlanVisit] = None) -> None:
        """Start a fresh session for ``outlet``; the previous one is discarded."""
        self._selection_generation += 1
        self.prompt = None
        self.result = None
        self._closed_step = None
        self.session = CheckInSession(
            outlet=outlet,
            current_location=self.location,
            visit_type=VisitType.PLANNED if plan_visit is not None else self.visit_type,
            plan_visit=plan_visit,
        )
        self.history.append(CheckInStep.ACQUIRING_LOCATION)
        logger.info("Outlet selected",
                    outlet_id=outlet.id,
                    radius=outlet.radius,
                    visit_type=self.session.visit_type.value,
                    plan_visit_id=self.session.plan_visit_id)
        self._evaluate()

    async def select_outlet_by_id(self, outlet_id: Union[int, str]) -> bool:
        self._selection_generation += 1
        generation = self._selection_generation
        try:
            outlet = await self.outlets.get_outlet(outlet_id)
        except ApiError as e:
            if generation == self._selection_generation:
                self.prompt = Prompt(prompts.OUTLET_FAILED_TITLE, e.message)
            return False
        if generation != self._selection_generation:
            logger.debug("Discarding outlet fetched for an older selection",
                         outlet_id=outlet_id)
            return False
        self.select_outlet(outlet)
        return True

    def select_plan_visit(self, plan_visit: PlanVisit) -> bool:
        """Start a planned check-in at the outlet the plan visit is scheduled for."""
        if plan_visit.outlet is None:
            self.prompt = Prompt(
                prompts.OUTLET_INCOMPLETE_TITLE,
                "Data outlet untuk plan visit ini tidak tersedia.",
            )
            return False
        self.set_visit_type(VisitType.PLANNED)
        self.select_outlet(plan_visit.outlet, plan_visit)
        return True

    def update_location(self, sample: Union[LocationSample, Coordinate]) -> None:
        """Replace the current sample and re-evaluate the geofence."""
        if isinstance(sample, Coordinate):
            sample = LocationSample(coordinate=sample)
        self._location_generation += 1
        self.location = sample
        if self.session is not None:
            self.session.current_location = sample
            self._evaluate()

    async def acquire_location(self) -> bool:
        """Ask the device for a fix; samples overtaken by a newer one are dropped."""
        self._location_generation += 1
        generation = self._location_generation
        try:
            coordinate = await self.location_provider.current_position()
        except LocationPermissionDenied:
            logger.warning("Location permission denied")
            self.prompt = prompts.LOCATION_PERMISSION
            return False
        except LocationUnavailable as e:
            logger.warning("Location unavailable", error=str(e))
            self.prompt = prompts.LOCATION_FAILED
            return False

        if generation != self._location_generation:
            logger.debug("Discarding stale location sample")
            return False
        self.update_location(coordinate)
        return True

    def _evaluate(self) -> None:
        session = self.session
        if session is None:
            return

        if session.current_location is None:
            if Coordinate.parse(session.outlet.location) is None:
                result = GeofenceResult(status=GeofenceStatus.BLOCKED)
            else:
                return
        else:
            result = self.policy.evaluate(
                session.outlet, session.current_location.coordinate
            )

        session.geofence = result
        session.distance_meters = result.distance_meters
        session.validated = result.is_valid

        if session.step in GEOFENCE_STEPS:
            self._set_step(STEP_FOR_STATUS[result.status])
            if result.status is GeofenceStatus.BLOCKED:
                self._check_geofence(session)

    @staticmethod
    def _geofence_prompt(violation: GeofenceViolation) -> Prompt:
        if violation.blocked:
            return Prompt(
                prompts.OUTLET_INCOMPLETE_TITLE,
                violation.message,
                (PromptAction.EDIT_OUTLET, PromptAction.DISMISS),
            )
        return Prompt(
            prompts.TOO_FAR_TITLE,
            violation.message,
            (PromptAction.EDIT_OUTLET, PromptAction.RETRY_LOCATION, PromptAction.DISMISS),
        )

    def _check_geofence(self, session: CheckInSession) -> bool:
        """Turn the latest evaluation into a prompt when it does not allow a check-in."""
        if session.geofence is None:
            self.prompt = prompts.LOCATION_MISSING
            return False
        try:
            self.policy.require_valid(session.geofence)
        except GeofenceViolation as e:
            logger.info("Geofence does not allow check-in",
                        outlet_id=session.outlet_id,
                        distance=session.distance_meters,
                        radius=e.allowed_radius,
                        blocked=e.blocked)
            self.prompt = self._geofence_prompt(e)
            return False
        return True

    # Transitions

    async def proceed(self) -> bool:
        """Move from a valid position to photo capture after the visit-status check."""
        self.prompt = None
        session = self.session
        if session is None:
            self.prompt = prompts.SELECT_OUTLET
            return False
        if session.step is CheckInStep.CAPTURING_PHOTO:
            return True
        if session.step not in GEOFENCE_STEPS or session.busy:
            logger.debug("Proceed ignored", step=session.step.value, busy=session.busy)
            return False
        if session.visit_type is VisitType.PLANNED and session.plan_visit is None:
            self.prompt = prompts.SELECT_PLAN_VISIT
            return False
        if not self._check_geofence(session):
            return False

        session.busy = True
        try:
            await self.visits.check_visit_status(session.outlet_id)
        except BusinessRejection as e:
            if self.session is session:
                self.prompt = Prompt(self._rejection_title(e.message), e.message)
            return False
        except ApiError as e:
            if self.session is session:
                self.prompt = Prompt(prompts.CHECK_STATUS_FAILED_TITLE, e.message)
            return False
        finally:
            session.busy = False

        if self.session is not session or session.step is not CheckInStep.VALID:
            logger.info("Discarding visit status for a changed session",
                        outlet_id=session.outlet_id)
            return False

        self._set_step(CheckInStep.CAPTURING_PHOTO)
        return True

    @staticmethod
    def _rejection_title(message: str) -> str:
        lowered = message.lower()
        if ACTIVE_VISIT_MARKER in lowered:
            return prompts.ACTIVE_VISIT_TITLE
        if ALREADY_VISITED_MARKER in lowered:
            return prompts.ALREADY_VISITED_TITLE
        return prompts.CHECK_STATUS_FAILED_TITLE

    async def capture_and_submit(self) -> bool:
        """Take the check-in photo and submit it in one action."""
        self.prompt = None
        session = self.session
        if session is None:
            self.prompt = prompts.SELECT_OUTLET
            return False
        if session.busy or session.step not in (CheckInStep.CAPTURING_PHOTO, CheckInStep.FAILED):
            logger.debug("Submit ignored", step=session.step.value, busy=session.busy)
            return False
        if session.current_location is None:
            self.prompt = prompts.LOCATION_MISSING
            return False
        # The position may have moved since proceed(); the newest evaluation decides
        if not self._check_geofence(session):
            self._set_step(STEP_FOR_STATUS[session.geofence.status])
            return False

        session.busy = True
        failure: Optional[str] = None
        envelope: Optional[ResponseEnvelope] = None
        try:
            try:
                raw = await self.camera.capture(front=True)
                content = prepare_photo(
                    raw,
                    max_width=self.settings.photo_max_width,
                    quality=self.settings.photo_quality,
                )
            except CameraUnavailable as e:
                if self.session is session:
                    self.prompt = Prompt(prompts.PHOTO_FAILED_TITLE, str(e))
                return False

            if self.session is not session:
                return False

            photo = photo_upload("checkin", content)
            session.captured_photo_uri = photo.filename
            self._set_step(CheckInStep.SUBMITTING)

            try:
                envelope = await self.visits.check_in(
                    session.outlet_id,
                    session.current_location.coordinate.to_location_string(),
                    session.visit_type,
                    photo,
                    plan_visit_id=session.plan_visit_id,
                )
            except ApiError as e:
                failure = e.message
        finally:
            session.busy = False

        if self.session is not session:
            logger.info("Check-in result arrived for an abandoned session",
                        outlet_id=session.outlet_id,
                        succeeded=failure is None)
            return False

        if envelope is not None and envelope.meta.code == 200:
            self._set_step(CheckInStep.COMPLETED)
            logger.info("Check-in completed", outlet_id=session.outlet_id)
            self.result = envelope
            self.prompt = prompts.CHECKIN_SUCCESS
            self._close(CheckInStep.COMPLETED)
            return True

        message = failure or (envelope.meta.message if envelope else "") or "Gagal check in"
        logger.warning("Check-in failed", outlet_id=session.outlet_id, message=message)
        self._set_step(CheckInStep.FAILED)
        self.prompt = Prompt(prompts.CHECKIN_FAILED_TITLE, message)
        session.captured_photo_uri = None
        self._set_step(CheckInStep.CAPTURING_PHOTO)
        return False

    def cancel(self) -> None:
        """Leave the screen; an in-flight submission finishes but is ignored."""
        if self.session is None:
            return
        logger.info("Check-in cancelled",
                    outlet_id=self.session.outlet_id,
                    step=self.session.step.value)
        self.prompt = None
        self.history.append(CheckInStep.CANCELLED)
        self._close(CheckInStep.CANCELLED)

    def _close(self, step: CheckInStep) -> None:
        self.session = None
        self._closed_step = step
