"""Check-out form: note, transaction outcome, photo and submission."""

from typing import Optional, Union

import structlog

from fieldvisit.config import Settings
from fieldvisit.device import Camera, LocationProvider
from fieldvisit.exceptions import ApiError, CameraUnavailable, LocationUnavailable
from fieldvisit.media import photo_upload, prepare_photo
from fieldvisit.models import ResponseEnvelope, Transaction, Visit
from fieldvisit.services.visits import VisitService
from fieldvisit.workflows import prompts
from fieldvisit.workflows.prompts import Prompt

logger = structlog.get_logger(__name__)


class CheckOutWorkflow:
    """Closes an active visit.

    The form keeps its values after a failed submission so the user can
    retry without retyping the report.
    """

    def __init__(
        self,
        visits: VisitService,
        location_provider: LocationProvider,
        camera: Camera,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or Settings()
        self.visits = visits
        self.location_provider = location_provider
        self.camera = camera

        self.visit: Optional[Visit] = None
        self.note = ""
        self.transaction: Optional[Transaction] = None
        self.prompt: Optional[Prompt] = None
        self.result: Optional[ResponseEnvelope] = None
        self.submitting = False
        self.completed = False

    async def load(self, visit_id: Union[int, str]) -> bool:
        """Fetch the visit being closed."""
        try:
            self.visit = await self.visits.get_visit(visit_id)
        except ApiError as e:
            logger.warning("Failed to load visit", visit_id=visit_id, error=e.message)
            self.visit = None
            self.prompt = Prompt("Gagal Memuat Visit", e.message)
            return False
        return True

    def set_note(self, text: str) -> None:
        self.note = text

    def set_transaction(self, value: Union[Transaction, str]) -> None:
        self.transaction = Transaction(value)

    @property
    def can_submit(self) -> bool:
        return (
            self.visit is not None
            and self.visit.outlet is not None
            and bool(self.note.strip())
            and self.transaction is not None
            and not self.submitting
            and not self.completed
        )

    def _validation_prompt(self) -> Optional[Prompt]:
        if self.visit is None or self.visit.outlet is None:
            return Prompt(
                "Outlet Error",
                "Data outlet tidak valid. Silakan ulangi dari halaman utama.",
            )
        if not self.note.strip():
            return Prompt("Catatan Wajib", "Mohon isi catatan untuk check out.")
        if self.transaction is None:
            return Prompt("Transaksi Wajib", "Mohon pilih status transaksi.")
        return None

    async def _best_effort_location(self) -> str:
        try:
            coordinate = await self.location_provider.current_position()
        except LocationUnavailable as e:
            logger.info("Check-out without location", error=str(e))
            return ""
        return coordinate.to_location_string()

    async def submit(self) -> bool:
        if self.submitting or self.completed:
            logger.debug("Check-out submit ignored",
                         submitting=self.submitting, completed=self.completed)
            return False

        self.prompt = self._validation_prompt()
        if self.prompt is not None:
            return False

        self.submitting = True
        try:
            location = await self._best_effort_location()
            try:
                raw = await self.camera.capture(front=True)
                content = prepare_photo(
                    raw,
                    max_width=self.settings.photo_max_width,
                    quality=self.settings.photo_quality,
                    flip=True,
                )
            except CameraUnavailable as e:
                self.prompt = Prompt(prompts.PHOTO_FAILED_TITLE, str(e))
                return False

            envelope = await self.visits.check_out(
                self.visit.id,
                location,
                photo_upload("checkout", content),
                self.transaction,
                self.note.strip(),
            )
        except ApiError as e:
            logger.warning("Check-out failed", visit_id=self.visit.id, error=e.message)
            self.prompt = Prompt(prompts.CHECKOUT_FAILED_TITLE, e.message)
            return False
        finally:
            self.submitting = False

        if envelope.meta.code != 200:
            self.prompt = Prompt(
                prompts.CHECKOUT_FAILED_TITLE, envelope.meta.message or "Gagal check out"
            )
            return False

        logger.info("Check-out completed", visit_id=self.visit.id)
        self.result = envelope
        self.completed = True
        self.prompt = prompts.CHECKOUT_SUCCESS
        return True
