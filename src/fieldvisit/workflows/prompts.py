"""User-facing prompts raised by the visit workflows"""
from dataclasses import dataclass
from enum import Enum
from typing import Tuple


class PromptAction(str, Enum):
    DISMISS = "dismiss"
    EDIT_OUTLET = "edit_outlet"
    RETRY_LOCATION = "retry_location"
    OPEN_SETTINGS = "open_settings"


@dataclass(frozen=True)
class Prompt:
    """A dialog the UI should show; the workflow never renders it itself."""

    title: str
    message: str
    actions: Tuple[PromptAction, ...] = (PromptAction.DISMISS,)


SELECT_OUTLET = Prompt("Pilih Outlet", "Silakan pilih outlet terlebih dahulu.")
SELECT_PLAN_VISIT = Prompt(
    "Pilih Plan Visit", "Silakan pilih plan visit hari ini terlebih dahulu."
)
PLAN_VISIT_FAILED_TITLE = "Gagal Memuat Plan Visit"
OUTLET_FAILED_TITLE = "Gagal Memuat Outlet"
OUTLET_INCOMPLETE_TITLE = "Data Outlet Belum Lengkap"
TOO_FAR_TITLE = "Lokasi Terlalu Jauh"
LOCATION_MISSING = Prompt(
    "Lokasi Tidak Terdeteksi",
    "Lokasi Anda belum terdeteksi. Pastikan GPS aktif.",
    (PromptAction.RETRY_LOCATION, PromptAction.DISMISS),
)
LOCATION_PERMISSION = Prompt(
    "Izin Lokasi Diperlukan",
    "Check-in membutuhkan izin lokasi untuk memverifikasi bahwa Anda berada "
    "di outlet. Silakan aktifkan akses lokasi di pengaturan perangkat Anda.",
    (PromptAction.OPEN_SETTINGS, PromptAction.DISMISS),
)
LOCATION_FAILED = Prompt(
    "Kesalahan Lokasi",
    "Gagal mendapatkan lokasi Anda. Pastikan GPS aktif dan coba lagi.",
    (PromptAction.RETRY_LOCATION, PromptAction.DISMISS),
)
PHOTO_FAILED_TITLE = "Gagal Mengambil Foto"
CHECK_STATUS_FAILED_TITLE = "Cek Status Gagal"
ACTIVE_VISIT_TITLE = "Visit Aktif"
ALREADY_VISITED_TITLE = "Sudah Pernah Visit"
CHECKIN_SUCCESS = Prompt("Check In Berhasil", "Data berhasil disimpan.")
CHECKIN_FAILED_TITLE = "Check In Gagal"
CHECKOUT_SUCCESS = Prompt("Check Out Berhasil", "Data berhasil disimpan.")
CHECKOUT_FAILED_TITLE = "Check Out Gagal"
