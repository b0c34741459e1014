"""Scheduling domain schemas - Pydantic models for validation"""

from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

from ...utils.sanitization import sanitize_string


class BookingRequest(BaseModel):
    """
    Schema for booking an appointment.

    Booking fields are accepted as sent so that missing or mistyped values
    are reported by the booking service as a 400 with a single, actionable
    message.
    """

    salon_id: Optional[Any] = Field(default=None, validation_alias=AliasChoices("salon_id", "salonId"))
    staff_id: Optional[Any] = Field(default=None, validation_alias=AliasChoices("staff_id", "staffId"))
    start_at: Optional[Any] = Field(default=None, validation_alias=AliasChoices("start_at", "startAt"))
    service_ids: Optional[Any] = Field(
        default=None, validation_alias=AliasChoices("service_ids", "serviceIds")
    )
    notes: Optional[str] = None

    @field_validator("notes")
    @classmethod
    def sanitize_notes(cls, v):
        if v:
            return sanitize_string(v.strip())
        return v


class CancelRequest(BaseModel):
    """Schema for cancelling an appointment"""

    cancellation_reason: Optional[str] = Field(default=None, max_length=500)

    @field_validator("cancellation_reason")
    @classmethod
    def sanitize_reason(cls, v):
        if v:
            return sanitize_string(v.strip())
        return v


class DayAvailability(BaseModel):
    date: str
    times: list[str]
    status: str
    message: str


class SalonSummary(BaseModel):
    id: str
    name: str
    hours: Optional[dict] = None


class AvailabilityResponse(BaseModel):
    success: bool = True
    message: str
    salon: SalonSummary
    availability: list[DayAvailability]
    total_days: int
    available_days: int


class ServiceResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    price: float
    duration: int

    class Config:
        from_attributes = True


class SalonServicesResponse(BaseModel):
    success: bool = True
    message: str
    salon: SalonSummary
    services: list[ServiceResponse]
    total_services: int


class AppointmentEnvelope(BaseModel):
    """Wire shape for single-appointment responses"""

    success: bool = True
    message: str
    appointment: dict
    next_step: Optional[str] = None
    cancellation_details: Optional[dict] = None


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_count: int
    limit: int
    has_next_page: bool
    has_prev_page: bool


class AppointmentListResponse(BaseModel):
    success: bool = True
    message: str
    appointments: list[dict]
    pagination: Pagination
    filters: dict


class AppointmentStatsResponse(BaseModel):
    success: bool = True
    message: str
    stats: dict
    summary: dict
