"""Notification template context model.

Builds the variables dictionary shared by every notification template from
an appointment and its business.

Author: Odiseo
Created: 2025-10-18
Version: 1.1.0
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from booking_notifications.models.appointment import Appointment, Business


class AppointmentContext(BaseModel):
    """Template variables describing one appointment.

    Attributes:
        customer_name: Full name of the customer.
        customer_email: Customer email address.
        customer_phone: Customer phone (optional).
        business_name: Business display name.
        business_email: Business contact email (also used as Reply-To).
        business_phone: Business phone (optional).
        business_address: Business address (optional).
        service_name: Booked service.
        appointment_date: Local date, YYYY-MM-DD.
        appointment_time: Local time, HH:MM.
        doctor_name: Assigned staff member (optional).
        notes: Customer notes (optional).
        status: Appointment status (status updates only).
        rating_url: Feedback link (rating requests only).
        appointment_ref: Appointment ID.
        business_ref: Business ID (optional).
        customer_ref: Registered customer ID (optional).
    """

    customer_name: str = Field(default="", description="Customer name")
    customer_email: str = Field(..., description="Customer email")
    customer_phone: str | None = Field(default=None)
    business_name: str = Field(default="", description="Business name")
    business_email: str = Field(..., description="Business email")
    business_phone: str | None = Field(default=None)
    business_address: str | None = Field(default=None)
    service_name: str = Field(default="", description="Service name")
    appointment_date: str = Field(..., description="Appointment date")
    appointment_time: str = Field(..., description="Appointment time")
    doctor_name: str | None = Field(default=None)
    notes: str | None = Field(default=None)
    status: str | None = Field(default=None)
    rating_url: str | None = Field(default=None)
    appointment_ref: str | None = Field(default=None)
    business_ref: str | None = Field(default=None)
    customer_ref: str | None = Field(default=None)

    @classmethod
    def from_appointment(
        cls, appointment: Appointment, business: Business | None = None, **extra: Any
    ) -> AppointmentContext:
        """Build the context, preferring the appointment's own business snapshot."""
        return cls(
            customer_name=appointment.customer_name,
            customer_email=appointment.customer_email,
            customer_phone=appointment.customer_phone,
            business_name=appointment.business_name or (business.name if business else ""),
            business_email=business.email if business else appointment.business_email,
            business_phone=business.phone if business else None,
            business_address=appointment.business_address
            or (business.address if business else None),
            service_name=appointment.service,
            appointment_date=appointment.date,
            appointment_time=appointment.time,
            notes=appointment.notes,
            appointment_ref=appointment.id,
            business_ref=business.id if business else None,
            customer_ref=appointment.customer_ref,
            **extra,
        )

    def to_variables(self) -> dict[str, Any]:
        """Plain dict for rendering and for the job's variables snapshot."""
        return self.model_dump(exclude_none=True)
