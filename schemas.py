"""
Database Schemas for Doc House

Each Pydantic model describes documents of one MongoDB collection. The store
itself is schemaless, so models accept extra profile fields and pass them
through untouched.
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class Document(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class OwnedDocument(Document):
    email: EmailStr = Field(..., description="Owner email address")

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: str) -> str:
        return v.lower()


class Doctor(Document):
    """
    Doctor profiles shown on the site.
    Collection: "doctors"
    """
    name: str = Field(..., description="Full name")
    specialty: Optional[str] = Field(None, description="Medical specialty")


class Review(OwnedDocument):
    """
    Patient reviews.
    Collection: "reviews"
    """
    name: Optional[str] = None
    details: Optional[str] = None
    rating: Optional[float] = Field(None, ge=0, le=5)


class User(Document):
    """
    User accounts. `role` is absent for regular users and "admin" for admins;
    it is only changed through PATCH /users/{id}.
    Collection: "users"
    """
    name: Optional[str] = Field(None, description="Display name")
    email: EmailStr = Field(..., description="Unique email address")
    photo: Optional[str] = Field(None, description="Profile image URL")

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: str) -> str:
        return v.lower()


class Appointment(OwnedDocument):
    """
    Appointments booked by patients. `payment` is attached after checkout;
    absent means unpaid.
    Collection: "appointments"
    """
    appointmentDate: str = Field(..., description="ISO date of the appointment")
    serviceName: Optional[str] = None
    slot: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)


class Payment(OwnedDocument):
    """
    Payments recorded after the client confirms a payment intent.
    Collection: "payments"
    """
    transactionId: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    appointmentId: Optional[str] = None
    status: Optional[str] = None
