"""
Travel Agency Back-Office - SQLAlchemy 2.x Models
Agents, bookings and customer inquiries with UUID keys.
"""

from __future__ import annotations

import json
import uuid
from datetime import datetime, date
from enum import Enum
from typing import Optional, List
from werkzeug.security import generate_password_hash, check_password_hash

from sqlalchemy import String, Text, Float, Boolean, DateTime, Date, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship, DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all models using SQLAlchemy 2.0 declarative style."""
    pass


# ==================== UTILITY FUNCTIONS ====================

def generate_uuid() -> str:
    """Generate a new UUID string."""
    return str(uuid.uuid4())


def _load_json(raw: Optional[str]):
    return json.loads(raw) if raw else None


def _dump_json(value) -> Optional[str]:
    return json.dumps(value) if value is not None else None


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


# ==================== STATUS ENUMERATIONS ====================

class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class InquiryStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    RESOLVED = "resolved"
    CLOSED = "closed"
    RESPONDED = "responded"


# The only operations that move both booking status fields at once.
APPROVAL_TRANSITIONS = {
    "approve": (ApprovalStatus.APPROVED, BookingStatus.CONFIRMED),
    "reject": (ApprovalStatus.REJECTED, BookingStatus.CANCELLED),
}


# ==================== AGENT MODEL ====================

class Agent(Base):
    """Back-office account. Admins are agents with role='admin'."""
    __tablename__ = "agents"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    email: Mapped[str] = mapped_column(String(120), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), default="agent")  # agent, admin
    phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    # Profile fields used by the dashboard
    username: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)
    department: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)
    monthly_target: Mapped[Optional[float]] = mapped_column(Float, default=5000)
    commission_rate: Mapped[Optional[float]] = mapped_column(Float, default=5.0)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    bookings: Mapped[List["Booking"]] = relationship(back_populates="agent")
    assigned_inquiries: Mapped[List["Inquiry"]] = relationship(back_populates="assigned_agent")

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "phone": self.phone,
            "isActive": self.is_active,
            "username": self.username,
            "department": self.department,
            "monthlyTarget": self.monthly_target,
            "commissionRate": self.commission_rate,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }

    def to_ref(self, include_role: bool = False) -> dict:
        """Short form used when an agent is joined onto another record."""
        ref = {"id": self.id, "name": self.name, "email": self.email}
        if include_role:
            ref["role"] = self.role
        return ref


# ==================== BOOKING MODEL ====================

# Wire name -> column for scalar fields accepted on create/update
BOOKING_CORE_FIELDS = {
    "customerName": "customer_name",
    "customerEmail": "customer_email",
    "package": "package",
    "status": "status",
}

BOOKING_FLAT_FIELDS = {
    "contactNumber": "contact_number",
    "passengers": "passengers",
    "adults": "adults",
    "children": "children",
    "packagePrice": "package_price",
    "additionalServices": "additional_services",
    "amount": "amount",
    "customerGroup": "customer_group",
    "flightClass": "flight_class",
    "paymentReceived": "payment_received",
    "paymentDue": "payment_due",
}

BOOKING_DATE_FIELDS = {
    "departureDate": "departure_date",
    "returnDate": "return_date",
}

# Wire name -> JSON text column for nested sections
BOOKING_SECTIONS = {
    # legacy shape
    "hotel": "hotel_data",
    "visa": "visa_data",
    "transport": "transport_data",
    "flight": "flight_data",
    "payment": "payment_data",
    "pricing": "pricing_data",
    # revision shape
    "flights": "flights_data",
    "hotels": "hotels_data",
    "visas": "visas_data",
    "transportation": "transportation_data",
    "costing": "costing_data",
    "flightPayments": "flight_payments_data",
}


class Booking(Base):
    """Customer booking carrying both the legacy and the revision payload shapes."""
    __tablename__ = "bookings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)

    # Core fields
    customer_name: Mapped[str] = mapped_column(String(200), nullable=False)
    customer_email: Mapped[str] = mapped_column(String(120), nullable=False)
    package: Mapped[str] = mapped_column(String(200), nullable=False)
    travel_date: Mapped[date] = mapped_column("date", Date, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=BookingStatus.PENDING.value, index=True)
    approval_status: Mapped[Optional[str]] = mapped_column(String(20), default=ApprovalStatus.PENDING.value)

    # Legacy flat fields
    contact_number: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    passengers: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    adults: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    children: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    departure_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    return_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    package_price: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    additional_services: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    amount: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    customer_group: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    flight_class: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)

    # Revision flat fields
    pnr: Mapped[Optional[str]] = mapped_column(String(6), nullable=True)
    payment_received: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    payment_due: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # Nested sections (JSON strings)
    hotel_data: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    visa_data: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    transport_data: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    flight_data: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    payment_data: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    pricing_data: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    flights_data: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    hotels_data: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    visas_data: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    transportation_data: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    costing_data: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    flight_payments_data: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Foreign Keys
    agent_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("agents.id"), nullable=True)

    # Relationships
    agent: Mapped[Optional["Agent"]] = relationship(back_populates="bookings")

    __table_args__ = (
        Index("idx_booking_agent", "agent_id"),
        Index("idx_booking_created", "created_at"),
    )

    def is_owned_by(self, agent_id: str) -> bool:
        return self.agent_id is not None and self.agent_id == agent_id

    def get_section(self, key: str):
        return _load_json(getattr(self, BOOKING_SECTIONS[key]))

    def set_section(self, key: str, value) -> None:
        """Replace a nested section wholesale; None clears it."""
        setattr(self, BOOKING_SECTIONS[key], _dump_json(value))

    def apply_approval(self, operation: str) -> None:
        """Apply 'approve' or 'reject', moving both status fields together."""
        approval, status = APPROVAL_TRANSITIONS[operation]
        self.approval_status = approval.value
        self.status = status.value

    def to_record(self, include_agent: bool = True) -> dict:
        """Booking in its wire shape (camelCase keys, sections as nested JSON)."""
        record = {
            "id": self.id,
            "customerName": self.customer_name,
            "customerEmail": self.customer_email,
            "package": self.package,
            "date": _iso(self.travel_date),
            "status": self.status,
            "approvalStatus": self.approval_status,
            "pnr": self.pnr,
        }
        for wire, column in BOOKING_FLAT_FIELDS.items():
            record[wire] = getattr(self, column)
        for wire, column in BOOKING_DATE_FIELDS.items():
            record[wire] = _iso(getattr(self, column))
        for wire in BOOKING_SECTIONS:
            record[wire] = self.get_section(wire)

        if include_agent and self.agent is not None:
            record["agent"] = self.agent.to_ref(include_role=True)
        else:
            record["agent"] = self.agent_id

        record["createdAt"] = _iso(self.created_at)
        record["updatedAt"] = _iso(self.updated_at)
        return record


# ==================== INQUIRY MODELS ====================

class Inquiry(Base):
    """Inbound customer inquiry, optionally tied to a package."""
    __tablename__ = "inquiries"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    external_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)

    customer_name: Mapped[str] = mapped_column(String(200), nullable=False)
    customer_email: Mapped[str] = mapped_column(String(120), nullable=False)
    customer_phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=InquiryStatus.PENDING.value, index=True)

    # Package details for package-specific inquiries (JSON string)
    package_details_data: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Foreign Keys
    assigned_agent_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("agents.id"), nullable=True)

    # Relationships
    assigned_agent: Mapped[Optional["Agent"]] = relationship(back_populates="assigned_inquiries")
    responses: Mapped[List["InquiryResponse"]] = relationship(
        back_populates="inquiry",
        cascade="all, delete-orphan",
        order_by="InquiryResponse.created_at"
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "externalId": self.external_id,
            "customerName": self.customer_name,
            "customerEmail": self.customer_email,
            "customerPhone": self.customer_phone,
            "message": self.message,
            "status": self.status,
            "assignedAgent": self.assigned_agent.to_ref() if self.assigned_agent else None,
            "responses": [r.to_dict() for r in self.responses],
            "packageDetails": _load_json(self.package_details_data),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


class InquiryResponse(Base):
    """Agent reply on an inquiry, pending admin approval."""
    __tablename__ = "inquiry_responses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    approved: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    inquiry_id: Mapped[str] = mapped_column(String(36), ForeignKey("inquiries.id"), nullable=False)
    responder_id: Mapped[str] = mapped_column(String(36), ForeignKey("agents.id"), nullable=False)

    inquiry: Mapped["Inquiry"] = relationship(back_populates="responses")
    responder: Mapped["Agent"] = relationship()

    def to_dict(self) -> dict:
        return {
            "responder": self.responder_id,
            "message": self.message,
            "approved": self.approved,
            "createdAt": _iso(self.created_at),
        }
