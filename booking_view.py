"""
Booking view normalization.

A booking may carry the same logical field in two payload shapes: the
legacy flat/singular layout (``hotel``, ``visa``, ``transport``,
``payment``, ``pricing``) and the revision nested/plural layout
(``hotels``, ``visas``, ``transportation``, ``costing``,
``flightPayments``). ``normalize_booking`` resolves every logical field
once, revision shape first, and returns an immutable ``BookingView`` that
the PDF renderer and any other reader consume without looking at the raw
record again.

Missing data is never an error here: absent values stay ``None`` (or an
empty tuple) and the formatting helpers turn them into ``PLACEHOLDER``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, date, timezone
from typing import Any, Mapping, Optional, Tuple

PLACEHOLDER = "—"
PNR_LENGTH = 6

_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")


# ==================== PNR ====================

def normalize_pnr(value) -> str:
    """Strip everything but letters and digits and upper-case the rest."""
    if value is None:
        return ""
    return _NON_ALNUM.sub("", str(value)).upper()


def is_valid_pnr(value) -> bool:
    return len(normalize_pnr(value)) == PNR_LENGTH


# ==================== FORMATTING ====================

def parse_date(value) -> Optional[date]:
    """Best-effort conversion of a stored date-like value to a date."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        try:
            return datetime.strptime(text[:10], "%Y-%m-%d").date()
        except ValueError:
            return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.date()


def format_date(value) -> str:
    """YYYY-MM-DD, or the placeholder for absent and malformed values."""
    parsed = parse_date(value)
    return parsed.isoformat() if parsed else PLACEHOLDER


def to_number(value) -> Optional[float]:
    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).strip())
    except ValueError:
        return None


def format_amount(value) -> str:
    """Plain decimal text: no grouping, no currency, at most two decimals."""
    number = to_number(value)
    if number is None:
        if isinstance(value, str) and value.strip():
            return value.strip()
        return PLACEHOLDER
    text = f"{number:.2f}".rstrip("0").rstrip(".")
    return "0" if text == "-0" else text


def display(value) -> str:
    if value is None:
        return PLACEHOLDER
    text = str(value).strip()
    return text if text else PLACEHOLDER


# ==================== VIEW TYPES ====================

@dataclass(frozen=True)
class AgentRef:
    name: Optional[str] = None
    email: Optional[str] = None


@dataclass(frozen=True)
class FlightInfo:
    departure_city: Optional[str] = None
    arrival_city: Optional[str] = None
    flight_class: Optional[str] = None
    pnr: Optional[str] = None
    itinerary: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not any((self.departure_city, self.arrival_city, self.flight_class,
                        self.pnr, self.itinerary))


@dataclass(frozen=True)
class HotelStay:
    name: Optional[str] = None
    room_type: Optional[str] = None
    check_in: Any = None
    check_out: Any = None


@dataclass(frozen=True)
class VisaPassenger:
    full_name: Optional[str] = None
    nationality: Optional[str] = None
    visa_type: Optional[str] = None
    passport_number: Optional[str] = None


@dataclass(frozen=True)
class TransportLeg:
    origin: Optional[str] = None
    destination: Optional[str] = None
    vehicle_type: Optional[str] = None
    date: Any = None
    time: Optional[str] = None


@dataclass(frozen=True)
class TransportInfo:
    legs: Tuple[TransportLeg, ...] = ()
    summary: Optional[str] = None
    count: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        return not self.legs and not self.summary


@dataclass(frozen=True)
class CostRow:
    item: Optional[str] = None
    quantity: Optional[float] = None
    cost_per_qty: Optional[float] = None
    sale_per_qty: Optional[float] = None


@dataclass(frozen=True)
class CostTotals:
    total_cost: Optional[float] = None
    total_sale: Optional[float] = None
    profit: Optional[float] = None


@dataclass(frozen=True)
class Costing:
    rows: Tuple[CostRow, ...] = ()
    totals: Optional[CostTotals] = None

    @property
    def is_empty(self) -> bool:
        return not self.rows and self.totals is None


@dataclass(frozen=True)
class CreditCardPayment:
    amount: Optional[float] = None
    paid_on: Any = None


@dataclass(frozen=True)
class Installment:
    no: Optional[int] = None
    date: Any = None
    amount: Optional[float] = None


@dataclass(frozen=True)
class InstallmentPlan:
    ticket_total: Optional[float] = None
    advance_paid: Optional[float] = None
    number_of_installments: Optional[int] = None
    start_date: Any = None
    remaining: Optional[float] = None
    per_installment: Optional[float] = None
    schedule: Tuple[Installment, ...] = ()


@dataclass(frozen=True)
class FlightPayments:
    mode: Optional[str] = None
    credit_card: Optional[CreditCardPayment] = None
    installment: Optional[InstallmentPlan] = None


@dataclass(frozen=True)
class PaymentInfo:
    method: Optional[str] = None
    card_last4: Optional[str] = None
    cardholder_name: Optional[str] = None
    received: Optional[float] = None
    due: Optional[float] = None
    flight_payments: Optional[FlightPayments] = None

    @property
    def is_empty(self) -> bool:
        return (not any((self.method, self.card_last4, self.cardholder_name))
                and self.received is None and self.due is None
                and self.flight_payments is None)


@dataclass(frozen=True)
class BookingView:
    booking_id: str
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    contact_number: Optional[str] = None
    customer_group: Optional[str] = None
    passengers: Optional[str] = None
    adults: Optional[str] = None
    children: Optional[str] = None
    package: Optional[str] = None
    status: str = "pending"
    approval_status: Optional[str] = None
    agent: Optional[AgentRef] = None
    travel_date: Any = None
    departure_date: Any = None
    return_date: Any = None
    flight: FlightInfo = field(default_factory=FlightInfo)
    hotels: Tuple[HotelStay, ...] = ()
    visas: Tuple[VisaPassenger, ...] = ()
    transport: TransportInfo = field(default_factory=TransportInfo)
    costing: Costing = field(default_factory=Costing)
    additional_services: Optional[str] = None
    package_price: Any = None
    amount: Optional[float] = None
    payment: PaymentInfo = field(default_factory=PaymentInfo)


# ==================== SHAPE HELPERS ====================

def _section(record: Mapping, key: str) -> Mapping:
    value = record.get(key)
    return value if isinstance(value, Mapping) else {}


def _items(value) -> list:
    return [item for item in value if isinstance(item, Mapping)] if isinstance(value, list) else []


def _first(*values):
    """First value that is not None and not an empty string."""
    for value in values:
        if value is not None and value != "":
            return value
    return None


def _has_any(mapping: Mapping, *keys) -> bool:
    return any(_first(mapping.get(k)) is not None for k in keys)


def _to_int(value) -> Optional[int]:
    number = to_number(value)
    return int(number) if number is not None else None


# ==================== FIELD RESOLVERS ====================

def _resolve_agent(record: Mapping) -> Optional[AgentRef]:
    agent = record.get("agent")
    # An unjoined agent reference is just an id; nothing displayable
    if not isinstance(agent, Mapping):
        return None
    return AgentRef(name=agent.get("name"), email=agent.get("email"))


def _resolve_flight(record: Mapping) -> FlightInfo:
    flight = _section(record, "flight")
    flights = _section(record, "flights")

    # First candidate that survives cleaning as a 6-character code
    pnr = next(
        (normalize_pnr(p) for p in (record.get("pnr"), flight.get("pnr")) if is_valid_pnr(p)),
        None
    )
    itinerary = _first(flights.get("raw"))
    if itinerary is None:
        lines = [str(line) for line in flights.get("itineraryLines") or [] if line]
        itinerary = "\n".join(lines) if lines else None

    return FlightInfo(
        departure_city=_first(flight.get("departureCity")),
        arrival_city=_first(flight.get("arrivalCity")),
        flight_class=_first(record.get("flightClass"), flight.get("flightClass")),
        pnr=pnr,
        itinerary=_first(itinerary, flight.get("itinerary")),
    )


def _hotel_stay(data: Mapping) -> HotelStay:
    return HotelStay(
        name=_first(data.get("name"), data.get("hotelName")),
        room_type=_first(data.get("roomType")),
        check_in=data.get("checkIn"),
        check_out=data.get("checkOut"),
    )


def _resolve_hotels(record: Mapping) -> Tuple[HotelStay, ...]:
    hotels = _items(record.get("hotels"))
    if hotels:
        return tuple(_hotel_stay(h) for h in hotels)
    legacy = _section(record, "hotel")
    if _has_any(legacy, "name", "hotelName", "roomType", "checkIn", "checkOut"):
        return (_hotel_stay(legacy),)
    return ()


def _visa_passenger(data: Mapping) -> VisaPassenger:
    return VisaPassenger(
        full_name=_first(data.get("fullName")),
        nationality=_first(data.get("nationality")),
        visa_type=_first(data.get("visaType")),
        passport_number=_first(data.get("passportNumber")),
    )


def _resolve_visas(record: Mapping) -> Tuple[VisaPassenger, ...]:
    visas = record.get("visas")
    if isinstance(visas, list):
        passengers = _items(visas)
    else:
        passengers = _items(_section(record, "visas").get("passengers"))
    if passengers:
        return tuple(_visa_passenger(p) for p in passengers)
    legacy = _section(record, "visa")
    if _has_any(legacy, "visaType", "passportNumber", "nationality", "fullName"):
        return (_visa_passenger(legacy),)
    return ()


def _transport_leg(data: Mapping) -> TransportLeg:
    return TransportLeg(
        origin=_first(data.get("from")),
        destination=_first(data.get("to")),
        vehicle_type=_first(data.get("vehicleType")),
        date=data.get("date"),
        time=_first(data.get("time")),
    )


def _resolve_transport(record: Mapping) -> TransportInfo:
    transportation = _section(record, "transportation")
    legacy = _section(record, "transport")

    legs = _items(transportation.get("legs")) or _items(legacy.get("legs"))
    count = _to_int(transportation.get("count"))
    if legs:
        return TransportInfo(
            legs=tuple(_transport_leg(leg) for leg in legs),
            count=count if count is not None else len(legs),
        )

    transport_type = _first(legacy.get("transportType"))
    pickup = _first(legacy.get("pickupLocation"))
    if transport_type is None and pickup is None:
        return TransportInfo(count=count)

    parts = []
    if transport_type is not None:
        parts.append(f"Type: {transport_type}")
    if pickup is not None:
        parts.append(f"Pickup: {pickup}")
    return TransportInfo(summary=", ".join(parts), count=count)


def _cost_row(data: Mapping) -> CostRow:
    return CostRow(
        item=_first(data.get("item")),
        quantity=to_number(data.get("quantity")),
        cost_per_qty=to_number(data.get("costPerQty")),
        sale_per_qty=to_number(data.get("salePerQty")),
    )


def _cost_totals(data: Mapping) -> Optional[CostTotals]:
    if not _has_any(data, "totalCost", "totalSale", "profit"):
        return None
    return CostTotals(
        total_cost=to_number(data.get("totalCost")),
        total_sale=to_number(data.get("totalSale")),
        profit=to_number(data.get("profit")),
    )


def _derive_totals(rows: Tuple[CostRow, ...]) -> CostTotals:
    total_cost = sum((r.quantity or 0) * (r.cost_per_qty or 0) for r in rows)
    total_sale = sum((r.quantity or 0) * (r.sale_per_qty or 0) for r in rows)
    return CostTotals(total_cost=total_cost, total_sale=total_sale, profit=total_sale - total_cost)


def _resolve_costing(record: Mapping) -> Costing:
    costing = _section(record, "costing")
    pricing = _section(record, "pricing")

    raw_rows = _items(costing.get("rows")) or _items(pricing.get("table"))
    rows = tuple(_cost_row(r) for r in raw_rows)
    totals = (_cost_totals(_section(costing, "totals"))
              or _cost_totals(_section(pricing, "totals")))
    if totals is None and rows:
        totals = _derive_totals(rows)
    return Costing(rows=rows, totals=totals)


def _resolve_flight_payments(record: Mapping) -> Optional[FlightPayments]:
    data = _section(record, "flightPayments")
    if not data:
        return None

    card = _section(data, "creditCard")
    credit_card = None
    if _has_any(card, "amount", "paidOn"):
        credit_card = CreditCardPayment(amount=to_number(card.get("amount")), paid_on=card.get("paidOn"))

    plan = _section(data, "installment")
    installment = None
    if plan:
        installment = InstallmentPlan(
            ticket_total=to_number(plan.get("ticketTotal")),
            advance_paid=to_number(plan.get("advancePaid")),
            number_of_installments=_to_int(plan.get("numberOfInstallments")),
            start_date=plan.get("startDate"),
            remaining=to_number(plan.get("remaining")),
            per_installment=to_number(plan.get("perInstallment")),
            schedule=tuple(
                Installment(no=_to_int(i.get("no")), date=i.get("date"), amount=to_number(i.get("amount")))
                for i in _items(plan.get("schedule"))
            ),
        )

    mode = _first(data.get("mode"))
    if mode is None and credit_card is None and installment is None:
        return None
    return FlightPayments(mode=mode, credit_card=credit_card, installment=installment)


def _resolve_payment(record: Mapping) -> PaymentInfo:
    legacy = _section(record, "payment")
    return PaymentInfo(
        method=_first(legacy.get("method")),
        card_last4=_first(legacy.get("cardLast4")),
        cardholder_name=_first(legacy.get("cardholderName")),
        received=to_number(record.get("paymentReceived")),
        due=to_number(record.get("paymentDue")),
        flight_payments=_resolve_flight_payments(record),
    )


# ==================== ENTRY POINT ====================

def normalize_booking(record: Mapping) -> BookingView:
    """Resolve every logical field of a raw booking record exactly once."""
    flight = _section(record, "flight")
    booking_id = _first(record.get("id"), record.get("_id"))

    return BookingView(
        booking_id=str(booking_id) if booking_id is not None else PLACEHOLDER,
        customer_name=_first(record.get("customerName")),
        customer_email=_first(record.get("customerEmail")),
        contact_number=_first(record.get("contactNumber")),
        customer_group=_first(record.get("customerGroup")),
        passengers=_first(record.get("passengers")),
        adults=_first(record.get("adults")),
        children=_first(record.get("children")),
        package=_first(record.get("package")),
        status=_first(record.get("status")) or "pending",
        approval_status=_first(record.get("approvalStatus")),
        agent=_resolve_agent(record),
        travel_date=record.get("date"),
        departure_date=_first(record.get("departureDate"), flight.get("departureDate")),
        return_date=_first(record.get("returnDate"), flight.get("returnDate")),
        flight=_resolve_flight(record),
        hotels=_resolve_hotels(record),
        visas=_resolve_visas(record),
        transport=_resolve_transport(record),
        costing=_resolve_costing(record),
        additional_services=_first(record.get("additionalServices")),
        package_price=_first(record.get("packagePrice")),
        amount=to_number(record.get("amount")),
        payment=_resolve_payment(record),
    )
