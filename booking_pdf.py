"""
Booking summary PDF generation.

Two steps: ``build_document`` turns a ``BookingView`` into an ordered list
of titled sections (pure data, easy to inspect), and
``BookingPDFRenderer`` lays those sections out on A4 pages with a branded
header band and a contact footer repeated on every page.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from functools import partial
from typing import List, Optional, Tuple
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.colors import HexColor
from reportlab.lib.enums import TA_LEFT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import cm
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle, KeepTogether

import config
from booking_view import (
    BookingView, PLACEHOLDER, display, format_amount, format_date, normalize_booking
)

logger = logging.getLogger(__name__)

PDF_MIMETYPE = "application/pdf"

HEADER_HEIGHT = 2.6 * cm
FOOTER_HEIGHT = 1.4 * cm
SIDE_MARGIN = 2 * cm
LABEL_WIDTH = 5 * cm

Row = Tuple[str, str]


# ==================== DOCUMENT MODEL ====================

@dataclass(frozen=True)
class Block:
    """One ordinal-numbered entry of a list section."""
    title: str
    rows: Tuple[Row, ...]


@dataclass(frozen=True)
class Section:
    title: str
    rows: Tuple[Row, ...] = ()
    blocks: Tuple[Block, ...] = ()
    text: Optional[str] = None


@dataclass(frozen=True)
class RenderedDocument:
    booking_id: str
    sections: Tuple[Section, ...]

    @property
    def titles(self) -> List[str]:
        return [s.title for s in self.sections]

    def section(self, title: str) -> Optional[Section]:
        for s in self.sections:
            if s.title == title:
                return s
        return None


def download_filename(booking_id: str) -> str:
    return f"booking-{booking_id}.pdf"


# ==================== SECTION BUILDERS ====================

def _status_section(view: BookingView) -> Section:
    rows = [
        ("Booking Status", display(view.status)),
        ("Approval Status", display(view.approval_status)),
        ("Package", display(view.package)),
    ]
    if view.customer_group:
        rows.append(("Customer Group", display(view.customer_group)))
    if view.agent is not None:
        rows.append(("Agent", f"{display(view.agent.name)} ({display(view.agent.email)})"))
    return Section("BOOKING STATUS", rows=tuple(rows))


def _customer_section(view: BookingView) -> Section:
    rows = [
        ("Name", display(view.customer_name)),
        ("Email", display(view.customer_email)),
        ("Contact Number", display(view.contact_number)),
    ]
    for label, value in (("Passengers", view.passengers), ("Adults", view.adults), ("Children", view.children)):
        if value is not None:
            rows.append((label, display(value)))
    return Section("CUSTOMER INFORMATION", rows=tuple(rows))


def _travel_dates_section(view: BookingView) -> Section:
    return Section("TRAVEL DATES", rows=(
        ("Travel Date", format_date(view.travel_date)),
        ("Departure Date", format_date(view.departure_date)),
        ("Return Date", format_date(view.return_date)),
    ))


def _flight_section(view: BookingView) -> Optional[Section]:
    flight = view.flight
    if flight.is_empty:
        return None
    return Section(
        "FLIGHT DETAILS",
        rows=(
            ("From", display(flight.departure_city)),
            ("To", display(flight.arrival_city)),
            ("Class", display(flight.flight_class)),
            ("PNR", display(flight.pnr)),
        ),
        text=flight.itinerary,
    )


def _hotel_section(view: BookingView) -> Optional[Section]:
    if not view.hotels:
        return None
    blocks = tuple(
        Block(f"Hotel {n}", (
            ("Hotel Name", display(h.name)),
            ("Room Type", display(h.room_type)),
            ("Check-in", format_date(h.check_in)),
            ("Check-out", format_date(h.check_out)),
        ))
        for n, h in enumerate(view.hotels, start=1)
    )
    return Section("HOTEL DETAILS", blocks=blocks)


def _visa_section(view: BookingView) -> Optional[Section]:
    if not view.visas:
        return None
    blocks = []
    for n, p in enumerate(view.visas, start=1):
        rows = [
            ("Full Name", display(p.full_name)),
            ("Nationality", display(p.nationality)),
            ("Visa Type", display(p.visa_type)),
        ]
        if p.passport_number:
            rows.append(("Passport Number", display(p.passport_number)))
        blocks.append(Block(f"Passenger {n}", tuple(rows)))
    return Section("VISA DETAILS", rows=(("Passengers", str(len(blocks))),), blocks=tuple(blocks))


def _transport_section(view: BookingView) -> Optional[Section]:
    transport = view.transport
    if transport.is_empty:
        return None
    if not transport.legs:
        # Legacy records only carry a vehicle type and a pickup point
        return Section("TRANSPORTATION", text=transport.summary)
    blocks = tuple(
        Block(f"Leg {n}", (
            ("From", display(leg.origin)),
            ("To", display(leg.destination)),
            ("Vehicle", display(leg.vehicle_type)),
            ("Date", format_date(leg.date)),
            ("Time", display(leg.time)),
        ))
        for n, leg in enumerate(transport.legs, start=1)
    )
    return Section("TRANSPORTATION", rows=(("Count", display(transport.count)),), blocks=blocks)


def _costing_section(view: BookingView) -> Optional[Section]:
    costing = view.costing
    if costing.is_empty:
        return None
    blocks = tuple(
        Block(f"Item {n}", (
            ("Item", display(r.item)),
            ("Quantity", format_amount(r.quantity)),
            ("Cost / Qty", format_amount(r.cost_per_qty)),
            ("Sale / Qty", format_amount(r.sale_per_qty)),
        ))
        for n, r in enumerate(costing.rows, start=1)
    )
    rows = ()
    if costing.totals is not None:
        rows = (
            ("Total Cost", format_amount(costing.totals.total_cost)),
            ("Total Sale", format_amount(costing.totals.total_sale)),
            ("Profit", format_amount(costing.totals.profit)),
        )
    return Section("COSTING", rows=rows, blocks=blocks)


def _additional_services_section(view: BookingView) -> Optional[Section]:
    rows = []
    if view.package_price is not None:
        rows.append(("Package Price", format_amount(view.package_price)))
    if view.amount is not None:
        rows.append(("Amount", format_amount(view.amount)))
    if not rows and not view.additional_services:
        return None
    return Section("ADDITIONAL SERVICES", rows=tuple(rows), text=view.additional_services)


def _payment_section(view: BookingView) -> Optional[Section]:
    payment = view.payment
    if payment.is_empty:
        return None

    rows: List[Row] = []
    if payment.method:
        rows.append(("Payment Method", display(payment.method)))
    if payment.card_last4:
        rows.append(("Card", f"**** {payment.card_last4}"))
    if payment.cardholder_name:
        rows.append(("Cardholder", display(payment.cardholder_name)))
    if payment.received is not None:
        rows.append(("Payment Received", format_amount(payment.received)))
    if payment.due is not None:
        rows.append(("Payment Due", format_amount(payment.due)))

    blocks: List[Block] = []
    plan = payment.flight_payments
    if plan is not None:
        rows.append(("Flight Payment Mode", display(plan.mode)))
        if plan.credit_card is not None:
            rows.append(("Card Amount", format_amount(plan.credit_card.amount)))
            rows.append(("Paid On", format_date(plan.credit_card.paid_on)))
        if plan.installment is not None:
            inst = plan.installment
            rows.extend([
                ("Ticket Total", format_amount(inst.ticket_total)),
                ("Advance Paid", format_amount(inst.advance_paid)),
                ("Installments", display(inst.number_of_installments)),
                ("Start Date", format_date(inst.start_date)),
                ("Remaining", format_amount(inst.remaining)),
                ("Per Installment", format_amount(inst.per_installment)),
            ])
            blocks.extend(
                Block(f"Installment {n}", (
                    ("No.", display(item.no)),
                    ("Date", format_date(item.date)),
                    ("Amount", format_amount(item.amount)),
                ))
                for n, item in enumerate(inst.schedule, start=1)
            )
    return Section("PAYMENT", rows=tuple(rows), blocks=tuple(blocks))


_SECTION_BUILDERS = (
    _status_section,
    _customer_section,
    _travel_dates_section,
    _flight_section,
    _hotel_section,
    _visa_section,
    _transport_section,
    _costing_section,
    _additional_services_section,
    _payment_section,
)


def build_document(view: BookingView) -> RenderedDocument:
    """Ordered sections for a booking; sections without data are left out."""
    sections = tuple(s for s in (build(view) for build in _SECTION_BUILDERS) if s is not None)
    return RenderedDocument(booking_id=view.booking_id, sections=sections)


# ==================== PDF LAYOUT ====================

class BookingPDFRenderer:
    """Lays a RenderedDocument out as an A4 PDF."""

    def __init__(self, organization_name: str = None, footer_text: str = None, brand_color: str = None):
        self.organization_name = organization_name or config.ORG_NAME
        self.footer_text = footer_text or config.ORG_CONTACT
        self.brand_color = HexColor(brand_color or config.ORG_BRAND_COLOR)
        self.styles = getSampleStyleSheet()
        self._setup_custom_styles()

    def _setup_custom_styles(self):
        """Setup custom paragraph styles"""
        self.styles.add(ParagraphStyle(
            name='SectionHeading',
            parent=self.styles['Heading2'],
            fontName='Helvetica-Bold',
            fontSize=13,
            leading=16,
            textColor=self.brand_color,
            spaceBefore=14,
            spaceAfter=6,
            alignment=TA_LEFT
        ))

        self.styles.add(ParagraphStyle(
            name='BlockHeading',
            parent=self.styles['Normal'],
            fontName='Helvetica-Bold',
            fontSize=10.5,
            spaceBefore=6,
            spaceAfter=3
        ))

        self.styles.add(ParagraphStyle(
            name='Body',
            parent=self.styles['Normal'],
            fontName='Helvetica',
            fontSize=10,
            leading=13
        ))

        self.styles.add(ParagraphStyle(
            name='Label',
            parent=self.styles['Normal'],
            fontName='Helvetica-Bold',
            fontSize=10,
            leading=13
        ))

    def _text(self, value: str, style: str = 'Body') -> Paragraph:
        return Paragraph(escape(value or PLACEHOLDER).replace("\n", "<br/>"), self.styles[style])

    def _rows_table(self, rows) -> Table:
        width = A4[0] - 2 * SIDE_MARGIN
        table = Table(
            # cells are flowable lists so an oversized row can be split in place
            [[[self._text(label, 'Label')], [self._text(value)]] for label, value in rows],
            colWidths=[LABEL_WIDTH, width - LABEL_WIDTH],
            splitInRow=1
        )
        table.setStyle(TableStyle([
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
            ('BACKGROUND', (0, 0), (0, -1), colors.HexColor('#F2F4F7')),
            ('LINEBELOW', (0, 0), (-1, -1), 0.25, colors.lightgrey),
            ('TOPPADDING', (0, 0), (-1, -1), 3),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 3),
        ]))
        return table

    def _section_flowables(self, section: Section) -> list:
        flowables = [Paragraph(f"<u>{escape(section.title)}</u>", self.styles['SectionHeading'])]
        if section.rows:
            flowables.append(self._rows_table(section.rows))
        if section.text:
            flowables.append(Spacer(1, 4))
            flowables.append(self._text(section.text))
        for block in section.blocks:
            flowables.append(KeepTogether([
                Paragraph(escape(block.title), self.styles['BlockHeading']),
                self._rows_table(block.rows),
            ]))
        return flowables

    def _draw_page_frame(self, canvas, doc, booking_id: str):
        """Header band and footer, drawn on every physical page."""
        width, height = A4
        canvas.saveState()

        canvas.setFillColor(self.brand_color)
        canvas.rect(0, height - HEADER_HEIGHT, width, HEADER_HEIGHT, stroke=0, fill=1)
        canvas.setFillColor(colors.white)
        canvas.setFont('Helvetica-Bold', 18)
        canvas.drawCentredString(width / 2, height - 1.2 * cm, self.organization_name)
        canvas.setFont('Helvetica', 10)
        canvas.drawCentredString(width / 2, height - 1.9 * cm, f"Booking ID: {booking_id}")

        canvas.setStrokeColor(colors.lightgrey)
        canvas.line(SIDE_MARGIN, FOOTER_HEIGHT, width - SIDE_MARGIN, FOOTER_HEIGHT)
        canvas.setFillColor(colors.grey)
        canvas.setFont('Helvetica', 8)
        canvas.drawCentredString(width / 2, FOOTER_HEIGHT - 0.5 * cm, self.footer_text)
        canvas.drawRightString(width - SIDE_MARGIN, FOOTER_HEIGHT - 0.9 * cm, f"Page {canvas.getPageNumber()}")

        canvas.restoreState()

    def render(self, document: RenderedDocument) -> bytes:
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            topMargin=HEADER_HEIGHT + 0.8 * cm,
            bottomMargin=FOOTER_HEIGHT + 0.6 * cm,
            leftMargin=SIDE_MARGIN,
            rightMargin=SIDE_MARGIN,
            title=f"Booking {document.booking_id}",
            author=self.organization_name,
            creator=self.organization_name,
            # fixed creation date and document id so identical input gives identical bytes
            invariant=1
        )

        story = []
        for section in document.sections:
            story.extend(self._section_flowables(section))

        draw = partial(self._draw_page_frame, booking_id=document.booking_id)
        doc.build(story, onFirstPage=draw, onLaterPages=draw)
        return buffer.getvalue()


def render_booking_document(record) -> bytes:
    """Normalize a raw booking record and render its summary PDF."""
    view = normalize_booking(record)
    document = build_document(view)
    logger.debug("Rendering booking %s with sections %s", view.booking_id, document.titles)
    return BookingPDFRenderer().render(document)
