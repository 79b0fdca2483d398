"""Tests for the booking summary document and its PDF rendering."""

import copy
import io

import pytest
from PyPDF2 import PdfReader

from booking_pdf import (
    BookingPDFRenderer,
    build_document,
    download_filename,
    render_booking_document,
)
from booking_view import PLACEHOLDER, normalize_booking


def _document(record):
    return build_document(normalize_booking(record))


def _pdf_text(pdf_bytes):
    reader = PdfReader(io.BytesIO(pdf_bytes))
    return "\n".join(page.extract_text() for page in reader.pages)


@pytest.fixture
def full_record(khan_record):
    record = dict(khan_record)
    record.update({
        "status": "confirmed",
        "approvalStatus": "approved",
        "customerGroup": "Family",
        "contactNumber": "+92 300 1234567",
        "passengers": "3",
        "agent": {"id": "a1", "name": "Omar Agent", "email": "omar@agency.example", "role": "agent"},
        "pnr": "AB12C3",
        "flight": {"departureCity": "LHE", "arrivalCity": "JED"},
        "flights": {"raw": "SV 739 LHE-JED 01MAY"},
        "visas": {"passengers": [{"fullName": "A. Khan", "nationality": "PK", "visaType": "Umrah"}]},
        "transportation": {"legs": [{"from": "JED", "to": "MAK", "vehicleType": "GMC"}]},
        "costing": {"rows": [{"item": "Visa", "quantity": 1, "costPerQty": 100, "salePerQty": 150}]},
        "additionalServices": "Ziyarat tour",
        "amount": 2500,
        "paymentReceived": 1000,
        "paymentDue": 1500,
    })
    return record


class TestDocumentStructure:
    """Which sections appear, and in what order."""

    def test_reference_booking_sections(self, khan_record):
        document = _document(khan_record)
        assert document.titles == [
            "BOOKING STATUS",
            "CUSTOMER INFORMATION",
            "TRAVEL DATES",
            "HOTEL DETAILS",
        ]

    def test_reference_booking_values(self, khan_record):
        document = _document(khan_record)
        customer = dict(document.section("CUSTOMER INFORMATION").rows)
        assert customer["Name"] == "A. Khan"
        assert customer["Email"] == "a@x.com"
        assert customer["Contact Number"] == PLACEHOLDER

        dates = dict(document.section("TRAVEL DATES").rows)
        assert dates == {
            "Travel Date": "2024-05-01",
            "Departure Date": PLACEHOLDER,
            "Return Date": PLACEHOLDER,
        }

        hotels = document.section("HOTEL DETAILS")
        assert [b.title for b in hotels.blocks] == ["Hotel 1"]
        assert dict(hotels.blocks[0].rows)["Hotel Name"] == "Hilton"
        assert dict(hotels.blocks[0].rows)["Check-out"] == "2024-05-09"

    def test_full_booking_section_order(self, full_record):
        assert _document(full_record).titles == [
            "BOOKING STATUS",
            "CUSTOMER INFORMATION",
            "TRAVEL DATES",
            "FLIGHT DETAILS",
            "HOTEL DETAILS",
            "VISA DETAILS",
            "TRANSPORTATION",
            "COSTING",
            "ADDITIONAL SERVICES",
            "PAYMENT",
        ]

    def test_status_section_shows_agent_and_group(self, full_record):
        rows = dict(_document(full_record).section("BOOKING STATUS").rows)
        assert rows["Booking Status"] == "confirmed"
        assert rows["Approval Status"] == "approved"
        assert rows["Customer Group"] == "Family"
        assert rows["Agent"] == "Omar Agent (omar@agency.example)"

    def test_legacy_hotel_with_empty_list_gives_one_block(self, khan_record):
        record = dict(khan_record, hotels=[], hotel={"hotelName": "Swissotel", "roomType": "Quad"})
        hotels = _document(record).section("HOTEL DETAILS")
        assert len(hotels.blocks) == 1
        assert dict(hotels.blocks[0].rows)["Hotel Name"] == "Swissotel"

    def test_hotel_list_wins_over_legacy_hotel(self, khan_record):
        record = dict(khan_record, hotel={"name": "Swissotel"})
        hotels = _document(record).section("HOTEL DETAILS")
        assert [dict(b.rows)["Hotel Name"] for b in hotels.blocks] == ["Hilton"]

    def test_legacy_transport_renders_as_summary_text(self, khan_record):
        record = dict(khan_record, transport={"transportType": "SUV", "pickupLocation": "Jeddah Airport"})
        transport = _document(record).section("TRANSPORTATION")
        assert transport.blocks == ()
        assert transport.text == "Type: SUV, Pickup: Jeddah Airport"

    def test_transport_legs_are_numbered(self, full_record):
        transport = _document(full_record).section("TRANSPORTATION")
        assert [b.title for b in transport.blocks] == ["Leg 1"]
        assert dict(transport.rows)["Count"] == "1"

    def test_flight_section_uses_revision_itinerary(self, full_record):
        flight = _document(full_record).section("FLIGHT DETAILS")
        assert dict(flight.rows)["PNR"] == "AB12C3"
        assert flight.text == "SV 739 LHE-JED 01MAY"

    def test_costing_totals_are_derived(self, full_record):
        costing = _document(full_record).section("COSTING")
        assert dict(costing.rows) == {"Total Cost": "100", "Total Sale": "150", "Profit": "50"}

    def test_installment_schedule_blocks(self, khan_record):
        record = dict(khan_record, flightPayments={"mode": "installment", "installment": {
            "ticketTotal": 1000, "advancePaid": 400, "numberOfInstallments": 2,
            "schedule": [{"no": 1, "date": "2024-06-01", "amount": 300},
                         {"no": 2, "date": "2024-07-01", "amount": 300}],
        }})
        payment = _document(record).section("PAYMENT")
        assert [b.title for b in payment.blocks] == ["Installment 1", "Installment 2"]
        assert dict(payment.rows)["Flight Payment Mode"] == "installment"
        assert dict(payment.blocks[1].rows)["Date"] == "2024-07-01"

    def test_malformed_dates_render_placeholder(self, khan_record):
        record = dict(khan_record, date="soon", departureDate="n/a")
        dates = dict(_document(record).section("TRAVEL DATES").rows)
        assert dates["Travel Date"] == PLACEHOLDER
        assert dates["Departure Date"] == PLACEHOLDER


class TestRendering:
    """Tests for the PDF bytes."""

    def test_output_is_a_pdf(self, khan_record):
        pdf = render_booking_document(khan_record)
        assert pdf.startswith(b"%PDF")

    def test_rendering_is_byte_identical(self, khan_record):
        assert render_booking_document(khan_record) == render_booking_document(copy.deepcopy(khan_record))

    def test_rendering_does_not_mutate_the_record(self, full_record):
        before = copy.deepcopy(full_record)
        render_booking_document(full_record)
        assert full_record == before

    def test_text_content(self, khan_record):
        text = _pdf_text(render_booking_document(khan_record))
        for expected in ("CUSTOMER INFORMATION", "A. Khan", "a@x.com", "2024-05-01", "Hilton", "Booking ID: bk-001"):
            assert expected in text

    def test_footer_contact_on_every_page(self, khan_record):
        record = dict(khan_record, hotels=[{"name": f"Hotel {n}"} for n in range(40)])
        renderer = BookingPDFRenderer(organization_name="Test Travels", footer_text="Call us: 0800 123")
        pdf = renderer.render(_document(record))
        reader = PdfReader(io.BytesIO(pdf))
        assert len(reader.pages) > 1
        for page in reader.pages:
            text = page.extract_text()
            assert "Test Travels" in text
            assert "Call us: 0800 123" in text

    def test_markup_characters_are_escaped(self, khan_record):
        record = dict(khan_record, customerName="A & B <Khan>")
        text = _pdf_text(render_booking_document(record))
        assert "A & B <Khan>" in text

    def test_row_value_taller_than_a_page(self, khan_record):
        record = dict(khan_record, package="Umrah package details " * 600)
        pdf = render_booking_document(record)
        reader = PdfReader(io.BytesIO(pdf))
        assert len(reader.pages) > 1
        assert "Hilton" in _pdf_text(pdf)

    def test_block_value_taller_than_a_page(self, khan_record):
        record = dict(khan_record, hotels=[{"name": "Hilton", "roomType": "Quad with view " * 800}])
        assert render_booking_document(record).startswith(b"%PDF")

    def test_empty_record_still_renders(self):
        assert render_booking_document({}).startswith(b"%PDF")


def test_download_filename():
    assert download_filename("bk-001") == "booking-bk-001.pdf"
