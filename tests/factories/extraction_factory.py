"""
Factories for extracted document payloads, shaped like the field
extraction service output.
"""

import factory
from faker import Faker

fake = Faker()


class ExtractionHeaderFactory(factory.Factory):
    """Extracted invoice header."""

    class Meta:
        model = dict

    invoice_number = factory.LazyAttribute(lambda _: f"INV-{fake.random_int(100000, 999999)}")
    vendor_party_id = "Cardinal Medical Supply LLC"
    invoice_date = "2025-03-15"
    due_date = "2025-04-14"
    total_amount = "1,000.00"
    net_amount = "1000.00"
    tax_amount = "0.00"
    currency = "USD"


class ExtractionLineFactory(factory.Factory):
    """Extracted invoice line."""

    class Meta:
        model = dict

    line_number = factory.Sequence(lambda n: n + 1)
    description = "Sterile Surgical Gloves, Box"
    quantity = "10"
    uom = "EA"
    unit_price = "$100.00"
    extended_amount = "1000.00"
    item_code = None


def invoice_payload(header=None, lines=None, primary_contract_id=None):
    """Field extraction output for an invoice document."""
    payload = {
        "validation_request": {
            "invoice_data": {
                "invoice_header": header if header is not None else ExtractionHeaderFactory(),
                "line_items": lines if lines is not None else [ExtractionLineFactory()],
            }
        }
    }
    if primary_contract_id is not None:
        payload["validation_request"]["contract_context"] = {"primary_contract_id": primary_contract_id}
    return payload


def contract_payload(vendor_name="Cardinal Medical Supply LLC", contract_number="CTR-2025-001", items=None):
    """Field extraction output for a contract document."""
    return {
        "parties": [
            {"party_type": "vendor", "legal_name": vendor_name, "tax_id": "12-3456789"},
            {"party_type": "customer", "legal_name": "Riverside Health System"},
        ],
        "contracts": {
            "contract_id": contract_number,
            "contract_title": "Medical Supplies Master Agreement",
            "effective_date": "2024-01-01",
            "expiration_date": "2026-12-31",
            "currency": "USD",
            "governing_law": "Delaware",
            "termination_notice_period": "60 days",
        },
        "billable_items": items if items is not None else [
            {
                "item_id": "SKU-1001",
                "item_name": "Sterile Surgical Gloves, Box",
                "pricing_details": {
                    "unit_cost": "100.00",
                    "list_price": "120.00",
                    "allowed_variance": {"type": "percentage", "value": "5"},
                    "unit_of_measure": "EA",
                },
            }
        ],
    }
