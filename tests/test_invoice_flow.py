from __future__ import annotations

import pytest

from invoice_desk.services import invoices as invoice_service
from invoice_desk.services.company import get_company_settings
from invoice_desk.services.pdf import render_invoice_pdf


def _create_client(api, name: str = "Zigzag Car Wash", **fields) -> dict:
    response = api.post("/clients", json={"name": name, **fields})
    assert response.status_code == 201, response.text
    return response.json()


def _invoice_payload(client_id: int, **overrides) -> dict:
    payload = {
        "client_id": client_id,
        "date_of_issue": "2026-01-10",
        "tax_percentage": 10,
        "discount_percentage": 5,
        "currency": "USD",
        "category": "system_maintenance",
        "items": [
            {"description": "Monthly maintenance", "quantity": 2, "unit_price": 50},
            {"description": "Hosting", "quantity": 1, "unit_price": 100},
        ],
    }
    payload.update(overrides)
    return payload


def test_invoice_lifecycle(api):
    customer = _create_client(api)
    assert customer["abbreviation"] == "ZCW"

    response = api.post("/invoices", json=_invoice_payload(customer["id"]))
    assert response.status_code == 201, response.text
    data = response.json()
    assert data["invoice_number"] == "FD-ZCW-2601-001"
    assert data["status"] == "draft"
    assert data["subtotal"] == 200
    assert data["tax_amount"] == pytest.approx(20)
    assert data["discount_amount"] == pytest.approx(10)
    assert data["total"] == pytest.approx(210)
    assert data["date_due"] == "2026-01-24"
    assert [item["amount"] for item in data["items"]] == [100, 100]
    assert [item["sort_order"] for item in data["items"]] == [0, 1]
    invoice_id = data["id"]

    second = api.post("/invoices", json=_invoice_payload(customer["id"]))
    assert second.json()["invoice_number"] == "FD-ZCW-2601-002"

    sent = api.post(f"/invoices/{invoice_id}/status", json={"status": "sent"})
    assert sent.status_code == 200
    assert sent.json()["status"] in ("sent", "overdue")

    partial = api.post(f"/invoices/{invoice_id}/payments", json={"amount": 100, "payment_method": "cash"})
    assert partial.status_code == 201, partial.text
    assert api.get(f"/invoices/{invoice_id}").json()["balance_due"] == pytest.approx(110)

    rest = api.post(f"/invoices/{invoice_id}/payments", json={"amount": 110, "payment_date": "2026-01-20"})
    assert rest.status_code == 201
    data = api.get(f"/invoices/{invoice_id}").json()
    assert data["status"] == "paid"
    assert data["amount_paid"] == pytest.approx(210)

    payments = api.get(f"/invoices/{invoice_id}/payments").json()
    assert len(payments) == 2

    cancel = api.post(f"/invoices/{invoice_id}/status", json={"status": "cancelled"})
    assert cancel.status_code == 409
    assert api.get(f"/invoices/{invoice_id}").json()["status"] == "paid"


def test_next_number_preview(api):
    customer = _create_client(api, "FocalDive")
    preview = api.get("/invoices/next-number", params={"client_id": customer["id"], "issue_date": "2026-03-02"})
    assert preview.status_code == 200
    assert preview.json() == {
        "invoice_number": "FD-FD-2603-001",
        "abbreviation": "FD",
        "prefix": "FD-FD-2603-",
    }
    api.post("/invoices", json=_invoice_payload(customer["id"], date_of_issue="2026-03-02"))
    preview = api.get("/invoices/next-number", params={"client_id": customer["id"], "issue_date": "2026-03-02"})
    assert preview.json()["invoice_number"] == "FD-FD-2603-002"


def test_validation_errors_write_nothing(api):
    customer = _create_client(api)

    missing_client = api.post("/invoices", json=_invoice_payload(9999))
    assert missing_client.status_code == 400

    no_items = api.post("/invoices", json=_invoice_payload(customer["id"], items=[]))
    assert no_items.status_code == 422

    bad_dates = api.post(
        "/invoices", json=_invoice_payload(customer["id"], date_due="2026-01-01")
    )
    assert bad_dates.status_code == 422

    assert api.get("/invoices").json() == []


def test_manual_invoice_number_conflict(api):
    customer = _create_client(api)
    first = api.post("/invoices", json=_invoice_payload(customer["id"], invoice_number="CUSTOM-1"))
    assert first.status_code == 201
    assert first.json()["invoice_number"] == "CUSTOM-1"
    duplicate = api.post("/invoices", json=_invoice_payload(customer["id"], invoice_number="CUSTOM-1"))
    assert duplicate.status_code == 409


def test_edit_replaces_items_and_keeps_number(api):
    customer = _create_client(api)
    other = _create_client(api, "Arshaq")
    created = api.post("/invoices", json=_invoice_payload(customer["id"])).json()

    response = api.put(
        f"/invoices/{created['id']}",
        json={
            "client_id": other["id"],
            "tax_percentage": 0,
            "items": [{"description": "Logo design", "quantity": 3, "unit_price": 25.5}],
        },
    )
    assert response.status_code == 200, response.text
    data = response.json()
    assert data["invoice_number"] == created["invoice_number"]
    assert data["client_name"] == "Arshaq"
    assert [item["description"] for item in data["items"]] == ["Logo design"]
    assert data["subtotal"] == pytest.approx(76.5)
    assert data["total"] == pytest.approx(76.5 - 76.5 * 0.05)


def test_draft_can_be_cancelled_but_not_paid(api):
    customer = _create_client(api)
    invoice = api.post("/invoices", json=_invoice_payload(customer["id"])).json()
    assert api.post(f"/invoices/{invoice['id']}/status", json={"status": "paid"}).status_code == 409
    assert api.post(f"/invoices/{invoice['id']}/status", json={"status": "cancelled"}).json()["status"] == "cancelled"
    payment = api.post(f"/invoices/{invoice['id']}/payments", json={"amount": 10})
    assert payment.status_code == 409


def test_paid_draft_becomes_paid_once_sent(api):
    customer = _create_client(api)
    invoice = api.post("/invoices", json=_invoice_payload(customer["id"])).json()
    payment = api.post(f"/invoices/{invoice['id']}/payments", json={"amount": 210})
    assert payment.status_code == 201
    assert api.get(f"/invoices/{invoice['id']}").json()["status"] == "draft"

    sent = api.post(f"/invoices/{invoice['id']}/status", json={"status": "sent"})
    assert sent.status_code == 200
    assert sent.json()["status"] == "paid"
    assert sent.json()["balance_due"] == pytest.approx(0)


def test_edit_lowering_total_below_payments_marks_paid(api):
    customer = _create_client(api)
    invoice = api.post("/invoices", json=_invoice_payload(customer["id"])).json()
    api.post(f"/invoices/{invoice['id']}/status", json={"status": "sent"})
    api.post(f"/invoices/{invoice['id']}/payments", json={"amount": 150})
    assert api.get(f"/invoices/{invoice['id']}").json()["status"] in ("sent", "overdue")

    edited = api.put(
        f"/invoices/{invoice['id']}",
        json={"items": [{"description": "Maintenance", "quantity": 1, "unit_price": 100}]},
    )
    assert edited.status_code == 200, edited.text
    assert edited.json()["total"] == pytest.approx(105)
    assert edited.json()["status"] == "paid"


def test_overdue_is_reported_not_stored(api):
    customer = _create_client(api)
    invoice = api.post(
        "/invoices",
        json=_invoice_payload(customer["id"], date_of_issue="2020-01-01", date_due="2020-01-15", status="sent"),
    ).json()
    assert invoice["status"] == "overdue"

    overdue = api.get("/invoices", params={"status": "overdue"}).json()
    assert [item["id"] for item in overdue] == [invoice["id"]]
    assert api.get("/invoices", params={"status": "sent"}).json() == []

    paid = api.post(f"/invoices/{invoice['id']}/status", json={"status": "paid"})
    assert paid.json()["status"] == "paid"


def test_deleting_client_keeps_invoices(api):
    customer = _create_client(api)
    invoice = api.post("/invoices", json=_invoice_payload(customer["id"])).json()
    assert api.delete(f"/clients/{customer['id']}").status_code == 204
    data = api.get(f"/invoices/{invoice['id']}").json()
    assert data["client_id"] == customer["id"]
    assert data["client_name"] is None


def test_delete_invoice(api):
    customer = _create_client(api)
    invoice = api.post("/invoices", json=_invoice_payload(customer["id"])).json()
    assert api.delete(f"/invoices/{invoice['id']}").status_code == 204
    assert api.get(f"/invoices/{invoice['id']}").status_code == 404


def test_pdf_download(api):
    customer = _create_client(api, email="billing@zigzag.lk")
    invoice = api.post("/invoices", json=_invoice_payload(customer["id"])).json()
    response = api.get(f"/invoices/{invoice['id']}/pdf")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/pdf")
    assert response.content.startswith(b"%PDF")
    assert "FD-ZCW-2601-001.pdf" in response.headers["content-disposition"]


def test_pdf_saved_to_media_directory(api, tmp_path):
    customer = _create_client(api)
    invoice = api.post("/invoices", json=_invoice_payload(customer["id"])).json()
    stored = invoice_service.get_invoice(invoice["id"])
    document = render_invoice_pdf(stored, stored.client, get_company_settings())

    path = document.save()
    assert path == tmp_path / "media" / "FD-ZCW-2601-001.pdf"
    assert path.read_bytes() == document.content


def test_settings_supply_defaults(api):
    update = api.put(
        "/settings",
        json={"default_currency": "LKR", "default_tax_percentage": 18, "default_payment_terms": 30},
    )
    assert update.status_code == 200
    assert update.json()["default_tax_percentage"] == 18

    customer = _create_client(api)
    payload = _invoice_payload(customer["id"])
    del payload["tax_percentage"]
    del payload["currency"]
    data = api.post("/invoices", json=payload).json()
    assert data["currency"] == "LKR"
    assert data["tax_percentage"] == 18
    assert data["date_due"] == "2026-02-09"
    assert data["notes"] == "Thank you for your business."


def test_number_padding_cannot_drop_below_three_digits(api):
    assert api.put("/settings", json={"invoice_number_digits": 2}).status_code == 422
    assert api.put("/settings", json={"invoice_number_digits": 4}).json()["invoice_number_digits"] == 4


def test_health(api):
    assert api.get("/health").json() == {"status": "ok"}
