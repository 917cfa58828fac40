from __future__ import annotations

from datetime import date

import pytest

from invoice_desk.services.status import today


def _client(api, name: str = "Zigzag Car Wash", **fields) -> dict:
    return api.post("/clients", json={"name": name, **fields}).json()


def _template_payload(client_id: int, **overrides) -> dict:
    payload = {
        "client_id": client_id,
        "day_of_month": 15,
        "currency": "LKR",
        "tax_percentage": 0,
        "category": "hosting",
        "items": [{"description": "Hosting", "quantity": 1, "unit_price": 5000}],
    }
    payload.update(overrides)
    return payload


def test_invoice_can_start_a_recurring_template(api):
    customer = _client(api)
    response = api.post(
        "/invoices",
        json={
            "client_id": customer["id"],
            "items": [{"description": "Hosting", "quantity": 1, "unit_price": 5000}],
            "recurring": {"day_of_month": 5, "auto_send_whatsapp": False},
        },
    )
    assert response.status_code == 201, response.text
    invoice = response.json()
    assert invoice["recurring_invoice_id"] is not None

    template = api.get(f"/recurring/{invoice['recurring_invoice_id']}").json()
    assert template["generated_count"] == 1
    assert template["day_of_month"] == 5
    assert template["is_active"] is True
    assert date.fromisoformat(template["next_generation_date"]) > today()
    assert [item["description"] for item in template["items"]] == ["Hosting"]


def test_template_day_must_be_safe_for_every_month(api):
    customer = _client(api)
    assert api.post("/recurring", json=_template_payload(customer["id"], day_of_month=31)).status_code == 422
    assert api.post("/recurring", json=_template_payload(customer["id"], day_of_month=0)).status_code == 422


def test_toggle_pauses_and_resumes(api):
    customer = _client(api)
    template = api.post("/recurring", json=_template_payload(customer["id"])).json()
    assert template["generated_count"] == 0

    paused = api.post(f"/recurring/{template['id']}/toggle").json()
    assert paused["is_active"] is False
    refused = api.post(f"/recurring/{template['id']}/generate", params={"on": "2026-11-15"})
    assert refused.status_code == 409

    resumed = api.post(f"/recurring/{template['id']}/toggle").json()
    assert resumed["is_active"] is True
    assert date.fromisoformat(resumed["next_generation_date"]) > today()


def test_generation_advances_schedule(api):
    customer = _client(api)
    template = api.post("/recurring", json=_template_payload(customer["id"])).json()
    scheduled = date.fromisoformat(template["next_generation_date"])

    response = api.post(f"/recurring/{template['id']}/generate", params={"on": scheduled.isoformat()})
    assert response.status_code == 201, response.text
    result = response.json()
    invoice = result["invoice"]
    assert invoice["is_auto_generated"] is True
    assert invoice["recurring_invoice_id"] == template["id"]
    assert invoice["date_of_issue"] == scheduled.isoformat()
    assert invoice["invoice_number"].startswith(f"FD-ZCW-{scheduled:%y%m}-")
    assert invoice["total"] == pytest.approx(5000)
    assert result["delivered"] is False

    after = api.get(f"/recurring/{template['id']}").json()
    assert after["generated_count"] == 1
    next_date = date.fromisoformat(after["next_generation_date"])
    assert next_date > scheduled
    assert next_date.day == 15


def test_early_generation_never_repeats_a_scheduled_date(api):
    customer = _client(api)
    template = api.post("/recurring", json=_template_payload(customer["id"])).json()
    scheduled = date.fromisoformat(template["next_generation_date"])

    early = date(scheduled.year, scheduled.month, 1)
    api.post(f"/recurring/{template['id']}/generate", params={"on": early.isoformat()})
    after = api.get(f"/recurring/{template['id']}").json()
    assert date.fromisoformat(after["next_generation_date"]) > scheduled


def test_run_generates_only_due_active_templates(api):
    customer = _client(api)
    due = api.post("/recurring", json=_template_payload(customer["id"])).json()
    paused = api.post("/recurring", json=_template_payload(customer["id"])).json()
    api.post(f"/recurring/{paused['id']}/toggle")

    run_on = due["next_generation_date"]
    results = api.post("/recurring/run", params={"on": run_on}).json()
    assert [result["recurring_invoice_id"] for result in results] == [due["id"]]

    again = api.post("/recurring/run", params={"on": run_on}).json()
    assert again == []


def test_deleting_template_keeps_generated_invoices(api):
    customer = _client(api)
    template = api.post("/recurring", json=_template_payload(customer["id"])).json()
    generated = api.post(
        f"/recurring/{template['id']}/generate", params={"on": template["next_generation_date"]}
    ).json()["invoice"]

    assert api.delete(f"/recurring/{template['id']}").status_code == 204
    assert api.get(f"/recurring/{template['id']}").status_code == 404
    invoice = api.get(f"/invoices/{generated['id']}").json()
    assert invoice["recurring_invoice_id"] == template["id"]


def test_run_continues_past_a_template_whose_client_is_gone(api):
    gone = _client(api, "Arshaq")
    kept = _client(api)
    orphaned = api.post("/recurring", json=_template_payload(gone["id"])).json()
    healthy = api.post("/recurring", json=_template_payload(kept["id"])).json()
    assert api.delete(f"/clients/{gone['id']}").status_code == 204

    response = api.post("/recurring/run", params={"on": healthy["next_generation_date"]})
    assert response.status_code == 200, response.text
    results = {result["recurring_invoice_id"]: result for result in response.json()}

    assert results[orphaned["id"]]["invoice"] is None
    assert "missing client" in results[orphaned["id"]]["error"]
    assert results[healthy["id"]]["invoice"]["invoice_number"].startswith("FD-ZCW-")
    assert results[healthy["id"]]["error"] is None

    assert api.get(f"/recurring/{healthy['id']}").json()["generated_count"] == 1
    assert api.get(f"/recurring/{orphaned['id']}").json()["generated_count"] == 0
