"""End-to-end checks over the HTTP routes."""

from decimal import Decimal

API = "/api/billing"


def _open(client, encounter_id=101, patient_id=7):
    r = client.post(f"{API}/accounts",
                    json={"patient_id": patient_id, "encounter_id": encounter_id})
    assert r.status_code == 200, r.text
    return r.json()


def _charge(client, account_id, price="5000.00", **extra):
    body = {"item_type": "consultation", "description": "Consultation",
            "quantity": 1, "unit_price": price}
    body.update(extra)
    r = client.post(f"{API}/accounts/{account_id}/items", json=body)
    assert r.status_code == 200, r.text
    return r.json()


def test_health(client):
    r = client.get("/")
    assert r.status_code == 200
    assert r.json()["currency"] == "KES"


def test_account_lifecycle(client):
    acc = _open(client)
    assert acc["account_no"] == "BA000101"
    assert acc["status"] == "open"
    assert Decimal(acc["balance"]) == 0

    # opening again returns the same account
    assert _open(client)["id"] == acc["id"]

    item = _charge(client, acc["id"], quantity=2, unit_price="1500.00",
                   discount_amount="200.00")
    assert Decimal(item["net_amount"]) == Decimal("2800.00")

    r = client.post(f"{API}/accounts/{acc['id']}/payments",
                    json={"amount": "800.00", "method": "cash"})
    assert r.status_code == 200, r.text
    assert r.json()["reference_no"].startswith("CASH")

    got = client.get(f"{API}/accounts/{acc['id']}").json()
    assert Decimal(got["total_amount"]) == Decimal("2800.00")
    assert Decimal(got["amount_paid"]) == Decimal("800.00")
    assert Decimal(got["balance"]) == Decimal("2000.00")
    assert got["invoice_status"] == "partial"

    r = client.post(f"{API}/accounts/{acc['id']}/close")
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "account_not_settled"

    client.post(f"{API}/accounts/{acc['id']}/payments",
                json={"amount": "2000.00", "method": "card"})
    r = client.post(f"{API}/accounts/{acc['id']}/close")
    assert r.status_code == 200
    assert r.json()["status"] == "closed"

    r = client.get(f"{API}/accounts/{acc['id']}/verify")
    assert r.status_code == 200
    assert r.json()["consistent"] is True


def test_payment_errors(client):
    acc = _open(client)
    _charge(client, acc["id"])
    url = f"{API}/accounts/{acc['id']}/payments"

    r = client.post(url, json={"amount": "5000.01", "method": "cash"})
    assert r.status_code == 409
    body = r.json()
    assert body["ok"] is False
    assert body["error"]["code"] == "overpayment"

    r = client.post(url, json={"amount": "0", "method": "cash"})
    assert r.status_code == 422
    assert r.json()["error"]["code"] == "invalid_amount"

    r = client.post(url, json={"amount": "10.00", "method": "barter"})
    assert r.status_code == 422
    assert r.json()["error"]["code"] == "validation_error"

    r = client.post(url, json={"method": "cash"})
    assert r.status_code == 422
    assert r.json()["error"]["code"] == "request_invalid"

    assert client.get(url).json() == []


def test_unknown_account(client):
    r = client.get(f"{API}/accounts/999")
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "not_found"


def test_void_item(client):
    acc = _open(client)
    item = _charge(client, acc["id"])
    r = client.post(f"{API}/accounts/{acc['id']}/items/{item['id']}/void",
                    json={"reason": "Posted twice", "voided_by": "cashier-2"})
    assert r.status_code == 200
    assert r.json()["status"] == "voided"

    items = client.get(f"{API}/accounts/{acc['id']}/items",
                       params={"include_voided": False}).json()
    assert items == []


def test_invoice_and_claim_flow(client):
    acc = _open(client)
    _charge(client, acc["id"], price="20000.00")

    r = client.post(f"{API}/accounts/{acc['id']}/invoice", json={})
    assert r.status_code == 200, r.text
    inv = r.json()
    assert inv["status"] == "unpaid"
    assert client.get(f"{API}/invoices/{inv['id']}").json()["invoice_number"] == inv["invoice_number"]

    r = client.post(f"{API}/claims", json={
        "invoice_id": inv["id"],
        "insurance_provider": "NHIF",
        "policy_number": "POL-1",
        "claim_amount": "20000.00",
    })
    assert r.status_code == 200, r.text
    claim = r.json()
    assert claim["status"] == "pending"

    cid = claim["id"]
    assert client.post(f"{API}/claims/{cid}/submit").json()["status"] == "submitted"
    r = client.post(f"{API}/claims/{cid}/approve", json={"approved_amount": "18000.00"})
    assert Decimal(r.json()["approved_amount"]) == Decimal("18000.00")

    r = client.post(f"{API}/claims/{cid}/approve", json={"approved_amount": "18000.00"})
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "invalid_transition"

    r = client.post(f"{API}/claims/{cid}/mark-paid", json={})
    assert r.status_code == 200
    assert r.json()["status"] == "paid"

    got = client.get(f"{API}/invoices/{inv['id']}").json()
    assert got["status"] == "partial"
    assert Decimal(got["balance"]) == Decimal("2000.00")


def test_reports(client):
    acc = _open(client)
    _charge(client, acc["id"])
    client.post(f"{API}/accounts/{acc['id']}/payments",
                json={"amount": "1000.00", "method": "mpesa"})

    s = client.get(f"{API}/encounters/101/summary").json()
    assert s["account_exists"] is True
    assert Decimal(s["balance"]) == Decimal("4000.00")

    st = client.get(f"{API}/reports/payments").json()
    assert st["total_payments"] == 1
    assert st["by_method"][0]["method"] == "mpesa"

    out = client.get(f"{API}/reports/outstanding").json()
    assert out["accounts_with_balance"] == 1

    claims = client.get(f"{API}/reports/claims").json()
    assert claims["total_claims"] == 0


def test_statement_download(client):
    acc = _open(client)
    _charge(client, acc["id"])
    r = client.get(f"{API}/accounts/{acc['id']}/statement.xlsx")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet")
    assert "statement_BA000101.xlsx" in r.headers["content-disposition"]
    assert r.content[:2] == b"PK"


def test_ledger_wide_listings(client):
    first = _open(client)
    _charge(client, first["id"])
    client.post(f"{API}/accounts/{first['id']}/invoice", json={})
    client.post(f"{API}/accounts/{first['id']}/payments",
                json={"amount": "1000.00", "method": "mpesa", "reference_no": "QK77"})

    second = _open(client, encounter_id=202, patient_id=8)
    _charge(client, second["id"], price="300.00")
    inv2 = client.post(f"{API}/accounts/{second['id']}/invoice", json={}).json()
    client.post(f"{API}/accounts/{second['id']}/payments",
                json={"amount": "300.00", "method": "cash"})

    r = client.get(f"{API}/invoices", params={"status": "paid"})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["total"] == 1
    assert body["items"][0]["id"] == inv2["id"]
    assert body["by_status"] == {"paid": 1, "partial": 1, "unpaid": 0}

    r = client.get(f"{API}/invoices", params={"status": "overdue"})
    assert r.status_code == 422
    assert r.json()["error"]["code"] == "validation_error"

    r = client.get(f"{API}/payments", params={"method": "mpesa"})
    assert r.status_code == 200, r.text
    pays = r.json()
    assert pays["total"] == 1
    assert pays["items"][0]["reference_no"] == "QK77"
    assert Decimal(pays["items"][0]["amount"]) == Decimal("1000.00")

    assert client.get(f"{API}/payments", params={"limit": 0}).status_code == 422

    claim = client.post(f"{API}/claims", json={
        "invoice_id": inv2["id"], "insurance_provider": "NHIF",
        "policy_number": "P-1", "claim_amount": "100.00",
    }).json()
    r = client.get(f"{API}/claims", params={"status": "pending"})
    assert r.status_code == 200, r.text
    assert [c["id"] for c in r.json()["items"]] == [claim["id"]]
    assert client.get(f"{API}/claims", params={"status": "rejected"}).json()["total"] == 0
