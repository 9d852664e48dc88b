"""API tests for the invoice endpoints."""
from decimal import Decimal
from urllib.parse import quote


def create(client, payload):
    response = client.post("/api/invoices", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


class TestCreateAndRead:

    def test_create_computes_totals(self, client, invoice_payload):
        data = create(client, invoice_payload)
        assert data["invoice_number"] == "INV-1001"
        assert data["status"] == "draft"
        assert data["currency_symbol"] == "€"
        assert data["due_date"] == "2024-03-16"
        assert [Decimal(i["amount"]) for i in data["items"]] == [Decimal("360.00"), Decimal("60.00")]
        assert Decimal(data["subtotal"]) == Decimal("420.00")
        assert Decimal(data["tax_amount"]) == Decimal("84.00")
        assert Decimal(data["total"]) == Decimal("504.00")
        assert all(item["id"] for item in data["items"])

    def test_client_totals_are_ignored(self, client, invoice_payload):
        invoice_payload["items"][0]["amount"] = "1.00"
        invoice_payload["total"] = "1.00"
        data = create(client, invoice_payload)
        assert Decimal(data["items"][0]["amount"]) == Decimal("360.00")
        assert Decimal(data["total"]) == Decimal("504.00")

    def test_get_by_id_and_number(self, client, invoice_payload):
        created = create(client, invoice_payload)
        by_id = client.get(f"/api/invoices/{created['id']}")
        by_number = client.get("/api/invoices/number/INV-1001")
        assert by_id.status_code == 200
        assert by_number.status_code == 200
        assert by_id.json()["id"] == by_number.json()["id"] == created["id"]
        assert by_id.json()["client"]["address"] == "42 Elm Road\nShelbyville"
        assert [i["description"] for i in by_id.json()["items"]] == ["Consulting", "Travel"]

    def test_list_and_filter(self, client, invoice_payload):
        first = create(client, invoice_payload)
        invoice_payload["invoice_number"] = "INV-1002"
        create(client, invoice_payload)
        client.post(f"/api/invoices/{first['id']}/finalize")

        listed = client.get("/api/invoices").json()
        assert {row["invoice_number"] for row in listed} == {"INV-1001", "INV-1002"}
        assert {row["client_name"] for row in listed} == {"Globex Corp"}

        finalized = client.get("/api/invoices", params={"status": "finalized"}).json()
        assert [row["invoice_number"] for row in finalized] == ["INV-1001"]

    def test_not_found(self, client):
        assert client.get("/api/invoices/does-not-exist").status_code == 404
        response = client.get("/api/invoices/number/INV-404")
        assert response.status_code == 404
        assert response.json() == {"detail": "Invoice not found"}


class TestValidation:

    def test_duplicate_invoice_number(self, client, invoice_payload):
        create(client, invoice_payload)
        response = client.post("/api/invoices", json=invoice_payload)
        assert response.status_code == 400
        assert "already exists" in response.json()["detail"]

    def test_zero_quantity(self, client, invoice_payload):
        invoice_payload["items"][0]["quantity"] = "0"
        assert client.post("/api/invoices", json=invoice_payload).status_code == 400

    def test_percentage_over_hundred(self, client, invoice_payload):
        invoice_payload["items"][0]["discount_value"] = "120"
        response = client.post("/api/invoices", json=invoice_payload)
        assert response.status_code == 400
        assert "between 0 and 100" in response.json()["detail"]

    def test_unknown_payment_terms(self, client, invoice_payload):
        invoice_payload["payment_terms"] = "NET90"
        assert client.post("/api/invoices", json=invoice_payload).status_code == 400

    def test_blank_invoice_number(self, client, invoice_payload):
        invoice_payload["invoice_number"] = "   "
        assert client.post("/api/invoices", json=invoice_payload).status_code == 400

    def test_unknown_currency_accepted(self, client, invoice_payload):
        invoice_payload["currency"] = "xyz"
        data = create(client, invoice_payload)
        assert data["currency"] == "XYZ"
        assert data["currency_symbol"] == "XYZ"


class TestUpdate:

    def test_patch_recomputes(self, client, invoice_payload):
        created = create(client, invoice_payload)
        response = client.patch(f"/api/invoices/{created['id']}", json={"tax_rate": "0", "shipping_cost": "10"})
        assert response.status_code == 200
        data = response.json()
        assert Decimal(data["tax_amount"]) == Decimal("0.00")
        assert Decimal(data["total"]) == Decimal("430.00")

    def test_patch_items(self, client, invoice_payload):
        created = create(client, invoice_payload)
        items = created["items"]
        items[0]["quantity"] = "1"
        del items[1]
        response = client.patch(f"/api/invoices/{created['id']}", json={"items": items})
        assert response.status_code == 200, response.text
        data = response.json()
        assert [i["id"] for i in data["items"]] == [items[0]["id"]]
        assert Decimal(data["subtotal"]) == Decimal("120.00")
        assert Decimal(data["total"]) == Decimal("144.00")

    def test_patch_currency_reprices_items(self, client, invoice_payload):
        invoice_payload["items"] = [{"description": "Pens", "quantity": "1", "rate": "10.40"}]
        invoice_payload["tax_rate"] = "0"
        created = create(client, invoice_payload)
        response = client.patch(f"/api/invoices/{created['id']}", json={"currency": "JPY"})
        assert response.status_code == 200
        data = response.json()
        assert Decimal(data["subtotal"]) == Decimal("10")
        assert [Decimal(i["amount"]) for i in data["items"]] == [Decimal("10")]

        stored = client.get(f"/api/invoices/{created['id']}").json()
        assert sum(Decimal(i["amount"]) for i in stored["items"]) == Decimal(stored["subtotal"])

    def test_patch_null_items_rejected(self, client, invoice_payload):
        created = create(client, invoice_payload)
        response = client.patch(f"/api/invoices/{created['id']}", json={"items": None})
        assert response.status_code == 400
        assert "Items must be a list" in response.json()["detail"]
        assert len(client.get(f"/api/invoices/{created['id']}").json()["items"]) == 2

    def test_patch_empty_items_clears(self, client, invoice_payload):
        created = create(client, invoice_payload)
        data = client.patch(f"/api/invoices/{created['id']}", json={"items": []}).json()
        assert data["items"] == []
        assert Decimal(data["total"]) == Decimal("0.00")

    def test_patch_terms_rederives_due_date(self, client, invoice_payload):
        created = create(client, invoice_payload)
        data = client.patch(f"/api/invoices/{created['id']}", json={"payment_terms": "NET60"}).json()
        assert data["due_date"] == "2024-04-30"

    def test_patch_merges_party(self, client, invoice_payload):
        created = create(client, invoice_payload)
        data = client.patch(f"/api/invoices/{created['id']}", json={"client": {"email": "ap@globex.test"}}).json()
        assert data["client"]["name"] == "Globex Corp"
        assert data["client"]["email"] == "ap@globex.test"

    def test_patch_duplicate_number(self, client, invoice_payload):
        create(client, invoice_payload)
        invoice_payload["invoice_number"] = "INV-1002"
        second = create(client, invoice_payload)
        response = client.patch(f"/api/invoices/{second['id']}", json={"invoice_number": "INV-1001"})
        assert response.status_code == 400
        assert client.get(f"/api/invoices/{second['id']}").json()["invoice_number"] == "INV-1002"

    def test_patch_missing_invoice(self, client):
        assert client.patch("/api/invoices/nope", json={"tax_rate": "1"}).status_code == 404

    def test_finalized_is_read_only(self, client, invoice_payload):
        created = create(client, invoice_payload)
        finalized = client.post(f"/api/invoices/{created['id']}/finalize")
        assert finalized.status_code == 200
        assert finalized.json()["status"] == "finalized"
        assert client.post(f"/api/invoices/{created['id']}/finalize").status_code == 200

        response = client.patch(f"/api/invoices/{created['id']}", json={"tax_rate": "5"})
        assert response.status_code == 400
        assert "Finalized" in response.json()["detail"]


class TestPdf:

    def test_download(self, client, invoice_payload):
        created = create(client, invoice_payload)
        response = client.get(f"/api/invoices/{created['id']}/pdf")
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert 'filename="Invoice_INV-1001.pdf"' in response.headers["content-disposition"]
        assert "x-rendering-degraded" not in response.headers
        assert response.content.startswith(b"%PDF")

    def test_non_ascii_invoice_number(self, client, invoice_payload):
        invoice_payload["invoice_number"] = "Счёт-1"
        created = create(client, invoice_payload)
        response = client.get(f"/api/invoices/{created['id']}/pdf")
        assert response.status_code == 200
        disposition = response.headers["content-disposition"]
        assert 'filename="Invoice_-1.pdf"' in disposition
        assert f"filename*=UTF-8''{quote('Invoice_Счёт-1.pdf', safe='')}" in disposition
        assert response.content.startswith(b"%PDF")

    def test_missing_logo_degrades(self, client, invoice_payload):
        invoice_payload["logo_url"] = "/uploads/missing.png"
        created = create(client, invoice_payload)
        response = client.get(f"/api/invoices/{created['id']}/pdf")
        assert response.status_code == 200
        assert response.headers["x-rendering-degraded"] == "logo-unavailable"
        assert response.content.startswith(b"%PDF")

    def test_uploaded_logo(self, client, invoice_payload, png_bytes):
        upload = client.post("/api/upload/logo", files={"logo": ("logo.png", png_bytes, "image/png")})
        invoice_payload["logo_url"] = upload.json()["logo_url"]
        created = create(client, invoice_payload)
        response = client.get(f"/api/invoices/{created['id']}/pdf")
        assert response.status_code == 200
        assert "x-rendering-degraded" not in response.headers
        assert b"/Subtype /Image" in response.content

    def test_missing_invoice(self, client):
        assert client.get("/api/invoices/nope/pdf").status_code == 404


class TestHelpers:

    def test_calculate_draft(self, client):
        response = client.post("/api/invoices/calculate", json={
            "issue_date": "2024-01-28",
            "payment_terms": "NET7",
            "items": [{"description": "Service", "quantity": "1", "rate": "100.00"}],
            "tax_rate": "10",
            "shipping_cost": "5.00",
        })
        assert response.status_code == 200
        data = response.json()
        assert data["due_date"] == "2024-02-04"
        assert Decimal(data["subtotal"]) == Decimal("100.00")
        assert Decimal(data["tax_amount"]) == Decimal("10.00")
        assert Decimal(data["total"]) == Decimal("115.00")
        assert data["currency_symbol"] == "$"
        assert client.get("/api/invoices").json() == []

    def test_due_date(self, client):
        response = client.get("/api/invoices/due-date", params={"issue_date": "2024-05-17", "payment_terms": "DUE_ON_RECEIPT"})
        assert response.status_code == 200
        assert response.json()["due_date"] == "2024-05-17"

    def test_due_date_unknown_terms(self, client):
        response = client.get("/api/invoices/due-date", params={"issue_date": "2024-05-17", "payment_terms": "NET5"})
        assert response.status_code == 400

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}
