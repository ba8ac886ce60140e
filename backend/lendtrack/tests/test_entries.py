"""
Tests for entry endpoints.
"""
import json
from datetime import date
from decimal import Decimal
from lendtrack.core.config import settings


def straight_entry(client, people, **overrides):
    data = {
        "entry_name": "Concert tickets",
        "transaction_type": "STRAIGHT",
        "lender_id": people["alice"]["id"],
        "borrower_id": people["bob"]["id"],
        "amount_borrowed": "100",
        "date_borrowed": "2024-01-10",
    }
    data.update(overrides)
    return client.post("/api/entry", data=data)


def installment_entry(client, people, **overrides):
    data = {
        "entry_name": "Phone",
        "transaction_type": "INSTALLMENT",
        "lender_id": people["alice"]["id"],
        "borrower_id": people["bob"]["id"],
        "amount_borrowed": "300",
        "start_date": "2024-01-01",
        "payment_frequency": "MONTHLY",
        "payment_terms": "3",
    }
    data.update(overrides)
    return client.post("/api/entry", data=data)


def pay(client, entry_id, payee_id, amount, **extra):
    data = {"entry_id": entry_id, "payee_id": payee_id, "payment_amount": amount}
    data.update(extra)
    return client.post("/api/payments", data=data)


def get_entry_json(client, entry_id):
    return client.get(f"/api/entry/{entry_id}").json()


# ── Creation ──────────────────────────────────────

def test_create_straight_entry(client, people):
    """Test straight entry creation starts unpaid with full balance."""
    response = straight_entry(client, people)
    assert response.status_code == 201
    entry = response.json()
    assert entry["transaction_type"] == "STRAIGHT"
    assert entry["status"] == "UNPAID"
    assert Decimal(entry["amount_remaining"]) == Decimal("100")
    assert entry["date_fully_paid"] is None
    assert entry["reference_id"].startswith("240201-")
    assert entry["lender"]["first_name"] == "Alice"


def test_required_fields(client, people):
    """Test validation messages for missing fields, in form order."""
    assert straight_entry(client, people, entry_name=" ").json()["detail"] == "Entry name is required."
    assert straight_entry(client, people, borrower_id="").json()["detail"] == "Borrower is required."
    assert straight_entry(client, people, lender_id="").json()["detail"] == "Lender is required."
    response = straight_entry(client, people, amount_borrowed="0")
    assert response.status_code == 400
    assert response.json()["detail"] == "Amount borrowed must be a positive number."


def test_borrower_cannot_be_lender(client, people):
    """Test that a person cannot lend to themselves."""
    response = straight_entry(client, people, borrower_id=people["alice"]["id"])
    assert response.status_code == 400
    assert response.json()["detail"] == "Borrower and lender cannot be the same person."


def test_non_numeric_amount(client, people):
    """Test that non-numeric amounts never reach the service."""
    assert straight_entry(client, people, amount_borrowed="lots").status_code == 422


def test_create_installment_entry(client, people):
    """Test installment entry builds its schedule and per-term amount."""
    response = installment_entry(client, people)
    assert response.status_code == 201
    entry = response.json()
    assert Decimal(entry["payment_amount_per_term"]) == Decimal("100")
    assert [t["term_number"] for t in entry["terms"]] == [1, 2, 3]
    assert [t["due_date"] for t in entry["terms"]] == ["2024-02-01", "2024-03-01", "2024-04-01"]
    # Today is pinned to 2024-02-01
    assert [t["status"] for t in entry["terms"]] == ["UNPAID", "NOT_STARTED", "NOT_STARTED"]
    assert entry["terms"][0]["actions"] == ["pay", "skip"]


def test_installment_requires_schedule(client, people):
    """Test installment-specific validation."""
    response = installment_entry(client, people, start_date="")
    assert response.json()["detail"] == "Installment start date is required."
    response = installment_entry(client, people, payment_terms="0")
    assert response.json()["detail"] == "Payment terms must be a positive number."
    response = installment_entry(client, people, payment_amount_per_term="-5")
    assert response.json()["detail"] == "Payment amount per term must be a positive number."


def test_installment_per_term_override(client, people):
    """Test the per-term amount can be overridden at creation."""
    response = installment_entry(client, people, payment_amount_per_term="120")
    assert Decimal(response.json()["payment_amount_per_term"]) == Decimal("120")


def test_create_group_entry_equal_split(client, people, trio):
    """Test equal split rounds each share up to the cent."""
    response = client.post("/api/entry", data={
        "entry_name": "Dinner",
        "transaction_type": "GROUP",
        "lender_id": people["alice"]["id"],
        "borrower_group_id": trio["id"],
        "amount_borrowed": "100",
        "allocation_mode": "equal",
    })
    assert response.status_code == 201
    entry = response.json()
    assert entry["borrower_group_name"] == "Trio"
    amounts = [Decimal(a["amount"]) for a in entry["allocations"]]
    assert amounts == [Decimal("33.34")] * 3
    assert sum(amounts) == Decimal("100.02")
    assert all(Decimal(a["percent"]) == Decimal("33.34") for a in entry["allocations"])
    assert all(a["status"] == "UNPAID" for a in entry["allocations"])
    assert entry["warnings"] == []


def test_create_group_entry_percent_split_warns(client, people, trio):
    """Test percent split derives amounts and warns when under 100%."""
    allocations = [
        {"member_id": people["bob"]["id"], "percent": "50", "description": "Main course"},
        {"member_id": people["carol"]["id"], "percent": "30"},
        {"member_id": people["dave"]["id"], "percent": "10"},
    ]
    response = client.post("/api/entry", data={
        "entry_name": "Dinner",
        "transaction_type": "GROUP",
        "lender_id": people["alice"]["id"],
        "borrower_group_id": trio["id"],
        "amount_borrowed": "200",
        "allocation_mode": "percent",
        "allocations": json.dumps(allocations),
    })
    assert response.status_code == 201
    entry = response.json()
    assert [Decimal(a["amount"]) for a in entry["allocations"]] == [Decimal("100"), Decimal("60"), Decimal("20")]
    assert entry["allocations"][0]["description"] == "Main course"
    assert entry["warnings"] == ["Total percent is less than 100%."]


def test_group_allocations_must_cover_members(client, people, trio):
    """Test that allocations must partition the group."""
    allocations = [{"member_id": people["bob"]["id"], "amount": "100"}]
    response = client.post("/api/entry", data={
        "entry_name": "Dinner",
        "transaction_type": "GROUP",
        "lender_id": people["alice"]["id"],
        "borrower_group_id": trio["id"],
        "amount_borrowed": "100",
        "allocation_mode": "amount",
        "allocations": json.dumps(allocations),
    })
    assert response.status_code == 400


def test_group_lender_cannot_be_member(client, people, trio):
    """Test that the lender may not be part of the borrowing group."""
    response = client.post("/api/entry", data={
        "entry_name": "Dinner",
        "transaction_type": "GROUP",
        "lender_id": people["bob"]["id"],
        "borrower_group_id": trio["id"],
        "amount_borrowed": "100",
    })
    assert response.status_code == 400
    assert response.json()["detail"] == "Lender cannot be a member of the borrowing group."


# ── Listing ───────────────────────────────────────

def test_list_entries_grouped_and_filtered(client, people, trio):
    """Test grouped listing and status filter."""
    straight = straight_entry(client, people).json()
    installment_entry(client, people)
    pay(client, straight["id"], people["bob"]["id"], "100")
    
    grouped = client.get("/api/entry/all").json()
    assert set(grouped) == {"STRAIGHT", "INSTALLMENT", "GROUP"}
    assert len(grouped["STRAIGHT"]) == 1
    assert len(grouped["INSTALLMENT"]) == 1
    assert grouped["GROUP"] == []
    
    paid = client.get("/api/entry", params={"status": "PAID"}).json()
    assert [e["id"] for e in paid] == [straight["id"]]
    installments = client.get("/api/entry", params={"transaction_type": "INSTALLMENT"}).json()
    assert len(installments) == 1


def test_get_missing_entry(client):
    """Test 404 for an unknown entry."""
    response = client.get("/api/entry/does-not-exist")
    assert response.status_code == 404
    assert response.json()["detail"] == "Entry not found"


# ── Editing and the field lock ────────────────────

def test_edit_before_payment_rebuilds_schedule(client, people):
    """Test schedule fields may change until the first payment."""
    entry = installment_entry(client, people).json()
    response = client.put(f"/api/entry/{entry['id']}", data={"payment_terms": "4", "amount_borrowed": "400"})
    assert response.status_code == 200
    updated = response.json()
    assert len(updated["terms"]) == 4
    assert Decimal(updated["payment_amount_per_term"]) == Decimal("100")
    assert Decimal(updated["amount_remaining"]) == Decimal("400")


def test_amount_locked_after_payment(client, people):
    """Test monetary fields are frozen once a payment exists."""
    entry = straight_entry(client, people).json()
    assert pay(client, entry["id"], people["bob"]["id"], "10").status_code == 201
    
    response = client.put(f"/api/entry/{entry['id']}", data={"amount_borrowed": "200"})
    assert response.status_code == 409
    
    # Resubmitting the same value is not a change
    response = client.put(f"/api/entry/{entry['id']}", data={"amount_borrowed": "100.00", "notes": "paid in cash"})
    assert response.status_code == 200
    assert response.json()["notes"] == "paid in cash"


def test_transaction_type_locked_regardless_of_other_fields(client, people):
    """Test the lock is checked before other validation."""
    entry = straight_entry(client, people).json()
    pay(client, entry["id"], people["bob"]["id"], "10")
    response = client.put(f"/api/entry/{entry['id']}", data={"transaction_type": "INSTALLMENT", "entry_name": ""})
    assert response.status_code == 409


def test_transaction_type_never_changes(client, people):
    """Test transaction type is immutable even without payments."""
    entry = straight_entry(client, people).json()
    response = client.put(f"/api/entry/{entry['id']}", data={"transaction_type": "GROUP"})
    assert response.status_code == 409


def test_lender_locked_after_payment(client, people):
    """Test the lender cannot be swapped once money has been paid."""
    entry = straight_entry(client, people).json()
    pay(client, entry["id"], people["bob"]["id"], "10")
    response = client.put(f"/api/entry/{entry['id']}", data={"lender_id": people["carol"]["id"]})
    assert response.status_code == 409
    assert get_entry_json(client, entry["id"])["lender_id"] == people["alice"]["id"]


def test_lender_editable_before_payment(client, people):
    """Test the lender can change while no payment exists."""
    entry = straight_entry(client, people).json()
    response = client.put(f"/api/entry/{entry['id']}", data={"lender_id": people["carol"]["id"]})
    assert response.status_code == 200
    assert response.json()["lender"]["first_name"] == "Carol"


def test_skipped_term_freezes_schedule(client, people, clock):
    """Test a skipped term survives later edits of the entry."""
    entry = installment_entry(client, people).json()
    clock.today = date(2024, 3, 2)
    client.post(f"/api/installments/terms/{entry['terms'][1]['id']}/skip")
    
    response = client.put(f"/api/entry/{entry['id']}", data={"amount_borrowed": "330"})
    assert response.status_code == 409
    response = client.put(f"/api/entry/{entry['id']}", data={"payment_terms": "6"})
    assert response.status_code == 409
    
    response = client.put(f"/api/entry/{entry['id']}", data={"notes": "renegotiated"})
    assert response.status_code == 200
    terms = response.json()["terms"]
    assert [t["status"] for t in terms] == ["DELINQUENT", "SKIPPED", "NOT_STARTED", "NOT_STARTED"]
    assert Decimal(response.json()["amount_borrowed"]) == Decimal("300")


def test_rejected_edit_stores_no_image(client, people, tmp_path, monkeypatch):
    """Test an invalid edit does not write its attachment."""
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path))
    entry = straight_entry(client, people).json()
    
    response = client.put(
        f"/api/entry/{entry['id']}",
        data={"entry_name": "  "},
        files={"image_files": ("receipt.png", b"fake-png", "image/png")}
    )
    assert response.status_code == 400
    assert list(tmp_path.iterdir()) == []


def test_descriptive_fields_stay_editable(client, people):
    """Test name and description can change after payments."""
    entry = straight_entry(client, people).json()
    pay(client, entry["id"], people["bob"]["id"], "10")
    response = client.put(f"/api/entry/{entry['id']}", data={"entry_name": "Tickets", "description": "Row B"})
    assert response.status_code == 200
    assert response.json()["entry_name"] == "Tickets"
    assert response.json()["description"] == "Row B"


def test_group_allocations_locked_after_payment(client, people, trio):
    """Test allocation mode is frozen once a member has paid."""
    entry = client.post("/api/entry", data={
        "entry_name": "Cabin",
        "transaction_type": "GROUP",
        "lender_id": people["alice"]["id"],
        "borrower_group_id": trio["id"],
        "amount_borrowed": "300",
        "allocation_mode": "equal",
    }).json()
    allocation = entry["allocations"][0]
    pay(client, entry["id"], allocation["member_id"], "50", allocation_id=allocation["id"])
    response = client.put(f"/api/entry/{entry['id']}", data={"allocation_mode": "percent"})
    assert response.status_code == 409


# ── Preview ───────────────────────────────────────

def test_preview_clears_colliding_lender(client, people):
    """Test the form assistant clears a lender equal to the borrower."""
    response = client.post("/api/entry/preview", json={
        "entry_name": "Snacks",
        "transaction_type": "STRAIGHT",
        "borrower_id": people["bob"]["id"],
        "lender_id": people["bob"]["id"],
        "amount_borrowed": "20",
    })
    assert response.status_code == 200
    preview = response.json()
    assert preview["lender_id"] is None
    assert preview["warnings"] == ["Borrower and lender cannot be the same person. Lender has been cleared."]
    assert preview["errors"] == ["Lender is required."]


def test_preview_computes_split_without_saving(client, people, trio):
    """Test the preview returns shares and persists nothing."""
    response = client.post("/api/entry/preview", json={
        "entry_name": "Dinner",
        "transaction_type": "GROUP",
        "lender_id": people["alice"]["id"],
        "borrower_group_id": trio["id"],
        "amount_borrowed": "100",
        "allocation_mode": "equal",
    })
    preview = response.json()
    assert [Decimal(a["amount"]) for a in preview["allocations"]] == [Decimal("33.34")] * 3
    assert preview["errors"] == []
    assert client.get("/api/entry").json() == []


def test_preview_per_term_amount(client, people):
    """Test the preview derives the per-term amount."""
    response = client.post("/api/entry/preview", json={
        "entry_name": "Laptop",
        "transaction_type": "INSTALLMENT",
        "lender_id": people["alice"]["id"],
        "borrower_id": people["bob"]["id"],
        "amount_borrowed": "1000",
        "payment_terms": 3,
        "start_date": "2024-01-01",
    })
    assert Decimal(response.json()["payment_amount_per_term"]) == Decimal("333.33")


# ── Deletion ──────────────────────────────────────

def test_delete_entry_cascades(client, people):
    """Test deleting an entry removes its payments."""
    entry = straight_entry(client, people).json()
    payment = pay(client, entry["id"], people["bob"]["id"], "10").json()
    assert client.delete(f"/api/entry/{entry['id']}").status_code == 204
    assert client.get(f"/api/payments/{payment['id']}").status_code == 404


def test_delete_paid_entries(client, people):
    """Test only fully paid entries are removed."""
    paid = straight_entry(client, people).json()
    open_entry = straight_entry(client, people, entry_name="Taxi").json()
    pay(client, paid["id"], people["bob"]["id"], "100")
    
    response = client.delete("/api/entry/paid")
    assert response.json()["deleted"] == 1
    assert [e["id"] for e in client.get("/api/entry").json()] == [open_entry["id"]]
