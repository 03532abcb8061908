"""HTTP Routes: end-to-end tests through the FastAPI app.

Tests cover:
    - Health liveness and readiness
    - Commission and eligibility endpoints
    - Reconcile: 200 with step statuses; missing tier -> 400 naming the field;
      unknown booking -> 404
    - Duplicates lookup
    - Audit run, history, single fix, fix-all, unknown check -> 404
    - Intro owner override: 409 when locked without reason
    - Follow-up scheduling and overdue refresh
"""

from datetime import date, timedelta
from uuid import uuid4

TODAY = date.today()


# ─── Health ──────────────────────────────────────────────────────

async def test_health_and_ready(client):
    res = await client.get("/api/v1/health/")
    assert res.status_code == 200
    assert res.json()["status"] == "healthy"

    res = await client.get("/api/v1/health/ready")
    assert res.status_code == 200
    assert res.json()["checks"]["database"] == "healthy"


# ─── Commission / eligibility ────────────────────────────────────

async def test_commission_resolve(client):
    res = await client.post("/api/v1/commission/resolve", json={"tier": "Elite + OTbeat"})
    assert res.status_code == 200
    body = res.json()
    assert body["amount"] == "12.00"
    assert body["tier"] == "Elite + OTbeat"
    assert not body["needs_manual_entry"]


async def test_commission_unknown_tier_flags_manual_entry(client):
    res = await client.post("/api/v1/commission/resolve", json={"tier": "mystery"})
    assert res.json()["needs_manual_entry"]


async def test_eligibility(client):
    res = await client.post("/api/v1/outcomes/eligibility", json={
        "event_kind": "add_on", "client_name": "John Smith", "event_date": TODAY.isoformat(),
    })
    assert res.status_code == 200
    assert res.json()["eligible"] is False


async def test_attribution_resolve(client, seed_booking):
    booking = await seed_booking(intro_owner="Mike", intro_owner_locked=True)
    res = await client.post("/api/v1/attribution/resolve", json={
        "booking_id": str(booking.id), "client_name": "John Smith", "acting_staff": "Dana",
    })
    assert res.status_code == 200
    assert res.json()["staff_name"] == "Mike"
    assert res.json()["provenance"] == "locked_intro_owner"


# ─── Reconcile ───────────────────────────────────────────────────

async def test_reconcile_returns_steps(client, seed_booking):
    booking = await seed_booking()
    payload = {
        "booking_id": str(booking.id),
        "client_name": "John Smith",
        "tier": "Elite + OTbeat",
        "event_date": TODAY.isoformat(),
        "acting_staff": "Mike",
    }
    res = await client.post("/api/v1/outcomes/reconcile", json=payload)
    assert res.status_code == 200
    body = res.json()
    assert body["final_state"] == "DONE"
    assert body["commission"]["amount"] == "12.00"
    assert [s["step"] for s in body["steps"]] == [
        "RULE_EVALUATED", "RUN_UPDATED", "BOOKING_SYNCED", "QUEUE_CLEARED", "LEDGER_UPDATED",
    ]
    assert body["ledger_entry_id"] is not None

    again = (await client.post("/api/v1/outcomes/reconcile", json=payload)).json()
    assert again["ledger_entry_id"] is None
    assert again["sale_record_id"] == body["sale_record_id"]


async def test_reconcile_without_tier_is_400(client):
    res = await client.post("/api/v1/outcomes/reconcile", json={
        "client_name": "John Smith", "event_date": TODAY.isoformat(),
    })
    assert res.status_code == 400
    error = res.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert error["message"] == "No membership tier selected"


async def test_reconcile_unknown_booking_is_404(client):
    res = await client.post("/api/v1/outcomes/reconcile", json={
        "booking_id": str(uuid4()), "client_name": "John Smith",
        "tier": "Basic", "event_date": TODAY.isoformat(),
    })
    assert res.status_code == 404
    assert res.json()["error"]["code"] == "RESOURCE_NOT_FOUND"


async def test_malformed_request_is_400(client):
    res = await client.post("/api/v1/outcomes/reconcile", json={"client_name": "x"})
    assert res.status_code == 400
    assert res.json()["error"]["details"]


# ─── Duplicates ──────────────────────────────────────────────────

async def test_duplicate_lookup(client, seed_booking):
    await seed_booking("John Smith", class_date=TODAY - timedelta(days=3))
    res = await client.get("/api/v1/duplicates", params={"name": "Jon Smyth"})
    assert res.status_code == 200
    matches = res.json()
    assert matches[0]["match_type"] == "fuzzy"
    assert matches[0]["client_name"] == "John Smith"


# ─── Audit ───────────────────────────────────────────────────────

async def test_audit_run_fix_and_history(client, seed_booking):
    await seed_booking("John Smith", intro_owner="John Smith", booked_by="Sarah")

    res = await client.post("/api/v1/audit/runs")
    assert res.status_code == 200
    snapshot = res.json()
    results = {r["check_id"]: r for r in snapshot["results"]}
    assert results["misattributed_intro_owner"]["status"] == "fail"
    assert results["misattributed_intro_owner"]["auto_fixable_count"] == 1
    assert snapshot["pass_count"] + snapshot["warn_count"] + snapshot["fail_count"] == (
        snapshot["total_checks"]
    )

    res = await client.post("/api/v1/audit/fixes", json={"snapshot_id": snapshot["id"]})
    assert res.status_code == 200
    assert res.json()["total_fixed"] == 1

    history = (await client.get("/api/v1/audit/runs")).json()
    assert history[0]["id"] == snapshot["id"]


async def test_single_fix_and_unknown_check(client, seed_booking):
    await seed_booking("Ann Lee", phone="205.555.9876")
    res = await client.post("/api/v1/audit/fixes/malformed_phone")
    assert res.status_code == 200
    assert res.json()["fixed_count"] == 1

    res = await client.post("/api/v1/audit/fixes/not_a_check")
    assert res.status_code == 404
    assert res.json()["error"]["code"] == "UNKNOWN_CHECK"


async def test_fix_all_unknown_snapshot_is_404(client):
    res = await client.post("/api/v1/audit/fixes", json={"snapshot_id": str(uuid4())})
    assert res.status_code == 404


async def test_audit_refresh_without_timer_runs(client):
    res = await client.post("/api/v1/audit/refresh")
    assert res.status_code == 200
    assert res.json()["skipped"] is False


# ─── Bookings / follow-ups ───────────────────────────────────────

async def test_intro_owner_override(client, seed_booking):
    booking = await seed_booking(intro_owner="Sarah", intro_owner_locked=True)
    url = f"/api/v1/bookings/{booking.id}/intro-owner"

    res = await client.put(url, json={"owner": "Mike", "edited_by": "Dana"})
    assert res.status_code == 409
    assert res.json()["error"]["code"] == "INTRO_OWNER_LOCKED"

    res = await client.put(url, json={
        "owner": "Mike", "edited_by": "Dana", "override_reason": "Mike ran the class",
    })
    assert res.status_code == 200
    assert res.json()["intro_owner"] == "Mike"
    assert res.json()["intro_owner_locked"] is True


async def test_follow_up_schedule_and_refresh(client, seed_booking):
    booking = await seed_booking()
    res = await client.post("/api/v1/follow-ups/schedule", json={
        "booking_id": str(booking.id),
        "person_type": "no_show",
        "trigger_date": (TODAY - timedelta(days=20)).isoformat(),
    })
    assert res.status_code == 200
    assert [i["touch_number"] for i in res.json()] == [1, 2, 3]

    res = await client.post("/api/v1/follow-ups/refresh-overdue", json={})
    assert res.json()["updated"] == 3
