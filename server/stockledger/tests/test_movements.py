from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from stockledger.balances.service import get_balances
from stockledger.config import settings
from stockledger.errors import LedgerValidationError, MovementNotFoundError, SameNodeError
from stockledger.ledger.service import (
    DraftLineOutcome,
    clamp_limit,
    create_event,
    delete_draft_line,
    get_event,
    list_movements,
    update_draft_line,
)
from stockledger.models import InventoryMovementEvent, InventoryMovementLine
from stockledger.tests.factories import api_line, create_session, line, seed_ledger


def test_create_event_numbers_lines_in_input_order():
    db = create_session()
    setup = seed_ledger(db)

    event = create_event(
        db,
        setup.organization_id,
        lines=[
            line(setup.external_node, setup.warehouse_node, setup.item, 10),
            line(setup.warehouse_node, setup.adjustment_node, setup.item, 2),
            line(setup.adjustment_node, setup.warehouse_node, setup.item, 1),
        ],
        reference_type="PO",
        reference_id="PO-1",
    )

    assert event.status == "POSTED"
    assert event.event_type == "MOVE"
    assert event.occurred_at is not None
    assert [entry.line_no for entry in event.lines] == [1, 2, 3]
    assert all(entry.organization_id == setup.organization_id for entry in event.lines)
    assert [entry.quantity for entry in event.lines] == [Decimal("10.000"), Decimal("2.000"), Decimal("1.000")]


def test_create_event_is_all_or_nothing():
    db = create_session()
    setup = seed_ledger(db)

    with pytest.raises(SameNodeError):
        create_event(
            db,
            setup.organization_id,
            lines=[
                line(setup.external_node, setup.warehouse_node, setup.item, 10),
                line(setup.warehouse_node, setup.warehouse_node, setup.item, 1),
            ],
        )

    assert db.query(InventoryMovementEvent).count() == 0
    assert db.query(InventoryMovementLine).count() == 0


def test_create_event_rejects_cancelled_initial_status():
    db = create_session()
    setup = seed_ledger(db)

    with pytest.raises(LedgerValidationError):
        create_event(
            db,
            setup.organization_id,
            status="CANCELLED",
            lines=[line(setup.external_node, setup.warehouse_node, setup.item, 1)],
        )


def test_update_draft_line_rewrites_line_and_header():
    db = create_session()
    setup = seed_ledger(db)
    event = create_event(
        db,
        setup.organization_id,
        status="DRAFT",
        lines=[line(setup.external_node, setup.warehouse_node, setup.item, 10)],
    )
    target = event.lines[0]

    result = update_draft_line(
        db,
        setup.organization_id,
        target.id,
        event_fields={"note": "recount", "status": "POSTED"},
        line_fields=line(setup.adjustment_node, setup.warehouse_node, setup.item, "4.5"),
    )

    assert result.outcome == DraftLineOutcome.UPDATED
    assert result.line.from_node_id == setup.adjustment_node.id
    assert result.line.quantity == Decimal("4.500")
    assert result.event.note == "recount"
    assert result.event.status == "POSTED"

    frozen = update_draft_line(
        db,
        setup.organization_id,
        target.id,
        event_fields={},
        line_fields=line(setup.external_node, setup.warehouse_node, setup.item, 99),
    )
    assert frozen.outcome == DraftLineOutcome.IMMUTABLE
    assert target.quantity == Decimal("4.500")



def test_cancelled_draft_is_frozen_and_left_out_of_default_balances():
    db = create_session()
    setup = seed_ledger(db)
    event = create_event(
        db,
        setup.organization_id,
        status="DRAFT",
        lines=[line(setup.external_node, setup.warehouse_node, setup.item, 8)],
    )
    target = event.lines[0]

    cancelled = update_draft_line(
        db,
        setup.organization_id,
        target.id,
        event_fields={"status": "CANCELLED"},
        line_fields=line(setup.external_node, setup.warehouse_node, setup.item, 6),
    )
    assert cancelled.outcome == DraftLineOutcome.UPDATED
    assert cancelled.event.status == "CANCELLED"

    again = update_draft_line(
        db,
        setup.organization_id,
        target.id,
        event_fields={"status": "DRAFT"},
        line_fields=line(setup.external_node, setup.warehouse_node, setup.item, 1),
    )
    removed = delete_draft_line(db, setup.organization_id, target.id)
    assert again.outcome == DraftLineOutcome.IMMUTABLE
    assert removed.outcome == DraftLineOutcome.IMMUTABLE
    assert target.quantity == Decimal("6.000")
    assert db.query(InventoryMovementLine).count() == 1

    assert get_balances(db, setup.organization_id) == []
    rows = get_balances(db, setup.organization_id, statuses=["CANCELLED"])
    assert {(row.node_id, row.balance_qty) for row in rows} == {
        (setup.warehouse_node.id, Decimal("6.000")),
        (setup.external_node.id, Decimal("-6.000")),
    }

def test_update_draft_line_validates_before_writing():
    db = create_session()
    setup = seed_ledger(db)
    event = create_event(
        db,
        setup.organization_id,
        status="DRAFT",
        lines=[line(setup.external_node, setup.warehouse_node, setup.item, 10)],
    )
    target = event.lines[0]

    with pytest.raises(SameNodeError):
        update_draft_line(
            db,
            setup.organization_id,
            target.id,
            event_fields={"note": "should not stick"},
            line_fields=line(setup.warehouse_node, setup.warehouse_node, setup.item, 1),
        )

    assert event.note is None
    assert target.from_node_id == setup.external_node.id


def test_update_and_delete_missing_line_report_not_found():
    db = create_session()
    setup = seed_ledger(db)

    missing_update = update_draft_line(
        db,
        setup.organization_id,
        12345,
        line_fields=line(setup.external_node, setup.warehouse_node, setup.item, 1),
    )
    assert missing_update.outcome == DraftLineOutcome.NOT_FOUND
    assert delete_draft_line(db, setup.organization_id, 12345).outcome == DraftLineOutcome.NOT_FOUND


def test_delete_draft_line_removes_event_with_last_line():
    db = create_session()
    setup = seed_ledger(db)
    event = create_event(
        db,
        setup.organization_id,
        status="DRAFT",
        lines=[
            line(setup.external_node, setup.warehouse_node, setup.item, 10),
            line(setup.external_node, setup.warehouse_node, setup.item, 5),
        ],
    )
    event_id = event.id
    first_id, second_id = [entry.id for entry in event.lines]

    first = delete_draft_line(db, setup.organization_id, first_id)
    assert first.outcome == DraftLineOutcome.DELETED
    assert first.event_deleted is False
    assert db.query(InventoryMovementLine).filter(InventoryMovementLine.event_id == event_id).count() == 1

    second = delete_draft_line(db, setup.organization_id, second_id)
    assert second.outcome == DraftLineOutcome.DELETED
    assert second.event_deleted is True
    assert db.query(InventoryMovementEvent).filter(InventoryMovementEvent.id == event_id).count() == 0


def test_delete_posted_line_is_immutable():
    db = create_session()
    setup = seed_ledger(db)
    event = create_event(
        db,
        setup.organization_id,
        lines=[line(setup.external_node, setup.warehouse_node, setup.item, 10)],
    )

    result = delete_draft_line(db, setup.organization_id, event.lines[0].id)

    assert result.outcome == DraftLineOutcome.IMMUTABLE
    assert db.query(InventoryMovementLine).count() == 1


def test_lines_of_another_organization_are_not_found():
    db = create_session()
    acme = seed_ledger(db)
    globex = seed_ledger(db, name="Globex", code="GLOBEX")
    event = create_event(
        db,
        globex.organization_id,
        status="DRAFT",
        lines=[line(globex.external_node, globex.warehouse_node, globex.item, 1)],
    )

    assert delete_draft_line(db, acme.organization_id, event.lines[0].id).outcome == DraftLineOutcome.NOT_FOUND
    with pytest.raises(MovementNotFoundError):
        get_event(db, acme.organization_id, event.id)


def test_list_movements_orders_newest_first_and_clamps_limit():
    db = create_session()
    setup = seed_ledger(db)
    base = datetime(2026, 1, 1, 8, 0, 0)
    for offset in range(3):
        create_event(
            db,
            setup.organization_id,
            occurred_at=base + timedelta(days=offset),
            lines=[
                line(setup.external_node, setup.warehouse_node, setup.item, offset + 1),
                line(setup.warehouse_node, setup.adjustment_node, setup.item, 1),
            ],
        )

    rows = list_movements(db, setup.organization_id)
    assert len(rows) == 6
    assert [row.occurred_at for row in rows] == sorted((row.occurred_at for row in rows), reverse=True)
    newest = rows[:2]
    assert newest[0].line_id > newest[1].line_id
    assert newest[1].from_node_name == "External"
    assert newest[1].to_node_type == "WAREHOUSE"
    assert newest[1].item_code == "I1"
    assert newest[1].unit_code == "PCS"

    assert len(list_movements(db, setup.organization_id, limit=0)) == 1
    assert len(list_movements(db, setup.organization_id, limit=4)) == 4
    assert clamp_limit(None) == settings.MOVEMENT_LIST_DEFAULT_LIMIT
    assert clamp_limit(10_000) == settings.MOVEMENT_LIST_MAX_LIMIT
    assert clamp_limit(-5) == 1


def test_create_movement_api_returns_event_and_lines(client, ledger):
    test_client, _ = client

    response = test_client.post(
        f"{ledger.base_url}/inventory-movements",
        json={
            "reference_type": "RECEIPT",
            "reference_id": "R-1",
            "lines": [
                api_line(ledger.external_node_id, ledger.warehouse_node_id, ledger.item_id, "100"),
                api_line(ledger.warehouse_node_id, ledger.adjustment_node_id, ledger.item_id, "2.5"),
            ],
        },
    )

    assert response.status_code == 201
    body = response.json()
    assert body["event"]["status"] == "POSTED"
    assert body["event"]["event_type"] == "MOVE"
    assert body["event"]["created_by_user_id"] == 1
    assert [entry["line_no"] for entry in body["lines"]] == [1, 2]
    assert all(entry["unit_id"] == ledger.unit_id for entry in body["lines"])
    assert Decimal(str(body["lines"][1]["quantity"])) == Decimal("2.5")

    detail = test_client.get(f"{ledger.base_url}/inventory-movement-events/{body['event']['id']}")
    assert detail.status_code == 200
    assert len(detail.json()["lines"]) == 2


def test_create_movement_api_rejects_same_node_without_writing(client, ledger):
    test_client, SessionLocal = client

    response = test_client.post(
        f"{ledger.base_url}/inventory-movements",
        json={"lines": [api_line(ledger.warehouse_node_id, ledger.warehouse_node_id, ledger.item_id, "1")]},
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "From and to node cannot be same"
    with SessionLocal() as db:
        assert db.query(InventoryMovementEvent).count() == 0


def test_create_movement_api_rejects_foreign_item(client, ledger):
    test_client, _ = client

    response = test_client.post(
        f"{ledger.base_url}/inventory-movements",
        json={"lines": [api_line(ledger.external_node_id, ledger.warehouse_node_id, 999, "1")]},
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid item"


def test_update_posted_line_api_returns_conflict_and_keeps_rows(client, ledger):
    test_client, SessionLocal = client
    created = test_client.post(
        f"{ledger.base_url}/inventory-movements",
        json={"lines": [api_line(ledger.external_node_id, ledger.warehouse_node_id, ledger.item_id, "10")]},
    ).json()
    line_id = created["lines"][0]["id"]

    update = test_client.put(
        f"{ledger.base_url}/inventory-movements/{line_id}",
        json={"line": api_line(ledger.external_node_id, ledger.warehouse_node_id, ledger.item_id, "99")},
    )
    delete = test_client.delete(f"{ledger.base_url}/inventory-movements/{line_id}")

    assert update.status_code == 409
    assert update.json()["detail"] == "Posted/Canceled movement is immutable"
    assert delete.status_code == 409
    with SessionLocal() as db:
        stored = db.get(InventoryMovementLine, line_id)
        assert stored.quantity == Decimal("10.000")


def test_draft_line_api_update_post_and_delete(client, ledger):
    test_client, SessionLocal = client
    created = test_client.post(
        f"{ledger.base_url}/inventory-movements",
        json={
            "status": "DRAFT",
            "lines": [
                api_line(ledger.external_node_id, ledger.warehouse_node_id, ledger.item_id, "10"),
                api_line(ledger.external_node_id, ledger.warehouse_node_id, ledger.item_id, "3"),
            ],
        },
    ).json()
    event_id = created["event"]["id"]
    first_id, second_id = [entry["id"] for entry in created["lines"]]

    removed = test_client.delete(f"{ledger.base_url}/inventory-movements/{first_id}")
    assert removed.status_code == 204

    updated = test_client.put(
        f"{ledger.base_url}/inventory-movements/{second_id}",
        json={
            "event": {"status": "POSTED", "note": "counted"},
            "line": api_line(ledger.external_node_id, ledger.warehouse_node_id, ledger.item_id, "7"),
        },
    )
    assert updated.status_code == 200
    assert updated.json()["id"] == second_id
    assert updated.json()["event_id"] == event_id
    assert Decimal(str(updated.json()["quantity"])) == Decimal("7")

    detail = test_client.get(f"{ledger.base_url}/inventory-movement-events/{event_id}").json()
    assert detail["event"]["status"] == "POSTED"
    assert detail["event"]["note"] == "counted"
    assert [entry["id"] for entry in detail["lines"]] == [second_id]

    assert test_client.delete(f"{ledger.base_url}/inventory-movements/{second_id}").status_code == 409
    with SessionLocal() as db:
        assert db.get(InventoryMovementEvent, event_id) is not None


def test_deleting_last_draft_line_api_removes_event(client, ledger):
    test_client, SessionLocal = client
    created = test_client.post(
        f"{ledger.base_url}/inventory-movements",
        json={
            "status": "DRAFT",
            "lines": [api_line(ledger.external_node_id, ledger.warehouse_node_id, ledger.item_id, "1")],
        },
    ).json()

    response = test_client.delete(f"{ledger.base_url}/inventory-movements/{created['lines'][0]['id']}")

    assert response.status_code == 204
    with SessionLocal() as db:
        assert db.get(InventoryMovementEvent, created["event"]["id"]) is None
    assert test_client.get(f"{ledger.base_url}/inventory-movement-events/{created['event']['id']}").status_code == 404


def test_missing_line_api_returns_not_found(client, ledger):
    test_client, _ = client

    update = test_client.put(
        f"{ledger.base_url}/inventory-movements/4242",
        json={"line": api_line(ledger.external_node_id, ledger.warehouse_node_id, ledger.item_id, "1")},
    )
    delete = test_client.delete(f"{ledger.base_url}/inventory-movements/4242")

    assert update.status_code == 404
    assert delete.status_code == 404


def test_list_movements_api_clamps_limit(client, ledger):
    test_client, _ = client
    test_client.post(
        f"{ledger.base_url}/inventory-movements",
        json={
            "lines": [
                api_line(ledger.external_node_id, ledger.warehouse_node_id, ledger.item_id, "5"),
                api_line(ledger.warehouse_node_id, ledger.adjustment_node_id, ledger.item_id, "1"),
            ]
        },
    )

    everything = test_client.get(f"{ledger.base_url}/inventory-movements")
    clamped = test_client.get(f"{ledger.base_url}/inventory-movements", params={"limit": 0})

    assert everything.status_code == 200
    assert len(everything.json()) == 2
    assert len(clamped.json()) == 1
    assert clamped.json()[0]["line_no"] == 2


def test_cancelled_draft_api_rejects_edits(client, ledger):
    test_client, SessionLocal = client
    created = test_client.post(
        f"{ledger.base_url}/inventory-movements",
        json={
            "status": "DRAFT",
            "lines": [api_line(ledger.external_node_id, ledger.warehouse_node_id, ledger.item_id, "2")],
        },
    ).json()
    line_id = created["lines"][0]["id"]

    cancelled = test_client.put(
        f"{ledger.base_url}/inventory-movements/{line_id}",
        json={
            "event": {"status": "CANCELLED"},
            "line": api_line(ledger.external_node_id, ledger.warehouse_node_id, ledger.item_id, "2"),
        },
    )
    assert cancelled.status_code == 200

    update = test_client.put(
        f"{ledger.base_url}/inventory-movements/{line_id}",
        json={"line": api_line(ledger.external_node_id, ledger.warehouse_node_id, ledger.item_id, "9")},
    )
    delete = test_client.delete(f"{ledger.base_url}/inventory-movements/{line_id}")

    assert update.status_code == 409
    assert update.json()["detail"] == "Posted/Canceled movement is immutable"
    assert delete.status_code == 409
    assert test_client.get(f"{ledger.base_url}/inventory-balances").json() == []
    with SessionLocal() as db:
        assert db.get(InventoryMovementEvent, created["event"]["id"]).status == "CANCELLED"


def test_create_movement_api_rejects_quantity_beyond_column_range(client, ledger):
    test_client, SessionLocal = client

    response = test_client.post(
        f"{ledger.base_url}/inventory-movements",
        json={"lines": [api_line(ledger.external_node_id, ledger.warehouse_node_id, ledger.item_id, "1e40")]},
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Line 1: quantity is too large."
    with SessionLocal() as db:
        assert db.query(InventoryMovementLine).count() == 0
