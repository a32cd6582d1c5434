"""Order ledger: insert-once, last-write-wins status updates, NotFound, durability."""
import pytest

from vmtopup.core.exceptions import DuplicateKey, OrderNotFound
from vmtopup.db.init_db import init_db
from vmtopup.db.session import build_engine, build_session_factory
from vmtopup.models.order import Order
from vmtopup.schemas.order import OrderCreate
from vmtopup.services.ledger_service import OrderLedger


def _order(ref_id="REF1", status="pending", owner="42"):
    return OrderCreate(
        ref_id=ref_id,
        session_owner_id=owner,
        target_account_id="123456789",
        amount_code="30M",
        sku_code="HD30M",
        status=status,
        raw_response={"status": status, "message": "accepted"},
    )


def _count(session_factory):
    db = session_factory()
    try:
        return db.query(Order).count()
    finally:
        db.close()


def test_insert_and_get(session_factory):
    ledger = OrderLedger(session_factory)
    ledger.insert(_order())

    record = ledger.get("REF1")
    assert record.ref_id == "REF1"
    assert record.session_owner_id == "42"
    assert record.target_account_id == "123456789"
    assert record.amount_code == "30M"
    assert record.sku_code == "HD30M"
    assert record.status == "pending"
    assert record.raw_response == {"status": "pending", "message": "accepted"}
    assert record.created_at is not None


def test_insert_duplicate_does_not_overwrite(session_factory):
    ledger = OrderLedger(session_factory)
    ledger.insert(_order(status="pending", owner="42"))

    with pytest.raises(DuplicateKey) as exc:
        ledger.insert(_order(status="success", owner="99"))

    assert exc.value.ref_id == "REF1"
    record = ledger.get("REF1")
    assert record.status == "pending"
    assert record.session_owner_id == "42"
    assert _count(session_factory) == 1


def test_update_status_last_write_wins(session_factory):
    ledger = OrderLedger(session_factory)
    ledger.insert(_order(status="pending"))

    ledger.update_status("REF1", "failed", {"ref_id": "REF1", "status": "failed"})
    ledger.update_status("REF1", "success", {"ref_id": "REF1", "status": "success"})

    record = ledger.get("REF1")
    assert record.status == "success"
    assert record.raw_response == {"ref_id": "REF1", "status": "success"}
    assert record.updated_at is not None
    # placement fields survive reconciliation
    assert record.target_account_id == "123456789"
    assert record.amount_code == "30M"
    assert record.sku_code == "HD30M"
    assert record.session_owner_id == "42"


def test_update_status_unknown_ref_id(session_factory):
    ledger = OrderLedger(session_factory)
    ledger.insert(_order())

    with pytest.raises(OrderNotFound):
        ledger.update_status("NOPE", "success", {"ref_id": "NOPE"})

    assert _count(session_factory) == 1
    assert ledger.get("REF1").status == "pending"


def test_update_before_insert_then_insert(session_factory):
    """A callback that beats the placement write changes nothing; the insert still works."""
    ledger = OrderLedger(session_factory)

    with pytest.raises(OrderNotFound):
        ledger.update_status("REF1", "success", {"ref_id": "REF1", "status": "success"})

    ledger.insert(_order(status="pending"))
    assert ledger.get("REF1").status == "pending"


def test_get_unknown_ref_id(session_factory):
    with pytest.raises(OrderNotFound):
        OrderLedger(session_factory).get("missing")


def test_get_owner(session_factory):
    ledger = OrderLedger(session_factory)
    ledger.insert(_order(owner="-100123"))

    assert ledger.get_owner("REF1") == "-100123"
    assert ledger.get_owner("missing") is None


def test_orders_survive_restart(db_url, session_factory):
    OrderLedger(session_factory).insert(_order())

    engine = build_engine(db_url)
    init_db(engine)
    try:
        restarted = OrderLedger(build_session_factory(engine))
        assert restarted.get("REF1").status == "pending"
    finally:
        engine.dispose()
