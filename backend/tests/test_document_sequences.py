"""
Document id allocation tests.

Verifies:
- Numbers are unique and increasing per document type
- Concurrent allocations never hand out the same number
- A failed unit of work does not consume a number
- Collection snapshots report nextId from the sequence
"""

import threading
from types import SimpleNamespace

import pytest

from salesflow.errors import NotFoundError, ValidationError
from salesflow.extensions import db
from salesflow.models import DocumentSequence
from salesflow.services import collection_service, document_service
from salesflow.services.concurrency import run_in_unit


def test_allocations_are_sequential_per_type(db_session):
    first = document_service.allocate_id("quote")
    second = document_service.allocate_id("quote")
    other = document_service.allocate_id("item")

    assert second == first + 1
    assert other == 1
    assert document_service.read_sequence("quote") == second + 1


def test_payment_numbers_start_at_1001(db_session):
    assert document_service.allocate_id(document_service.SEQ_PAYMENT_NUMBER) == 1001
    assert document_service.allocate_id(document_service.SEQ_PAYMENT_NUMBER) == 1002


def test_unknown_type_is_created_on_first_use(db_session):
    assert document_service.read_sequence("credit_note") == 1
    assert document_service.allocate_id("credit_note") == 1
    assert document_service.read_sequence("credit_note") == 2


def test_blank_type_rejected(db_session):
    with pytest.raises(ValidationError):
        document_service.allocate_id("")


def test_rolled_back_unit_does_not_consume_number(db_session):
    before = document_service.read_sequence("quote")

    class Boom(Exception):
        pass

    def _op():
        document_service.next_id("quote")
        raise Boom()

    with pytest.raises(Boom):
        run_in_unit(_op, "quotes")

    assert document_service.read_sequence("quote") == before


def test_lost_first_insert_race_keeps_unit(db_session, monkeypatch):
    """Another writer creates the row between our UPDATE and INSERT."""
    db_session.add(DocumentSequence(document_type="credit_note", next_number=5))
    db_session.commit()

    real_execute = db.session.execute
    missed = []

    def execute_missing_first(stmt, *args, **kwargs):
        if not missed:
            missed.append(stmt)
            return SimpleNamespace(rowcount=0)
        return real_execute(stmt, *args, **kwargs)

    def _op():
        db.session.add(DocumentSequence(document_type="marker", next_number=1))
        db.session.flush()
        monkeypatch.setattr(db.session, "execute", execute_missing_first)
        return document_service.next_id("credit_note")

    assert run_in_unit(_op, "quotes") == 5
    monkeypatch.undo()

    assert len(missed) == 1
    assert document_service.read_sequence("credit_note") == 6
    assert document_service.read_sequence("marker") == 1


def test_ensure_sequences_is_idempotent(db_session):
    assert document_service.ensure_sequences() == 0
    assert document_service.ensure_sequences(["brand_new"]) == 1
    assert document_service.ensure_sequences(["brand_new"]) == 0


def test_concurrent_allocations_are_distinct(app, db_session):
    """N threads, each with its own app context and connection."""
    workers = 8
    per_worker = 5
    results = []
    errors = []
    results_lock = threading.Lock()
    start = threading.Barrier(workers)

    def worker():
        try:
            with app.app_context():
                start.wait()
                for _ in range(per_worker):
                    number = document_service.allocate_id("quote")
                    with results_lock:
                        results.append(number)
        except Exception as exc:  # surfaced below
            with results_lock:
                errors.append(exc)

    threads = [threading.Thread(target=worker) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)

    assert errors == []
    assert len(results) == workers * per_worker
    assert len(set(results)) == len(results)
    assert sorted(results) == list(range(1, workers * per_worker + 1))

    db.session.expire_all()
    assert document_service.read_sequence("quote") == workers * per_worker + 1


def test_format_document_number():
    assert document_service.format_document_number("QT", 42) == "QT-000042"
    assert document_service.format_document_number("QT", 1234567) == "QT-1234567"


class TestCollectionSnapshots:

    def test_snapshot_shape(self, db_session, customer_a):
        snapshot = collection_service.read_collection("customers")

        assert [r["id"] for r in snapshot["records"]] == [customer_a.id]
        assert snapshot["nextId"] == customer_a.id + 1

    def test_unknown_collection(self, db_session):
        with pytest.raises(NotFoundError):
            collection_service.read_collection("orders")

    def test_invoices_next_id_follows_rows(self, db_session, invoice_a):
        snapshot = collection_service.read_collection("invoices")
        assert snapshot["nextId"] == invoice_a.id + 1
