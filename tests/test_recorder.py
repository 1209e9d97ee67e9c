import asyncio
import datetime as dt

import pytest
from sqlalchemy.exc import IntegrityError

from conftest import make_transaction
from errors import DuplicateError, StoreError, ValidationError
from recorder import MAX_QUANTITIES, TransactionRecorder, parse_payload, parse_quantities


AT = dt.datetime(2024, 3, 15, 10, 0, 0)


def test_parse_payload_splits_amount_and_description():
    assert parse_payload("250, обед в кафе") == (250, "обед в кафе")
    assert parse_payload("10, a, b") == (10, "a, b")
    assert parse_payload("0, ") == (0, "")


@pytest.mark.parametrize("payload", ["250", "", None, "abc, обед", "-5, долг", "12.5, кофе"])
def test_parse_payload_rejects_malformed_input(payload):
    with pytest.raises(ValidationError):
        parse_payload(payload)


def test_parse_quantities_accepts_ints_and_rejects_bools():
    assert parse_quantities(" 42 ") == 42
    assert parse_quantities(7) == 7
    with pytest.raises(ValidationError):
        parse_quantities(True)


def test_record_inserts_transaction(fake_store):
    recorder = TransactionRecorder(fake_store)

    saved = asyncio.run(recorder.record(1, AT, False, "300", "Одежда", "куртка"))

    assert fake_store.inserts == 1
    assert saved.telegram_id == 1
    assert saved.created_at == AT
    assert saved.operation_type is False
    assert saved.quantities == 300
    assert saved.category == "Одежда"
    assert saved.description == "куртка"


def test_duplicate_timestamp_is_rejected_without_insert(fake_store):
    fake_store.rows.append(make_transaction(user_id=1, created_at=AT))
    recorder = TransactionRecorder(fake_store)

    with pytest.raises(DuplicateError) as excinfo:
        asyncio.run(recorder.record(1, AT, True, 100, "Заработная плата", ""))

    assert fake_store.inserts == 0
    assert excinfo.value.user_id == 1
    assert excinfo.value.created_at == AT


def test_same_timestamp_for_another_user_is_allowed(fake_store):
    fake_store.rows.append(make_transaction(user_id=1, created_at=AT))
    recorder = TransactionRecorder(fake_store)

    asyncio.run(recorder.record(2, AT, False, 100, "Food", ""))

    assert fake_store.inserts == 1


@pytest.mark.parametrize(
    "quantities, category, description",
    [("-1", "Food", ""), ("x", "Food", ""), (5, "   ", ""), (5, "Food", None)],
)
def test_invalid_input_is_rejected_without_touching_store(fake_store, quantities, category, description):
    recorder = TransactionRecorder(fake_store)

    with pytest.raises(ValidationError):
        asyncio.run(recorder.record(1, AT, False, quantities, category, description))

    assert fake_store.inserts == 0


def test_record_message_uses_clock_when_no_timestamp(fake_store):
    recorder = TransactionRecorder(fake_store, clock=lambda: AT)

    saved = asyncio.run(recorder.record_message(5, False, "Здоровье", "1500, аптека"))

    assert saved.created_at == AT
    assert saved.quantities == 1500
    assert saved.description == "аптека"


def test_unique_constraint_violation_maps_to_duplicate(fake_store):
    async def insert(transaction):
        raise IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))

    fake_store.insert = insert
    recorder = TransactionRecorder(fake_store)

    with pytest.raises(DuplicateError):
        asyncio.run(recorder.record(1, AT, False, 10, "Food", ""))


def test_store_failure_is_wrapped(fake_store):
    fake_store.fail = True
    recorder = TransactionRecorder(fake_store)

    with pytest.raises(StoreError) as excinfo:
        asyncio.run(recorder.record(1, AT, True, 10, "Прочие доходы", ""))

    assert excinfo.value.operation == "income duplicate check"
    assert fake_store.inserts == 0


@pytest.mark.parametrize("raw", ["1_000", "١٢", "+", " 12 3", "1e3"])
def test_parse_quantities_accepts_only_ascii_digits(raw):
    with pytest.raises(ValidationError):
        parse_quantities(raw)


def test_parse_quantities_allows_leading_plus():
    assert parse_quantities("+15") == 15


def test_amount_above_integer_column_range_is_rejected(fake_store):
    recorder = TransactionRecorder(fake_store, clock=lambda: AT)

    assert parse_quantities(str(MAX_QUANTITIES)) == MAX_QUANTITIES
    with pytest.raises(ValidationError):
        parse_quantities(MAX_QUANTITIES + 1)
    with pytest.raises(ValidationError):
        asyncio.run(recorder.record_message(1, False, "Food", "99999999999999999999, big"))

    assert fake_store.inserts == 0
