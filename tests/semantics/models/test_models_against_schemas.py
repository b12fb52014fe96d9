"""Schema conformance tests for core Pydantic models.

Validates that the persisted models (audit events, payout records and
revenue records) accept valid inputs and reject invalid ones in alignment
with their JSON Schemas, so files written by this package stay readable by
other consumers of the same schemas.
"""

# pylint: disable=line-too-long,missing-function-docstring
# pylint: disable=redefined-outer-name,global-statement
from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from jsonschema import ValidationError as JsonSchemaValidationError
from jsonschema import validate as jsonschema_validate
from pydantic import ValidationError as PydanticValidationError
from referencing import Registry, Resource
from referencing.jsonschema import DRAFT202012

from revenue_settlement.core.domain.types import AuditEvent, PayoutRecord, RevenueRecord

SCHEMA_REGISTRY = Registry()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def load_schema(name: str) -> dict:
    """
    Load JSON schema from the package's schema directory.
    """
    global SCHEMA_REGISTRY

    root = Path(__file__).parent.parent.parent.parent
    schema_path = root / "revenue_settlement" / "core" / "schemas" / name

    with schema_path.open("r", encoding="utf-8") as f:
        schema = json.load(f)

    schema_id = schema.get("$id")
    if isinstance(schema_id, str) and schema_id:
        resource = Resource.from_contents(schema, default_specification=DRAFT202012)
        SCHEMA_REGISTRY = SCHEMA_REGISTRY.with_resource(schema_id, resource)

    return schema


def assert_pydantic_then_schema_ok(model_type: Any, data: dict[str, Any], schema: dict[str, Any]) -> dict:
    """
    Validate with Pydantic first, then validate the dumped instance with JSON Schema.
    """
    obj = model_type.model_validate(data)
    instance = obj.model_dump(mode="json")
    jsonschema_validate(instance=instance, schema=schema, registry=SCHEMA_REGISTRY)
    return instance


def assert_schema_invalid_but_pydantic_rejects(model_type: Any, data: dict[str, Any], schema: dict[str, Any]) -> None:
    """
    If the schema rejects an input, Pydantic must reject it too.
    """
    with pytest.raises(JsonSchemaValidationError):
        jsonschema_validate(instance=data, schema=schema, registry=SCHEMA_REGISTRY)

    with pytest.raises(PydanticValidationError):
        model_type.model_validate(data)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="module", autouse=True)
def _load_common_schema() -> None:
    load_schema("common.schema.json")


@pytest.fixture(scope="module")
def audit_event_schema() -> dict:
    return load_schema("audit_event.schema.json")


@pytest.fixture(scope="module")
def payout_record_schema() -> dict:
    return load_schema("payout_record.schema.json")


@pytest.fixture(scope="module")
def revenue_record_schema() -> dict:
    return load_schema("revenue_record.schema.json")


# ---------------------------------------------------------------------------
# AuditEvent
# ---------------------------------------------------------------------------

def make_audit_event(**overrides) -> dict[str, Any]:
    data: dict[str, Any] = {
        "event_id": "6f1c1f0e-3b7a-4a5e-9a43-0d1c8d1f2b11",
        "timestamp": "2024-03-15T12:00:00Z",
        "actor": "settlement-orchestrator",
        "event_type": "SETTLEMENT_COMPLETED",
        "event_data": {"business_id": "biz-1", "adjusted_redemption_value": "19.93"},
        "signature": None,
    }
    data.update(overrides)
    return data


def test_audit_event_valid(audit_event_schema):
    instance = assert_pydantic_then_schema_ok(AuditEvent, make_audit_event(), audit_event_schema)
    assert instance["signature"] is None


def test_audit_event_empty_actor_rejected(audit_event_schema):
    assert_schema_invalid_but_pydantic_rejects(AuditEvent, make_audit_event(actor=""), audit_event_schema)


def test_audit_event_data_must_be_object(audit_event_schema):
    assert_schema_invalid_but_pydantic_rejects(AuditEvent, make_audit_event(event_data=[1, 2]), audit_event_schema)


def test_audit_event_rejects_additional_properties(audit_event_schema):
    data = make_audit_event()
    data["unexpected"] = 1

    with pytest.raises(PydanticValidationError):
        AuditEvent.model_validate(data)

    with pytest.raises(JsonSchemaValidationError):
        jsonschema_validate(instance=data, schema=audit_event_schema, registry=SCHEMA_REGISTRY)


# ---------------------------------------------------------------------------
# PayoutRecord
# ---------------------------------------------------------------------------

def make_payout_record(**overrides) -> dict[str, Any]:
    data: dict[str, Any] = {
        "fund_key": "I",
        "holder": "0x00000000000000000000000000000000000000aa",
        "period_id": 4,
        "amount_tokens": 1000,
        "nav_per_token": 22 * 10**15,
        "gross_value": 22 * 10**18,
        "penalty_amount": 22 * 10**16,
        "liquidity_fee_amount": 11 * 10**16,
        "discount_amount": 0,
        "net_payout": 2167 * 10**16,
        "event_timestamp": 1_710_504_000,
        "tx_hash": "0x" + "ab" * 32,
        "recorded_at": "2024-03-15T12:00:01Z",
    }
    data.update(overrides)
    return data


def test_payout_record_valid_with_uint256_values(payout_record_schema):
    data = make_payout_record(gross_value=2**256 - 1)
    instance = assert_pydantic_then_schema_ok(PayoutRecord, data, payout_record_schema)
    assert instance["gross_value"] == 2**256 - 1


def test_payout_record_negative_amount_rejected(payout_record_schema):
    assert_schema_invalid_but_pydantic_rejects(PayoutRecord, make_payout_record(net_payout=-1), payout_record_schema)


def test_payout_record_requires_recorded_at(payout_record_schema):
    bad = make_payout_record()
    bad.pop("recorded_at")
    assert_schema_invalid_but_pydantic_rejects(PayoutRecord, bad, payout_record_schema)


def test_payout_record_empty_tx_hash_rejected(payout_record_schema):
    assert_schema_invalid_but_pydantic_rejects(PayoutRecord, make_payout_record(tx_hash=""), payout_record_schema)


# ---------------------------------------------------------------------------
# RevenueRecord
# ---------------------------------------------------------------------------

def make_revenue_record(**overrides) -> dict[str, Any]:
    data: dict[str, Any] = {
        "fund_key": "I",
        "period_label": "2024-02",
        "net_revenue": 120000,
        "tokenized_percent_bps": 2000,
    }
    data.update(overrides)
    return data


def test_revenue_record_valid_minimal(revenue_record_schema):
    assert_pydantic_then_schema_ok(RevenueRecord, make_revenue_record(), revenue_record_schema)


def test_revenue_record_missing_net_revenue_is_allowed(revenue_record_schema):
    instance = assert_pydantic_then_schema_ok(
        RevenueRecord, make_revenue_record(net_revenue=None, gross_revenue="130000.50"), revenue_record_schema
    )
    assert instance["net_revenue"] is None


def test_revenue_record_period_label_format(revenue_record_schema):
    assert_schema_invalid_but_pydantic_rejects(RevenueRecord, make_revenue_record(period_label="2024-13"), revenue_record_schema)
    assert_schema_invalid_but_pydantic_rejects(RevenueRecord, make_revenue_record(period_label="2024-2"), revenue_record_schema)


def test_revenue_record_bps_bounds(revenue_record_schema):
    assert_schema_invalid_but_pydantic_rejects(RevenueRecord, make_revenue_record(tokenized_percent_bps=10_001), revenue_record_schema)
    assert_schema_invalid_but_pydantic_rejects(RevenueRecord, make_revenue_record(tokenized_percent_bps=-1), revenue_record_schema)
