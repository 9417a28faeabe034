from __future__ import annotations

from dataclasses import replace

import pytest

from gridchain_sim.ledger import IntegrityReason, Ledger, RawPayload, ValidationResult, validate_chain


def test_empty_and_single_record_chains_are_valid(ledger: Ledger, snapshot_factory) -> None:
    assert validate_chain([]) == ValidationResult(True)
    ledger.append(snapshot_factory())
    assert ledger.validate().valid


def test_untouched_chain_is_valid(populated_ledger: Ledger) -> None:
    result = populated_ledger.validate()
    assert result.valid
    assert result.error_index is None
    assert result.reason is None
    assert result.message is None


@pytest.mark.parametrize("index", range(5))
def test_tamper_is_detected_at_every_position(populated_ledger: Ledger, index: int) -> None:
    populated_ledger.tamper(index, {"solar_output": 500, "load_consumption": 0})

    result = populated_ledger.validate()

    assert not result.valid
    assert result.error_index == index
    assert result.reason is IntegrityReason.DATA_TAMPERED
    assert result.message == "Data Tampered: Hash mismatch"


def test_first_violation_wins(populated_ledger: Ledger) -> None:
    populated_ledger.tamper(3, {"x": 1})
    populated_ledger.tamper(1, {"x": 2})
    assert populated_ledger.validate().error_index == 1


def test_broken_link_is_reported_before_content(populated_ledger: Ledger) -> None:
    records = list(populated_ledger.records())
    records[2] = replace(records[2], prev_digest="1" * 64)

    result = validate_chain(records)

    assert result == ValidationResult(False, 2, IntegrityReason.LINK_BROKEN)
    assert result.message == "Broken Link: Previous hash mismatch"


def test_resealed_record_breaks_the_next_link(populated_ledger: Ledger) -> None:
    from gridchain_sim.ledger import fingerprint, serialize_payload

    records = list(populated_ledger.records())
    payload = RawPayload.from_value({"forged": True})
    target = records[1]
    forged_digest = fingerprint(target.index, target.prev_digest, target.timestamp, serialize_payload(payload))
    records[1] = replace(target, payload=payload, digest=forged_digest)

    assert validate_chain(records) == ValidationResult(False, 2, IntegrityReason.LINK_BROKEN)


def test_validation_ignores_tampered_flag(populated_ledger: Ledger) -> None:
    records = [replace(r, tampered=True) for r in populated_ledger.records()]
    assert validate_chain(records).valid


def test_validation_result_to_dict() -> None:
    result = ValidationResult(False, 4, IntegrityReason.DATA_TAMPERED)
    assert result.to_dict() == {
        "valid": False,
        "error_index": 4,
        "reason": "DATA_TAMPERED",
        "message": "Data Tampered: Hash mismatch",
    }


def test_lone_genesis_is_trusted_until_a_successor_anchors_it(ledger: Ledger, snapshot_factory) -> None:
    ledger.append(snapshot_factory())
    ledger.tamper(0, {"solar_output": 500})
    assert ledger.validate().valid

    ledger.append(snapshot_factory(solar=2.0))
    assert ledger.validate() == ValidationResult(False, 0, IntegrityReason.DATA_TAMPERED)
