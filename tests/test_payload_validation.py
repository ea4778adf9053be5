from __future__ import annotations

from datetime import date, timedelta

import pytest

from approval_engine.core.errors import ValidationError
from approval_engine.domain.approval.entities import RequestKind
from approval_engine.domain.approval.payloads import validate_payload

from tests.fixtures.workflow import permission_payload, regularization_payload, reimbursement_payload


def test_valid_payloads_are_normalized() -> None:
    normalized = validate_payload(RequestKind.REIMBURSEMENT, reimbursement_payload(amount="1500"))

    assert normalized["amount"] == 1500.0
    assert normalized["currency"] == "INR"
    assert normalized["priority"] == "Normal"
    assert normalized["attachments"] == []


def test_unknown_fields_are_carried_through() -> None:
    payload = regularization_payload(location="Site B")

    normalized = validate_payload(RequestKind.REGULARIZATION, payload)

    assert normalized["location"] == "Site B"
    assert normalized["request_type"] == "Missed Check-In"


def test_permission_must_end_after_it_starts() -> None:
    payload = permission_payload(start_time="15:00", end_time="11:00")

    with pytest.raises(ValidationError) as exc_info:
        validate_payload(RequestKind.PERMISSION, payload)

    assert "end after it starts" in exc_info.value.errors[0]["msg"]


@pytest.mark.parametrize(
    "overrides",
    [
        {"amount": 100_001},
        {"amount": -1},
        {"description": ""},
        {"description": "x" * 501},
        {"category": "Gifts"},
        {"expense_date": (date.today() + timedelta(days=3)).isoformat()},
    ],
)
def test_reimbursement_rejections(overrides) -> None:
    with pytest.raises(ValidationError) as exc_info:
        validate_payload(RequestKind.REIMBURSEMENT, reimbursement_payload(**overrides))

    assert exc_info.value.errors
    assert {"loc", "msg", "type"} <= set(exc_info.value.errors[0])


def test_regularization_time_format() -> None:
    with pytest.raises(ValidationError) as exc_info:
        validate_payload(RequestKind.REGULARIZATION, regularization_payload(requested_check_in="9am"))

    assert exc_info.value.errors[0]["loc"] == ["requested_check_in"]


def test_missing_required_field() -> None:
    payload = permission_payload()
    del payload["work_description"]

    with pytest.raises(ValidationError) as exc_info:
        validate_payload(RequestKind.PERMISSION, payload)

    assert exc_info.value.errors[0]["loc"] == ["work_description"]


def test_payload_must_be_an_object() -> None:
    with pytest.raises(ValidationError):
        validate_payload(RequestKind.PERMISSION, ["not", "a", "dict"])
