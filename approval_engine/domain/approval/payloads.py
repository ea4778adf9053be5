"""Schemas for request payloads.

Payloads are opaque to the workflow itself; only the chain policies read a
handful of fields (``amount``, ``category``, ``request_type``). They are still
validated strictly on the way in so nothing malformed is ever persisted.
"""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from approval_engine.core import errors
from .entities import RequestKind

_TIME_PATTERN = r'^([01]\d|2[0-3]):[0-5]\d$'


class RegularizationType(str, Enum):
    MISSED_CHECK_IN = 'Missed Check-In'
    MISSED_CHECK_OUT = 'Missed Check-Out'
    MISSED_BOTH = 'Missed Both'
    LATE_ARRIVAL = 'Late Arrival'
    EARLY_DEPARTURE = 'Early Departure'
    ABSENT_TO_PRESENT = 'Absent to Present'
    ABSENT_TO_HALF_DAY = 'Absent to Half Day'
    SYSTEM_ERROR = 'System Error'
    WORK_FROM_HOME = 'Work From Home'
    FIELD_WORK = 'Field Work'


class AttendanceStatus(str, Enum):
    PRESENT = 'Present'
    HALF_DAY = 'Half Day'
    WORK_FROM_HOME = 'Work From Home'


class ReimbursementCategory(str, Enum):
    TRAVEL = 'Travel'
    FOOD = 'Food'
    INTERNET = 'Internet'
    OFFICE_SUPPLIES = 'Office Supplies'
    MEDICAL = 'Medical'
    COMMUNICATION = 'Communication'
    TRAINING = 'Training'
    FUEL = 'Fuel'
    ACCOMMODATION = 'Accommodation'
    OTHER = 'Other'


class Currency(str, Enum):
    INR = 'INR'
    USD = 'USD'
    EUR = 'EUR'
    GBP = 'GBP'


class Priority(str, Enum):
    LOW = 'Low'
    NORMAL = 'Normal'
    HIGH = 'High'
    URGENT = 'Urgent'


class PayloadBase(BaseModel):
    """Unknown fields are carried through untouched."""

    model_config = ConfigDict(extra='allow')


class PermissionPayload(PayloadBase):
    """Short time-off permission within working hours."""

    start_date: date
    start_time: str = Field(pattern=_TIME_PATTERN)
    end_date: date
    end_time: str = Field(pattern=_TIME_PATTERN)
    duration: Optional[str] = None
    reason: str = Field(min_length=1, max_length=500)
    work_description: str = Field(min_length=1, description='Work handed over during the absence.')
    assigned_by: Optional[str] = None
    responsible_person: Optional[str] = None

    @model_validator(mode='after')
    def _check_window(self) -> 'PermissionPayload':
        if (self.end_date, self.end_time) < (self.start_date, self.start_time):
            raise ValueError('Permission must end after it starts')
        return self


class RegularizationPayload(PayloadBase):
    """Correction of a recorded attendance day."""

    attendance_date: date
    request_type: RegularizationType
    reason: str = Field(min_length=1, max_length=500)
    requested_check_in: Optional[str] = Field(default=None, pattern=_TIME_PATTERN)
    requested_check_out: Optional[str] = Field(default=None, pattern=_TIME_PATTERN)
    requested_status: Optional[AttendanceStatus] = None
    priority: Priority = Priority.NORMAL


class ReimbursementPayload(PayloadBase):
    """Expense claim with optional receipt references."""

    category: ReimbursementCategory
    subcategory: Optional[str] = Field(default=None, max_length=100)
    amount: float = Field(ge=0, le=100_000)
    currency: Currency = Currency.INR
    description: str = Field(min_length=1, max_length=500)
    expense_date: date
    attachments: list[str] = Field(default_factory=list, description='Opaque attachment store references.')
    priority: Priority = Priority.NORMAL

    @field_validator('expense_date')
    @classmethod
    def _not_in_future(cls, value: date) -> date:
        if value > date.today():
            raise ValueError('Expense date cannot be in the future')
        return value


PAYLOAD_SCHEMAS: dict[RequestKind, type[PayloadBase]] = {
    RequestKind.PERMISSION: PermissionPayload,
    RequestKind.REGULARIZATION: RegularizationPayload,
    RequestKind.REIMBURSEMENT: ReimbursementPayload,
}


def validate_payload(kind: RequestKind, payload: dict[str, Any]) -> dict[str, Any]:
    """Validate a request payload for the given kind.

    Args:
        kind: RequestKind enum.
        payload: Raw payload dict.

    Returns:
        The normalized payload as a JSON-compatible dict.

    Raises:
        approval_engine.core.errors.ValidationError: If the payload is invalid for the kind.
    """
    schema = PAYLOAD_SCHEMAS.get(kind)
    if schema is None:
        raise errors.ValidationError(f'Unsupported request kind: {kind}')
    if not isinstance(payload, dict):
        raise errors.ValidationError('Payload must be a JSON object')
    try:
        model = schema.model_validate(payload)
    except ValidationError as exc:
        raise errors.ValidationError(
            f'Invalid {kind.value} payload',
            errors=[
                {'loc': list(e['loc']), 'msg': e['msg'], 'type': e['type']}
                for e in exc.errors()
            ],
        ) from exc
    return model.model_dump(mode='json')
