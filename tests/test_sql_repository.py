from __future__ import annotations

from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from approval_engine.core.errors import ConcurrentModification, NotFound
from approval_engine.domain.approval.entities import ApprovalStep, RequestKind, RequestStatus
from approval_engine.domain.approval.models import Base
from approval_engine.domain.approval.record import ApprovalRequest
from approval_engine.domain.approval.repository import SqlApprovalRequestRepository
from approval_engine.domain.roles import Role

from tests.fixtures import role_directory as who
from tests.fixtures.workflow import make_controller, reimbursement_payload

T0 = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def repository(db) -> SqlApprovalRequestRepository:
    return SqlApprovalRequestRepository(db)


def _pending(requester_id: str = "emp-1") -> ApprovalRequest:
    record = ApprovalRequest.new_draft(
        kind=RequestKind.REIMBURSEMENT,
        requester_id=requester_id,
        payload={"amount": 1200.0, "category": "Travel"},
        now=T0,
    )
    record.submit(
        chain=[
            ApprovalStep(level="Manager", required_roles=frozenset({Role.TEAM_LEADER, Role.TEAM_MANAGER})),
            ApprovalStep(level="HR", required_roles=frozenset({Role.HR_MANAGER})),
        ],
        now=T0,
    )
    return record


def test_round_trip_preserves_record(repository) -> None:
    record = _pending()
    repository.add(record)

    loaded = repository.get(record.id)

    assert loaded.version == 1
    assert loaded.chain == record.chain
    assert loaded.status == RequestStatus.PENDING
    assert loaded.current_level == "Manager"
    assert loaded.created_at == T0
    assert loaded.created_at.tzinfo is not None
    assert loaded.audit_trail == record.audit_trail


def test_save_bumps_version(repository) -> None:
    record = repository.add(_pending())
    loaded = repository.get(record.id)
    loaded.approve(level="Manager", actor_id="tm-1", actor_role=Role.TEAM_MANAGER, now=T0)

    saved = repository.save(loaded, expected_version=1)

    assert saved.version == 2
    reloaded = repository.get(record.id)
    assert reloaded.version == 2
    assert reloaded.current_level == "HR"
    assert reloaded.history[0].actor_role == Role.TEAM_MANAGER


def test_stale_version_is_a_concurrent_modification(repository) -> None:
    record = repository.add(_pending())
    first = repository.get(record.id)
    second = repository.get(record.id)

    first.approve(level="Manager", actor_id="tm-1", actor_role=Role.TEAM_MANAGER, now=T0)
    repository.save(first, expected_version=first.version)

    second.approve(level="Manager", actor_id="tm-2", actor_role=Role.TEAM_MANAGER, now=T0)
    with pytest.raises(ConcurrentModification):
        repository.save(second, expected_version=1)

    stored = repository.get(record.id)
    assert [d.actor_id for d in stored.history] == ["tm-1"]


def test_missing_request(repository) -> None:
    with pytest.raises(NotFound):
        repository.get("missing")

    ghost = _pending()
    with pytest.raises(NotFound):
        repository.save(ghost, expected_version=1)


def test_list_filters(repository) -> None:
    mine = repository.add(_pending("emp-1"))
    theirs = repository.add(_pending("emp-2"))

    assert [r.id for r in repository.list(requester_id="emp-1")] == [mine.id]
    assert {r.id for r in repository.list(statuses=[RequestStatus.PENDING])} == {mine.id, theirs.id}
    assert repository.list(kinds=[RequestKind.PERMISSION]) == []


def test_controller_over_sql_store(repository) -> None:
    controller = make_controller(repository=repository)

    record = controller.submit(
        kind=RequestKind.REIMBURSEMENT,
        requester_id=who.EMPLOYEE,
        payload=reimbursement_payload(amount=30000),
    )
    for actor_id, level in [(who.TEAM_MANAGER, "Manager"), (who.HR_MANAGER, "HR"), (who.FINANCE, "Finance")]:
        controller.approve(request_id=record.id, actor_id=actor_id, level=level)
    controller.mark_paid(request_id=record.id, actor_id=who.ADMIN)

    stored = repository.get(record.id)
    assert stored.status == RequestStatus.APPROVED
    assert stored.paid is True
    assert stored.payment.processed_by == who.ADMIN
    assert [d.level for d in stored.history] == ["Manager", "HR", "Finance"]
    assert stored.version == 5
