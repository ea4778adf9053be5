# --------------------------------
# DI container
# --------------------------------
from functools import lru_cache
from pathlib import Path

from fastapi import Depends
from sqlalchemy.orm import Session

from approval_engine.config import settings
from approval_engine.db.connection import get_db
from approval_engine.domain.approval.default_approval_gate import DefaultApprovalGate
from approval_engine.domain.approval.repository import SqlApprovalRequestRepository
from approval_engine.domain.directory import FilesystemRoleProvider, InMemoryRoleProvider, RoleProvider
from approval_engine.domain.policies import DefaultPolicyProvider
from approval_engine.domain.projection import QueryProjection
from approval_engine.notifications import (
    HttpNotificationSink,
    LoggingNotificationSink,
    NotificationDispatcher,
)
from approval_engine.runtime.controller import WorkflowController


class Container:
    """Process-wide collaborators. Repositories are per request, see get_controller."""

    def __init__(self):
        self._policy_provider = DefaultPolicyProvider(settings)
        self._gate = DefaultApprovalGate()

        if settings.role_directory_file:
            self._role_provider: RoleProvider = FilesystemRoleProvider(
                path=Path(settings.role_directory_file)
            )
        else:
            self._role_provider = InMemoryRoleProvider()

        if settings.notification_base_url:
            sink = HttpNotificationSink(
                base_url=settings.notification_base_url,
                timeout=settings.notification_timeout_sec,
            )
        else:
            sink = LoggingNotificationSink()
        self._notifier = NotificationDispatcher(
            sink,
            max_pending=settings.notification_max_pending,
            retry_interval=settings.notification_retry_interval_sec,
        )

    @property
    def policy_provider(self):
        return self._policy_provider

    @property
    def role_provider(self):
        return self._role_provider

    @property
    def gate(self):
        return self._gate

    @property
    def notifier(self):
        return self._notifier


@lru_cache
def get_container():
    return Container()


def get_repository(db: Session = Depends(get_db)) -> SqlApprovalRequestRepository:
    return SqlApprovalRequestRepository(db)


def get_controller(
    repository: SqlApprovalRequestRepository = Depends(get_repository),
    container: Container = Depends(get_container),
) -> WorkflowController:
    return WorkflowController(
        repository=repository,
        policy_provider=container.policy_provider,
        role_provider=container.role_provider,
        gate=container.gate,
        notifier=container.notifier,
        auto_approve_empty_chain=settings.auto_approve_empty_chain,
        max_retries=settings.max_transition_retries,
    )


def get_projection(
    repository: SqlApprovalRequestRepository = Depends(get_repository),
) -> QueryProjection:
    return QueryProjection(repository)
