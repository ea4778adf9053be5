from sqlalchemy import Column, DateTime, Integer, JSON, String
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class ApprovalRequestRow(Base):
    """One durable row per request. Chain, history and audit trail are embedded
    so a transition is a single conditional UPDATE."""

    __tablename__ = "approval_requests"

    id = Column(String(32), primary_key=True)
    kind = Column(String(32), nullable=False, index=True)
    requester_id = Column(String(255), nullable=False, index=True)
    status = Column(String(16), nullable=False, index=True)
    current_index = Column(Integer, nullable=False, default=-1)
    chain = Column(JSON, nullable=False)
    history = Column(JSON, nullable=False)
    audit_trail = Column(JSON, nullable=False)
    payload = Column(JSON, nullable=False)
    payment = Column(JSON, nullable=True)
    previous_request_id = Column(String(32), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    submitted_at = Column(DateTime(timezone=True), nullable=True, index=True)
    finalized_at = Column(DateTime(timezone=True), nullable=True)
    version = Column(Integer, nullable=False, default=1)
