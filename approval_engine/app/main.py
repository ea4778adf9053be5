"""FastAPI approval workflow service.

Exposes the workflow engine over HTTP:
- requesters submit, edit drafts, cancel and resubmit
- approvers list what awaits them and approve or reject at the current level
- finance records payouts on approved reimbursements

Important:
- Actor roles come from the configured role directory, never from the request body
- Every transition is persisted with optimistic concurrency
- Notifications are best effort and never fail a transition
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from approval_engine.api.core.container import get_container
from approval_engine.api.core.exception_handlers import register_exception_handlers
from approval_engine.api.routes import register_routes
from approval_engine.core.logging import setup_logging
from approval_engine.db.connection import init_db

tags_metadata = [
    {
        "name": "Requests",
        "description": "Submit, edit, cancel and resubmit approval requests"
    },
    {
        "name": "Approvals",
        "description": "Routes that allow approvers to decide on pending requests"
    },
    {
        "name": "Health",
        "description": "Liveness check"
    }
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    init_db()
    notifier = get_container().notifier
    notifier.start()
    yield
    notifier.close()


app = FastAPI(
    title='Approval Workflow Engine',
    version='1.0.0',
    description='Multi-level approval workflows for permission, regularization and reimbursement requests',
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

# Register all API routes
register_routes(app)
register_exception_handlers(app)


@app.get("/health", tags=["Health"])
def health():
    return {"status": "ok"}
