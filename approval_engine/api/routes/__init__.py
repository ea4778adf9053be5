from fastapi import FastAPI

from approval_engine.api.schemas import ErrorOut

from .approvals import router as approvals_router
from .requests import router as requests_router

error_responses = {
    403: {"model": ErrorOut, "description": "Actor may not perform the operation"},
    404: {"model": ErrorOut, "description": "Request not found"},
    409: {"model": ErrorOut, "description": "Request has moved on or was modified concurrently"},
    503: {"model": ErrorOut, "description": "Role directory unavailable"},
}


def register_routes(app: FastAPI):
    app.include_router(requests_router, prefix="/v1", responses=error_responses)
    app.include_router(approvals_router, prefix="/v1", responses=error_responses)
