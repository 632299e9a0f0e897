from __future__ import annotations

from fastapi import APIRouter, Request

from src.cadence.db.repositories.bootstrap_repository import fetch_health_summary
from src.cadence.db.session import db_connection

router = APIRouter(tags=["health"])


@router.get("/health")
def get_health(request: Request):
    services = request.app.state.services
    with db_connection(services.engine) as connection:
        return fetch_health_summary(connection)
