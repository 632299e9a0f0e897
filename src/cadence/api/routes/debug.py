from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter(tags=["debug"])


def _prefix(value: str | None) -> str:
    return f"{value[:5]}..." if value else "MISSING"


@router.get("/debug-env")
def get_debug_env(request: Request):
    settings = request.app.state.services.settings
    return {
        "app_env": settings.app_env,
        "database_backend": settings.database_backend,
        "sleeper_base_url": settings.sleeper_base_url,
        "anthropic_key_present": bool(settings.anthropic_api_key),
        "anthropic_key_start": _prefix(settings.anthropic_api_key),
        "cron_secret_present": bool(settings.cron_secret),
        "cron_secret_start": _prefix(settings.cron_secret),
        "chat_model": settings.chat_model,
    }
