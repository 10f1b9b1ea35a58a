"""Scheduling preference API routes."""
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app.api.schemas.preferences import PreferencesResponse, PreferencesUpdateRequest
from app.db.deps import get_db
from app.db.models.scheduling_preferences import UserSchedulingPreferences
from app.db.models.user import User
from app.observability.metrics import log_metric
from app.observability.tracing import trace
from app.services.preferences_service import get_or_create_preferences, update_preferences

router = APIRouter()


@router.get("/preferences", response_model=PreferencesResponse, tags=["preferences"])
def get_preferences(
    http_request: Request,
    user_id: UUID = Query(..., description="User ID"),
    db: Session = Depends(get_db),
) -> PreferencesResponse:
    """Return scheduling preferences, creating the defaults on first read."""
    request_id = getattr(http_request.state, "request_id", None)
    try:
        with trace("preferences.get", metadata={"route": "/preferences"}, user_id=str(user_id), request_id=request_id):
            prefs = get_or_create_preferences(db, user_id)
            db.commit()
    except Exception:
        db.rollback()
        raise
    return _serialize(db, prefs, request_id or "")


@router.patch("/preferences", response_model=PreferencesResponse, tags=["preferences"])
def patch_preferences(
    payload: PreferencesUpdateRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> PreferencesResponse:
    """Partially update scheduling preferences (including the user's timezone)."""
    request_id = getattr(http_request.state, "request_id", None)
    changes = payload.model_dump(exclude_unset=True, exclude={"user_id"})
    try:
        with trace(
            "preferences.update",
            metadata={"route": "/preferences", "fields": sorted(changes)},
            user_id=str(payload.user_id),
            request_id=request_id,
        ):
            prefs = update_preferences(db, payload.user_id, changes)
            db.commit()
    except Exception:
        db.rollback()
        raise

    log_metric("preferences.update.success", 1, metadata={"user_id": str(payload.user_id)})
    return _serialize(db, prefs, request_id or "")


def _serialize(db: Session, prefs: UserSchedulingPreferences, request_id: str) -> PreferencesResponse:
    user = db.get(User, prefs.user_id)
    return PreferencesResponse(
        user_id=prefs.user_id,
        morning_energy_level=prefs.morning_energy_level,
        afternoon_energy_level=prefs.afternoon_energy_level,
        work_start_time=prefs.work_start_time,
        work_end_time=prefs.work_end_time,
        focus_session_length=prefs.focus_session_length,
        preferred_focus_types=list(prefs.preferred_focus_types or []),
        calendar_ids=list(prefs.calendar_ids or []),
        timezone=user.timezone if user else None,
        request_id=request_id,
    )
