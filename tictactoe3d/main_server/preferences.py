import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, HTTPException
from filelock import FileLock
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter()

PREFS_FILE = os.environ.get(
    "TICTACTOE3D_PREFS_FILE",
    str(Path.home() / ".tictactoe3d" / "preferences.json"),
)

DEFAULT_TIME_LIMIT = 30


def _now():
    return datetime.now(timezone.utc).isoformat()


class Preferences(BaseModel):
    turn_time_limit: int = Field(default=DEFAULT_TIME_LIMIT, ge=1, le=3600)  # 秒
    timer_enabled: bool = False


class PreferenceStore(BaseModel):
    version: int = 1
    updatedAt: str
    preferences: Preferences = Field(default_factory=Preferences)


class PatchPreferencesIn(BaseModel):
    turn_time_limit: Optional[int] = Field(default=None, ge=1, le=3600)
    timer_enabled: Optional[bool] = None


def _read_store() -> PreferenceStore:
    if not os.path.exists(PREFS_FILE):
        s = PreferenceStore(updatedAt=_now())
        _write_store(s)
        return s

    try:
        with open(PREFS_FILE, "r", encoding="utf-8") as f:
            raw = json.load(f)
        return PreferenceStore(**raw)
    except (ValueError, ValidationError, TypeError) as e:
        # ValueError: JSONDecodeError, UnicodeDecodeError
        # 壊れている → デフォルトに修復
        logger.warning("preference file %s is broken, resetting: %s", PREFS_FILE, e)
        s = PreferenceStore(updatedAt=_now())
        _write_store(s)
        return s


def _write_store(store: PreferenceStore):
    os.makedirs(os.path.dirname(PREFS_FILE) or ".", exist_ok=True)
    with FileLock(PREFS_FILE + ".lock", timeout=5):
        store.updatedAt = _now()
        data = json.dumps(store.model_dump(), ensure_ascii=False, indent=2)
        fd, tmp = tempfile.mkstemp(dir=os.path.dirname(PREFS_FILE) or ".")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fp:
                fp.write(data)
            os.replace(tmp, PREFS_FILE)
        finally:
            if os.path.exists(tmp):
                os.remove(tmp)


def _save(store: PreferenceStore) -> Preferences:
    try:
        _write_store(store)
    except OSError as e:
        logger.exception("write_store failed")
        raise HTTPException(500, f"write_store failed: {e}")
    return store.preferences


@router.get("/preferences", response_model=Preferences)
def get_preferences():
    return _read_store().preferences


@router.put("/preferences", response_model=Preferences)
def put_preferences(body: Preferences):
    store = _read_store()
    store.preferences = body
    return _save(store)


@router.patch("/preferences", response_model=Preferences)
def patch_preferences(body: PatchPreferencesIn):
    store = _read_store()
    data = store.preferences.model_dump()
    if body.turn_time_limit is not None:
        data["turn_time_limit"] = body.turn_time_limit
    if body.timer_enabled is not None:
        data["timer_enabled"] = body.timer_enabled
    store.preferences = Preferences(**data)
    return _save(store)
