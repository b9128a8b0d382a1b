from __future__ import annotations

from datetime import datetime
from threading import Lock
from typing import Literal, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field, ValidationError, field_validator

from crashround.core.config.settings import settings
from crashround.core.session.artifacts import artifacts_for
from crashround.core.session.assembly import SessionHandle
from crashround.core.session.factory import SessionFactory
from crashround.core.session.manager import SessionManager
from crashround.core.session.registry import SessionRegistry, SessionStatus
from crashround.core.session.spec import SessionSpec
from crashround.game.errors import CrashRoundError, InvalidBet

router = APIRouter(tags=["sessions"])

_registry = SessionRegistry()

# Live handles in this process only. Each handle is single-threaded, so
# every engine call runs under the lock.
_live_lock = Lock()
_live: dict[str, SessionHandle] = {}


# =========================
# Schemas
# =========================

class CreateSessionRequest(BaseModel):
    client_seed: Optional[str] = Field(default=None, description="Seed string; omitted -> random")
    start_balance: Optional[float] = Field(default=None, ge=0)
    start_bet: Optional[float] = Field(default=None, ge=1)
    auto_cash: Optional[float] = Field(default=None, ge=0)

    @field_validator("auto_cash")
    @classmethod
    def _auto_cash_disabled_or_at_least_one(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and 0 < v < 1:
            raise ValueError("auto_cash must be 0 (disabled) or >= 1")
        return v


class CreateSessionResponse(BaseModel):
    session_id: str
    seed: str
    seed_generated: bool
    balance: float


class StartRoundRequest(BaseModel):
    bet: Optional[float] = Field(default=None, description="Defaults to the session's start_bet")
    auto_cashout: Optional[float] = Field(default=None, description="0 disables; defaults to auto_cash")


class TickRequest(BaseModel):
    delta_seconds: float = Field(..., description="Seconds since the previous tick (clamped by the engine)")


class HistoryEntryView(BaseModel):
    outcome: Literal["win", "crash"]
    multiplier: float


class RoundView(BaseModel):
    session_id: str
    status: Literal["ready", "running"]
    nonce: int
    multiplier: float
    round_hash: Optional[str]
    balance: float
    # only revealed once the round is settled
    crash_point: Optional[float] = None
    payout: Optional[float] = None


class SessionDetailsResponse(BaseModel):
    session_id: str
    status: SessionStatus
    created_at_utc: datetime
    updated_at_utc: datetime
    session_dir: str
    artifacts: dict[str, str]
    balance: Optional[float] = None
    history: list[HistoryEntryView] = Field(default_factory=list)
    error_type: Optional[str] = None
    error_message: Optional[str] = None


class SessionsListResponse(BaseModel):
    sessions: list[SessionDetailsResponse]


class StopSessionResponse(BaseModel):
    session_id: str
    status: SessionStatus
    summary: dict


# =========================
# Helpers
# =========================

def _require_live(session_id: str) -> SessionHandle:
    art = artifacts_for(sessions_dir=settings.sessions_dir, session_id=session_id)
    if not art.session_dir.exists():
        raise HTTPException(status_code=404, detail="session not found")

    handle = _live.get(session_id)
    if handle is None or not handle.lifecycle.is_open:
        raise HTTPException(status_code=409, detail="session is not open in this process")
    return handle


def _round_error(exc: CrashRoundError) -> HTTPException:
    status = 422 if isinstance(exc, InvalidBet) else 409
    return HTTPException(status_code=status, detail={"reason": exc.reason, "message": str(exc)})


def _round_view(handle: SessionHandle, *, payout: Optional[float] = None) -> RoundView:
    engine = handle.engine
    settled = engine.status == "ready" and engine.nonce > 0
    return RoundView(
        session_id=handle.session_id,
        status=engine.status,
        nonce=engine.nonce,
        multiplier=engine.multiplier,
        round_hash=engine.state.round_hash,
        balance=engine.balance,
        crash_point=engine.crash_point if settled else None,
        payout=payout,
    )


def _details(session_id: str) -> SessionDetailsResponse:
    rec = _registry.get(session_id=session_id)
    art = artifacts_for(sessions_dir=settings.sessions_dir, session_id=session_id)
    handle = _live.get(session_id)

    if rec is None:
        created = datetime.fromtimestamp(art.session_dir.stat().st_mtime)
        rec_status: SessionStatus = "created"
        updated, error_type, error_message = created, None, None
    else:
        created, updated = rec.created_at_utc, rec.updated_at_utc
        rec_status = rec.status
        error_type, error_message = rec.error_type, rec.error_message

    return SessionDetailsResponse(
        session_id=session_id,
        status=rec_status,
        created_at_utc=created,
        updated_at_utc=updated,
        session_dir=str(art.session_dir),
        artifacts=art.as_dict(),
        balance=handle.engine.balance if handle is not None else None,
        history=[
            HistoryEntryView(outcome=h.outcome, multiplier=h.multiplier)
            for h in (handle.engine.history if handle is not None else ())
        ],
        error_type=error_type,
        error_message=error_message,
    )


# =========================
# Routes
# =========================

@router.post("/sessions", response_model=CreateSessionResponse)
def create_session(payload: CreateSessionRequest) -> CreateSessionResponse:
    seed = payload.client_seed or settings.default_client_seed

    try:
        spec = SessionSpec(
            client_seed=seed,
            start_balance=payload.start_balance if payload.start_balance is not None else settings.start_balance,
            start_bet=payload.start_bet if payload.start_bet is not None else settings.start_bet,
            auto_cash=payload.auto_cash if payload.auto_cash is not None else settings.auto_cash,
        )
    except ValidationError as e:
        raise HTTPException(
            status_code=422,
            detail={"reason": "invalid_session_config", "message": str(e)},
        )

    manager = SessionManager(settings.sessions_dir)
    info = manager.create_session(seed=seed, config_snapshot=spec.to_canonical_dict())
    _registry.upsert_created(info)

    # the resolved seed is persisted in SessionSpec so the session can be rebuilt
    spec.client_seed = info.seed

    factory = SessionFactory(sessions_dir=settings.sessions_dir)
    try:
        handle = factory.build(session_id=info.session_id, spec=spec, seed_generated=info.seed_generated)
        handle.lifecycle.start()
    except Exception as e:
        _registry.mark_error(session_id=info.session_id, error_type=type(e).__name__, error_message=str(e))
        raise HTTPException(status_code=409, detail=f"failed to open session: {e}")

    with _live_lock:
        _live[info.session_id] = handle
    _registry.mark_open(session_id=info.session_id)

    return CreateSessionResponse(
        session_id=info.session_id,
        seed=info.seed,
        seed_generated=info.seed_generated,
        balance=handle.engine.balance,
    )


@router.post("/sessions/{session_id}/rounds", response_model=RoundView)
def start_round(session_id: str, payload: StartRoundRequest) -> RoundView:
    with _live_lock:
        handle = _require_live(session_id)
        try:
            handle.engine.start(bet=payload.bet, auto_cashout=payload.auto_cashout)
        except CrashRoundError as e:
            raise _round_error(e)
        return _round_view(handle)


@router.post("/sessions/{session_id}/tick", response_model=RoundView)
def tick_round(session_id: str, payload: TickRequest) -> RoundView:
    with _live_lock:
        handle = _require_live(session_id)
        try:
            handle.engine.tick(payload.delta_seconds)
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))
        return _round_view(handle)


@router.post("/sessions/{session_id}/cashout", response_model=RoundView)
def cashout_round(session_id: str) -> RoundView:
    with _live_lock:
        handle = _require_live(session_id)
        try:
            event = handle.engine.cashout()
        except CrashRoundError as e:
            raise _round_error(e)
        return _round_view(handle, payout=event.payout)


@router.post("/sessions/{session_id}/stop", response_model=StopSessionResponse)
def stop_session(session_id: str) -> StopSessionResponse:
    with _live_lock:
        handle = _require_live(session_id)
        try:
            summary = handle.stop()
        except Exception as e:
            _registry.mark_error(session_id=session_id, error_type=type(e).__name__, error_message=str(e))
            raise HTTPException(status_code=409, detail=str(e))
        _live.pop(session_id, None)

    _registry.mark_stopped(session_id=session_id)
    return StopSessionResponse(session_id=session_id, status="stopped", summary=summary)


@router.get("/sessions", response_model=SessionsListResponse)
def list_sessions() -> SessionsListResponse:
    return SessionsListResponse(sessions=[_details(rec.session_id) for rec in _registry.list()])


@router.get("/sessions/{session_id}", response_model=SessionDetailsResponse)
def get_session(session_id: str) -> SessionDetailsResponse:
    art = artifacts_for(sessions_dir=settings.sessions_dir, session_id=session_id)
    if not art.session_dir.exists():
        raise HTTPException(status_code=404, detail="session not found")
    return _details(session_id)
