from __future__ import annotations

import logging
import os
import threading
import time
import uuid
from collections import OrderedDict
from typing import List, Optional, Tuple

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field, StrictStr

from ethraic.config import PipelineConfig, load_config
from ethraic.schema import HistoryMessage, Reading, Role, SafetyMetrics
from ethraic.session import Session

log = logging.getLogger(__name__)

app = FastAPI(title="ETHRAIC Metrics", version="0.1.0")

# CORS so the chat front-end can hit it
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"], allow_credentials=True,
    allow_methods=["*"], allow_headers=["*"],
)


class AnalyzeRequest(BaseModel):
    session_id: Optional[str] = None
    message: StrictStr
    role: Role = Role.assistant
    timestamp: Optional[float] = None
    context: Optional[List[HistoryMessage]] = None


class AnalyzeReply(BaseModel):
    ok: bool
    session_id: str
    reading: Reading


class SafetyReply(BaseModel):
    session_id: str
    safety: SafetyMetrics
    needs_intervention: bool
    paradigm_state: str
    turns: int = Field(ge=0)


class SessionStore:
    """
    In-memory sessions, one lock per id so turns within a session never interleave.
    Holds at most max_sessions; the least recently used session is dropped first.
    """

    def __init__(self, config: Optional[PipelineConfig] = None,
                 max_sessions: Optional[int] = None) -> None:
        self.config = config
        self.max_sessions = max_sessions or int(os.getenv("ETHRAIC_MAX_SESSIONS", "1000"))
        self._sessions: OrderedDict[str, Tuple[Session, threading.Lock]] = OrderedDict()
        self._guard = threading.Lock()

    def get(self, session_id: Optional[str], create: bool = True) -> Tuple[str, Session, threading.Lock]:
        with self._guard:
            sid = session_id or f"session_{uuid.uuid4().hex}"
            if sid not in self._sessions:
                if not create:
                    raise KeyError(sid)
                cfg = self.config or load_config()
                self._sessions[sid] = (Session(cfg, session_id=sid), threading.Lock())
                while len(self._sessions) > self.max_sessions:
                    dropped, _ = self._sessions.popitem(last=False)
                    log.info("evicted idle session %s", dropped)
            self._sessions.move_to_end(sid)
            session, lock = self._sessions[sid]
        return sid, session, lock

    def clear(self) -> None:
        with self._guard:
            self._sessions.clear()


# demo in-memory store (by session)
STORE = SessionStore()


@app.get("/health")
def health():
    return {"ok": True, "ts": int(time.time())}


@app.post("/analyze", response_model=AnalyzeReply)
def analyze(req: AnalyzeRequest) -> AnalyzeReply:
    """
    Score one message for its session: metrics, EMA, phase, crisis branch.
    A missing session_id starts a new session.
    """
    sid, session, lock = STORE.get(req.session_id)
    with lock:
        try:
            reading = session.process(req.message, role=req.role.value,
                                      context=req.context, timestamp=req.timestamp)
        except (TypeError, ValueError) as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
    return AnalyzeReply(ok=True, session_id=sid, reading=reading)


@app.get("/sessions/{session_id}/safety", response_model=SafetyReply)
def safety(session_id: str) -> SafetyReply:
    try:
        sid, session, lock = STORE.get(session_id, create=False)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"unknown session {session_id}")
    with lock:
        return SafetyReply(
            session_id=sid,
            safety=session.crisis.safety_status(),
            needs_intervention=session.needs_intervention(),
            paradigm_state=session.paradigm_state.value,
            turns=session.turns,
        )


@app.post("/sessions/{session_id}/reset")
def reset(session_id: str):
    try:
        sid, session, lock = STORE.get(session_id, create=False)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"unknown session {session_id}")
    with lock:
        session.reset()
    return {"ok": True, "session_id": sid}


def main() -> None:
    """Entry point for `ethraic-server`."""
    import uvicorn
    port = int(os.getenv("PORT", "8088"))
    host = os.getenv("HOST", "127.0.0.1")
    uvicorn.run("ethraic.adapters.fastapi_app:app", host=host, port=port, reload=False)
