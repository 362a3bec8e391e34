"""FastAPI server exposing the award engine to the rest of the club app.

REST endpoints:
- /api/awards/evaluate: run a trigger for one member (called by app hooks)
- /api/people/{person_id}/awards: earned / locked awards and current streak
- /api/cron/awards: bulk sweep, guarded by the X-Cron-Secret header

Member authentication is handled upstream; person ids arrive already
resolved.
"""

from __future__ import annotations

import hmac
import logging
from datetime import datetime, timezone
from typing import Optional

import redis
from fastapi import FastAPI, Header, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from clubawards.config.settings import REDIS_URL, CRON_SECRET, SERVER_HOST, SERVER_PORT, LOG_LEVEL
from clubawards.engine.dispatcher import evaluate
from clubawards.engine.summary import get_awards_summary
from clubawards.engine.sweep import sweep
from clubawards.models.triggers import TriggerContext

logger = logging.getLogger(__name__)

app = FastAPI(title="Club Awards", description="Achievement rule engine for club members")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


def _get_redis() -> redis.Redis:
    return redis.Redis.from_url(REDIS_URL, decode_responses=True)


# ── Request Models ───────────────────────────────────────────────────────

class EvaluateRequest(BaseModel):
    person_id: str
    trigger: TriggerContext


# ── Health ───────────────────────────────────────────────────────────────

@app.get("/api/health")
async def health():
    r = _get_redis()
    try:
        redis_ok = bool(r.ping())
    except redis.RedisError:
        redis_ok = False
    return {"status": "ok", "redis": redis_ok}


# ── Awards ───────────────────────────────────────────────────────────────

@app.post("/api/awards/evaluate")
async def evaluate_awards(req: EvaluateRequest):
    """Evaluate one trigger for one member and return newly granted awards."""
    granted = evaluate(req.person_id, req.trigger, r=_get_redis())
    return {"person_id": req.person_id, "granted": granted}


@app.get("/api/people/{person_id}/awards")
async def get_person_awards(person_id: str):
    r = _get_redis()
    try:
        return get_awards_summary(person_id, r=r)
    except redis.RedisError as exc:
        logger.error("Awards summary failed for %s: %s", person_id, exc)
        raise HTTPException(status_code=503, detail="Award store unavailable")


@app.post("/api/cron/awards")
async def run_award_sweep(x_cron_secret: Optional[str] = Header(default=None)):
    """Bulk re-evaluation for all active members. Called by the external scheduler."""
    if not CRON_SECRET or not x_cron_secret or not hmac.compare_digest(x_cron_secret, CRON_SECRET):
        raise HTTPException(status_code=401, detail="Unauthorized")

    result = sweep(r=_get_redis())
    return {
        "success": True,
        **result.to_dict(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=LOG_LEVEL)
    uvicorn.run(app, host=SERVER_HOST, port=SERVER_PORT)
