"""FastAPI server exposing account audits over JSON endpoints."""
import asyncio
import logging
import os
from datetime import datetime, timezone
from typing import Any

from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from openai import OpenAIError
from pydantic import BaseModel

from account_doctor.analyzers.diagnosis import DiagnosisError, diagnose
from account_doctor.analyzers.instant import build_instant_data
from account_doctor.api import store
from account_doctor.platforms.instagram import ApifyInstagramProvider, ProfileNotFound, ScraperError, clean_username
from account_doctor.scoring import InvalidInput, evaluate

_log = logging.getLogger(__name__)

app = FastAPI(title="account-doctor API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

DB_PATH = os.getenv("DB_PATH", "account_doctor.db")

provider = ApifyInstagramProvider()


@app.on_event("startup")
async def _create_tables() -> None:
    await store.init_db(DB_PATH)
    _log.info("[store] db=%s ttl=%s", DB_PATH, store.cache_ttl())


def _error(status_code: int, code: str, message: str) -> HTTPException:
    return HTTPException(status_code=status_code, detail={"error": code, "message": message})


def _record_to_json(record: dict[str, Any], cache_hit: bool, now: datetime) -> dict[str, Any]:
    return {
        "audit_id": record["audit_id"],
        "username": record["username"],
        "cache_hit": cache_hit,
        "created_at": record["created_at"].isoformat(),
        "expires_at": record["expires_at"].isoformat(),
        "instant_data": build_instant_data(record["snapshot"], now),
        "audit": record["audit"].model_dump(mode="json"),
        "diagnosis": record["diagnosis"],
    }


# ── Endpoints ────────────────────────────────────────────────────────────────

class AuditInitRequest(BaseModel):
    username: str
    skip_cache: bool = False


@app.get("/api/health")
def health():
    """Check that required env vars are set."""
    if not os.getenv("APIFY_API_TOKEN"):
        raise HTTPException(status_code=503, detail="APIFY_API_TOKEN not set")
    return {"status": "ok"}


@app.post("/api/audit/init")
async def init_audit(req: AuditInitRequest):
    """Scrape (or reuse a cached scrape of) a profile, score it and store the audit."""
    username = clean_username(req.username)
    if not username:
        raise _error(400, "INVALID_USERNAME", "Username is required")

    now = datetime.now(timezone.utc)
    try:
        cached, snapshot = await store.get_cached_or_fetch(
            DB_PATH, username, provider, now, skip_cache=req.skip_cache,
        )
    except ProfileNotFound:
        raise _error(404, "PROFILE_NOT_FOUND", "This account doesn't exist or is private")
    except ScraperError as exc:
        _log.error("scrape failed for @%s: %s", username, exc)
        raise _error(502, "SCRAPER_ERROR", str(exc))

    if cached:
        return _record_to_json(cached, cache_hit=True, now=now)

    try:
        audit = evaluate(snapshot, now)
    except InvalidInput as exc:
        _log.warning("unusable snapshot for @%s: %s", username, exc)
        raise _error(422, "INVALID_PROFILE_DATA", str(exc))

    record = await store.save_audit(DB_PATH, username, snapshot, audit, now)
    return _record_to_json(record, cache_hit=False, now=now)


@app.get("/api/audit/{audit_id}")
async def get_audit(audit_id: str):
    """Return a stored audit."""
    record = await store.load_audit(DB_PATH, audit_id)
    if record is None:
        raise _error(404, "AUDIT_NOT_FOUND", "Audit not found")
    return _record_to_json(record, cache_hit=True, now=datetime.now(timezone.utc))


@app.post("/api/audit/{audit_id}/diagnosis")
async def create_diagnosis(audit_id: str):
    """Generate (once) and return the LLM diagnosis for a stored audit."""
    record = await store.load_audit(DB_PATH, audit_id)
    if record is None:
        raise _error(404, "AUDIT_NOT_FOUND", "Audit not found")
    if record["diagnosis"]:
        return record["diagnosis"]

    try:
        result = await asyncio.to_thread(diagnose, record["snapshot"], record["audit"])
    except OpenAIError as exc:
        msg = str(exc)
        if "api_key" in msg.lower() or not os.getenv("OPENAI_API_KEY"):
            msg = f"{msg} (set OPENAI_API_KEY in your .env file)"
        _log.error("diagnosis failed for audit %s: %s", audit_id, exc)
        raise _error(502, "DIAGNOSIS_FAILED", msg)
    except DiagnosisError as exc:
        _log.error("unusable diagnosis for audit %s: %s", audit_id, exc)
        raise _error(502, "DIAGNOSIS_FAILED", str(exc))

    diagnosis = result.model_dump()
    await store.save_diagnosis(DB_PATH, audit_id, diagnosis)
    return diagnosis
