"""Recruitment Lead Gateway — FastAPI application entry point.

Receives lead and application submissions from the landing site,
rate-limits them per client IP, filters bots and invalid payloads,
and forwards clean submissions to the CRM.
"""

import logging
import math
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from lead_gateway.config.settings import get_settings
from lead_gateway.crm.handler import close_client, forward_application, forward_lead
from lead_gateway.forms.schemas import ApplicationForm, LeadForm, format_validation_errors
from lead_gateway.logging.audit import audit_event, request_id_var, setup_logging
from lead_gateway.security.client_ip import client_key
from lead_gateway.security.honeypot import is_bot_submission
from lead_gateway.security.ratelimit import RateLimiter

VERSION = "1.0.0"

LEAD_FORM_SCOPE = "lead_form"
APPLICATION_SCOPE = "application"


def generate_request_id() -> str:
    return uuid.uuid4().hex[:12]


class CRMTimer:
    """Context manager measuring the CRM round trip in milliseconds."""

    def __init__(self):
        self.start_time: float = 0
        self.elapsed_ms: float = 0

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, *args):
        self.elapsed_ms = round((time.perf_counter() - self.start_time) * 1000, 2)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle hooks."""
    setup_logging()
    limiter: RateLimiter = app.state.rate_limiter
    await limiter.start()
    audit_event("Gateway started", version=VERSION, sweeping=limiter.sweeping)
    yield
    await limiter.stop()
    await close_client()
    audit_event("Gateway stopped")


app = FastAPI(
    title="Recruitment Lead Gateway",
    description="Rate-limited lead intake forwarding to the CRM",
    version=VERSION,
    lifespan=lifespan,
)
# One limiter per process, shared by both submission endpoints
app.state.rate_limiter = RateLimiter(sweep_interval_ms=get_settings().rate_limit_sweep_interval)


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


@app.get("/health")
async def health():
    return {"status": "healthy", "version": VERSION}


@app.post("/api/submit-form")
async def submit_form(request: Request, limiter: RateLimiter = Depends(get_rate_limiter)):
    """Lead form: create a new CRM candidate.

    Pipeline: Rate Limit -> Parse -> Honeypot -> Validate -> Forward -> Log
    """
    settings = get_settings()
    rid = generate_request_id()
    request_id_var.set(rid)

    ip = client_key(request)
    key = f"{LEAD_FORM_SCOPE}:{ip}"
    max_requests = settings.rate_limit_lead_form_max
    window_ms = settings.rate_limit_lead_form_window

    try:
        if not limiter.check_rate_limit(key, max_requests, window_ms):
            return _too_many_requests(limiter, key, ip, max_requests, window_ms, LEAD_FORM_SCOPE)

        raw_body = await _read_json(request)
        if raw_body is None:
            return _json(400, {"message": "Invalid JSON body"}, rid)

        if is_bot_submission(raw_body):
            _log_bot(ip, LEAD_FORM_SCOPE)
            return _json(200, {"success": True, "message": "Application received"}, rid)

        try:
            form = LeadForm.model_validate(raw_body)
        except ValidationError as e:
            return _validation_failed(e, ip, LEAD_FORM_SCOPE, rid)

        payload = form.to_crm_payload()
        # Add server-side IP if the form did not provide one
        if not payload.get("user_ip") and request.client and request.client.host:
            payload["user_ip"] = request.client.host

        with CRMTimer() as timer:
            result = await forward_lead(payload)

        if not result.ok:
            audit_event(
                "CRM rejected lead", logging.ERROR,
                client_ip=ip, form=LEAD_FORM_SCOPE,
                crm_status=result.status_code, crm_error=result.text,
            )
            content = {"message": "Failed to submit application. Please try again later."}
            if settings.is_development:
                content["debug"] = result.text
            return _json(502, content, rid)

        _log_forwarded(ip, LEAD_FORM_SCOPE, result.status_code, timer.elapsed_ms,
                       limiter.get_remaining_requests(key, max_requests))
        return _json(200, result.body, rid, _rate_limit_headers(limiter, key, max_requests))

    except HTTPException as e:
        return _crm_unavailable(e, ip, LEAD_FORM_SCOPE, rid,
                                "Failed to submit application. Please try again later.")
    except Exception:
        audit_event("Unhandled error", logging.ERROR, exc_info=True, form=LEAD_FORM_SCOPE)
        return _json(500, {"message": "Internal server error"}, rid)


@app.post("/api/submit-application")
async def submit_application(request: Request, limiter: RateLimiter = Depends(get_rate_limiter)):
    """Full application: complete the CRM candidate identified by its token.

    Pipeline: Rate Limit -> Parse -> Honeypot -> Validate -> Forward -> Log
    """
    settings = get_settings()
    rid = generate_request_id()
    request_id_var.set(rid)

    ip = client_key(request)
    key = f"{APPLICATION_SCOPE}:{ip}"
    max_requests = settings.rate_limit_application_max
    window_ms = settings.rate_limit_application_window

    try:
        # Stricter limit than the lead form
        if not limiter.check_rate_limit(key, max_requests, window_ms):
            return _too_many_requests(limiter, key, ip, max_requests, window_ms, APPLICATION_SCOPE)

        raw_body = await _read_json(request)
        if raw_body is None:
            return _json(400, {"message": "Invalid JSON body"}, rid)

        if is_bot_submission(raw_body):
            _log_bot(ip, APPLICATION_SCOPE)
            return _json(200, {"success": True, "message": "Application submitted successfully"}, rid)

        try:
            form = ApplicationForm.model_validate(raw_body)
        except ValidationError as e:
            return _validation_failed(e, ip, APPLICATION_SCOPE, rid)

        with CRMTimer() as timer:
            result = await forward_application(form.token, form.to_crm_payload())

        if not result.ok:
            audit_event(
                "CRM rejected application", logging.ERROR,
                client_ip=ip, form=APPLICATION_SCOPE,
                crm_status=result.status_code, crm_error=result.text,
            )
            return _json(502, {"message": "Failed to update application. Please try again later."}, rid)

        _log_forwarded(ip, APPLICATION_SCOPE, result.status_code, timer.elapsed_ms,
                       limiter.get_remaining_requests(key, max_requests))
        return _json(200, result.body, rid, _rate_limit_headers(limiter, key, max_requests))

    except HTTPException as e:
        return _crm_unavailable(e, ip, APPLICATION_SCOPE, rid,
                                "Failed to update application. Please try again later.")
    except Exception:
        audit_event("Unhandled error", logging.ERROR, exc_info=True, form=APPLICATION_SCOPE)
        return _json(500, {"message": "Internal server error"}, rid)


async def _read_json(request: Request) -> dict | None:
    """Parse the request body, returning None unless it is a JSON object."""
    try:
        body = await request.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


def _json(status_code: int, content: dict, rid: str, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=content,
        headers={**(headers or {}), "X-Request-Id": rid},
    )


def _rate_limit_headers(limiter: RateLimiter, key: str, max_requests: int) -> dict:
    reset_seconds = math.ceil(limiter.get_reset_time(key) / 1000)
    return {
        "X-RateLimit-Limit": str(max_requests),
        "X-RateLimit-Remaining": str(limiter.get_remaining_requests(key, max_requests)),
        "X-RateLimit-Reset": str(reset_seconds),
    }


def _too_many_requests(limiter: RateLimiter, key: str, ip: str, max_requests: int,
                       window_ms: int, form: str) -> JSONResponse:
    retry_after = max(1, math.ceil(limiter.get_reset_time(key) / 1000))
    minutes = max(1, math.ceil(window_ms / 60_000))
    audit_event(
        "Rate limit exceeded", logging.WARNING,
        client_ip=ip, form=form, rate_limit=max_requests,
        window_ms=window_ms, retry_after=retry_after,
    )
    unit = "minute" if minutes == 1 else "minutes"
    return _json(
        429,
        {"message": f"Too many requests. Please try again in {minutes} {unit}."},
        request_id_var.get(),
        {**_rate_limit_headers(limiter, key, max_requests), "Retry-After": str(retry_after)},
    )


def _validation_failed(exc: ValidationError, ip: str, form: str, rid: str) -> JSONResponse:
    errors = format_validation_errors(exc)
    audit_event(
        "Validation failed", logging.WARNING,
        client_ip=ip, form=form, invalid_fields=[err["field"] for err in errors],
    )
    return _json(400, {"message": "Validation error", "errors": errors}, rid)


def _crm_unavailable(exc: HTTPException, ip: str, form: str, rid: str, message: str) -> JSONResponse:
    audit_event(
        "CRM unavailable", logging.ERROR,
        client_ip=ip, form=form, status=exc.status_code, detail=exc.detail,
    )
    return _json(exc.status_code, {"message": message}, rid)


def _log_bot(ip: str, form: str) -> None:
    # Bots get a fake success so they do not retry with another payload
    audit_event("Bot detected: honeypot field filled", logging.WARNING, client_ip=ip, form=form)


def _log_forwarded(ip: str, form: str, crm_status: int, latency_ms: float, remaining: int) -> None:
    audit_event(
        "Submission forwarded",
        client_ip=ip, form=form, crm_status=crm_status,
        latency_ms=latency_ms, rate_limit_remaining=remaining,
    )
