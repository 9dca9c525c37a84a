"""Request handling for POST /verify-token."""

import logging
import time
from typing import Any, Dict, Optional, Tuple

import httpx

from decision import decide
from logger import StructuredLogger, token_fingerprint
from models import Accepted, ClientError, Decision, Invalid, Rejected, UpstreamError
from settings import Settings
from siteverify import verify

log = StructuredLogger(__name__)

Response = Tuple[int, Dict[str, Any]]


def to_response(decision: Decision, expose_detail: bool = False) -> Response:
    """Map a verdict to an HTTP status and JSON body."""
    if isinstance(decision, Accepted):
        return 200, {"success": True, "redirect": decision.redirect, "score": decision.score}
    if isinstance(decision, Rejected):
        body: Dict[str, Any] = {"success": False, "reason": decision.reason}
        if decision.score is not None:
            body["score"] = decision.score
        return 403, body
    if isinstance(decision, Invalid):
        return 400, {"success": False, "error": decision.reason}
    if isinstance(decision, UpstreamError):
        body = {"success": False, "error": "verification_unavailable"}
        if expose_detail:
            body["detail"] = decision.detail
        return 500, body
    raise TypeError(f"unknown decision type: {type(decision).__name__}")


async def handle(
    token: Optional[str],
    settings: Settings,
    *,
    client: Optional[httpx.AsyncClient] = None,
    remote_ip: Optional[str] = None,
) -> Response:
    t0 = time.perf_counter()
    token = token or ""
    upstream_kind = None

    if not token.strip():
        decision: Decision = Invalid("missing_token")
    elif not settings.secret_key:
        decision = UpstreamError("server_misconfigured")
    else:
        outcome = await verify(
            token,
            settings.secret_key,
            client=client,
            remote_ip=remote_ip,
            timeout=settings.verify_timeout,
        )
        if isinstance(outcome, ClientError):
            upstream_kind = outcome.kind.value
            decision = UpstreamError(outcome.detail)
        else:
            decision = decide(outcome, settings.redirect_url, settings.score_threshold)

    status, body = to_response(decision, expose_detail=not settings.is_production)
    _log_verdict(decision, status, token, upstream_kind, t0)
    return status, body


def _log_verdict(
    decision: Decision,
    status: int,
    token: str,
    upstream_kind: Optional[str],
    t0: float,
) -> None:
    verdict = type(decision).__name__.lower()
    level = logging.INFO
    reason = getattr(decision, "reason", None)
    detail = None
    if isinstance(decision, UpstreamError):
        if upstream_kind is None:
            level = logging.WARNING
            reason = decision.detail
        else:
            level = logging.ERROR
            reason = upstream_kind
            detail = decision.detail

    log.log_event(
        "verify_token",
        level=level,
        verdict=verdict,
        status=status,
        reason=reason,
        score=getattr(decision, "score", None),
        token_id=token_fingerprint(token),
        detail=detail,
        duration_ms=round((time.perf_counter() - t0) * 1000, 1),
    )
