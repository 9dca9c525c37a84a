import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from pydantic import BaseModel


def _is_valid_score(score: Any) -> bool:
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        return False
    return math.isfinite(score) and 0.0 <= score <= 1.0


class VerifyBody(BaseModel):
    # optional so a missing token reaches the handler and gets our own 400 body
    token: Optional[str] = None


@dataclass(frozen=True)
class VerificationResult:
    success: bool
    score: Optional[float] = None
    error_codes: Tuple[str, ...] = ()
    action: Optional[str] = None
    hostname: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "VerificationResult":
        """
        Build a result from the siteverify JSON body.
        A missing, non-numeric or out-of-range score stays None; it is never read as 0.
        """
        score = payload.get("score")
        if not _is_valid_score(score):
            score = None
        codes = payload.get("error-codes") or []
        if isinstance(codes, str):
            codes = [codes]
        return cls(
            success=payload.get("success") is True,
            score=float(score) if score is not None else None,
            error_codes=tuple(str(c) for c in codes),
            action=payload.get("action"),
            hostname=payload.get("hostname"),
        )


class ErrorKind(str, Enum):
    TIMEOUT = "timeout"
    TRANSPORT = "transport"
    PARSE_FAILURE = "parse_failure"


@dataclass(frozen=True)
class ClientError:
    kind: ErrorKind
    detail: str


# ---- decisions ----

@dataclass(frozen=True)
class Accepted:
    score: float
    redirect: str


@dataclass(frozen=True)
class Rejected:
    reason: str
    score: Optional[float] = None


@dataclass(frozen=True)
class Invalid:
    reason: str


@dataclass(frozen=True)
class UpstreamError:
    detail: str


Decision = Union[Accepted, Rejected, Invalid, UpstreamError]
