from models import Accepted, Decision, Rejected, VerificationResult
from settings import SCORE_THRESHOLD


def decide(
    result: VerificationResult,
    redirect_url: str,
    threshold: float = SCORE_THRESHOLD,
) -> Decision:
    """
    Turn a siteverify result into a verdict.
    Only a successful result with a score at or above the threshold is accepted.
    """
    if not result.success:
        return Rejected("verification_failed", result.score)
    if result.score is None:
        return Rejected("missing_score")
    if result.score < threshold:
        return Rejected("low_score", result.score)
    return Accepted(result.score, redirect_url)
