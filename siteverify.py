"""Single-shot client for the reCAPTCHA siteverify API."""

import asyncio
import logging
from typing import Optional, Union

import httpx

from models import ClientError, ErrorKind, VerificationResult
from settings import SITEVERIFY_URL, VERIFY_TIMEOUT

logger = logging.getLogger(__name__)

VerifyOutcome = Union[VerificationResult, ClientError]


async def _post(client: httpx.AsyncClient, url: str, data: dict, timeout: float) -> httpx.Response:
    # httpx timeouts are per phase; wait_for caps the whole exchange
    return await asyncio.wait_for(client.post(url, data=data, timeout=timeout), timeout)


async def verify(
    token: str,
    secret: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    remote_ip: Optional[str] = None,
    url: str = SITEVERIFY_URL,
    timeout: float = VERIFY_TIMEOUT,
) -> VerifyOutcome:
    """
    POST the token to siteverify once and parse the answer.

    Transport, timeout and parse problems come back as a ClientError value;
    nothing is raised. A `success: false` body is an ordinary result.
    """
    data = {"secret": secret, "response": token}
    if remote_ip:
        data["remoteip"] = remote_ip

    try:
        if client is None:
            async with httpx.AsyncClient(timeout=timeout) as own_client:
                resp = await _post(own_client, url, data, timeout)
        else:
            resp = await _post(client, url, data, timeout)
    except (httpx.TimeoutException, asyncio.TimeoutError) as e:
        return ClientError(ErrorKind.TIMEOUT, f"siteverify timed out after {timeout}s: {e!r}")
    except httpx.HTTPError as e:
        return ClientError(ErrorKind.TRANSPORT, f"siteverify request failed: {e!r}")

    try:
        payload = resp.json()
    except ValueError:
        if resp.is_success:
            return ClientError(ErrorKind.PARSE_FAILURE, "siteverify returned a non-JSON body")
        return ClientError(ErrorKind.TRANSPORT, f"siteverify answered HTTP {resp.status_code}")

    if not isinstance(payload, dict):
        return ClientError(
            ErrorKind.PARSE_FAILURE,
            f"siteverify returned {type(payload).__name__}, expected an object",
        )
    if not resp.is_success:
        # error status with a readable body still carries success/error-codes
        logger.debug("siteverify answered HTTP %s with a JSON body", resp.status_code)

    return VerificationResult.from_payload(payload)
