from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from examforge.exceptions import GuardError
from examforge.models.domain import CheckOutcome
from examforge.models.requests import VerifyPasswordRequest
from examforge.models.responses import ErrorResponse, VerifyPasswordResponse
from examforge.ratelimit.headers import rate_limit_headers

router = APIRouter()


def client_identity(request: Request) -> str:
    """Peer address of the request.

    Forwarding headers are never read here. Behind a proxy, uvicorn rewrites
    the peer from X-Forwarded-For only for peers in ``forwarded_allow_ips``.
    """
    return request.client.host if request.client else "unknown"


@router.post(
    "/quiz/{quiz_id}/verify-password",
    response_model=VerifyPasswordResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def verify_password(
    quiz_id: str, body: VerifyPasswordRequest, request: Request
) -> JSONResponse:
    """Check a password for a password-shared quiz, limited per quiz."""
    verifier = request.app.state.verifier
    metrics = getattr(request.app.state, "metrics", None)

    result = await verifier.verify(quiz_id, body.password, client_id=client_identity(request))

    if metrics:
        await metrics.record_outcome(result.outcome)

    headers: dict[str, str] = {}
    if result.limit is not None and result.reset_at is not None:
        headers = rate_limit_headers(
            result.limit,
            result.remaining_attempts or 0,
            result.reset_at,
            denied=result.outcome == CheckOutcome.DENIED_RATE_LIMITED,
        )

    try:
        result.raise_for_outcome()
    except GuardError as exc:
        exc.headers.update(headers)
        raise

    return JSONResponse(content=VerifyPasswordResponse().model_dump(), headers=headers)
