"""Code runner endpoint - POST /run-python."""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from haskify.api.deps import ServicesDep, SessionDep
from haskify.execution.runner import CodeRejectedError, CodeTimeoutError, run_python
from haskify.middleware.ratelimit import RateLimitMiddleware, create_default_bucket_map

router = APIRouter(tags=["run"])
logger = logging.getLogger(__name__)

RATE_LIMITED_MESSAGE = "Too many requests, please try again later"


class RunRequest(BaseModel):
    """Request body for POST /run-python."""

    code: str = ""
    input: str = Field("", max_length=100_000)


class RunResponse(BaseModel):
    """Response for POST /run-python."""

    output: str


@router.post("/run-python", response_model=RunResponse)
async def run_code(
    body: RunRequest, request: Request, ctx: SessionDep, services: ServicesDep
) -> RunResponse | JSONResponse:
    """Run the student's program and return what it printed.

    Returns:
        200 with the program output, 400 for empty or oversized code,
        408 on timeout, 429 when the session is over its quota
    """
    limiter = RateLimitMiddleware(services.run_limiter, create_default_bucket_map())
    allowed, retry_after = limiter.check_rate_limit(request.url.path, ctx)
    if not allowed:
        return JSONResponse(
            status_code=429,
            content={"output": RATE_LIMITED_MESSAGE},
            headers={"Retry-After": str(retry_after)},
        )

    settings = services.settings
    try:
        result = await run_python(
            body.code,
            body.input,
            python_executable=settings.python_executable,
            timeout_seconds=settings.code_timeout_seconds,
            max_code_chars=settings.code_max_chars,
            max_output_bytes=settings.code_output_max_bytes,
        )
    except CodeRejectedError as e:
        return JSONResponse(status_code=400, content={"output": str(e)})
    except CodeTimeoutError as e:
        return JSONResponse(status_code=408, content={"output": str(e)})

    return RunResponse(output=result.output)
