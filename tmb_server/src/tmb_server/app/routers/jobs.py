from __future__ import annotations

"""
Generic job submission: POST /jobs/{job_id} with {service_id, args}.
"""

from fastapi import APIRouter, Depends, HTTPException, Path, Request, status
from pydantic import ValidationError

from tmb_server.app.deps import BlueprintContext, enforce_api_key, get_context
from tmb_server.app.jobs.router import JobCall, JobRouter
from tmb_server.app.models import JobCallPayload, JobResultResponse

router = APIRouter(dependencies=[Depends(enforce_api_key)], tags=["jobs"])


def get_job_router(request: Request) -> JobRouter:
    return request.app.state.job_router


@router.post("/jobs/{job_id}", response_model=JobResultResponse)
async def submit_job(
    payload: JobCallPayload,
    job_id: int = Path(..., ge=0),
    ctx: BlueprintContext = Depends(get_context),
    jobs: JobRouter = Depends(get_job_router),
) -> JobResultResponse:
    call = JobCall(job_id=job_id, service_id=payload.service_id, args=payload.args)
    try:
        result = await jobs.dispatch(ctx, call)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=e.errors(include_url=False, include_context=False, include_input=False),
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    return JobResultResponse(job_id=job_id, service_id=payload.service_id, result=result)
