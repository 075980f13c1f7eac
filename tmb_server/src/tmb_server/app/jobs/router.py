from __future__ import annotations

"""
Job router: maps job ids to handlers and validates job arguments.

A JobCall names a job id, the target service id and the raw job arguments.
Arguments are validated against the job's pydantic parameter model; a mapping
is validated by field name and a list/tuple is matched to the fields in
declaration order. Calls for a different service than the configured one are
rejected.
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type

from pydantic import BaseModel

from tmb_server.app.deps import BlueprintContext, check_service_id
from tmb_server.app.errors import JobNotFound
from tmb_server.app.jobs import (
    CREATE_PROJECT_JOB_ID,
    CREATE_WORKSPACE_JOB_ID,
    DESTROY_PROJECT_JOB_ID,
    DESTROY_WORKSPACE_JOB_ID,
)
from tmb_server.app.jobs.create_project import create_project
from tmb_server.app.jobs.create_workspace import create_workspace
from tmb_server.app.jobs.destroy_project import destroy_project
from tmb_server.app.jobs.destroy_workspace import destroy_workspace
from tmb_server.app.models import CreateProjectParams, CreateWorkspaceParams

logger = logging.getLogger("tangle_mcp")

Handler = Callable[..., Awaitable[Any]]


@dataclass(frozen=True)
class JobCall:
    job_id: int
    service_id: int
    args: Any = None


@dataclass(frozen=True)
class JobRoute:
    job_id: int
    name: str
    handler: Handler
    params_model: Optional[Type[BaseModel]] = None


def parse_job_args(model: Type[BaseModel], args: Any) -> BaseModel:
    """
    Validate raw job arguments against a parameter model.

    Raises:
        pydantic.ValidationError on invalid arguments.
    """
    if isinstance(args, (list, tuple)):
        field_names = list(model.model_fields)
        if len(args) > len(field_names):
            raise ValueError(f"Too many job arguments: expected at most {len(field_names)}, got {len(args)}")
        args = dict(zip(field_names, args))
    return model.model_validate(args if args is not None else {})


class JobRouter:
    def __init__(self, service_id: Optional[int] = None) -> None:
        self.service_id = service_id
        self._routes: Dict[int, JobRoute] = {}

    def route(
        self,
        job_id: int,
        handler: Handler,
        *,
        name: Optional[str] = None,
        params_model: Optional[Type[BaseModel]] = None,
    ) -> "JobRouter":
        if job_id in self._routes:
            raise ValueError(f"Job id {job_id} is already routed to {self._routes[job_id].name}")
        self._routes[job_id] = JobRoute(
            job_id=job_id,
            name=name or getattr(handler, "__name__", str(job_id)),
            handler=handler,
            params_model=params_model,
        )
        return self

    def routes(self) -> List[JobRoute]:
        return [self._routes[k] for k in sorted(self._routes)]

    async def dispatch(self, ctx: BlueprintContext, call: JobCall) -> Any:
        """
        Run the handler for call.job_id.

        Raises:
            ServiceIdMismatch: the call targets another service
            JobNotFound: no handler for the job id
            pydantic.ValidationError / ValueError: invalid job arguments
        """
        check_service_id(self.service_id, call.service_id)
        route = self._routes.get(call.job_id)
        if route is None:
            raise JobNotFound(f"No job with id {call.job_id}", service_id=call.service_id)

        logger.info("Dispatch job %s (%s) service_id=%s", route.job_id, route.name, call.service_id)
        if route.params_model is None:
            return await route.handler(ctx, call.service_id)
        params = parse_job_args(route.params_model, call.args)
        return await route.handler(ctx, call.service_id, params)


def build_router(service_id: Optional[int] = None) -> JobRouter:
    """
    Router with every blueprint job registered.
    """
    return (
        JobRouter(service_id=service_id)
        .route(CREATE_WORKSPACE_JOB_ID, create_workspace, params_model=CreateWorkspaceParams)
        .route(DESTROY_WORKSPACE_JOB_ID, destroy_workspace)
        .route(CREATE_PROJECT_JOB_ID, create_project, params_model=CreateProjectParams)
        .route(DESTROY_PROJECT_JOB_ID, destroy_project)
    )


__all__ = [
    "JobCall",
    "JobRoute",
    "JobRouter",
    "parse_job_args",
    "build_router",
]
