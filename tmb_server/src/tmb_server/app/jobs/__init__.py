"""
Job handlers of the blueprint, addressed by numeric job id.

    CREATE_WORKSPACE_JOB_ID  create_workspace(ctx, service_id, CreateWorkspaceParams) -> endpoint URL
    DESTROY_WORKSPACE_JOB_ID destroy_workspace(ctx, service_id) -> True
    CREATE_PROJECT_JOB_ID    create_project(ctx, service_id, CreateProjectParams) -> endpoint URL
    DESTROY_PROJECT_JOB_ID   destroy_project(ctx, service_id) -> True
"""

CREATE_WORKSPACE_JOB_ID = 0
DESTROY_WORKSPACE_JOB_ID = 1
CREATE_PROJECT_JOB_ID = 2
DESTROY_PROJECT_JOB_ID = 3

__all__ = [
    "CREATE_WORKSPACE_JOB_ID",
    "DESTROY_WORKSPACE_JOB_ID",
    "CREATE_PROJECT_JOB_ID",
    "DESTROY_PROJECT_JOB_ID",
]
