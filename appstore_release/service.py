"""Pipeline webhook service for release automation.

CI pipelines post an event once a build has been uploaded or a release is ready
for review; the long running workflow then runs as a background task:

- ``build_uploaded``: wait for processing, then distribute the build to the
  external beta group (created when missing) and notify testers
- ``submit_for_review``: create or re-target the version, attach the build and
  release notes, and submit it for review
"""

import os
from typing import Any, Dict, Optional

from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from .client import Client
from .config import load_client_options
from .models import (
    AddBuildToExternalGroupOptions,
    NotifyBetaTestersOptions,
    PlatformType,
    SubmitForReviewOptions,
    WaitForBuildProcessingOptions,
)
from .utils import get_logger

logger = get_logger(__name__)

app = FastAPI(title="App Store Release Automation")

BUILD_UPLOADED = "build_uploaded"
SUBMIT_FOR_REVIEW = "submit_for_review"

security = HTTPBearer(auto_error=False)


class PipelineEvent(BaseModel):
    """Pipeline webhook event structure"""
    event_type: str  # "build_uploaded", "submit_for_review"
    app_id: int
    version: str
    platform: PlatformType = PlatformType.IOS
    build_number: Optional[str] = None
    group_name: Optional[str] = None
    release_notes: Optional[str] = None
    auto_create_version: bool = True
    autorelease_on_approval: Optional[bool] = None
    poll_interval_in_seconds: float = 60
    max_tries: int = 60


def get_client() -> Client:
    return Client.create(load_client_options())


def require_pipeline_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> None:
    """Check the bearer token when PIPELINE_WEBHOOK_TOKEN is configured"""
    expected = os.getenv("PIPELINE_WEBHOOK_TOKEN", "")
    if not expected:
        return
    if credentials is None or credentials.credentials != expected:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def distribute_build(client: Client, event: PipelineEvent) -> None:
    """Wait for the uploaded build to process and hand it to the beta group"""
    logger.info(f"Distributing build {event.build_number} of app {event.app_id} {event.version}")

    await client.wait_for_build_processing_to_complete(
        event.app_id,
        event.platform,
        event.version,
        event.build_number,
        WaitForBuildProcessingOptions(
            poll_interval_in_seconds=event.poll_interval_in_seconds,
            max_tries=event.max_tries,
        ),
    )
    build_id = await client.get_build_id(event.app_id, event.version, event.platform, event.build_number)

    if not event.group_name:
        logger.info(f"No beta group given, build {build_id} is processed and left undistributed")
        return

    await client.add_build_to_external_group_by_build_id(
        event.app_id,
        build_id,
        event.group_name,
        AddBuildToExternalGroupOptions(create_group_if_not_exists=True),
    )
    await client.notify_beta_testers_of_new_build_by_build_id(build_id, NotifyBetaTestersOptions(ignore_if_enabled=True))
    logger.info(f"Build {build_id} is available to beta group '{event.group_name}'")


async def submit_release(client: Client, event: PipelineEvent) -> None:
    """Submit the event's version for review, attaching its build when given"""
    build_id = None
    if event.build_number:
        build_id = await client.get_build_id(event.app_id, event.version, event.platform, event.build_number)

    await client.submit_for_review(
        event.app_id,
        event.version,
        event.platform,
        SubmitForReviewOptions(
            auto_create_version=event.auto_create_version,
            autorelease_on_approval=event.autorelease_on_approval,
            auto_attach_build_id=build_id,
            release_notes=event.release_notes,
        ),
    )
    logger.info(f"Version {event.version} of app {event.app_id} submitted for review")


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.post("/webhook/pipeline")
async def handle_pipeline_webhook(
    event: PipelineEvent,
    background_tasks: BackgroundTasks,
    _: None = Depends(require_pipeline_token),
) -> Dict[str, Any]:
    """Handle pipeline events by scheduling the matching release workflow"""
    logger.info(f"Received pipeline event: {event.model_dump()}")

    if event.event_type == BUILD_UPLOADED:
        workflow = distribute_build
    elif event.event_type == SUBMIT_FOR_REVIEW:
        workflow = submit_release
    else:
        raise HTTPException(status_code=400, detail=f"Unsupported event type: {event.event_type}")

    try:
        client = get_client()
    except (ValueError, OSError) as e:
        logger.error(f"Error creating App Store Connect client: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    background_tasks.add_task(workflow, client, event)
    return {"status": "accepted"}
