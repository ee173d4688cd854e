"""Build lookups, status polling and build attribute updates."""

from typing import Any, Dict, Optional, Union

from .api import AppStoreConnectApi
from .errors import NotFoundError
from .models import (
    Build,
    BuildProcessingState,
    BuildStatus,
    BuildUpdateOptions,
    PlatformType,
    WaitForBuildProcessingOptions,
    coerce_options,
)
from .processing import BuildProcessingMonitor
from .resolver import ResourceResolver, platform_filter, single_result
from .utils import get_logger

logger = get_logger(__name__)


class BuildClient:
    def __init__(self, api: AppStoreConnectApi, resolver: ResourceResolver) -> None:
        self.api = api
        self.resolver = resolver

    async def get_build_id(
        self,
        app_id: int,
        version: str,
        platform: Union[PlatformType, str],
        build_number: Optional[Union[int, str]] = None,
    ) -> str:
        return await self.resolver.resolve_build_id(app_id, version, platform, build_number)

    async def get_build_status_from_build_id(self, build_id: str) -> BuildStatus:
        """Processing state of a build by id; a build that does not exist is an error"""
        response = await self.api.get(
            "/v1/builds",
            params={"fields[builds]": "processingState", "filter[id]": build_id},
            error_message=f"Error fetching build for build id: {build_id}",
        )
        build = single_result(response.get("data") or [], "build", {"build id": build_id})
        return BuildStatus(processing_state=build["attributes"]["processingState"])

    async def get_build_status(
        self,
        app_id: int,
        version: str,
        platform: Union[PlatformType, str],
        build_number: Optional[Union[int, str]] = None,
    ) -> BuildStatus:
        """
        Processing state of a build by app, version and build number.

        A build the backend does not know yet reports ``UNKNOWN`` instead of
        failing, since its upload may still be in flight.
        """
        try:
            records = await self.resolver.find_builds(app_id, version, platform, build_number, fields="processingState")
        except NotFoundError:
            return BuildStatus(processing_state=BuildProcessingState.UNKNOWN)

        if not records:
            return BuildStatus(processing_state=BuildProcessingState.UNKNOWN)

        context = {"app": app_id, "build number": build_number, "version": version, "platform": platform_filter(platform)}
        build = single_result(records, "build", context)
        return BuildStatus(processing_state=build["attributes"]["processingState"])

    def create_build_processing_monitor(
        self,
        app_id: int,
        platform: Union[PlatformType, str],
        version: str,
        build_number: Optional[Union[int, str]] = None,
        options: Union[WaitForBuildProcessingOptions, Dict[str, Any], None] = None,
    ) -> BuildProcessingMonitor:
        async def fetch_state() -> BuildProcessingState:
            status = await self.get_build_status(app_id, version, platform, build_number)
            return status.processing_state

        description = f"app {app_id} version {version} ({platform_filter(platform)}) build {build_number}"
        return BuildProcessingMonitor(fetch_state, coerce_options(options, WaitForBuildProcessingOptions), description)

    async def wait_for_build_processing_to_complete(
        self,
        app_id: int,
        platform: Union[PlatformType, str],
        version: str,
        build_number: Optional[Union[int, str]] = None,
        options: Union[WaitForBuildProcessingOptions, Dict[str, Any], None] = None,
    ) -> None:
        """
        Wait until the build is processed. Raises ``BuildProcessingError`` when the
        build turns out invalid or the try budget runs out; waits while the build
        does not exist yet.
        """
        monitor = self.create_build_processing_monitor(app_id, platform, version, build_number, options)
        await monitor.wait()

    async def wait_for_build_processing_by_build_id(
        self,
        build_id: str,
        options: Union[WaitForBuildProcessingOptions, Dict[str, Any], None] = None,
    ) -> None:
        async def fetch_state() -> BuildProcessingState:
            status = await self.get_build_status_from_build_id(build_id)
            return status.processing_state

        monitor = BuildProcessingMonitor(fetch_state, coerce_options(options, WaitForBuildProcessingOptions), f"build {build_id}")
        await monitor.wait()

    async def get_build(self, build_id: str) -> Build:
        response = await self.api.get(f"/v1/builds/{build_id}", error_message=f"Error fetching build with id {build_id}")
        data = response.get("data") or {}
        return Build.model_validate({"id": data.get("id", build_id), **(data.get("attributes") or {})})

    async def update_build(self, build_id: str, options: Union[BuildUpdateOptions, Dict[str, Any]]) -> None:
        attributes = coerce_options(options, BuildUpdateOptions).to_api()
        await self.api.patch(
            f"/v1/builds/{build_id}",
            body={"data": {"id": build_id, "type": "builds", "attributes": attributes}},
            error_message=f"Error updating build with id {build_id}",
        )
        logger.info(f"Updated build {build_id}: {sorted(attributes)}")
