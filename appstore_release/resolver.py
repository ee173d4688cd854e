"""Resolution of human readable identifiers into App Store Connect resource ids."""

from typing import Any, Dict, List, Optional, Union

from .api import AppStoreConnectApi
from .errors import AmbiguousResultError, NotFoundError
from .models import PlatformType


def platform_filter(platform: Union[PlatformType, str]) -> str:
    value = platform.value if isinstance(platform, PlatformType) else str(platform)
    return value.upper()


def describe(context: Dict[str, Any]) -> str:
    return ", ".join(f"{key}: {value}" for key, value in context.items() if value is not None)


def single_result(records: List[Dict[str, Any]], what: str, context: Dict[str, Any]) -> Dict[str, Any]:
    """Return the only record of a filtered lookup; zero or several matches are errors"""
    if len(records) > 1:
        raise AmbiguousResultError(f"Received too many results for {what} ({describe(context)})", context)
    if not records:
        raise NotFoundError(f"{what.capitalize()} not found ({describe(context)})", context)
    return records[0]


class ResourceResolver:
    """Maps (app id, version, platform[, build number]) onto build and version ids"""

    def __init__(self, api: AppStoreConnectApi) -> None:
        self.api = api

    async def find_builds(
        self,
        app_id: int,
        version: str,
        platform: Union[PlatformType, str],
        build_number: Optional[Union[int, str]] = None,
        fields: str = "",
    ) -> List[Dict[str, Any]]:
        response = await self.api.get(
            "/v1/builds",
            params={
                "fields[builds]": fields,
                "filter[app]": app_id,
                "filter[version]": build_number,
                "filter[preReleaseVersion.version]": version,
                "filter[preReleaseVersion.platform]": platform_filter(platform),
            },
            error_message=(
                f"Error fetching build for app {app_id} with build number: {build_number}, "
                f"version: {version}, platform: {platform_filter(platform)}"
            ),
        )
        return response.get("data") or []

    async def resolve_build_id(
        self,
        app_id: int,
        version: str,
        platform: Union[PlatformType, str],
        build_number: Optional[Union[int, str]] = None,
    ) -> str:
        records = await self.find_builds(app_id, version, platform, build_number)
        context = {"app": app_id, "build number": build_number, "version": version, "platform": platform_filter(platform)}
        return single_result(records, "build", context)["id"]

    async def find_versions(
        self,
        app_id: int,
        platform: Union[PlatformType, str],
        version: Optional[str] = None,
        app_store_states: Optional[List[str]] = None,
    ) -> List[Dict[str, Any]]:
        states = ",".join(getattr(s, "value", s) for s in app_store_states) if app_store_states else None
        response = await self.api.get(
            f"/v1/apps/{app_id}/appStoreVersions",
            params={
                "fields[appStoreVersions]": "versionString,platform,appStoreState",
                "filter[platform]": platform_filter(platform),
                "filter[versionString]": version,
                "filter[appStoreState]": states,
            },
            error_message=f"Error fetching version for app {app_id} with version: {version}, platform: {platform_filter(platform)}",
        )
        return response.get("data") or []

    async def resolve_version_id(self, app_id: int, version: str, platform: Union[PlatformType, str]) -> str:
        records = await self.find_versions(app_id, platform, version=version)
        context = {"app": app_id, "version": version, "platform": platform_filter(platform)}
        return single_result(records, "version", context)["id"]
