"""TestFlight beta group distribution and tester notifications."""

from typing import Any, Dict, Optional, Union

from .api import AppStoreConnectApi
from .build_client import BuildClient
from .errors import ConflictError, NotFoundError
from .models import (
    AddBuildToExternalGroupOptions,
    CreateGroupOptions,
    NotifyBetaTestersOptions,
    PlatformType,
    coerce_options,
)
from .resolver import single_result
from .utils import get_logger

logger = get_logger(__name__)


class TestflightClient:
    __test__ = False

    def __init__(self, api: AppStoreConnectApi, build_client: BuildClient) -> None:
        self.api = api
        self.build_client = build_client

    async def get_external_beta_testers_group_id(self, app_id: int, group_name: str) -> str:
        """Id of the beta group with this name; no match raises ``NotFoundError``"""
        response = await self.api.get(
            "/v1/betaGroups",
            params={
                "fields[betaGroups]": "name",
                "filter[app]": app_id,
                "filter[name]": group_name,
            },
            error_message=f"Error fetching beta group {group_name} for app {app_id}",
        )
        group = single_result(response.get("data") or [], "beta group", {"app": app_id, "group name": group_name})
        return group["id"]

    async def create_external_beta_testers_group(
        self,
        app_id: int,
        group_name: str,
        options: Union[CreateGroupOptions, Dict[str, Any], None] = None,
    ) -> str:
        """
        Create an external beta group and return its id. Unless duplicates are
        allowed, a group that already carries the name is returned instead.
        """
        opts = coerce_options(options, CreateGroupOptions)

        if not opts.allow_duplicates:
            try:
                group_id = await self.get_external_beta_testers_group_id(app_id, group_name)
                logger.info(f"Beta group '{group_name}' already exists for app {app_id}: {group_id}")
                return group_id
            except NotFoundError:
                pass

        attributes: Dict[str, Any] = {
            "name": group_name,
            "publicLinkEnabled": opts.public_link_enabled,
            "publicLinkLimitEnabled": opts.public_link_limit_enabled,
            "feedbackEnabled": opts.feedback_enabled,
        }
        if opts.public_link_limit is not None:
            attributes["publicLinkLimit"] = opts.public_link_limit

        response = await self.api.post(
            "/v1/betaGroups",
            body={
                "data": {
                    "type": "betaGroups",
                    "attributes": attributes,
                    "relationships": {"app": {"data": {"type": "apps", "id": str(app_id)}}},
                }
            },
            error_message=f"Error creating beta group {group_name} for app {app_id}",
        )
        group_id = (response.get("data") or {}).get("id", "")
        logger.info(f"Created beta group '{group_name}' for app {app_id}: {group_id}")
        return group_id

    async def add_build_to_external_group_by_group_id(
        self,
        app_id: int,
        version: str,
        platform: Union[PlatformType, str],
        build_number: Optional[Union[int, str]],
        group_id: str,
        options: Union[AddBuildToExternalGroupOptions, Dict[str, Any], None] = None,
    ) -> None:
        build_id = await self.build_client.get_build_id(app_id, version, platform, build_number)
        await self.add_build_to_external_group_by_group_id_and_build_id(build_id, group_id, options)

    async def add_build_to_external_group_by_group_id_and_build_id(
        self,
        build_id: str,
        group_id: str,
        options: Union[AddBuildToExternalGroupOptions, Dict[str, Any], None] = None,
    ) -> None:
        """Distribute a build to a group. The app must already be approved for beta testing."""
        opts = coerce_options(options, AddBuildToExternalGroupOptions)

        await self.api.post(
            f"/v1/builds/{build_id}/relationships/betaGroups",
            body={"data": [{"id": group_id, "type": "betaGroups"}]},
            error_message=f"Error adding build to group for group {group_id} with build id: {build_id}",
        )
        logger.info(f"Added build {build_id} to beta group {group_id}")

        if opts.notify_beta_testers_there_is_a_new_build:
            await self.notify_beta_testers_of_new_build_by_build_id(build_id)

    async def add_build_to_external_group_by_build_id(
        self,
        app_id: int,
        build_id: str,
        group_name: str,
        options: Union[AddBuildToExternalGroupOptions, Dict[str, Any], None] = None,
    ) -> None:
        opts = coerce_options(options, AddBuildToExternalGroupOptions)

        if opts.create_group_if_not_exists:
            group_id = await self.create_external_beta_testers_group(app_id, group_name)
        else:
            group_id = await self.get_external_beta_testers_group_id(app_id, group_name)

        await self.add_build_to_external_group_by_group_id_and_build_id(build_id, group_id, opts)

    async def notify_beta_testers_of_new_build_by_build_id(
        self,
        build_id: str,
        options: Union[NotifyBetaTestersOptions, Dict[str, Any], None] = None,
    ) -> None:
        opts = coerce_options(options, NotifyBetaTestersOptions)

        try:
            await self.api.post(
                "/v1/buildBetaNotifications",
                body={
                    "data": {
                        "type": "buildBetaNotifications",
                        "relationships": {"build": {"data": {"id": build_id, "type": "builds"}}},
                    }
                },
                error_message=f"Error sending notification for build id: {build_id}",
            )
        except ConflictError as e:
            if not opts.ignore_if_enabled:
                raise
            logger.warning(f"Beta testers were already notified of build {build_id}: {e.message}")
            return

        logger.info(f"Notified beta testers of build {build_id}")
