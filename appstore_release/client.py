"""
App Store release client facade.

``Client`` composes the build, release, TestFlight and sales clients over one shared
transport and token provider, and forwards every operation to the client that
owns it.

Example:
    ```python
    client = Client.create(load_client_options())
    await client.wait_for_build_processing_to_complete(42, "IOS", "1.2.0", 17)
    build_id = await client.get_build_id(42, "1.2.0", "IOS", 17)
    await client.submit_for_review(42, "1.2.0", "IOS", {
        "auto_create_version": True,
        "auto_attach_build_id": build_id,
        "release_notes": "Bug fixes",
    })
    ```
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union

import httpx

from .api import AppStoreConnectApi
from .auth import TokenProvider
from .build_client import BuildClient
from .config import ClientOptions
from .localizations import LocalizationReconciler
from .models import (
    AddBuildToExternalGroupOptions,
    Build,
    BuildStatus,
    BuildUpdateOptions,
    CreateGroupOptions,
    CreateVersionOptions,
    EnsureVersionOptions,
    Localization,
    NotifyBetaTestersOptions,
    PlatformType,
    ReviewDetails,
    SalesReportFrequency,
    SubmitForReviewOptions,
    VersionUpdateOptions,
    WaitForBuildProcessingOptions,
)
from .processing import BuildProcessingMonitor
from .release_client import ReleaseClient, ReleaseNotesInput
from .resolver import ResourceResolver
from .sales import SalesClient, SalesReportRow, SalesReportRowFilter
from .testflight_client import TestflightClient

Platform = Union[PlatformType, str]
BuildNumber = Optional[Union[int, str]]


class Client:
    """A client for the App Store Connect release workflow"""

    @classmethod
    def create(cls, options: ClientOptions, transport: Optional[httpx.AsyncBaseTransport] = None) -> "Client":
        token_provider = TokenProvider(options)
        api = AppStoreConnectApi(token_provider, options.base_url, options.timeout_seconds, transport=transport)
        resolver = ResourceResolver(api)
        build_client = BuildClient(api, resolver)
        release_client = ReleaseClient(api, resolver, LocalizationReconciler(api))
        testflight_client = TestflightClient(api, build_client)
        return cls(build_client, release_client, testflight_client, SalesClient(api))

    def __init__(
        self,
        build_client: BuildClient,
        release_client: ReleaseClient,
        testflight_client: TestflightClient,
        sales_client: SalesClient,
    ) -> None:
        self.build_client = build_client
        self.release_client = release_client
        self.testflight_client = testflight_client
        self.sales_client = sales_client

    # Builds

    async def get_build_id(self, app_id: int, version: str, platform: Platform, build_number: BuildNumber = None) -> str:
        return await self.build_client.get_build_id(app_id, version, platform, build_number)

    async def get_build_status_from_build_id(self, build_id: str) -> BuildStatus:
        return await self.build_client.get_build_status_from_build_id(build_id)

    async def get_build_status(self, app_id: int, version: str, platform: Platform, build_number: BuildNumber = None) -> BuildStatus:
        return await self.build_client.get_build_status(app_id, version, platform, build_number)

    async def wait_for_build_processing_to_complete(
        self,
        app_id: int,
        platform: Platform,
        version: str,
        build_number: BuildNumber = None,
        options: Union[WaitForBuildProcessingOptions, Dict[str, Any], None] = None,
    ) -> None:
        """Waits for build processing to complete. Raises if the build is invalid; waits while it does not exist."""
        await self.build_client.wait_for_build_processing_to_complete(app_id, platform, version, build_number, options)

    async def wait_for_build_processing_by_build_id(
        self,
        build_id: str,
        options: Union[WaitForBuildProcessingOptions, Dict[str, Any], None] = None,
    ) -> None:
        await self.build_client.wait_for_build_processing_by_build_id(build_id, options)

    def create_build_processing_monitor(
        self,
        app_id: int,
        platform: Platform,
        version: str,
        build_number: BuildNumber = None,
        options: Union[WaitForBuildProcessingOptions, Dict[str, Any], None] = None,
    ) -> BuildProcessingMonitor:
        return self.build_client.create_build_processing_monitor(app_id, platform, version, build_number, options)

    async def get_build(self, build_id: str) -> Build:
        return await self.build_client.get_build(build_id)

    async def update_build(self, build_id: str, options: Union[BuildUpdateOptions, Dict[str, Any]]) -> None:
        await self.build_client.update_build(build_id, options)

    # Release versions

    async def ensure_version_exists(
        self,
        app_id: int,
        version: str,
        platform: Platform,
        options: Union[EnsureVersionOptions, Dict[str, Any], None] = None,
    ) -> None:
        await self.release_client.ensure_version_exists(app_id, version, platform, options)

    async def create_version(
        self,
        app_id: int,
        version: str,
        platform: Platform,
        options: Union[CreateVersionOptions, Dict[str, Any], None] = None,
    ) -> str:
        return await self.release_client.create_version(app_id, version, platform, options)

    async def get_version_id(self, app_id: int, version: str, platform: Platform) -> str:
        return await self.release_client.get_version_id(app_id, version, platform)

    async def attach_build_id_to_version(self, app_id: int, version: str, platform: Platform, build_id: str) -> None:
        await self.release_client.attach_build_id_to_version(app_id, version, platform, build_id)

    async def attach_build_id_to_version_by_version_id(self, version_id: str, build_id: str) -> None:
        await self.release_client.attach_build_id_to_version_by_version_id(version_id, build_id)

    async def update_version_by_version_id(self, version_id: str, attributes: Union[VersionUpdateOptions, Dict[str, Any]]) -> None:
        await self.release_client.update_version_by_version_id(version_id, attributes)

    async def set_version_localizations_by_version_id(
        self,
        version_id: str,
        localizations: List[Union[Localization, Dict[str, Any]]],
    ) -> None:
        await self.release_client.set_version_localizations_by_version_id(version_id, localizations)

    async def set_version_release_notes_by_version_id(self, version_id: str, release_notes: ReleaseNotesInput) -> None:
        await self.release_client.set_version_release_notes_by_version_id(version_id, release_notes)

    async def set_version_review_detail_attributes_by_version_id(
        self,
        version_id: str,
        review_details: Union[ReviewDetails, Dict[str, Any]],
    ) -> None:
        await self.release_client.set_version_review_detail_attributes_by_version_id(version_id, review_details)

    async def submit_for_review(
        self,
        app_id: int,
        version: str,
        platform: Platform,
        options: Union[SubmitForReviewOptions, Dict[str, Any], None] = None,
    ) -> None:
        await self.release_client.submit_for_review(app_id, version, platform, options)

    async def submit_for_review_by_version_id(
        self,
        version_id: str,
        options: Union[SubmitForReviewOptions, Dict[str, Any], None] = None,
    ) -> None:
        await self.release_client.submit_for_review_by_version_id(version_id, options)

    # TestFlight

    async def get_external_beta_testers_group_id(self, app_id: int, group_name: str) -> str:
        return await self.testflight_client.get_external_beta_testers_group_id(app_id, group_name)

    async def create_external_beta_testers_group(
        self,
        app_id: int,
        group_name: str,
        options: Union[CreateGroupOptions, Dict[str, Any], None] = None,
    ) -> str:
        return await self.testflight_client.create_external_beta_testers_group(app_id, group_name, options)

    async def add_build_to_external_group_by_group_id(
        self,
        app_id: int,
        version: str,
        platform: Platform,
        build_number: BuildNumber,
        group_id: str,
        options: Union[AddBuildToExternalGroupOptions, Dict[str, Any], None] = None,
    ) -> None:
        await self.testflight_client.add_build_to_external_group_by_group_id(
            app_id, version, platform, build_number, group_id, options
        )

    async def add_build_to_external_group_by_group_id_and_build_id(
        self,
        build_id: str,
        group_id: str,
        options: Union[AddBuildToExternalGroupOptions, Dict[str, Any], None] = None,
    ) -> None:
        await self.testflight_client.add_build_to_external_group_by_group_id_and_build_id(build_id, group_id, options)

    async def add_build_to_external_group_by_build_id(
        self,
        app_id: int,
        build_id: str,
        group_name: str,
        options: Union[AddBuildToExternalGroupOptions, Dict[str, Any], None] = None,
    ) -> None:
        await self.testflight_client.add_build_to_external_group_by_build_id(app_id, build_id, group_name, options)

    async def notify_beta_testers_of_new_build_by_build_id(
        self,
        build_id: str,
        options: Union[NotifyBetaTestersOptions, Dict[str, Any], None] = None,
    ) -> None:
        await self.testflight_client.notify_beta_testers_of_new_build_by_build_id(build_id, options)

    # Sales

    async def download_sales_report_summary(
        self,
        vendor_id: str,
        frequency: Union[SalesReportFrequency, str] = SalesReportFrequency.WEEKLY,
        report_date: Union[date, datetime, None] = None,
        row_filter: Optional[SalesReportRowFilter] = None,
    ) -> List[SalesReportRow]:
        return await self.sales_client.download_sales_report_summary(vendor_id, frequency, report_date, row_filter)
