"""
Release version lifecycle and review submission.

``submit_for_review`` is the release workflow of a pipeline run. Every edit to
the version (release type, build, localizations, release notes, review details,
attributes) lands before the submission record is created, because the backend
validates and freezes the metadata at submission time:

    ensure version exists (optional)
      -> resolve version id
      -> release type -> build -> localizations -> release notes
      -> review details -> version attributes
      -> appStoreVersionSubmissions

A failing step aborts the remaining ones. Steps already applied stay applied.
"""

from typing import Any, Dict, List, Optional, Union

from .api import AppStoreConnectApi
from .errors import ConflictError, NotFoundError
from .localizations import LocalizationReconciler
from .models import (
    RENAMABLE_APP_STORE_STATES,
    CreateVersionOptions,
    EnsureVersionOptions,
    Localization,
    LocalizationAttributes,
    PlatformType,
    ReleaseNotes,
    ReleaseType,
    ReviewDetails,
    SubmitForReviewOptions,
    VersionUpdateOptions,
    coerce_options,
)
from .resolver import ResourceResolver, platform_filter, single_result
from .utils import get_logger

logger = get_logger(__name__)

DEFAULT_RELEASE_NOTES_LOCALE = "en-US"

ReleaseNotesInput = Union[str, ReleaseNotes, Dict[str, str], List[Union[ReleaseNotes, Dict[str, str]]]]


def release_notes_to_localizations(release_notes: ReleaseNotesInput) -> List[Localization]:
    """Turn release notes (bare string, one record or a list) into whatsNew localizations"""
    if isinstance(release_notes, str):
        notes = [ReleaseNotes(lang=DEFAULT_RELEASE_NOTES_LOCALE, text=release_notes)]
    elif isinstance(release_notes, (ReleaseNotes, dict)):
        notes = [coerce_options(release_notes, ReleaseNotes)]
    else:
        notes = [coerce_options(note, ReleaseNotes) for note in release_notes]

    return [Localization(locale=note.lang, attributes=LocalizationAttributes(whats_new=note.text)) for note in notes]


class ReleaseClient:
    def __init__(
        self,
        api: AppStoreConnectApi,
        resolver: ResourceResolver,
        localizations: LocalizationReconciler,
    ) -> None:
        self.api = api
        self.resolver = resolver
        self.localizations = localizations

    async def ensure_version_exists(
        self,
        app_id: int,
        version: str,
        platform: Union[PlatformType, str],
        options: Union[EnsureVersionOptions, Dict[str, Any], None] = None,
    ) -> None:
        """
        Create the release version unless it already exists.

        When creation conflicts because another unreleased version exists and
        ``update_version_string_if_unreleased_version_exists`` is set, that
        version is renamed to ``version`` instead of creating a second one.
        """
        opts = coerce_options(options, EnsureVersionOptions)

        records = await self.resolver.find_versions(app_id, platform, version=version)
        if records:
            single_result(records, "version", {"app": app_id, "version": version, "platform": platform_filter(platform)})
            logger.info(f"Version {version} ({platform_filter(platform)}) already exists for app {app_id}")
            return

        try:
            await self.create_version(app_id, version, platform, opts.create_options)
        except ConflictError:
            if not opts.update_version_string_if_unreleased_version_exists:
                raise
            logger.info(f"An unreleased version exists for app {app_id}, re-targeting it to {version}")
            await self._update_version_string(app_id, version, platform)

    async def _update_version_string(self, app_id: int, version: str, platform: Union[PlatformType, str]) -> None:
        records = await self.resolver.find_versions(app_id, platform, app_store_states=list(RENAMABLE_APP_STORE_STATES))
        context = {"app": app_id, "platform": platform_filter(platform), "target version": version}
        existing = single_result(records, "renamable version", context)

        version_id = existing["id"]
        await self.api.patch(
            f"/v1/appStoreVersions/{version_id}",
            body={"data": {"id": version_id, "type": "appStoreVersions", "attributes": {"versionString": version}}},
            error_message=(
                f"Error when trying to update version for app {app_id} with version: {version}, "
                f"platform: {platform_filter(platform)}"
            ),
        )
        logger.info(f"Renamed version {version_id} of app {app_id} to {version}")

    async def create_version(
        self,
        app_id: int,
        version: str,
        platform: Union[PlatformType, str],
        options: Union[CreateVersionOptions, Dict[str, Any], None] = None,
    ) -> str:
        opts = coerce_options(options, CreateVersionOptions)
        release_type = ReleaseType.AFTER_APPROVAL if opts.auto_release else ReleaseType.MANUAL

        response = await self.api.post(
            "/v1/appStoreVersions",
            body={
                "data": {
                    "type": "appStoreVersions",
                    "attributes": {
                        "platform": platform_filter(platform),
                        "versionString": version,
                        "copyright": opts.copyright,
                        "releaseType": release_type.value,
                        "usesIdfa": opts.uses_idfa,
                    },
                    "relationships": {
                        "app": {"data": {"type": "apps", "id": str(app_id)}},
                    },
                }
            },
            error_message=f"Error creating version for app {app_id}, version: {version}, platform: {platform_filter(platform)}",
        )
        version_id = (response.get("data") or {}).get("id", "")
        logger.info(f"Created version {version} ({platform_filter(platform)}) for app {app_id}: {version_id}")
        return version_id

    async def get_version_id(self, app_id: int, version: str, platform: Union[PlatformType, str]) -> str:
        return await self.resolver.resolve_version_id(app_id, version, platform)

    async def attach_build_id_to_version(
        self,
        app_id: int,
        version: str,
        platform: Union[PlatformType, str],
        build_id: str,
    ) -> None:
        version_id = await self.get_version_id(app_id, version, platform)
        await self.attach_build_id_to_version_by_version_id(version_id, build_id)

    async def attach_build_id_to_version_by_version_id(self, version_id: str, build_id: str) -> None:
        await self.api.patch(
            f"/v1/appStoreVersions/{version_id}/relationships/build",
            body={"data": {"id": build_id, "type": "builds"}},
            error_message=f"Error when trying to update version id: {version_id} with build id: {build_id}",
        )
        logger.info(f"Attached build {build_id} to version {version_id}")

    async def update_version_by_version_id(
        self,
        version_id: str,
        attributes: Union[VersionUpdateOptions, Dict[str, Any]],
    ) -> None:
        payload = coerce_options(attributes, VersionUpdateOptions).to_api()
        await self.api.patch(
            f"/v1/appStoreVersions/{version_id}",
            body={"data": {"id": version_id, "type": "appStoreVersions", "attributes": payload}},
            error_message=f"Error updating version id: {version_id}",
        )
        logger.info(f"Updated version {version_id}: {sorted(payload)}")

    async def set_version_localizations_by_version_id(
        self,
        version_id: str,
        localizations: List[Union[Localization, Dict[str, Any]]],
    ) -> None:
        await self.localizations.set_localizations(
            version_id, [coerce_options(loc, Localization) for loc in localizations]
        )

    async def set_version_release_notes_by_version_id(self, version_id: str, release_notes: ReleaseNotesInput) -> None:
        await self.localizations.set_localizations(version_id, release_notes_to_localizations(release_notes))

    async def set_version_review_detail_attributes_by_version_id(
        self,
        version_id: str,
        review_details: Union[ReviewDetails, Dict[str, Any]],
    ) -> None:
        attributes = coerce_options(review_details, ReviewDetails).to_api()

        detail_id: Optional[str] = None
        try:
            response = await self.api.get(
                f"/v1/appStoreVersions/{version_id}/appStoreReviewDetail",
                error_message=f"Error fetching review details for version id: {version_id}",
            )
            detail_id = (response.get("data") or {}).get("id")
        except NotFoundError:
            detail_id = None

        if detail_id is None:
            await self.api.post(
                "/v1/appStoreReviewDetails",
                body={
                    "data": {
                        "type": "appStoreReviewDetails",
                        "attributes": attributes,
                        "relationships": {
                            "appStoreVersion": {"data": {"type": "appStoreVersions", "id": version_id}},
                        },
                    }
                },
                error_message=f"Error creating review details for version id: {version_id}",
            )
            logger.info(f"Created review details for version {version_id}")
            return

        await self.api.patch(
            f"/v1/appStoreReviewDetails/{detail_id}",
            body={"data": {"id": detail_id, "type": "appStoreReviewDetails", "attributes": attributes}},
            error_message=f"Error updating review details {detail_id} for version id: {version_id}",
        )
        logger.info(f"Updated review details {detail_id} for version {version_id}")

    async def submit_for_review(
        self,
        app_id: int,
        version: str,
        platform: Union[PlatformType, str],
        options: Union[SubmitForReviewOptions, Dict[str, Any], None] = None,
    ) -> None:
        opts = coerce_options(options, SubmitForReviewOptions)

        if opts.auto_create_version:
            await self.ensure_version_exists(
                app_id,
                version,
                platform,
                EnsureVersionOptions(
                    update_version_string_if_unreleased_version_exists=True,
                    create_options=CreateVersionOptions(auto_release=bool(opts.autorelease_on_approval)),
                ),
            )

        version_id = await self.get_version_id(app_id, version, platform)
        await self.submit_for_review_by_version_id(version_id, opts)

    async def submit_for_review_by_version_id(
        self,
        version_id: str,
        options: Union[SubmitForReviewOptions, Dict[str, Any], None] = None,
    ) -> None:
        opts = coerce_options(options, SubmitForReviewOptions)

        if opts.autorelease_on_approval is not None:
            release_type = ReleaseType.AFTER_APPROVAL if opts.autorelease_on_approval else ReleaseType.MANUAL
            await self.update_version_by_version_id(version_id, VersionUpdateOptions(release_type=release_type))

        if opts.auto_attach_build_id:
            await self.attach_build_id_to_version_by_version_id(version_id, opts.auto_attach_build_id)

        if opts.localizations:
            await self.localizations.set_localizations(version_id, opts.localizations)

        if opts.release_notes:
            await self.set_version_release_notes_by_version_id(version_id, opts.release_notes)

        if opts.review_detail_attributes is not None:
            await self.set_version_review_detail_attributes_by_version_id(version_id, opts.review_detail_attributes)

        if opts.version_attributes is not None:
            await self.update_version_by_version_id(version_id, opts.version_attributes)

        await self.api.post(
            "/v1/appStoreVersionSubmissions",
            body={
                "data": {
                    "type": "appStoreVersionSubmissions",
                    "relationships": {
                        "appStoreVersion": {"data": {"id": version_id, "type": "appStoreVersions"}},
                    },
                }
            },
            error_message=f"Error submitting app for approval for version id: {version_id}",
        )
        logger.info(f"Submitted version {version_id} for review")
