"""Resource types and operation options for the App Store release client.

Attribute models serialize with the backend's camelCase names through pydantic
aliases. Option models are plain snake_case structs; every field documents its
default so callers never rely on implicit merging.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class PlatformType(str, Enum):
    IOS = "IOS"
    MAC_OS = "MAC_OS"
    TV_OS = "TV_OS"


class BuildProcessingState(str, Enum):
    # UNKNOWN is never returned by the backend: it marks a build that is not observable yet
    UNKNOWN = "UNKNOWN"
    PROCESSING = "PROCESSING"
    VALID = "VALID"
    INVALID = "INVALID"
    FAILED = "FAILED"


class AppStoreState(str, Enum):
    DEVELOPER_REMOVED_FROM_SALE = "DEVELOPER_REMOVED_FROM_SALE"
    DEVELOPER_REJECTED = "DEVELOPER_REJECTED"
    IN_REVIEW = "IN_REVIEW"
    INVALID_BINARY = "INVALID_BINARY"
    METADATA_REJECTED = "METADATA_REJECTED"
    PENDING_APPLE_RELEASE = "PENDING_APPLE_RELEASE"
    PENDING_CONTRACT = "PENDING_CONTRACT"
    PENDING_DEVELOPER_RELEASE = "PENDING_DEVELOPER_RELEASE"
    PREPARE_FOR_SUBMISSION = "PREPARE_FOR_SUBMISSION"
    PREORDER_READY_FOR_SALE = "PREORDER_READY_FOR_SALE"
    PROCESSING_FOR_APP_STORE = "PROCESSING_FOR_APP_STORE"
    READY_FOR_REVIEW = "READY_FOR_REVIEW"
    READY_FOR_SALE = "READY_FOR_SALE"
    REJECTED = "REJECTED"
    REMOVED_FROM_SALE = "REMOVED_FROM_SALE"
    WAITING_FOR_EXPORT_COMPLIANCE = "WAITING_FOR_EXPORT_COMPLIANCE"
    WAITING_FOR_REVIEW = "WAITING_FOR_REVIEW"
    REPLACED_WITH_NEW_VERSION = "REPLACED_WITH_NEW_VERSION"


# States in which the version string of an unreleased version may still be edited
RENAMABLE_APP_STORE_STATES = (
    AppStoreState.DEVELOPER_REMOVED_FROM_SALE,
    AppStoreState.DEVELOPER_REJECTED,
    AppStoreState.INVALID_BINARY,
    AppStoreState.METADATA_REJECTED,
    AppStoreState.PENDING_CONTRACT,
    AppStoreState.PENDING_DEVELOPER_RELEASE,
    AppStoreState.PREPARE_FOR_SUBMISSION,
    AppStoreState.REJECTED,
    AppStoreState.REMOVED_FROM_SALE,
    AppStoreState.WAITING_FOR_EXPORT_COMPLIANCE,
)


class ReleaseType(str, Enum):
    MANUAL = "MANUAL"
    AFTER_APPROVAL = "AFTER_APPROVAL"
    SCHEDULED = "SCHEDULED"


class SalesReportFrequency(str, Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"


class ApiAttributes(BaseModel):
    """Attributes sent to or read from the backend in camelCase"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_api(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class BuildStatus(ApiAttributes):
    processing_state: BuildProcessingState


class Build(ApiAttributes):
    id: Optional[str] = None
    version: Optional[str] = None
    processing_state: Optional[BuildProcessingState] = None
    uploaded_date: Optional[datetime] = None
    expiration_date: Optional[datetime] = None
    expired: Optional[bool] = None
    min_os_version: Optional[str] = None
    uses_non_exempt_encryption: Optional[bool] = None


class BuildUpdateOptions(ApiAttributes):
    expired: Optional[bool] = None
    uses_non_exempt_encryption: Optional[bool] = None


class LocalizationAttributes(ApiAttributes):
    description: Optional[str] = None
    keywords: Optional[str] = None
    marketing_url: Optional[str] = None
    promotional_text: Optional[str] = None
    support_url: Optional[str] = None
    whats_new: Optional[str] = None


class Localization(BaseModel):
    locale: str
    attributes: LocalizationAttributes = Field(default_factory=LocalizationAttributes)


class ReleaseNotes(BaseModel):
    lang: str
    text: str


class ReviewDetails(ApiAttributes):
    contact_email: Optional[str] = None
    contact_first_name: Optional[str] = None
    contact_last_name: Optional[str] = None
    contact_phone: Optional[str] = None
    demo_account_name: Optional[str] = None
    demo_account_password: Optional[str] = None
    demo_account_required: Optional[bool] = None
    notes: Optional[str] = None


class VersionUpdateOptions(ApiAttributes):
    copyright: Optional[str] = None
    earliest_release_date: Optional[datetime] = None
    release_type: Optional[ReleaseType] = None
    uses_idfa: Optional[bool] = None
    version_string: Optional[str] = None
    downloadable: Optional[bool] = None


class CreateVersionOptions(BaseModel):
    # releaseType becomes AFTER_APPROVAL when set, MANUAL otherwise
    auto_release: bool = False
    copyright: str = ""
    uses_idfa: bool = False


class EnsureVersionOptions(BaseModel):
    # re-target the single renamable unreleased version when creation conflicts
    update_version_string_if_unreleased_version_exists: bool = False
    create_options: Optional[CreateVersionOptions] = None


class SubmitForReviewOptions(BaseModel):
    # creates the version when missing and overwrites any unreleased version string
    auto_create_version: bool = False
    # None leaves the release type untouched
    autorelease_on_approval: Optional[bool] = None
    auto_attach_build_id: Optional[str] = None
    # a bare string is stored as the en-US whatsNew text
    release_notes: Union[str, ReleaseNotes, List[ReleaseNotes], None] = None
    review_detail_attributes: Optional[ReviewDetails] = None
    version_attributes: Optional[VersionUpdateOptions] = None
    localizations: Optional[List[Localization]] = None


ProcessingObserver = Callable[[BuildProcessingState, int], Any]


class WaitForBuildProcessingOptions(BaseModel):
    poll_interval_in_seconds: float = 60
    max_tries: int = 60
    initial_delay_in_seconds: float = 0
    # called with (state, try count) on every poll
    on_poll_callback: Optional[ProcessingObserver] = None


class AddBuildToExternalGroupOptions(BaseModel):
    notify_beta_testers_there_is_a_new_build: bool = False
    create_group_if_not_exists: bool = False


class CreateGroupOptions(BaseModel):
    # when False an existing group with the same name is reused
    allow_duplicates: bool = False
    public_link_enabled: bool = False
    public_link_limit_enabled: bool = False
    public_link_limit: Optional[int] = None
    feedback_enabled: bool = True


class NotifyBetaTestersOptions(BaseModel):
    # treat "already notified" conflicts as success
    ignore_if_enabled: bool = False


OptionsT = TypeVar("OptionsT", bound=BaseModel)


def coerce_options(options: Union[OptionsT, Dict[str, Any], None], model: Type[OptionsT]) -> OptionsT:
    """Accept a model instance, a plain dict or None and return a model instance"""
    if options is None:
        return model()
    if isinstance(options, model):
        return options
    if isinstance(options, dict):
        return model.model_validate(options)
    raise TypeError(f"Expected {model.__name__}, dict or None, got {type(options).__name__}")
