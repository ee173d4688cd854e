"""
appstore-release

Asynchronous client for the App Store Connect release workflow: build
processing, release versions, review submission, TestFlight distribution and sales reports.
"""

from .client import Client
from .config import ClientOptions, load_client_options
from .errors import (
    AmbiguousResultError,
    ApiError,
    AppStoreConnectError,
    BuildProcessingCancelledError,
    BuildProcessingError,
    ConflictError,
    NotFoundError,
)
from .models import (
    AddBuildToExternalGroupOptions,
    AppStoreState,
    Build,
    BuildProcessingState,
    BuildStatus,
    BuildUpdateOptions,
    CreateGroupOptions,
    CreateVersionOptions,
    EnsureVersionOptions,
    Localization,
    LocalizationAttributes,
    NotifyBetaTestersOptions,
    PlatformType,
    ReleaseNotes,
    ReleaseType,
    ReviewDetails,
    SalesReportFrequency,
    SubmitForReviewOptions,
    VersionUpdateOptions,
    WaitForBuildProcessingOptions,
)
from .processing import BuildProcessingMonitor
from .sales import SalesClient

__version__ = "1.0.0"

__all__ = [
    "Client",
    "ClientOptions",
    "load_client_options",
    "BuildProcessingMonitor",
    "SalesClient",
    "AppStoreConnectError",
    "ApiError",
    "ConflictError",
    "NotFoundError",
    "AmbiguousResultError",
    "BuildProcessingError",
    "BuildProcessingCancelledError",
    "AddBuildToExternalGroupOptions",
    "AppStoreState",
    "Build",
    "BuildProcessingState",
    "BuildStatus",
    "BuildUpdateOptions",
    "CreateGroupOptions",
    "CreateVersionOptions",
    "EnsureVersionOptions",
    "Localization",
    "LocalizationAttributes",
    "NotifyBetaTestersOptions",
    "PlatformType",
    "ReleaseNotes",
    "ReleaseType",
    "ReviewDetails",
    "SalesReportFrequency",
    "SubmitForReviewOptions",
    "VersionUpdateOptions",
    "WaitForBuildProcessingOptions",
]
