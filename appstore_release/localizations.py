"""
Localization reconciliation for release versions.

Desired localizations are diffed against the locales a version already has:
missing locales are created, present ones are patched in place. Entries
requested twice for one locale are merged first. Creates run
concurrently, then updates run concurrently; a failure inside a batch leaves
the entries that already succeeded as they are.
"""

import asyncio
import re
from typing import Any, Dict, List

from .api import AppStoreConnectApi
from .errors import ConflictError
from .models import Localization
from .utils import get_logger

logger = get_logger(__name__)

LOCALIZATION_TYPE = "appStoreVersionLocalizations"
DEFAULT_CREATE_ATTRIBUTES = {"description": "", "keywords": "", "supportUrl": ""}

# The backend refuses whatsNew on a locale that has never been released
_WHATS_NEW_NOT_EDITABLE = re.compile(r"whatsNew.*can ?not be edited", re.IGNORECASE)


def is_whats_new_conflict(error: ConflictError) -> bool:
    return bool(error.errors) and all(_WHATS_NEW_NOT_EDITABLE.search(detail) for detail in error.errors)


def merge_by_locale(localizations: List[Localization]) -> List[Localization]:
    """Collapse entries sharing a locale into one; later attributes override earlier ones"""
    merged: Dict[str, Localization] = {}
    for loc in localizations:
        previous = merged.get(loc.locale)
        if previous is None:
            merged[loc.locale] = loc
            continue
        attributes = {
            **previous.attributes.model_dump(exclude_none=True),
            **loc.attributes.model_dump(exclude_none=True),
        }
        merged[loc.locale] = Localization(locale=loc.locale, attributes=attributes)
    return list(merged.values())


class LocalizationReconciler:
    def __init__(self, api: AppStoreConnectApi) -> None:
        self.api = api

    async def list_localizations(self, version_id: str) -> Dict[str, str]:
        """Map of locale to localization id for a version"""
        records = await self.api.get_all(
            f"/v1/appStoreVersions/{version_id}/appStoreVersionLocalizations",
            params={f"fields[{LOCALIZATION_TYPE}]": "locale"},
            error_message=f"Error fetching localizations for version id: {version_id}",
        )
        return {record["attributes"]["locale"]: record["id"] for record in records}

    async def set_localizations(self, version_id: str, localizations: List[Localization]) -> None:
        localizations = merge_by_locale(localizations)
        existing = await self.list_localizations(version_id)

        missing = [loc for loc in localizations if loc.locale not in existing]
        present = [loc for loc in localizations if loc.locale in existing]
        logger.info(
            f"Reconciling localizations of version {version_id}: "
            f"create {[loc.locale for loc in missing]}, update {[loc.locale for loc in present]}"
        )

        await asyncio.gather(*(self.create_localization(version_id, loc) for loc in missing))
        await asyncio.gather(*(self.update_localization(existing[loc.locale], loc) for loc in present))

    async def create_localization(self, version_id: str, localization: Localization) -> str:
        attributes = {
            **DEFAULT_CREATE_ATTRIBUTES,
            **localization.attributes.to_api(),
            "locale": localization.locale,
        }
        response = await self.api.post(
            f"/v1/{LOCALIZATION_TYPE}",
            body={
                "data": {
                    "type": LOCALIZATION_TYPE,
                    "attributes": attributes,
                    "relationships": {
                        "appStoreVersion": {"data": {"type": "appStoreVersions", "id": version_id}},
                    },
                }
            },
            error_message=f"Error creating localization {localization.locale} for version id: {version_id}",
        )
        return (response.get("data") or {}).get("id", "")

    async def update_localization(self, localization_id: str, localization: Localization) -> None:
        attributes = localization.attributes.to_api()
        try:
            await self._patch(localization_id, localization.locale, attributes)
        except ConflictError as e:
            if "whatsNew" not in attributes or not is_whats_new_conflict(e):
                raise
            attributes = {key: value for key, value in attributes.items() if key != "whatsNew"}
            if not attributes:
                logger.warning(f"whatsNew is not editable yet for {localization.locale}, nothing else to update")
                return
            logger.warning(f"whatsNew is not editable yet for {localization.locale}, updating without it")
            await self._patch(localization_id, localization.locale, attributes)

    async def _patch(self, localization_id: str, locale: str, attributes: Dict[str, Any]) -> None:
        await self.api.patch(
            f"/v1/{LOCALIZATION_TYPE}/{localization_id}",
            body={"data": {"id": localization_id, "type": LOCALIZATION_TYPE, "attributes": attributes}},
            error_message=f"Error updating localization {locale} with id: {localization_id}",
        )
