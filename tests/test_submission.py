#!/usr/bin/env python3
"""
Review Submission Tests
Tests the ordering of the submission workflow and the review detail upsert.
"""

import asyncio
import sys
import unittest
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

sys.path.insert(0, str(Path(__file__).parent.parent))

from appstore_release.client import Client
from appstore_release.config import ClientOptions
from appstore_release.errors import ApiError
from appstore_release.localizations import LocalizationReconciler
from appstore_release.models import (
    CreateVersionOptions,
    EnsureVersionOptions,
    Localization,
    ReleaseType,
    ReviewDetails,
    SubmitForReviewOptions,
    VersionUpdateOptions,
)
from appstore_release.release_client import ReleaseClient
from appstore_release.resolver import ResourceResolver
from tests.fake_backend import FakeBackend, error, listing, resource


class TestSubmitForReviewEndToEnd(unittest.TestCase):
    """Run the full submission against the fake backend."""

    def setUp(self):
        self.backend = FakeBackend()
        self.created_versions = []

        def list_versions(request):
            if self.created_versions:
                return listing(resource("appStoreVersions", "v-1", versionString="1.2.0"))
            return listing()

        def create_version(request):
            self.created_versions.append(request.body)
            return 201, {"data": resource("appStoreVersions", "v-1")}

        self.backend.add("GET", "/v1/apps/42/appStoreVersions", list_versions)
        self.backend.add("POST", "/v1/appStoreVersions", create_version)
        self.backend.add("PATCH", "/v1/appStoreVersions/v-1", (200, {"data": resource("appStoreVersions", "v-1")}))
        self.backend.add("PATCH", "/v1/appStoreVersions/v-1/relationships/build", (204, None))
        self.backend.add("GET", "/v1/appStoreVersions/v-1/appStoreVersionLocalizations", listing())
        self.backend.add("POST", "/v1/appStoreVersionLocalizations", (201, {"data": resource("appStoreVersionLocalizations", "loc-1")}))
        self.backend.add("POST", "/v1/appStoreVersionSubmissions", (201, {"data": resource("appStoreVersionSubmissions", "s-1")}))

        options = ClientOptions(issuer_id="issuer", api_key="KEY123", private_key="unused", base_url="https://api.test")
        self.client = Client.create(options, transport=self.backend.transport)

    def test_new_version_submitted_in_order(self):
        print("\n🧪 Testing End-To-End Submission...")

        with patch("appstore_release.auth.jwt.encode", return_value="signed-token"):
            asyncio.run(self.client.submit_for_review(42, "1.2.0", "IOS", {
                "auto_create_version": True,
                "autorelease_on_approval": True,
                "release_notes": "Bug fixes",
                "auto_attach_build_id": "b-1",
            }))

        self.assertEqual(len(self.created_versions), 1)
        self.assertEqual(self.created_versions[0]["data"]["attributes"]["releaseType"], "AFTER_APPROVAL")

        attach = self.backend.calls("PATCH", "/v1/appStoreVersions/v-1/relationships/build")
        self.assertEqual(len(attach), 1)
        self.assertEqual(attach[0].body, {"data": {"id": "b-1", "type": "builds"}})

        loc_creates = self.backend.calls("POST", "/v1/appStoreVersionLocalizations")
        self.assertEqual(len(loc_creates), 1)
        loc_attributes = loc_creates[0].body["data"]["attributes"]
        self.assertEqual(loc_attributes["locale"], "en-US")
        self.assertEqual(loc_attributes["whatsNew"], "Bug fixes")

        submissions = self.backend.calls("POST", "/v1/appStoreVersionSubmissions")
        self.assertEqual(len(submissions), 1)
        self.assertEqual(
            submissions[0].body["data"]["relationships"]["appStoreVersion"]["data"],
            {"id": "v-1", "type": "appStoreVersions"},
        )

        order = [(r.method, r.path) for r in self.backend.requests if r.method != "GET"]
        positions = [
            order.index(("POST", "/v1/appStoreVersions")),
            order.index(("PATCH", "/v1/appStoreVersions/v-1/relationships/build")),
            order.index(("POST", "/v1/appStoreVersionLocalizations")),
            order.index(("POST", "/v1/appStoreVersionSubmissions")),
        ]
        self.assertEqual(positions, sorted(positions))
        self.assertEqual(order[-1], ("POST", "/v1/appStoreVersionSubmissions"))

        for request in self.backend.requests:
            self.assertEqual(request.headers["Authorization"], "Bearer signed-token")

        print("✅ Create, attach, localize and submit issued in order")


class TestSubmitForReviewByVersionId(unittest.TestCase):
    """Test step ordering with the collaborators mocked."""

    def setUp(self):
        self.api = MagicMock()
        self.api.post = AsyncMock(return_value={})
        self.localizations = MagicMock(spec=LocalizationReconciler)
        self.localizations.set_localizations = AsyncMock()
        self.client = ReleaseClient(self.api, MagicMock(spec=ResourceResolver), self.localizations)

        self.calls = []
        for name in (
            "update_version_by_version_id",
            "attach_build_id_to_version_by_version_id",
            "set_version_review_detail_attributes_by_version_id",
        ):
            setattr(self.client, name, AsyncMock(side_effect=self._record(name)))
        self.localizations.set_localizations.side_effect = self._record("set_localizations")
        self.api.post.side_effect = self._record("post", {})

    def _record(self, name, result=None):
        async def record(*args, **kwargs):
            self.calls.append((name, args))
            return result
        return record

    def test_all_steps_in_order(self):
        print("\n🧪 Testing Submission Step Order...")

        asyncio.run(self.client.submit_for_review_by_version_id("v-1", SubmitForReviewOptions(
            autorelease_on_approval=False,
            auto_attach_build_id="b-1",
            localizations=[Localization(locale="de-DE", attributes={"description": "Beschreibung"})],
            release_notes=[{"lang": "en-US", "text": "Bug fixes"}],
            review_detail_attributes=ReviewDetails(contact_email="qa@example.com"),
            version_attributes=VersionUpdateOptions(copyright="2024 Example"),
        )))

        names = [name for name, _ in self.calls]
        self.assertEqual(names, [
            "update_version_by_version_id",
            "attach_build_id_to_version_by_version_id",
            "set_localizations",
            "set_localizations",
            "set_version_review_detail_attributes_by_version_id",
            "update_version_by_version_id",
            "post",
        ])

        release_type_update = self.calls[0][1][1]
        self.assertEqual(release_type_update.release_type, ReleaseType.MANUAL)
        release_notes = self.calls[3][1][1]
        self.assertEqual(release_notes[0].attributes.whats_new, "Bug fixes")
        self.assertEqual(self.calls[-1][1][0], "/v1/appStoreVersionSubmissions")

        print("✅ Every edit lands before the submission record")

    def test_only_submission_without_options(self):
        asyncio.run(self.client.submit_for_review_by_version_id("v-1"))

        self.assertEqual([name for name, _ in self.calls], ["post"])

    def test_failure_aborts_remaining_steps(self):
        self.client.attach_build_id_to_version_by_version_id.side_effect = ApiError("attach failed", 422)

        with self.assertRaises(ApiError):
            asyncio.run(self.client.submit_for_review_by_version_id("v-1", {
                "auto_attach_build_id": "b-1",
                "release_notes": "Bug fixes",
            }))

        self.assertEqual(self.calls, [])
        self.localizations.set_localizations.assert_not_called()
        self.api.post.assert_not_called()


class TestSubmitForReview(unittest.TestCase):

    def test_auto_create_forces_rename(self):
        client = ReleaseClient(MagicMock(), MagicMock(spec=ResourceResolver), MagicMock(spec=LocalizationReconciler))
        client.ensure_version_exists = AsyncMock()
        client.get_version_id = AsyncMock(return_value="v-7")
        client.submit_for_review_by_version_id = AsyncMock()

        asyncio.run(client.submit_for_review(42, "1.3.0", "IOS", {"auto_create_version": True, "autorelease_on_approval": True}))

        args = client.ensure_version_exists.call_args.args
        self.assertEqual(args[:3], (42, "1.3.0", "IOS"))
        self.assertEqual(args[3], EnsureVersionOptions(
            update_version_string_if_unreleased_version_exists=True,
            create_options=CreateVersionOptions(auto_release=True),
        ))
        client.submit_for_review_by_version_id.assert_awaited_once()
        self.assertEqual(client.submit_for_review_by_version_id.call_args.args[0], "v-7")

    def test_without_auto_create_only_resolves(self):
        client = ReleaseClient(MagicMock(), MagicMock(spec=ResourceResolver), MagicMock(spec=LocalizationReconciler))
        client.ensure_version_exists = AsyncMock()
        client.get_version_id = AsyncMock(return_value="v-7")
        client.submit_for_review_by_version_id = AsyncMock()

        asyncio.run(client.submit_for_review(42, "1.3.0", "IOS"))

        client.ensure_version_exists.assert_not_called()
        client.get_version_id.assert_awaited_once_with(42, "1.3.0", "IOS")


class TestReviewDetails(unittest.TestCase):
    """Test review detail create-or-update."""

    def setUp(self):
        self.backend = FakeBackend()
        api = self.backend.api()
        self.client = ReleaseClient(api, ResourceResolver(api), LocalizationReconciler(api))

    def test_missing_review_detail_is_created(self):
        self.backend.add("GET", "/v1/appStoreVersions/v-1/appStoreReviewDetail", error(404, "not found"))
        self.backend.add("POST", "/v1/appStoreReviewDetails", (201, {"data": resource("appStoreReviewDetails", "rd-1")}))

        asyncio.run(self.client.set_version_review_detail_attributes_by_version_id("v-1", {
            "contact_email": "qa@example.com",
            "demo_account_required": False,
        }))

        [create] = self.backend.calls("POST", "/v1/appStoreReviewDetails")
        self.assertEqual(create.body["data"]["attributes"], {"contactEmail": "qa@example.com", "demoAccountRequired": False})
        self.assertEqual(create.body["data"]["relationships"]["appStoreVersion"]["data"]["id"], "v-1")
        self.assertEqual(self.backend.calls("PATCH"), [])

    def test_existing_review_detail_is_updated(self):
        self.backend.add("GET", "/v1/appStoreVersions/v-1/appStoreReviewDetail", (200, {"data": resource("appStoreReviewDetails", "rd-1")}))
        self.backend.add("PATCH", "/v1/appStoreReviewDetails/rd-1", (200, {"data": resource("appStoreReviewDetails", "rd-1")}))

        asyncio.run(self.client.set_version_review_detail_attributes_by_version_id("v-1", ReviewDetails(notes="Use the demo account")))

        [update] = self.backend.calls("PATCH", "/v1/appStoreReviewDetails/rd-1")
        self.assertEqual(update.body["data"], {"id": "rd-1", "type": "appStoreReviewDetails", "attributes": {"notes": "Use the demo account"}})
        self.assertEqual(self.backend.calls("POST"), [])

    def test_review_detail_lookup_errors_propagate(self):
        self.backend.add("GET", "/v1/appStoreVersions/v-1/appStoreReviewDetail", error(500, "boom"))

        with self.assertRaises(ApiError) as ctx:
            asyncio.run(self.client.set_version_review_detail_attributes_by_version_id("v-1", {"notes": "x"}))

        self.assertEqual(ctx.exception.status_code, 500)


class TestVersionEdits(unittest.TestCase):

    def test_attach_build_by_version_string(self):
        backend = FakeBackend()
        backend.add("GET", "/v1/apps/42/appStoreVersions", listing(resource("appStoreVersions", "v-1")))
        backend.add("PATCH", "/v1/appStoreVersions/v-1/relationships/build", (204, None))
        api = backend.api()
        client = ReleaseClient(api, ResourceResolver(api), LocalizationReconciler(api))

        asyncio.run(client.attach_build_id_to_version(42, "1.2.0", "IOS", "b-3"))

        [attach] = backend.calls("PATCH")
        self.assertEqual(attach.body["data"]["id"], "b-3")

    def test_update_version_attributes(self):
        backend = FakeBackend()
        backend.add("PATCH", "/v1/appStoreVersions/v-1", (200, {"data": resource("appStoreVersions", "v-1")}))
        api = backend.api()
        client = ReleaseClient(api, ResourceResolver(api), LocalizationReconciler(api))

        asyncio.run(client.update_version_by_version_id("v-1", {"release_type": "SCHEDULED", "earliest_release_date": "2024-06-01T00:00:00Z"}))

        attributes = backend.requests[0].body["data"]["attributes"]
        self.assertEqual(attributes["releaseType"], "SCHEDULED")
        self.assertTrue(attributes["earliestReleaseDate"].startswith("2024-06-01T00:00:00"))


if __name__ == '__main__':
    unittest.main()
