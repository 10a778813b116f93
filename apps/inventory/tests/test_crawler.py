import threading

import pytest

from inventory_crawler import Crawler, FixtureApiClient, Resource, synthetic_key
from inventory_crawler.errors import RootUnreachableError

from .helpers import SMALL_ORG, small_org_client

WIDE_ORG = [
    {"type": "organization", "data": {"name": "organizations/1", "displayName": "example.com"}},
    {"type": "folder", "parent": "organization/1", "data": {"name": "folders/10", "displayName": "eng"}},
    {"type": "folder", "parent": "folder/10", "data": {"name": "folders/11", "displayName": "platform"}},
    {
        "type": "project",
        "parent": "folder/11",
        "data": {"projectId": "deep", "enabledApis": ["compute.googleapis.com"]},
    },
    {
        "type": "project",
        "parent": "organization/1",
        "data": {"projectId": "top", "enabledApis": ["storage.googleapis.com"]},
    },
    {"type": "bucket", "parent": "project/top", "data": {"id": "b1", "name": "b1"}},
    {"type": "instance", "parent": "project/deep", "data": {"id": "vm1", "name": "vm1"}},
    {"type": "iam_policy", "parent": "organization/1", "data": {"bindings": [{"role": "roles/owner"}]}},
]


def crawl(client, registry, roots=("organizations/1",), **kwargs):
    crawler = Crawler(registry, client, **kwargs)
    return crawler, [r.ref for r in crawler.crawl(roots)]


class TestTraversal:
    def test_small_org(self, registry, small_org):
        crawler, refs = crawl(small_org, registry)
        assert refs == ["project/p1", "image/img1", "image/img2"]
        assert [r.ref for r in crawler.roots] == ["organization/1"]
        assert crawler.stats.discovered == 3
        assert crawler.stats.error_count == 0

    def test_breadth_first_by_level(self, registry):
        _, refs = crawl(FixtureApiClient(resources=WIDE_ORG), registry)
        assert refs[:2] == ["folder/10", "project/top"]
        assert refs[2].startswith("iam_policy/")
        assert refs.index("folder/11") < refs.index("project/deep") < refs.index("instance/vm1")
        assert refs.index("bucket/b1") < refs.index("project/deep")

    def test_parents_are_yielded_before_children(self, registry):
        crawler = Crawler(registry, FixtureApiClient(resources=WIDE_ORG))
        seen = {"organization/1"}
        for resource in crawler.crawl(["organizations/1"]):
            assert resource.parent_ref in seen
            seen.add(resource.ref)

    def test_children_carry_their_parent(self, registry, small_org):
        crawler = Crawler(registry, small_org)
        images = [r for r in crawler.crawl(["organizations/1"]) if r.type == "image"]
        assert {(r.parent_type, r.parent_key) for r in images} == {("project", "p1")}

    def test_skips_types_whose_api_is_not_enabled(self, registry, small_org):
        crawler, _ = crawl(small_org, registry)
        # bucket, service_account and dataset under project/p1
        assert crawler.stats.skipped == 3

    def test_inactive_project_enumerates_nothing_gated(self, registry):
        resources = [
            SMALL_ORG[0],
            {
                "type": "project",
                "parent": "organization/1",
                "data": {
                    "projectId": "p1",
                    "lifecycleState": "DELETE_REQUESTED",
                    "enabledApis": ["compute.googleapis.com"],
                },
            },
            SMALL_ORG[2],
        ]
        _, refs = crawl(FixtureApiClient(resources=resources), registry)
        assert refs == ["project/p1"]

    def test_iam_policy_has_stable_synthetic_key(self, registry):
        _, first = crawl(FixtureApiClient(resources=WIDE_ORG), registry)
        _, second = crawl(FixtureApiClient(resources=WIDE_ORG), registry)
        policies = [ref for ref in first if ref.startswith("iam_policy/")]
        assert policies == [ref for ref in second if ref.startswith("iam_policy/")]
        org = Resource(type="organization", key="1")
        assert policies == [f"iam_policy/{synthetic_key('iam_policy', {}, (), org)}"]

    def test_crawl_is_single_pass(self, registry, small_org):
        crawler = Crawler(registry, small_org)
        list(crawler.crawl(["organizations/1"]))
        with pytest.raises(RuntimeError):
            list(crawler.crawl(["organizations/1"]))


class TestDiscard:
    def test_discarded_resource_is_not_expanded(self, registry, small_org):
        crawler = Crawler(registry, small_org)
        refs = []
        for resource in crawler.crawl(["organizations/1"]):
            refs.append(resource.ref)
            if resource.type == "project":
                crawler.discard(resource)
        assert refs == ["project/p1"]


class TestErrors:
    def test_enumeration_error_is_recorded_and_crawl_continues(self, registry):
        client = small_org_client(
            errors=[{"type": "image", "parent": "project/p1", "message": "permission denied"}]
        )
        crawler, refs = crawl(client, registry)
        assert refs == ["project/p1"]
        assert crawler.stats.error_count == 1
        error = crawler.stats.errors[0]
        assert (error.resource_type, error.parent, error.kind) == ("image", "project/p1", "enumeration")
        assert "permission denied" in error.error

    def test_malformed_payload_is_recorded(self, registry):
        resources = SMALL_ORG + [{"type": "image", "parent": "project/p1", "data": {"name": "no-id"}}]
        crawler, refs = crawl(FixtureApiClient(resources=resources), registry)
        assert refs == ["project/p1", "image/img1", "image/img2"]
        assert [e.kind for e in crawler.stats.errors] == ["payload"]

    def test_unreachable_root(self, registry, small_org):
        crawler = Crawler(registry, small_org)
        with pytest.raises(RootUnreachableError):
            list(crawler.crawl(["organizations/404"]))

    @pytest.mark.parametrize('root', ['galaxies/1', 'organizations'])
    def test_invalid_root(self, registry, small_org, root):
        crawler = Crawler(registry, small_org)
        with pytest.raises(RootUnreachableError, match="Invalid crawl root"):
            list(crawler.crawl([root]))


class TestParallel:
    def test_same_resources_as_inline(self, registry):
        _, inline = crawl(FixtureApiClient(resources=WIDE_ORG), registry)
        _, parallel = crawl(FixtureApiClient(resources=WIDE_ORG), registry, max_workers=4)
        assert sorted(parallel) == sorted(inline)

    def test_parallel_records_enumeration_errors(self, registry):
        client = small_org_client(
            errors=[{"type": "image", "parent": "project/p1", "message": "quota exceeded"}]
        )
        crawler, refs = crawl(client, registry, max_workers=3)
        assert refs == ["project/p1"]
        assert crawler.stats.errors[0].kind == "enumeration"

    def test_in_flight_enumerations_never_exceed_max_workers(self, registry):
        lock = threading.Lock()
        active = 0
        peak = 0

        class CountingClient(FixtureApiClient):
            def enumerate(self, resource_type, parent):
                nonlocal active, peak
                with lock:
                    active += 1
                    peak = max(peak, active)
                try:
                    return iter(list(super().enumerate(resource_type, parent)))
                finally:
                    with lock:
                        active -= 1

        crawl(CountingClient(resources=WIDE_ORG), registry, max_workers=2)
        assert 1 <= peak <= 2


class TestCancel:
    def test_cancel_stops_enqueueing(self, registry):
        crawler = Crawler(registry, FixtureApiClient(resources=WIDE_ORG))
        refs = []
        for resource in crawler.crawl(["organizations/1"]):
            refs.append(resource.ref)
            crawler.cancel()
        assert refs == ["folder/10"]
        assert crawler.stats.cancelled is True

    def test_external_event(self, registry, small_org):
        event = threading.Event()
        event.set()
        crawler = Crawler(registry, small_org, cancel_event=event)
        assert list(crawler.crawl(["organizations/1"])) == []
        assert crawler.cancelled
        assert crawler.stats.cancelled is True


MANY_PROJECTS = (
    [WIDE_ORG[0]]
    + [
        {
            "type": "project",
            "parent": "organization/1",
            "data": {"projectId": f"p{i}", "enabledApis": ["compute.googleapis.com"]},
        }
        for i in range(30)
    ]
    + [
        {"type": "instance", "parent": f"project/p{i}", "data": {"id": f"vm{i}", "name": f"vm{i}"}}
        for i in range(30)
    ]
)


class TestQueueBound:
    def widest(self, registry):
        return max(len(registry.children_of(name)) for name in registry.types)

    def test_pending_work_never_exceeds_the_bound(self, registry):
        bound = self.widest(registry)
        bounded, refs = crawl(FixtureApiClient(resources=MANY_PROJECTS), registry, max_pending=bound)
        unbounded, expected = crawl(FixtureApiClient(resources=MANY_PROJECTS), registry, max_pending=None)

        assert unbounded.peak_pending > bound
        assert 0 < bounded.peak_pending <= bound
        # Deferred parents are expanded in order: same breadth-first output.
        assert refs == expected
        assert bounded.stats.skipped == unbounded.stats.skipped

    def test_bound_holds_with_workers(self, registry):
        bound = self.widest(registry)
        crawler, refs = crawl(
            FixtureApiClient(resources=MANY_PROJECTS), registry, max_workers=3, max_pending=bound
        )
        _, expected = crawl(FixtureApiClient(resources=MANY_PROJECTS), registry)
        assert crawler.peak_pending <= bound
        assert refs == expected

    def test_small_buffers_stream_every_listing(self, registry):
        _, refs = crawl(FixtureApiClient(resources=MANY_PROJECTS), registry, max_workers=2, buffer_size=1)
        assert len(refs) == 60
        assert refs[:30] == [f"project/p{i}" for i in range(30)]

    def test_cancel_with_deferred_parents(self, registry):
        crawler = Crawler(registry, FixtureApiClient(resources=MANY_PROJECTS), max_pending=self.widest(registry))
        refs = []
        for resource in crawler.crawl(["organizations/1"]):
            refs.append(resource.ref)
            if len(refs) == 31:
                crawler.cancel()
        assert len(refs) == 31
        assert crawler.stats.cancelled is True
