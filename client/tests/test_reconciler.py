"""
Unit tests for reconciler module
"""
import pytest
from decimal import Decimal

from gearsync.reconciler import reconcile, reconcile_images, lost_images, all_image_urls
from gearsync.locators import is_local, is_remote
from gearsync.models import ReconciliationMap, RepairFinding


# ============================================================================
# FIXTURES
# ============================================================================

def make_finding(finding_id, images, quantity=1, cost="25.00"):
    return RepairFinding(
        finding_id=finding_id,
        name=f"Finding {finding_id}",
        quantity=quantity,
        unit_cost=Decimal(cost),
        images=images,
    )


@pytest.fixture
def reconciliation():
    return ReconciliationMap(entries={
        "file:///data/img_a.jpg": "https://cdn.example.com/a.jpg",
        "file:///data/img_c.jpg": "https://cdn.example.com/c.jpg",
    })


# ============================================================================
# LOCATOR TESTS
# ============================================================================

class TestLocators:

    @pytest.mark.parametrize("locator", [
        "https://cdn.example.com/a.jpg",
        "http://cdn.example.com/a.jpg",
        "HTTPS://CDN.EXAMPLE.COM/A.JPG",
    ])
    def test_remote(self, locator):
        assert is_remote(locator)
        assert not is_local(locator)

    @pytest.mark.parametrize("locator", [
        "file:///data/user/0/cache/img.jpg",
        "content://media/external/images/42",
        "ph://ABC-123",
        "/var/mobile/tmp/photo.png",
    ])
    def test_local(self, locator):
        assert is_local(locator)
        assert not is_remote(locator)

    def test_empty_is_neither(self):
        assert not is_local("")
        assert not is_remote("")


# ============================================================================
# RECONCILE TESTS
# ============================================================================

class TestReconcile:

    def test_order_preserved_with_failed_middle(self, reconciliation):
        finding = make_finding(1, ["file:///data/img_a.jpg", "file:///data/img_b.jpg", "file:///data/img_c.jpg"])
        result = reconcile([finding], reconciliation)
        assert result[0].images == ("https://cdn.example.com/a.jpg", "https://cdn.example.com/c.jpg")

    def test_duplicate_local_collapses(self):
        mapping = ReconciliationMap(entries={"file:///a.jpg": "https://cdn.example.com/x.jpg"})
        finding = make_finding(1, ["file:///a.jpg", "file:///a.jpg"])
        result = reconcile([finding], mapping)
        assert result[0].images == ("https://cdn.example.com/x.jpg",)

    def test_local_and_remote_resolving_to_same_url(self):
        mapping = ReconciliationMap(entries={"file:///a.jpg": "https://cdn.example.com/x.jpg"})
        finding = make_finding(1, ["https://cdn.example.com/x.jpg", "file:///a.jpg"])
        result = reconcile([finding], mapping)
        assert result[0].images == ("https://cdn.example.com/x.jpg",)

    def test_remote_kept_without_map_entry(self):
        finding = make_finding(1, ["https://cdn.example.com/old.jpg"])
        result = reconcile([finding], ReconciliationMap())
        assert result[0].images == ("https://cdn.example.com/old.jpg",)

    def test_dedup_is_per_finding(self, reconciliation):
        findings = [
            make_finding(1, ["file:///data/img_a.jpg"]),
            make_finding(2, ["file:///data/img_a.jpg", "file:///data/img_c.jpg"]),
        ]
        result = reconcile(findings, reconciliation)
        assert result[0].images == ("https://cdn.example.com/a.jpg",)
        assert result[1].images == ("https://cdn.example.com/a.jpg", "https://cdn.example.com/c.jpg")

    def test_empty_map_leaks_nothing(self):
        findings = [
            make_finding(1, ["file:///a.jpg", "content://media/1", "https://cdn.example.com/keep.jpg"]),
            make_finding(2, ["ph://XYZ"]),
        ]
        result = reconcile(findings, ReconciliationMap())
        for finding in result:
            assert not any(is_local(loc) for loc in finding.images)
        assert result[0].images == ("https://cdn.example.com/keep.jpg",)
        assert result[1].images == ()

    def test_bad_map_value_filtered(self):
        """A map entry pointing at another local path must not reach the payload."""
        mapping = ReconciliationMap(entries={"file:///a.jpg": "file:///b.jpg"})
        result = reconcile([make_finding(1, ["file:///a.jpg"])], mapping)
        assert result[0].images == ()

    def test_inputs_not_mutated(self, reconciliation):
        finding = make_finding(1, ["file:///data/img_a.jpg"])
        reconcile([finding], reconciliation)
        assert finding.images == ("file:///data/img_a.jpg",)

    def test_other_fields_untouched(self, reconciliation):
        finding = make_finding(7, ["file:///data/img_a.jpg"], quantity=3, cost="12.50")
        result = reconcile([finding], reconciliation)[0]
        assert result.finding_id == 7
        assert result.quantity == 3
        assert result.unit_cost == Decimal("12.50")

    def test_deterministic(self, reconciliation):
        findings = [
            make_finding(1, ["file:///data/img_c.jpg", "file:///data/img_a.jpg"]),
            make_finding(2, ["https://cdn.example.com/z.jpg", "file:///data/img_b.jpg"]),
        ]
        assert reconcile(findings, reconciliation) == reconcile(findings, reconciliation)

    def test_reconcile_images_empty(self, reconciliation):
        assert reconcile_images([], reconciliation) == ()


# ============================================================================
# LOST IMAGES TESTS
# ============================================================================

class TestLostImages:

    def test_reports_unresolved_per_finding(self, reconciliation):
        findings = [
            make_finding(1, ["file:///data/img_a.jpg"]),
            make_finding(2, ["file:///data/img_b.jpg", "file:///data/img_b.jpg", "file:///data/img_c.jpg"]),
        ]
        assert lost_images(findings, reconciliation) == {2: ["file:///data/img_b.jpg"]}

    def test_nothing_lost(self, reconciliation):
        findings = [make_finding(1, ["https://cdn.example.com/old.jpg", "file:///data/img_a.jpg"])]
        assert lost_images(findings, reconciliation) == {}


class TestAllImageUrls:

    def test_global_dedup_first_seen_order(self):
        findings = [
            make_finding(1, ["https://x/1.jpg", "https://x/2.jpg"]),
            make_finding(2, ["https://x/2.jpg", "https://x/3.jpg"]),
        ]
        assert all_image_urls(findings) == ["https://x/1.jpg", "https://x/2.jpg", "https://x/3.jpg"]
