"""
Unit tests for pricing module (totals, pre-upload validation, payload)
"""
import pytest
from decimal import Decimal

from gearsync.pricing import repair_sub_total, validate_submission, build_submission
from gearsync.models import RepairContext, RepairFinding, RepairStatus, SubmissionValidationError


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def context():
    return RepairContext(
        lead_id=11,
        firestation_id=3,
        gear_id=501,
        roster_id=77,
        franchise_id=2,
        remarks="Outer shell torn at left knee",
        repair_tag="RT-0042",
    )


@pytest.fixture
def findings():
    return [
        RepairFinding(
            finding_id=1,
            name="Zipper Replacement",
            quantity=1,
            unit_cost="45.00",
            images=["https://cdn.example.com/z1.jpg"],
        ),
        RepairFinding(
            finding_id=2,
            name="Knee Patch",
            quantity=2,
            unit_cost="12.5",
            images=["https://cdn.example.com/z1.jpg", "https://cdn.example.com/k1.jpg"],
        ),
    ]


# ============================================================================
# TOTAL TESTS
# ============================================================================

class TestSubTotal:

    def test_sums_cost_times_quantity(self, findings):
        assert repair_sub_total(findings) == Decimal("70.00")

    def test_empty(self):
        assert repair_sub_total([]) == Decimal("0.00")

    def test_rounds_to_cents(self):
        findings = [RepairFinding(finding_id=1, quantity=3, unit_cost="0.335")]
        assert repair_sub_total(findings) == Decimal("1.01")


# ============================================================================
# VALIDATION TESTS
# ============================================================================

class TestValidateSubmission:

    def test_valid(self, context, findings):
        validate_submission(context, findings)

    def test_zero_total(self, context):
        findings = [RepairFinding(finding_id=1, quantity=1, unit_cost="0")]
        with pytest.raises(SubmissionValidationError) as exc_info:
            validate_submission(context, findings)
        assert "zero" in str(exc_info.value)

    def test_no_findings(self, context):
        with pytest.raises(SubmissionValidationError):
            validate_submission(context, [])

    @pytest.mark.parametrize("field", ["lead_id", "firestation_id", "gear_id", "franchise_id"])
    def test_missing_required_field(self, context, findings, field):
        broken = context.model_copy(update={field: None})
        with pytest.raises(SubmissionValidationError) as exc_info:
            validate_submission(broken, findings)
        assert field in str(exc_info.value)

    def test_roster_optional(self, context, findings):
        validate_submission(context.model_copy(update={"roster_id": None}), findings)


# ============================================================================
# PAYLOAD TESTS
# ============================================================================

class TestBuildSubmission:

    def test_payload_fields(self, context, findings):
        submission = build_submission(context, findings)
        assert submission.lead_id == 11
        assert submission.gear_id == 501
        assert submission.repair_status == RepairStatus.COMPLETED
        assert submission.repair_sub_total == 70.0
        assert submission.repair_qty == 3
        assert submission.repair_tag == "RT-0042"

    def test_items_carry_images(self, context, findings):
        submission = build_submission(context, findings)
        assert [item.images for item in submission.repair_items] == [
            ["https://cdn.example.com/z1.jpg"],
            ["https://cdn.example.com/z1.jpg", "https://cdn.example.com/k1.jpg"],
        ]
        assert submission.repair_items[1].repair_cost == "12.50"

    def test_flat_image_list_deduplicated(self, context, findings):
        submission = build_submission(context, findings)
        assert submission.repair_image_url == ["https://cdn.example.com/z1.jpg", "https://cdn.example.com/k1.jpg"]

    def test_json_serialization(self, context, findings):
        body = build_submission(context, findings).model_dump(mode="json")
        assert body["repair_status"] == "completed"
        assert body["repair_items"][0]["repair_finding_id"] == 1
