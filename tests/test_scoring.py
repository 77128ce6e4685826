"""Tests for the vanguard lanes and the aggregator."""

from datetime import datetime

import pytest

from riskvanguard.config import PolicyConfig
from riskvanguard.models import (
    ComplianceResult,
    DomainInput,
    DomainOutput,
    LaneStatus,
    Risk,
    RiskLevel,
    Severity,
    VanguardResult,
)
from riskvanguard.scoring import (
    AccuracyEngine,
    Aggregator,
    IntegrityAuditor,
    SecuritySentinel,
    VanguardScorer,
    parse_date,
)

CLEAN_METADATA = {"source": "county-records", "hash": "a" * 64}


def make_output(
    key_terms=None, compliance=None, risks=(), validity=True, agent_id="energy-domain-agent"
):
    return DomainOutput(
        agent_id=agent_id,
        document_type="lease",
        document_validity=validity,
        key_terms=key_terms or {},
        compliance=compliance or ComplianceResult.for_levels(("federal", "state")),
        risks=tuple(risks),
    )


def lane(score, status=LaneStatus.PASSED):
    return VanguardResult(agent_name="lane", status=status, score=score)


class TestAggregator:
    """Tests for score aggregation and risk banding."""

    def test_mean_of_lanes(self):
        assessment = Aggregator().aggregate(lane(90), lane(85), lane(80))
        assert assessment.overall_score == 85.0
        assert assessment.risk_level == RiskLevel.LOW

    def test_rounded_to_two_places(self):
        assessment = Aggregator().aggregate(lane(100), lane(100), lane(90))
        assert assessment.overall_score == 96.67

    def test_failed_lane_raises_level_to_high(self):
        assessment = Aggregator().aggregate(
            lane(100), lane(100), lane(50, LaneStatus.FAILED)
        )
        assert assessment.overall_score == 83.33
        assert assessment.risk_level == RiskLevel.HIGH

    def test_failed_lane_does_not_lower_critical(self):
        assessment = Aggregator().aggregate(
            lane(20, LaneStatus.FAILED), lane(30, LaneStatus.FAILED), lane(40, LaneStatus.FAILED)
        )
        assert assessment.risk_level == RiskLevel.CRITICAL

    @pytest.mark.parametrize(
        "score,expected",
        [
            (39.99, RiskLevel.CRITICAL),
            (40, RiskLevel.HIGH),
            (59.99, RiskLevel.HIGH),
            (60, RiskLevel.MEDIUM),
            (79.99, RiskLevel.MEDIUM),
            (80, RiskLevel.LOW),
        ],
    )
    def test_bands(self, score, expected):
        assert Aggregator().risk_level_for(score) == expected

    def test_bands_follow_policy(self):
        aggregator = Aggregator(PolicyConfig(critical_below=50, high_below=70, medium_below=90))
        assert aggregator.risk_level_for(85) == RiskLevel.MEDIUM


class TestSecuritySentinel:
    """Tests for the security lane."""

    @pytest.mark.asyncio
    async def test_clean_document_passes(self):
        document = DomainInput("lease", "Lessor: Jane Rancher", metadata=CLEAN_METADATA)
        result = await SecuritySentinel().analyze(make_output(), document)
        assert result.status == LaneStatus.PASSED
        assert result.score == 100.0
        assert result.findings == []

    @pytest.mark.asyncio
    async def test_exposed_credentials_fail_the_lane(self):
        document = DomainInput(
            "lease", "Access portal with password: hunter2", metadata=CLEAN_METADATA
        )
        result = await SecuritySentinel().analyze(make_output(), document)
        assert result.status == LaneStatus.FAILED
        assert result.metadata["threats_found"] == 1
        assert any("Exposed Credentials" in f for f in result.findings)

    @pytest.mark.asyncio
    async def test_vertical_threat(self):
        document = DomainInput(
            "claim", "Adjuster notes possible fraud in the estimate", metadata=CLEAN_METADATA
        )
        result = await SecuritySentinel().analyze(
            make_output(agent_id="insurance-domain-agent"), document
        )
        assert any("Insurance Fraud Indicator" in f for f in result.findings)

    @pytest.mark.asyncio
    async def test_missing_metadata_and_tamper_markers(self):
        document = DomainInput("lease", "Lessor: [REDACTED]\nRoyalty: [MODIFIED]")
        result = await SecuritySentinel().analyze(make_output(), document)
        assert "No document metadata provided" in result.findings
        assert "Line 1: [REDACTED] marker found" in result.findings
        assert "Line 2: [MODIFIED] marker found" in result.findings
        assert "Request an unredacted copy of the document" in result.recommendations

    @pytest.mark.asyncio
    async def test_none_metadata_counts_as_missing(self):
        document = DomainInput("lease", "Lessor: Jane Rancher", metadata=None, context=None)
        result = await SecuritySentinel().analyze(make_output(), document)
        assert "No document metadata provided" in result.findings

    @pytest.mark.asyncio
    async def test_without_document_uses_key_terms(self):
        output = make_output(key_terms={"note": "secret: abc123"})
        result = await SecuritySentinel().analyze(output)
        assert result.status == LaneStatus.FAILED


class TestIntegrityAuditor:
    """Tests for the integrity lane."""

    @pytest.mark.asyncio
    async def test_compliant_output_passes(self):
        result = await IntegrityAuditor().analyze(make_output())
        assert result.status == LaneStatus.PASSED
        assert result.score == 100.0

    @pytest.mark.asyncio
    async def test_compliance_failures_lower_score(self):
        compliance = ComplianceResult.for_levels(("federal", "state"))
        compliance.fail("federal", "Missing environmental protection clause")
        compliance.fail("state", "Missing Texas Railroad Commission compliance reference")
        risks = [Risk("regulatory", Severity.HIGH, "Document has regulatory compliance issues")]

        result = await IntegrityAuditor().analyze(make_output(compliance=compliance, risks=risks))

        assert result.status == LaneStatus.WARNING
        assert "Compliance level 'federal' failed" in result.findings
        assert result.metadata["failed_levels"] == ["federal", "state"]
        assert result.recommendations[0] == "Resolve compliance failures at: federal, state"


class TestAccuracyEngine:
    """Tests for the accuracy lane."""

    @pytest.mark.asyncio
    async def test_expiration_before_effective_is_penalised(self):
        output = make_output(
            key_terms={"effective_date": "2024-05-01", "expiration_date": "2024-01-01"}
        )
        result = await AccuracyEngine().analyze(output)
        assert "Expiration date does not follow effective date" in result.findings
        assert result.metadata["components"]["dates"] == 70
        assert result.score == 91.0

    @pytest.mark.asyncio
    async def test_offset_and_naive_dates_compare(self):
        output = make_output(
            key_terms={
                "effective_date": "2024-01-01T00:00:00+00:00",
                "expiration_date": "2025-01-01",
            }
        )
        result = await AccuracyEngine().analyze(output)
        assert result.metadata["components"]["dates"] == 100
        assert result.findings == []

    @pytest.mark.asyncio
    async def test_offset_expiration_before_naive_effective(self):
        output = make_output(
            key_terms={
                "effective_date": "2024-06-01",
                "expiration_date": "2024-06-01T01:00:00+02:00",
            }
        )
        result = await AccuracyEngine().analyze(output)
        assert "Expiration date does not follow effective date" in result.findings

    @pytest.mark.asyncio
    async def test_unrecognised_date(self):
        output = make_output(key_terms={"effective_date": "sometime soon"})
        result = await AccuracyEngine().analyze(output)
        assert result.metadata["components"]["dates"] == 90

    @pytest.mark.asyncio
    async def test_implausible_rate(self):
        output = make_output(key_terms={"royalty_rate": "250"})
        result = await AccuracyEngine().analyze(output)
        assert "Implausible rate for royalty_rate: 250" in result.findings

    @pytest.mark.asyncio
    async def test_half_the_table_is_full_coverage(self):
        engine = AccuracyEngine(expected_terms={"energy-domain-agent": 4})
        full = await engine.analyze(make_output(key_terms={"lessor": "A", "lessee": "B"}))
        partial = await engine.analyze(make_output(key_terms={"lessor": "A"}))
        assert full.metadata["components"]["coverage"] == 100.0
        assert partial.metadata["components"]["coverage"] == 50.0


class TestVanguardScorer:
    """Tests for the concurrent scorer."""

    @pytest.mark.asyncio
    async def test_evaluate_combines_three_lanes(self):
        document = DomainInput("lease", "Lessor: Jane Rancher", metadata=CLEAN_METADATA)
        assessment = await VanguardScorer().evaluate(make_output(), document)

        scores = [r.score for r in assessment.lanes]
        assert assessment.overall_score == round(sum(scores) / 3, 2)
        assert set(assessment.lane_results()) == {
            "security_sentinel",
            "integrity_auditor",
            "accuracy_engine",
        }
        assert assessment.to_dict()["risk_level"] == assessment.risk_level.value


class TestParseDate:
    """Tests for parse_date."""

    def test_formats(self):
        assert parse_date("2024-01-15") == datetime(2024, 1, 15)
        assert parse_date("January 15, 2024") == datetime(2024, 1, 15)
        assert parse_date("01/15/2024") == datetime(2024, 1, 15)
        assert parse_date("not a date") is None

    def test_offset_is_converted_to_naive_utc(self):
        assert parse_date("2024-01-01T12:00:00+02:00") == datetime(2024, 1, 1, 10, 0)
        assert parse_date("2024-01-01T12:00:00") == datetime(2024, 1, 1, 12, 0)
