"""
Policy configuration for RiskVanguard.

The thresholds here are domain-expert constants. They are tunable policy and
can be overridden through ``RISKVANGUARD_*`` environment variables.
"""

import logging
import os
from dataclasses import dataclass


@dataclass
class PolicyConfig:
    """Scoring bands, lane thresholds and domain minimums."""

    # overall score below each bound maps to critical / high / medium
    critical_below: float = 40.0
    high_below: float = 60.0
    medium_below: float = 80.0

    lane_pass_score: float = 80.0
    lane_warning_score: float = 60.0

    minimum_royalty_rate: float = 12.5

    log_level: str = "info"

    def __post_init__(self):
        if not self.critical_below <= self.high_below <= self.medium_below:
            raise ValueError(
                "Risk bands must be ordered: critical_below <= high_below <= medium_below"
            )
        if self.lane_warning_score > self.lane_pass_score:
            raise ValueError("lane_warning_score cannot exceed lane_pass_score")

    @classmethod
    def from_env(cls) -> "PolicyConfig":
        """Create configuration from environment variables."""
        return cls(
            critical_below=float(os.environ.get("RISKVANGUARD_CRITICAL_BELOW", "40")),
            high_below=float(os.environ.get("RISKVANGUARD_HIGH_BELOW", "60")),
            medium_below=float(os.environ.get("RISKVANGUARD_MEDIUM_BELOW", "80")),
            lane_pass_score=float(os.environ.get("RISKVANGUARD_LANE_PASS", "80")),
            lane_warning_score=float(os.environ.get("RISKVANGUARD_LANE_WARNING", "60")),
            minimum_royalty_rate=float(
                os.environ.get("RISKVANGUARD_MINIMUM_ROYALTY_RATE", "12.5")
            ),
            log_level=os.environ.get("RISKVANGUARD_LOG_LEVEL", "info"),
        )


def configure_logging(level: str = "info") -> None:
    """Configure the ``riskvanguard`` logger hierarchy for CLI and server use."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
