"""
Base interfaces for the anomaly detectors.

This module defines the detector configuration and the abstract base class
shared by all detectors. Detectors are pure: they read an evidence snapshot
and return candidate flags without touching the store.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

from fieldwatch.config import get_section
from fieldwatch.detection.models import AnomalyFlag, EvidenceSnapshot, FlagType
from fieldwatch.utils.config import ComponentConfig

logger = logging.getLogger(__name__)

T = TypeVar('T')


@dataclass
class DetectionConfig(ComponentConfig):
    """Thresholds and run settings for all detectors."""

    window_days: int = 7
    parallel: bool = False
    max_workers: int = 4

    # GPS spoof
    gps_spoof_threshold_meters: float = 500.0
    gps_spoof_high_severity_meters: float = 1000.0
    gps_spoof_confidence_base: float = 0.5
    gps_spoof_confidence_divisor_meters: float = 2000.0
    gps_spoof_confidence_cap: float = 0.9

    # Impossible travel
    max_travel_speed_kmh: float = 60.0
    travel_flag_ratio: float = 0.5
    travel_high_severity_ratio: float = 0.25
    travel_min_distance_meters: float = 2000.0
    travel_confidence: float = 0.75

    # Time anomaly
    default_expected_minutes: float = 60.0
    default_bedrooms: int = 2
    default_bathrooms: int = 1
    minutes_per_bedroom: float = 15.0
    minutes_per_bathroom: float = 20.0
    time_flag_ratio: float = 0.3
    time_high_severity_ratio: float = 0.15
    time_max_actual_minutes: float = 20.0
    time_confidence: float = 0.7

    # Work evidence
    work_completion_ratio: float = 0.5
    work_confidence: float = 0.6

    @classmethod
    def from_settings(cls, overrides: Optional[Dict[str, Any]] = None) -> 'DetectionConfig':
        """Build from the ``detection`` config section plus optional overrides."""
        settings = dict(get_section('detection'))
        settings.update(overrides or {})
        return cls.from_dict(settings)


class BaseDetector(ABC):
    """Base class for all anomaly detectors."""

    flag_type: FlagType

    def __init__(self, config: Optional[DetectionConfig] = None):
        """Initialize the detector.

        Args:
            config: Detection thresholds (defaults are used if None)
        """
        self.config = config or DetectionConfig()

    @property
    def name(self) -> str:
        return self.flag_type.value

    @abstractmethod
    def detect(self, snapshot: EvidenceSnapshot) -> List[AnomalyFlag]:
        """Detect anomalies in an evidence snapshot.

        Args:
            snapshot: Evidence for the analysis window

        Returns:
            List of candidate flags
        """
        pass

    def _evaluate_each(self, records: Iterable[T],
                       evaluate: Callable[[T], Optional[AnomalyFlag]],
                       describe: Callable[[T], str]) -> List[AnomalyFlag]:
        """Apply ``evaluate`` to each record, skipping records that fail.

        One malformed record must not suppress flags for the rest, so errors
        are logged and the record is skipped.
        """
        flags = []
        for record in records:
            try:
                flag = evaluate(record)
            except (TypeError, ValueError, ArithmeticError) as e:
                logger.warning(f"{self.name}: skipping {describe(record)}: {e}")
                continue
            if flag is not None:
                flags.append(flag)
        return flags
