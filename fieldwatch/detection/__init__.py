"""
Anomaly detection for field-service attendance records.
"""

from fieldwatch.detection.base import BaseDetector, DetectionConfig
from fieldwatch.detection.engine import AnomalyDetectionEngine, default_detectors
from fieldwatch.detection.evidence import EvidenceLoader, FlagWriter, load_evidence
from fieldwatch.detection.gps_spoof import GpsSpoofDetector
from fieldwatch.detection.impossible_travel import ImpossibleTravelDetector
from fieldwatch.detection.time_anomaly import TimeAnomalyDetector
from fieldwatch.detection.work_evidence import WorkEvidenceDetector

__all__ = [
    'AnomalyDetectionEngine',
    'BaseDetector',
    'DetectionConfig',
    'EvidenceLoader',
    'FlagWriter',
    'GpsSpoofDetector',
    'ImpossibleTravelDetector',
    'TimeAnomalyDetector',
    'WorkEvidenceDetector',
    'default_detectors',
    'load_evidence',
]
