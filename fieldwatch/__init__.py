"""
FieldWatch: field-service anomaly detection.

Batch analysis of completed job and attendance records that flags behaviour
consistent with time-and-attendance fraud.
"""

__version__ = "0.1.0"
