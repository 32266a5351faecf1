"""Scanning logic for the walk-up scan service."""

__all__ = [
    "adf_gate",
    "continuation",
    "job_driver",
    "jpeg_util",
    "listening",
    "path_helper",
    "post_processing",
    "scan_processing",
]
