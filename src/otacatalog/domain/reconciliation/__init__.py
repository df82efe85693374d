"""Reconciliation of newly observed OTA images against the two catalog tiers.

Flow for one image:
1) decode the header
2) match against the current tier and classify the version
3) for older images, match and classify against the previous tier
4) apply file moves in one transaction, then mutate the catalogs
"""

from __future__ import annotations

from .batch import BatchResult, ImageSubmission, reconcile_batch
from .classify import classify
from .contracts import Accepted, Outcome, Rejected, RejectionReason
from .engine import Reconciler, build_record, compute_sha512
from .integrity import (
    find_missing_files,
    IntegrityReport,
    find_unlisted_files,
    prune_missing_files,
    prune_unlisted_files,
    set_aside_unlisted_files,
)
from .match import find_match, find_matches, is_match, lookup_records

__all__ = [
    "Accepted",
    "BatchResult",
    "ImageSubmission",
    "IntegrityReport",
    "Outcome",
    "Reconciler",
    "Rejected",
    "RejectionReason",
    "build_record",
    "classify",
    "compute_sha512",
    "find_match",
    "find_matches",
    "find_missing_files",
    "find_unlisted_files",
    "is_match",
    "lookup_records",
    "prune_missing_files",
    "prune_unlisted_files",
    "reconcile_batch",
    "set_aside_unlisted_files",
]
