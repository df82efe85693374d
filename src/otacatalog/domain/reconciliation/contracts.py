"""Outcome contracts returned by the reconciler."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Literal, TypeAlias

if TYPE_CHECKING:
    from otacatalog.domain.model import CatalogMatch, CatalogRecord, ImageHeader, ImageStatus, Tier


class RejectionReason(StrEnum):
    DECODE_ERROR = "decode_error"
    CONFLICT = "conflict"
    STALE_AND_SUPERSEDED_IN_PREVIOUS = "stale_and_superseded_in_previous"
    IO_ERROR = "io_error"


@dataclass(frozen=True, slots=True, kw_only=True)
class Accepted:
    """Image stored in ``tier``; ``record`` is the entry appended to that tier's catalog."""

    tier: Tier
    record: CatalogRecord
    status: ImageStatus
    replaced: CatalogRecord | None = None
    demoted: CatalogRecord | None = None
    accepted: Literal[True] = True


@dataclass(frozen=True, slots=True, kw_only=True)
class Rejected:
    """Image left out of both catalogs. Conflicts and stale images are expected outcomes."""

    reason: RejectionReason
    detail: str | None = None
    header: ImageHeader | None = None
    current_match: CatalogMatch | None = None
    previous_match: CatalogMatch | None = None
    accepted: Literal[False] = False


Outcome: TypeAlias = Accepted | Rejected
