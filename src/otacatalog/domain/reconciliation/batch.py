"""Sequential batch loop over a shared in-memory catalog pair."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from otacatalog.domain.model import Tier

from .contracts import Accepted, Rejected, RejectionReason

if TYPE_CHECKING:
    from collections.abc import Iterable

    from otacatalog.domain.model import CatalogPair, ExtraMetasSource

    from .contracts import Outcome
    from .engine import Reconciler


log = getLogger(__name__)


@dataclass(frozen=True, slots=True, kw_only=True)
class ImageSubmission:
    """Raw bytes of one image plus where it came from."""

    manufacturer: str
    file_name: str
    raw: bytes
    original_url: str | None = None
    # tier directory the file already sits in
    source_tier: Tier | None = None


@dataclass(slots=True)
class BatchResult:
    outcomes: list[tuple[ImageSubmission, Outcome]] = field(
        default_factory=list["tuple[ImageSubmission, Outcome]"]
    )

    def accepted(self, tier: Tier | None = None) -> list[Accepted]:
        return [
            outcome
            for _, outcome in self.outcomes
            if isinstance(outcome, Accepted) and (tier is None or outcome.tier is tier)
        ]

    def rejected(self, reason: RejectionReason | None = None) -> list[Rejected]:
        return [
            outcome
            for _, outcome in self.outcomes
            if isinstance(outcome, Rejected) and (reason is None or outcome.reason is reason)
        ]

    @property
    def failed(self) -> bool:
        """Whether any image hit a decode or IO error."""
        return bool(
            self.rejected(RejectionReason.DECODE_ERROR) or self.rejected(RejectionReason.IO_ERROR)
        )


def reconcile_batch(
    submissions: Iterable[ImageSubmission],
    *,
    extra_metas: ExtraMetasSource,
    catalogs: CatalogPair,
    reconciler: Reconciler,
) -> BatchResult:
    """Reconcile images one after another.

    Each outcome lands in ``catalogs`` before the next image is classified, so
    later images see earlier promotions. Persisting the catalogs is left to the
    caller, once, after the batch.
    """

    result = BatchResult()
    for submission in submissions:
        outcome = reconciler.reconcile(
            submission.manufacturer,
            submission.file_name,
            submission.raw,
            extra_metas.for_file(submission.file_name),
            catalogs.current,
            catalogs.previous,
            original_url=submission.original_url,
            source_tier=submission.source_tier,
        )
        result.outcomes.append((submission, outcome))

    log.info(
        "Batch finished: current=%s, previous=%s, rejected=%s",
        len(result.accepted(Tier.CURRENT)),
        len(result.accepted(Tier.PREVIOUS)),
        len(result.rejected()),
    )
    log.info("Previous catalog has %s images.", len(catalogs.previous))
    log.info("Current catalog has %s images.", len(catalogs.current))
    return result
