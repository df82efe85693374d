"""Reconciler: decide where a newly observed image belongs and apply the move.

The current tier is consulted first:

- identical version already cataloged -> rejected as a conflict
- new or newer -> stored in the current tier; an older current record is
  demoted (file and entry) to the previous tier
- older -> the previous tier is consulted the same way; the image is stored
  there unless it already holds an equal or newer record

File operations run inside one journaled transaction and always precede the
catalog mutations, so a failure leaves at most an orphan file, never an entry
pointing at a missing one.

An image submitted from inside one of the tier directories is moved, not
copied: when it lands in the other tier its source file is removed in the same
transaction.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, replace
from logging import getLogger
from typing import TYPE_CHECKING

from otacatalog.domain.header_codec import locate_header, parse_image, read_image_header
from otacatalog.domain.model import (
    CatalogRecord,
    HeaderDecodeError,
    ImageStatus,
    Tier,
    record_file_name,
)

from .classify import classify
from .contracts import Accepted, Rejected, RejectionReason
from .match import find_match

if TYPE_CHECKING:
    from collections.abc import Callable

    from otacatalog.domain.model import Catalog, CatalogMatch, ExtraMetas, ImageHeader
    from otacatalog.domain.ports import FileTransaction, ImageStore

    from .contracts import Outcome


log = getLogger(__name__)


def compute_sha512(data: bytes) -> str:
    return hashlib.sha512(data).hexdigest()


def build_record(  # noqa: PLR0913
    *,
    file_name: str,
    raw: bytes,
    header: ImageHeader,
    url: str,
    extra_metas: ExtraMetas,
    original_url: str | None = None,
) -> CatalogRecord:
    """Catalog entry for ``raw``: header-derived fields overlaid with ``extra_metas``."""

    return CatalogRecord(
        file_name=file_name,
        file_version=header.file_version,
        file_size=header.total_image_size,
        original_url=(
            extra_metas.original_url if extra_metas.original_url is not None else original_url
        ),
        url=url,
        image_type=header.image_type,
        manufacturer_code=header.manufacturer_code,
        sha512=compute_sha512(raw),
        header_string=header.stripped_header_string,
        force=extra_metas.force,
        hardware_version_min=_first_set(
            extra_metas.hardware_version_min, header.minimum_hardware_version
        ),
        hardware_version_max=_first_set(
            extra_metas.hardware_version_max, header.maximum_hardware_version
        ),
        manufacturer_name=extra_metas.manufacturer_name,
        max_file_version=extra_metas.max_file_version,
        min_file_version=extra_metas.min_file_version,
        model_id=extra_metas.model_id,
        release_notes=extra_metas.release_notes,
    )


@dataclass(slots=True, kw_only=True)
class _Submission:
    manufacturer: str
    file_name: str
    raw: bytes
    header: ImageHeader
    extra_metas: ExtraMetas
    original_url: str | None
    source_tier: Tier | None

    @property
    def log_prefix(self) -> str:
        return f"[{self.manufacturer}:{self.file_name}]"


@dataclass(slots=True)
class Reconciler:
    """Reconcile one image at a time against a (current, previous) catalog pair."""

    store: ImageStore
    verify_size: bool = False

    def decode(self, raw: bytes) -> ImageHeader:
        if not self.verify_size:
            return read_image_header(raw)
        return parse_image(raw[locate_header(raw) :], verify_size=True).header

    def reconcile(  # noqa: PLR0913
        self,
        manufacturer: str,
        file_name: str,
        raw: bytes,
        extra_metas: ExtraMetas,
        current: Catalog,
        previous: Catalog,
        *,
        original_url: str | None = None,
        source_tier: Tier | None = None,
    ) -> Outcome:
        """Classify ``raw`` against both catalogs and store it where it belongs.

        ``source_tier`` names the tier directory the file already sits in, if
        any. Catalogs are mutated in place on the accepted paths only.
        """

        prefix = f"[{manufacturer}:{file_name}]"
        try:
            header = self.decode(raw)
        except HeaderDecodeError as exc:
            log.error("%s Not a valid OTA file (%s).", prefix, exc)  # noqa: TRY400
            return Rejected(reason=RejectionReason.DECODE_ERROR, detail=str(exc))

        submission = _Submission(
            manufacturer=manufacturer,
            file_name=file_name,
            raw=raw,
            header=header,
            extra_metas=extra_metas,
            original_url=original_url,
            source_tier=source_tier,
        )
        current_match = find_match(header, extra_metas, current)
        if current_match is None:
            log.info(
                "%s Current catalog does not have version %s. Adding.",
                prefix,
                header.file_version,
            )
            return self._apply(
                submission,
                current,
                previous,
                lambda files: self._add_to_current(files, submission, current, previous, None),
            )

        status = classify(header.file_version, current_match)
        if status is ImageStatus.IDENTICAL:
            log.info(
                "%s Current catalog already has version %s at index %s. Ignoring.",
                prefix,
                header.file_version,
                current_match.index,
            )
            return Rejected(
                reason=RejectionReason.CONFLICT,
                detail=f"Conflict with image at index {current_match.index}",
                header=header,
                current_match=current_match,
            )

        if status is ImageStatus.NEWER:
            return self._apply(
                submission,
                current,
                previous,
                lambda files: self._add_to_current(
                    files, submission, current, previous, current_match
                ),
            )

        previous_match = find_match(header, extra_metas, previous)
        if classify(header.file_version, previous_match) in (
            ImageStatus.OLDER,
            ImageStatus.IDENTICAL,
        ):
            log.info(
                "%s Current catalog has higher version and an equal or better match "
                "is already present in previous catalog. Ignoring.",
                prefix,
            )
            return Rejected(
                reason=RejectionReason.STALE_AND_SUPERSEDED_IN_PREVIOUS,
                detail="Equal or newer image already present in previous catalog",
                header=header,
                current_match=current_match,
                previous_match=previous_match,
            )
        log.info(
            "%s Current catalog has higher version %s. Adding to previous instead.",
            prefix,
            current_match.record.file_version,
        )
        return self._apply(
            submission,
            current,
            previous,
            lambda files: self._add_to_previous(files, submission, previous, previous_match),
        )

    def _apply(
        self,
        submission: _Submission,
        current: Catalog,
        previous: Catalog,
        operation: Callable[[FileTransaction], Accepted],
    ) -> Outcome:
        snapshots = (current.snapshot(), previous.snapshot())
        try:
            with self.store.transaction() as files:
                accepted = operation(files)
                files.commit()
        except OSError as exc:
            current.restore(snapshots[0])
            previous.restore(snapshots[1])
            log.error(  # noqa: TRY400
                "%s Failed to save firmware file %s: %s",
                submission.log_prefix,
                submission.file_name,
                exc,
            )
            return Rejected(
                reason=RejectionReason.IO_ERROR,
                detail=str(exc),
                header=submission.header,
            )
        except Exception:
            current.restore(snapshots[0])
            previous.restore(snapshots[1])
            raise
        return accepted

    def _add_to_previous(
        self,
        files: FileTransaction,
        submission: _Submission,
        previous: Catalog,
        previous_match: CatalogMatch | None,
    ) -> Accepted:
        self._release_source(files, submission, Tier.PREVIOUS)
        # only reached for a missing or older previous entry
        replaced = previous_match.record if previous_match is not None else None
        if replaced is not None:
            log.info(
                "%s Removing previous version %s.", submission.log_prefix, replaced.file_version
            )
            files.remove(Tier.PREVIOUS, submission.manufacturer, record_file_name(replaced))

        files.write(Tier.PREVIOUS, submission.manufacturer, submission.file_name, submission.raw)
        record = self._build_record(submission, Tier.PREVIOUS)

        if replaced is not None:
            previous.remove(replaced)
        previous.append(record)
        return Accepted(
            tier=Tier.PREVIOUS,
            record=record,
            status=ImageStatus.NEW if replaced is None else ImageStatus.NEWER,
            replaced=replaced,
        )

    def _add_to_current(  # noqa: PLR0913
        self,
        files: FileTransaction,
        submission: _Submission,
        current: Catalog,
        previous: Catalog,
        current_match: CatalogMatch | None,
    ) -> Accepted:
        self._release_source(files, submission, Tier.CURRENT)
        outgoing = current_match.record if current_match is not None else None
        demoted: CatalogRecord | None = None
        superseded_previous: CatalogRecord | None = None

        if outgoing is not None:
            superseded_previous = self._clear_previous_slot(files, submission, previous)
            demoted = self._demote(files, submission, outgoing)

        files.write(Tier.CURRENT, submission.manufacturer, submission.file_name, submission.raw)
        record = self._build_record(submission, Tier.CURRENT)

        if superseded_previous is not None:
            previous.remove(superseded_previous)
        if demoted is not None:
            previous.append(demoted)
        if outgoing is not None:
            current.remove(outgoing)
        current.append(record)
        return Accepted(
            tier=Tier.CURRENT,
            record=record,
            status=ImageStatus.NEW if outgoing is None else ImageStatus.NEWER,
            replaced=superseded_previous,
            demoted=demoted,
        )

    def _clear_previous_slot(
        self,
        files: FileTransaction,
        submission: _Submission,
        previous: Catalog,
    ) -> CatalogRecord | None:
        """Remove the file of the previous entry the incoming image's identity matches."""

        header = submission.header
        # the previous slot is looked up with the incoming identity
        previous_match = find_match(header, submission.extra_metas, previous)
        if previous_match is None:
            return None
        record = previous_match.record
        if classify(header.file_version, previous_match) in (
            ImageStatus.OLDER,
            ImageStatus.IDENTICAL,
        ):
            log.warning(
                "%s Previous catalog holds version %s, not older than incoming %s.",
                submission.log_prefix,
                record.file_version,
                header.file_version,
            )
        log.info("%s Removing previous version %s.", submission.log_prefix, record.file_version)
        files.remove(Tier.PREVIOUS, submission.manufacturer, record_file_name(record))
        return record

    def _demote(
        self,
        files: FileTransaction,
        submission: _Submission,
        outgoing: CatalogRecord,
    ) -> CatalogRecord | None:
        log.info(
            "%s Current catalog has older version %s. Replacing with %s.",
            submission.log_prefix,
            outgoing.file_version,
            submission.header.file_version,
        )
        outgoing_name = record_file_name(outgoing)
        if not files.move(Tier.CURRENT, Tier.PREVIOUS, submission.manufacturer, outgoing_name):
            # entry stays out of previous: its file is gone
            log.error(
                "%s Image file '%s' does not exist. Not moving to previous.",
                submission.log_prefix,
                outgoing_name,
            )
            return None
        return replace(
            outgoing,
            file_name=outgoing_name,
            url=self.store.relocate_url(outgoing.url, Tier.CURRENT, Tier.PREVIOUS),
        )

    @staticmethod
    def _release_source(files: FileTransaction, submission: _Submission, tier: Tier) -> None:
        source = submission.source_tier
        if source is None or source is tier:
            return
        log.info("%s Relocating from %s to %s.", submission.log_prefix, source, tier)
        files.remove(source, submission.manufacturer, submission.file_name)

    def _build_record(self, submission: _Submission, tier: Tier) -> CatalogRecord:
        return build_record(
            file_name=submission.file_name,
            raw=submission.raw,
            header=submission.header,
            url=self.store.url_for(tier, submission.manufacturer, submission.file_name),
            extra_metas=submission.extra_metas,
            original_url=submission.original_url,
        )


def _first_set(*values: int | None) -> int | None:
    for value in values:
        if value is not None:
            return value
    return None
