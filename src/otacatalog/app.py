"""Application orchestration entry points."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from otacatalog.adapters.filesystem import LocalImageStore
from otacatalog.adapters.manifest import JsonCatalogRepository
from otacatalog.config import get_reconcile_config, get_storage_config
from otacatalog.domain.header_codec import locate_header, parse_image
from otacatalog.domain.model import UniformExtraMetas
from otacatalog.domain.reconciliation import (
    ImageSubmission,
    IntegrityReport,
    Reconciler,
    Rejected,
    find_missing_files,
    find_unlisted_files,
    lookup_records,
    prune_missing_files,
    prune_unlisted_files,
    reconcile_batch,
    set_aside_unlisted_files,
)

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence
    from pathlib import Path

    from otacatalog.config import ReconcileConfig, StorageConfig
    from otacatalog.domain.model import CatalogRecord, ExtraMetasSource, OtaImage, Tier
    from otacatalog.domain.ports import CatalogRepository, ImageStore
    from otacatalog.domain.reconciliation import BatchResult


log = getLogger(__name__)


def add_images(
    paths: Sequence[Path],
    *,
    manufacturer: str | None = None,
    extra_metas: ExtraMetasSource | None = None,
    original_url: str | None = None,
    storage: StorageConfig | None = None,
    reconcile: ReconcileConfig | None = None,
    repository: CatalogRepository | None = None,
    store: ImageStore | None = None,
) -> BatchResult:
    """Reconcile image files into the catalogs and persist both manifests once.

    Without ``manufacturer`` each file's parent directory name is used as its
    manufacturer key.
    """

    storage_config = storage or get_storage_config()
    reconcile_config = reconcile or get_reconcile_config()
    effective_repository = repository or JsonCatalogRepository(storage_config)
    effective_store = store or LocalImageStore(storage_config)
    reconciler = Reconciler(effective_store, verify_size=reconcile_config.verify_size)

    log.info(
        "Adding %s images: root=%s, verify_size=%s",
        len(paths),
        storage_config.resolve_root_dir(),
        reconcile_config.verify_size,
    )
    # all files are read before the first catalog mutation
    submissions = list(
        _submissions(
            paths,
            manufacturer=manufacturer,
            original_url=original_url,
            store=effective_store,
        )
    )
    catalogs = effective_repository.load()
    result = reconcile_batch(
        submissions,
        extra_metas=extra_metas or UniformExtraMetas(),
        catalogs=catalogs,
        reconciler=reconciler,
    )
    effective_repository.save(catalogs)
    for submission, outcome in result.outcomes:
        if submission.source_tier is not None and isinstance(outcome, Rejected):
            log.warning(
                "[%s:%s] Rejected, file left in place in the %s tier directory.",
                submission.manufacturer,
                submission.file_name,
                submission.source_tier,
            )
    return result


def _submissions(
    paths: Sequence[Path],
    *,
    manufacturer: str | None,
    original_url: str | None,
    store: ImageStore,
) -> Iterator[ImageSubmission]:
    for path in paths:
        key = manufacturer or path.resolve().parent.name
        if not key:
            raise ValueError(f"{path}: file should be in its associated manufacturer subfolder")
        yield ImageSubmission(
            manufacturer=key,
            file_name=path.name,
            raw=path.read_bytes(),
            original_url=original_url,
            source_tier=store.source_tier(path, key),
        )


def read_image(path: Path, *, verify_size: bool = False) -> OtaImage:
    """Decode the image in ``path``, skipping any vendor bytes before the identifier."""

    raw = path.read_bytes()
    return parse_image(raw[locate_header(raw) :], verify_size=verify_size)


def check_catalogs(
    *,
    prune: bool = False,
    set_aside: bool = False,
    storage: StorageConfig | None = None,
    repository: CatalogRepository | None = None,
    store: ImageStore | None = None,
) -> IntegrityReport:
    """Compare both catalogs with the tier directories.

    With ``prune`` records whose file is missing are dropped and unlisted files
    deleted. With ``set_aside`` unlisted files are moved to the not-in-manifest
    directories and described in a manifest there. Otherwise nothing changes.
    """

    if prune and set_aside:
        raise ValueError("prune and set_aside are mutually exclusive")
    storage_config = storage or get_storage_config()
    effective_repository = repository or JsonCatalogRepository(storage_config)
    effective_store = store or LocalImageStore(storage_config)
    catalogs = effective_repository.load()

    report = IntegrityReport()
    for catalog in (catalogs.previous, catalogs.current):
        tier = catalog.tier
        check = prune_missing_files if prune else find_missing_files
        report.missing[tier] = check(catalog, effective_store)
        if prune and report.missing[tier]:
            effective_repository.save_catalog(catalog)

        report.unlisted[tier] = find_unlisted_files(catalog, effective_store)
        if not report.unlisted[tier]:
            continue
        if prune:
            prune_unlisted_files(report.unlisted[tier], effective_store)
        elif set_aside:
            records = set_aside_unlisted_files(report.unlisted[tier], effective_store)
            if records:
                effective_repository.save_unlisted(tier, records)
    return report


def find_records(  # noqa: PLR0913
    tier: Tier,
    *,
    image_type: int,
    manufacturer_code: int,
    model_id: str | None = None,
    manufacturer_name: str | None = None,
    storage: StorageConfig | None = None,
    repository: CatalogRepository | None = None,
) -> list[CatalogRecord]:
    """Lenient lookup in one tier, sorted by file version."""

    effective_repository = repository or JsonCatalogRepository(storage or get_storage_config())
    catalog = effective_repository.load().for_tier(tier)
    return lookup_records(
        catalog,
        image_type=image_type,
        manufacturer_code=manufacturer_code,
        model_id=model_id,
        manufacturer_name=manufacturer_name,
    )


