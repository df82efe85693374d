from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from otacatalog.domain.model import CatalogPair, ExtraMetas, ImageStatus, Tier
from otacatalog.domain.reconciliation import Accepted, Reconciler, Rejected, RejectionReason
from tests.support.images import build_image
from tests.support.records import make_record

if TYPE_CHECKING:
    from otacatalog.adapters.filesystem import LocalImageStore
    from otacatalog.config import StorageConfig
    from otacatalog.domain.reconciliation import Outcome

MANUFACTURER = "LiXee"
BASE = "https://github.com/Koenkk/zigbee-OTA/raw/master/"


def _submit(  # noqa: PLR0913
    reconciler: Reconciler,
    catalogs: CatalogPair,
    raw: bytes,
    file_name: str,
    metas: ExtraMetas | None = None,
    *,
    original_url: str | None = None,
    source_tier: Tier | None = None,
) -> Outcome:
    return reconciler.reconcile(
        MANUFACTURER,
        file_name,
        raw,
        metas or ExtraMetas(),
        catalogs.current,
        catalogs.previous,
        original_url=original_url,
        source_tier=source_tier,
    )


def _versions(catalog: object) -> list[int]:
    return [record.file_version for record in catalog]  # type: ignore[attr-defined]


def test_new_image_lands_in_current(
    reconciler: Reconciler,
    catalogs: CatalogPair,
    storage_config: StorageConfig,
    zlinky_v14_bytes: bytes,
) -> None:
    outcome = _submit(reconciler, catalogs, zlinky_v14_bytes, "ZLinky_router_v14.ota")

    assert isinstance(outcome, Accepted)
    assert outcome.tier is Tier.CURRENT
    assert outcome.status is ImageStatus.NEW
    record = outcome.record
    assert catalogs.current.records == [record]
    assert len(catalogs.previous) == 0
    assert record.file_name == "ZLinky_router_v14.ota"
    assert record.file_version == 14
    assert record.file_size == len(zlinky_v14_bytes)
    assert record.image_type == 1
    assert record.manufacturer_code == 4151
    assert record.header_string == "ZLinky_TIC router v14"
    assert record.sha512 == hashlib.sha512(zlinky_v14_bytes).hexdigest()
    assert record.url == f"{BASE}images/LiXee/ZLinky_router_v14.ota"
    stored = storage_config.images_dir(Tier.CURRENT) / MANUFACTURER / "ZLinky_router_v14.ota"
    assert stored.read_bytes() == zlinky_v14_bytes


def test_identical_version_is_a_conflict(
    reconciler: Reconciler,
    catalogs: CatalogPair,
    storage_config: StorageConfig,
    zlinky_v14_bytes: bytes,
) -> None:
    _submit(reconciler, catalogs, zlinky_v14_bytes, "ZLinky_router_v14.ota")
    before = catalogs.current.snapshot()

    outcome = _submit(reconciler, catalogs, zlinky_v14_bytes, "ZLinky_router_v14_copy.ota")

    assert isinstance(outcome, Rejected)
    assert outcome.reason is RejectionReason.CONFLICT
    assert outcome.detail == "Conflict with image at index 0"
    assert outcome.current_match is not None
    assert outcome.current_match.index == 0
    assert catalogs.current.snapshot() == before
    assert len(catalogs.previous) == 0
    copy = storage_config.images_dir(Tier.CURRENT) / MANUFACTURER / "ZLinky_router_v14_copy.ota"
    assert not copy.exists()


def test_monotonic_versions_demote_previous_current(
    reconciler: Reconciler,
    catalogs: CatalogPair,
    storage_config: StorageConfig,
) -> None:
    for version in (1, 2, 3):
        outcome = _submit(
            reconciler, catalogs, build_image(file_version=version), f"image_v{version}.ota"
        )
        assert isinstance(outcome, Accepted)
        assert outcome.tier is Tier.CURRENT

    assert _versions(catalogs.current) == [3]
    assert _versions(catalogs.previous) == [2]
    demoted = catalogs.previous[0]
    assert demoted.url == f"{BASE}images1/LiXee/image_v2.ota"

    current_dir = storage_config.images_dir(Tier.CURRENT) / MANUFACTURER
    previous_dir = storage_config.images_dir(Tier.PREVIOUS) / MANUFACTURER
    assert sorted(path.name for path in current_dir.iterdir()) == ["image_v3.ota"]
    assert sorted(path.name for path in previous_dir.iterdir()) == ["image_v2.ota"]


def test_newer_outcome_reports_demoted_and_replaced(
    reconciler: Reconciler,
    catalogs: CatalogPair,
) -> None:
    _submit(reconciler, catalogs, build_image(file_version=1), "image_v1.ota")
    _submit(reconciler, catalogs, build_image(file_version=2), "image_v2.ota")

    outcome = _submit(reconciler, catalogs, build_image(file_version=3), "image_v3.ota")

    assert isinstance(outcome, Accepted)
    assert outcome.status is ImageStatus.NEWER
    assert outcome.demoted is not None
    assert outcome.demoted.file_version == 2
    assert outcome.replaced is not None
    assert outcome.replaced.file_version == 1


def test_reverse_order_converges(
    reconciler: Reconciler,
    catalogs: CatalogPair,
    storage_config: StorageConfig,
) -> None:
    outcomes = [
        _submit(reconciler, catalogs, build_image(file_version=version), f"image_v{version}.ota")
        for version in (3, 2, 1)
    ]

    assert isinstance(outcomes[0], Accepted)
    assert outcomes[0].tier is Tier.CURRENT
    assert isinstance(outcomes[1], Accepted)
    assert outcomes[1].tier is Tier.PREVIOUS
    assert outcomes[1].record.url == f"{BASE}images1/LiXee/image_v2.ota"
    assert isinstance(outcomes[2], Rejected)
    assert outcomes[2].reason is RejectionReason.STALE_AND_SUPERSEDED_IN_PREVIOUS
    assert _versions(catalogs.current) == [3]
    assert _versions(catalogs.previous) == [2]
    assert not (storage_config.images_dir(Tier.PREVIOUS) / MANUFACTURER / "image_v1.ota").exists()


def test_older_image_replaces_older_previous_entry(
    reconciler: Reconciler,
    catalogs: CatalogPair,
    storage_config: StorageConfig,
) -> None:
    for version in (5, 2, 3):
        _submit(reconciler, catalogs, build_image(file_version=version), f"image_v{version}.ota")

    assert _versions(catalogs.current) == [5]
    assert _versions(catalogs.previous) == [3]
    previous_dir = storage_config.images_dir(Tier.PREVIOUS) / MANUFACTURER
    assert sorted(path.name for path in previous_dir.iterdir()) == ["image_v3.ota"]


def test_file_from_current_dir_landing_in_previous_is_moved(
    reconciler: Reconciler,
    catalogs: CatalogPair,
    storage_config: StorageConfig,
) -> None:
    _submit(reconciler, catalogs, build_image(file_version=3), "image_v3.ota")
    current_dir = storage_config.images_dir(Tier.CURRENT) / MANUFACTURER
    raw = build_image(file_version=2)
    (current_dir / "image_v2.ota").write_bytes(raw)

    outcome = _submit(reconciler, catalogs, raw, "image_v2.ota", source_tier=Tier.CURRENT)

    assert isinstance(outcome, Accepted)
    assert outcome.tier is Tier.PREVIOUS
    assert sorted(path.name for path in current_dir.iterdir()) == ["image_v3.ota"]
    previous_dir = storage_config.images_dir(Tier.PREVIOUS) / MANUFACTURER
    assert (previous_dir / "image_v2.ota").read_bytes() == raw


def test_rejected_file_from_tier_dir_stays_in_place(
    reconciler: Reconciler,
    catalogs: CatalogPair,
    storage_config: StorageConfig,
) -> None:
    _submit(reconciler, catalogs, build_image(file_version=3), "image_v3.ota")
    _submit(reconciler, catalogs, build_image(file_version=2), "image_v2.ota")
    current_dir = storage_config.images_dir(Tier.CURRENT) / MANUFACTURER
    (current_dir / "again.ota").write_bytes(build_image(file_version=1))

    outcome = _submit(
        reconciler, catalogs, build_image(file_version=1), "again.ota", source_tier=Tier.CURRENT
    )

    assert isinstance(outcome, Rejected)
    assert (current_dir / "again.ota").is_file()


def test_same_version_in_previous_is_stale(
    reconciler: Reconciler,
    catalogs: CatalogPair,
) -> None:
    _submit(reconciler, catalogs, build_image(file_version=5), "image_v5.ota")
    _submit(reconciler, catalogs, build_image(file_version=2), "image_v2.ota")

    outcome = _submit(reconciler, catalogs, build_image(file_version=2), "image_v2_again.ota")

    assert isinstance(outcome, Rejected)
    assert outcome.reason is RejectionReason.STALE_AND_SUPERSEDED_IN_PREVIOUS
    assert outcome.previous_match is not None
    assert outcome.previous_match.index == 0


def test_model_id_disambiguates_slots(
    reconciler: Reconciler,
    catalogs: CatalogPair,
) -> None:
    router = _submit(
        reconciler,
        catalogs,
        build_image(file_version=3),
        "router.ota",
        ExtraMetas(model_id="ZLinky_TIC"),
    )
    end_device = _submit(
        reconciler,
        catalogs,
        build_image(file_version=3),
        "end_device.ota",
        ExtraMetas(model_id="ZLinky_TIC_ED"),
    )

    assert isinstance(router, Accepted)
    assert isinstance(end_device, Accepted)
    assert end_device.status is ImageStatus.NEW
    assert [record.model_id for record in catalogs.current] == ["ZLinky_TIC", "ZLinky_TIC_ED"]
    assert len(catalogs.previous) == 0


def test_decode_error_is_rejected_without_side_effects(
    reconciler: Reconciler,
    catalogs: CatalogPair,
    storage_config: StorageConfig,
) -> None:
    outcome = _submit(reconciler, catalogs, b"not an ota image" * 8, "garbage.ota")

    assert isinstance(outcome, Rejected)
    assert outcome.reason is RejectionReason.DECODE_ERROR
    assert len(catalogs.current) == 0
    assert not storage_config.images_dir(Tier.CURRENT).exists()


def test_verify_size_rejects_inconsistent_images(
    image_store: LocalImageStore,
    catalogs: CatalogPair,
) -> None:
    raw = build_image()[:-8]
    reconciler = Reconciler(image_store, verify_size=True)

    outcome = _submit(reconciler, catalogs, raw, "short.ota")

    assert isinstance(outcome, Rejected)
    assert outcome.reason is RejectionReason.DECODE_ERROR
    assert isinstance(_submit(Reconciler(image_store), catalogs, raw, "short.ota"), Accepted)


def test_io_error_rolls_back_files_and_catalogs(
    reconciler: Reconciler,
    catalogs: CatalogPair,
    storage_config: StorageConfig,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    _submit(reconciler, catalogs, build_image(file_version=1), "image_v1.ota")
    before = (catalogs.current.snapshot(), catalogs.previous.snapshot())

    def failing_write(self: Path, data: bytes) -> int:
        raise OSError(28, "No space left on device")

    monkeypatch.setattr(Path, "write_bytes", failing_write)
    outcome = _submit(reconciler, catalogs, build_image(file_version=2), "image_v2.ota")
    monkeypatch.undo()

    assert isinstance(outcome, Rejected)
    assert outcome.reason is RejectionReason.IO_ERROR
    assert (catalogs.current.snapshot(), catalogs.previous.snapshot()) == before
    current_dir = storage_config.images_dir(Tier.CURRENT) / MANUFACTURER
    previous_dir = storage_config.images_dir(Tier.PREVIOUS) / MANUFACTURER
    assert (current_dir / "image_v1.ota").is_file()
    assert not (previous_dir / "image_v1.ota").exists()
    assert not (current_dir / "image_v2.ota").exists()


def test_missing_outgoing_file_is_not_demoted(
    reconciler: Reconciler,
    catalogs: CatalogPair,
    caplog: pytest.LogCaptureFixture,
) -> None:
    catalogs.current.append(make_record(file_version=1, manufacturer=MANUFACTURER))

    with caplog.at_level(logging.ERROR):
        outcome = _submit(reconciler, catalogs, build_image(file_version=2), "image_v2.ota")

    assert isinstance(outcome, Accepted)
    assert outcome.status is ImageStatus.NEWER
    assert outcome.demoted is None
    assert _versions(catalogs.current) == [2]
    assert len(catalogs.previous) == 0
    assert "does not exist" in caplog.text


def test_newer_previous_entry_is_flagged_and_removed(
    reconciler: Reconciler,
    catalogs: CatalogPair,
    caplog: pytest.LogCaptureFixture,
) -> None:
    _submit(reconciler, catalogs, build_image(file_version=3), "image_v3.ota")
    catalogs.previous.append(make_record(file_version=9, tier_dir="images1"))

    with caplog.at_level(logging.WARNING):
        outcome = _submit(reconciler, catalogs, build_image(file_version=4), "image_v4.ota")

    assert isinstance(outcome, Accepted)
    assert outcome.replaced is not None
    assert outcome.replaced.file_version == 9
    assert _versions(catalogs.current) == [4]
    assert _versions(catalogs.previous) == [3]
    assert "not older than incoming" in caplog.text


def test_extra_metas_flow_into_record(
    reconciler: Reconciler,
    catalogs: CatalogPair,
) -> None:
    metas = ExtraMetas(
        force=True,
        hardware_version_min=2,
        manufacturer_name=("LiXee",),
        release_notes="Fix TIC parsing",
        original_url="https://example.com/from-metas.ota",
    )
    raw = build_image(field_control=0x4, minimum_hardware_version=1, maximum_hardware_version=7)

    outcome = _submit(
        reconciler, catalogs, raw, "hw.ota", metas, original_url="https://example.com/arg.ota"
    )

    assert isinstance(outcome, Accepted)
    record = outcome.record
    assert record.force is True
    assert record.hardware_version_min == 2
    assert record.hardware_version_max == 7
    assert record.manufacturer_name == ("LiXee",)
    assert record.release_notes == "Fix TIC parsing"
    assert record.original_url == "https://example.com/from-metas.ota"


def test_original_url_argument_used_without_metas(
    reconciler: Reconciler,
    catalogs: CatalogPair,
) -> None:
    outcome = _submit(
        reconciler,
        catalogs,
        build_image(),
        "plain.ota",
        original_url="https://example.com/plain.ota",
    )

    assert isinstance(outcome, Accepted)
    assert outcome.record.original_url == "https://example.com/plain.ota"
    assert outcome.record.hardware_version_min is None


def test_header_hardware_versions_fill_unset_metas(
    reconciler: Reconciler,
    catalogs: CatalogPair,
) -> None:
    raw = build_image(field_control=0x4, minimum_hardware_version=3, maximum_hardware_version=7)

    outcome = _submit(reconciler, catalogs, raw, "hw.ota", ExtraMetas(hardware_version_min=1))

    assert isinstance(outcome, Accepted)
    assert outcome.record.hardware_version_min == 1
    assert outcome.record.hardware_version_max == 7
