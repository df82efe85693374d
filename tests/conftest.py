from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from otacatalog.adapters.filesystem import LocalImageStore
from otacatalog.config import StorageConfig
from otacatalog.domain.model import CatalogPair
from otacatalog.domain.reconciliation import Reconciler

if TYPE_CHECKING:
    from collections.abc import Iterator

DATA_DIR = Path(__file__).resolve().parent / "data"


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for name in (
        "OTACATALOG_ROOT",
        "OTACATALOG_BASE_URL",
        "OTACATALOG_BRANCH",
        "OTACATALOG_VERIFY_SIZE",
        "OTACATALOG_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture(scope="session")
def zlinky_v14_path() -> Path:
    return DATA_DIR / "ota" / "ZLinky_router_v14.ota"


@pytest.fixture(scope="session")
def zlinky_v14_bytes(zlinky_v14_path: Path) -> bytes:
    return zlinky_v14_path.read_bytes()


@pytest.fixture
def storage_config(tmp_path: Path) -> StorageConfig:
    return StorageConfig(root_dir=tmp_path / "repo")


@pytest.fixture
def image_store(storage_config: StorageConfig) -> LocalImageStore:
    return LocalImageStore(storage_config)


@pytest.fixture
def reconciler(image_store: LocalImageStore) -> Reconciler:
    return Reconciler(image_store)


@pytest.fixture
def catalogs() -> CatalogPair:
    return CatalogPair()
