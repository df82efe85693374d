"""Local two-tier image storage.

Layout under the repository root::

    images/<manufacturer>/<file>     current tier
    images1/<manufacturer>/<file>    previous tier

Files no manifest lists can be set aside under ``not-in-manifest-images`` and
``not-in-manifest-images1`` with the same manufacturer subdirectories.

Files replaced or removed inside a transaction are first renamed to a hidden
stash next to them; commit deletes the stashes, rollback puts them back.
"""

from __future__ import annotations

import posixpath
from dataclasses import dataclass
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING, Literal
from urllib.parse import unquote
from uuid import uuid4

from otacatalog.domain.model import StoredFile, StrayFileError, Tier, record_file_name

if TYPE_CHECKING:
    from types import TracebackType

    from otacatalog.config import StorageConfig
    from otacatalog.domain.model import CatalogRecord


log = getLogger(__name__)


class LocalImageStore:
    """``ImageStore`` backed by the repository checkout on disk."""

    def __init__(self, config: StorageConfig) -> None:
        self.config = config

    def manufacturer_dir(self, tier: Tier, manufacturer: str, *, ensure: bool = False) -> Path:
        directory = self.config.images_dir(tier) / manufacturer
        if ensure:
            directory.mkdir(parents=True, exist_ok=True)
        return directory

    def path_for(self, tier: Tier, manufacturer: str, file_name: str) -> Path:
        return self.manufacturer_dir(tier, manufacturer) / file_name

    def url_for(self, tier: Tier, manufacturer: str, file_name: str) -> str:
        relative = posixpath.join(
            self.config.branch, self.config.images_dir_name(tier), manufacturer, file_name
        )
        return self.config.base_url + relative

    def relocate_url(self, url: str, source: Tier, target: Tier) -> str:
        return url.replace(self._tier_url_segment(source), self._tier_url_segment(target), 1)

    def local_path(self, record: CatalogRecord) -> Path | None:
        """Path of the file behind ``record``; None when the url points elsewhere."""

        prefix = self.config.base_url + self.config.branch + "/"
        if not record.url.startswith(prefix):
            return None
        return self.config.resolve_root_dir() / unquote(record.url[len(prefix) :])

    def exists(self, record: CatalogRecord, tier: Tier) -> bool:
        """Whether the file behind ``record`` is present.

        Externally hosted records count as present.
        """

        path = self.local_path(record)
        if path is None:
            log.debug("Not checking external url %s", record.url)
            return True
        if path.is_file():
            return True
        # older records may carry a url that lost its file name encoding
        manufacturer = path.parent.name
        return self.path_for(tier, manufacturer, record_file_name(record)).is_file()

    def source_tier(self, path: Path, manufacturer: str) -> Tier | None:
        """Tier whose ``manufacturer`` directory already holds ``path``, if any."""

        parent = path.expanduser().resolve().parent
        for tier in Tier:
            if parent == self.manufacturer_dir(tier, manufacturer):
                return tier
        return None

    def stored_files(self, tier: Tier) -> list[StoredFile]:
        """Files of every manufacturer subdirectory of ``tier``, hidden files excluded."""

        images_dir = self.config.images_dir(tier)
        if not images_dir.is_dir():
            return []
        found: list[StoredFile] = []
        for entry in sorted(images_dir.iterdir()):
            if entry.name.startswith("."):
                continue
            if not entry.is_dir():
                raise StrayFileError(
                    f"Detected file in {images_dir} not in subdirectory: {entry.name}"
                )
            found.extend(
                StoredFile(tier=tier, manufacturer=entry.name, file_name=path.name)
                for path in sorted(entry.iterdir())
                if path.is_file() and not path.name.startswith(".")
            )
        return found

    def read(self, stored: StoredFile) -> bytes:
        return self.path_for(stored.tier, stored.manufacturer, stored.file_name).read_bytes()

    def transaction(self) -> LocalFileTransaction:
        return LocalFileTransaction(self)

    def _tier_url_segment(self, tier: Tier) -> str:
        return posixpath.join(self.config.branch, self.config.images_dir_name(tier)) + "/"


@dataclass(slots=True)
class _JournalEntry:
    action: Literal["write", "move", "remove"]
    path: Path
    source: Path | None = None
    stash: Path | None = None


class LocalFileTransaction:
    """Journaled write/move/remove over a :class:`LocalImageStore`."""

    def __init__(self, store: LocalImageStore) -> None:
        self._store = store
        self._journal: list[_JournalEntry] = []
        self._done = False

    def __enter__(self) -> LocalFileTransaction:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if not self._done:
            self.rollback()
        return False

    def write(self, tier: Tier, manufacturer: str, file_name: str, data: bytes) -> None:
        path = self._store.manufacturer_dir(tier, manufacturer, ensure=True) / file_name
        entry = _JournalEntry("write", path, stash=self._stash(path))
        self._journal.append(entry)
        path.write_bytes(data)

    def move(self, source: Tier, target: Tier, manufacturer: str, file_name: str) -> bool:
        source_path = self._store.path_for(source, manufacturer, file_name)
        if not source_path.is_file():
            return False
        target_path = self._store.manufacturer_dir(target, manufacturer, ensure=True) / file_name
        self._relocate(source_path, target_path)
        return True

    def set_aside(self, tier: Tier, manufacturer: str, file_name: str) -> None:
        """Move a file out of ``tier`` into the tier's not-in-manifest directory."""

        target_dir = self._store.config.unlisted_dir(tier) / manufacturer
        target_dir.mkdir(parents=True, exist_ok=True)
        self._relocate(self._store.path_for(tier, manufacturer, file_name), target_dir / file_name)

    def remove(self, tier: Tier, manufacturer: str, file_name: str) -> None:
        path = self._store.path_for(tier, manufacturer, file_name)
        stash = self._stash(path)
        if stash is not None:
            self._journal.append(_JournalEntry("remove", path, stash=stash))

    def commit(self) -> None:
        stashes = [entry.stash for entry in self._journal if entry.stash is not None]
        self._journal.clear()
        self._done = True
        for stash in stashes:
            try:
                stash.unlink(missing_ok=True)
            except OSError:
                log.warning("Could not delete stashed file %s", stash, exc_info=True)

    def rollback(self) -> None:
        for entry in reversed(self._journal):
            try:
                self._undo(entry)
            except OSError:
                log.exception("Could not roll back %s of %s", entry.action, entry.path)
        self._journal.clear()
        self._done = True

    @staticmethod
    def _undo(entry: _JournalEntry) -> None:
        if entry.action == "write":
            entry.path.unlink(missing_ok=True)
        elif entry.source is not None and entry.path.exists() and not entry.source.exists():
            entry.path.replace(entry.source)
        if entry.stash is not None and entry.stash.exists():
            entry.stash.replace(entry.path)

    def _relocate(self, source_path: Path, target_path: Path) -> None:
        entry = _JournalEntry("move", target_path, source=source_path)
        self._journal.append(entry)
        entry.stash = self._stash(target_path)
        source_path.replace(target_path)

    @staticmethod
    def _stash(path: Path) -> Path | None:
        if not path.exists():
            return None
        stash = path.with_name(f".{path.name}.{uuid4().hex}.stash")
        path.replace(stash)
        return stash
