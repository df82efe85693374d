"""Repository layout configuration: tier directories, manifests and public URLs."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from otacatalog.domain.model import Tier

from .env import get_env_flag

DEFAULT_BASE_URL: Final[str] = "https://github.com/Koenkk/zigbee-OTA/raw/"
DEFAULT_BRANCH: Final[str] = "master"
# images used by the upgrade process
CURRENT_IMAGES_DIR: Final[str] = "images"
# images used by the downgrade process
PREVIOUS_IMAGES_DIR: Final[str] = "images1"
CURRENT_MANIFEST_FILENAME: Final[str] = "index.json"
PREVIOUS_MANIFEST_FILENAME: Final[str] = "index1.json"
# files found in a tier directory but listed in no manifest
UNLISTED_DIR_PREFIX: Final[str] = "not-in-manifest-"
UNLISTED_MANIFEST_FILENAME: Final[str] = "not-in-manifest.json"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    root_dir: Path
    base_url: str = DEFAULT_BASE_URL
    branch: str = DEFAULT_BRANCH
    current_images_dir: str = CURRENT_IMAGES_DIR
    previous_images_dir: str = PREVIOUS_IMAGES_DIR
    current_manifest_filename: str = CURRENT_MANIFEST_FILENAME
    previous_manifest_filename: str = PREVIOUS_MANIFEST_FILENAME
    unlisted_dir_prefix: str = UNLISTED_DIR_PREFIX
    unlisted_manifest_filename: str = UNLISTED_MANIFEST_FILENAME

    def resolve_root_dir(self) -> Path:
        return self.root_dir.expanduser().resolve()

    def images_dir_name(self, tier: Tier) -> str:
        return self.current_images_dir if tier is Tier.CURRENT else self.previous_images_dir

    def images_dir(self, tier: Tier) -> Path:
        return self.resolve_root_dir() / self.images_dir_name(tier)

    def manifest_path(self, tier: Tier) -> Path:
        name = (
            self.current_manifest_filename
            if tier is Tier.CURRENT
            else self.previous_manifest_filename
        )
        return self.resolve_root_dir() / name

    def unlisted_dir(self, tier: Tier) -> Path:
        """``not-in-manifest-images`` / ``not-in-manifest-images1``."""
        return self.resolve_root_dir() / (self.unlisted_dir_prefix + self.images_dir_name(tier))

    def unlisted_manifest_path(self, tier: Tier) -> Path:
        return self.unlisted_dir(tier) / self.unlisted_manifest_filename


@dataclass(frozen=True, slots=True)
class ReconcileConfig:
    verify_size: bool = False


def get_storage_config() -> StorageConfig:
    env_root = os.getenv("OTACATALOG_ROOT")
    return StorageConfig(
        root_dir=Path(env_root) if env_root else Path.cwd(),
        base_url=os.getenv("OTACATALOG_BASE_URL") or DEFAULT_BASE_URL,
        branch=os.getenv("OTACATALOG_BRANCH") or DEFAULT_BRANCH,
    )


def get_reconcile_config() -> ReconcileConfig:
    return ReconcileConfig(verify_size=get_env_flag("OTACATALOG_VERIFY_SIZE"))
