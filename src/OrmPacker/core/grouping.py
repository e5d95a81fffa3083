"""Group discovered textures by directory and locate role maps by name."""

import os
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from ..config import ChannelRole, ROLE_KEYWORDS, ORM_KEYWORD, ORM_UNITY_TAG


class FileGroupingError(RuntimeError):
    """Raised when a discovered path has no directory component."""


def group_by_directory(paths: Iterable[str]) -> Dict[str, List[str]]:
    """Partition paths by parent directory, preserving first-seen order."""
    groups: Dict[str, List[str]] = {}
    for path in paths:
        directory = os.path.dirname(path)
        if not directory:
            raise FileGroupingError(
                f"Cannot determine the directory of discovered file: {path!r}"
            )
        groups.setdefault(directory, []).append(path)
    return groups


def _name(path: str) -> str:
    return os.path.basename(path).lower()


def find_role_file(paths: Iterable[str], keyword: str) -> Optional[str]:
    """Return the first path whose file name contains ``keyword`` (any case)."""
    keyword = keyword.lower()
    for path in paths:
        if keyword in _name(path):
            return path
    return None


def is_source_orm(path: str) -> bool:
    """Return True for packed ORM inputs; Unity ORMs written by a previous run are excluded."""
    name = _name(path)
    return ORM_KEYWORD in name and ORM_UNITY_TAG not in name


def find_orm_files(paths: Iterable[str]) -> List[str]:
    return [p for p in paths if is_source_orm(p)]


@dataclass
class DirectoryFileSet:
    """Texture files discovered in one directory, in discovery order."""

    directory: str
    files: List[str] = field(default_factory=list)

    def role_file(self, role: ChannelRole) -> Optional[str]:
        keyword = ROLE_KEYWORDS.get(role)
        if keyword is None:
            raise ValueError(f"No file-name keyword defined for role {role.value}")
        return find_role_file(self.files, keyword)

    @property
    def roughness(self) -> Optional[str]:
        return self.role_file(ChannelRole.ROUGHNESS)

    @property
    def metallic(self) -> Optional[str]:
        return self.role_file(ChannelRole.METALLIC)

    @property
    def ao(self) -> Optional[str]:
        return self.role_file(ChannelRole.AO)

    @property
    def orm_files(self) -> List[str]:
        return find_orm_files(self.files)

    @property
    def orm(self) -> Optional[str]:
        orm_files = self.orm_files
        return orm_files[0] if orm_files else None

    @property
    def has_individual_maps(self) -> bool:
        return None not in (self.ao, self.roughness, self.metallic)


def build_file_sets(paths: Iterable[str]) -> List[DirectoryFileSet]:
    """Group a flat path listing into per-directory file sets."""
    return [
        DirectoryFileSet(directory, files)
        for directory, files in group_by_directory(paths).items()
    ]
