"""Core utilities -- re-exports all public symbols for convenience."""

from .records import UnitResult, UnitStatus, Flow
from .io import load_texture, save_texture
from .scanning import list_texture_files
from .grouping import (
    DirectoryFileSet,
    FileGroupingError,
    build_file_sets,
    find_orm_files,
    find_role_file,
    group_by_directory,
    is_source_orm,
)
from .logging import setup_logging

__all__ = [
    "UnitResult", "UnitStatus", "Flow",
    "load_texture", "save_texture",
    "list_texture_files",
    "DirectoryFileSet", "FileGroupingError", "build_file_sets",
    "find_orm_files", "find_role_file", "group_by_directory", "is_source_orm",
    "setup_logging",
]
