"""Per-directory orchestration of the individual-map and packed-ORM flows."""

import logging
import os
import re
from typing import List

from .channels import (
    channel,
    convert_orm_convention,
    ensure_same_size,
    grayscale_texture,
    invert_roughness,
    metallic_with_smoothness,
    pack_orm,
    unpack_orm,
)
from .config import (
    ChannelRole,
    DEFAULT_EXTENSION,
    EXTRACTED_SUFFIXES,
    ORMConvention,
    ORM_UNITY_TAG,
    ORM_UNREAL_TAG,
    PackerConfig,
    ROLE_KEYWORDS,
    UNITY_CONVERTED_SUFFIX,
    normalize_extension,
)
from .core import (
    DirectoryFileSet,
    Flow,
    UnitResult,
    UnitStatus,
    load_texture,
    save_texture,
)

logger = logging.getLogger("orm_packer")

_METALLIC_RE = re.compile(re.escape(ROLE_KEYWORDS[ChannelRole.METALLIC]), re.IGNORECASE)


def packed_output_name(metallic_path: str, tag: str, extension: str) -> str:
    """Name a packed output after the metallic map, e.g. ``Rock_Metallic`` -> ``Rock_ormue``."""
    stem = os.path.splitext(os.path.basename(metallic_path))[0]
    if _METALLIC_RE.search(stem):
        stem = _METALLIC_RE.sub(tag, stem)
    else:
        # Without the keyword the packed map would overwrite the metallic source.
        stem = f"{stem}_{tag}"
    return os.path.join(os.path.dirname(metallic_path), f"{stem}.{extension}")


def derived_output_name(source_path: str, suffix: str, extension: str) -> str:
    """Return ``<dir>/<source stem><suffix>.<extension>``."""
    stem = os.path.splitext(os.path.basename(source_path))[0]
    return os.path.join(os.path.dirname(source_path), f"{stem}{suffix}.{extension}")


class DirectoryProcessor:
    """Decide and run the transforms that apply to one directory.

    Both sub-flows catch their own failures and report them as
    ``UnitResult`` entries; no exception escapes :meth:`process`.
    """

    def __init__(self, config: PackerConfig):  # noqa: D107
        self.config = config
        self.extension = normalize_extension(config.extension) or DEFAULT_EXTENSION

    def process(self, file_set: DirectoryFileSet) -> List[UnitResult]:
        """Run every enabled sub-flow for one directory."""
        results: List[UnitResult] = []
        if self.config.process_individual:
            results.append(self.process_individual(file_set))
        if self.config.process_orm:
            results.extend(self.process_orm_files(file_set))
        return results

    def _save(self, arr, path: str, written: List[str]):
        save_texture(arr, path, quality=self.config.jpeg_quality)
        written.append(path)

    # ------------------------------------------
    # Individual AO / Roughness / Metallic maps
    # ------------------------------------------

    def process_individual(self, file_set: DirectoryFileSet) -> UnitResult:
        """Pack separate AO, roughness and metallic maps of one directory."""
        directory = file_set.directory
        ao_path = file_set.ao
        roughness_path = file_set.roughness
        metallic_path = file_set.metallic

        if not (ao_path and roughness_path and metallic_path):
            message = (
                f"The folder {directory} does not contain all required individual "
                "maps (AO, Roughness, Metallic). Skipping individual texture processing."
            )
            logger.info(message)
            return UnitResult(directory, Flow.INDIVIDUAL, UnitStatus.SKIPPED, message=message)

        cfg = self.config
        written: List[str] = []
        try:
            ao = load_texture(ao_path, alpha=True)
            roughness = load_texture(roughness_path, alpha=True)
            metallic = load_texture(metallic_path, alpha=True)
            ensure_same_size(ao=ao, roughness=roughness, metallic=metallic)

            ao_r = channel(ao)
            roughness_r = channel(roughness)
            metallic_r = channel(metallic)

            if cfg.save_unity_smoothness_in_metallic:
                smoothness = invert_roughness(roughness_r)
                self._save(metallic_with_smoothness(metallic, smoothness), metallic_path, written)

            if cfg.save_unreal_orm:
                self._save(
                    pack_orm(ao_r, roughness_r, metallic_r, ORMConvention.UNREAL),
                    packed_output_name(metallic_path, ORM_UNREAL_TAG, self.extension),
                    written,
                )

            if cfg.save_unity_orm:
                self._save(
                    pack_orm(ao_r, roughness_r, metallic_r, ORMConvention.UNITY),
                    packed_output_name(metallic_path, ORM_UNITY_TAG, self.extension),
                    written,
                )

            # Sources go only after every write above has succeeded.
            deleted: List[str] = []
            if cfg.delete_non_orm_files:
                for path in (roughness_path, ao_path, metallic_path):
                    if os.path.exists(path):
                        os.remove(path)
                        deleted.append(path)
        except Exception as e:
            message = f"Error processing individual textures in {directory}: {e}"
            logger.error(message)
            return UnitResult(
                directory, Flow.INDIVIDUAL, UnitStatus.FAILED,
                outputs=written, message=message, error=str(e),
            )

        message = f"Processed individual textures in {directory} successfully!"
        logger.info(message)
        return UnitResult(
            directory, Flow.INDIVIDUAL, UnitStatus.SUCCEEDED,
            outputs=written, deleted=deleted, message=message,
        )

    # ------------------------------------------
    # Packed ORM textures
    # ------------------------------------------

    def process_orm_files(self, file_set: DirectoryFileSet) -> List[UnitResult]:
        """Convert and/or decompose every source ORM texture in one directory."""
        orm_files = file_set.orm_files
        if not orm_files:
            message = (
                f"The folder {file_set.directory} does not contain any ORM textures. "
                "Skipping ORM processing."
            )
            logger.info(message)
            return [UnitResult(file_set.directory, Flow.ORM, UnitStatus.SKIPPED, message=message)]
        return [self.process_orm_file(file_set.directory, path) for path in orm_files]

    def process_orm_file(self, directory: str, orm_path: str) -> UnitResult:
        """Process one packed ORM texture; failures stay local to this file."""
        cfg = self.config
        convention = cfg.orm_convention
        written: List[str] = []
        notes: List[str] = []
        try:
            packed = load_texture(orm_path, alpha=False)

            if convention is ORMConvention.UNREAL:
                unity_path = derived_output_name(orm_path, UNITY_CONVERTED_SUFFIX, self.extension)
                self._save(convert_orm_convention(packed, convention), unity_path, written)
                notes.append(f"Converted {orm_path} to Unity ORM format: {unity_path}")

            if cfg.extract_from_orm:
                paths = self._extract(orm_path, packed, convention, written)
                notes.append(
                    f"Extracted textures from {orm_path}:\n"
                    f"  AO: {paths[ChannelRole.AO]}\n"
                    f"  Roughness: {paths[ChannelRole.ROUGHNESS]}\n"
                    f"  Smoothness: {paths[ChannelRole.SMOOTHNESS]}\n"
                    f"  Metallic: {paths[ChannelRole.METALLIC]} "
                    "(with smoothness in alpha channel)"
                )
        except Exception as e:
            message = f"Error processing ORM texture {orm_path}: {e}"
            logger.error(message)
            return UnitResult(
                directory, Flow.ORM, UnitStatus.FAILED, source=orm_path,
                outputs=written, message=message, error=str(e),
            )

        message = "\n".join(notes) if notes else f"Nothing to write for {orm_path}"
        # One record per ORM file keeps multi-line reports contiguous.
        logger.info(message)
        return UnitResult(
            directory, Flow.ORM, UnitStatus.SUCCEEDED, source=orm_path,
            outputs=written, message=message,
        )

    def _extract(self, orm_path: str, packed, convention: ORMConvention,
                 written: List[str]) -> dict:
        maps = unpack_orm(packed, convention)
        textures = {
            ChannelRole.AO: grayscale_texture(maps.ao),
            ChannelRole.ROUGHNESS: grayscale_texture(maps.roughness),
            ChannelRole.SMOOTHNESS: grayscale_texture(maps.smoothness),
            ChannelRole.METALLIC: grayscale_texture(maps.metallic, alpha=maps.smoothness),
        }
        paths = {}
        for role, texture in textures.items():
            path = derived_output_name(orm_path, EXTRACTED_SUFFIXES[role], self.extension)
            self._save(texture, path, written)
            paths[role] = path
        return paths

