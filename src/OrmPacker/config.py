"""Define channel semantics and the typed run configuration.

Use `PackerConfig` to load, validate, and persist runtime settings.
"""

import os
import logging
import yaml
from dataclasses import dataclass
from enum import Enum
from typing import Optional

logger = logging.getLogger("orm_packer.config")


class ChannelRole(Enum):
    """Enumerate the material maps an ORM texture can carry."""

    AO = "ao"
    ROUGHNESS = "roughness"
    SMOOTHNESS = "smoothness"
    METALLIC = "metallic"

    @property
    def inverse(self) -> "ChannelRole":
        """Return the complementary role (roughness <-> smoothness)."""
        if self is ChannelRole.ROUGHNESS:
            return ChannelRole.SMOOTHNESS
        if self is ChannelRole.SMOOTHNESS:
            return ChannelRole.ROUGHNESS
        return self


class ORMConvention(Enum):
    """Enumerate engine conventions for the G channel of a packed ORM."""

    UNREAL = "unreal"  # R=AO, G=Roughness, B=Metallic
    UNITY = "unity"    # R=AO, G=Smoothness, B=Metallic

    @property
    def green_role(self) -> ChannelRole:
        """Return the role stored in the G channel."""
        if self is ORMConvention.UNREAL:
            return ChannelRole.ROUGHNESS
        return ChannelRole.SMOOTHNESS

    @property
    def other(self) -> "ORMConvention":
        """Return the opposite convention."""
        if self is ORMConvention.UNREAL:
            return ORMConvention.UNITY
        return ORMConvention.UNREAL


SUPPORTED_EXTENSIONS = ("png", "jpg", "exr")
DEFAULT_EXTENSION = "png"

# Role keywords matched case-insensitively against file names.
ROLE_KEYWORDS = {
    ChannelRole.ROUGHNESS: "roughness",
    ChannelRole.METALLIC: "metallic",
    ChannelRole.AO: "ao",
}
ORM_KEYWORD = "orm"
# Unity ORM written by the individual flow; never reprocessed as a source ORM.
ORM_UNITY_TAG = "ormunity"
ORM_UNREAL_TAG = "ormue"
UNITY_CONVERTED_SUFFIX = "_unity"
EXTRACTED_SUFFIXES = {
    ChannelRole.AO: "_AO",
    ChannelRole.ROUGHNESS: "_Roughness",
    ChannelRole.SMOOTHNESS: "_Smoothness",
    ChannelRole.METALLIC: "_Metallic",
}


def normalize_extension(value: Optional[str]) -> Optional[str]:
    """Return a supported extension without the leading dot, or None."""
    if value is None:
        return None
    ext = str(value).strip().lstrip(".").lower()
    if ext in SUPPORTED_EXTENSIONS:
        return ext
    return None


@dataclass
class PackerConfig:
    """Run configuration for one batch."""

    config_version: int = 1
    search_path: str = ""
    extension: str = DEFAULT_EXTENSION

    process_individual: bool = True
    process_orm: bool = True
    # True: ORM = (AO, Roughness, Metallic). False: ORM = (AO, Smoothness, Metallic).
    is_unreal_orm_format: bool = True
    extract_from_orm: bool = False
    save_unity_orm: bool = True
    save_unreal_orm: bool = True
    save_unity_smoothness_in_metallic: bool = True
    delete_non_orm_files: bool = False

    max_workers: int = 4
    log_level: str = "INFO"
    log_file: str = ""
    jpeg_quality: int = 95

    @property
    def orm_convention(self) -> ORMConvention:
        """Return the declared convention of existing ORM textures."""
        if self.is_unreal_orm_format:
            return ORMConvention.UNREAL
        return ORMConvention.UNITY

    @classmethod
    def from_yaml(cls, path: str) -> "PackerConfig":
        """Load configuration from YAML or return defaults."""
        if not os.path.exists(path):
            logger.info("Config file '%s' not found. Using defaults.", path)
            config = cls()
            config.validate()
            return config
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(
                f"Failed to parse YAML config '{path}': {exc}"
            ) from exc
        if not isinstance(data, dict):
            raise ValueError(
                f"Config file '{path}' must contain a YAML mapping, "
                f"got {type(data).__name__}"
            )
        config = cls()
        _merge_dict_to_dataclass(config, data)
        try:
            config.validate()
        except ValueError as exc:
            raise ValueError(f"{path}: {exc}") from exc
        return config

    def to_yaml(self, path: str):
        """Write configuration to a YAML file."""
        import dataclasses
        import threading as _th
        data = dataclasses.asdict(self)
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        ext = os.path.splitext(path)[1]
        tmp_path = f"{path}.tmp.{os.getpid()}.{_th.get_ident()}{ext}"
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                yaml.dump(data, f, default_flow_style=False, sort_keys=False)
            os.replace(tmp_path, path)
        finally:
            if os.path.exists(tmp_path):
                try:
                    os.remove(tmp_path)
                except OSError:
                    pass

    def validate(self):
        """Validate configuration values. Raises ValueError on invalid config."""
        errors = []

        if normalize_extension(self.extension) is None:
            errors.append(
                f"extension must be one of {list(SUPPORTED_EXTENSIONS)}, "
                f"got '{self.extension}'"
            )

        valid_log_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if str(self.log_level).upper() not in valid_log_levels:
            errors.append(
                f"log_level must be one of {sorted(valid_log_levels)}, "
                f"got '{self.log_level}'"
            )

        if self.max_workers < 1:
            errors.append("max_workers must be >= 1")
        if self.max_workers > 128:
            errors.append("max_workers must be <= 128")

        if not 1 <= self.jpeg_quality <= 100:
            errors.append("jpeg_quality must be in [1, 100]")

        if self.process_individual and not (
            self.save_unity_orm
            or self.save_unreal_orm
            or self.save_unity_smoothness_in_metallic
        ):
            logger.warning(
                "process_individual is enabled but no individual-texture output "
                "is selected; only deletion (if enabled) will happen."
            )
        if (
            self.process_orm
            and not self.is_unreal_orm_format
            and not self.extract_from_orm
        ):
            logger.warning(
                "process_orm is enabled for Unity-format ORM textures without "
                "extraction; the ORM pass will not write anything."
            )

        if errors:
            raise ValueError(
                "Configuration validation failed:\n" +
                "\n".join(f"  - {e}" for e in errors)
            )

        # Apply normalization now that validation passed (".PNG" -> "png").
        self.extension = normalize_extension(self.extension)


def _merge_dict_to_dataclass(obj, data: dict):
    """Copy known, correctly typed keys from ``data`` onto ``obj``; warn on the rest."""
    for key, value in data.items():
        if not hasattr(obj, key) or isinstance(getattr(type(obj), key, None), property):
            logger.warning(f"Unknown config key ignored: '{key}'")
            continue
        field_val = getattr(obj, key)
        if value is None and field_val is not None:
            logger.warning(
                f"Config key '{key}' is null but field default is "
                f"{type(field_val).__name__}. Using default value."
            )
            continue
        expected_type = type(field_val)
        # bool is an int subclass; keep flags strictly boolean.
        if expected_type is int and isinstance(value, bool):
            value = None
        if (value is None
                or (not isinstance(value, expected_type)
                    and not (expected_type is int
                             and isinstance(value, float)
                             and value == int(value)))):
            logger.warning(
                f"Config type mismatch for '{key}': "
                f"expected {expected_type.__name__}, "
                f"got {type(data[key]).__name__} ({data[key]!r}). "
                f"Using default value."
            )
            continue
        # Promote exact-integer floats to int (e.g. YAML 4.0 -> 4)
        if expected_type is int and isinstance(value, float):
            value = int(value)
        setattr(obj, key, value)
