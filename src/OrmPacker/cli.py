"""Command-line interface for the ORM texture packer."""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from .config import PackerConfig, DEFAULT_EXTENSION, normalize_extension
from .core import setup_logging, FileGroupingError

logger = logging.getLogger("orm_packer")

# Positional boolean flags, in command-line order.
FLAG_ORDER = (
    "process_individual",
    "process_orm",
    "is_unreal_orm_format",
    "extract_from_orm",
    "save_unity_orm",
    "save_unreal_orm",
    "save_unity_smoothness_in_metallic",
    "delete_non_orm_files",
)

_PROMPTS = {
    "process_individual":
        "Should process individual textures (AO, Roughness, Metallic)? Y/N",
    "process_orm": "Should process existing ORM textures? Y/N",
    "is_unreal_orm_format":
        "Are existing ORM textures in Unreal format (R=AO, G=Roughness, B=Metallic)? Y/N\n"
        "Answer No if ORM is in Unity format (R=AO, G=Smoothness, B=Metallic)",
    "extract_from_orm":
        "Extract individual AO, Roughness/Smoothness, and Metallic textures from ORM? Y/N",
    "save_unity_orm": "Should save Unity ORM from individual textures? Y/N",
    "save_unreal_orm": "Should save Unreal ORM from individual textures? Y/N",
    "save_unity_smoothness_in_metallic":
        "Should save Unity Smoothness from inverse of roughness to alpha of metallic texture? Y/N",
    "delete_non_orm_files":
        "Should DELETE roughness, metallic and AO textures after the operations are done? Y/N",
}

# Flags that are only asked about when their parent flow is enabled.
_ORM_FLAGS = ("is_unreal_orm_format", "extract_from_orm")
_INDIVIDUAL_FLAGS = (
    "save_unity_orm",
    "save_unreal_orm",
    "save_unity_smoothness_in_metallic",
    "delete_non_orm_files",
)

_PROJECT_DIR_NAME = "OrmPacker"


class ConfigurationAborted(RuntimeError):
    """Raised when startup configuration cannot be completed."""


def parse_bool(value: Optional[str]) -> Optional[bool]:
    """Parse ``true``/``false`` (any case); anything else returns None."""
    if value is None:
        return None
    text = str(value).strip().lower()
    if text == "true":
        return True
    if text == "false":
        return False
    return None


class ConfigResolver:
    """Fill in a `PackerConfig` from arguments, falling back to console prompts.

    ``input_fn`` and ``output_fn`` are injectable so the prompting logic can be
    driven without a terminal. With ``interactive=False`` nothing is asked:
    missing flags keep their configured values and a missing or absent search
    path aborts.
    """

    def __init__(
        self,
        input_fn: Callable[[], str] = input,
        output_fn: Callable[[str], None] = print,
        interactive: bool = True,
        cwd: Optional[str] = None,
    ):
        self.input_fn = input_fn
        self.output_fn = output_fn
        self.interactive = interactive
        self.cwd = cwd or os.getcwd()

    def _read(self) -> str:
        try:
            return self.input_fn() or ""
        except EOFError:
            return ""

    def ask(self, message: str) -> str:
        self.output_fn(message)
        return self._read().strip()

    def ask_yes_no(self, message: str) -> bool:
        """Ask a yes/no question; anything other than y/yes counts as no."""
        answer = self.ask(message).lower()
        return answer in ("y", "yes")

    def _candidate_dirs(self, path: str) -> List[str]:
        project_root = Path(__file__).resolve().parent.parent.parent
        return [
            path,
            os.path.join(self.cwd, path),
            os.path.join(self.cwd, _PROJECT_DIR_NAME, path),
            os.path.abspath(os.path.join(str(project_root), path)),
        ]

    def resolve_search_path(self, path: Optional[str]) -> str:
        """Return an existing directory for ``path`` or raise ConfigurationAborted."""
        if not path and self.interactive:
            path = self.ask("Enter a path to search")
        if not path:
            self.output_fn("You need to enter a valid path")
            raise ConfigurationAborted("No search path given")

        if os.path.isdir(path):
            return os.path.abspath(path)

        for candidate in self._candidate_dirs(path):
            if os.path.isdir(candidate):
                self.output_fn(f"Found directory at: {candidate}")
                return os.path.abspath(candidate)

        if not self.interactive:
            raise ConfigurationAborted(f"The directory '{path}' does not exist")

        create = self.ask_yes_no(
            f"The directory '{path}' does not exist. Would you like to create it? Y/N"
        )
        if not create:
            self.output_fn("Please restart the application with a valid directory path.")
            raise ConfigurationAborted(f"The directory '{path}' does not exist")
        try:
            os.makedirs(path, exist_ok=True)
        except OSError as e:
            self.output_fn(f"Failed to create directory: {e}")
            raise ConfigurationAborted(f"Failed to create directory '{path}': {e}") from e
        self.output_fn(f"Directory '{path}' created successfully.")
        return os.path.abspath(path)

    def resolve_extension(self, extension: Optional[str]) -> str:
        """Return png/jpg/exr; anything unrecognized falls back to png."""
        if not extension and self.interactive:
            extension = self.ask("Enter the file extension to search for (ex. png, jpg, exr)")
        normalized = normalize_extension(extension)
        if normalized is None:
            self.output_fn(f"Moving forward with {DEFAULT_EXTENSION}")
            return DEFAULT_EXTENSION
        return normalized

    def _resolve_flag(self, config: PackerConfig, name: str, raw: Optional[str]):
        parsed = parse_bool(raw)
        if parsed is None and self.interactive:
            parsed = self.ask_yes_no(_PROMPTS[name])
        if parsed is not None:
            setattr(config, name, parsed)

    def resolve(
        self,
        config: PackerConfig,
        search_path: Optional[str] = None,
        extension: Optional[str] = None,
        flags: Sequence[str] = (),
    ) -> PackerConfig:
        """Resolve path, extension and behaviour flags into ``config``."""
        config.search_path = self.resolve_search_path(search_path or config.search_path)
        if extension is None and not self.interactive:
            extension = config.extension
        config.extension = self.resolve_extension(extension)

        raw = dict(zip(FLAG_ORDER, flags))
        self._resolve_flag(config, "process_individual", raw.get("process_individual"))
        self._resolve_flag(config, "process_orm", raw.get("process_orm"))
        if config.process_orm:
            for name in _ORM_FLAGS:
                self._resolve_flag(config, name, raw.get(name))
        if config.process_individual:
            for name in _INDIVIDUAL_FLAGS:
                self._resolve_flag(config, name, raw.get(name))
        return config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="OrmPacker",
        description="Pack AO/Roughness/Metallic maps into ORM textures and convert "
                    "ORM textures between Unreal and Unity conventions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Positional flags (true/false), in order:
  """ + "\n  ".join(FLAG_ORDER) + """

Examples:
  OrmPacker ./textures png
  OrmPacker ./textures png true true true false true true true false
  OrmPacker --config packer.yaml --non-interactive
  OrmPacker --generate-config
        """
    )
    parser.add_argument("search_path", nargs="?", help="Directory to search recursively")
    parser.add_argument("extension", nargs="?", help="png | jpg | exr")
    parser.add_argument("flags", nargs="*", help="Behaviour flags as true/false")
    parser.add_argument("--config", "-c", help="Path to config YAML")
    parser.add_argument("--generate-config", action="store_true",
                        help="Generate default config YAML")
    parser.add_argument("--non-interactive", action="store_true",
                        help="Never prompt; use configured defaults for missing values")
    parser.add_argument("--workers", type=int, help="Max parallel directories")
    parser.add_argument("--log-file", help="Also write the log to this file")
    parser.add_argument("--log-level",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    return parser


def main(argv: Optional[Sequence[str]] = None,
         resolver: Optional[ConfigResolver] = None):
    """Resolve configuration, run the batch, and exit non-zero on failures."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if len(args.flags) > len(FLAG_ORDER):
        parser.error(f"at most {len(FLAG_ORDER)} flags are accepted, got {len(args.flags)}")

    if args.generate_config:
        dest = args.config or "packer.yaml"
        if os.path.isdir(dest):
            dest = os.path.join(dest, "packer.yaml")
        PackerConfig().to_yaml(dest)
        logger.info("Generated default %s", dest)
        print(f"Generated default {dest}")
        return

    # Ensure early validation warnings from from_yaml() are visible on stderr
    # before the full logging setup.
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s")

    if args.config:
        if not os.path.exists(args.config):
            logger.error("Config file not found: %s", args.config)
            print(f"Error: Config file not found: {args.config}")
            sys.exit(1)
        try:
            config = PackerConfig.from_yaml(args.config)
        except ValueError as e:
            logger.error("Invalid config file '%s': %s", args.config, e)
            print(f"Error: Invalid config: {e}")
            sys.exit(1)
    else:
        config = PackerConfig()

    # CLI overrides
    if args.workers is not None:
        config.max_workers = args.workers
    if args.log_level:
        config.log_level = args.log_level
    if args.log_file:
        config.log_file = args.log_file

    if resolver is None:
        resolver = ConfigResolver(interactive=not (args.non_interactive or args.config))
    try:
        resolver.resolve(config, args.search_path, args.extension, args.flags)
    except ConfigurationAborted as e:
        logger.error(str(e))
        sys.exit(1)

    setup_logging(config.log_level, config.log_file or None)

    try:
        config.validate()
    except ValueError as e:
        logger.error(str(e))
        sys.exit(1)

    from .pipeline import PackerPipeline
    pipeline = PackerPipeline(config)
    try:
        report = pipeline.run()
    except FileGroupingError as e:
        logger.error("Cannot group discovered files: %s", e)
        sys.exit(1)

    print("Done!")
    if report.failed:
        sys.exit(1)


if __name__ == "__main__":
    main()
