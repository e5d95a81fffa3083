"""Run the directory processor over a whole texture tree.

`PackerPipeline` enumerates textures, groups them per directory and fans the
directories out over a thread pool, collecting one result per unit.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from tqdm import tqdm

from .config import PackerConfig, DEFAULT_EXTENSION, normalize_extension
from .core import (
    DirectoryFileSet,
    Flow,
    UnitResult,
    UnitStatus,
    build_file_sets,
    list_texture_files,
)
from .processor import DirectoryProcessor

logger = logging.getLogger("orm_packer")


@dataclass
class BatchReport:
    """Aggregated outcome of one batch run."""

    results: List[UnitResult] = field(default_factory=list)
    directories: int = 0
    files_found: int = 0
    elapsed_ms: int = 0

    def count(self, status: UnitStatus) -> int:
        return sum(1 for r in self.results if r.status is status)

    @property
    def succeeded(self) -> int:
        return self.count(UnitStatus.SUCCEEDED)

    @property
    def skipped(self) -> int:
        return self.count(UnitStatus.SKIPPED)

    @property
    def failed(self) -> int:
        return self.count(UnitStatus.FAILED)

    @property
    def failures(self) -> List[UnitResult]:
        return [r for r in self.results if r.failed]

    def for_directory(self, directory: str) -> List[UnitResult]:
        return [r for r in self.results if r.directory == directory]


class PackerPipeline:
    """Batch orchestrator: scan -> group -> process directories in parallel."""

    def __init__(self, config: PackerConfig,
                 processor: Optional[DirectoryProcessor] = None):
        """Bind the run configuration and the per-directory processor."""
        self.config = config
        self.processor = processor or DirectoryProcessor(config)

    def scan(self) -> List[str]:
        """List texture files under the configured search path."""
        extension = normalize_extension(self.config.extension) or DEFAULT_EXTENSION
        return list_texture_files(self.config.search_path, extension)

    def _process_file_set(self, file_set: DirectoryFileSet) -> List[UnitResult]:
        return self.processor.process(file_set)

    def run(self, paths: Optional[Iterable[str]] = None) -> BatchReport:
        """Process every directory and return the collected results.

        ``paths`` defaults to a fresh scan of ``config.search_path``. A path
        without a directory component raises ``FileGroupingError`` before any
        work starts; after that no single directory can abort the batch.
        """
        paths = list(paths) if paths is not None else self.scan()
        file_sets = build_file_sets(paths)
        report = BatchReport(directories=len(file_sets), files_found=len(paths))

        start = time.perf_counter()
        if file_sets:
            workers = max(1, min(int(self.config.max_workers), len(file_sets)))
            with ThreadPoolExecutor(max_workers=workers) as executor:
                futures = {
                    executor.submit(self._process_file_set, fs): fs
                    for fs in file_sets
                }
                with tqdm(total=len(futures), desc="Directories", unit="dir") as pbar:
                    for future in as_completed(futures):
                        file_set = futures[future]
                        try:
                            report.results.extend(future.result())
                        except Exception as e:
                            logger.error(
                                "Failed %s: %s", file_set.directory, e, exc_info=True,
                            )
                            report.results.append(UnitResult(
                                file_set.directory, Flow.DIRECTORY, UnitStatus.FAILED,
                                message=f"Error processing {file_set.directory}: {e}",
                                error=str(e),
                            ))
                        pbar.update(1)
        report.elapsed_ms = int((time.perf_counter() - start) * 1000)

        self._log_summary(report)
        return report

    @staticmethod
    def _log_summary(report: BatchReport):
        logger.info(
            f"directories={report.directories}, succeeded={report.succeeded}, "
            f"skipped={report.skipped}, errors={report.failed}"
        )
        logger.info(f"Took {report.elapsed_ms} ms")
