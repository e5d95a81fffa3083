"""Per-unit processing outcome records."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class UnitStatus(Enum):
    """Terminal state of one processing unit."""

    SKIPPED = "skipped"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class Flow(Enum):
    """Sub-flow of the directory processor that produced a result."""

    INDIVIDUAL = "individual"
    ORM = "orm"
    DIRECTORY = "directory"


@dataclass
class UnitResult:
    """Outcome of one directory sub-flow or one ORM file."""

    directory: str
    flow: Flow
    status: UnitStatus
    source: Optional[str] = None
    outputs: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    message: str = ""
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.status is UnitStatus.FAILED

    @property
    def skipped(self) -> bool:
        return self.status is UnitStatus.SKIPPED
