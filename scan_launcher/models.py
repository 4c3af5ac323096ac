import math
from enum import Enum
from fractions import Fraction
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Observation(str, Enum):
    running = "running"
    finished = "finished"
    indeterminate = "indeterminate"


class Outcome(str, Enum):
    completed = "completed"
    cancelled = "cancelled"
    initialization_timeout = "initialization_timeout"
    max_attempts_reached = "max_attempts_reached"


class PollingConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(default=100, gt=0)
    poll_interval: float = Field(default=30.0, gt=0, allow_inf_nan=False)  # seconds
    initialization_timeout: float = Field(default=300.0, gt=0, allow_inf_nan=False)  # 5 minutes

    @model_validator(mode="after")
    def _check_interval_fits_timeout(self) -> "PollingConfig":
        if self.poll_interval > self.initialization_timeout:
            raise ValueError(
                f"poll_interval ({self.poll_interval}s) exceeds "
                f"initialization_timeout ({self.initialization_timeout}s); "
                "a single null status would already time out initialization"
            )
        return self

    @property
    def max_consecutive_indeterminate(self) -> int:
        """Number of back-to-back null statuses tolerated before a scan counts as never started"""
        # Divide the decimal values as written: 1.1 / 0.1 is 11.000000000000002 in floats
        ratio = Fraction(repr(self.initialization_timeout)) / Fraction(repr(self.poll_interval))
        return math.ceil(ratio)


class PollingState(BaseModel):
    attempts: int = 0
    consecutive_indeterminate: int = 0
    ever_observed_running: bool = False

    def record(self, observation: Observation) -> None:
        self.attempts += 1
        if observation is Observation.indeterminate:
            self.consecutive_indeterminate += 1
            return

        self.consecutive_indeterminate = 0
        if observation is Observation.running:
            self.ever_observed_running = True


class PollingUpdate(BaseModel):
    scan_id: str
    observation: Observation
    attempt: int
    consecutive_indeterminate: int
    elapsed_time: float


class PollingResult(BaseModel):
    scan_id: str
    outcome: Outcome
    attempts: int
    elapsed_time: float

    @property
    def success(self) -> bool:
        return self.outcome is Outcome.completed


class CancelScanResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_canceled: bool = Field(alias="isCanceled")
    error: Optional[str] = None
    scan_id: str = Field(alias="scanId")
    previous_scan_id: Optional[str] = Field(default=None, alias="previousScanId")


class LaunchResult(BaseModel):
    started: bool
    scan_id: Optional[str] = None
    polling: Optional[PollingResult] = None
