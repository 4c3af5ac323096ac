import asyncio
import inspect
from typing import Any, Awaitable, Callable, Optional

from loguru import logger
from scan_launcher.models import (
    Observation,
    Outcome,
    PollingConfig,
    PollingResult,
    PollingState,
    PollingUpdate,
)
from scan_launcher.status_probe import StatusProbe


class ScanPoller:
    def __init__(
        self,
        probe: StatusProbe,
        config: Optional[PollingConfig] = None,
        on_status_change: Optional[Callable[[PollingUpdate], Any]] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.probe = probe
        self.config = config or PollingConfig()
        self.on_status_change = on_status_change
        self.sleep = sleep
        self.logger = logger

    def _evaluate(self, state: PollingState, observation: Observation) -> Optional[Outcome]:
        """Returns the terminal outcome implied by the latest observation, if any"""
        if observation is Observation.finished:
            self.logger.info("Scan completed successfully!")
            return Outcome.completed

        if observation is Observation.running:
            self.logger.info("Scan in progress...")
            return None

        if state.ever_observed_running:
            self.logger.warning(
                "Scan appears to have been cancelled - previously running but now returning null"
            )
            return Outcome.cancelled

        limit = self.config.max_consecutive_indeterminate
        if state.consecutive_indeterminate >= limit:
            self.logger.warning(
                f"Scan initialization timeout after {self.config.initialization_timeout:g} seconds. "
                "Scan may have been cancelled externally before initialization completed."
            )
            return Outcome.initialization_timeout

        self.logger.info(
            f"Scan initializing... ({state.consecutive_indeterminate}/{limit} attempts with null response)"
        )
        return None

    async def _handle_status_change(
        self, update: PollingUpdate, last_observation: Optional[Observation]
    ) -> None:
        """Invoke the status change callback if the observation has changed"""
        if last_observation == update.observation or self.on_status_change is None:
            return

        self.logger.debug(f"Scan {update.scan_id} status changed to {update.observation.value}")
        result = self.on_status_change(update)
        if inspect.isawaitable(result):
            await result

    async def _wait_before_next_poll(self) -> None:
        self.logger.debug(f"Waiting {self.config.poll_interval:g}s before next attempt")
        await self.sleep(self.config.poll_interval)

    async def poll_until_complete(self, scan_id: str) -> PollingResult:
        """Poll the scan status at a fixed interval until a terminal outcome is reached"""
        start_time = asyncio.get_event_loop().time()
        state = PollingState()
        last_observation: Optional[Observation] = None

        self.logger.info(
            f"Polling every {self.config.poll_interval:g} seconds until scan completion for scanID: {scan_id}"
        )

        while state.attempts < self.config.max_attempts:
            if state.attempts > 0:
                await self._wait_before_next_poll()

            self.logger.info(f"Poll attempt {state.attempts + 1}/{self.config.max_attempts}")
            observation = await self.probe.probe(scan_id)
            state.record(observation)

            elapsed_time = asyncio.get_event_loop().time() - start_time
            await self._handle_status_change(
                PollingUpdate(
                    scan_id=scan_id,
                    observation=observation,
                    attempt=state.attempts,
                    consecutive_indeterminate=state.consecutive_indeterminate,
                    elapsed_time=elapsed_time,
                ),
                last_observation,
            )
            last_observation = observation

            outcome = self._evaluate(state, observation)
            if outcome is not None:
                return PollingResult(
                    scan_id=scan_id,
                    outcome=outcome,
                    attempts=state.attempts,
                    elapsed_time=elapsed_time,
                )

        self.logger.warning(
            f"Maximum polling attempts ({self.config.max_attempts}) reached for scanID: {scan_id}"
        )
        return PollingResult(
            scan_id=scan_id,
            outcome=Outcome.max_attempts_reached,
            attempts=state.attempts,
            elapsed_time=asyncio.get_event_loop().time() - start_time,
        )
