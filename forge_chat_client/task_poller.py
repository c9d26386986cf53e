import asyncio
import inspect
from typing import Any, Callable, Dict, Optional

import aiohttp
from loguru import logger

from forge_chat_client.errors import PollCancelledError, TransportError, transport_error_for
from forge_chat_client.models import (
    DEFAULT_BASE_URL,
    TERMINAL_STATES,
    CompletionOptions,
    OutcomeKind,
    PollerState,
    PollingConfig,
    PollOutcome,
    PollSession,
    Task,
)


def extract_status(data: Any) -> Optional[str]:
    """Reads ``metadata.status`` from a poll response, None when absent"""
    if not isinstance(data, dict):
        return None
    metadata = data.get("metadata")
    if not isinstance(metadata, dict):
        return None
    status = metadata.get("status")
    return status if isinstance(status, str) else None


class TaskPoller:
    """Submits one prompt to the async completions API and polls it to a terminal outcome.

    A poller drives exactly one task: idle -> submitting -> polling -> terminal.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        config: Optional[PollingConfig] = None,
        options: Optional[CompletionOptions] = None,
        on_status_change: Optional[Callable[[Task], Any]] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.config = config or PollingConfig()
        self.options = options or CompletionOptions()
        self.logger = logger
        self.on_status_change = on_status_change
        self.state = PollerState.idle
        self.poll_session: Optional[PollSession] = None
        self._cancel_event = asyncio.Event()

    @property
    def finished(self) -> bool:
        return self.state in TERMINAL_STATES

    def _transition(self, state: PollerState) -> None:
        if self.finished:
            raise RuntimeError(
                f"Poller already finished in state {self.state.value}, cannot move to {state.value}"
            )
        self.logger.debug(f"Poller state {self.state.value} -> {state.value}")
        self.state = state

    @staticmethod
    def _headers(credential: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {credential}"}

    async def _read_json(self, response: aiohttp.ClientResponse, url: str) -> Any:
        if not 200 <= response.status < 300:
            self.logger.error(f"HTTP error {response.status} at {url}")
            raise transport_error_for(response.status, url)
        return await response.json()

    async def submit(self, prompt: str, credential: str) -> Task:
        """Sends the prompt for asynchronous processing and returns the created task"""
        if self.state is not PollerState.idle:
            raise RuntimeError("submit() can only be called once per poller")
        self._transition(PollerState.submitting)

        body = {
            "prompt": prompt,
            "reasoning_speed": self.options.reasoning_speed,
            "track": self.options.track,
        }
        try:
            async with aiohttp.ClientSession(headers=self._headers(credential)) as session:
                async with session.post(self.base_url, json=body) as response:
                    data = await self._read_json(response, self.base_url)
            task_id = data.get("task_id") if isinstance(data, dict) else None
            if not task_id:
                raise ValueError("Submission response did not include a task_id")
        except TransportError:
            self._transition(PollerState.transport_errored)
            raise
        except Exception:
            self._transition(PollerState.errored)
            raise

        self.logger.info(f"Task {task_id} submitted")
        self._transition(PollerState.polling)
        return Task(task_id=str(task_id), credential=credential)

    def cancel(self) -> None:
        """Interrupts the wait between attempts; poll() then raises PollCancelledError"""
        self._cancel_event.set()

    async def _wait_before_attempt(self, interval: float) -> bool:
        """Waits the fixed interval, returning True if the poller was cancelled meanwhile"""
        if self._cancel_event.is_set():
            return True
        self.logger.debug(f"Waiting {interval:.2f}s before next status check")
        try:
            await asyncio.wait_for(self._cancel_event.wait(), timeout=interval)
        except asyncio.TimeoutError:
            return False
        return True

    async def _get_status_once(
        self, session: aiohttp.ClientSession, task: Task
    ) -> Any:
        url = f"{self.base_url}/{task.task_id}"
        async with session.get(url) as response:
            return await self._read_json(response, url)

    async def _handle_status_change(
        self, task: Task, last_status: Optional[str]
    ) -> None:
        """Hands the task to on_status_change whenever a poll reports a different status"""
        if last_status == task.status or self.on_status_change is None:
            return
        self.logger.debug(f"Task {task.task_id} status changed to {task.status}")
        result = self.on_status_change(task)
        if inspect.isawaitable(result):
            await result

    async def poll(
        self,
        task: Task,
        max_attempts: Optional[int] = None,
        interval: Optional[float] = None,
    ) -> PollOutcome:
        """Checks the task status at a fixed interval until it succeeds, fails or runs out of attempts"""
        if self.state is PollerState.idle:
            self._transition(PollerState.polling)
        elif self.state is not PollerState.polling:
            raise RuntimeError(f"Cannot poll from state {self.state.value}")

        max_attempts = self.config.max_attempts if max_attempts is None else max_attempts
        interval = self.config.interval if interval is None else interval
        self.poll_session = PollSession(
            task_id=task.task_id, max_attempts=max_attempts, interval=interval
        )
        start_time = asyncio.get_event_loop().time()
        last_status = None

        try:
            async with aiohttp.ClientSession(headers=self._headers(task.credential)) as session:
                while self.poll_session.attempts < max_attempts:
                    if await self._wait_before_attempt(interval):
                        self._transition(PollerState.cancelled)
                        raise PollCancelledError(task.task_id)

                    self.poll_session.attempts += 1
                    data = await self._get_status_once(session, task)
                    task.status = extract_status(data)
                    await self._handle_status_change(task, last_status)
                    last_status = task.status

                    if task.status == self.config.success_status:
                        task.result = data
                        return self._finish(
                            PollerState.succeeded,
                            OutcomeKind.succeeded,
                            start_time,
                            payload=data,
                        )
                    if task.status in self.config.failure_statuses:
                        return self._finish(
                            PollerState.failed,
                            OutcomeKind.failed,
                            start_time,
                            reason=task.status,
                        )
                    if task.status not in (None, "pending"):
                        self.logger.debug(
                            f"Treating unrecognised status {task.status!r} as pending"
                        )
        except TransportError:
            self._transition(PollerState.transport_errored)
            raise
        except PollCancelledError:
            raise
        except Exception:
            self._transition(PollerState.errored)
            raise

        return self._finish(PollerState.timed_out, OutcomeKind.timed_out, start_time)

    def _finish(
        self,
        state: PollerState,
        kind: OutcomeKind,
        start_time: float,
        payload: Any = None,
        reason: Optional[str] = None,
    ) -> PollOutcome:
        self._transition(state)
        outcome = PollOutcome(
            kind=kind,
            attempts=self.poll_session.attempts,
            payload=payload,
            reason=reason,
            elapsed_time=asyncio.get_event_loop().time() - start_time,
        )
        self.logger.info(
            f"Task {self.poll_session.task_id} finished as {kind.value} after {outcome.attempts} attempts"
        )
        return outcome
