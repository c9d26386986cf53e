from typing import Any, Optional

from loguru import logger

from forge_chat_client.errors import (
    PollingTimeoutError,
    TaskFailureError,
    describe_error,
)
from forge_chat_client.json_tree import JsonNode, render
from forge_chat_client.models import (
    DEFAULT_BASE_URL,
    CompletionOptions,
    OutcomeKind,
    PollingConfig,
)
from forge_chat_client.task_poller import TaskPoller


class ChatSession:
    """Everything one chat form owns: inputs, the in-flight flag, and the last result or error"""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        config: Optional[PollingConfig] = None,
        options: Optional[CompletionOptions] = None,
        max_depth: Optional[int] = None,
    ):
        self.base_url = base_url
        self.config = config or PollingConfig()
        self.options = options or CompletionOptions()
        self.max_depth = max_depth
        self.logger = logger

        self.credential = ""
        self.prompt = ""
        self.response: Optional[Any] = None
        self.tree: Optional[JsonNode] = None
        self.loading = False
        self.error: Optional[str] = None
        self.poller: Optional[TaskPoller] = None

    @property
    def can_submit(self) -> bool:
        return bool(self.credential) and bool(self.prompt) and not self.loading

    def _reset(self) -> None:
        self.error = None
        self.response = None
        self.tree = None

    async def _run(self) -> Any:
        self.poller = TaskPoller(self.base_url, self.config, self.options)
        task = await self.poller.submit(self.prompt, self.credential)
        outcome = await self.poller.poll(task)

        if outcome.kind is OutcomeKind.failed:
            raise TaskFailureError(outcome.reason)
        if outcome.kind is OutcomeKind.timed_out:
            raise PollingTimeoutError(outcome.attempts)
        return outcome.payload

    async def send(self) -> Optional[Any]:
        """Runs one submission; failures end up in ``self.error`` instead of raising"""
        self._reset()
        self.loading = True
        try:
            self.response = await self._run()
            self.tree = render(self.response, max_depth=self.max_depth)
        except Exception as e:
            self.error = describe_error(e)
            self.logger.error(f"Submission failed: {self.error}")
        finally:
            self.loading = False
        return self.response

    def cancel(self) -> None:
        if self.poller is not None:
            self.poller.cancel()
