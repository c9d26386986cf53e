from typing import Any, Dict, List, Optional

from aiohttp import web
from loguru import logger

COMPLETIONS_PATH = "/v1/asyncplanner/completions"


class ForgeServer:
    """Local stand-in for the async completions API.

    Answers ``pending_polls`` status checks with "pending", then
    ``final_status``. ``poll_error_status`` makes the ``poll_error_at``-th
    status check fail with that HTTP status.
    """

    def __init__(
        self,
        api_key: str = "key123",
        task_id: str = "abc",
        pending_polls: int = 2,
        final_status: str = "succeeded",
        result: Optional[Dict[str, Any]] = None,
        submit_error_status: Optional[int] = None,
        poll_error_status: Optional[int] = None,
        poll_error_at: int = 1,
        malformed_polls: bool = False,
    ):
        self.api_key = api_key
        self.task_id = task_id
        self.pending_polls = pending_polls
        self.final_status = final_status
        self.result = {"data": {"x": 1}} if result is None else result
        self.submit_error_status = submit_error_status
        self.poll_error_status = poll_error_status
        self.poll_error_at = poll_error_at
        self.malformed_polls = malformed_polls

        self.poll_count = 0
        self.submissions: List[Dict[str, Any]] = []
        self.request_log: List[str] = []
        self.runner: Optional[web.AppRunner] = None
        self.port: Optional[int] = None
        self.logger = logger

        self.app = web.Application()
        self.app.router.add_post(COMPLETIONS_PATH, self.handle_submit)
        self.app.router.add_get(COMPLETIONS_PATH + "/{task_id}", self.handle_status)

    @property
    def base_url(self) -> str:
        return f"http://127.0.0.1:{self.port}{COMPLETIONS_PATH}"

    def _authorized(self, request: web.Request) -> bool:
        return request.headers.get("Authorization") == f"Bearer {self.api_key}"

    async def handle_submit(self, request):
        self.request_log.append("submit")
        if not self._authorized(request):
            return web.json_response({"detail": "Invalid API key"}, status=401)
        if self.submit_error_status is not None:
            return web.json_response({"detail": "Submission rejected"}, status=self.submit_error_status)

        self.submissions.append(await request.json())
        self.logger.info(f"Accepted task {self.task_id}")
        return web.json_response({"task_id": self.task_id})

    async def handle_status(self, request):
        self.request_log.append("poll")
        self.poll_count += 1
        if not self._authorized(request):
            return web.json_response({"detail": "Invalid API key"}, status=401)
        if request.match_info["task_id"] != self.task_id:
            return web.json_response({"detail": "Unknown task"}, status=404)
        if self.poll_error_status is not None and self.poll_count >= self.poll_error_at:
            self.logger.info(f"Returning HTTP {self.poll_error_status}")
            return web.json_response({"detail": "Server error"}, status=self.poll_error_status)
        if self.malformed_polls:
            return web.Response(text="<html>gateway timeout</html>", content_type="text/html")

        if self.poll_count <= self.pending_polls:
            self.logger.info(f"Returning pending status (poll {self.poll_count})")
            return web.json_response({"metadata": {"status": "pending"}})

        self.logger.info(f"Returning {self.final_status} status")
        body: Dict[str, Any] = {"metadata": {"status": self.final_status}}
        if self.final_status == "succeeded":
            body.update(self.result)
        return web.json_response(body)

    async def start(self, port: int = 0) -> int:
        self.runner = web.AppRunner(self.app)
        await self.runner.setup()
        site = web.TCPSite(self.runner, "127.0.0.1", port)
        await site.start()
        self.port = self.runner.addresses[0][1]
        self.logger.info(f"Server started on port {self.port}")
        return self.port

    async def stop(self) -> None:
        if self.runner is not None:
            await self.runner.cleanup()
            self.runner = None
