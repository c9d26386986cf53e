import argparse
from html import escape
from string import Template
from typing import Optional

from aiohttp import web
from loguru import logger

from forge_chat_client.json_tree import DEFAULT_HTML_MAX_DEPTH, render_html
from forge_chat_client.models import DEFAULT_BASE_URL, CompletionOptions, PollingConfig
from forge_chat_client.session import ChatSession

PAGE_TEMPLATE = Template(
    """<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>Forge API Chat</title>
  <style>
    body { font-family: sans-serif; max-width: 56rem; margin: 2rem auto; padding: 0 1rem; }
    label { display: block; font-size: 0.9rem; margin-top: 1rem; }
    input, textarea { width: 100%; box-sizing: border-box; margin-top: 0.25rem; }
    button { margin-top: 1rem; }
    .error { color: #c0392b; margin-top: 0.5rem; }
    .response { background: #f3f4f6; padding: 1rem; border-radius: 0.5rem; overflow: auto; max-height: 60vh; }
    .json-children { padding-left: 1rem; }
    .json-key { color: #2563eb; }
    .json-scalar { color: #16a34a; }
    .json-truncated { color: #6b7280; }
  </style>
</head>
<body>
  <h1>Forge API Chat</h1>
  <form id="chat-form" method="post" action="/">
    <label for="api-key">API Key</label>
    <input id="api-key" name="api_key" type="password" value="$credential" placeholder="Enter your Forge API key">
    <label for="prompt">Prompt</label>
    <textarea id="prompt" name="prompt" rows="4" placeholder="Enter your prompt here">$prompt</textarea>
    <button id="send" type="submit"$disabled>$button_label</button>
  </form>
  $error
  $response
  <script>
    const form = document.getElementById("chat-form");
    const send = document.getElementById("send");
    const fields = [document.getElementById("api-key"), document.getElementById("prompt")];
    const refresh = () => { send.disabled = fields.some((f) => !f.value); };
    fields.forEach((f) => f.addEventListener("input", refresh));
    form.addEventListener("submit", () => { send.disabled = true; send.textContent = "Processing..."; });
  </script>
</body>
</html>
"""
)


def render_page(session: ChatSession, html_max_depth: Optional[int] = DEFAULT_HTML_MAX_DEPTH) -> str:
    error = ""
    if session.error:
        error = f'<div class="error">Error: {escape(session.error)}</div>'
    response = ""
    if session.response is not None:
        response = (
            '<div class="result"><h2>Response:</h2>'
            f'<div class="response">{render_html(session.response, max_depth=html_max_depth)}</div></div>'
        )
    return PAGE_TEMPLATE.substitute(
        credential=escape(session.credential),
        prompt=escape(session.prompt),
        disabled="" if session.can_submit else " disabled",
        button_label="Processing..." if session.loading else "Send",
        error=error,
        response=response,
    )


class ForgeChatApp:
    """Serves the chat form; every page load gets its own ChatSession"""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        config: Optional[PollingConfig] = None,
        options: Optional[CompletionOptions] = None,
    ):
        self.base_url = base_url
        self.config = config or PollingConfig()
        self.options = options or CompletionOptions()
        self.runner: Optional[web.AppRunner] = None
        self.port: Optional[int] = None
        self.logger = logger
        self.app = web.Application()
        self.app.router.add_get("/", self.handle_index)
        self.app.router.add_post("/", self.handle_send)

    def new_session(self) -> ChatSession:
        return ChatSession(self.base_url, self.config, self.options)

    @staticmethod
    def _page(session: ChatSession, status: int = 200) -> web.Response:
        return web.Response(text=render_page(session), content_type="text/html", status=status)

    async def handle_index(self, request):
        return self._page(self.new_session())

    async def handle_send(self, request):
        session = self.new_session()
        form = await request.post()
        session.credential = str(form.get("api_key", "")).strip()
        # forwarded as typed, whitespace only counts as empty
        session.prompt = str(form.get("prompt", ""))
        if not session.credential or not session.prompt.strip():
            session.error = "API key and prompt are required"
            return self._page(session, status=400)

        await session.send()
        return self._page(session)

    async def start(self, host: str = "127.0.0.1", port: int = 0) -> int:
        self.runner = web.AppRunner(self.app)
        await self.runner.setup()
        site = web.TCPSite(self.runner, host, port)
        await site.start()
        self.port = self.runner.addresses[0][1]
        self.logger.info(f"Chat form served on http://{host}:{self.port}/")
        return self.port

    async def stop(self) -> None:
        if self.runner is not None:
            await self.runner.cleanup()
            self.runner = None


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Serve the Forge API chat form")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--base-url", default=DEFAULT_BASE_URL)
    parser.add_argument("--max-attempts", type=int, default=PollingConfig().max_attempts)
    parser.add_argument("--interval", type=float, default=PollingConfig().interval)
    args = parser.parse_args(argv)

    config = PollingConfig(max_attempts=args.max_attempts, interval=args.interval)
    chat = ForgeChatApp(args.base_url, config)
    web.run_app(chat.app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
