import asyncio

from forge_server import ForgeServer
from forge_chat_client.models import PollingConfig
from forge_chat_client.session import ChatSession
from forge_chat_client.task_poller import TaskPoller


async def status_changed(task):
    print(f"Task {task.task_id} status changed to: {task.status}")


async def main():
    server = ForgeServer(
        pending_polls=3,
        result={"data": {"answer": "hello back", "tokens": [1, 2, 3]}},
    )
    await server.start()
    print(f"Server started on {server.base_url}")

    config = PollingConfig(max_attempts=10, interval=0.5)

    poller = TaskPoller(server.base_url, config, on_status_change=status_changed)
    task = await poller.submit("hello", server.api_key)
    outcome = await poller.poll(task)
    print(f"Final outcome: {outcome.kind.value} after {outcome.attempts} polls")
    print(f"Total time: {outcome.elapsed_time:.3f}s")

    server.poll_count = 0
    session = ChatSession(server.base_url, config)
    session.credential = server.api_key
    session.prompt = "hello again"
    await session.send()
    if session.error:
        print(f"Error: {session.error}")
    else:
        session.tree.expand()
        session.tree.find(["data"]).expand()
        print("\n".join(session.tree.lines()))

    await server.stop()


if __name__ == "__main__":
    asyncio.run(main())
