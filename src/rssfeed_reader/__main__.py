"""Entry point for RSS Feed Reader: python -m rssfeed_reader"""

import asyncio
import logging
import os
import uuid

from langchain_core.messages import HumanMessage

from rssfeed_reader.agent import create_agent
from rssfeed_reader.fetcher import FeedFetcher
from rssfeed_reader.poller import start_polling
from rssfeed_reader.repository import FeedRepository
from rssfeed_reader.storage import DEFAULT_NAMESPACE, SqliteStore
from rssfeed_reader.tools import set_repository

DEFAULT_DB_PATH = "rssfeed_reader.db"
CHECKPOINT_DB_PATH = "rssfeed_reader_checkpoints.db"

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(message)s",
    datefmt="%H:%M:%S",
)
# Quiet noisy loggers
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("langchain").setLevel(logging.WARNING)


async def chat_loop(agent, config: dict) -> None:
    """Run the interactive chat loop."""
    print("RSS Feed Reader ready! Type your message (Ctrl+C to quit).\n")

    while True:
        try:
            user_input = await asyncio.to_thread(input, "You: ")
        except EOFError:
            break

        if not user_input.strip():
            continue

        try:
            response = await asyncio.to_thread(
                agent.invoke,
                {"messages": [HumanMessage(content=user_input)]},
                config,
            )

            last_message = response["messages"][-1]
            print(f"\nAgent: {last_message.content}\n")
        except Exception as e:
            error_msg = str(e)
            if "tool_use" in error_msg and "tool_result" in error_msg:
                # Corrupted checkpoint, start a fresh thread
                config["configurable"]["thread_id"] = uuid.uuid4().hex
                print("\nAgent: Sorry, I had an issue with my memory. Let me start fresh. Please try again.\n")
            else:
                print(f"\nAgent: Sorry, I encountered an error: {error_msg}\n")


async def main() -> None:
    """Initialize and run the RSS Feed Reader."""
    db_path = os.environ.get("RSS_DB_PATH", DEFAULT_DB_PATH)
    namespace = os.environ.get("RSS_STORE_NAMESPACE", DEFAULT_NAMESPACE)
    checkpoint_path = os.environ.get("RSS_CHECKPOINT_PATH", CHECKPOINT_DB_PATH)

    store = SqliteStore(db_path, namespace=namespace)
    store.connect()
    fetcher = FeedFetcher()
    repository = FeedRepository(store, fetcher)
    set_repository(repository, asyncio.get_running_loop())

    agent = create_agent(checkpoint_db_path=checkpoint_path)

    # Each session gets a fresh thread to avoid corrupted checkpoint issues
    thread_id = uuid.uuid4().hex
    config = {"configurable": {"thread_id": thread_id}}

    poller_task = asyncio.create_task(start_polling(repository))

    try:
        await chat_loop(agent, config)
    except KeyboardInterrupt:
        print("\nGoodbye!")
    finally:
        poller_task.cancel()
        try:
            await poller_task
        except asyncio.CancelledError:
            pass
        await fetcher.aclose()
        store.close()


def run() -> None:
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
