"""LangGraph agent definition for RSS Feed Reader."""

import json
import logging
import os
import sqlite3
from typing import Literal

from langchain_anthropic import ChatAnthropic
from langchain_core.messages import AIMessage, SystemMessage, ToolMessage
from langgraph.checkpoint.sqlite import SqliteSaver
from langgraph.graph import END, START, MessagesState, StateGraph

from rssfeed_reader.tools import (
    get_items,
    list_feeds,
    mark_as_read,
    mark_as_unread,
    refresh_feeds,
    set_feed_active,
    subscribe_to_feed,
    unsubscribe_from_feed,
)

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-5-20250929"

SYSTEM_PROMPT = """You are an RSS Feed Reader assistant that keeps track of the user's feed subscriptions and reading progress.

You help users:
- Subscribe to RSS and Atom feeds by URL
- Read their latest feed items, newest first
- List, pause, resume and remove their subscriptions
- Check feeds for new items on demand
- Mark items as read or unread to track what they've consumed

When a user wants to subscribe to a feed, use the subscribe_to_feed tool with the URL they provide, and the title if they give one.
When a user asks to see items, news, or what's new, use the get_items tool. You can filter by a specific feed (by title or URL) and by unread items only.
When a user asks to see their feeds or subscriptions, use the list_feeds tool.
When a user wants to unsubscribe or remove a feed, use the unsubscribe_from_feed tool with the feed title or URL.
When a user wants to check for new items right now, use the refresh_feeds tool, with a feed title or URL to refresh just that feed.
When a user wants to pause or resume a feed, use the set_feed_active tool. Paused feeds keep their items but are not refreshed.
When a user wants to mark items as read, use the mark_as_read tool. You can mark specific item IDs or all items from a feed.
When a user wants to mark items as unread, use the mark_as_unread tool with the item IDs.
Feed auto-discovery is not supported: if the user gives a website URL instead of a feed URL, ask them for the feed URL.
When the user's intent is unclear, ask a clarifying question rather than guessing.
Present feed items in a readable format: title, link, date, and a brief summary.
Be concise but informative in your responses."""

TOOLS = [
    subscribe_to_feed,
    get_items,
    list_feeds,
    unsubscribe_from_feed,
    refresh_feeds,
    set_feed_active,
    mark_as_read,
    mark_as_unread,
]


def _run_tool_call(tools_by_name: dict, tool_call: dict) -> ToolMessage:
    """Execute one tool call. Failures go back to the model as error results."""
    tool = tools_by_name.get(tool_call["name"])
    if tool is None:
        content = json.dumps({"status": "error", "message": f"Unknown tool '{tool_call['name']}'"})
        return ToolMessage(content=content, tool_call_id=tool_call["id"], status="error")

    try:
        result = tool.invoke(tool_call["args"])
    except Exception as e:
        logger.exception("Tool %s failed", tool_call["name"])
        content = json.dumps({"status": "error", "message": str(e)})
        return ToolMessage(content=content, tool_call_id=tool_call["id"], status="error")
    return ToolMessage(content=str(result), tool_call_id=tool_call["id"])


def build_graph(model, tools: list) -> StateGraph:
    """Wire the reader's agent loop: the model answers or calls tools until done.

    Args:
        model: A chat model supporting ``bind_tools``.
        tools: Tools the model may call.

    Returns:
        The uncompiled graph.
    """
    bound = model.bind_tools(tools) if tools else model
    tools_by_name = {tool.name: tool for tool in tools}

    def agent_node(state: MessagesState):
        response = bound.invoke([SystemMessage(content=SYSTEM_PROMPT), *state["messages"]])
        return {"messages": [response]}

    def tool_node(state: MessagesState):
        calls = state["messages"][-1].tool_calls
        return {"messages": [_run_tool_call(tools_by_name, call) for call in calls]}

    def route(state: MessagesState) -> Literal["tool_node", "__end__"]:
        last = state["messages"][-1]
        if isinstance(last, AIMessage) and last.tool_calls:
            return "tool_node"
        return END

    graph = StateGraph(MessagesState)
    graph.add_node("agent_node", agent_node)
    graph.add_node("tool_node", tool_node)
    graph.add_edge(START, "agent_node")
    graph.add_conditional_edges("agent_node", route, ["tool_node", END])
    graph.add_edge("tool_node", "agent_node")
    return graph


def create_agent(
    checkpoint_db_path: str = "rssfeed_reader_checkpoints.db",
    tools: list | None = None,
    model=None,
):
    """Create the compiled reader agent.

    Conversation state is checkpointed in its own SQLite file. The chat
    model defaults to Anthropic, named by ``RSS_AGENT_MODEL``.
    """
    if model is None:
        model = ChatAnthropic(
            model=os.environ.get("RSS_AGENT_MODEL", DEFAULT_MODEL),
            temperature=0,
        )
    graph = build_graph(model, TOOLS if tools is None else tools)
    checkpointer = SqliteSaver(sqlite3.connect(checkpoint_db_path, check_same_thread=False))
    return graph.compile(checkpointer=checkpointer)
