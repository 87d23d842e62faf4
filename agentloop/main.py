"""
agentloop - Main Entry Point
============================

Interactive terminal chat with a tool-using agent. It:
1. Loads configuration
2. Prepares skills, reference documents and tool servers
3. Creates the agent
4. Reads prompts until the user leaves

Commands at the prompt:
    exit, quit   leave
    /reset       forget the conversation
    /tools       list the tools the model can call

Run with:
    python -m agentloop.main

Or after installing:
    agentloop

Logs go to stderr; stdout only carries the conversation.
"""

import asyncio
import signal
import sys
import threading

from agentloop.agent import Agent, OpenAIChatTransport
from agentloop.errors import AgentError, ConfigError
from agentloop.rag import RAGRetriever
from agentloop.skills import SkillManager
from agentloop.tools.mcp_client import provider_from_config
from agentloop.utils.config import Config, get_config, load_server_configs
from agentloop.utils.logger import Logger, set_log_level

main_logger = Logger("Main")

EXIT_COMMANDS = {"exit", "quit"}
PROMPT = "\nYou: "


class _StreamPrinter:
    """Echoes streamed model text to stdout as it arrives."""

    def __init__(self):
        self.printed = False

    def __call__(self, text: str) -> None:
        if not self.printed:
            print("\nAssistant: ", end="", flush=True)
            self.printed = True
        print(text, end="", flush=True)

    def finish(self, answer: str) -> None:
        if self.printed:
            print()
        elif answer:
            print(f"\nAssistant: {answer}")
        else:
            print("\nAssistant: (no answer)")
        self.printed = False


async def build_agent(config: Config, printer: _StreamPrinter | None = None) -> Agent:
    """
    Wire an Agent from configuration.

    Args:
        config: Loaded configuration
        printer: Receives streamed text (None = no live echo)
    """
    transport = OpenAIChatTransport.from_config(config, on_text=printer)

    server_configs = load_server_configs(config.mcp.servers_file)
    providers = [provider_from_config(server) for server in server_configs]
    main_logger.info(f"Tool servers configured: {len(providers)}")

    skills = None
    if config.skills.enabled:
        skills = SkillManager(config.skills.directory)
        skills.load_skills()

    retriever = None
    if config.rag.enabled:
        retriever = await _prepare_retriever(config)

    return await Agent.create(
        transport,
        providers,
        system_prompt=config.agent.system_prompt,
        max_iterations=config.agent.max_iterations,
        skills=skills,
        auto_inject_skills=config.skills.auto_inject,
        retriever=retriever,
        rag_top_k=config.rag.top_k,
    )


async def _prepare_retriever(config: Config) -> RAGRetriever:
    """
    Build the retriever, from a saved store when there is one.

    Documents are indexed only when no saved store exists, and the fresh
    index is saved for the next start.
    """
    retriever = RAGRetriever.from_config(config)
    store_path = config.rag.store_path
    docs_path = config.rag.docs_path

    if store_path is not None and store_path.exists():
        count = retriever.load(store_path)
        main_logger.info(f"Loaded {count} chunks from {store_path}")
        return retriever

    if docs_path is None:
        main_logger.warning("RAG is enabled but RAG_DOCS_PATH is not set; nothing to retrieve")
        return retriever

    try:
        count = await retriever.index_path(docs_path)
    except FileNotFoundError as e:
        main_logger.error("Document indexing skipped", e)
        return retriever

    main_logger.info(f"Indexed {count} chunks from {docs_path}")
    if store_path is not None and count:
        retriever.save(store_path)

    return retriever


def _start_stdin_reader(queue: asyncio.Queue) -> None:
    """Feed stdin lines into the queue from a daemon thread ("" means EOF)."""
    loop = asyncio.get_running_loop()

    def read_lines():
        while True:
            line = sys.stdin.readline()
            try:
                loop.call_soon_threadsafe(queue.put_nowait, line)
            except RuntimeError:
                # Event loop already closed
                return
            if not line:
                return

    threading.Thread(target=read_lines, name="stdin-reader", daemon=True).start()


async def _prompt_loop(agent: Agent, printer: _StreamPrinter) -> None:
    queue: asyncio.Queue[str] = asyncio.Queue()
    _start_stdin_reader(queue)

    while True:
        print(PROMPT, end="", flush=True)
        line = await queue.get()
        if not line:
            print()
            return

        text = line.strip()
        if not text:
            continue
        if text.lower() in EXIT_COMMANDS:
            return

        if text == "/reset":
            agent.reset_transcript()
            print("Conversation cleared.")
            continue
        if text == "/tools":
            names = agent.tool_names
            print("\n".join(f"  {name}" for name in names) if names else "No tools available.")
            continue

        try:
            answer = await agent.send_message(text)
        except AgentError as e:
            main_logger.error("Turn failed", e)
            printer.printed = False
            print(f"\nError: {e}")
            continue

        printer.finish(answer)


async def main():
    """
    Main async entry point.

    Builds the agent and runs the prompt loop until exit, EOF or a signal.
    """
    try:
        config = get_config()
    except ConfigError as e:
        main_logger.error("Invalid configuration", e)
        sys.exit(1)

    set_log_level(config.log_level)
    main_logger.info("Starting agentloop...")

    printer = _StreamPrinter()
    try:
        agent = await build_agent(config, printer)
    except AgentError as e:
        main_logger.error("Failed to start agent", e)
        sys.exit(1)

    # Ctrl+C / SIGTERM stop the prompt loop; the session still ends cleanly
    main_task = asyncio.current_task()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, main_task.cancel)
        except NotImplementedError:
            pass

    unavailable = agent.registry.unavailable
    if unavailable:
        print(f"Unavailable tool servers: {', '.join(unavailable)}")
    print("agentloop is ready. Type 'exit' to quit, '/tools' to list tools.")

    try:
        await _prompt_loop(agent, printer)
    except asyncio.CancelledError:
        main_logger.info("Received interrupt signal")
    finally:
        main_logger.info("Shutting down...")
        await agent.end_session()
        main_logger.info("Shutdown complete")


def run():
    """
    Synchronous entry point.

    This is called when running with the `agentloop` command.
    """
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
