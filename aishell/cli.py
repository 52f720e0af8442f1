import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Callable, Optional

from aishell.agent import Agent
from aishell.config import AppConfig, load_config
from aishell.dispatcher import ToolDispatcher
from aishell.errors import AishellError, ConfigError
from aishell.executor import CommandExecutor
from aishell.log import setup_logging
from aishell.model_client import ModelClient

logger = logging.getLogger(__name__)

CLEAR_COMMAND = "clear"


# -----------------------------
# Line history
# -----------------------------

class History:
    """Best-effort readline history backed by a file."""

    def __init__(self, path: Path, max_size: int = 1_000_000):
        self.path = path
        try:
            import readline
        except ImportError:
            readline = None
        self.readline = readline
        if self.readline is not None:
            self.readline.set_history_length(max_size)

    def load(self) -> None:
        if self.readline is None:
            return
        try:
            self.readline.read_history_file(str(self.path))
        except OSError as e:
            logger.debug("no history loaded from %s: %s", self.path, e)

    def record(self, line: str) -> None:
        # input() already added the line; lines typed with a leading space stay private
        if self.readline is None or not line.startswith(" "):
            return
        n = self.readline.get_current_history_length()
        if n:
            self.readline.remove_history_item(n - 1)

    def save(self) -> None:
        if self.readline is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.readline.write_history_file(str(self.path))


# -----------------------------
# Read-eval loop
# -----------------------------

def handle_line(agent: Agent, runner: asyncio.Runner, line: str) -> None:
    if line.strip() == CLEAR_COMMAND:
        agent.clear()
        print("context cleared", file=sys.stderr)
        return
    response = runner.run(agent.turn(line))
    print(response, file=sys.stderr)


def repl(
        agent: Agent,
        runner: asyncio.Runner,
        read_line: Callable[[str], str] = input,
        history: Optional[History] = None,
) -> int:
    while True:
        prompt = f"{os.getcwd()} "
        try:
            line = read_line(prompt)
        except (EOFError, KeyboardInterrupt):
            return 0
        try:
            if history is not None:
                history.record(line)
            handle_line(agent, runner, line)
        except AishellError as e:
            logger.debug("turn failed", exc_info=True)
            print(f"error: {e}", file=sys.stderr)
        finally:
            if history is not None:
                history.save()


def build_agent(cfg: AppConfig) -> Agent:
    dispatcher = ToolDispatcher(CommandExecutor(), compress_output=cfg.compress_for_llm)
    return Agent(ModelClient.from_config(cfg), dispatcher, max_tool_rounds=cfg.max_tool_rounds)


def parse_args(argv):
    parser = argparse.ArgumentParser(prog="aishell", description="Chat with a model that can run shell commands.")
    parser.add_argument("-c", "--config", type=Path, default=None, help="path to config.yml")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ...")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    agent = build_agent(cfg)
    history = History(cfg.history_path)
    history.load()

    with asyncio.Runner() as runner:
        try:
            return repl(agent, runner, history=history)
        except KeyboardInterrupt:
            return 0


if __name__ == "__main__":
    raise SystemExit(main())
