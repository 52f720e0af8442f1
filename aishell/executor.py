import asyncio
import json
import logging
import sys
from dataclasses import dataclass
from typing import Optional, TextIO

from aishell.errors import ExecutionError
from aishell.output import compress_for_llm

logger = logging.getLogger(__name__)

SHELL_PREFIX = ["/usr/bin/env", "bash", "-c"]


@dataclass
class ExecResult:
    exit_code: int
    stdout: str
    stderr: str

    def to_content(self, compress: bool = False) -> str:
        stdout, stderr = self.stdout, self.stderr
        if compress:
            stdout = compress_for_llm(stdout)
            stderr = compress_for_llm(stderr)
        return json.dumps(
            {"exit_code": self.exit_code, "stdout": stdout, "stderr": stderr},
            ensure_ascii=False,
        )


class CommandExecutor:
    """
    Runs one command in a fresh bash process and captures its output.

    Captured output is echoed to the console so the operator sees what the
    model sees.
    """

    def __init__(self, console_out: Optional[TextIO] = None, console_err: Optional[TextIO] = None):
        self.console_out = console_out
        self.console_err = console_err

    async def run(self, command: str, timeout: Optional[float] = None) -> ExecResult:
        out = self.console_out or sys.stdout
        err = self.console_err or sys.stderr

        if timeout is not None:
            # TODO: kill the process group once timeouts are enforced
            logger.warning("timeout: %s seconds (not enforced)", timeout)

        print(f":: {command}", file=err)
        try:
            proc = await asyncio.create_subprocess_exec(
                *SHELL_PREFIX,
                command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (OSError, ValueError, UnicodeError) as e:
            raise ExecutionError(f"failed to spawn shell: {e}") from e
        try:
            raw_out, raw_err = await proc.communicate()
        except OSError as e:
            raise ExecutionError(f"failed to wait for command: {e}") from e

        result = ExecResult(
            exit_code=proc.returncode,
            stdout=raw_out.decode("utf-8", errors="replace"),
            stderr=raw_err.decode("utf-8", errors="replace"),
        )
        out.write(result.stdout)
        out.flush()
        err.write(result.stderr)
        err.flush()
        logger.debug("command %r exited with %s", command, result.exit_code)
        return result
