import asyncio
import logging
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, ValidationError

from aishell.context import ToolCallRef
from aishell.errors import ExecutionError, PolicyRejection, ProtocolError
from aishell.executor import CommandExecutor

logger = logging.getLogger(__name__)

EXEC_FUNCTION = "exec"


class ExecRequest(BaseModel):
    model_config = ConfigDict(extra="ignore", strict=True)

    command: str
    timeout: Optional[float] = None
    dangerous: bool = False


def decode_request(call: ToolCallRef) -> ExecRequest:
    if call.function_name != EXEC_FUNCTION:
        raise ProtocolError(f"unknown function {call.function_name}")
    try:
        return ExecRequest.model_validate_json(call.arguments_json)
    except ValidationError as e:
        raise ProtocolError(f"invalid arguments for {call.function_name} (call {call.id}): {e}") from e


class ToolDispatcher:
    """
    Runs a batch of exec tool calls concurrently.

    Results come back in the order the calls were issued, whatever order the
    commands finish in.
    """

    def __init__(self, executor: CommandExecutor, compress_output: bool = False):
        self.executor = executor
        self.compress_output = compress_output

    def decode(self, tool_calls: List[ToolCallRef]) -> List[ExecRequest]:
        # Any bad call rejects the batch before a single command runs.
        return [decode_request(call) for call in tool_calls]

    async def run(self, tool_calls: List[ToolCallRef], requests: List[ExecRequest]) -> List[Tuple[str, str]]:
        slots: List[Optional[str]] = [None] * len(tool_calls)

        async def run_one(index: int, request: ExecRequest) -> None:
            slots[index] = await self._execute(request)

        await asyncio.gather(*(run_one(i, req) for i, req in enumerate(requests)))
        return [(call.id, content) for call, content in zip(tool_calls, slots)]

    async def dispatch(self, tool_calls: List[ToolCallRef]) -> List[Tuple[str, str]]:
        requests = self.decode(tool_calls)
        return await self.run(tool_calls, requests)

    async def _execute(self, request: ExecRequest) -> str:
        try:
            if request.dangerous:
                raise PolicyRejection(request.command)
            result = await self.executor.run(request.command, request.timeout)
        except (PolicyRejection, ExecutionError) as e:
            logger.info("tool call failed: %s", e)
            return f"error: {e}"
        return result.to_content(compress=self.compress_output)
