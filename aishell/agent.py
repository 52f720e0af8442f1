import logging
from typing import Optional

from aishell.context import Context
from aishell.dispatcher import ToolDispatcher
from aishell.errors import ToolLoopLimitError
from aishell.model_client import FinalText, ModelClient

logger = logging.getLogger(__name__)


class Agent:
    """
    Owns the conversation and drives one user turn at a time:
    ask the model, run whatever tools it requests, feed the results back,
    and repeat until it answers in text.
    """

    def __init__(
            self,
            model: ModelClient,
            dispatcher: ToolDispatcher,
            context: Optional[Context] = None,
            max_tool_rounds: int = 32,
    ):
        self.model = model
        self.dispatcher = dispatcher
        self.context = context or Context()
        self.max_tool_rounds = max_tool_rounds

    def clear(self) -> None:
        self.context.reset()

    async def turn(self, text: str) -> str:
        self.context.append_user(text)
        for round_no in range(self.max_tool_rounds + 1):
            completion = await self.model.complete(self.context)
            if isinstance(completion, FinalText):
                return completion.text
            if round_no == self.max_tool_rounds:
                break

            calls = completion.tool_calls
            logger.info("round %d: model requested %d tool call(s)", round_no + 1, len(calls))
            # Decode first: a bad batch leaves no assistant message without replies.
            requests = self.dispatcher.decode(calls)
            self.context.append_assistant(calls)
            for call_id, content in await self.dispatcher.run(calls, requests):
                self.context.append_tool_result(call_id, content)

        raise ToolLoopLimitError(self.max_tool_rounds)
