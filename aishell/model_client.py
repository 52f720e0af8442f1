import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Union

import openai

from aishell.config import AppConfig
from aishell.context import Context, ToolCallRef
from aishell.errors import ServiceError

logger = logging.getLogger(__name__)


def build_exec_tool() -> Dict[str, Any]:
    return {
        "type": "function",
        "function": {
            "name": "exec",
            "description": "execute a bash command",
            "parameters": {
                "type": "object",
                "properties": {
                    "command": {
                        "type": "string",
                        "description": "The bash command to execute, e.g. `ping -c 1 127.0.0.1`",
                    },
                    "timeout": {
                        "type": "number",
                        "description": "Timeout in seconds for this bash command (default: 10 seconds)",
                    },
                    "dangerous": {
                        "type": "boolean",
                        "description": (
                            "Is this command potentially dangerous? "
                            "Commands flagged as dangerous are refused and will not be executed."
                        ),
                    },
                },
                "required": ["command"],
            },
        },
    }


@dataclass
class FinalText:
    text: str


@dataclass
class ToolRequest:
    tool_calls: List[ToolCallRef]


Completion = Union[FinalText, ToolRequest]


class ModelClient:
    def __init__(self, client: Any, model: str, max_completion_tokens: int = 4096, show_raw: bool = False):
        self.client = client
        self.model = model
        self.max_completion_tokens = max_completion_tokens
        self.show_raw = show_raw
        self.tools = [build_exec_tool()]

    @classmethod
    def from_config(cls, cfg: AppConfig) -> "ModelClient":
        client_kwargs: Dict[str, Any] = {"api_key": cfg.api_key}
        if cfg.base_url:
            client_kwargs["base_url"] = cfg.base_url
        return cls(
            openai.AsyncOpenAI(**client_kwargs),
            model=cfg.model,
            max_completion_tokens=cfg.max_completion_tokens,
            show_raw=cfg.show_raw_model_json,
        )

    async def complete(self, context: Context) -> Completion:
        """Issue one chat request for the whole context; never loops on tool calls."""
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                max_completion_tokens=self.max_completion_tokens,
                messages=context.to_openai(),
                tools=self.tools,
            )
        except openai.OpenAIError as e:
            raise ServiceError(f"chat request failed: {e}") from e

        if not response.choices:
            raise ServiceError("empty response (`choices` is empty)")
        message = response.choices[0].message
        logger.debug("< %r", message)
        if self.show_raw:
            print(json.dumps(message.model_dump(exclude_none=True), indent=2, ensure_ascii=False))

        if message.tool_calls:
            return ToolRequest([
                ToolCallRef(id=call.id, function_name=call.function.name, arguments_json=call.function.arguments)
                for call in message.tool_calls
            ])
        if message.content is None:
            raise ServiceError("no content in response message")
        return FinalText(message.content)
