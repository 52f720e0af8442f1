from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

SYSTEM_PROMPT = (
    "Use the exec tool to run bash commands that correspond to the user's request. "
    "These will be run in a child process, so e.g. 'cd' will not persist outside your command. "
    "Don't hesitate to run multiple tool commands. "
    "When you've received the results, add an explanation."
)


@dataclass
class ToolCallRef:
    id: str
    function_name: str
    arguments_json: str

    def to_openai(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.function_name, "arguments": self.arguments_json},
        }


@dataclass
class Message:
    role: str
    content: Optional[str] = None
    tool_calls: List[ToolCallRef] = field(default_factory=list)
    tool_call_id: Optional[str] = None

    def to_openai(self) -> Dict[str, Any]:
        msg: Dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_calls:
            msg["tool_calls"] = [call.to_openai() for call in self.tool_calls]
        if self.tool_call_id is not None:
            msg["tool_call_id"] = self.tool_call_id
        return msg


class Context:
    """
    Conversation log sent to the model on every request.

    Callers keep the ordering contract: tool results follow the assistant
    message that issued their calls.
    """

    def __init__(self, system_prompt: str = SYSTEM_PROMPT):
        self.system_prompt = system_prompt
        self.messages: List[Message] = []
        self.reset()

    def reset(self) -> None:
        self.messages = [Message(role="system", content=self.system_prompt)]

    def append_user(self, text: str) -> None:
        self.messages.append(Message(role="user", content=text))

    def append_assistant(self, tool_calls: List[ToolCallRef]) -> None:
        self.messages.append(Message(role="assistant", tool_calls=list(tool_calls)))

    def append_tool_result(self, call_id: str, content: str) -> None:
        self.messages.append(Message(role="tool", content=content, tool_call_id=call_id))

    def to_openai(self) -> List[Dict[str, Any]]:
        return [m.to_openai() for m in self.messages]

    def __len__(self) -> int:
        return len(self.messages)
