import asyncio
import json
from types import SimpleNamespace

import pytest

from aishell.executor import ExecResult


def make_tool_call(call_id, command=None, name="exec", arguments=None, **extra):
    if arguments is None:
        arguments = json.dumps({"command": command, **extra})
    return SimpleNamespace(id=call_id, type="function", function=SimpleNamespace(name=name, arguments=arguments))


def make_response(content=None, tool_calls=None, choices=True):
    if not choices:
        return SimpleNamespace(choices=[])
    message = SimpleNamespace(role="assistant", content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(index=0, message=message)])


class FakeCompletions:
    def __init__(self, responses):
        self.responses = list(responses)
        self.requests = []

    async def create(self, **kwargs):
        # snapshot: the context keeps growing after the call
        self.requests.append(json.loads(json.dumps(kwargs)))
        return self.responses.pop(0)


class FakeOpenAI:
    def __init__(self, responses):
        self.completions = FakeCompletions(responses)
        self.chat = SimpleNamespace(completions=self.completions)


class FakeExecutor:
    """Stands in for CommandExecutor; per-command delays make completion order controllable."""

    def __init__(self, delays=None, failures=None):
        self.delays = delays or {}
        self.failures = failures or {}
        self.calls = []
        self.finished = []

    async def run(self, command, timeout=None):
        self.calls.append(command)
        await asyncio.sleep(self.delays.get(command, 0))
        if command in self.failures:
            raise self.failures[command]
        self.finished.append(command)
        return ExecResult(exit_code=0, stdout=f"{command}\n", stderr="")


@pytest.fixture
def fake_openai():
    return FakeOpenAI


@pytest.fixture
def fake_executor():
    return FakeExecutor


@pytest.fixture
def tool_call():
    return make_tool_call


@pytest.fixture
def response():
    return make_response
