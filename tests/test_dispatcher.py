import asyncio
import io
import json

import pytest

from aishell.context import ToolCallRef
from aishell.dispatcher import ExecRequest, ToolDispatcher, decode_request
from aishell.errors import ExecutionError, ProtocolError
from aishell.executor import CommandExecutor


def call(call_id, command, name="exec", **extra):
    return ToolCallRef(call_id, name, json.dumps({"command": command, **extra}))


def test_decode_defaults():
    req = decode_request(call("c1", "ls"))
    assert req == ExecRequest(command="ls", timeout=None, dangerous=False)


def test_decode_all_fields():
    req = decode_request(call("c1", "ping -c 1 localhost", timeout=5, dangerous=True))
    assert req.timeout == 5.0
    assert req.dangerous is True


@pytest.mark.parametrize("arguments", [
    "not json",
    "{}",
    "[]",
    '{"command": 42}',
    '{"command": "ls", "dangerous": "maybe"}',
    '{"command": "ls", "dangerous": "true"}',
    '{"command": "ls", "timeout": "5"}',
])
def test_decode_bad_arguments(arguments):
    with pytest.raises(ProtocolError):
        decode_request(ToolCallRef("c1", "exec", arguments))


def test_decode_accepts_any_number_as_timeout():
    assert decode_request(call("c1", "ls", timeout=-1)).timeout == -1.0
    assert decode_request(call("c2", "ls", timeout=2.5)).timeout == 2.5


def test_decode_unknown_function():
    with pytest.raises(ProtocolError, match="unknown function python"):
        decode_request(call("c1", "print(1)", name="python"))


def test_results_follow_issuance_order(fake_executor):
    ex = fake_executor(delays={"slow": 0.2, "medium": 0.1, "fast": 0})
    dispatcher = ToolDispatcher(ex)
    calls = [call("a", "slow"), call("b", "medium"), call("c", "fast")]

    results = asyncio.run(dispatcher.dispatch(calls))

    assert ex.finished == ["fast", "medium", "slow"]
    assert [call_id for call_id, _ in results] == ["a", "b", "c"]
    assert [json.loads(content)["stdout"] for _, content in results] == ["slow\n", "medium\n", "fast\n"]


def test_calls_run_concurrently(fake_executor):
    ex = fake_executor(delays={f"cmd{i}": 0.3 for i in range(5)})
    dispatcher = ToolDispatcher(ex)

    async def timed():
        loop = asyncio.get_running_loop()
        start = loop.time()
        await dispatcher.dispatch([call(str(i), f"cmd{i}") for i in range(5)])
        return loop.time() - start

    assert asyncio.run(timed()) < 1.0


def test_dangerous_call_never_reaches_executor(fake_executor):
    ex = fake_executor()
    dispatcher = ToolDispatcher(ex)
    results = asyncio.run(dispatcher.dispatch([call("a", "rm -rf /", dangerous=True), call("b", "ls")]))

    assert ex.calls == ["ls"]
    assert results[0][0] == "a"
    assert results[0][1].startswith("error: not executing dangerous command")
    assert json.loads(results[1][1])["exit_code"] == 0


def test_execution_error_is_local_to_its_call(fake_executor):
    ex = fake_executor(failures={"boom": ExecutionError("failed to spawn shell: no such file")})
    dispatcher = ToolDispatcher(ex)
    results = asyncio.run(dispatcher.dispatch([call("a", "boom"), call("b", "ls")]))

    assert results[0] == ("a", "error: failed to spawn shell: no such file")
    assert json.loads(results[1][1])["stdout"] == "ls\n"


def test_unknown_function_aborts_whole_batch(fake_executor):
    ex = fake_executor()
    dispatcher = ToolDispatcher(ex)
    with pytest.raises(ProtocolError):
        asyncio.run(dispatcher.dispatch([call("a", "ls"), call("b", "x", name="browse")]))
    assert ex.calls == []


def test_compressed_output(fake_executor):
    dispatcher = ToolDispatcher(fake_executor(), compress_output=True)
    [(_, content)] = asyncio.run(dispatcher.dispatch([call("a", "ls")]))
    assert json.loads(content)["stdout"] == "ls"


def test_unspawnable_command_is_local_to_its_call():
    executor = CommandExecutor(console_out=io.StringIO(), console_err=io.StringIO())
    dispatcher = ToolDispatcher(executor)
    calls = [
        ToolCallRef("a", "exec", '{"command": "echo a\\u0000b"}'),
        call("b", "echo ok"),
    ]

    results = asyncio.run(dispatcher.dispatch(calls))

    assert results[0][0] == "a"
    assert results[0][1].startswith("error: failed to spawn shell")
    assert results[1][0] == "b"
    assert json.loads(results[1][1]) == {"exit_code": 0, "stdout": "ok\n", "stderr": ""}
