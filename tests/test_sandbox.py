import asyncio

import pytest

from sandbox.executor import ExecutionResult, SnippetExecutor
from sandbox.failures import TIMEOUT_MESSAGE, FailureKind


def _run(code: str, **kwargs) -> ExecutionResult:
    executor = SnippetExecutor(**kwargs)
    return asyncio.run(executor.execute(code))


def test_infinite_loop_times_out():
    result = _run("while (true) {}", timeout_ms=500)
    assert result.failure is FailureKind.TIMEOUT
    assert result.error == TIMEOUT_MESSAGE
    assert result.output == ""
    assert result.execution_time_ms < 500 + SnippetExecutor.DEFAULT_STARTUP_GRACE_MS + 2000


def test_return_value_is_used_when_nothing_is_printed():
    result = _run("return 2 + 2;")
    assert result.ok
    assert result.output == "4"
    assert result.error is None


def test_printed_output_takes_precedence_over_return_value():
    result = _run('console.log("printed"); return 42;')
    assert result.output == "printed"


def test_each_console_call_is_one_line():
    result = _run('console.log("a", 1, true); console.info("b"); console.log(null, undefined);')
    assert result.output == "a 1 true\nb\nnull undefined"


def test_output_is_trimmed():
    result = _run('console.log("   padded   ");')
    assert result.output == "padded"


def test_no_output_and_no_return_value_is_empty_success():
    result = _run("let x = 1;")
    assert result.ok
    assert result.output == ""
    assert result.execution_time_ms >= 0


def test_empty_source_succeeds():
    result = _run("")
    assert result.ok
    assert result.output == ""


def test_null_return_value_is_defined():
    assert _run("return null;").output == "null"


def test_structured_return_value_is_pretty_printed():
    result = _run("return { a: 1, b: [1, 2] };")
    assert result.output == '{\n  "a": 1,\n  "b": [\n    1,\n    2\n  ]\n}'


@pytest.mark.parametrize(
    ("code", "expected"),
    [
        ("return new Date(0);", '"1970-01-01T00:00:00.000Z"'),
        ("return [1e-7];", "[\n  1e-7\n]"),
        ('return new String("x");', '"x"'),
        ("console.log({ n: 0.1 + 0.2 });", '{\n  "n": 0.30000000000000004\n}'),
    ],
)
def test_objects_print_as_the_engine_serializes_them(code, expected):
    assert _run(code).output == expected


def test_returned_promise_is_settled():
    result = _run("return Promise.resolve(3);")
    assert result.ok
    assert result.output == "3"


def test_async_output_is_recorded_until_settled():
    result = _run('return (async () => { await null; console.log("later"); })();')
    assert result.ok
    assert result.output == "later"


def test_rejected_promise_is_a_runtime_failure():
    result = _run('return Promise.reject(new Error("nope"));')
    assert result.failure is FailureKind.RUNTIME
    assert result.error == "nope"
    assert result.output == ""


def test_pending_promise_times_out():
    result = _run("return new Promise(() => {});", timeout_ms=500)
    assert result.failure is FailureKind.TIMEOUT
    assert result.error == TIMEOUT_MESSAGE


def test_explicit_zero_limits_are_rejected():
    with pytest.raises(ValueError):
        _ = SnippetExecutor(timeout_ms=0)
    with pytest.raises(ValueError):
        _ = SnippetExecutor(max_concurrency=0)


def test_cyclic_value_falls_back_to_object_marker():
    result = _run("const a = {}; a.self = a; console.log(a);")
    assert result.ok
    assert result.output == "[Object]"


def test_function_value_renders_as_marker():
    assert _run("return function () {};").output == "[Function]"


def test_syntax_error_is_reported():
    result = _run("let x = ;")
    assert result.failure is FailureKind.SYNTAX
    assert result.error
    assert result.output == ""


def test_runtime_error_carries_only_the_message():
    result = _run('console.log("before"); throw new TypeError("boom");')
    assert result.failure is FailureKind.RUNTIME
    assert result.error == "boom"
    assert result.output == ""


def test_non_error_throw_keeps_its_text():
    result = _run('throw "plain failure";')
    assert result.failure is FailureKind.RUNTIME
    assert result.error == "plain failure"


def test_denylisted_call_is_not_performed():
    code = """
const calls = [];
globalThis.fetch = function (url) { calls.push(url); return "fetched"; };
fetch("https://example.com/data");
console.log(calls.length);
"""
    result = _run(code)
    assert result.failure is None
    assert result.output == "0"


def test_globals_do_not_leak_between_executions():
    executor = SnippetExecutor()
    first = asyncio.run(executor.execute("globalThis.leaked = 1; return leaked;"))
    second = asyncio.run(executor.execute("return typeof leaked;"))
    assert first.output == "1"
    assert second.output == "undefined"


def test_concurrent_executions_keep_their_own_output():
    executor = SnippetExecutor(max_concurrency=2)

    async def run_both():
        return await asyncio.gather(
            executor.execute('for (let i = 0; i < 3; i++) console.log("first", i);'),
            executor.execute('for (let i = 0; i < 3; i++) console.log("second", i);'),
        )

    first, second = asyncio.run(run_both())
    assert first.output == "first 0\nfirst 1\nfirst 2"
    assert second.output == "second 0\nsecond 1\nsecond 2"


def test_alice_scenario():
    code = (
        'let name = "Alice"; let age = 25; '
        'console.log("My name is " + name + " and I am " + age + " years old.");'
    )
    result = SnippetExecutor().execute_sync(code)
    assert result.error is None
    assert result.output == "My name is Alice and I am 25 years old."


def test_to_dict_omits_absent_error():
    ok = ExecutionResult(output="4", execution_time_ms=12)
    failed = ExecutionResult(output="", execution_time_ms=3, error="boom", failure=FailureKind.RUNTIME)
    assert ok.to_dict() == {"output": "4", "executionTime": 12}
    assert failed.to_dict() == {"output": "", "error": "boom", "executionTime": 3}
