"""
Child process protocol for snippet execution.

The parent writes one JSON payload to the child's stdin and reads one JSON
reply from its stdout. The child owns a fresh JavaScript engine context, so
the recording console installed by the harness is never shared between calls.
"""

from __future__ import annotations

import contextlib
import io
import json
import sys
import time
from typing import cast

from py_mini_racer import JSPromise, JSTimeoutException, MiniRacer

from sandbox.failures import TIMEOUT_MESSAGE
from sandbox.policy import BLOCKED_NAME

CHILD_TEMPLATE = """
from sandbox.protocol import child_main
child_main()
""".strip()

DEFAULT_TIMEOUT_MS = 5000

_SOURCE_MARKER = "__SNIPPET_SOURCE__"

# Runs the wrapped snippet as a zero-argument unit and evaluates to one JSON
# string, or to a promise of one when the snippet returns a thenable.
# Engine builtins are captured up front so a snippet cannot break the encoder.
HARNESS_TEMPLATE = """
(function () {
  const stringify = JSON.stringify;
  const toText = String;
  const PromiseType = Promise;
  const TAG = "$sandbox";

  function encode(value) {
    if (value === undefined) return { [TAG]: "undefined" };
    if (value === null || typeof value === "string") return value;
    if (typeof value === "function") return { [TAG]: "function" };
    if (typeof value === "object") {
      try {
        return { [TAG]: "json", text: stringify(value, null, 2) };
      } catch (error) {
        return { [TAG]: "opaque" };
      }
    }
    return { [TAG]: "primitive", text: toText(value) };
  }

  function messageOf(error) {
    if (error !== null && typeof error === "object" && "message" in error) {
      return toText(error.message);
    }
    return toText(error);
  }

  function isThenable(value) {
    return value !== null
      && (typeof value === "object" || typeof value === "function")
      && typeof value.then === "function";
  }

  const writes = [];
  const record = function (...args) {
    writes.push(args.map(encode));
  };
  const recorder = { log: record, info: record, debug: record, warn: record, error: record };
  const original = globalThis.console;

  function finish(reply) {
    globalThis.console = original;
    return stringify(reply);
  }

  globalThis.__BLOCKED__ = function () {};
  globalThis.console = recorder;
  let settling = false;
  try {
    let unit;
    try {
      unit = new Function(__SNIPPET_SOURCE__);
    } catch (error) {
      return stringify({ ok: false, kind: "syntax", error: messageOf(error) });
    }
    let value;
    try {
      value = unit();
      settling = isThenable(value);
    } catch (error) {
      return stringify({ ok: false, kind: "runtime", error: messageOf(error) });
    }
    if (settling) {
      // The recording console stays installed until the promise settles.
      return PromiseType.resolve(value).then(
        (settled) => finish({ ok: true, writes: writes, value: encode(settled) }),
        (error) => finish({ ok: false, kind: "runtime", error: messageOf(error) })
      );
    }
    return stringify({ ok: true, writes: writes, value: encode(value) });
  } finally {
    if (!settling) globalThis.console = original;
  }
})()
""".strip().replace("__BLOCKED__", BLOCKED_NAME)


def wrap_source(source: str) -> str:
    """Re-throw any failure inside the snippet as a plain Error carrying only its message."""
    return (
        "try {\n"
        f"{source}\n"
        "} catch (error) {\n"
        "  throw new Error(error instanceof Error ? error.message : String(error));\n"
        "}\n"
    )


def build_harness(source: str) -> str:
    """Embed an already sanitized snippet into the execution harness."""
    literal = json.dumps(wrap_source(source))
    return HARNESS_TEMPLATE.replace(_SOURCE_MARKER, literal)


def _load_payload() -> dict[str, object]:
    raw = sys.stdin.read()
    if not raw:
        return {}
    try:
        return cast(dict[str, object], json.loads(raw))
    except json.JSONDecodeError:
        return {}


def _format_error(exc: BaseException) -> str:
    return f"{exc.__class__.__name__}: {exc}"


def run_in_engine(source: str, timeout_ms: int) -> dict[str, object]:
    """Evaluate a sanitized snippet in a fresh engine context and return the reply.

    A snippet that returns a promise is settled within the same budget.
    """
    context = MiniRacer()
    stray_output = io.StringIO()
    start = time.perf_counter()
    try:
        with contextlib.redirect_stdout(stray_output):
            raw = context.eval(build_harness(source), timeout=timeout_ms)
            if isinstance(raw, JSPromise):
                remaining_ms = max(timeout_ms - (time.perf_counter() - start) * 1000, 0)
                raw = raw.get(timeout=remaining_ms / 1000)
    except JSTimeoutException:
        return {"ok": False, "kind": "timeout", "error": TIMEOUT_MESSAGE}

    if not isinstance(raw, str):
        return {"ok": False, "kind": "sandbox", "error": "Harness returned no reply"}
    return cast(dict[str, object], json.loads(raw))


def child_main() -> None:
    """Entry point for the sandbox child process."""
    start = time.perf_counter()
    payload = _load_payload()
    source = str(payload.get("source", ""))
    timeout_value = payload.get("timeout_ms", DEFAULT_TIMEOUT_MS)
    timeout_ms = int(timeout_value) if isinstance(timeout_value, (int, float, str)) else DEFAULT_TIMEOUT_MS

    response: dict[str, object]
    try:
        response = run_in_engine(source, timeout_ms)
    except BaseException as exc:  # noqa: BLE001 - every child failure becomes a reply
        response = {"ok": False, "kind": "sandbox", "error": _format_error(exc)}

    response["runtime_ms"] = (time.perf_counter() - start) * 1000
    _ = sys.stdout.write(json.dumps(response))


if __name__ == "__main__":
    child_main()
