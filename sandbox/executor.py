"""
Subprocess-based bounded evaluator for untrusted snippets.
"""

from __future__ import annotations

import asyncio
import json
import logging
import math
import os
import sys
import time
import weakref
from dataclasses import dataclass
from pathlib import Path
from typing import cast

from sandbox import protocol
from sandbox.failures import TIMEOUT_MESSAGE, FailureKind, classify_exit
from sandbox.formatting import UNDEFINED, decode_value, format_value, format_write
from sandbox.policy import DEFAULT_POLICY, CapabilityPolicy

logger = logging.getLogger(__name__)


@dataclass
class ExecutionResult:
    output: str
    execution_time_ms: int
    error: str | None = None
    failure: FailureKind | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {"output": self.output}
        if self.error is not None:
            data["error"] = self.error
        data["executionTime"] = self.execution_time_ms
        return data


class SnippetExecutor:
    """
    Run one snippet per child process and race it against a fixed budget.

    Each call gets its own process and engine context, so concurrent calls
    never share an output sink. The engine stops the snippet at the budget;
    if the child still has not answered after the startup grace it is killed.
    On Unix the child also gets a CPU-time rlimit; elsewhere only the
    wall-clock deadline applies.
    """

    DEFAULT_TIMEOUT_MS: int = 5000
    DEFAULT_STARTUP_GRACE_MS: int = 1500
    DEFAULT_MAX_CONCURRENCY: int = 4
    DEFAULT_CPU_LIMIT_SLACK_S: int = 2

    def __init__(
        self,
        timeout_ms: int | None = None,
        *,
        policy: CapabilityPolicy | None = None,
        startup_grace_ms: int | None = None,
        max_concurrency: int | None = None,
        cpu_limit_slack_s: int | None = None,
    ) -> None:
        if timeout_ms is not None and timeout_ms <= 0:
            raise ValueError("timeout_ms must be positive")
        if max_concurrency is not None and max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.timeout_ms: int = self.DEFAULT_TIMEOUT_MS if timeout_ms is None else timeout_ms
        self.policy: CapabilityPolicy = policy or DEFAULT_POLICY
        self.startup_grace_ms: int = (
            self.DEFAULT_STARTUP_GRACE_MS if startup_grace_ms is None else startup_grace_ms
        )
        self.max_concurrency: int = (
            self.DEFAULT_MAX_CONCURRENCY if max_concurrency is None else max_concurrency
        )
        self.cpu_limit_slack_s: int = (
            self.DEFAULT_CPU_LIMIT_SLACK_S if cpu_limit_slack_s is None else cpu_limit_slack_s
        )
        self._slots: weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, asyncio.Semaphore] = (
            weakref.WeakKeyDictionary()
        )

    async def execute(self, source: str) -> ExecutionResult:
        """Run ``source`` and return its output or a diagnostic; never raises."""
        start = time.perf_counter()

        safe_source = self.policy.sanitize(source)
        if safe_source != source:
            logger.info("Neutralized denylisted usage: %s", ", ".join(self.policy.violations(source)))

        async with self._slots_for_running_loop():
            try:
                reply = await self._run_child(safe_source)
            except OSError as exc:
                logger.warning("Could not start sandbox child: %s", exc)
                reply = {"ok": False, "kind": FailureKind.SANDBOX.value, "error": f"Sandbox unavailable: {exc}"}

        return self._assemble(reply, start)

    def execute_sync(self, source: str) -> ExecutionResult:
        """Blocking wrapper around :meth:`execute`."""
        return asyncio.run(self.execute(source))

    def _slots_for_running_loop(self) -> asyncio.Semaphore:
        loop = asyncio.get_running_loop()
        slots = self._slots.get(loop)
        if slots is None:
            slots = asyncio.Semaphore(self.max_concurrency)
            self._slots[loop] = slots
        return slots

    async def _run_child(self, safe_source: str) -> dict[str, object]:
        payload = json.dumps({"source": safe_source, "timeout_ms": self.timeout_ms})

        env = os.environ.copy()
        project_root = str(Path(__file__).resolve().parents[1])
        existing_pythonpath = env.get("PYTHONPATH", "")
        env["PYTHONPATH"] = (
            f"{project_root}{os.pathsep}{existing_pythonpath}"
            if existing_pythonpath
            else project_root
        )

        process = await asyncio.create_subprocess_exec(
            sys.executable,
            "-c",
            protocol.CHILD_TEMPLATE,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=env,
            preexec_fn=self._limit_resources() if os.name != "nt" else None,
        )
        deadline_s = (self.timeout_ms + self.startup_grace_ms) / 1000
        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(payload.encode("utf-8")), timeout=deadline_s
            )
        except asyncio.TimeoutError:
            logger.info("Sandbox child missed its %.1fs deadline; killing it", deadline_s)
            return {"ok": False, "kind": FailureKind.TIMEOUT.value, "error": TIMEOUT_MESSAGE}
        finally:
            if process.returncode is None:
                process.kill()
                _ = await process.wait()

        if not stdout:
            kind = classify_exit(process.returncode)
            if kind is FailureKind.TIMEOUT:
                return {"ok": False, "kind": kind.value, "error": TIMEOUT_MESSAGE}
            error = stderr.decode("utf-8", errors="replace").strip() or "Empty response from sandbox"
            logger.warning("Sandbox child exited with %s: %s", process.returncode, error)
            return {"ok": False, "kind": kind.value, "error": error}

        try:
            loaded = cast(object, json.loads(stdout.decode("utf-8")))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            return {"ok": False, "kind": FailureKind.SANDBOX.value, "error": f"Invalid JSON from sandbox: {exc}"}

        if not isinstance(loaded, dict):
            return {"ok": False, "kind": FailureKind.SANDBOX.value, "error": "Invalid response type from sandbox"}
        return cast(dict[str, object], loaded)

    def _assemble(self, reply: dict[str, object], start: float) -> ExecutionResult:
        if not reply.get("ok"):
            kind = FailureKind.from_reply(reply.get("kind"))
            error_value = reply.get("error")
            error = str(error_value) if error_value is not None else "Execution failed"
            logger.info("Snippet failed (%s): %s", kind.value, error)
            return ExecutionResult(
                output="",
                error=error,
                failure=kind,
                execution_time_ms=_elapsed_ms(start),
            )

        try:
            output = self._render_output(reply)
        except (TypeError, ValueError) as exc:
            return ExecutionResult(
                output="",
                error=f"Invalid reply from sandbox: {exc}",
                failure=FailureKind.SANDBOX,
                execution_time_ms=_elapsed_ms(start),
            )
        return ExecutionResult(output=output, execution_time_ms=_elapsed_ms(start))

    @staticmethod
    def _render_output(reply: dict[str, object]) -> str:
        writes = reply.get("writes") or []
        if not isinstance(writes, list):
            raise TypeError("writes must be a list")

        recorded = "".join(format_write(cast(list[object], args)) + "\n" for args in writes)
        value = decode_value(reply.get("value", {"$sandbox": "undefined"}))
        if value is not UNDEFINED and recorded == "":
            return format_value(value).strip()
        return recorded.strip()

    def _limit_resources(self):
        """Return a preexec_fn to enforce a CPU-time limit on Unix."""
        cpu_seconds = max(1, math.ceil(self.timeout_ms / 1000) + self.cpu_limit_slack_s)

        def _apply_limits():
            try:
                import resource
            except ImportError:
                return
            # No RLIMIT_AS: the engine reserves far more address space than it uses.
            resource.setrlimit(resource.RLIMIT_CPU, (cpu_seconds, cpu_seconds + 1))

        return _apply_limits


def _elapsed_ms(start: float) -> int:
    return max(0, int((time.perf_counter() - start) * 1000))
