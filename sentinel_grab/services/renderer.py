"""External tiling script invocation."""

import asyncio
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Sequence

import structlog

logger = structlog.get_logger(__name__)

DEFAULT_COMMAND = ("pwsh", "-NoProfile", "-ExecutionPolicy", "Bypass", "-File")
DEFAULT_OUTPUT_LIMIT = 4000


@dataclass
class ScriptResult:
    """Outcome of one script run."""

    exit_code: int
    stdout: str
    stderr: str
    duration_s: float

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


def truncate_output(text: Optional[str], limit: int = DEFAULT_OUTPUT_LIMIT) -> Optional[str]:
    """Keep the tail of long script output, where errors usually are."""
    if text is None or len(text) <= limit:
        return text
    return "...(truncated)\n" + text[-limit:]


def build_arguments(parameters: Mapping[str, str]) -> list[str]:
    """Render a parameter map as ``-Key value`` pairs."""
    args: list[str] = []
    for key, value in parameters.items():
        args.extend([f"-{key}", value])
    return args


class ScriptRunner:
    """Runs render scripts through an interpreter prefix such as pwsh."""

    def __init__(self, command_prefix: Sequence[str] = DEFAULT_COMMAND):
        self._command_prefix = list(command_prefix)

    async def run(self, script_path: str, parameters: Mapping[str, str]) -> ScriptResult:
        """Run a script and capture its output.

        Args:
            script_path: Script file handed to the interpreter
            parameters: Flat string parameter map

        Returns:
            ScriptResult with exit code, stdout, stderr and wall-clock duration

        Raises:
            FileNotFoundError: If the script does not exist
        """
        if not Path(script_path).is_file():
            raise FileNotFoundError(f"Script not found: {script_path}")

        cmd = self._command_prefix + [script_path] + build_arguments(parameters)
        logger.debug("script_starting", script=script_path, args=len(cmd))

        start = time.monotonic()
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout_bytes, stderr_bytes = await process.communicate()
        duration = time.monotonic() - start

        result = ScriptResult(
            exit_code=process.returncode if process.returncode is not None else -1,
            stdout=stdout_bytes.decode("utf-8", errors="replace"),
            stderr=stderr_bytes.decode("utf-8", errors="replace"),
            duration_s=duration,
        )
        logger.info(
            "script_finished",
            script=script_path,
            exit_code=result.exit_code,
            duration_s=round(duration, 1),
        )
        return result
