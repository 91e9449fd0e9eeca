"""Run student Python code in a subprocess with a timeout and an output cap."""

import asyncio
import logging
import os
import tempfile
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

NO_OUTPUT = "> Program executed (no output)"

_READ_SIZE = 64 * 1024


class CodeRejectedError(ValueError):
    """Submitted code is empty or too large."""

    pass


class CodeTimeoutError(Exception):
    """Program did not finish within the time limit."""

    pass


@dataclass(frozen=True)
class RunResult:
    """Outcome of one program run."""

    output: str
    returncode: int
    truncated: bool = False


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


async def _read_capped(
    stream: asyncio.StreamReader, cap: int, on_overflow: Callable[[], None]
) -> tuple[bytes, bool]:
    """Read ``stream`` to EOF, keeping at most ``cap`` bytes.

    Calls ``on_overflow`` as soon as the cap is exceeded and stops reading.
    """
    data = bytearray()
    while True:
        chunk = await stream.read(_READ_SIZE)
        if not chunk:
            return bytes(data), False
        data.extend(chunk)
        if len(data) > cap:
            on_overflow()
            return bytes(data[:cap]), True


async def _feed(stream: asyncio.StreamWriter, data: bytes) -> None:
    try:
        if data:
            stream.write(data)
            await stream.drain()
    except (BrokenPipeError, ConnectionResetError):
        # Program exited without reading its input
        logger.debug("Program closed stdin early")
    finally:
        stream.close()


async def run_python(
    code: str,
    stdin: str = "",
    *,
    python_executable: str = "python3",
    timeout_seconds: float = 10.0,
    max_code_chars: int = 10000,
    max_output_bytes: int = 1024 * 1024,
) -> RunResult:
    """Run ``code`` as a script and collect what it printed.

    The reply is stdout if there is any, else stderr, else a fixed
    "no output" marker.

    Args:
        code: Python source
        stdin: Text fed to the program's standard input
        python_executable: Interpreter to launch
        timeout_seconds: Wall-clock limit for the run
        max_code_chars: Largest accepted source
        max_output_bytes: Bytes kept from each output stream

    Raises:
        CodeRejectedError: If ``code`` is empty or longer than ``max_code_chars``
        CodeTimeoutError: If the program runs longer than ``timeout_seconds``
    """
    if not code or not code.strip():
        raise CodeRejectedError("No code provided")
    if len(code) > max_code_chars:
        raise CodeRejectedError(f"Invalid code: must be under {max_code_chars} characters")

    fd, path = tempfile.mkstemp(prefix="haskify-", suffix=".py")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(code)

        proc = await asyncio.create_subprocess_exec(
            python_executable,
            path,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        assert proc.stdin is not None and proc.stdout is not None and proc.stderr is not None
        writer, out_stream, err_stream = proc.stdin, proc.stdout, proc.stderr

        def kill() -> None:
            if proc.returncode is None:
                proc.kill()

        async def collect() -> tuple[tuple[bytes, bool], tuple[bytes, bool]]:
            _, out, err = await asyncio.gather(
                _feed(writer, stdin.encode("utf-8")),
                _read_capped(out_stream, max_output_bytes, kill),
                _read_capped(err_stream, max_output_bytes, kill),
            )
            await proc.wait()
            return out, err

        try:
            (stdout, out_truncated), (stderr, err_truncated) = await asyncio.wait_for(
                collect(), timeout=timeout_seconds
            )
        except asyncio.TimeoutError as e:
            kill()
            await proc.wait()
            logger.info(f"Program killed after {timeout_seconds}s")
            raise CodeTimeoutError("Execution timed out") from e
    finally:
        os.unlink(path)

    if out_truncated or err_truncated:
        logger.info(f"Program killed after exceeding {max_output_bytes} output bytes")

    out = _decode(stdout)
    err = _decode(stderr)

    if out:
        return RunResult(output=out, returncode=proc.returncode or 0, truncated=out_truncated)
    if err:
        return RunResult(output=err, returncode=proc.returncode or 0, truncated=err_truncated)
    return RunResult(output=NO_OUTPUT, returncode=proc.returncode or 0)
