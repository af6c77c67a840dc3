"""curlcap executor - run curl for a Request and decode the result."""

from __future__ import annotations

import asyncio
import contextlib
import time

from curlcap.decoder import WRITE_OUT_FORMAT, decode
from curlcap.encoder import build_args, build_command
from curlcap.errors import (
    CurlExitError,
    CurlLaunchError,
    ExecutorBusyError,
    RequestCancelledError,
    RequestTimeoutError,
    ResponseDecodeError,
)
from curlcap.log import get_logger
from curlcap.models import ExecutionOptions, Request, Response

logger = get_logger(__name__)

# Extra wait on top of --max-time so curl can report its own timeout first.
TIMEOUT_BUFFER_S = 1.0

# -i: headers inline with the body, -s: no progress meter, -S: still show errors
INSTRUMENTATION_ARGS = ["-w", WRITE_OUT_FORMAT, "-i", "-s", "-S"]

CURL_ERRORS = {
    1: "Unsupported protocol",
    2: "Failed to initialize",
    3: "URL malformed",
    5: "Could not resolve proxy",
    6: "Could not resolve host",
    7: "Failed to connect to host",
    22: "HTTP error returned",
    23: "Write error",
    26: "Read error",
    27: "Out of memory",
    28: "Operation timed out",
    33: "Range error",
    34: "HTTP post error",
    35: "SSL connect error",
    47: "Too many redirects",
    51: "SSL peer certificate error",
    52: "No response from server",
    55: "Network send failed",
    56: "Network receive failed",
    58: "SSL local certificate error",
    60: "SSL certificate problem",
    77: "SSL CA cert error",
    78: "Remote file not found",
}

IDLE = "idle"
RUNNING = "running"
COMPLETED = "completed"
FAILED = "failed"
TIMED_OUT = "timed_out"
CANCELLED = "cancelled"


def curl_error_message(code: int | None, stderr: str) -> str:
    """Describe a non-zero curl exit. Always mentions the exit code."""
    stderr = stderr.strip()
    if code in CURL_ERRORS:
        message = f"cURL error ({code}): {CURL_ERRORS[code]}"
        return f"{message} - {stderr}" if stderr else message
    if stderr:
        return f"cURL exited with code {code}: {stderr}"
    return f"cURL exited with code {code}"


def _kill(process: asyncio.subprocess.Process) -> None:
    with contextlib.suppress(ProcessLookupError):
        process.kill()


class CurlExecutor:
    """Runs one curl process at a time.

    ``state`` moves idle -> running -> completed | failed | timed_out |
    cancelled. A second ``execute`` while one is running raises
    ExecutorBusyError.
    """

    def __init__(self, curl_path: str = "curl"):
        self.curl_path = curl_path
        self.state = IDLE
        self._process: asyncio.subprocess.Process | None = None
        self._cancel_requested = False
        self._cancel_event: asyncio.Event | None = None
        self._reapers: set[asyncio.Future] = set()

    @property
    def is_running(self) -> bool:
        return self.state == RUNNING

    def execute(self, request: Request, options: ExecutionOptions) -> asyncio.Future:
        """Start curl for ``request``; await the returned future for the Response.

        Must be called with an event loop running. The executor is marked
        running before this returns, so a ``cancel()`` right after it still
        cancels the run. The future raises CurlLaunchError, CurlExitError,
        RequestTimeoutError, RequestCancelledError or ResponseDecodeError.
        """
        loop = asyncio.get_running_loop()
        if self.state == RUNNING:
            raise ExecutorBusyError()
        self.state = RUNNING
        self._cancel_requested = False
        self._cancel_event = asyncio.Event()
        task = loop.create_task(self._execute(request, options))
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Future) -> None:
        # a task cancelled before its first step never reaches _execute
        if task.cancelled() and self.state == RUNNING:
            self.state = CANCELLED

    async def _execute(self, request: Request, options: ExecutionOptions) -> Response:
        try:
            response = await self._run(request, options)
        except (RequestCancelledError, asyncio.CancelledError):
            self.state = CANCELLED
            raise
        except RequestTimeoutError:
            self.state = TIMED_OUT
            raise
        except BaseException:
            self.state = FAILED
            raise

        self.state = COMPLETED
        return response

    async def _run(self, request: Request, options: ExecutionOptions) -> Response:
        args = build_args(request, options) + INSTRUMENTATION_ARGS
        command_text = build_command(request, options)

        if self._cancel_requested:
            logger.warning("Request cancelled before start: %s", command_text)
            raise RequestCancelledError()

        logger.debug("Running: %s", command_text)
        start = time.monotonic()
        try:
            process = await asyncio.create_subprocess_exec(
                self.curl_path,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise CurlLaunchError(self.curl_path, str(e)) from e

        self._process = process
        try:
            stdout, stderr = await self._wait(process, options, command_text)
        finally:
            self._process = None

        elapsed_ms = (time.monotonic() - start) * 1000
        out = stdout.decode("utf-8", errors="replace")
        err = stderr.decode("utf-8", errors="replace")

        if process.returncode != 0:
            logger.debug("curl exited with code %s", process.returncode)
            raise CurlExitError(
                curl_error_message(process.returncode, err),
                exit_code=process.returncode,
                stderr=err.strip(),
            )

        try:
            return decode(out, elapsed_ms, command_text)
        except Exception as e:
            raise ResponseDecodeError(e) from e

    async def _wait(
        self,
        process: asyncio.subprocess.Process,
        options: ExecutionOptions,
        command_text: str,
    ) -> tuple[bytes, bytes]:
        """Wait for curl to exit, for cancel() or for the deadline, whichever is first."""
        communicate = asyncio.ensure_future(self._communicate(process))
        cancelled = asyncio.ensure_future(self._cancel_event.wait())
        try:
            done, _ = await asyncio.wait(
                {communicate, cancelled},
                timeout=options.timeout_ms / 1000 + TIMEOUT_BUFFER_S,
                return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            communicate.cancel()
            _kill(process)
            await process.wait()
            raise
        finally:
            cancelled.cancel()

        # Checked before the output: a cancelled run stays cancelled even if
        # curl exited cleanly in the meantime.
        if self._cancel_requested:
            communicate.cancel()
            _kill(process)
            self._reap(process)
            logger.warning("Request cancelled: %s", command_text)
            raise RequestCancelledError()

        if communicate not in done:
            communicate.cancel()
            _kill(process)
            await process.wait()
            logger.warning("Request timed out after %dms: %s", options.timeout_ms, command_text)
            raise RequestTimeoutError(options.timeout_ms)

        return communicate.result()

    async def _communicate(self, process: asyncio.subprocess.Process) -> tuple[bytes, bytes]:
        return await process.communicate()

    def _reap(self, process: asyncio.subprocess.Process) -> None:
        """Collect a killed process in the background."""
        reaper = asyncio.ensure_future(process.wait())
        self._reapers.add(reaper)
        reaper.add_done_callback(self._reapers.discard)

    def cancel(self) -> bool:
        """Cancel the running request.

        The pending future settles as RequestCancelledError without waiting
        for curl to die; curl itself is killed. Returns False if nothing was
        running.
        """
        if self.state != RUNNING:
            return False
        self._cancel_requested = True
        self._cancel_event.set()
        return True

    async def check_available(self) -> bool:
        """True if ``curl --version`` runs and exits cleanly."""
        try:
            process = await asyncio.create_subprocess_exec(
                self.curl_path,
                "--version",
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            logger.debug("curl not available at %s: %s", self.curl_path, e)
            return False
        return await process.wait() == 0


async def _execute_once(request: Request, options: ExecutionOptions, curl_path: str) -> Response:
    return await CurlExecutor(curl_path).execute(request, options)


def execute_request(
    request: Request,
    options: ExecutionOptions,
    curl_path: str = "curl",
) -> Response:
    """Blocking wrapper around CurlExecutor.execute."""
    return asyncio.run(_execute_once(request, options, curl_path))


def check_curl_available(curl_path: str = "curl") -> bool:
    return asyncio.run(CurlExecutor(curl_path).check_available())
