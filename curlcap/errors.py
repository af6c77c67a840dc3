"""curlcap errors - failures of a single curl execution."""


class CurlcapError(Exception):
    """Base exception for execution failures."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)


class CurlLaunchError(CurlcapError):
    """curl could not be started (missing executable, permissions...)."""

    def __init__(self, curl_path: str, reason: str):
        self.curl_path = curl_path
        self.reason = reason
        super().__init__(f"Failed to execute cURL ({curl_path}): {reason}")


class CurlExitError(CurlcapError):
    """curl exited with a non-zero code."""

    def __init__(self, detail: str, exit_code: int | None, stderr: str = ""):
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__(detail)


class RequestTimeoutError(CurlcapError):
    def __init__(self, timeout_ms: int):
        self.timeout_ms = timeout_ms
        super().__init__(f"Request timed out after {timeout_ms}ms")


class RequestCancelledError(CurlcapError):
    def __init__(self):
        super().__init__("Request cancelled")


class ResponseDecodeError(CurlcapError):
    """curl succeeded but its output could not be turned into a Response."""

    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__(f"Failed to parse response: {cause}")


class ExecutorBusyError(CurlcapError):
    def __init__(self):
        super().__init__("A request is already running on this executor")
