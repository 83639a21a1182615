"""Custom exceptions for transcode jobs."""


class TranscodeJobError(Exception):
    """Base exception for transcode job errors."""


class EncodeError(TranscodeJobError):
    """Raised when the encoder exits non-zero or produces no playlist.

    Attributes:
        returncode: Encoder exit status (None if it never ran).
        stderr_tail: Last lines the encoder wrote to stderr.
    """

    def __init__(
        self, message: str, returncode: int | None = None, stderr_tail: str = ""
    ) -> None:
        self.returncode = returncode
        self.stderr_tail = stderr_tail
        detail = message
        if returncode is not None:
            detail = f"{detail} (exit code {returncode})"
        if stderr_tail:
            detail = f"{detail}: {stderr_tail}"
        super().__init__(detail)


class InvalidJobTransitionError(TranscodeJobError):
    """Raised when a job is asked to move to a state it cannot reach.

    Attributes:
        job_id: The job whose transition was rejected.
        target: The requested status value.
    """

    def __init__(self, job_id: str, target: str) -> None:
        self.job_id = job_id
        self.target = target
        super().__init__(f"Job {job_id} cannot transition to {target}")
