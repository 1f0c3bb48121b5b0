# Copyright (c) Syntropy Systems
"""HTTP client reporting run lifecycle events to the benchmarking service."""
from __future__ import annotations

import enum
import logging
import time
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from threading import Event, Lock, Thread
from typing import TYPE_CHECKING
from urllib.parse import quote

import httpx
from typing_extensions import Self

from simfork.constants import (
    KEEP_ALIVE_INTERVAL_SECONDS,
    VERDICT_MAX_ATTEMPTS,
    VERDICT_RETRY_DELAY_SECONDS,
)
from simfork.errors import ReportingTransportError, VerdictUnavailableError
from simfork.models.reporting import RunIdentity, TestRunEvent

if TYPE_CHECKING:
    from types import TracebackType

    from simfork.log import RunLogger

logger = logging.getLogger(__name__)

HTTP_OK = 200


class ReportingState(enum.Enum):
    """Lifecycle of a reported run."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"


class ReportingClient:
    """Reports a run to the benchmarking service.

    While the workload runs, a background thread posts ``completed=false``
    every ``keep_alive_interval`` seconds; the first tick doubles as the
    start signal. ``finish()`` posts ``completed=true`` once. Transport
    failures of these calls are logged and never raised.

    A disabled client turns every call into a no-op.
    """

    base_url: str
    identity: RunIdentity
    enabled: bool
    state: ReportingState

    def __init__(  # noqa: PLR0913
        self,
        base_url: str,
        identity: RunIdentity,
        *,
        variables: Mapping[str, str] | None = None,
        annotations: str | None = None,
        enabled: bool = True,
        timeout: float = 30.0,
        keep_alive_interval: float = KEEP_ALIVE_INTERVAL_SECONDS,
        verdict_max_attempts: int = VERDICT_MAX_ATTEMPTS,
        verdict_retry_delay: float = VERDICT_RETRY_DELAY_SECONDS,
        log: RunLogger | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Base URL of the service (e.g., "https://perfana.example.com")
            identity: Facts describing the run, sent with every event
            variables: Placeholder/value pairs sent with every event
            annotations: Free text sent with every event
            enabled: When False, all calls are no-ops
            timeout: Request timeout in seconds
            keep_alive_interval: Seconds between keep-alive posts
            verdict_max_attempts: Attempts before giving up on the verdict
            verdict_retry_delay: Seconds between verdict attempts
            log: Logger to report through (defaults to the module logger)
            sleep: Sleep function used between verdict attempts

        """
        self.base_url = base_url.rstrip("/")
        self.identity = identity
        self.variables = dict(variables or {})
        self.annotations = annotations
        self.enabled = enabled
        self.timeout = timeout
        self.keep_alive_interval = keep_alive_interval
        self.verdict_max_attempts = verdict_max_attempts
        self.verdict_retry_delay = verdict_retry_delay
        self.state = ReportingState.NOT_STARTED
        self._log = log or logger
        self._sleep = sleep
        self._client = httpx.Client(timeout=timeout)
        self._state_lock = Lock()
        self._stop = Event()
        self._thread: Thread | None = None

    @classmethod
    def disabled(cls, identity: RunIdentity | None = None) -> Self:
        """A client on which every reporting call is a no-op."""
        return cls("", identity or RunIdentity(), enabled=False)

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> Self:
        """Enter the client context and return self."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Stop any keep-alive thread and close the HTTP client."""
        self.stop_keep_alive()
        self.close()

    # --- Lifecycle events ---

    def event(self, completed: bool) -> TestRunEvent:
        """Build the event body for this run."""
        return TestRunEvent.for_identity(
            self.identity,
            completed=completed,
            variables=self.variables,
            annotations=self.annotations,
        )

    def post_event(self, completed: bool) -> str:
        """Post one lifecycle event and return the response body.

        Raises:
            ReportingTransportError: On connection failure or error status

        """
        url = f"{self.base_url}/test"
        body = self.event(completed).to_json()
        self._log.debug("Call to endpoint: %s with json: %s", url, body)
        try:
            response = self._client.post(url, json=body)
            _ = response.raise_for_status()
        except httpx.HTTPError as e:
            msg = f"Failed to call reporting service: {e}"
            raise ReportingTransportError(msg) from e
        self._log.debug("Result: %s", response.text)
        return response.text

    def send_event(self, completed: bool) -> bool:
        """Post an event, logging instead of raising on failure."""
        try:
            _ = self.post_event(completed)
        except ReportingTransportError as e:
            self._log.error(str(e))
            return False
        return True

    def start(self) -> None:
        """Enter RUNNING and start the keep-alive thread."""
        if not self.enabled:
            return
        with self._state_lock:
            if self.state is not ReportingState.NOT_STARTED:
                return
            self.state = ReportingState.RUNNING
            self._stop.clear()
            self._thread = Thread(target=self._keep_alive_loop, daemon=True)
            self._thread.start()
        self._log.info(
            "Calling %s keep alive every %s seconds.",
            self.base_url, self.keep_alive_interval,
        )

    def _keep_alive_loop(self) -> None:
        # The first tick is the start signal and is always sent
        while True:
            _ = self.send_event(completed=False)
            if self._stop.wait(timeout=self.keep_alive_interval):
                return

    def stop_keep_alive(self) -> None:
        """Cancel the keep-alive schedule, letting an outstanding tick finish."""
        self._stop.set()
        thread = self._thread
        if thread is not None:
            thread.join(timeout=self.timeout + 5.0)
            self._thread = None
            self._log.debug("Keep alive stopped.")

    @contextmanager
    def keep_alive(self) -> Iterator[Self]:
        """Scope the keep-alive schedule to the enclosed block.

        The schedule is cancelled however the block exits.
        """
        self.start()
        try:
            yield self
        finally:
            self.stop_keep_alive()

    def finish(self) -> None:
        """Post the completion event exactly once and enter COMPLETED."""
        if not self.enabled:
            return
        with self._state_lock:
            if self.state is ReportingState.COMPLETED:
                return
            self.state = ReportingState.COMPLETED
        self.stop_keep_alive()
        _ = self.send_event(completed=True)

    # --- Verdict ---

    def verdict_url(self) -> str:
        """URL of the verdict document for this run."""
        application = quote(self.identity.application, safe="")
        test_run_id = quote(self.identity.test_run_id, safe="")
        return f"{self.base_url}/get-benchmark-results/{application}/{test_run_id}"

    def poll_verdict(self) -> str:
        """Fetch the raw verdict document, retrying on any non-200 response.

        Blocks for up to ``verdict_max_attempts * verdict_retry_delay`` seconds.

        Returns:
            The raw response body of the first 200 response

        Raises:
            VerdictUnavailableError: If every attempt failed

        """
        url = self.verdict_url()
        attempts = self.verdict_max_attempts
        for attempt in range(1, attempts + 1):
            try:
                response = self._client.get(url)
            except httpx.HTTPError as e:
                self._log.warning(
                    "failed to retrieve verdict for url [%s] retry [%d/%d] %s",
                    url, attempt, attempts, e,
                )
            else:
                if response.status_code == HTTP_OK:
                    return response.text
                self._log.warning(
                    "failed to retrieve verdict for url [%s] code [%d] retry [%d/%d] %s",
                    url, response.status_code, attempt, attempts, response.text,
                )
            if attempt < attempts:
                self._sleep(self.verdict_retry_delay)

        msg = f"Unable to retrieve verdict for url [{url}] after {attempts} attempts"
        raise VerdictUnavailableError(msg)
