"""Transaction engine for PNI serial communication.

Runs one request/response exchange at a time over a Channel: send the
request, wait for the matching response while skipping anything else the
module emits, and resend on silence until the attempt budget runs out.
"""

import logging
import time
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from pni_sdk.protocol.constants import REQUEST_TIMEOUT, RETRY_ATTEMPTS, RETRY_DELAY
from pni_sdk.protocol.errors import ProtocolDesync, TransactionTimeout
from pni_sdk.protocol.frames import Frame
from pni_sdk.serial.channel import Channel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransactionConfig:
    """
    Retry and timeout policy for one transaction.

    Attributes:
        timeout: Seconds to wait for the response after each send
        attempts: Total number of sends before giving up (at least 1)
        retry_delay: Pause between a silent attempt and the next send
    """

    timeout: float = REQUEST_TIMEOUT
    attempts: int = RETRY_ATTEMPTS
    retry_delay: float = RETRY_DELAY

    def __post_init__(self):
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")
        if self.attempts < 1:
            raise ValueError(f"attempts must be at least 1, got {self.attempts}")
        if self.retry_delay < 0:
            raise ValueError(f"retry_delay must not be negative, got {self.retry_delay}")


class TransactionEngine:
    """Request/response correlation with per-attempt deadlines and retries."""

    def __init__(self, config: TransactionConfig | None = None):
        self.config = config or TransactionConfig()
        self._stats = {
            "transactions": 0,
            "retries": 0,
            "timeouts": 0,
            "frames_skipped": 0,
        }

    @property
    def stats(self) -> dict:
        """Get engine statistics."""
        return self._stats.copy()

    def execute(
        self,
        channel: Channel,
        command: int,
        payload: bytes = b"",
        expected_response: int | None = None,
        config: TransactionConfig | None = None,
        also_accept: Iterable[int] = (),
    ) -> Frame | None:
        """
        Send a request and wait for its response.

        Args:
            channel: Channel to the module; held for the whole exchange
            command: Request command id
            payload: Request payload
            expected_response: Response command id, or None for write-only commands
            config: Per-call policy overriding the engine default
            also_accept: Other command ids that also complete the exchange

        Returns:
            The response frame, or None for write-only commands

        Raises:
            TransactionTimeout: No matching response after all attempts
            TransportError: The transport failed (never retried)
            ProtocolDesync: The stream could not be realigned
        """
        config = config or self.config
        request = Frame(command, payload)
        accept = {expected_response, *also_accept}

        with channel.acquire():
            self._stats["transactions"] += 1

            for attempt in range(1, config.attempts + 1):
                channel.reset_input()
                channel.send(request)

                if expected_response is None:
                    return None

                try:
                    response = self._await_response(channel, accept, config.timeout)
                except ProtocolDesync:
                    logger.error("Lost frame sync waiting for 0x%02X, resetting decoder", expected_response)
                    channel.reset_input()
                    raise

                if response is not None:
                    return response

                if attempt < config.attempts:
                    self._stats["retries"] += 1
                    logger.warning(
                        "No response 0x%02X to 0x%02X, retrying (%d/%d)",
                        expected_response,
                        command,
                        attempt + 1,
                        config.attempts,
                    )
                    if config.retry_delay > 0:
                        time.sleep(config.retry_delay)

            self._stats["timeouts"] += 1
            logger.error("Command 0x%02X timed out after %d attempt(s)", command, config.attempts)
            raise TransactionTimeout(command, expected_response, config.attempts)

    def listen(self, channel: Channel, command: int, timeout: float) -> Iterator[Frame]:
        """
        Yield frames with the given command id as the module emits them.

        Stops once a whole timeout window passes without a matching frame.
        The channel stays held until the generator finishes or is closed.
        """
        with channel.acquire():
            while True:
                frame = self._await_response(channel, {command}, timeout)
                if frame is None:
                    logger.debug("No 0x%02X frame within %.2fs, stopping", command, timeout)
                    return
                yield frame

    def _await_response(self, channel: Channel, accept: set[int], timeout: float) -> Frame | None:
        """Read until an accepted frame arrives or the deadline passes.

        Unsolicited frames do not extend the deadline.
        """
        deadline = time.monotonic() + timeout

        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return None

            frame = channel.receive(remaining)
            if frame is None:
                return None
            if frame.command in accept:
                return frame

            self._stats["frames_skipped"] += 1
            logger.debug("Skipping unsolicited frame %s", frame)

    def reset_stats(self) -> None:
        """Reset engine statistics."""
        for key in self._stats:
            self._stats[key] = 0
