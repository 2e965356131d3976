"""Connectivity probe."""
import asyncio
from typing import Callable, Optional

from ..protocols import StorageBoundary
from ...logging import get_logger


class ConnectivityProbe:
    """
    Best-effort network reachability check.

    A local offline signal is authoritative; otherwise a minimal round trip
    to the boundary decides. Timeouts and failures count as offline.
    ``is_online`` never raises.
    """

    def __init__(
        self,
        boundary: StorageBoundary,
        timeout: float = 5.0,
        offline_signal: Optional[Callable[[], bool]] = None
    ):
        """
        Initialize the probe.

        Args:
            boundary: Boundary whose ``ping`` is used as the round trip
            timeout: Seconds before the round trip counts as failed
            offline_signal: Optional callable returning True when the host
                knows it is offline (e.g. network manager state)
        """
        self._boundary = boundary
        self._timeout = timeout
        self._offline_signal = offline_signal
        self._logger = get_logger('podupload.connectivity')

    async def is_online(self) -> bool:
        if self._offline_signal is not None:
            try:
                offline = bool(self._offline_signal())
            except Exception as e:
                self._logger.debug(f"Offline signal failed, ignoring it: {e}")
                offline = False
            if offline:
                self._logger.info("Offline signal set; skipping network probe")
                return False

        try:
            await asyncio.wait_for(self._boundary.ping(), timeout=self._timeout)
        except asyncio.TimeoutError:
            self._logger.warning(f"Connectivity probe timed out after {self._timeout:.1f}s")
            return False
        except Exception as e:
            self._logger.warning(f"Connectivity probe failed: {e}")
            return False
        return True
