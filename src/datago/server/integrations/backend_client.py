"""
Backend Integration Client
Forwards registrations, captures and disconnections to the persistence backend
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp

logger = logging.getLogger(__name__)

CAPTURE_PATH = "/captura"
REGISTRATION_PATH = "/RegistroUsuario"
DISCONNECTION_PATH = "/RegistroUsuario/desactivar"


class BackendClient:
    """
    Fire-and-forget HTTP client for the game backend.

    enqueue_* never blocks and never raises: jobs go on a queue drained by
    a single worker task. Without a base URL every job is dropped.
    """

    def __init__(self,
                 base_url: Optional[str] = None,
                 timeout_seconds: float = 5.0,
                 max_queue_size: int = 1000,
                 session: Optional[aiohttp.ClientSession] = None):
        self.base_url = base_url.rstrip("/") if base_url else None
        self.timeout_seconds = timeout_seconds
        self.max_queue_size = max_queue_size
        self.session = session
        self._owns_session = session is None
        self.queue: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None
        self.sent = 0
        self.failed = 0
        self.dropped = 0

    @property
    def enabled(self) -> bool:
        return self.base_url is not None

    async def initialize(self):
        """Create the HTTP session and start the delivery worker"""
        if not self.enabled:
            logger.info("Backend URL not configured, backend forwarding disabled")
            return

        if self.session is None:
            timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
            self.session = aiohttp.ClientSession(timeout=timeout)

        self.queue = asyncio.Queue(maxsize=self.max_queue_size)
        self._worker = asyncio.create_task(self._run_worker())
        logger.info(f"Backend client forwarding to {self.base_url}")

    async def shutdown(self):
        """Stop the worker and close the session; pending jobs are discarded"""
        if self._worker:
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None

        if self.session and self._owns_session:
            await self.session.close()
        self.session = None
        self.queue = None

    # Fire-and-forget API used by the game service

    def enqueue_capture(self, capture_data: Dict[str, Any]) -> bool:
        return self._enqueue(CAPTURE_PATH, capture_data)

    def enqueue_registration(self, user_data: Dict[str, Any]) -> bool:
        return self._enqueue(REGISTRATION_PATH, user_data)

    def enqueue_disconnection(self, socket_id: str) -> bool:
        return self._enqueue(DISCONNECTION_PATH, {"IdSocket": socket_id})

    def _enqueue(self, path: str, payload: Dict[str, Any]) -> bool:
        if self.queue is None:
            logger.debug(f"Backend forwarding inactive, dropping {path} job")
            return False

        try:
            self.queue.put_nowait((path, payload))
            return True
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(f"Backend queue full, dropping {path} job")
            return False

    async def _run_worker(self):
        while True:
            path, payload = await self.queue.get()
            try:
                await self._post(path, payload)
            finally:
                self.queue.task_done()

    # Awaitable API

    async def send_capture(self, capture_data: Dict[str, Any]) -> bool:
        return await self._post(CAPTURE_PATH, capture_data)

    async def send_registration(self, user_data: Dict[str, Any]) -> bool:
        return await self._post(REGISTRATION_PATH, user_data)

    async def send_disconnection(self, socket_id: str) -> bool:
        return await self._post(DISCONNECTION_PATH, {"IdSocket": socket_id})

    async def _post(self, path: str, payload: Dict[str, Any]) -> bool:
        if not self.enabled or self.session is None:
            logger.debug(f"Backend unavailable, skipping {path}")
            return False

        url = f"{self.base_url}{path}"
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json"
        }

        try:
            async with self.session.post(url, json=payload, headers=headers) as response:
                if 200 <= response.status < 300:
                    self.sent += 1
                    logger.debug(f"Backend accepted {path}")
                    return True

                body = await response.text()
                self.failed += 1
                logger.warning(f"Backend rejected {path}: {response.status} {body[:200]}")
                return False

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.failed += 1
            logger.warning(f"Failed to reach backend for {path}: {e}")
            return False

    def get_status(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "base_url": self.base_url,
            "pending": self.queue.qsize() if self.queue else 0,
            "sent": self.sent,
            "failed": self.failed,
            "dropped": self.dropped
        }
