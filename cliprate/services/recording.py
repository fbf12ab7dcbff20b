"""Capture of a single audio clip.

A ``RecordingSession`` walks ``idle -> recording -> recorded -> uploading``
and back to ``idle``. Recording is capped by a countdown (10 s by default)
that stops the capture on its own; the clip is still usable then, it just
comes back with ``auto_stopped`` set.

The capture device is only held while recording: every way out of the
``recording`` state (manual stop, countdown, ``close()``) cancels the
countdown and releases the device. The chunk pump then gets a short window
to collect whatever the device flushes on release before it is cancelled.
"""
import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from ..errors import DeviceUnavailable, InvalidTransition, QuotaExceeded
from .types import utc_today

logger = logging.getLogger(__name__)

DEFAULT_MAX_SECONDS = 10
DEFAULT_CONTENT_TYPE = "audio/webm"
# how long the pump may keep reading the final chunks after release
DEFAULT_DRAIN_SECONDS = 0.5
DEFAULT_CONSTRAINTS = {
    "echo_cancellation": True,
    "noise_suppression": True,
    "sample_rate": 44100,
}


class SessionState(str, enum.Enum):
    IDLE = "idle"
    RECORDING = "recording"
    RECORDED = "recorded"
    UPLOADING = "uploading"


@dataclass
class Clip:
    data: bytes
    content_type: str = DEFAULT_CONTENT_TYPE
    duration_seconds: int = 0
    auto_stopped: bool = False

    @property
    def size(self):
        return len(self.data)


class RecordingSession:
    def __init__(
        self,
        actor_id,
        device,
        quota,
        pipeline,
        max_seconds: int = DEFAULT_MAX_SECONDS,
        tick_seconds: float = 1.0,
        today: Callable = utc_today,
        constraints: Optional[dict] = None,
        on_auto_stop: Optional[Callable[[Clip], None]] = None,
        drain_seconds: float = DEFAULT_DRAIN_SECONDS,
    ):
        self.actor_id = actor_id
        self.device = device
        self.quota = quota
        self.pipeline = pipeline
        self.max_seconds = max_seconds
        self.tick_seconds = tick_seconds
        self.today = today
        self.constraints = dict(constraints or DEFAULT_CONSTRAINTS)
        self.on_auto_stop = on_auto_stop
        self.drain_seconds = drain_seconds

        self.state = SessionState.IDLE
        self.remaining_seconds = max_seconds
        self.clip: Optional[Clip] = None
        self._handle = None
        self._chunks = []
        self._pump_task = None
        self._countdown_task = None
        self._stopped = asyncio.Event()
        self._lock = asyncio.Lock()

    @property
    def elapsed_seconds(self):
        return self.max_seconds - self.remaining_seconds

    @property
    def auto_stopped(self):
        return bool(self.clip and self.clip.auto_stopped)

    def _require(self, *states):
        if self.state not in states:
            wanted = "/".join(s.value for s in states)
            raise InvalidTransition(f"session is {self.state.value}, expected {wanted}", state=self.state.value)

    # --- transitions ---------------------------------------------------------

    async def start(self):
        async with self._lock:
            self._require(SessionState.IDLE)
            remaining = await self.quota.remaining(self.actor_id, self.today())
            if remaining <= 0:
                raise QuotaExceeded("No attempts left today, come back tomorrow", actor_id=self.actor_id)
            try:
                handle = await self.device.acquire(self.constraints)
            except Exception as e:
                raise DeviceUnavailable(f"Could not access the microphone: {e}") from e

            self._handle = handle
            self._chunks = []
            self.clip = None
            self.remaining_seconds = self.max_seconds
            self._stopped.clear()
            self.state = SessionState.RECORDING
            self._pump_task = asyncio.create_task(self._pump(handle))
            self._countdown_task = asyncio.create_task(self._countdown())
            logger.debug("actor %s started recording (%s attempts left)", self.actor_id, remaining)

    async def stop(self) -> Clip:
        async with self._lock:
            self._require(SessionState.RECORDING)
            return await self._finish(auto=False)

    async def discard(self):
        async with self._lock:
            self._require(SessionState.RECORDED)
            self.clip = None
            self.remaining_seconds = self.max_seconds
            self.state = SessionState.IDLE

    async def submit(self):
        async with self._lock:
            self._require(SessionState.RECORDED)
            self.state = SessionState.UPLOADING
        clip = self.clip
        try:
            result = await self.pipeline.submit(clip, self.actor_id)
        except BaseException:
            # keep the clip so the user can retry without re-recording
            self.state = SessionState.RECORDED
            raise
        self.clip = None
        self.remaining_seconds = self.max_seconds
        self.state = SessionState.IDLE
        return result

    async def wait_stopped(self) -> Clip:
        """Wait until the current recording ends (manually or by the countdown)."""
        await self._stopped.wait()
        return self.clip

    async def close(self):
        """Forced teardown; an upload already in flight is left to finish."""
        async with self._lock:
            if self.state is SessionState.RECORDING:
                await self._teardown_capture()
                self._chunks = []
                self.remaining_seconds = self.max_seconds
                self.state = SessionState.IDLE
                self._stopped.set()
            elif self.state is SessionState.RECORDED:
                self.clip = None
                self.state = SessionState.IDLE

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    # --- internals -----------------------------------------------------------

    async def _pump(self, handle):
        try:
            async for chunk in handle.chunks():
                if chunk:
                    self._chunks.append(chunk)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("capture stream for actor %s broke off", self.actor_id)

    async def _countdown(self):
        while self.remaining_seconds > 0:
            await asyncio.sleep(self.tick_seconds)
            self.remaining_seconds -= 1
        async with self._lock:
            if self.state is SessionState.RECORDING:
                clip = await self._finish(auto=True)
                logger.info("recording for actor %s auto-stopped after %ss", self.actor_id, self.max_seconds)
                if self.on_auto_stop:
                    self.on_auto_stop(clip)

    async def _cancel(self, task):
        if task is None or task is asyncio.current_task() or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _teardown_capture(self):
        countdown, pump, handle = self._countdown_task, self._pump_task, self._handle
        self._countdown_task = self._pump_task = self._handle = None
        try:
            await self._cancel(countdown)
        finally:
            if handle is not None:
                try:
                    await handle.release()
                except Exception:
                    logger.exception("releasing capture device for actor %s failed", self.actor_id)
            await self._drain(pump)
        return handle

    async def _drain(self, pump):
        """Let the pump collect what the device flushes on release."""
        if pump is None or pump.done():
            return
        done, _ = await asyncio.wait({pump}, timeout=self.drain_seconds)
        if not done:
            logger.warning("capture stream for actor %s did not end after release", self.actor_id)
            await self._cancel(pump)

    async def _finish(self, auto):
        handle = await self._teardown_capture()
        content_type = getattr(handle, "content_type", None) or DEFAULT_CONTENT_TYPE
        self.clip = Clip(
            data=b"".join(self._chunks),
            content_type=content_type,
            duration_seconds=self.elapsed_seconds,
            auto_stopped=auto,
        )
        self._chunks = []
        self.state = SessionState.RECORDED
        self._stopped.set()
        return self.clip
