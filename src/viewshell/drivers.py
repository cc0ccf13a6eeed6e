"""
Drivers attach a source of change to a ``Prop``.

A driver owns whatever resource feeds the prop (an awaitable, a stream
subscription, a debounce timer, a page cursor) and pushes results through the
prop's transitions. The prop disposes its driver when it is disposed.
"""

import asyncio
import logging
import math
from collections.abc import AsyncIterable, Awaitable, Callable
from functools import partial
from typing import TYPE_CHECKING, Any, Generic, TypeVar, override

from viewshell.errors import InvalidOperationError
from viewshell.helpers import Disposable
from viewshell.scheduling import TimerHandleLike, report_task_exception

if TYPE_CHECKING:
	from viewshell.prop import Prop

T = TypeVar("T")

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_MS = 300.0


class PropDriver(Disposable, Generic[T]):
	_prop: "Prop[T] | None" = None

	@property
	def prop(self) -> "Prop[T]":
		if self._prop is None:
			raise InvalidOperationError(
				f"{type(self).__name__} is not attached to a prop"
			)
		return self._prop

	def bind(self, prop: "Prop[T]") -> None:
		self._prop = prop

	def on_reset(self) -> None:
		"""Called when the prop is reset to its initial state."""
		...

	@override
	def dispose(self) -> None:
		self.__disposed__ = True


class FutureDriver(PropDriver[T]):
	"""Drives a prop from a single awaitable, replaced on refresh."""

	def start(self, source: Awaitable[T]) -> asyncio.Task[None]:
		async def _await_source() -> T:
			return await source

		return self.prop._launch(_await_source)  # pyright: ignore[reportPrivateUsage]


class StreamDriver(PropDriver[T]):
	"""
	Subscribes a prop to an async iterable.

	Each item becomes the prop value. An exception raised by the stream is
	recorded on the prop and ends the subscription. Exhaustion marks the
	driver completed and keeps the last value.
	"""

	_task: asyncio.Task[None] | None
	_completed: bool

	def __init__(self) -> None:
		self._task = None
		self._completed = False

	@property
	def is_hooked(self) -> bool:
		return self._task is not None

	@property
	def is_completed(self) -> bool:
		return self._completed

	def hook(self, stream: AsyncIterable[T]) -> None:
		prop = self.prop
		self.unhook()
		self._completed = False
		prop._clear_error()  # pyright: ignore[reportPrivateUsage]
		prop.notify_listeners()
		self._task = prop._tasks.create(  # pyright: ignore[reportPrivateUsage]
			self._consume(stream),
			name=f"prop.stream({prop.name})",
			on_done=partial(report_task_exception, code="prop.stream"),
		)
		logger.debug("Hooked stream %r to %r", stream, prop)

	def unhook(self) -> None:
		if self._task is not None:
			task = self._task
			self._task = None
			if not task.done():
				task.cancel()
			logger.debug("Unhooked stream from %r", self._prop)

	async def _consume(self, stream: AsyncIterable[T]) -> None:
		prop = self.prop
		try:
			async for item in stream:
				prop.set(item)
		except asyncio.CancelledError:
			raise
		except Exception as exc:
			if self._owns_current_task():
				self._task = None
			prop._resolve_failure(exc)  # pyright: ignore[reportPrivateUsage]
			return
		if self._owns_current_task():
			self._task = None
		self._completed = True
		prop.notify_listeners()

	def _owns_current_task(self) -> bool:
		return self._task is not None and self._task is asyncio.current_task()

	@override
	def dispose(self) -> None:
		self.unhook()
		super().dispose()


def _validate_delay(delay_ms: Any) -> float:
	if isinstance(delay_ms, bool) or not isinstance(delay_ms, (int, float)):
		raise TypeError("debounce delay must be a number (ms)")
	if not math.isfinite(delay_ms) or delay_ms < 0:
		raise ValueError("debounce delay must be finite and >= 0")
	return float(delay_ms)


class DebounceDriver(PropDriver[T]):
	"""Runs only the last operation requested within a quiet window."""

	delay_ms: float
	_handle: TimerHandleLike | None

	def __init__(self, delay_ms: float = DEFAULT_DEBOUNCE_MS) -> None:
		self.delay_ms = _validate_delay(delay_ms)
		self._handle = None

	@property
	def pending(self) -> bool:
		return self._handle is not None

	def debounce(self, operation: Callable[[], Awaitable[T]]) -> None:
		prop = self.prop
		self.cancel()
		self._handle = prop._timers.later(  # pyright: ignore[reportPrivateUsage]
			self.delay_ms / 1000.0, self._fire, operation
		)

	def cancel(self) -> None:
		if self._handle is not None:
			self._handle.cancel()
			self._handle = None

	def _fire(self, operation: Callable[[], Awaitable[T]]) -> None:
		self._handle = None
		self.prop._launch(operation)  # pyright: ignore[reportPrivateUsage]

	@override
	def dispose(self) -> None:
		self.cancel()
		super().dispose()


class PageDriver(PropDriver[list[T]]):
	"""Tracks the visible page of a paginated prop; one page is shown at a time."""

	fetcher: Callable[[int], Awaitable[list[T]]]
	initial_page: int
	current_page: int

	def __init__(
		self,
		fetcher: Callable[[int], Awaitable[list[T]]],
		initial_page: int = 1,
	) -> None:
		self.fetcher = fetcher
		self.initial_page = initial_page
		self.current_page = initial_page

	async def fetch_page(self, page: int) -> None:
		if page < self.initial_page:
			return
		prop = self.prop
		fetcher = self.fetcher
		await prop.run(lambda: fetcher(page))
		if not prop.has_error and not prop.__disposed__:
			self.current_page = page

	@override
	def on_reset(self) -> None:
		self.current_page = self.initial_page


__all__ = [
	"DEFAULT_DEBOUNCE_MS",
	"DebounceDriver",
	"FutureDriver",
	"PageDriver",
	"PropDriver",
	"StreamDriver",
]
