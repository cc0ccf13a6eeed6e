import asyncio
from collections.abc import AsyncIterable, Awaitable, Callable
from typing import TypeVar

from viewshell.drivers import (
	DEFAULT_DEBOUNCE_MS,
	DebounceDriver,
	FutureDriver,
	PageDriver,
	StreamDriver,
)
from viewshell.helpers import MISSING
from viewshell.prop import Prop

T = TypeVar("T")


class FutureProp(Prop[T]):
	"""
	A prop driven by an awaitable.

	Construction starts awaiting ``source`` right away, so the prop is
	``loading`` as soon as it exists. Requires a running event loop.
	"""

	_future_driver: FutureDriver[T]

	def __init__(self, source: Awaitable[T], *, name: str | None = None) -> None:
		super().__init__(name=name)
		self._future_driver = FutureDriver()
		self.attach(self._future_driver)
		self._future_driver.start(source)

	def refresh(self, source: Awaitable[T]) -> asyncio.Task[None]:
		"""Re-run the prop against a new awaitable."""
		return self._future_driver.start(source)


class StreamProp(Prop[T]):
	"""A prop fed by an async iterable, see ``StreamDriver``."""

	_stream_driver: StreamDriver[T]

	def __init__(
		self, stream: AsyncIterable[T] | None = None, *, name: str | None = None
	) -> None:
		super().__init__(name=name)
		self._stream_driver = StreamDriver()
		self.attach(self._stream_driver)
		if stream is not None:
			self.hook(stream)

	@property
	def is_hooked(self) -> bool:
		return self._stream_driver.is_hooked

	@property
	def is_completed(self) -> bool:
		return self._stream_driver.is_completed

	def hook(self, stream: AsyncIterable[T]) -> None:
		"""Subscribe to ``stream``, dropping any previous subscription."""
		self._stream_driver.hook(stream)

	def unhook(self) -> None:
		"""Cancel the subscription. The last value is kept."""
		self._stream_driver.unhook()


class DebouncedProp(Prop[T]):
	"""
	A prop that delays operations until calls stop for ``delay_ms``.

	Useful for live search fields: each keystroke calls ``debounce`` and only
	the last operation of a burst runs.
	"""

	_debounce_driver: DebounceDriver[T]

	def __init__(
		self,
		initial_value: T = MISSING,
		*,
		delay_ms: float = DEFAULT_DEBOUNCE_MS,
		name: str | None = None,
	) -> None:
		super().__init__(initial_value, name=name)
		self._debounce_driver = DebounceDriver(delay_ms)
		self.attach(self._debounce_driver)

	@property
	def delay_ms(self) -> float:
		return self._debounce_driver.delay_ms

	@property
	def pending(self) -> bool:
		"""Whether a debounced operation is waiting for its window to pass."""
		return self._debounce_driver.pending

	def debounce(self, operation: Callable[[], Awaitable[T]]) -> None:
		self._debounce_driver.debounce(operation)


class PaginatedProp(Prop[list[T]]):
	"""
	A prop holding one page of results at a time, for classic paginators.

	Starts empty; call ``fetch_initial_page`` or ``fetch_page`` to load data.
	``initial_page`` is usually 0 or 1 depending on the API.
	"""

	_page_driver: PageDriver[T]

	def __init__(
		self,
		fetcher: Callable[[int], Awaitable[list[T]]],
		*,
		initial_page: int = 1,
		name: str | None = None,
	) -> None:
		super().__init__(name=name)
		self._page_driver = PageDriver(fetcher, initial_page)
		self.attach(self._page_driver)

	@property
	def current_page(self) -> int:
		return self._page_driver.current_page

	@property
	def initial_page(self) -> int:
		return self._page_driver.initial_page

	def set_fetcher(self, fetcher: Callable[[int], Awaitable[list[T]]]) -> None:
		self._page_driver.fetcher = fetcher

	async def fetch_initial_page(self) -> None:
		await self._page_driver.fetch_page(self.initial_page)

	async def fetch_next_page(self) -> None:
		await self._page_driver.fetch_page(self.current_page + 1)

	async def fetch_previous_page(self) -> None:
		"""Load the page before the current one. No-op on the initial page."""
		if self.current_page > self.initial_page:
			await self._page_driver.fetch_page(self.current_page - 1)

	async def fetch_page(self, page: int) -> None:
		"""Load ``page`` and replace the value; ignored below ``initial_page``."""
		await self._page_driver.fetch_page(page)


__all__ = ["DebouncedProp", "FutureProp", "PaginatedProp", "StreamProp"]
