"""
Observable property containers.

A prop is a mutable cell with an observable lifecycle state. ``Prop`` is the
single concrete state machine: every variant (future, stream, debounced,
paginated) is a ``Prop`` with a driver attached, see ``viewshell.drivers``.
``SyncProp`` is the only other implementation, for values that can never be
loading or failed.
"""

import asyncio
import logging
from abc import abstractmethod
from collections.abc import Awaitable, Callable
from enum import StrEnum
from types import TracebackType
from typing import TYPE_CHECKING, Any, Generic, TypeVar, cast, override

from viewshell.errors import InvalidOperationError, InvalidStateError
from viewshell.helpers import MISSING
from viewshell.notifier import ChangeNotifier
from viewshell.scheduling import TaskRegistry, TimerRegistry, report_task_exception

if TYPE_CHECKING:
	from viewshell.drivers import PropDriver

T = TypeVar("T")

logger = logging.getLogger(__name__)

OnSuccessFn = Callable[[T], Any]
OnFailureFn = Callable[[Exception, TracebackType | None], Any]


class PropState(StrEnum):
	INITIAL = "initial"
	LOADING = "loading"
	SUCCESS = "success"
	ERROR = "error"


class PropBase(ChangeNotifier, Generic[T]):
	"""Base class for any prop. Subclass it to build a custom prop."""

	name: str | None

	def __init__(self, name: str | None = None) -> None:
		super().__init__()
		self.name = name

	@property
	@abstractmethod
	def state(self) -> PropState: ...

	@property
	@abstractmethod
	def value(self) -> T | None:
		"""The current value, possibly stale. Retained through loading and error."""
		...

	@property
	@abstractmethod
	def error(self) -> Exception | None: ...

	@property
	@abstractmethod
	def stack_trace(self) -> TracebackType | None: ...

	@property
	def valid(self) -> bool:
		return self.state is PropState.SUCCESS

	@property
	def has_error(self) -> bool:
		return self.state is PropState.ERROR

	@property
	def is_loading(self) -> bool:
		return self.state is PropState.LOADING

	@property
	def require(self) -> T:
		"""The value, or InvalidStateError naming the state that blocks access."""
		state = self.state
		if state is PropState.SUCCESS:
			return cast(T, self.value)
		if state is PropState.ERROR:
			raise InvalidStateError(
				state, f"Cannot require value: {self._label()} has an error: {self.error!r}"
			)
		raise InvalidStateError(
			state, f"Cannot require value: {self._label()} is {state}"
		)

	@abstractmethod
	def invalidate(self) -> None:
		"""Manually mark the prop as not valid."""
		...

	@abstractmethod
	def validate(self) -> None:
		"""Manually mark the prop as valid, unless it holds an error."""
		...

	def _label(self) -> str:
		if self.name:
			return f"{type(self).__name__}({self.name})"
		return type(self).__name__

	@override
	def __repr__(self) -> str:
		return f"<{self._label()} state={self.state} value={self.value!r}>"


class Prop(PropBase[T]):
	"""
	A property holding a value, an error, or a loading state.

	Every mutation emits exactly one notification per visible transition. An
	async ``run`` emits two: entering ``loading`` and settling. Failures of the
	wrapped operation are stored on the prop and never re-raised.

	Overlapping operations are not queued: whichever settles last wins.
	"""

	_value: T | None
	_error: Exception | None
	_stack_trace: TracebackType | None
	_is_loading: bool
	_is_valid: bool
	_tasks: TaskRegistry
	_timers: TimerRegistry
	_driver: "PropDriver | None"

	def __init__(self, value: T = MISSING, *, name: str | None = None) -> None:
		super().__init__(name=name)
		self._value = None if value is MISSING else value
		self._is_valid = value is not MISSING
		self._error = None
		self._stack_trace = None
		self._is_loading = False
		self._tasks = TaskRegistry(name=f"prop.tasks({name})")
		self._timers = TimerRegistry(name=f"prop.timers({name})", tasks=self._tasks)
		self._driver = None

	@classmethod
	def empty(cls, *, name: str | None = None) -> "Prop[T]":
		return cls(name=name)

	@classmethod
	def with_value(cls, value: T, *, name: str | None = None) -> "Prop[T]":
		return cls(value, name=name)

	@property
	@override
	def state(self) -> PropState:
		if self._is_loading:
			return PropState.LOADING
		if self._error is not None:
			return PropState.ERROR
		if self._is_valid:
			return PropState.SUCCESS
		return PropState.INITIAL

	@property
	@override
	def value(self) -> T | None:
		return self._value

	@property
	@override
	def error(self) -> Exception | None:
		return self._error

	@property
	@override
	def stack_trace(self) -> TracebackType | None:
		return self._stack_trace

	@property
	def driver(self) -> "PropDriver | None":
		return self._driver

	def attach(self, driver: "PropDriver") -> None:
		if self._driver is not None:
			raise InvalidOperationError(f"{self._label()} already has a driver attached")
		self._driver = driver
		driver.bind(self)

	def set(self, value: T) -> None:
		"""Store a value and mark the prop valid, clearing any error."""
		self._value = value
		self._is_valid = True
		self._error = None
		self._stack_trace = None
		self.notify_listeners()

	async def run(
		self,
		operation: Callable[[], Awaitable[T]],
		*,
		on_success: OnSuccessFn[T] | None = None,
		on_failure: OnFailureFn | None = None,
	) -> None:
		"""
		Run an async operation and store its outcome.

		If the prop is disposed while the operation is awaited, the outcome is
		dropped and ``run`` returns normally.
		"""
		self._enter_loading()
		await self._settle(operation, on_success, on_failure)

	def run_sync(
		self,
		operation: Callable[[], T],
		*,
		on_success: OnSuccessFn[T] | None = None,
		on_failure: OnFailureFn | None = None,
	) -> None:
		try:
			value = operation()
			if on_success is not None:
				on_success(value)
		except Exception as exc:
			self._record_failure(exc)
			try:
				if on_failure is not None:
					on_failure(exc, exc.__traceback__)
			finally:
				self.notify_listeners()
			return
		self.set(value)

	async def transform(
		self,
		operation: Callable[[T], Awaitable[T]],
		*,
		on_success: OnSuccessFn[T] | None = None,
		on_failure: OnFailureFn | None = None,
	) -> None:
		"""Like ``run`` but fed the current value. Does nothing unless valid."""
		if not self.valid:
			return
		current = cast(T, self._value)
		self._enter_loading()
		await self._settle(lambda: operation(current), on_success, on_failure)

	def transform_sync(
		self,
		operation: Callable[[T], T],
		*,
		on_success: OnSuccessFn[T] | None = None,
		on_failure: OnFailureFn | None = None,
	) -> None:
		if not self.valid:
			return
		current = cast(T, self._value)
		self.run_sync(
			lambda: operation(current), on_success=on_success, on_failure=on_failure
		)

	def reset(self) -> None:
		"""Back to the empty initial state, dropping value and error."""
		self._value = None
		self._error = None
		self._stack_trace = None
		self._is_loading = False
		self._is_valid = False
		if self._driver is not None:
			self._driver.on_reset()
		self.notify_listeners()

	@override
	def invalidate(self) -> None:
		self._is_valid = False
		self.notify_listeners()

	@override
	def validate(self) -> None:
		if self._error is None:
			self._is_valid = True
			self.notify_listeners()

	@override
	def dispose(self) -> None:
		if self.__disposed__:
			return
		self._tasks.cancel_all()
		self._timers.cancel_all()
		if self._driver is not None:
			self._driver.dispose()
		super().dispose()

	# Transitions, shared with drivers

	def _enter_loading(self) -> None:
		self._is_loading = True
		self._error = None
		self._stack_trace = None
		self.notify_listeners()

	def _launch(
		self,
		operation: Callable[[], Awaitable[T]],
		*,
		on_success: OnSuccessFn[T] | None = None,
		on_failure: OnFailureFn | None = None,
	) -> asyncio.Task[None]:
		"""Enter loading now and settle on a task owned by this prop."""
		self._enter_loading()
		return self._tasks.create(
			self._settle(operation, on_success, on_failure),
			name=f"prop.run({self.name})",
			on_done=report_task_exception,
		)

	async def _settle(
		self,
		operation: Callable[[], Awaitable[T]],
		on_success: OnSuccessFn[T] | None,
		on_failure: OnFailureFn | None,
	) -> None:
		try:
			value = await operation()
			if self.__disposed__:
				logger.debug("%s disposed before settling, result dropped", self._label())
				return
			if on_success is not None:
				on_success(value)
		except asyncio.CancelledError:
			raise
		except Exception as exc:
			if self.__disposed__:
				logger.debug("%s disposed before settling: %r", self._label(), exc)
				return
			self._resolve_failure(exc, on_failure)
			return
		self._resolve_success(value)

	def _resolve_success(self, value: T) -> None:
		self._value = value
		self._is_valid = True
		self._error = None
		self._stack_trace = None
		self._is_loading = False
		self.notify_listeners()

	def _resolve_failure(
		self, exc: Exception, on_failure: OnFailureFn | None = None
	) -> None:
		self._record_failure(exc)
		self._is_loading = False
		logger.debug("%s settled with error: %r", self._label(), exc)
		try:
			if on_failure is not None:
				on_failure(exc, exc.__traceback__)
		finally:
			self.notify_listeners()

	def _record_failure(self, exc: Exception) -> None:
		self._error = exc
		self._stack_trace = exc.__traceback__
		self._is_valid = False

	def _clear_error(self) -> None:
		self._error = None
		self._stack_trace = None


class SyncProp(PropBase[T]):
	"""
	A synchronous property that always holds a value.

	It never loads and never fails; it is ``success`` from construction on,
	unless explicitly invalidated.
	"""

	_value: T
	_is_valid: bool

	def __init__(self, initial_value: T, *, name: str | None = None) -> None:
		super().__init__(name=name)
		self._value = initial_value
		self._is_valid = True

	@property
	@override
	def state(self) -> PropState:
		return PropState.SUCCESS if self._is_valid else PropState.INITIAL

	@property
	@override
	def value(self) -> T:
		return self._value

	@property
	@override
	def error(self) -> None:
		return None

	@property
	@override
	def stack_trace(self) -> None:
		return None

	def set(self, value: T) -> None:
		self._value = value
		self._is_valid = True
		self.notify_listeners()

	def transform(self, operation: Callable[[T], T]) -> None:
		"""Replace the value with ``operation(value)``. Does nothing unless valid."""
		if not self._is_valid:
			return
		self.set(operation(self._value))

	@override
	def invalidate(self) -> None:
		self._is_valid = False
		self.notify_listeners()

	@override
	def validate(self) -> None:
		self._is_valid = True
		self.notify_listeners()


__all__ = ["Prop", "PropBase", "PropState", "SyncProp"]
