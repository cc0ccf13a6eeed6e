"""
Task and timer ownership for props.

Every prop owns a ``TaskRegistry`` and a ``TimerRegistry`` so that disposing it
cancels whatever it started. Failures of fire-and-forget work are logged
through ``viewshell.errors.report``.
"""

import asyncio
from collections.abc import Awaitable, Callable
from functools import partial
from typing import Any, ParamSpec, Protocol, TypeVar

from anyio import from_thread

from viewshell.errors import ErrorCode, report

T = TypeVar("T")
P = ParamSpec("P")


class TimerHandleLike(Protocol):
	def cancel(self) -> None: ...
	def cancelled(self) -> bool: ...


def _on_loop(fn: Callable[[], T]) -> T:
	"""Call ``fn`` on the event loop, hopping over from a worker thread if needed."""
	try:
		asyncio.get_running_loop()
	except RuntimeError:

		async def _call() -> T:
			return fn()

		return from_thread.run(_call)
	return fn()


def create_task(
	coroutine: Awaitable[T],
	*,
	name: str | None = None,
	on_done: Callable[[asyncio.Task[T]], None] | None = None,
) -> asyncio.Task[T]:
	"""Schedule ``coroutine`` on the event loop, from the loop or a worker thread."""

	def _start() -> asyncio.Task[T]:
		task = asyncio.ensure_future(coroutine)
		if name is not None:
			task.set_name(name)
		if on_done is not None:
			task.add_done_callback(on_done)
		return task

	return _on_loop(_start)


def create_future_on_loop() -> asyncio.Future[Any]:
	"""Create a Future bound to the event loop, from the loop or a worker thread."""
	return _on_loop(lambda: asyncio.get_running_loop().create_future())


def report_task_exception(
	task: asyncio.Task[Any], *, code: ErrorCode = "prop.run", **details: Any
) -> None:
	"""Done-callback surfacing failures of fire-and-forget tasks."""
	try:
		task.result()
	except asyncio.CancelledError:
		# Normal cancellation path
		pass
	except Exception as exc:
		report(exc, code=code, details={"task": task.get_name(), **details})


class TaskRegistry:
	_tasks: set[asyncio.Task[Any]]
	name: str | None

	def __init__(self, name: str | None = None) -> None:
		self._tasks = set()
		self.name = name

	def __len__(self) -> int:
		return len(self._tasks)

	def track(self, task: asyncio.Task[T]) -> asyncio.Task[T]:
		self._tasks.add(task)
		task.add_done_callback(self._tasks.discard)
		return task

	def create(
		self,
		coroutine: Awaitable[T],
		*,
		name: str | None = None,
		on_done: Callable[[asyncio.Task[T]], None] | None = None,
	) -> asyncio.Task[T]:
		return self.track(create_task(coroutine, name=name, on_done=on_done))

	def cancel_all(self) -> None:
		for task in list(self._tasks):
			if not task.done():
				task.cancel()
		self._tasks.clear()


class TimerRegistry:
	"""
	Timers owned by one prop.

	A callback returning a coroutine has it run as a task on ``tasks``, so
	``cancel_all`` stops timers that already fired but are still running.
	"""

	_timers: set["_Timer"]
	tasks: TaskRegistry
	name: str | None

	def __init__(
		self, name: str | None = None, *, tasks: TaskRegistry | None = None
	) -> None:
		self._timers = set()
		self.name = name
		self.tasks = tasks if tasks is not None else TaskRegistry(name=name)

	def __len__(self) -> int:
		return len(self._timers)

	def later(
		self,
		delay: float,
		fn: Callable[P, Any],
		*args: P.args,
		**kwargs: P.kwargs,
	) -> TimerHandleLike:
		"""Call ``fn(*args, **kwargs)`` after ``delay`` seconds. Needs a running loop."""
		loop = asyncio.get_running_loop()
		timer = _Timer(self)
		timer.handle = loop.call_later(delay, self._fire, timer, fn, args, kwargs)
		self._timers.add(timer)
		return timer

	def cancel_all(self) -> None:
		for timer in list(self._timers):
			timer.cancel()
		self._timers.clear()
		self.tasks.cancel_all()

	def _fire(
		self,
		timer: "_Timer",
		fn: Callable[..., Any],
		args: tuple[Any, ...],
		kwargs: dict[str, Any],
	) -> None:
		self._timers.discard(timer)
		try:
			result = fn(*args, **kwargs)
		except Exception as exc:
			report(exc, code="timer.later", details={"callback": repr(fn)})
			return
		if asyncio.iscoroutine(result):
			self.tasks.create(
				result,
				name=f"{self.name}.later",
				on_done=partial(report_task_exception, code="timer.later"),
			)


class _Timer:
	__slots__: tuple[str, ...] = ("_registry", "handle")
	_registry: TimerRegistry
	handle: asyncio.TimerHandle | None

	def __init__(self, registry: TimerRegistry) -> None:
		self._registry = registry
		self.handle = None

	def cancel(self) -> None:
		if self.handle is not None:
			self.handle.cancel()
		self._registry._timers.discard(self)  # pyright: ignore[reportPrivateUsage]

	def cancelled(self) -> bool:
		return self.handle is not None and self.handle.cancelled()


__all__ = [
	"TaskRegistry",
	"TimerHandleLike",
	"TimerRegistry",
	"create_future_on_loop",
	"create_task",
	"report_task_exception",
]
