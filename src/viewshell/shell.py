import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, TypeAlias, TypeVar, override

from viewshell.errors import InvalidOperationError, ShellNotMountedError
from viewshell.notifier import ChangeNotifier
from viewshell.prop import PropBase
from viewshell.resolver import Resolver, resolve
from viewshell.scheduling import create_future_on_loop
from viewshell.view_state import ViewState, same_kind

T = TypeVar("T")

logger = logging.getLogger(__name__)

# A ShellAction receives the live rendering context and returns a value, an
# awaitable, or None. Dialogs, sheets and toasts are imperative, so they are
# treated like any other source of information (e.g. an API call).
ShellAction: TypeAlias = Callable[[Any], T | Awaitable[T] | None]
ContextProvider: TypeAlias = Callable[[], Any | None]


class Shell(ChangeNotifier):
	"""
	Controller aggregating a fixed list of props into one ``ViewState``.

	The shell listens to each prop and re-resolves on every change, but only
	notifies its own listeners when the kind of state changes (``Pending`` to
	``Valid``, ``Valid`` to ``Error``, ...). Props in ``view_props`` are
	disposed with the shell; any other props must be disposed manually.

	Subclass it, create the props in ``__init__`` and pass them up:

	```python
	class CounterShell(Shell):
	    def __init__(self):
	        self.counter = SyncProp(0)
	        self.remote = FutureProp(load_counter())
	        super().__init__([self.counter, self.remote])
	```

	A custom aggregation policy can be passed as ``resolver=`` or defined as a
	``resolver(self, props)`` method on the subclass.
	"""

	resolver: Resolver | None = None

	_view_props: tuple[PropBase[Any], ...]
	_state: ViewState
	_testing: bool
	_mounted: bool
	_was_attached: bool
	_active: dict[ShellAction[Any], asyncio.Future[Any]]
	_context_provider: ContextProvider | None

	def __init__(
		self,
		view_props: Sequence[PropBase[Any]],
		*,
		resolver: Resolver | None = None,
	) -> None:
		super().__init__()
		if resolver is not None:
			self.resolver = resolver
		self._view_props = tuple(view_props)
		self._testing = False
		self._mounted = False
		self._was_attached = False
		self._active = {}
		self._context_provider = None
		self._state = self._resolve()
		for prop in self._view_props:
			prop.add_listener(self._prop_listener)

	@property
	def view_props(self) -> tuple[PropBase[Any], ...]:
		return self._view_props

	@property
	def state(self) -> ViewState:
		return self._state

	@property
	def mounted(self) -> bool:
		return self._mounted

	def reevaluate_props(self) -> None:
		"""Re-resolve the props by hand, mostly useful in tests."""
		self._prop_listener()

	# Context binding, used by the rendering layer

	def attach(self, provider: ContextProvider) -> None:
		"""Bind the accessor that yields the live context, or None once it is gone."""
		self._context_provider = provider
		self._mounted = True
		self._was_attached = True

	def detach(self) -> None:
		self._context_provider = None
		self._mounted = False

	def shell_run(self, action: ShellAction[T]) -> "T | Awaitable[T] | None":
		"""
		Run ``action`` with the context this shell is mounted in.

		Returns None when the context is gone. Calling it before the shell was
		ever attached (from ``__init__`` or a field initializer) is an error.
		"""
		if self._testing:
			future = create_future_on_loop()
			previous = self._active.get(action)
			if previous is not None and not previous.done():
				previous.cancel()
			self._active[action] = future
			return future

		if not self._mounted:
			if not self._was_attached:
				raise ShellNotMountedError(
					f"Called shell_run in {type(self).__name__} before it was mounted. "
					+ "shell_run cannot be used during construction, only from methods "
					+ "called once the shell is attached to a context."
				)
			return None

		provider = self._context_provider
		context = provider() if provider is not None else None
		if context is None:
			return None
		return action(context)

	# Test interception

	def fake_shell(self) -> None:
		"""
		Behave as if mounted without a context: ``shell_run`` calls are parked
		until answered with ``shell_return_for_action``.
		"""
		self._testing = True

	def shell_is_action_pending(self, action: ShellAction[Any]) -> bool:
		return action in self._active

	def shell_return_for_action(self, action: ShellAction[T], value: T) -> None:
		future = self._take_pending(action)
		future.set_result(value)

	def shell_fail_action(self, action: ShellAction[Any], error: BaseException) -> None:
		future = self._take_pending(action)
		future.set_exception(error)

	def _take_pending(self, action: ShellAction[Any]) -> asyncio.Future[Any]:
		if not self.shell_is_action_pending(action):
			raise InvalidOperationError(
				"Attempted to return for shell action while action is not pending completion."
			)
		return self._active.pop(action)

	# Resolution

	def _resolve(self) -> ViewState:
		if self.resolver is not None:
			return self.resolver(self._view_props)
		return resolve(self._view_props)

	def _prop_listener(self) -> None:
		new_state = self._resolve()
		previous = self._state
		self._state = new_state
		if not same_kind(previous, new_state):
			logger.debug(
				"%s state %s -> %s",
				type(self).__name__,
				type(previous).__name__,
				type(new_state).__name__,
			)
			self.notify_listeners()

	@override
	def dispose(self) -> None:
		if self.__disposed__:
			return
		for prop in self._view_props:
			prop.remove_listener(self._prop_listener)
			prop.dispose()
		self.detach()
		for future in self._active.values():
			if not future.done():
				future.cancel()
		self._active.clear()
		super().dispose()


__all__ = ["ContextProvider", "Shell", "ShellAction"]
