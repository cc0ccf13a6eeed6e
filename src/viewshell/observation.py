"""
Fine-grained observation of props by render scopes.

An ``Observer`` is the subscription handle of one UI fragment. While a
``RenderPass`` is active, the fragment declares which props it reads with
``ObservationRegistry.observe``. When such a prop notifies, only the observers
bound to it are marked for rebuild.
"""

import logging
from collections.abc import Callable, Hashable
from contextvars import ContextVar, Token
from typing import Any, Literal, override

from viewshell.errors import ObservationError
from viewshell.helpers import Disposable
from viewshell.prop import PropBase

logger = logging.getLogger(__name__)


class Observer:
	"""
	Subscription handle for a fragment that reads props while rendering.

	``on_invalidate`` is called each time the observer is marked dirty. An
	unmounted observer is ignored and pruned lazily by the registry.
	"""

	__slots__ = ("name", "mounted", "dirty", "builds", "on_invalidate")  # pyright: ignore[reportUnannotatedClassAttribute]

	name: str | None
	mounted: bool
	dirty: bool
	builds: int
	on_invalidate: Callable[["Observer"], None] | None

	def __init__(
		self,
		on_invalidate: Callable[["Observer"], None] | None = None,
		*,
		name: str | None = None,
	) -> None:
		self.name = name
		self.mounted = True
		self.dirty = False
		self.builds = 0
		self.on_invalidate = on_invalidate

	def mark_needs_build(self) -> None:
		if not self.mounted:
			return
		self.dirty = True
		if self.on_invalidate is not None:
			self.on_invalidate(self)

	def mark_built(self) -> None:
		self.dirty = False
		self.builds += 1

	def unmount(self) -> None:
		self.mounted = False

	@override
	def __repr__(self) -> str:
		return f"<Observer {self.name or hex(id(self))} mounted={self.mounted} dirty={self.dirty}>"


class RenderPass:
	"""
	Marks an active build pass. Nested passes share the outermost one.

	Work deferred with ``defer`` runs when the outermost pass exits, so a prop
	notifying mid-render does not mark observers dirty during the same build.
	Tasks and timers copy the context they are started in; once the outermost
	pass has exited it is closed, and such late callers see no active pass.
	"""

	_token: "Token[RenderPass | None] | None"
	_deferred: dict[Hashable, Callable[[], None]]
	_root: "RenderPass | None"
	_closed: bool

	def __init__(self) -> None:
		self._token = None
		self._deferred = {}
		self._root = None
		self._closed = False

	@property
	def closed(self) -> bool:
		return (self._root or self)._closed

	@staticmethod
	def current() -> "RenderPass | None":
		active = RENDER_PASS.get()
		if active is None or active.closed:
			return None
		return active

	@staticmethod
	def require(caller: str | None = None) -> "RenderPass":
		active = RenderPass.current()
		if active is None:
			caller = caller or "this function"
			raise ObservationError(
				f"Missing render pass, {caller} was likely called outside of a build"
			)
		return active

	def defer(self, callback: Callable[[], None], *, key: Hashable | None = None) -> None:
		"""
		Run ``callback`` when the outermost pass exits, or right away if it
		already has. Callbacks sharing a ``key`` run once per pass.
		"""
		root = self._root or self
		if root._closed:
			callback()
			return
		root._deferred[key if key is not None else object()] = callback

	def __enter__(self) -> "RenderPass":
		outer = RenderPass.current()
		self._root = None if outer is None else (outer._root or outer)
		self._closed = False
		self._token = RENDER_PASS.set(self)
		return self

	def __exit__(
		self,
		exc_type: type[BaseException] | None,
		exc_val: BaseException | None,
		exc_tb: Any,
	) -> Literal[False]:
		if self._token is not None:
			RENDER_PASS.reset(self._token)
			self._token = None
		self._closed = True
		if self._root is None:
			self._flush()
		return False

	def _flush(self) -> None:
		while self._deferred:
			pending = list(self._deferred.values())
			self._deferred.clear()
			for callback in pending:
				callback()


RENDER_PASS: ContextVar[RenderPass | None] = ContextVar(
	"viewshell_render_pass", default=None
)


class ObservationRegistry(Disposable):
	"""
	Binds observers to the props they read.

	Every (observer, prop) pair owns exactly one listener on the prop; the
	listener and both index entries are added and removed together. A listener
	only marks its own observer, so a change marks each live observer of the
	prop once. Marks requested during a render pass collapse to one per
	observer.
	"""

	_observers: dict[PropBase[Any], set[Observer]]
	_callbacks: dict[Observer, dict[PropBase[Any], Callable[[], None]]]

	def __init__(self) -> None:
		self._observers = {}
		self._callbacks = {}

	def observe(self, observer: Observer, prop: PropBase[Any]) -> None:
		RenderPass.require("observe()")
		bindings = self._callbacks.get(observer)
		if bindings is not None and prop in bindings:
			return

		def callback() -> None:
			self._mark(observer, prop)

		prop.add_listener(callback)
		self._callbacks.setdefault(observer, {})[prop] = callback
		self._observers.setdefault(prop, set()).add(observer)

	def observers_of(self, prop: PropBase[Any]) -> frozenset[Observer]:
		return frozenset(self._observers.get(prop, ()))

	def props_of(self, observer: Observer) -> frozenset[PropBase[Any]]:
		return frozenset(self._callbacks.get(observer, {}))

	def mark_observers_for_build(self, prop: PropBase[Any]) -> None:
		"""Prune the unmounted observers of ``prop`` and mark the others once."""
		observers = list(self._observers.get(prop, ()))
		for observer in observers:
			if not observer.mounted:
				self._release(observer, prop)
		for observer in observers:
			if observer.mounted:
				self._mark(observer, prop)

	def forget(self, observer: Observer) -> None:
		"""Drop every binding of ``observer`` right away."""
		for prop in list(self._callbacks.get(observer, {})):
			self._release(observer, prop)

	def _mark(self, observer: Observer, prop: PropBase[Any]) -> None:
		if prop not in self._callbacks.get(observer, {}):
			return
		if not observer.mounted:
			self._release(observer, prop)
			return
		active = RenderPass.current()
		if active is not None:
			active.defer(lambda: self._mark(observer, prop), key=(id(self), observer))
			return
		observer.mark_needs_build()

	def _release(self, observer: Observer, prop: PropBase[Any]) -> None:
		bindings = self._callbacks.get(observer)
		if bindings is not None:
			callback = bindings.pop(prop, None)
			if callback is not None:
				prop.remove_listener(callback)
			if not bindings:
				del self._callbacks[observer]

		observers = self._observers.get(prop)
		if observers is not None:
			observers.discard(observer)
			if not observers:
				del self._observers[prop]
		logger.debug("Released %r from %r", observer, prop)

	@override
	def dispose(self) -> None:
		for observer in list(self._callbacks):
			self.forget(observer)
		self.__disposed__ = True


__all__ = ["RENDER_PASS", "ObservationRegistry", "Observer", "RenderPass"]
