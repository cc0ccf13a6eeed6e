"""
Host-agnostic render binding for a ``Shell``.

A ``ShellScope`` creates its shell, attaches it to a context and asks the
resolved ``ShellBuilder`` what to render. The scope itself is only marked for
rebuild when the kind of ``ViewState`` changes; fragments that read individual
props (``PropBuilder``, ``PropValueBuilder``) observe those props directly and
rebuild on their own.
"""

import logging
from collections.abc import Callable
from typing import Any, Generic, TypeVar, override

from viewshell.builders import ShellBuilder, ValidViewBuilder
from viewshell.config import ViewShellConfig, resolve_builder
from viewshell.errors import DisposedError
from viewshell.helpers import Disposable
from viewshell.observation import ObservationRegistry, Observer, RenderPass
from viewshell.prop import PropBase
from viewshell.shell import Shell

S = TypeVar("S", bound=Shell)
P = TypeVar("P", bound=PropBase[Any])

logger = logging.getLogger(__name__)


class ShellScope(Disposable, Generic[S]):
	"""
	Owns a shell for the lifetime of a mounted view.

	``create`` receives the scope and must return a new shell. The shell is
	attached once it exists, so calling ``shell_run`` from the shell's
	constructor fails with ``ShellNotMountedError``. ``on_invalidate`` is called
	whenever the scope needs to be rebuilt by the host.
	"""

	shell: S
	builder: ShellBuilder | None
	config: ViewShellConfig | None
	registry: ObservationRegistry
	observer: Observer

	def __init__(
		self,
		create: Callable[["ShellScope[S]"], S],
		*,
		builder: ShellBuilder | None = None,
		config: ViewShellConfig | None = None,
		on_invalidate: Callable[[Observer], None] | None = None,
		name: str | None = None,
	) -> None:
		self.builder = builder
		self.config = config
		self.registry = ObservationRegistry()
		self.observer = Observer(on_invalidate, name=name)
		self.shell = create(self)
		self.shell.attach(self._context)
		self.shell.add_listener(self._on_state_change)
		logger.debug("Mounted %s in %r", type(self.shell).__name__, self.observer)

	@property
	def mounted(self) -> bool:
		return self.observer.mounted

	def build(self, child: ValidViewBuilder) -> Any:
		"""Render the current state with the resolved builder."""
		if self.__disposed__:
			raise DisposedError("Cannot build an unmounted ShellScope")
		builder = resolve_builder(self.builder, self.config)
		with RenderPass():
			result = builder.build(self, self.shell.state, child)
		self.observer.mark_built()
		return result

	def prop(self, selector: Callable[[S], P], observer: Observer) -> P:
		"""
		Select a prop from the shell and bind it to ``observer``.

		Must be called while rendering. Only ``observer`` is rebuilt when the
		selected prop changes.
		"""
		selected = selector(self.shell)
		self.registry.observe(observer, selected)
		return selected

	def read(self, selector: Callable[[S], P]) -> P:
		"""Select a prop without subscribing to it."""
		return selector(self.shell)

	def unmount(self) -> None:
		if self.__disposed__:
			return
		self.observer.unmount()
		self.shell.remove_listener(self._on_state_change)
		self.shell.dispose()
		self.registry.dispose()
		self.__disposed__ = True
		logger.debug("Unmounted %r", self.observer)

	@override
	def dispose(self) -> None:
		self.unmount()

	def _context(self) -> "ShellScope[S] | None":
		return self if self.observer.mounted else None

	def _on_state_change(self) -> None:
		self.observer.mark_needs_build()


class PropBuilder(Generic[S, P]):
	"""
	Fragment that rebuilds when one prop changes.

	``builder`` receives the selected prop itself, whatever its state.
	"""

	selector: Callable[[S], P]
	builder: Callable[[P], Any]
	observer: Observer

	def __init__(
		self,
		selector: Callable[[S], P],
		builder: Callable[[P], Any],
		*,
		on_invalidate: Callable[[Observer], None] | None = None,
		name: str | None = None,
	) -> None:
		self.selector = selector
		self.builder = builder
		self.observer = Observer(on_invalidate, name=name)

	def build(self, scope: ShellScope[S]) -> Any:
		with RenderPass():
			prop = scope.prop(self.selector, self.observer)
			result = self._render(prop)
		self.observer.mark_built()
		return result

	def _render(self, prop: P) -> Any:
		return self.builder(prop)

	def unmount(self, scope: ShellScope[S] | None = None) -> None:
		self.observer.unmount()
		if scope is not None:
			scope.registry.forget(self.observer)


class PropValueBuilder(PropBuilder[S, P]):
	"""
	Fragment fed the value of a prop, for props that are known to be valid.

	Reading goes through ``require``, so an invalid prop raises
	``InvalidStateError`` while rendering.
	"""

	@override
	def _render(self, prop: P) -> Any:
		return self.builder(prop.require)


__all__ = ["PropBuilder", "PropValueBuilder", "ShellScope"]
