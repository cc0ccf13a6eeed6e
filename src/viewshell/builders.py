from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, override

from viewshell.view_state import Error, Pending, PropError, Valid, ViewState

if TYPE_CHECKING:
	from viewshell.prop import PropBase
	from viewshell.scope import ShellScope

DEFAULT_ERROR_MESSAGE = "An unexpected error occurred"

ValidViewBuilder = Callable[[], Any]


@dataclass(frozen=True, slots=True)
class LoadingPlaceholder:
	"""Rendered by the default builder while the view is pending."""


@dataclass(frozen=True, slots=True)
class ErrorPlaceholder:
	"""Rendered by the default builder when the view has errors."""

	message: str = DEFAULT_ERROR_MESSAGE
	errors: Mapping["PropBase[Any]", PropError] = field(
		default_factory=lambda: MappingProxyType({})
	)


class ShellBuilder(ABC):
	"""
	Chooses what to render for the current ``ViewState``.

	``child`` builds the actual content and is typically only called when the
	state is ``Valid``.
	"""

	@abstractmethod
	def build(
		self, scope: "ShellScope[Any]", state: ViewState, child: ValidViewBuilder
	) -> Any: ...


class DefaultShellBuilder(ShellBuilder):
	"""Content when valid, a generic error placeholder on error, loading otherwise."""

	@override
	def build(
		self, scope: "ShellScope[Any]", state: ViewState, child: ValidViewBuilder
	) -> Any:
		match state:
			case Valid():
				return child()
			case Error(errors=errors):
				return ErrorPlaceholder(DEFAULT_ERROR_MESSAGE, errors)
			case _:
				return LoadingPlaceholder()


class SimpleShellBuilder(ShellBuilder):
	"""Builder split into one method per state kind."""

	@abstractmethod
	def valid(self, scope: "ShellScope[Any]", child: ValidViewBuilder) -> Any: ...

	@abstractmethod
	def error(self, scope: "ShellScope[Any]", state: Error) -> Any: ...

	@abstractmethod
	def pending(self, scope: "ShellScope[Any]", state: Pending | None) -> Any: ...

	@override
	def build(
		self, scope: "ShellScope[Any]", state: ViewState, child: ValidViewBuilder
	) -> Any:
		if isinstance(state, Valid):
			return self.valid(scope, child)
		if isinstance(state, Error):
			return self.error(scope, state)
		return self.pending(scope, state if isinstance(state, Pending) else None)


DEFAULT_SHELL_BUILDER: ShellBuilder = DefaultShellBuilder()


__all__ = [
	"DEFAULT_ERROR_MESSAGE",
	"DEFAULT_SHELL_BUILDER",
	"DefaultShellBuilder",
	"ErrorPlaceholder",
	"LoadingPlaceholder",
	"ShellBuilder",
	"SimpleShellBuilder",
	"ValidViewBuilder",
]
