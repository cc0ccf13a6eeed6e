from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType, TracebackType
from typing import TYPE_CHECKING, Any, TypeAlias

if TYPE_CHECKING:
	from viewshell.prop import PropBase


@dataclass(frozen=True, slots=True)
class PropError:
	"""The error held by a failed prop, with its traceback."""

	error: Exception
	stack_trace: TracebackType | None = None


@dataclass(frozen=True, slots=True)
class Valid:
	"""Every prop is valid; the view can be built."""


@dataclass(frozen=True, slots=True)
class Error:
	"""
	One or more props failed.

	``errors`` maps each failed prop to its error, in the order the props were
	given to the resolver. ``stale_data`` is the first failed prop's last value.
	"""

	errors: Mapping["PropBase[Any]", PropError] = field(
		default_factory=lambda: MappingProxyType({})
	)
	stale_data: Any = None

	@property
	def first(self) -> PropError | None:
		return next(iter(self.errors.values()), None)


@dataclass(frozen=True, slots=True)
class Pending:
	"""Some prop is still loading or not valid yet."""

	stale_data: Any = None


ViewState: TypeAlias = Valid | Error | Pending


def same_kind(a: ViewState, b: ViewState) -> bool:
	"""Whether two states carry the same tag, ignoring their payload."""
	return type(a) is type(b)


__all__ = ["Error", "Pending", "PropError", "Valid", "ViewState", "same_kind"]
