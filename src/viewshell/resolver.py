from collections.abc import Callable, Sequence
from types import MappingProxyType
from typing import Any, TypeAlias

from viewshell.prop import PropBase
from viewshell.view_state import Error, Pending, PropError, Valid, ViewState

Resolver: TypeAlias = Callable[[Sequence[PropBase[Any]]], ViewState]


def resolve(props: Sequence[PropBase[Any]]) -> ViewState:
	"""
	Aggregate prop states into one view state.

	Errors win over everything, even props that are still loading. Otherwise
	any prop that is not valid makes the view pending. Only when every prop is
	valid is the view valid.
	"""
	errors: dict[PropBase[Any], PropError] = {}
	stale_data: Any = None
	for prop in props:
		if prop.has_error:
			if not errors:
				stale_data = prop.value
			errors[prop] = PropError(prop.error, prop.stack_trace)  # pyright: ignore[reportArgumentType]

	if errors:
		return Error(MappingProxyType(errors), stale_data=stale_data)

	for prop in props:
		if not prop.valid:
			return Pending(stale_data=prop.value)

	return Valid()


__all__ = ["Resolver", "resolve"]
