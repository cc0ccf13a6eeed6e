from __future__ import annotations

import logging
import traceback
from typing import TYPE_CHECKING, Any, Literal

if TYPE_CHECKING:
	from viewshell.prop import PropState

logger = logging.getLogger(__name__)

ErrorCode = Literal["prop.run", "prop.stream", "timer.later"]


class UsageError(RuntimeError):
	"""Programming error surfaced to the caller, never caught by viewshell."""


class InvalidStateError(UsageError):
	"""Raised when a Prop value is required while the Prop is not valid."""

	state: "PropState"

	def __init__(self, state: "PropState", message: str | None = None) -> None:
		self.state = state
		super().__init__(message or f"Cannot require value: Prop is {state}")


class InvalidOperationError(UsageError):
	pass


class ShellNotMountedError(InvalidOperationError):
	pass


class ObservationError(UsageError):
	pass


class DisposedError(UsageError):
	pass


def _format_stack(exc: BaseException) -> str:
	return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))


def report(
	exc: BaseException,
	*,
	code: ErrorCode,
	details: dict[str, Any] | None = None,
	message: str | None = None,
) -> None:
	"""Log an exception that escaped fire-and-forget work (tasks, timers)."""
	payload_details = dict(details) if details is not None else {}
	payload_message = message or str(exc) or type(exc).__name__
	logger.error(
		"viewshell error code=%s message=%s details=%s\n%s",
		code,
		payload_message,
		payload_details,
		_format_stack(exc),
	)


__all__ = [
	"DisposedError",
	"ErrorCode",
	"InvalidOperationError",
	"InvalidStateError",
	"ObservationError",
	"ShellNotMountedError",
	"UsageError",
	"report",
]
