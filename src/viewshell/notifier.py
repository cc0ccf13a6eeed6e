from collections.abc import Callable
from typing import override

from viewshell.errors import DisposedError
from viewshell.helpers import Disposable

Listener = Callable[[], None]


class ChangeNotifier(Disposable):
	"""
	Observable base shared by props and shells.

	Listeners are zero-argument callables. Notification runs over a snapshot of
	the listener list, so listeners may add or remove listeners (themselves
	included) while being notified. Exceptions raised by a listener propagate
	to whoever triggered the notification.
	"""

	_listeners: list[Listener]

	def __init__(self) -> None:
		self._listeners = []

	@property
	def has_listeners(self) -> bool:
		return len(self._listeners) > 0

	def add_listener(self, listener: Listener) -> None:
		self._check_not_disposed("add_listener")
		self._listeners.append(listener)

	def remove_listener(self, listener: Listener) -> None:
		if self.__disposed__:
			return
		try:
			self._listeners.remove(listener)
		except ValueError:
			pass

	def notify_listeners(self) -> None:
		self._check_not_disposed("notify_listeners")
		if not self._listeners:
			return
		snapshot = list(self._listeners)
		for listener in snapshot:
			# Skip listeners removed by an earlier listener in this round
			if listener in self._listeners:
				listener()

	def _check_not_disposed(self, caller: str) -> None:
		if self.__disposed__:
			raise DisposedError(
				f"{type(self).__name__} was used after being disposed (in {caller})"
			)

	@override
	def dispose(self) -> None:
		self._listeners.clear()
		self.__disposed__ = True
