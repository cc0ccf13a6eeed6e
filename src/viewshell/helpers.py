from abc import ABC, abstractmethod
from typing import Any, override


class Sentinel:
	def __init__(self, name: str) -> None:
		self.name = name

	@override
	def __repr__(self) -> str:
		return self.name


MISSING: Any = Sentinel("MISSING")


class Disposable(ABC):
	"""Something that owns resources and must be released explicitly."""

	__disposed__: bool = False

	@abstractmethod
	def dispose(self) -> None: ...


__all__ = ["MISSING", "Disposable", "Sentinel"]
