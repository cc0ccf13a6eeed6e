from collections.abc import Callable
from typing import Any

import pytest
from viewshell.scope import ShellScope


@pytest.fixture
def mount():
	"""Mount shells in a ShellScope and unmount them when the test ends."""
	scopes: list[ShellScope[Any]] = []

	def _mount(create: Callable[[ShellScope[Any]], Any], **kwargs: Any):
		scope = ShellScope(create, **kwargs)
		scopes.append(scope)
		return scope

	yield _mount
	for scope in scopes:
		scope.unmount()
