import asyncio
from typing import Any, override

import pytest
from viewshell.builders import (
	DEFAULT_ERROR_MESSAGE,
	DefaultShellBuilder,
	ErrorPlaceholder,
	LoadingPlaceholder,
	ShellBuilder,
	SimpleShellBuilder,
)
from viewshell.config import ViewShellConfig, resolve_builder
from viewshell.errors import DisposedError, InvalidStateError, ShellNotMountedError
from viewshell.observation import Observer
from viewshell.prop import Prop, SyncProp
from viewshell.scope import PropBuilder, PropValueBuilder, ShellScope
from viewshell.shell import Shell
from viewshell.test_helpers import wait_for
from viewshell.variants import DebouncedProp, FutureProp
from viewshell.view_state import Error, Pending, ViewState


def fail() -> str:
	raise ValueError("boom")


class TodoShell(Shell):
	def __init__(self) -> None:
		self.title = SyncProp("Todos")
		self.items: Prop[list[str]] = Prop(name="items")
		super().__init__([self.title, self.items])

	def greet(self):
		return self.shell_run(lambda scope: f"hello from {type(scope).__name__}")


class Invalidations:
	def __init__(self) -> None:
		self.count = 0

	def __call__(self, observer: Observer) -> None:
		self.count += 1


class Labels(SimpleShellBuilder):
	@override
	def valid(self, scope: ShellScope[Any], child: Any) -> Any:
		return ("valid", child())

	@override
	def error(self, scope: ShellScope[Any], state: Error) -> Any:
		return ("error", len(state.errors))

	@override
	def pending(self, scope: ShellScope[Any], state: Pending | None) -> Any:
		return ("pending", state.stale_data if state else None)


class Fixed(ShellBuilder):
	def __init__(self, label: str) -> None:
		self.label = label

	@override
	def build(self, scope: ShellScope[Any], state: ViewState, child: Any) -> Any:
		return self.label


def test_resolve_builder_precedence():
	local = Fixed("local")
	ambient = Fixed("ambient")

	assert resolve_builder(local, ViewShellConfig(shell_builder=ambient)) is local
	assert resolve_builder(None, ViewShellConfig(shell_builder=ambient)) is ambient
	assert isinstance(resolve_builder(None, ViewShellConfig()), DefaultShellBuilder)
	assert isinstance(resolve_builder(None), DefaultShellBuilder)


def test_default_builder_renders_each_state(mount: Any):
	scope: ShellScope[TodoShell] = mount(lambda _: TodoShell())

	assert scope.build(lambda: "content") == LoadingPlaceholder()

	scope.shell.items.set(["milk"])
	assert scope.build(lambda: "content") == "content"

	scope.shell.items.run_sync(fail)  # pyright: ignore[reportArgumentType]
	rendered = scope.build(lambda: "content")
	assert isinstance(rendered, ErrorPlaceholder)
	assert rendered.message == DEFAULT_ERROR_MESSAGE
	assert list(rendered.errors) == [scope.shell.items]


def test_scope_uses_ambient_builder_unless_overridden(mount: Any):
	config = ViewShellConfig(shell_builder=Labels())

	ambient: ShellScope[TodoShell] = mount(lambda _: TodoShell(), config=config)
	local: ShellScope[TodoShell] = mount(
		lambda _: TodoShell(), config=config, builder=Fixed("local")
	)

	assert ambient.build(lambda: "content") == ("pending", None)
	ambient.shell.items.set([])
	assert ambient.build(lambda: "content") == ("valid", "content")
	assert local.build(lambda: "content") == "local"


def test_scope_rebuilds_only_on_state_kind_change(mount: Any):
	invalidations = Invalidations()
	scope: ShellScope[TodoShell] = mount(
		lambda _: TodoShell(), on_invalidate=invalidations
	)

	scope.shell.items.set(["a"])
	scope.shell.items.set(["a", "b"])
	scope.shell.title.set("Groceries")

	assert invalidations.count == 1
	assert scope.observer.dirty


def test_prop_builder_rebuilds_on_its_prop_only(mount: Any):
	scope: ShellScope[TodoShell] = mount(lambda _: TodoShell())
	scope.shell.items.set([])
	title_invalidations = Invalidations()
	title = PropBuilder(
		lambda shell: shell.title,
		lambda prop: prop.value.upper(),
		on_invalidate=title_invalidations,
	)

	rendered = scope.build(lambda: title.build(scope))
	assert rendered == "TODOS"

	scope.shell.items.set(["x"])
	assert title_invalidations.count == 0

	scope.shell.title.set("Done")
	assert title_invalidations.count == 1
	assert title.build(scope) == "DONE"
	assert title.observer.builds == 2


def test_prop_value_builder_reads_required_value(mount: Any):
	scope: ShellScope[TodoShell] = mount(lambda _: TodoShell())
	count = PropValueBuilder(lambda shell: shell.items, len)

	with pytest.raises(InvalidStateError):
		count.build(scope)

	scope.shell.items.set(["a", "b"])
	assert count.build(scope) == 2


def test_prop_change_during_build_is_deferred(mount: Any):
	scope: ShellScope[TodoShell] = mount(lambda _: TodoShell())
	scope.shell.items.set([])
	fragment = PropBuilder(lambda shell: shell.title, lambda prop: prop.value)

	def child() -> str:
		result = fragment.build(scope)
		scope.shell.title.set("changed while rendering")
		assert not fragment.observer.dirty
		return result

	scope.build(child)

	assert fragment.observer.dirty


def test_unmounted_fragment_stops_listening(mount: Any):
	scope: ShellScope[TodoShell] = mount(lambda _: TodoShell())
	fragment = PropBuilder(lambda shell: shell.title, lambda prop: prop.value)
	scope.build(lambda: fragment.build(scope))

	fragment.unmount(scope)
	scope.shell.title.set("ignored")

	assert not fragment.observer.dirty
	assert scope.registry.observers_of(scope.shell.title) == frozenset()


def test_shell_run_during_creation_raises():
	class EagerShell(TodoShell):
		def __init__(self) -> None:
			super().__init__()
			self.greet()

	with pytest.raises(ShellNotMountedError):
		ShellScope(lambda _: EagerShell())


def test_shell_run_receives_scope_while_mounted(mount: Any):
	scope: ShellScope[TodoShell] = mount(lambda _: TodoShell())

	assert scope.mounted
	assert scope.shell.greet() == "hello from ShellScope"


def test_unmount_disposes_shell_and_blocks_build():
	scope = ShellScope(lambda _: TodoShell())
	shell = scope.shell

	scope.unmount()
	scope.unmount()

	assert not scope.mounted
	assert shell.__disposed__
	assert shell.greet() is None
	with pytest.raises(DisposedError):
		scope.build(lambda: "content")


def test_read_does_not_subscribe(mount: Any):
	scope: ShellScope[TodoShell] = mount(lambda _: TodoShell())

	title = scope.read(lambda shell: shell.title)

	assert title is scope.shell.title
	assert scope.registry.observers_of(title) == frozenset()


def test_fragments_sharing_a_prop_are_invalidated_once_each(mount: Any):
	scope: ShellScope[TodoShell] = mount(lambda _: TodoShell())
	scope.shell.items.set([])
	first_invalidations = Invalidations()
	second_invalidations = Invalidations()
	first = PropBuilder(
		lambda shell: shell.title, lambda prop: prop.value, on_invalidate=first_invalidations
	)
	second = PropBuilder(
		lambda shell: shell.title, lambda prop: prop.value, on_invalidate=second_invalidations
	)
	scope.build(lambda: (first.build(scope), second.build(scope)))

	scope.shell.title.set("Groceries")
	assert first_invalidations.count == 1
	assert second_invalidations.count == 1

	scope.shell.title.set("Chores")
	assert first_invalidations.count == 2
	assert second_invalidations.count == 2


class ProfileShell(Shell):
	def __init__(self, load: Any) -> None:
		self.profile: FutureProp[str] = FutureProp(load(), name="profile")
		super().__init__([self.profile])


@pytest.mark.asyncio
async def test_future_settling_after_parent_build_invalidates_nested_fragment(
	mount: Any,
):
	release = asyncio.Event()

	async def load() -> str:
		await release.wait()
		return "Ada"

	parent: ShellScope[TodoShell] = mount(lambda _: TodoShell())
	parent.shell.items.set([])
	invalidations = Invalidations()
	fragment = PropBuilder(
		lambda shell: shell.profile, lambda prop: prop.value, on_invalidate=invalidations
	)
	nested: list[ShellScope[ProfileShell]] = []

	def child() -> Any:
		scope = mount(lambda _: ProfileShell(load))
		nested.append(scope)
		return fragment.build(scope)

	assert parent.build(child) is None

	release.set()
	assert await wait_for(lambda: nested[0].shell.profile.valid, timeout=0.2)
	assert invalidations.count == 1
	assert fragment.observer.dirty
	assert fragment.build(nested[0]) == "Ada"


class SearchShell(Shell):
	def __init__(self) -> None:
		self.results: DebouncedProp[str] = DebouncedProp("", delay_ms=1, name="results")
		super().__init__([self.results])


@pytest.mark.asyncio
async def test_debounce_started_during_build_invalidates_fragment(mount: Any):
	scope: ShellScope[SearchShell] = mount(lambda _: SearchShell())
	invalidations = Invalidations()
	fragment = PropBuilder(
		lambda shell: shell.results, lambda prop: prop.value, on_invalidate=invalidations
	)

	async def search() -> str:
		await asyncio.sleep(0)
		return "hit"

	def child() -> Any:
		result = fragment.build(scope)
		scope.shell.results.debounce(search)
		return result

	assert scope.build(child) == ""

	assert await wait_for(lambda: scope.shell.results.value == "hit", timeout=0.2)
	# loading, then success
	assert invalidations.count == 2
	assert fragment.observer.dirty
