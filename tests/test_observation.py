import contextvars

import pytest
from viewshell.errors import ObservationError
from viewshell.observation import ObservationRegistry, Observer, RenderPass
from viewshell.prop import SyncProp


class Invalidations:
	def __init__(self) -> None:
		self.observers: list[Observer] = []

	def __call__(self, observer: Observer) -> None:
		self.observers.append(observer)


def test_observe_outside_render_pass_raises():
	registry = ObservationRegistry()

	with pytest.raises(ObservationError, match="outside of a build"):
		registry.observe(Observer(), SyncProp(0))


def test_render_pass_current_and_require():
	assert RenderPass.current() is None
	with pytest.raises(ObservationError):
		RenderPass.require("read()")

	with RenderPass() as active:
		assert RenderPass.current() is active
		assert RenderPass.require() is active

	assert RenderPass.current() is None


def test_prop_change_marks_only_its_observers():
	registry = ObservationRegistry()
	invalidations = Invalidations()
	title = SyncProp("a")
	count = SyncProp(0)
	title_view = Observer(invalidations, name="title")
	count_view = Observer(invalidations, name="count")

	with RenderPass():
		registry.observe(title_view, title)
		registry.observe(count_view, count)

	title.set("b")

	assert invalidations.observers == [title_view]
	assert title_view.dirty
	assert not count_view.dirty


def test_observing_twice_keeps_one_listener():
	registry = ObservationRegistry()
	invalidations = Invalidations()
	prop = SyncProp(0)
	observer = Observer(invalidations)

	with RenderPass():
		registry.observe(observer, prop)
		registry.observe(observer, prop)

	prop.set(1)

	assert invalidations.observers == [observer]
	assert registry.observers_of(prop) == {observer}
	assert registry.props_of(observer) == {prop}


def test_unmounted_observer_is_pruned_on_next_change():
	registry = ObservationRegistry()
	invalidations = Invalidations()
	prop = SyncProp(0)
	gone = Observer(invalidations)
	alive = Observer(invalidations)

	with RenderPass():
		registry.observe(gone, prop)
		registry.observe(alive, prop)

	gone.unmount()
	prop.set(1)

	assert invalidations.observers == [alive]
	assert registry.observers_of(prop) == {alive}
	assert registry.props_of(gone) == frozenset()

	alive.unmount()
	prop.set(2)

	assert registry.observers_of(prop) == frozenset()
	assert not prop.has_listeners


def test_changes_during_render_are_deferred():
	registry = ObservationRegistry()
	prop = SyncProp(0)
	observer = Observer()

	with RenderPass():
		registry.observe(observer, prop)
		with RenderPass():
			prop.set(1)
		assert not observer.dirty
		prop.set(2)
		assert not observer.dirty

	assert observer.dirty


def test_forget_releases_bindings():
	registry = ObservationRegistry()
	prop = SyncProp(0)
	observer = Observer()
	with RenderPass():
		registry.observe(observer, prop)

	registry.forget(observer)
	prop.set(1)

	assert not observer.dirty
	assert not prop.has_listeners
	assert registry.observers_of(prop) == frozenset()


def test_dispose_releases_everything():
	registry = ObservationRegistry()
	first = SyncProp(0)
	second = SyncProp(0)
	observer = Observer()
	with RenderPass():
		registry.observe(observer, first)
		registry.observe(observer, second)

	registry.dispose()

	assert not first.has_listeners
	assert not second.has_listeners
	assert registry.__disposed__


def test_observer_build_bookkeeping():
	observer = Observer(name="row")

	observer.mark_needs_build()
	assert observer.dirty
	observer.mark_built()

	assert not observer.dirty
	assert observer.builds == 1
	assert "row" in repr(observer)

	observer.unmount()
	observer.mark_needs_build()
	assert not observer.dirty


def test_each_observer_is_marked_once_per_change():
	registry = ObservationRegistry()
	invalidations = Invalidations()
	prop = SyncProp(0)
	views = [Observer(invalidations, name=f"view-{i}") for i in range(3)]
	with RenderPass():
		for view in views:
			registry.observe(view, prop)

	prop.set(1)
	assert sorted(o.name or "" for o in invalidations.observers) == [
		"view-0",
		"view-1",
		"view-2",
	]

	invalidations.observers.clear()
	with RenderPass():
		prop.set(2)
		prop.set(3)
	assert len(invalidations.observers) == 3
	assert set(invalidations.observers) == set(views)


def test_mark_observers_for_build_marks_each_live_observer_once():
	registry = ObservationRegistry()
	invalidations = Invalidations()
	prop = SyncProp(0)
	live = [Observer(invalidations), Observer(invalidations)]
	gone = Observer(invalidations)
	with RenderPass():
		for observer in [*live, gone]:
			registry.observe(observer, prop)
	gone.unmount()

	registry.mark_observers_for_build(prop)

	assert sorted(map(id, invalidations.observers)) == sorted(map(id, live))
	assert registry.observers_of(prop) == frozenset(live)


def test_exited_pass_is_invisible_to_copied_contexts():
	with RenderPass() as active:
		captured = contextvars.copy_context()
		assert captured.run(RenderPass.current) is active

	assert active.closed
	assert captured.run(RenderPass.current) is None
	with pytest.raises(ObservationError):
		captured.run(RenderPass.require)


def test_defer_on_exited_pass_runs_right_away():
	calls: list[str] = []
	with RenderPass() as active:
		with RenderPass() as nested:
			pass
		nested.defer(lambda: calls.append("during"))
		assert calls == []

	assert calls == ["during"]
	active.defer(lambda: calls.append("after"))
	assert calls == ["during", "after"]


def test_change_from_copied_context_marks_immediately():
	registry = ObservationRegistry()
	prop = SyncProp(0)
	observer = Observer()
	with RenderPass():
		registry.observe(observer, prop)
		captured = contextvars.copy_context()

	captured.run(prop.set, 1)

	assert observer.dirty
