from .builders import (
	DEFAULT_ERROR_MESSAGE,
	DefaultShellBuilder,
	ErrorPlaceholder,
	LoadingPlaceholder,
	ShellBuilder,
	SimpleShellBuilder,
)
from .config import ViewShellConfig, resolve_builder
from .drivers import (
	DEFAULT_DEBOUNCE_MS,
	DebounceDriver,
	FutureDriver,
	PageDriver,
	PropDriver,
	StreamDriver,
)
from .errors import (
	DisposedError,
	InvalidOperationError,
	InvalidStateError,
	ObservationError,
	ShellNotMountedError,
	UsageError,
)
from .notifier import ChangeNotifier, Listener
from .observation import ObservationRegistry, Observer, RenderPass
from .prop import Prop, PropBase, PropState, SyncProp
from .resolver import Resolver, resolve
from .scope import PropBuilder, PropValueBuilder, ShellScope
from .shell import ContextProvider, Shell, ShellAction
from .variants import DebouncedProp, FutureProp, PaginatedProp, StreamProp
from .view_state import Error, Pending, PropError, Valid, ViewState, same_kind

__all__ = [
	"DEFAULT_DEBOUNCE_MS",
	"DEFAULT_ERROR_MESSAGE",
	"ChangeNotifier",
	"ContextProvider",
	"DebounceDriver",
	"DebouncedProp",
	"DefaultShellBuilder",
	"DisposedError",
	"Error",
	"ErrorPlaceholder",
	"FutureDriver",
	"FutureProp",
	"InvalidOperationError",
	"InvalidStateError",
	"Listener",
	"LoadingPlaceholder",
	"ObservationError",
	"ObservationRegistry",
	"Observer",
	"PageDriver",
	"PaginatedProp",
	"Pending",
	"Prop",
	"PropBase",
	"PropBuilder",
	"PropDriver",
	"PropError",
	"PropState",
	"PropValueBuilder",
	"RenderPass",
	"Resolver",
	"Shell",
	"ShellAction",
	"ShellBuilder",
	"ShellNotMountedError",
	"ShellScope",
	"SimpleShellBuilder",
	"StreamDriver",
	"StreamProp",
	"SyncProp",
	"UsageError",
	"Valid",
	"ViewShellConfig",
	"ViewState",
	"resolve",
	"resolve_builder",
	"same_kind",
]
