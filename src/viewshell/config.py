from dataclasses import dataclass

from viewshell.builders import DEFAULT_SHELL_BUILDER, ShellBuilder


@dataclass(frozen=True, slots=True)
class ViewShellConfig:
	"""
	Ambient rendering configuration shared by a group of shell scopes.

	Passed explicitly to each ``ShellScope``; a builder given to the scope
	itself still takes precedence.
	"""

	shell_builder: ShellBuilder | None = None


def resolve_builder(
	local: ShellBuilder | None, config: ViewShellConfig | None = None
) -> ShellBuilder:
	"""Pick the builder for a scope: its own, then the ambient one, then the default."""
	if local is not None:
		return local
	if config is not None and config.shell_builder is not None:
		return config.shell_builder
	return DEFAULT_SHELL_BUILDER


__all__ = ["ViewShellConfig", "resolve_builder"]
