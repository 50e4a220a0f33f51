from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer

from gsub.core.config import ColorMode, Config, config_path_for, load_config
from gsub.core.errors import ErrorCode
from gsub.core.result import Err, Ok, Result
from gsub.git.errors import DiscoveryError
from gsub.git.orchestrator import Orchestrator
from gsub.git.registry import Registry, find_root, walk_tree
from gsub.git.runner import GitRunner, run_git
from gsub.output.console import ConsoleProtocol, RichConsole
from gsub.services.aggregate import AggregateService


@dataclass(frozen=True, slots=True)
class GlobalOptions:
    """Options given before the subcommand (``git-sub -C dir --no-color log``)."""

    cwd: Path | None = None
    color: ColorMode | None = None
    verbose: bool = False


@dataclass(frozen=True, slots=True)
class CLIContext:
    registry: Registry
    config: Config
    console: ConsoleProtocol
    orchestrator: Orchestrator

    @property
    def service(self) -> AggregateService:
        return AggregateService(
            registry=self.registry,
            orchestrator=self.orchestrator,
            console=self.console,
        )


def global_options(ctx: typer.Context) -> GlobalOptions:
    obj = ctx.find_root().obj
    return obj if isinstance(obj, GlobalOptions) else GlobalOptions()


def make_console(options: GlobalOptions) -> RichConsole:
    """Console for the command line flags alone (before any config is read)."""
    return RichConsole(color=options.color or "auto", verbose=options.verbose)


def build_context(options: GlobalOptions | None = None, *, runner: GitRunner | None = None) -> CLIContext:
    options = options or GlobalOptions()
    runner = runner or run_git

    console = make_console(options)

    start = (options.cwd or Path.cwd()).expanduser()
    root = _exit_on_discovery_error(find_root(start.resolve(), runner), console)

    config = Config()
    config_path = config_path_for(root)
    if config_path.exists():
        match load_config(config_path):
            case Ok(loaded):
                config = loaded
            case Err(e):
                console.warning(f"{e.message}; using defaults")

    if options.color is None and config.output.color != "auto":
        console = RichConsole(color=config.output.color, verbose=options.verbose)

    def observe(path: str, seconds: float, ok: bool) -> None:
        console.debug(f"{path}: {'ok' if ok else 'failed'} in {seconds * 1000:.0f} ms")

    # The deadline starts here and covers the submodule walk.
    orchestrator = Orchestrator(
        root,
        runner,
        max_workers=config.dispatch.jobs,
        timeout=config.dispatch.timeout,
        deadline=config.dispatch.deadline,
        observer=observe,
    )
    registry = _exit_on_discovery_error(walk_tree(orchestrator), console)
    console.debug(f"root: {registry.root} ({len(registry)} repositories)")

    return CLIContext(
        registry=registry,
        config=config,
        console=console,
        orchestrator=orchestrator,
    )


def _exit_on_discovery_error[T](result: Result[T, DiscoveryError], console: ConsoleProtocol) -> T:
    match result:
        case Ok(value):
            return value
        case Err(e):
            console.error(e.message)
            raise typer.Exit(code=int(ErrorCode.ENV_ERROR))
