"""Config commands -- view and modify global configuration.

Provides the ``freshcache config`` sub-command group for reading,
updating, and resetting the user's global configuration file
(:class:`~freshcache.models.GlobalConfig`). Settings are persisted in
the freshcache config directory and control the guide URL, the liveness
TTL, transport behaviour, and the store location.
"""

from __future__ import annotations

import typer
from pydantic import ValidationError

from freshcache.commands._context import config_from_context, is_forced
from freshcache.exit_codes import EXIT_INVALID_USAGE
from freshcache.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show(
    ctx: typer.Context,
    effective: bool = typer.Option(
        False,
        "--effective",
        help="Show the merged configuration (flags, environment, project file).",
    ),
) -> None:
    """Show current configuration.

    Prints the config directory path followed by the stored configuration,
    or with ``--effective`` the configuration after every override layer.

    Example::

        freshcache config show
        freshcache config show --effective --json
    """
    from freshcache.config import get_config_dir, load_global_config

    config = config_from_context(ctx) if effective else load_global_config()
    info(f"Config directory: {get_config_dir()}")
    format_response(config.model_dump(mode="json"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Config key (dot notation, e.g., 'liveness.ttl_seconds')."
    ),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a configuration value.

    Uses dot notation for nested keys. The value is coerced to match the
    existing field's type (bool, int, float, or str).  List-valued keys such
    as ``liveness.links`` are edited in the config file directly.

    Raises:
        typer.Exit: With code 2 if the key path is invalid, the value
            cannot be coerced, or validation fails.

    Example::

        freshcache config set guide.url https://example.com/guide.json
        freshcache config set liveness.ttl_seconds 3600
        freshcache config set request.offline true
    """
    from freshcache.config import load_global_config, save_global_config
    from freshcache.models import GlobalConfig

    config = load_global_config()
    data = config.model_dump(mode="json")

    keys = key.split(".")
    target = data
    for k in keys[:-1]:
        if k not in target or not isinstance(target[k], dict):
            error(f"Invalid config key: {key}")
            raise typer.Exit(code=EXIT_INVALID_USAGE)
        target = target[k]

    final_key = keys[-1]
    if final_key not in target:
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=EXIT_INVALID_USAGE)

    current = target[final_key]
    coerced: object
    if isinstance(current, (dict, list)):
        error(f"{key} cannot be set from the command line")
        raise typer.Exit(code=EXIT_INVALID_USAGE)
    if isinstance(current, bool):
        coerced = value.lower() in ("true", "1", "yes", "on")
    elif isinstance(current, int):
        try:
            coerced = int(value)
        except ValueError:
            error(f"Expected integer for {key}, got: {value}")
            raise typer.Exit(code=EXIT_INVALID_USAGE) from None
    elif isinstance(current, float):
        try:
            coerced = float(value)
        except ValueError:
            error(f"Expected number for {key}, got: {value}")
            raise typer.Exit(code=EXIT_INVALID_USAGE) from None
    else:
        coerced = value

    target[final_key] = coerced

    try:
        new_config = GlobalConfig.model_validate(data)
    except ValidationError as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None

    save_global_config(new_config)
    success(f"Set {key} = {coerced}")


@config_app.command("reset")
def config_reset(ctx: typer.Context) -> None:
    """Reset configuration to defaults.

    Replaces the persisted global config with a fresh
    :class:`~freshcache.models.GlobalConfig`. Asks for confirmation unless
    ``--force`` is active.

    Example::

        freshcache config reset
        freshcache --force config reset
    """
    from freshcache.config import save_global_config
    from freshcache.models import GlobalConfig

    if not is_forced(ctx) and not typer.confirm("Reset all config to defaults?"):
        info("Cancelled.")
        raise typer.Exit()

    save_global_config(GlobalConfig())
    success("Configuration reset to defaults.")
