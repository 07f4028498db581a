"""``reqpipe config`` -- view and modify the global configuration.

Settings live in ``config.json`` in the reqpipe config directory and are
validated against :class:`~reqpipe.models.PipelineConfig` before saving.
"""

from __future__ import annotations

from typing import Any

import typer
from pydantic import ValidationError

from reqpipe.output import error, format_response, info, success

config_app = typer.Typer(no_args_is_help=True)


def _coerce(current: Any, value: str) -> Any:
    """Convert *value* to the type of the *current* setting.

    Raises:
        ValueError: If *value* cannot be converted.
    """
    if isinstance(current, bool):
        return value.lower() in ("true", "1", "yes", "on")
    if isinstance(current, int):
        return int(value)
    if isinstance(current, float):
        return float(value)
    if current is None and value.lower() in ("none", "null", ""):
        return None
    return value


@config_app.command("show")
def config_show() -> None:
    """Show the stored global configuration.

    Example::

        reqpipe config show
        reqpipe --json config show
    """
    from reqpipe.config import config_path, load_config

    info(f"Config file: {config_path()}")
    format_response(load_config().model_dump(mode="json"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="Config key in dot notation, e.g. 'retry.max_count'."),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a configuration value.

    Example::

        reqpipe config set base_url https://api.example.com
        reqpipe config set parallel.max_count 6
        reqpipe config set cache.persist true
    """
    from reqpipe.config import load_config, save_config
    from reqpipe.models import PipelineConfig

    data = load_config().model_dump(mode="json")

    keys = key.split(".")
    target = data
    for k in keys[:-1]:
        if not isinstance(target.get(k), dict):
            error(f"Invalid config key: {key}")
            raise typer.Exit(code=2)
        target = target[k]

    final_key = keys[-1]
    if final_key not in target or isinstance(target[final_key], dict):
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=2)

    try:
        coerced = _coerce(target[final_key], value)
    except ValueError:
        error(f"Invalid value for {key}: {value}")
        raise typer.Exit(code=2) from None
    target[final_key] = coerced

    try:
        new_config = PipelineConfig.model_validate(data)
    except ValidationError as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=2) from None

    save_config(new_config)
    success(f"Set {key} = {coerced}")


@config_app.command("reset")
def config_reset(ctx: typer.Context) -> None:
    """Reset the configuration to defaults. Asks first unless ``--force``."""
    from reqpipe.config import save_config
    from reqpipe.models import PipelineConfig

    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force and not typer.confirm("Reset all config to defaults?"):
        info("Cancelled.")
        raise typer.Exit()

    save_config(PipelineConfig())
    success("Configuration reset to defaults.")
