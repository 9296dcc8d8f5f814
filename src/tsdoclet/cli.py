import json
import sys
from pathlib import Path
from typing import Any, List, Optional, Tuple, Type

import click
from pydantic_settings import (
    BaseSettings,
    JsonConfigSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

from tsdoclet.compiler import compile_doclets
from tsdoclet.diagnostics import CompilationError
from tsdoclet.logger import logger, setup_logging
from tsdoclet.settings import CompilerSettings


def load_settings(
    env_prefix: Optional[str] = "TSDOCLET_",
    env_file: Optional[str] = None,
    toml_file: Optional[str] = None,
    json_file: Optional[str] = None,
    **kwargs,
) -> CompilerSettings:
    """
    Build compiler settings from keyword overrides, environment variables,
    a dotenv file and TOML / JSON config files, in that order of precedence.
    """
    config_dict = SettingsConfigDict(
        env_prefix=env_prefix or "",
        env_nested_delimiter="__",
        env_file=env_file,
        toml_file=toml_file,
        json_file=json_file,
    )

    class Settings(CompilerSettings):
        model_config = config_dict

        @classmethod
        def settings_customise_sources(
            cls,
            settings_cls: Type[BaseSettings],
            init_settings: PydanticBaseSettingsSource,
            env_settings: PydanticBaseSettingsSource,
            dotenv_settings: PydanticBaseSettingsSource,
            file_secret_settings: PydanticBaseSettingsSource,
        ) -> Tuple[PydanticBaseSettingsSource, ...]:
            sources: List[PydanticBaseSettingsSource] = [
                init_settings,
                env_settings,
                dotenv_settings,
            ]
            if toml_file:
                sources.append(TomlConfigSettingsSource(settings_cls))
            if json_file:
                sources.append(JsonConfigSettingsSource(settings_cls))
            return tuple(sources)

    return Settings(**kwargs)


def _settings_from_config(config: Optional[Path]) -> CompilerSettings:
    if config is None:
        return load_settings()
    suffix = config.suffix.lower()
    if suffix == ".toml":
        return load_settings(toml_file=str(config))
    if suffix == ".json":
        return load_settings(json_file=str(config))
    return load_settings(env_file=str(config))


def _read_doclets(source: str) -> List[Any]:
    if source == "-":
        text = sys.stdin.read()
    else:
        text = Path(source).read_text(encoding="utf-8")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as ex:
        raise click.BadParameter(f"not valid JSON: {ex}", param_hint="SOURCE")
    if not isinstance(data, list):
        raise click.BadParameter("expected a JSON array of doclets", param_hint="SOURCE")
    return data


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("source", type=click.Path(exists=True, dir_okay=False, allow_dash=True))
@click.option(
    "-d",
    "--destination",
    type=click.Path(path_type=Path),
    default=None,
    help="Output file, or directory to write the default file name into (default: stdout).",
)
@click.option(
    "--config",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Settings file (.toml, .json or dotenv).",
)
@click.option(
    "--debug/--no-debug",
    default=False,
    help="Enable debug logging of the compilation stages.",
)
def main(
    source: str, destination: Optional[Path], config: Optional[Path], debug: bool
) -> None:
    """
    Compile the doclets in SOURCE (the JSON array printed by ``jsdoc -X``,
    ``-`` for stdin) into an ambient TypeScript declaration file.
    """
    setup_logging(debug)
    settings = _settings_from_config(config)
    doclets = _read_doclets(source)

    try:
        result = compile_doclets(doclets, settings)
    except CompilationError as ex:
        for diagnostic in ex.diagnostics:
            click.echo(str(diagnostic), err=True)
        raise SystemExit(1)

    if destination is None:
        click.echo(result.text, nl=False)
        return

    target = destination / settings.output.file_name if destination.is_dir() else destination
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(result.text, encoding="utf-8")
    logger.info("Declarations written", path=str(target), diagnostics=len(result.diagnostics))


if __name__ == "__main__":
    main()
