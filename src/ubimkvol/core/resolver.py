"""
ubimkvol argument resolution.

Turns the command-line tokens into a VolumeRequestConfig. Options are parsed
by a click command whose parameter types do the per-option validation, so
the first bad option on the command line decides the failure. Nothing is
printed or exited here: the outcome is returned as one of Help, Version,
Resolved or Failed.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import click

from ubimkvol import PROGRAM_NAME, __version__
from ubimkvol.core.config import MAX_NODE_LEN
from ubimkvol.core.errors import (
    InvalidArgument,
    MissingArgument,
    UbiMkvolError,
    UnknownArgument,
)
from ubimkvol.core.logging import get_logger
from ubimkvol.core.models import (
    ByLegacyIndex,
    ByPath,
    DeviceTarget,
    VolumeRequestConfig,
    VolumeType,
)
from ubimkvol.core.units import parse_size, parse_unsigned

logger = get_logger(__name__)

DOC = f"Version {__version__}\n{PROGRAM_NAME} - a tool to create UBI volumes."

USAGE = (
    f"Usage: {PROGRAM_NAME} <UBI device node file name> [-h] [-a <alignment>] "
    "[-d <devn>] [-n <volume id>]\n"
    "\t\t\t[-N <name>] [-s <bytes>] [-t <static|dynamic>] [-V] [-m]\n"
    "\t\t\t[--alignment=<alignment>] [--devn=<devn>] [--vol_id=<volume id>]\n"
    "\t\t\t[--name=<name>] [--size=<bytes>] [--type=<static|dynamic>]\n"
    "\t\t\t[--help] [--version] [--maxavsize]"
)

OPTIONS_HELP = """\
-a, --alignment=<alignment>   volume alignment (default is 1)
-d, --devn=<devn>             UBI device number (deprecated, do not use)
-n, --vol_id=<volume id>      UBI volume ID, if not specified, the volume ID
                              will be assigned automatically
-N, --name=<name>             volume name
-s, --size=<bytes>            volume size in bytes, kilobytes (KiB),
                              megabytes (MiB) or gigabytes (GiB)
-m, --maxavsize               set volume size to maximum available size
-t, --type=<static|dynamic>   volume type (dynamic, static), default is dynamic
-h, --help                    help message
-V, --version                 print program version"""

HELP_TEXT = f"{DOC}\n\n{USAGE}\n\n{OPTIONS_HELP}"

DEVN_DEPRECATION = (
    "-d and --devn options are deprecated and will be removed soon, "
    "pass UBI device node name instead\n"
    f"Example: {PROGRAM_NAME} /dev/ubi0, instead of {PROGRAM_NAME} -d 0"
)


# ==================== Resolution outcomes ====================


@dataclass(frozen=True)
class Help:
    """Usage was requested."""

    text: str = HELP_TEXT


@dataclass(frozen=True)
class Version:
    """The program version was requested."""

    text: str = __version__


@dataclass(frozen=True)
class Resolved:
    """All options were accepted."""

    config: VolumeRequestConfig
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class Failed:
    """An option was rejected."""

    error: UbiMkvolError


Resolution = Help | Version | Resolved | Failed


# ==================== Option types ====================


class SizeParamType(click.ParamType):
    """Volume size with an optional KiB/MiB/GiB suffix."""

    name = "bytes"

    def convert(self, value: Any, param: click.Parameter | None, ctx: click.Context | None) -> int:
        if isinstance(value, int):
            return value
        return parse_size(value)


class UnsignedParamType(click.ParamType):
    """Non-negative integer, optionally with a lower bound."""

    name = "integer"

    def __init__(self, what: str, minimum: int = 0) -> None:
        self.what = what
        self.minimum = minimum

    def convert(self, value: Any, param: click.Parameter | None, ctx: click.Context | None) -> int:
        if isinstance(value, int):
            number = value
        else:
            number = parse_unsigned(value, self.what)
        if number < self.minimum:
            raise InvalidArgument(f'bad {self.what}: "{value}"')
        return number


class VolumeTypeParamType(click.ParamType):
    name = "static|dynamic"

    def convert(
        self, value: Any, param: click.Parameter | None, ctx: click.Context | None
    ) -> VolumeType:
        if isinstance(value, VolumeType):
            return value
        return VolumeType.from_string(value)


class _ShortCircuit(Exception):
    def __init__(self, target: str) -> None:
        super().__init__(target)
        self.target = target


def _short_circuit(ctx: click.Context, param: click.Parameter, value: bool) -> bool:
    if value:
        raise _ShortCircuit(param.name or "")
    return value


OPTIONS_COMMAND = click.Command(
    PROGRAM_NAME,
    add_help_option=False,
    params=[
        click.Option(
            ["-a", "--alignment"],
            type=UnsignedParamType("volume alignment", minimum=1),
        ),
        click.Option(["-d", "--devn"], type=UnsignedParamType("UBI device number")),
        click.Option(["-n", "--vol_id"], type=UnsignedParamType("volume ID")),
        click.Option(["-N", "--name"], type=str),
        click.Option(["-s", "--size"], type=SizeParamType()),
        click.Option(["-t", "--type", "volume_type"], type=VolumeTypeParamType()),
        click.Option(["-m", "--maxavsize"], is_flag=True),
        click.Option(
            ["-h", "--help"],
            is_flag=True,
            is_eager=True,
            expose_value=False,
            callback=_short_circuit,
        ),
        click.Option(
            ["-V", "--version"],
            is_flag=True,
            is_eager=True,
            expose_value=False,
            callback=_short_circuit,
        ),
    ],
)


def _translate_usage_error(exc: click.UsageError) -> UbiMkvolError:
    message = f"{exc.format_message()} (use -h for help)"
    if isinstance(exc, click.NoSuchOption):
        return UnknownArgument(message)
    if isinstance(exc, click.MissingParameter):
        return MissingArgument(message)
    if isinstance(exc, click.BadOptionUsage) and "requires" in exc.message:
        return MissingArgument(message)
    return UnknownArgument(message)


_VALUE_OPTIONS = frozenset("adnNst")
_LONG_VALUE_OPTIONS = frozenset({"alignment", "devn", "vol_id", "name", "size", "type"})
_SHORT_CIRCUITS = {"h": "help", "V": "version"}
_LONG_SHORT_CIRCUITS = {"help": "help", "version": "version"}


def _leading_short_circuit(args: Sequence[str]) -> str | None:
    """
    Find a help or version flag placed before the first malformed option.

    Walks the tokens in order, the way getopt would, and gives up at the
    first unknown option or option missing its value.
    """
    tokens = iter(args)
    for token in tokens:
        if token == "--":
            return None

        if token.startswith("--"):
            name, equals, _ = token[2:].partition("=")
            if name in _LONG_SHORT_CIRCUITS and not equals:
                return _LONG_SHORT_CIRCUITS[name]
            if name in _LONG_VALUE_OPTIONS:
                if not equals and next(tokens, None) is None:
                    return None
            elif name != "maxavsize" or equals:
                return None
            continue

        if not token.startswith("-") or token == "-":
            continue

        # Short option cluster such as -mh or -s10MiB
        letters = token[1:]
        for position, letter in enumerate(letters):
            if letter in _SHORT_CIRCUITS:
                return _SHORT_CIRCUITS[letter]
            if letter in _VALUE_OPTIONS:
                if position == len(letters) - 1 and next(tokens, None) is None:
                    return None
                break
            if letter != "m":
                return None
    return None


def _resolve_device(
    node: str | None, devn: int | None, warnings: list[str]
) -> DeviceTarget:
    if devn is None:
        if node is None:
            raise MissingArgument("UBI device name was not specified (use -h for help)")
        return ByPath(node)

    # The legacy device number wins over the positional node
    device = ByLegacyIndex(devn)
    warnings.append(DEVN_DEPRECATION)
    if node is not None and node != device.node:
        warnings.append(
            f'UBI device number {devn} overrides device node "{node}", '
            f"using {device.node}"
        )
    return device


def resolve_arguments(
    tokens: Sequence[str], max_node_length: int = MAX_NODE_LEN
) -> Resolution:
    """
    Resolve command-line tokens into a volume request.

    The UBI device node must be the first token. Help and version requests
    win over any other option, valid or not.
    """
    args = list(tokens)
    node: str | None = None
    if args and not args[0].startswith("-"):
        node, args = args[0], args[1:]

    try:
        ctx = OPTIONS_COMMAND.make_context(PROGRAM_NAME, args)
    except _ShortCircuit as request:
        return Help() if request.target == "help" else Version()
    except UbiMkvolError as exc:
        logger.debug("Option rejected", kind=exc.kind, error=str(exc))
        return Failed(exc)
    except click.UsageError as exc:
        target = _leading_short_circuit(args)
        if target is not None:
            return Help() if target == "help" else Version()
        error = _translate_usage_error(exc)
        logger.debug("Option rejected", kind=error.kind, error=str(error))
        return Failed(error)

    params = ctx.params
    warnings: list[str] = []

    try:
        if node is not None and len(node) > max_node_length:
            raise InvalidArgument(
                f'too long device node name: "{node}" ({len(node)} characters), '
                f"max. is {max_node_length}"
            )
        device = _resolve_device(node, params.get("devn"), warnings)
    except UbiMkvolError as exc:
        return Failed(exc)

    config = VolumeRequestConfig(device=device)
    if params.get("vol_id") is not None:
        config.volume_id = params["vol_id"]
    if params.get("volume_type") is not None:
        config.volume_type = params["volume_type"]
    if params.get("size") is not None:
        config.size_bytes = params["size"]
    if params.get("alignment") is not None:
        config.alignment = params["alignment"]
    if params.get("name") is not None:
        config.name = params["name"]
    config.use_max_available = bool(params.get("maxavsize"))

    logger.debug("Arguments resolved", **config.to_dict())
    return Resolved(config=config, warnings=tuple(warnings))
