from __future__ import annotations

import argparse
import logging
import os
from contextlib import ExitStack

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from meminspect.core.accessor import MemoryAccessor
from meminspect.core.actions import MATCH_FOUND, find_value, read_bytes
from meminspect.core.address import resolve
from meminspect.core.codec import (
    EncodedValue,
    NumericBase,
    TypeTag,
    base_applies,
    byte_width,
    decode,
    encode,
)
from meminspect.core.image import MappedImage
from meminspect.core.regions import ConfigError, load_config_file

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAIL = 1
EXIT_USAGE = 2

TAG_CHOICES = [t.value for t in TypeTag]


def _address_args(p: argparse.ArgumentParser, *, required: bool) -> None:
    p.add_argument("--address", "-a", default="", required=required, help="Base address (hex)")
    p.add_argument("--offset", "-o", default="", help="Signed offset from the address (hex)")


def _value_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("text", help="Value to encode")
    p.add_argument("--type", "-t", dest="tag", choices=TAG_CHOICES, default=TypeTag.U32.value)
    p.add_argument("--hex", action="store_true", help="Read integer values as hexadecimal")


def _memory_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--config", "-c", help="YAML file describing regions and address spaces")
    p.add_argument("--space", "-s", help="Address space from the config (default: default_space)")
    p.add_argument("--image", "-i", help="Raw memory dump to map instead of a config")
    p.add_argument("--base", default="0", help="Address the image is mapped at (hex)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="meminspect", description="Memory inspector core")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("resolve", help="Resolve address + offset")
    p.add_argument("address", nargs="?", default="")
    p.add_argument("--offset", "-o", default="")

    p = sub.add_parser("encode", help="Preview the bytes for a typed value")
    _value_args(p)

    p = sub.add_parser("find", help="Search memory for a typed value")
    _value_args(p)
    _address_args(p, required=False)
    _memory_args(p)
    p.add_argument("--backward", "-b", action="store_true", help="Search toward lower addresses")

    p = sub.add_parser("peek", help="Read and decode bytes at an address")
    _address_args(p, required=True)
    _memory_args(p)
    p.add_argument(
        "--type", "-t", dest="tag", choices=TAG_CHOICES, default=TypeTag.HEX_STRING.value
    )
    p.add_argument("--length", "-n", type=int, help="Bytes to read (default: type width or 16)")
    return parser


def _open_memory(args: argparse.Namespace, stack: ExitStack) -> MemoryAccessor:
    if args.config and args.image:
        raise ConfigError(["use either --config or --image, not both"])
    if args.config:
        return load_config_file(args.config).build_space(args.space)
    if args.image:
        if not os.path.exists(args.image):
            raise ConfigError([f"file not found: {args.image}"])
        base = resolve(args.base, "")
        if not base.ok:
            raise ConfigError([f"bad base address: {args.base}"])
        try:
            image = MappedImage(args.image, base.address)
        except ValueError as e:
            raise ConfigError([str(e)]) from None
        return stack.enter_context(image)
    raise ConfigError(["no memory given: pass --config or --image"])


def _cmd_resolve(args: argparse.Namespace, console: Console) -> int:
    target = resolve(args.address, args.offset)
    if not target.good_address:
        console.print("[red]Bad address provided.[/red]")
        return EXIT_FAIL
    if not target.good_offset:
        console.print("[red]Bad offset provided.[/red]")
        return EXIT_FAIL
    console.print(f"{target.address:08X}")
    return EXIT_OK


def _encode_args(args: argparse.Namespace) -> EncodedValue:
    tag = TypeTag(args.tag)
    if args.hex and not base_applies(tag):
        logger.debug("--hex ignored for %s", tag.value)
    base = NumericBase.HEX if args.hex else NumericBase.DECIMAL
    return encode(args.text, tag, base)


def _cmd_encode(args: argparse.Namespace, console: Console) -> int:
    value = _encode_args(args)
    if not value.valid:
        shown = escape(repr(value.text))
        console.print(f"[red]Bad value provided.[/red] ({value.tag.value}: {shown})")
        return EXIT_FAIL
    console.print(f"{value.preview}  [dim]({len(value.raw)} bytes)[/dim]")
    return EXIT_OK


def _cmd_find(args: argparse.Namespace, console: Console) -> int:
    value = _encode_args(args)
    with ExitStack() as stack:
        accessor = _open_memory(args, stack)
        result = find_value(accessor, args.address, args.offset, value, forward=not args.backward)
    if result.message != MATCH_FOUND:
        console.print(f"[yellow]{result.message}[/yellow]")
        return EXIT_FAIL
    console.print(f"{result.message}: {result.address_text}")
    return EXIT_OK


def _cmd_peek(args: argparse.Namespace, console: Console) -> int:
    target = resolve(args.address, args.offset)
    if not target.ok:
        message = "Bad address provided." if not target.good_address else "Bad offset provided."
        console.print(f"[red]{message}[/red]")
        return EXIT_FAIL
    tag = TypeTag(args.tag)
    length = args.length if args.length is not None else (byte_width(tag) or 16)
    with ExitStack() as stack:
        accessor = _open_memory(args, stack)
        data = read_bytes(accessor, target.address, length)
    if not data:
        console.print(f"[yellow]0x{target.address:08X} is not mapped[/yellow]")
        return EXIT_FAIL
    shown = decode(data, tag)
    console.print(f"{target.address:08X}: {data.hex(' ').upper()}")
    if shown is None:
        console.print(f"[dim]{tag.value}: needs {byte_width(tag)} bytes, got {len(data)}[/dim]")
    else:
        shown_text = repr(shown) if tag is TypeTag.ASCII else str(shown)
        console.print(f"{tag.value}: {escape(shown_text)}")
    return EXIT_OK


COMMANDS = {
    "resolve": _cmd_resolve,
    "encode": _cmd_encode,
    "find": _cmd_find,
    "peek": _cmd_peek,
}


def main(argv: list[str] | None = None, console: Console | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    console = console or Console()

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
        )

    try:
        return COMMANDS[args.command](args, console)
    except ConfigError as e:
        for err in e.errors:
            console.print(f"[red]meminspect: {escape(err)}[/red]")
        return EXIT_USAGE


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
