"""
Command line tool for the schema catalog and schema descriptions.

Usage:
    rgb-schemata list
    rgb-schemata show NIA
    rgb-schemata dump --output-dir schemata/
    rgb-schemata check my-asset.yaml
    rgb-schemata build my-asset.yaml --output my-asset.schema
"""

import argparse
import logging
import sys
from pathlib import Path

from .catalog import catalog, get_schema
from .description import builder_from_description, dump_yaml, load_description
from .errors import SchemaError

logger = logging.getLogger(__name__)


def cmd_list(args) -> int:
    for name, schema in catalog().items():
        print(f"{name:28} {schema.schema_id}")
    return 0


def cmd_show(args) -> int:
    try:
        schema = get_schema(args.name)
    except SchemaError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(dump_yaml(schema.to_dict()), end="")
    return 0


def cmd_dump(args) -> int:
    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    for name, schema in catalog().items():
        binary_path = output_dir / f"{name}.schema"
        yaml_path = output_dir / f"{name}.yaml"
        binary_path.write_bytes(schema.encode())
        yaml_path.write_text(dump_yaml(schema.to_dict()))
        print(f"  {name}: {binary_path.name}, {yaml_path.name}")

    print(f"\nWrote {len(catalog())} schemas to {output_dir}")
    return 0


def _load_builder(path: str):
    try:
        return builder_from_description(load_description(Path(path)))
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
    except (SchemaError, ValueError, TypeError) as e:
        print(f"{path}: error: {e}", file=sys.stderr)
    return None


def cmd_check(args) -> int:
    builder = _load_builder(args.file)
    if builder is None:
        return 1

    result = builder.check()
    for issue in result.errors:
        print(f"{args.file}: error: {issue.message}")
    for issue in result.warnings:
        print(f"{args.file}: warning: {issue.message}")

    if result.has_errors or result.has_warnings:
        print(f"\n{len(result.errors)} error(s), {len(result.warnings)} warning(s)")
    else:
        print(f"{args.file}: OK")
    return 1 if result.has_errors else 0


def cmd_build(args) -> int:
    builder = _load_builder(args.file)
    if builder is None:
        return 1

    try:
        schema = builder.freeze()
    except SchemaError as e:
        print(f"{args.file}: error: {e}", file=sys.stderr)
        return 1

    expected = load_description(Path(args.file)).get("schema_id")
    if expected and expected != schema.schema_id:
        logger.warning("schema id %s differs from the recorded %s", schema.schema_id, expected)

    if args.output:
        Path(args.output).write_bytes(schema.encode())
        print(f"Wrote {args.output}")
    print(f"{schema.name} {schema.schema_id}")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog="rgb-schemata",
        description="Inspect the RGB schema catalog and build schemas from YAML descriptions.",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging"
    )
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("list", help="List catalog schemas and their ids")

    show = sub.add_parser("show", help="Print a catalog schema as YAML")
    show.add_argument("name", help="Schema name or abbreviation (NIA, UDA, CFA, PFA, IFA)")

    dump = sub.add_parser("dump", help="Write every catalog schema as binary and YAML")
    dump.add_argument("--output-dir", "-o", default="schemata", help="Output directory")

    check = sub.add_parser("check", help="Report every issue in a schema description")
    check.add_argument("file", help="YAML schema description")

    build = sub.add_parser("build", help="Build and freeze a schema description")
    build.add_argument("file", help="YAML schema description")
    build.add_argument("--output", "-o", help="Write the binary schema to this file")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    commands = {
        "list": cmd_list,
        "show": cmd_show,
        "dump": cmd_dump,
        "check": cmd_check,
        "build": cmd_build,
    }
    if args.command not in commands:
        parser.print_help()
        return 1
    return commands[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
