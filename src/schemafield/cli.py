"""CLI entry point for schemafield."""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any

from schemafield import __version__, logger
from schemafield.dependencies import ensure_cli_dependencies_for_resolve
from schemafield.description import PythonMarkdownRenderer
from schemafield.exceptions import PackageError, SchemaFieldError
from schemafield.field import SchemaField
from schemafield.http import HttpxCapability
from schemafield.logging import configure_logging
from schemafield.settings import Settings, get_settings
from schemafield.typing.enums import EventType
from schemafield.typing.models import FieldEvent, FieldOptions

ROOT_KEY = "root"


def _context_entry(value: str) -> tuple[str, Any]:
    """Convert a `--context name=value` CLI value into a context entry.

    Values are decoded as JSON when possible and kept as strings otherwise.

    Args:
        value (str): CLI value.

    Raises:
        argparse.ArgumentTypeError: If the value has no `=` or an empty name.

    Returns:
        tuple[str, Any]: Context name and value.
    """
    name, separator, raw = value.partition("=")
    if not separator or not name.strip():
        raise argparse.ArgumentTypeError("--context must look like name=value")  # noqa: TRY003
    try:
        decoded = json.loads(raw)
    except ValueError:
        decoded = raw
    return name.strip(), decoded


def build_parser() -> argparse.ArgumentParser:
    """Create the command-line parser.

    Returns:
        argparse.ArgumentParser: The configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="schemafield")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command")

    resolve_parser = subparsers.add_parser("resolve", help="Reconcile a value with a schema and list its options")
    resolve_parser.add_argument("--schema", required=True, type=Path, dest="schema_path")
    resolve_parser.add_argument("--model", type=Path, default=None, dest="model_path")
    resolve_parser.add_argument("--key", default=ROOT_KEY, dest="model_key")
    resolve_parser.add_argument(
        "--context",
        type=_context_entry,
        action="append",
        default=[],
        dest="context",
    )
    resolve_parser.add_argument(
        "--remove-additional-properties",
        action="store_true",
        dest="remove_additional_properties",
    )
    resolve_parser.add_argument("--query", default=None, dest="query")
    resolve_parser.add_argument("--base-url", default=None, dest="base_url")
    resolve_parser.add_argument("--output", type=Path, default=None, dest="output_path")

    return parser


def _load_json(path: Path, *, label: str) -> Any:  # noqa: ANN401
    """Read a JSON document.

    Args:
        path (Path): File path.
        label (str): Human label used in error messages.

    Raises:
        SchemaFieldError: If the file cannot be read or decoded.

    Returns:
        Any: Decoded document.
    """
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise SchemaFieldError(message=f"Cannot read {label} file {path}: {exc}") from exc
    except ValueError as exc:
        raise SchemaFieldError(message=f"Invalid JSON in {label} file {path}: {exc}") from exc


def run_resolve(args: argparse.Namespace, settings: Settings) -> dict[str, Any]:
    """Reconcile one field from CLI arguments.

    Args:
        args (argparse.Namespace): Parsed CLI args.
        settings (Settings): Runtime settings.

    Raises:
        SchemaFieldError: If the schema is not a JSON object.

    Returns:
        dict[str, Any]: Reconciled `model`, option `items`, fetch `errors` and widget `kind`.
    """
    schema = _load_json(args.schema_path, label="schema")
    if not isinstance(schema, dict):
        raise SchemaFieldError(message=f"Schema file {args.schema_path} must contain a JSON object")

    wrapper: dict[str, Any] = {}
    if args.model_path is not None:
        wrapper[args.model_key] = _load_json(args.model_path, label="model")

    overrides: dict[str, Any] = {
        "http": HttpxCapability(settings, base_url=args.base_url),
        "markdown": PythonMarkdownRenderer(),
        "context": dict(args.context),
    }
    if args.remove_additional_properties:
        overrides["remove_additional_properties"] = True
    options = FieldOptions.from_settings(settings, **overrides)

    errors: list[str] = []

    def _collect_errors(event: FieldEvent) -> None:
        if event.type == EventType.ERROR and event.message:
            errors.append(event.message)

    field = SchemaField(
        schema,
        wrapper,
        args.model_key,
        parent_key=f"{ROOT_KEY}.",
        options=options,
        on_event=_collect_errors,
    )
    if args.query is not None:
        field.set_query(args.query)

    return {
        "model": field.model,
        "items": field.select_items or [],
        "errors": errors,
        "kind": field.field_kind.value if field.field_kind else None,
    }


def persist_result(result: dict[str, Any], output_path: Path | None) -> None:
    """Write the resolve result as JSON to a file, or to stdout when no path is given."""
    payload = json.dumps(result, indent=2, ensure_ascii=False)
    if output_path is None:
        print(payload)  # noqa: T201
        return
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(payload + "\n", encoding="utf-8")


def main(argv: list[str] | None = None) -> int:
    """Run the CLI.

    Args:
        argv (list[str] | None): Arguments, defaults to `sys.argv[1:]`.

    Returns:
        int: Exit code (0 for success, 1 for error).
    """
    settings = get_settings()
    configure_logging(settings=settings)

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command != "resolve":
        parser.print_help()
        return 0

    try:
        ensure_cli_dependencies_for_resolve()
        result = run_resolve(args, settings)
    except PackageError:
        logger.exception("Resolve failed")
        return 1
    except KeyboardInterrupt:
        logger.info("Resolve aborted by user")
        return 130

    persist_result(result, args.output_path)
    if args.output_path is not None:
        logger.info("Resolve completed", extra={"output_path": str(args.output_path)})
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
