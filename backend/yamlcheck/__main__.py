"""
yamlcheck CLI - Main Entry Point

Validate single YAML documents or whole directories, convert between YAML
and JSON, or start the HTTP API.

Results are printed to stdout as JSON; logs go to stderr.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

from yamlcheck import ValidationEngine, ToolConfig, __version__
from yamlcheck.config import get_settings
from yamlcheck.conversion import json_to_yaml, yaml_to_json
from yamlcheck.errors import ParseError
from yamlcheck.log_config import configure_logging
from yamlcheck.validators.detect import PROVIDERS
from yamlcheck.validators.input_guard import infer_mime_type
from yamlcheck.validators.suggest import apply_suggestions, suggest

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 64


def create_parser() -> argparse.ArgumentParser:
    """
    Create the main argument parser for the yamlcheck CLI.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog='yamlcheck',
        description='Validate YAML documents with yamllint, Spectral and cfn-lint',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Usage Examples:
 yamlcheck validate deploy.yaml
 yamlcheck validate openapi.yaml --spectral-ruleset .spectral.yaml
 yamlcheck validate-dir ./manifests --tool yamllint
 yamlcheck convert config.yaml --to json
 yamlcheck suggest azure-pipelines.yml --apply 0 --apply 2
 yamlcheck serve

Exit Codes:
 0 = Valid (no errors; warnings allowed)
 1 = Validation or conversion failed
 64 = Usage error (bad flags, missing paths)
       """
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging output'
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    subparsers = parser.add_subparsers(
        dest='command',
        help='Available commands',
        required=True
    )

    # Options shared by validate and validate-dir
    tool_options = argparse.ArgumentParser(add_help=False)
    tool_options.add_argument(
        '--spectral-ruleset',
        help='Spectral ruleset file; Spectral is skipped without one'
    )
    tool_options.add_argument(
        '--yamllint-config',
        help='yamllint configuration file'
    )
    tool_options.add_argument(
        '--assume-cloudformation',
        action='store_true',
        help='Run cfn-lint even when the document does not look like CloudFormation'
    )
    tool_options.add_argument(
        '--assume-azure-pipelines',
        action='store_true',
        help='Run the Azure Pipelines checks even when the document does not look like a pipeline'
    )
    tool_options.add_argument(
        '--provider',
        choices=PROVIDERS,
        help='Skip provider detection (wins over the --assume-* flags)'
    )
    tool_options.add_argument(
        '--tool',
        action='append',
        dest='tools',
        metavar='NAME',
        help='Run only this tool (repeatable): yamllint, spectral, cfn-lint'
    )

    validate_parser = subparsers.add_parser(
        'validate',
        parents=[tool_options],
        help='Validate one YAML file'
    )
    validate_parser.add_argument('file', help='Path to a .yaml/.yml file')
    validate_parser.add_argument(
        '--mime-type',
        help='Declared MIME type (default: inferred from the extension)'
    )

    dir_parser = subparsers.add_parser(
        'validate-dir',
        parents=[tool_options],
        help='Validate every .yaml/.yml file under a directory'
    )
    dir_parser.add_argument('directory', help='Root directory to scan recursively')

    convert_parser = subparsers.add_parser(
        'convert',
        help='Convert a file between YAML and JSON'
    )
    convert_parser.add_argument('file', help='Input file')
    convert_parser.add_argument(
        '--to',
        choices=['json', 'yaml'],
        required=True,
        help='Target format'
    )

    suggest_parser = subparsers.add_parser(
        'suggest',
        help='Azure Pipelines and CloudFormation suggestions for one file'
    )
    suggest_parser.add_argument('file', help='Path to a .yaml/.yml file')
    suggest_parser.add_argument('--provider', choices=PROVIDERS, help='Skip provider detection')
    suggest_parser.add_argument(
        '--apply',
        action='append',
        type=int,
        dest='indexes',
        metavar='INDEX',
        help='Print the document with this suggestion applied (repeatable)'
    )

    serve_parser = subparsers.add_parser(
        'serve',
        help='Run the HTTP API'
    )
    serve_parser.add_argument('--host', help='Bind address (default: HOST setting)')
    serve_parser.add_argument('--port', type=int, help='Port (default: PORT setting)')

    return parser


def _tool_config(args) -> ToolConfig:
    return ToolConfig(
        spectral_ruleset_path=args.spectral_ruleset,
        yamllint_config_path=args.yamllint_config,
        assume_cloudformation=args.assume_cloudformation,
        assume_azure_pipelines=args.assume_azure_pipelines,
        provider=args.provider,
    )


def _print_json(payload: dict) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def run_validate_command(args, engine: ValidationEngine) -> int:
    path = Path(args.file)
    if not path.is_file():
        print(f"Error: File not found: {path}", file=sys.stderr)
        return EXIT_USAGE

    try:
        content = path.read_text(encoding='utf-8')
    except (OSError, UnicodeDecodeError) as e:
        print(f"Error: Cannot read {path}: {e}", file=sys.stderr)
        return EXIT_USAGE

    try:
        outcome = asyncio.run(engine.validate_yaml(
            content,
            filename=str(path),
            mime_type=args.mime_type or infer_mime_type(path.name),
            tool_config=_tool_config(args),
            tools=args.tools,
        ))
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_USAGE

    _print_json(outcome.model_dump(mode='json'))
    return EXIT_OK if outcome.ok else EXIT_FAILED


def run_validate_dir_command(args, engine: ValidationEngine) -> int:
    try:
        report = asyncio.run(engine.validate_directory(
            args.directory,
            tool_config=_tool_config(args),
            tools=args.tools,
        ))
    except (FileNotFoundError, NotADirectoryError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_USAGE

    payload = report.model_dump(mode='json')
    payload['summary'] = report.summary()
    _print_json(payload)
    return EXIT_OK if report.ok else EXIT_FAILED


def run_convert_command(args) -> int:
    path = Path(args.file)
    if not path.is_file():
        print(f"Error: File not found: {path}", file=sys.stderr)
        return EXIT_USAGE

    try:
        text = path.read_text(encoding='utf-8')
        converted = yaml_to_json(text) if args.to == 'json' else json_to_yaml(text)
    except (OSError, UnicodeDecodeError) as e:
        print(f"Error: Cannot read {path}: {e}", file=sys.stderr)
        return EXIT_USAGE
    except ParseError as e:
        where = f" (line {e.line}, column {e.column})" if e.line else ""
        print(f"Error: {e.message}{where}", file=sys.stderr)
        return EXIT_FAILED

    sys.stdout.write(converted if converted.endswith('\n') else converted + '\n')
    return EXIT_OK


def run_suggest_command(args) -> int:
    path = Path(args.file)
    if not path.is_file():
        print(f"Error: File not found: {path}", file=sys.stderr)
        return EXIT_USAGE

    try:
        text = path.read_text(encoding='utf-8')
        if args.indexes:
            fixed = apply_suggestions(text, args.indexes, args.provider)
            sys.stdout.write(fixed)
            return EXIT_OK
        report = suggest(text, args.provider)
    except (OSError, UnicodeDecodeError) as e:
        print(f"Error: Cannot read {path}: {e}", file=sys.stderr)
        return EXIT_USAGE
    except ParseError as e:
        where = f" (line {e.line}, column {e.column})" if e.line else ""
        print(f"Error: {e.message}{where}", file=sys.stderr)
        return EXIT_FAILED

    payload = report.model_dump(mode='json')
    for index, (item, suggestion) in enumerate(zip(payload['suggestions'], report.suggestions)):
        item['index'] = index
        item['fixable'] = suggestion.fixable
    _print_json(payload)
    return EXIT_OK


def run_serve_command(args) -> int:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "yamlcheck.main:app",
        host=args.host or settings.HOST,
        port=args.port or settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )
    return EXIT_OK


def main(argv: Optional[list] = None) -> int:
    """
    Main entry point for the yamlcheck CLI.

    Args:
        argv: Optional command line arguments for testing (default: sys.argv)

    Returns:
        Exit code (0=success, 1=validation/conversion failure, 64=usage error)
    """
    if argv is None:
        argv = sys.argv[1:]

    parser = create_parser()
    if not argv:
        parser.print_usage(sys.stderr)
        print("yamlcheck: error: the following arguments are required: command", file=sys.stderr)
        return EXIT_USAGE

    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        # --help/--version exit 0; argparse errors exit 2
        return EXIT_OK if e.code == 0 else EXIT_USAGE

    settings = get_settings()
    configure_logging(
        debug=args.verbose or settings.DEBUG,
        level=settings.LOG_LEVEL if not args.verbose else "debug",
        stream=sys.stderr,
    )

    if args.command == 'validate':
        return run_validate_command(args, ValidationEngine(settings))
    elif args.command == 'validate-dir':
        return run_validate_dir_command(args, ValidationEngine(settings))
    elif args.command == 'convert':
        return run_convert_command(args)
    elif args.command == 'suggest':
        return run_suggest_command(args)
    elif args.command == 'serve':
        return run_serve_command(args)
    else:
        print(f"Error: Unknown command '{args.command}'", file=sys.stderr)
        return EXIT_USAGE


if __name__ == "__main__":
    sys.exit(main())
