#!/usr/bin/env python3
"""
CLI for the RoboML validator, simulator and Arduino emitter.

Usage:
    python -m roboml check FILE
    python -m roboml list FILE
    python -m roboml run FILE [--config CONFIG.yaml] [--output SCENE.json]
    python -m roboml build FILE [--config CONFIG.yaml] [--output SKETCH.ino]

FILE is a program document in YAML or JSON (see roboml.loader).

Examples:
    # Check a program for semantic errors
    python -m roboml check examples/square.yaml

    # Simulate it in a custom arena and save the scene
    python -m roboml run examples/square.yaml --config arena.yaml -o scene.json

    # Generate the Arduino sketch
    python -m roboml build examples/square.yaml -o square.ino
"""

import argparse
import json
import logging
import sys
from pathlib import Path


def _load(args):
    from .loader import load_program

    source_path = Path(args.file)
    if not source_path.exists():
        print(f"Error: File not found: {source_path}", file=sys.stderr)
        return None
    return load_program(source_path)


def _config(args):
    from .config import SimulationConfig, load_config

    if getattr(args, 'config', None):
        return load_config(args.config)
    return SimulationConfig()


def _print_diagnostics(result) -> None:
    for diag in result.diagnostics:
        print(f"  {diag.format()}")


def cmd_check(args):
    """Check a program for semantic errors."""
    from . import validate

    try:
        program = _load(args)
        if program is None:
            return 1
        result = validate(program)

        if result.has_errors:
            print(f"Validation failed with {len(result.errors)} error(s):")
            _print_diagnostics(result)
            return 1

        print(f"OK: {Path(args.file).name} - {len(program.functions)} function(s), no errors")
        if result.has_warnings:
            print(f"  {len(result.warnings)} warning(s)")
            _print_diagnostics(result)

        return 0

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_list(args):
    """List the functions declared in a program."""
    try:
        program = _load(args)
        if program is None:
            return 1

        print(f"Functions ({len(program.functions)}):")
        for func in program.functions:
            params = ", ".join(f"{p.name}: {p.type.value}" for p in func.parameters)
            returns = func.return_type.value if func.return_type else "?"
            print(f"  {func.name}({params}) -> {returns}")
        print(f"Entry: {'yes' if program.entry is not None else 'missing'}")

        return 0

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_run(args):
    """Simulate a program and print or save the resulting scene."""
    from . import run

    try:
        program = _load(args)
        if program is None:
            return 1
        config = _config(args)

        result = run(program, config)
        if not result.success:
            if result.diagnostics:
                print(f"Validation failed with {len(result.diagnostics)} error(s):")
                for diag in result.diagnostics:
                    print(f"  {diag.format()}")
            else:
                print(f"Error: {result.error_message}", file=sys.stderr)
            return 1

        scene = result.scene
        payload = json.dumps(scene.to_json(), indent=2)
        if args.output:
            output_path = Path(args.output)
            output_path.write_text(payload + "\n")
            print(f"Wrote scene to {output_path}")
        else:
            print(payload)

        print(f"Simulated {len(scene.snapshots)} step(s) over {scene.time:.3f}s", file=sys.stderr)
        return 0

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_build(args):
    """Generate the Arduino sketch for a program."""
    from . import DslError, emit, validate

    try:
        program = _load(args)
        if program is None:
            return 1
        config = _config(args)

        validate(program).raise_for_errors()
        source = emit(program, config)

        if args.output:
            output_path = Path(args.output)
            output_path.write_text(source)
            print(f"Wrote sketch to {output_path}")
        else:
            sys.stdout.write(source)

        return 0

    except DslError as e:
        print(f"Validation failed: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog='python -m roboml',
        description='RoboML validator, simulator and Arduino emitter',
    )
    parser.add_argument('-v', '--verbose', action='count', default=0,
                        help='Increase log output (-v info, -vv debug)')

    subparsers = parser.add_subparsers(dest='action', required=True)

    # check command
    check_parser = subparsers.add_parser('check', help='Check a program for errors')
    check_parser.add_argument('file', help='Program document (YAML or JSON)')

    # list command
    list_parser = subparsers.add_parser('list', help='List functions in a program')
    list_parser.add_argument('file', help='Program document (YAML or JSON)')

    # run command
    run_parser = subparsers.add_parser('run', help='Simulate a program')
    run_parser.add_argument('file', help='Program document (YAML or JSON)')
    run_parser.add_argument('-c', '--config', metavar='FILE',
                            help='Simulation settings (YAML)')
    run_parser.add_argument('-o', '--output', metavar='FILE',
                            help='Write the scene as JSON instead of printing it')

    # build command
    build_parser = subparsers.add_parser('build', help='Generate an Arduino sketch')
    build_parser.add_argument('file', help='Program document (YAML or JSON)')
    build_parser.add_argument('-c', '--config', metavar='FILE',
                              help='Simulation settings (YAML); supplies speed and angular rate')
    build_parser.add_argument('-o', '--output', metavar='FILE',
                              help='Write the sketch to FILE instead of stdout')

    args = parser.parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format='%(levelname)s %(name)s: %(message)s')

    if args.action == 'check':
        return cmd_check(args)
    elif args.action == 'list':
        return cmd_list(args)
    elif args.action == 'run':
        return cmd_run(args)
    elif args.action == 'build':
        return cmd_build(args)
    else:
        parser.print_help()
        return 1


if __name__ == '__main__':
    sys.exit(main())
