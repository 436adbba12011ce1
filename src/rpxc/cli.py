"""rpxc CLI: run a build tool inside the cross-compilation environment."""

import argparse
import sys
from importlib.metadata import version as get_version, PackageNotFoundError
from pathlib import Path

from rpxc import api
from rpxc.codes import EXIT_INTERRUPTED, EXIT_SETUP_FAILED, EXIT_STALE
from rpxc.config import load_config
from rpxc.errors import RpxcError

# rpxc options that consume the following token as their value
_VALUE_OPTIONS = ("--config", "--definition", "--image", "--engine", "--target", "--tool")


def split_argv(argv):
    """Split argv into rpxc's own options and the forwarded command line.

    The first token that is not an rpxc option (or its value) is the
    sub-command; it and everything after it are returned untouched, so a
    `--` meant for the build tool survives.

    Returns:
        (options, forwarded) where forwarded is [] or [subcommand, *args]
    """
    i = 0
    while i < len(argv):
        arg = argv[i]
        if arg == "--":
            return argv[:i], argv[i + 1:]
        if not arg.startswith("-") or arg == "-":
            return argv[:i], argv[i:]
        if arg in _VALUE_OPTIONS:
            i += 1
        i += 1
    return argv, []


def _status(message: str, quiet: bool) -> None:
    # stdout belongs to the delegated command
    if not quiet:
        print(message, file=sys.stderr)


def build_parser() -> argparse.ArgumentParser:
    try:
        rpxc_version = get_version("rpxc")
    except PackageNotFoundError:
        rpxc_version = "dev"

    parser = argparse.ArgumentParser(
        prog="rpxc",
        allow_abbrev=False,
        description=(
            "Run a build tool inside a containerized cross-compilation toolchain, "
            "rebuilding the toolchain image only when its definition changes."
        ),
        epilog=(
            "Example: rpxc build --release  "
            "runs `cargo build --target=armv7-unknown-linux-gnueabihf --release`"
        ),
    )
    parser.add_argument("--version", action="version", version=f"rpxc {rpxc_version}")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a JSON config file (defaults to ./rpxc.json when present)"
    )
    parser.add_argument(
        "--definition",
        type=Path,
        default=None,
        help="Path to the toolchain definition (Dockerfile)"
    )
    parser.add_argument("--image", default=None, help="Environment image tag")
    parser.add_argument(
        "--engine",
        choices=["docker", "podman", "host"],
        default=None,
        help="Engine that builds and runs the environment"
    )
    parser.add_argument(
        "--target",
        default=None,
        help="Target triple appended as --target=<triple> (empty string disables)"
    )
    parser.add_argument("--tool", default=None, help="Build tool run inside the environment")
    parser.add_argument(
        "--rebuild",
        action="store_true",
        help="Rebuild the environment even if the definition is unchanged."
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Only report whether the environment is up to date (exit 1 if stale)."
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress all non-error output."
    )
    parser.add_argument(
        "subcommand",
        nargs="?",
        help="Sub-command forwarded to the build tool (e.g. build, test)"
    )
    parser.add_argument(
        "args",
        nargs=argparse.REMAINDER,
        help="Arguments forwarded verbatim after the target flag"
    )
    return parser


def main(argv=None):
    """Main CLI entry point for rpxc."""
    parser = build_parser()
    argv = list(sys.argv[1:] if argv is None else argv)
    options, forwarded = split_argv(argv)
    # positionals are taken from the split, never from argparse
    args = parser.parse_args(options)
    if forwarded:
        args.subcommand, args.args = forwarded[0], forwarded[1:]

    if not args.check and not args.subcommand:
        parser.error("a sub-command is required unless --check is given")

    try:
        config = load_config(
            config_path=args.config,
            overrides={
                "definition": args.definition,
                "image": args.image,
                "engine": args.engine,
                "target": args.target,
                "tool": args.tool,
            },
        )

        if args.check:
            status = api.check_environment(config)
            _status(f"  Definition: {status.definition}", args.quiet)
            _status(f"  Fingerprint: {status.fingerprint}", args.quiet)
            _status(f"  Recorded: {status.stored_fingerprint or 'none'}", args.quiet)
            if status.stale:
                _status(f"[STALE] {config.image}: {status.reason}", args.quiet)
                sys.exit(EXIT_STALE)
            _status(f"[OK] {config.image} is up to date", args.quiet)
            sys.exit(0)

        provisioner = api.build_provisioner(config, echo=not args.quiet)
        result = api.ensure_environment(config, rebuild=args.rebuild, provisioner=provisioner)
        if result.provisioned:
            _status(f"[OK] Environment provisioned: {result.handle.image} ({result.reason})", args.quiet)
            _status(f"  Fingerprint: {result.fingerprint}", args.quiet)
            _status(f"  Wrapper: {result.handle.wrapper}", args.quiet)
        else:
            _status(f"[OK] Environment up to date: {result.handle.image}", args.quiet)

        command, command_args = api.tool_command(config, args.subcommand, args.args)
        exit_code = provisioner.run(result.handle, command, command_args)
    except RpxcError as e:
        print(f"Error [{e.code.value}]: {e}", file=sys.stderr)
        sys.exit(EXIT_SETUP_FAILED)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(EXIT_INTERRUPTED)
    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc()
        sys.exit(EXIT_SETUP_FAILED)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
