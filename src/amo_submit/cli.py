# src/amo_submit/cli.py

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiohttp

from amo_submit import log_utils
from amo_submit.config import ClientConfig, load_config
from amo_submit.constants import CHANNELS, MSG_DONE
from amo_submit.exceptions import AmoSubmitError
from amo_submit.submit import SubmissionClient, WorkflowContext
from amo_submit.utils import get_package_version

EXIT_SUCCESS = 0
EXIT_FAILURE = 1

COMMANDS = ("addon", "version", "download-latest")
FILE_OPTIONS = (
    "--xpi",
    "-x",
    "-f",
    "--file",
    "--channel",
    "-c",
    "--data",
    "-d",
    "--json",
)
GLOBAL_VALUE_OPTIONS = (
    "--config",
    "--env-file",
    "--api-url",
    "--download-dir",
    "--log-level",
    "--log-file-dir",
)
HELP_OPTIONS = ("-h", "--help", "--version")


def _parse_metadata(value: str) -> Dict[str, Any]:
    """
    argparse type for --data: a JSON object string.

    Raises:
        argparse.ArgumentTypeError: If `value` is not valid JSON or not an object.
    """
    try:
        data = json.loads(value)
    except json.JSONDecodeError as e:
        raise argparse.ArgumentTypeError(f"invalid JSON metadata: {e}") from e
    if not isinstance(data, dict):
        raise argparse.ArgumentTypeError("metadata must be a JSON object")
    return data


def _add_file_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--xpi",
        "-x",
        "-f",
        "--file",
        dest="xpi",
        required=True,
        help="Filename/path of add-on file to be submitted.",
    )
    parser.add_argument(
        "--channel",
        "-c",
        required=True,
        choices=CHANNELS,
        help="Version release channel",
    )
    parser.add_argument(
        "--data",
        "-d",
        "--json",
        dest="data",
        type=_parse_metadata,
        default={},
        help="A JSON string of extra metadata for the new addon/version.",
    )


def _add_addon_id_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--addon-id",
        "--id",
        "--guid",
        dest="addon_id",
        required=True,
        help="The add-on id (slug|amo-numeric-id|guid)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="amo-submit",
        description="Submit add-ons for signing and download the signed package",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {get_package_version()}"
    )
    parser.add_argument(
        "--config", type=Path, help="YAML config file (defaults to the user config dir)"
    )
    parser.add_argument(
        "--env-file", type=Path, help=".env file to load API credentials from"
    )
    parser.add_argument("--api-url", help="API URL prefix, e.g. https://host/api/v5/")
    parser.add_argument(
        "--download-dir", type=Path, help="Directory the signed file is saved in"
    )
    parser.add_argument(
        "--log-level", help="Console log level (DEBUG, INFO, WARNING, ERROR)"
    )
    parser.add_argument(
        "--log-file-dir",
        type=Path,
        help="Also write a rotating log file to this directory",
    )

    subparsers = parser.add_subparsers(dest="command")

    addon_parser = subparsers.add_parser("addon", help="submit a new add-on")
    _add_file_arguments(addon_parser)

    version_parser = subparsers.add_parser("version", help="submit a new version")
    _add_addon_id_argument(version_parser)
    _add_file_arguments(version_parser)

    latest_parser = subparsers.add_parser(
        "download-latest", help="download the latest version of an add-on"
    )
    _add_addon_id_argument(latest_parser)

    return parser


def _implicit_command_position(argv: List[str]) -> Optional[int]:
    """
    Return where the implicit `addon` belongs in `argv`, or None if it is not needed.

    Only the first positional token can name a subcommand, so values of global
    options (`--download-dir addon`) and of add-on options (`--xpi version`) are
    skipped rather than mistaken for one.
    """
    expects_value = False
    for i, arg in enumerate(argv):
        if expects_value:
            expects_value = False
            continue
        if arg in HELP_OPTIONS:
            return None
        if not arg.startswith("-"):
            return None if arg in COMMANDS else i
        option = arg.split("=", 1)[0]
        if not arg.startswith("--") and len(arg) > 2:
            option = arg[:2]
        if option in FILE_OPTIONS:
            return i
        expects_value = option == arg and option in GLOBAL_VALUE_OPTIONS
    return len(argv)


def _parse_args(parser: argparse.ArgumentParser, argv: List[str]) -> argparse.Namespace:
    """
    Parse `argv`, treating a command line without a subcommand as `addon`.

    The implicit `addon` is inserted before the first add-on option so global
    options given ahead of it still reach the main parser.
    """
    position = _implicit_command_position(argv)
    if position is not None:
        argv = [*argv[:position], "addon", *argv[position:]]
    return parser.parse_args(argv)


async def run_command(args: argparse.Namespace, config: ClientConfig) -> WorkflowContext:
    """Run the workflow selected by `args.command`."""
    async with SubmissionClient(config) as client:
        if args.command == "version":
            return await client.submit_version(
                args.xpi, args.channel, args.addon_id, args.data
            )
        if args.command == "download-latest":
            return await client.download_latest_version(args.addon_id)
        return await client.submit_addon(args.xpi, args.channel, args.data)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Entry point for the amo-submit command-line interface.

    Parses arguments, loads configuration, runs the selected workflow and exits
    with status 0 on success or 1 on any submission, network or file error.
    """
    parser = build_parser()
    args = _parse_args(parser, sys.argv[1:] if argv is None else argv)

    if args.log_level:
        log_utils.set_log_level(args.log_level)
    if args.log_file_dir:
        log_utils.add_file_logging(args.log_file_dir, args.log_level or "INFO")

    try:
        config = load_config(
            config_file=args.config,
            env_file=args.env_file,
            overrides={
                "api_url_prefix": args.api_url,
                "download_dir": args.download_dir,
            },
        )
        context = asyncio.run(run_command(args, config))
    except AmoSubmitError as e:
        log_utils.logger.error(f"{type(e).__name__}: {e}")
        sys.exit(EXIT_FAILURE)
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        log_utils.logger.error(f"Network error: {e}")
        sys.exit(EXIT_FAILURE)
    except OSError as e:
        log_utils.logger.error(f"File error: {e}")
        sys.exit(EXIT_FAILURE)

    log_utils.logger.info(f"Signed file saved to {context.saved_path}")
    print(MSG_DONE)
    return EXIT_SUCCESS


if __name__ == "__main__":
    sys.exit(main())
