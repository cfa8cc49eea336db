# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import argparse
import logging
import sys
from typing import List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from triggersync import __version__
from triggersync._logging_config import init_basic_logging
from triggersync.api import apply_triggers, remove_triggers, verify_buckets
from triggersync.core.configuration import set_config
from triggersync.core.errors import ConfigurationError, MissingResourceError, RemoteStateError
from triggersync.core.manifest import DEFAULT_MANIFEST_FILE
from triggersync.core.reconciliation.orchestrator import RunResult

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_RECONCILIATION_FAILED = 1
EXIT_PREFLIGHT_FAILED = 2

APPLY_TRIGGERS = "apply-triggers"
REMOVE_TRIGGERS = "remove-triggers"
VERIFY_BUCKETS = "verify-buckets"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="triggersync", description="Attaches/removes function triggers on existing S3 buckets")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", "-c", default=DEFAULT_MANIFEST_FILE, help="Path of the service manifest")
    common.add_argument("--stage", "-s", help="Stage of the service")
    common.add_argument("--region", "-r", help="Region of the service")
    common.add_argument("--profile", help="AWS named profile to use")
    common.add_argument("--role-arn", help="IAM role to assume for the remote calls")
    common.add_argument("--max-workers", type=int, help="Number of buckets/functions reconciled in parallel")
    common.add_argument("--log-dir", help="Directory for the rotating log file")
    common.add_argument("--verbose", "-v", action="store_true", help="Debug level logging")

    commands = parser.add_subparsers(dest="command", metavar="command")
    commands.required = True
    commands.add_parser(APPLY_TRIGGERS, parents=[common], help="Attaches function notification events to existing S3 buckets")
    commands.add_parser(REMOVE_TRIGGERS, parents=[common], help="Removes function notification events from existing S3 buckets")
    commands.add_parser(VERIFY_BUCKETS, parents=[common], help="Checks that every bucket the triggers refer to exists")
    return parser


def _report(result: RunResult) -> int:
    for failure in result.failures:
        print(f"FAILED {failure}", file=sys.stderr)
    for unit in result.unchanged:
        print(f"UNCHANGED {unit}")
    return EXIT_OK if result.ok else EXIT_RECONCILIATION_FAILED


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    init_basic_logging(args.log_dir, root_level=logging.DEBUG if args.verbose else logging.INFO)
    if args.max_workers is not None:
        set_config(max_workers=args.max_workers)

    context = dict(stage=args.stage, region=args.region, profile=args.profile, role_arn=args.role_arn)
    try:
        if args.command == APPLY_TRIGGERS:
            return _report(apply_triggers(args.config, **context))
        elif args.command == REMOVE_TRIGGERS:
            return _report(remove_triggers(args.config, **context))
        else:
            plans = verify_buckets(args.config, **context)
            print(f"All {len(plans)} bucket(s) exist")
            return EXIT_OK
    except (ConfigurationError, MissingResourceError, RemoteStateError) as error:
        logger.error("%s aborted: %s", args.command, error)
        print(f"ERROR {error}", file=sys.stderr)
        return EXIT_PREFLIGHT_FAILED
    except (ClientError, BotoCoreError) as error:
        logger.exception("%s aborted by a remote error!", args.command)
        print(f"ERROR {error}", file=sys.stderr)
        return EXIT_PREFLIGHT_FAILED


def console_main() -> None:
    sys.exit(main())


if __name__ == "__main__":
    console_main()
