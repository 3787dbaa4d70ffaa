#!/usr/bin/env python3
"""AWS Control Tower landing zone automation - command line entry point.

Sets up the landing zone to match a YAML configuration, or registers an
organizational unit with an existing landing zone.
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from . import __version__
from .control_tower.baseline import BaselineRegistrar
from .control_tower.orchestrator import SetupLandingZoneModule, SetupLandingZoneRequest
from .core.aws_client import AWSClientManager
from .core.config import Configuration, ConfigurationError
from .core.credentials import CredentialResolver
from .core.exceptions import LandingZoneError
from .core.throttle import BackoffRetrier

logger = logging.getLogger(__name__)

SOLUTION_ID = "landing-zone-automation"


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments.

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        description="AWS Control Tower Landing Zone Automation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s setup config.yaml                      # Create, update or reset the landing zone
  %(prog)s setup config.yaml --dry-run            # Preview without making changes
  %(prog)s register-ou config.yaml --ou-arn ARN   # Register an OU with Control Tower
        """,
    )
    parser.add_argument("--version", action="version", version=f"Landing Zone Automation v{__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)
    for command, help_text in (
        ("setup", "Create, update or reset the landing zone"),
        ("register-ou", "Register an organizational unit with AWS Control Tower"),
    ):
        subparser = subparsers.add_parser(command, help=help_text)
        subparser.add_argument(
            "config_file",
            nargs="?",
            help="Path to configuration file (default: auto-detect config.yaml)",
        )
        subparser.add_argument("--region", help="Home region (overrides configuration file)")
        subparser.add_argument("--partition", help="AWS partition (overrides configuration file)")
        subparser.add_argument("--global-region", help="Region of global service endpoints")
        subparser.add_argument("--profile", help="AWS profile name to use for credentials")
        subparser.add_argument("--management-account-id", help="Account to act in through a role")
        subparser.add_argument("--role-name", help="Role assumed in the management account")
        subparser.add_argument("--dry-run", action="store_true", help="Only read and report, make no changes")
        subparser.add_argument("--solution-id", default=SOLUTION_ID, help="Solution tag added to the user agent")
        subparser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
        if command == "setup":
            subparser.add_argument(
                "--use-existing-role",
                action="store_true",
                help="Do not create the AWS Control Tower roles",
            )
        else:
            subparser.add_argument("--ou-arn", required=True, help="ARN of the organizational unit")

    return parser.parse_args(argv)


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # botocore debug output includes request signatures
    logging.getLogger("botocore").setLevel(logging.WARNING)


async def run(args: argparse.Namespace, config: Configuration) -> str:
    """Run the selected command.

    Args:
        args: Parsed arguments
        config: Loaded configuration

    Returns:
        Status message
    """
    region = args.region or config.get_home_region()
    partition = args.partition or config.get_partition()
    global_region = args.global_region or config.get_global_region()
    retrier = BackoffRetrier(config.get_max_attempts())
    client_manager = AWSClientManager(region_name=region, profile_name=args.profile, solution_id=args.solution_id)

    credentials = None
    if args.management_account_id and args.role_name:
        resolver = CredentialResolver(client_manager, retrier)
        credentials = await resolver.get_credentials(
            args.management_account_id,
            global_region,
            solution_id=args.solution_id,
            partition=partition,
            assume_role_name=args.role_name,
        )
    else:
        account_id = await retrier.call(client_manager.validate_credentials)
        logger.info(f"Running as account {account_id}")

    if args.command == "register-ou":
        registrar = BaselineRegistrar(client_manager.with_credentials(credentials), retrier, region)
        return await registrar.register_organizational_unit(args.ou_arn, args.command, dry_run=args.dry_run)

    request = SetupLandingZoneRequest(
        operation=args.command,
        partition=partition,
        region=region,
        global_region=global_region,
        configuration=config.get_landing_zone_configuration(),
        credentials=credentials,
        dry_run=args.dry_run,
        use_existing_role=args.use_existing_role,
        solution_id=args.solution_id,
        max_attempts=config.get_max_attempts(),
    )
    return await SetupLandingZoneModule(client_manager).handler(request)


def main(argv: Optional[List[str]] = None) -> int:
    """Main application entry point.

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    args = parse_arguments(argv)
    configure_logging(args.verbose)

    try:
        config = Configuration(args.config_file)
    except ConfigurationError as e:
        print(f"❌ Configuration error: {e}")
        return 1

    try:
        status = asyncio.run(run(args, config))
    except KeyboardInterrupt:
        print("\n\n👋 Operation cancelled by user.")
        return 130
    except LandingZoneError as e:
        print(f"❌ {e}")
        return 1
    except (ClientError, BotoCoreError) as e:
        print(f"❌ AWS error: {e}")
        return 1

    print(f"✅ {status}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
