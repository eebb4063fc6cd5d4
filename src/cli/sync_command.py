"""Sync command orchestration for CLI.

This module provides the SyncCommand class that loads the configuration,
runs the SyncPipeline and translates the outcome and any exception into an
exit code.
"""

import logging
from typing import Optional

from src.cli.config import ConfigLoader
from src.cli.errors import CLIError, ConfigError, FilesystemError
from src.cli.models import ExitCode
from src.cli.output import OutputHandler
from src.confluence_client.api_wrapper import APIWrapper
from src.confluence_client.auth import Authenticator
from src.confluence_client.errors import (
    APIAccessError,
    APIUnreachableError,
    ConfluenceError,
    InvalidCredentialsError,
    SpaceNotFoundError,
)
from src.sync.pipeline import SyncPipeline

logger = logging.getLogger(__name__)


class SyncCommand:
    """Runs one sync from the command line.

    Example:
        >>> output = OutputHandler(verbosity=1)
        >>> sync_cmd = SyncCommand(output_handler=output)
        >>> exit_code = sync_cmd.run(space_key="DOCS", dry_run=True)
        >>> sys.exit(exit_code)
    """

    def __init__(
        self,
        config_path: Optional[str] = None,
        output_handler: Optional[OutputHandler] = None,
        authenticator: Optional[Authenticator] = None,
        api: Optional[APIWrapper] = None,
    ):
        """Initialize sync command with dependencies.

        Args:
            config_path: Path to configuration YAML file (``mdspace.yaml`` when None)
            output_handler: OutputHandler for terminal output
            authenticator: Authenticator for Confluence API
            api: APIWrapper to use instead of one built from ``authenticator``
        """
        self.config_path = config_path
        self.output_handler = output_handler or OutputHandler()
        self.authenticator = authenticator
        self.api = api

    def run(
        self,
        space_key: Optional[str] = None,
        source_dir: Optional[str] = None,
        dry_run: bool = False,
    ) -> ExitCode:
        """Execute a sync.

        Args:
            space_key: Space key overriding the configuration file
            source_dir: Source directory overriding the configuration file
            dry_run: Compute and print the plan without applying it

        Returns:
            ExitCode indicating success or specific failure type
        """
        output = self.output_handler
        try:
            config = ConfigLoader.load(
                self.config_path,
                overrides={"space_key": space_key, "source_dir": source_dir},
            )
            logger.info(f"Syncing {config.source_dir} into space {config.space_key}")
            output.info(f"Syncing {config.source_dir} into space {config.space_key}")

            if self.api is None:
                authenticator = self.authenticator or Authenticator()
                missing = authenticator.missing_variables()
                if missing:
                    output.error(f"Missing environment variables: {', '.join(missing)}")
                    output.info("Set them in the environment or in a .env file")
                    return ExitCode.AUTH_ERROR
                self.api = APIWrapper(authenticator)

            pipeline = SyncPipeline(config, self.api)
            with output.spinner("Synchronizing..."):
                report = pipeline.run(dry_run=dry_run)

            output.print_plan(report.plan)
            output.print_report(report)
            return ExitCode.SUCCESS if report.ok else ExitCode.DOCUMENT_ERRORS

        except InvalidCredentialsError as e:
            logger.error(f"Authentication failed: {e}")
            output.error(f"Authentication failed: {e}")
            output.info("Check CONFLUENCE_USER and CONFLUENCE_API_TOKEN environment variables")
            return ExitCode.AUTH_ERROR

        except (APIUnreachableError, APIAccessError) as e:
            logger.error(f"API error: {e}")
            output.error(f"API error: {e}")
            output.info("Check your internet connection and try again")
            return ExitCode.NETWORK_ERROR

        except SpaceNotFoundError as e:
            logger.error(str(e))
            output.error(f"{e}. Check the space key and your access to it")
            return ExitCode.GENERAL_ERROR

        except (ConfigError, FilesystemError) as e:
            logger.error(f"Configuration error: {e}")
            output.error(str(e))
            return ExitCode.GENERAL_ERROR

        except (CLIError, ConfluenceError) as e:
            logger.error(f"Sync failed: {e}")
            output.error(f"Error: {e}")
            return ExitCode.GENERAL_ERROR

        except Exception as e:
            logger.exception("Unexpected error during sync")
            output.error(f"Unexpected error: {e}")
            return ExitCode.GENERAL_ERROR
