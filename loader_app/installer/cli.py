"""
`loader-install`: unattended installer for the short-link loader.

    sudo loader-install --domain sho.rt --db-pass s3cret --admin-pass adm1n \
        --source-path /srv/src/loader --letsencrypt --email ops@sho.rt
"""

import argparse
import logging
import sys
from typing import List, Optional, Tuple

from pydantic import ValidationError

from loader_app.installer.options import InstallOptions
from loader_app.installer.runner import CommandRunner
from loader_app.installer.steps import InstallError, Installer
from loader_app.logging_config import configure_installer_logging

logger = logging.getLogger("loader_app.installer")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="loader-install",
        description="Provision nginx, MariaDB and the short-link loader on a Debian/Ubuntu host.",
    )
    parser.add_argument("--domain", required=True, help="Public host name of the site")
    parser.add_argument("--db-name", default="loader", help="Database name (default: %(default)s)")
    parser.add_argument("--db-user", default="loader", help="Database user (default: %(default)s)")
    parser.add_argument("--db-pass", required=True, help="Database password")
    parser.add_argument("--admin-user", default="admin", help="Admin user name (default: %(default)s)")
    parser.add_argument("--admin-pass", required=True, help="Admin password")
    parser.add_argument("--install-dir", default="/var/www/loader", help="Target directory (default: %(default)s)")
    parser.add_argument("--app-version", default="1.0.0", help="Version to install (default: %(default)s)")
    parser.add_argument("--app-port", type=int, default=8000, help="Local port of the app server (default: %(default)s)")
    parser.add_argument("--letsencrypt", action="store_true", help="Request a certificate with certbot")
    parser.add_argument("--email", help="Contact address for Let's Encrypt")
    parser.add_argument("--self-signed-fallback", action="store_true",
                        help="Install a self-signed certificate when certbot fails")

    source = parser.add_argument_group("application source")
    source.add_argument("--source-path", help="Local directory to copy from")
    source.add_argument("--archive-url", help="Zip archive URL; {version} is replaced by --app-version")
    source.add_argument("--git-url", help="Git repository, also used when the archive download fails")

    parser.add_argument("--dry-run", action="store_true", help="Print the commands without running them")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug output")
    return parser


def parse_options(argv: Optional[List[str]] = None) -> Tuple[InstallOptions, bool]:
    parser = build_parser()
    args = parser.parse_args(argv)
    values = {k: v for k, v in vars(args).items() if k != "verbose" and v is not None}
    try:
        options = InstallOptions(**values)
    except ValidationError as e:
        problems = "; ".join(
            f"{'--' + str(err['loc'][0]).replace('_', '-') + ': ' if err['loc'] else ''}{err['msg']}"
            for err in e.errors()
        )
        parser.error(problems)
    return options, args.verbose


def main(argv: Optional[List[str]] = None, runner: Optional[CommandRunner] = None) -> int:
    options, verbose = parse_options(argv)
    configure_installer_logging(verbose)

    runner = runner or CommandRunner(dry_run=options.dry_run)
    installer = Installer(options, runner)

    try:
        installer.run()
    except InstallError as e:
        logger.error(str(e))
        if e.detail and e.command:
            logger.error(e.detail)
        return 1

    if options.dry_run:
        missing = runner.missing_executables()
        if missing:
            logger.warning("Not found on PATH: %s", ", ".join(missing))
        else:
            logger.info("All %d commands have their executable on PATH", len(runner.history))
    return 0


def cli():
    sys.exit(main())


if __name__ == "__main__":
    cli()
