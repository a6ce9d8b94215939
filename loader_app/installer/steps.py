"""
The installation, as an ordered list of named steps.

Each step is idempotent so the installer can be re-run on a host that is
already (partly) provisioned. A failing step halts the run with an
InstallError that names the step and the command, except for the two
tolerated cases: the database readiness wait and certificate issuance.
"""

import logging
import os
import secrets
import socket
import tempfile
import time
import zipfile
from datetime import datetime
from typing import Callable, List, Optional, Tuple

import requests

from loader_app.installer.options import InstallOptions
from loader_app.installer.render import database_url, render_database_sql, render_template
from loader_app.installer.runner import CommandError, CommandRunner

logger = logging.getLogger(__name__)

PACKAGES = [
    "nginx", "mariadb-server", "redis-server", "python3", "python3-venv",
    "python3-pip", "unzip", "curl", "ca-certificates", "rsync", "openssl", "git",
]
CERTBOT_PACKAGES = ["certbot", "python3-certbot-nginx"]
APP_USER = "www-data"
DB_WAIT_ATTEMPTS = 30


class InstallError(Exception):
    def __init__(self, step: str, command: Optional[str], detail: str = ""):
        self.step = step
        self.command = command
        self.detail = detail
        super().__init__(f"Error in step {step} running: {command or detail}")


class Installer:
    def __init__(
        self,
        options: InstallOptions,
        runner: CommandRunner,
        sleep: Optional[Callable[[float], None]] = None,
        resolve: Optional[Callable[[str], str]] = None,
        geteuid: Optional[Callable[[], int]] = None,
    ):
        self.options = options
        self.runner = runner
        self.sleep = sleep or time.sleep
        self.resolve = resolve or socket.gethostbyname
        self.geteuid = geteuid or os.geteuid
        self.current_step: Optional[str] = None
        self.domain_resolves = False
        self.https_enabled = False

    @property
    def site_name(self) -> str:
        return f"loader-{self.options.domain}"

    @property
    def app_unit(self) -> str:
        return f"{self.site_name}.service"

    @property
    def worker_unit(self) -> str:
        return f"{self.site_name}-clicks.service"

    @property
    def venv_bin(self) -> str:
        return os.path.join(self.options.install_dir, ".venv", "bin")

    def steps(self) -> List[Tuple[str, Callable[[], None]]]:
        return [
            ("require_root", self.require_root),
            ("install_packages", self.install_packages),
            ("start_database", self.start_database),
            ("wait_for_database", self.wait_for_database),
            ("setup_database", self.setup_database),
            ("fetch_source", self.fetch_source),
            ("install_app", self.install_app),
            ("write_config", self.write_config),
            ("write_service_unit", self.write_service_unit),
            ("configure_nginx", self.configure_nginx),
            ("ensure_dns", self.ensure_dns),
            ("configure_firewall", self.configure_firewall),
            ("obtain_certificate", self.obtain_certificate),
            ("restart_services", self.restart_services),
        ]

    def run(self) -> None:
        for name, step in self.steps():
            self.current_step = name
            logger.info("Step: %s", name)
            try:
                step()
            except CommandError as e:
                raise InstallError(name, e.command_line, e.stderr.strip()) from e
            except (OSError, requests.RequestException, zipfile.BadZipFile) as e:
                raise InstallError(name, None, str(e)) from e

        scheme = "https" if self.https_enabled else "http"
        logger.info("Installation complete. Visit: %s://%s/", scheme, self.options.domain)

    # Steps

    def require_root(self) -> None:
        if self.geteuid() == 0:
            return
        if self.runner.dry_run:
            logger.warning("Not running as root; a real run would stop here")
            return
        raise InstallError("require_root", None, "must be run as root")

    def install_packages(self) -> None:
        env = {"DEBIAN_FRONTEND": "noninteractive"}
        self.runner.run(["apt-get", "update", "-y"], env=env)
        self.runner.run(["apt-get", "install", "-y", *PACKAGES], env=env)

    def start_database(self) -> None:
        units = self.runner.output(["systemctl", "list-unit-files", "--type=service"])
        unit = "mysql" if "mysql.service" in units and "mariadb.service" not in units else "mariadb"
        self.runner.run(["systemctl", "enable", "--now", unit], check=False)
        self.runner.run(["systemctl", "enable", "--now", "redis-server"], check=False)

    def wait_for_database(self) -> None:
        for _ in range(DB_WAIT_ATTEMPTS):
            if self.runner.succeeds(["mysql", "-uroot", "-e", "SELECT 1"]):
                return
            self.sleep(1)
        logger.warning("Database did not answer after %d attempts; continuing", DB_WAIT_ATTEMPTS)

    def setup_database(self) -> None:
        self.runner.run(["mysql", "-uroot"], input=render_database_sql(self.options))

    def fetch_source(self) -> None:
        opts = self.options
        self.runner.makedirs(opts.install_dir)

        if opts.source_path:
            self._sync(opts.source_path)
        elif opts.resolved_archive_url:
            try:
                self._fetch_archive(opts.resolved_archive_url)
            except (requests.RequestException, zipfile.BadZipFile, CommandError) as e:
                if not opts.git_url:
                    raise
                logger.warning("Archive download failed (%s); falling back to git clone", e)
                self._clone(opts.git_url)
        else:
            self._clone(opts.git_url)

        self.runner.run(["chown", "-R", f"{APP_USER}:{APP_USER}", opts.install_dir])

    def install_app(self) -> None:
        self.runner.run(["python3", "-m", "venv", os.path.join(self.options.install_dir, ".venv")])
        pip = os.path.join(self.venv_bin, "pip")
        self.runner.run([pip, "install", "--upgrade", "pip"])
        self.runner.run([pip, "install", f"{self.options.install_dir}[mysql]"])

    def write_config(self) -> None:
        path = os.path.join(self.options.install_dir, ".env")
        content = render_template(
            "env.j2",
            options=self.options,
            generated_at=datetime.now().isoformat(timespec="seconds"),
            secret_key=secrets.token_hex(32),
            api_signature=secrets.token_hex(16),
            database_url=database_url(self.options),
        )
        backup = self.runner.backup_file(path)
        if backup:
            logger.info("Existing config saved to %s", backup)
        self.runner.write_file(path, content, mode=0o600, owner=APP_USER)

    def write_service_unit(self) -> None:
        units = [
            (self.app_unit, "Short-link loader",
             f"{self.venv_bin}/uvicorn main:app --host 127.0.0.1 --port {self.options.app_port}"),
            (self.worker_unit, "Short-link click worker", f"{self.venv_bin}/loader-click-worker"),
        ]
        for unit, description, exec_start in units:
            content = render_template(
                "loader.service.j2", options=self.options, description=description, exec_start=exec_start,
            )
            self.runner.write_file(f"/etc/systemd/system/{unit}", content)

        self.runner.run(["systemctl", "daemon-reload"])
        self.runner.run(["systemctl", "enable", "--now", self.app_unit, self.worker_unit])

    def configure_nginx(self) -> None:
        available = f"/etc/nginx/sites-available/{self.site_name}"
        self.runner.write_file(available, render_template("nginx_site.conf.j2", options=self.options))
        self.runner.run(["ln", "-sfn", available, f"/etc/nginx/sites-enabled/{self.site_name}"])
        self.runner.run(["rm", "-f", "/etc/nginx/sites-enabled/default"])
        self.runner.run(["nginx", "-t"])
        self.runner.run(["systemctl", "enable", "--now", "nginx"])
        self.runner.run(["systemctl", "reload", "nginx"])

    def ensure_dns(self) -> None:
        try:
            address = self.resolve(self.options.domain)
        except OSError:
            self.domain_resolves = False
            logger.warning("%s does not resolve yet; certificate issuance may fail", self.options.domain)
            return
        self.domain_resolves = True
        logger.info("%s resolves to %s", self.options.domain, address)

    def configure_firewall(self) -> None:
        if not self.runner.which("ufw"):
            return
        if "Status: active" in self.runner.output(["ufw", "status"]):
            self.runner.run(["ufw", "allow", "Nginx Full"], check=False)

    def obtain_certificate(self) -> None:
        opts = self.options
        if not opts.letsencrypt:
            return

        if not self.runner.succeeds(["apt-get", "install", "-y", *CERTBOT_PACKAGES],
                                    env={"DEBIAN_FRONTEND": "noninteractive"}):
            logger.warning("Could not install %s", " ".join(CERTBOT_PACKAGES))

        issued = False
        if self.domain_resolves or self.runner.dry_run:
            issued = self.runner.succeeds([
                "certbot", "--nginx", "-d", opts.domain, "--non-interactive",
                "--agree-tos", "-m", opts.email, "--redirect",
            ])
            if not issued:
                logger.warning("certbot failed for %s", opts.domain)

        if issued:
            self.https_enabled = True
            return

        if opts.self_signed_fallback:
            self._install_self_signed()
        else:
            logger.warning("Continuing without HTTPS; re-run with --self-signed-fallback to enable it anyway")

    def restart_services(self) -> None:
        self.runner.run(["systemctl", "restart", self.app_unit, self.worker_unit])
        self.runner.run(["systemctl", "reload", "nginx"], check=False)

    # Helpers

    def _sync(self, source: str) -> None:
        self.runner.run(["rsync", "-a", "--delete", "--exclude", ".env", "--exclude", ".venv",
                         source.rstrip("/") + "/", self.options.install_dir + "/"])

    def _fetch_archive(self, url: str) -> None:
        archive = os.path.join(tempfile.gettempdir(), f"loader-{self.options.app_version}.zip")
        logger.info("Downloading %s", url)
        self.runner.download(url, archive)
        self._sync(self.runner.extract_zip(archive))

    def _clone(self, git_url: str) -> None:
        checkout = tempfile.mkdtemp(prefix="loader-git-") if not self.runner.dry_run else "/tmp/loader-git"
        self.runner.run(["git", "clone", "--depth", "1", git_url, checkout])
        self.runner.run(["git", "-C", checkout, "checkout", self.options.app_version], check=False)
        self._sync(checkout)

    def _install_self_signed(self) -> None:
        cert_dir = "/etc/ssl/loader"
        certificate = f"{cert_dir}/{self.options.domain}.crt"
        key = f"{cert_dir}/{self.options.domain}.key"

        self.runner.makedirs(cert_dir, mode=0o700)
        self.runner.run([
            "openssl", "req", "-x509", "-nodes", "-newkey", "rsa:2048", "-days", "365",
            "-keyout", key, "-out", certificate, "-subj", f"/CN={self.options.domain}",
        ])

        available = f"/etc/nginx/sites-available/{self.site_name}-ssl"
        content = render_template(
            "nginx_site_ssl.conf.j2", options=self.options, certificate=certificate, certificate_key=key,
        )
        self.runner.write_file(available, content)
        self.runner.run(["ln", "-sfn", available, f"/etc/nginx/sites-enabled/{self.site_name}-ssl"])

        if self.runner.succeeds(["nginx", "-t"]):
            self.runner.run(["systemctl", "reload", "nginx"])
            self.https_enabled = True
            logger.warning("Installed a self-signed certificate for %s", self.options.domain)
        else:
            logger.warning("nginx rejected the self-signed site; HTTPS is not enabled")
