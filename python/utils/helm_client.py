"""
Helm client for OCI registry operations.

This module wraps the helm binary for the two registry operations the
migration needs: `helm registry login` to authenticate a registry and
`helm push` to upload a packaged chart to an oci:// reference.
"""

import logging
import subprocess
from typing import List, Optional

from utils.chart_models import RegistryEndpoint, RegistrySession
from utils.error_utils import create_registry_auth_error
from utils.registry_base import Authenticator, ChartPusher


class HelmCommandError(RuntimeError):
    """Raised when a helm command exits non-zero, times out or cannot be started.

    The message carries helm's stderr verbatim.
    """

    def __init__(self, message: str, stderr: str = ""):
        self.stderr = stderr
        super().__init__(message)


class HelmClient(Authenticator, ChartPusher):
    """Standardized helm client for registry operations"""

    def __init__(self, helm_binary: str = "helm", timeout: int = 300):
        """Initialize HelmClient.

        Args:
            helm_binary: Path or name of the helm executable
            timeout: Timeout in seconds for each helm invocation
        """
        self.helm_binary = helm_binary
        self.timeout = timeout

    @staticmethod
    def _redact_command_for_logging(cmd: List[str]) -> List[str]:
        """Return a copy of the command with any credentials redacted."""
        redacted = list(cmd)
        secret_flags = ("--password", "--username")

        for i, token in enumerate(redacted):
            if token in secret_flags and i + 1 < len(redacted):
                redacted[i + 1] = "****"

        return redacted

    def run_helm_command(self, args: List[str], input_text: Optional[str] = None) -> str:
        """Run a helm command and return its stdout.

        Raises:
            HelmCommandError: on a non-zero exit, a timeout or a missing binary
        """
        cmd = [self.helm_binary] + args
        log_cmd = " ".join(self._redact_command_for_logging(cmd))
        logging.debug(f"Running: {log_cmd}")

        try:
            result = subprocess.run(
                cmd,
                input=input_text,
                capture_output=True,
                text=True,
                check=True,
                timeout=self.timeout,
            )
            return result.stdout
        except subprocess.TimeoutExpired:
            raise HelmCommandError(f"helm command timed out after {self.timeout}s: {log_cmd}")
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or "").strip()
            raise HelmCommandError(
                f"helm exited with status {e.returncode}: {stderr or '(no output)'}", stderr=stderr
            )
        except FileNotFoundError:
            raise HelmCommandError(f"helm binary not found: {self.helm_binary}")

    def authenticate(self, endpoint: RegistryEndpoint) -> RegistrySession:
        """Log in to a registry with `helm registry login`.

        The password is written to helm's stdin so it never shows up in the
        process list. Endpoints without a username get an anonymous session.

        Raises:
            AuthError: if the login fails
        """
        if not endpoint.has_credentials:
            logging.warning(f"No username configured for {endpoint.host}, using anonymous access")
            return RegistrySession(endpoint=endpoint, anonymous=True)

        args = ["registry", "login", "--username", endpoint.username, "--password-stdin"]
        if not endpoint.tls_verify:
            args.append("--insecure")
        args.append(endpoint.host)

        logging.info(f"Logging in to registry: {endpoint.host}")
        try:
            self.run_helm_command(args, input_text=endpoint.password)
        except HelmCommandError as e:
            logging.error(f"Failed to authenticate with registry: {endpoint.host}")
            raise create_registry_auth_error(endpoint.host, e, stderr=e.stderr or str(e))

        logging.info(f"Authenticated with {endpoint.host}")
        return RegistrySession(endpoint=endpoint)

    def push(self, chart_path: str, destination_ref: str, session: RegistrySession) -> None:
        """Push a packaged chart with `helm push <chart> oci://...`.

        Raises:
            HelmCommandError: if helm push fails
        """
        args = ["push", chart_path, destination_ref]
        if not session.endpoint.tls_verify:
            args.append("--insecure-skip-tls-verify")

        output = self.run_helm_command(args)
        logging.debug(f"helm push output: {output.strip()}")
