"""Post-deployment readiness polling."""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable

import httpx

from stackctl.clients.discovery import Discovery
from stackctl.config import ValidationConfig
from stackctl.core.exceptions import AWSError, ProbeTimeoutError
from stackctl.core.logging import StructuredLogger
from stackctl.core.output import OutputFormatter

logger = StructuredLogger(__name__)


def format_status(status: int | None) -> str:
    """Render a probe status; a transport failure shows as ``000``."""
    return "000" if status is None else str(status)


class ProbeOutcome(str, Enum):
    """Terminal state of a readiness probe."""

    SUCCESS = "success"
    TIMEOUT = "timeout"


@dataclass
class ReadinessProbe:
    """A bounded polling target. Only ``attempts`` changes while polling."""

    url: str
    expected_status: int = 200
    max_attempts: int = 30
    interval: float = 10.0
    timeout: float = 10.0
    attempts: int = 0

    @classmethod
    def for_load_balancer(
        cls,
        dns_name: str,
        config: ValidationConfig,
        max_attempts: int | None = None,
        interval: float | None = None,
    ) -> "ReadinessProbe":
        """Build the probe for a resolved load balancer DNS name."""
        return cls(
            url=f"{config.scheme}://{dns_name}{config.path}",
            expected_status=config.expected_status,
            max_attempts=max_attempts if max_attempts is not None else config.max_attempts,
            interval=interval if interval is not None else config.interval,
            timeout=config.timeout,
        )


class ReadinessPoller:
    """Blocking retry loop around single HTTP probes."""

    def __init__(
        self,
        output: OutputFormatter,
        client: httpx.Client | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.output = output
        self._client = client
        self._sleep = sleep
        self.last_status: int | None = None

    def poll(self, probe: ReadinessProbe) -> ProbeOutcome:
        """Probe until the expected status is returned or attempts run out."""
        if self._client is not None:
            return self._poll(self._client, probe)
        with httpx.Client() as client:
            return self._poll(client, probe)

    def _poll(self, client: httpx.Client, probe: ReadinessProbe) -> ProbeOutcome:
        while probe.attempts < probe.max_attempts:
            probe.attempts += 1
            status = self._probe_once(client, probe)
            self.last_status = status

            if status == probe.expected_status:
                logger.info("Probe succeeded", url=probe.url, attempts=probe.attempts)
                return ProbeOutcome.SUCCESS

            message = f"Attempt {probe.attempts}/{probe.max_attempts}: HTTP {format_status(status)}"
            if probe.attempts >= probe.max_attempts:
                self.output.print_warning(message)
                break

            self.output.print_warning(f"{message}; retry in {probe.interval:g}s")
            self._sleep(probe.interval)

        return ProbeOutcome.TIMEOUT

    def _probe_once(self, client: httpx.Client, probe: ReadinessProbe) -> int | None:
        try:
            response = client.get(probe.url, timeout=probe.timeout)
        except httpx.HTTPError as e:
            logger.debug("Probe request failed", url=probe.url, error=str(e))
            return None
        return response.status_code


def report_instances(discovery: Discovery, config: ValidationConfig, output: OutputFormatter) -> None:
    """Print DNS names of auxiliary instances. Missing ones only warn."""
    for lookup in config.instances:
        try:
            names = discovery.instance_dns_names(lookup.tag, dns=lookup.dns)
        except AWSError as e:
            output.print_warning(f"Lookup for {lookup.label} (tag {lookup.tag}) failed: {e.message}")
            continue

        if not names:
            output.print_warning(f"No {lookup.label} found (tag {lookup.tag})")
        else:
            output.print_note(f"{lookup.label} FQDN: {' '.join(names)}")


def run_validation(
    config: ValidationConfig,
    discovery: Discovery,
    poller: ReadinessPoller,
    output: OutputFormatter,
    max_attempts: int | None = None,
    interval: float | None = None,
) -> ReadinessProbe:
    """Resolve the load balancer and wait for it to serve the sign-in page.

    Raises:
        ResolutionError: if the load balancer has no DNS name; no probe is made
        ProbeTimeoutError: if the endpoint never returned the expected status
    """
    report_instances(discovery, config, output)

    dns_name = discovery.load_balancer_dns(config.load_balancer)
    probe = ReadinessProbe.for_load_balancer(dns_name, config, max_attempts, interval)

    output.print_note(
        f"Waiting for ALB endpoint ({config.scheme}://{dns_name}) "
        f"to return HTTP {probe.expected_status}..."
    )

    if poller.poll(probe) == ProbeOutcome.TIMEOUT:
        raise ProbeTimeoutError(
            f"Timed out after {probe.attempts} attempts waiting for HTTP {probe.expected_status} "
            f"(last response: HTTP {format_status(poller.last_status)})",
            attempts=probe.attempts,
        )

    output.print_note(f"RStudio ALB Endpoint: {config.scheme}://{dns_name}")
    output.print_success("Validation successful - RStudio is reachable.")
    return probe
