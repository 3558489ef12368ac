"""EC2 and ELBv2 lookups used during validation."""

from typing import Any

from botocore.exceptions import ClientError

from stackctl.clients.aws import error_code, handle_aws_error, paginate
from stackctl.core.exceptions import ResolutionError

DNS_ATTRIBUTES = {
    "public": "PublicDnsName",
    "private": "PrivateDnsName",
}


class Discovery:
    """Resolve deployed resources to DNS names."""

    def __init__(self, ec2_client: Any, elbv2_client: Any):
        self._ec2 = ec2_client
        self._elbv2 = elbv2_client

    @handle_aws_error
    def instance_dns_names(self, name_tag: str, dns: str = "private") -> list[str]:
        """Return the DNS names of instances whose Name tag matches."""
        attribute = DNS_ATTRIBUTES[dns]
        reservations = paginate(
            self._ec2,
            "describe_instances",
            "Reservations",
            Filters=[{"Name": "tag:Name", "Values": [name_tag]}],
        )
        names = []
        for reservation in reservations:
            for instance in reservation.get("Instances", []):
                value = instance.get(attribute)
                if value:
                    names.append(value)
        return names

    @handle_aws_error
    def load_balancer_dns(self, name: str) -> str:
        """Resolve a load balancer name to its DNS name.

        Raises:
            ResolutionError: if the load balancer does not exist or has no DNS name
        """
        try:
            response = self._elbv2.describe_load_balancers(Names=[name])
        except ClientError as e:
            raise ResolutionError(
                f"Failed to retrieve DNS name for load balancer '{name}'",
                details={"code": error_code(e)},
            )

        balancers = response.get("LoadBalancers") or []
        dns_name = balancers[0].get("DNSName") if balancers else None
        if not dns_name or dns_name == "None":
            raise ResolutionError(f"Failed to retrieve DNS name for load balancer '{name}'")
        return dns_name
