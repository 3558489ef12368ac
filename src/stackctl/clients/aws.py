"""AWS client factory using boto3."""

from functools import wraps
from typing import Any

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from stackctl.config import AWSConfig
from stackctl.core.exceptions import AWSError, AuthenticationError
from stackctl.core.logging import StructuredLogger

logger = StructuredLogger(__name__)


class AWSClientFactory:
    """Factory for creating boto3 clients with consistent configuration."""

    def __init__(self, config: AWSConfig):
        self._config = config
        self._session: boto3.Session | None = None
        self._account_id: str | None = None

    @property
    def session(self) -> boto3.Session:
        """Get or create boto3 session."""
        if self._session is None:
            profile = self._config.get_profile()
            region = self._config.get_region()

            session_kwargs: dict[str, Any] = {"region_name": region}
            if profile:
                session_kwargs["profile_name"] = profile

            if self._config.access_key_id and self._config.secret_access_key:
                session_kwargs["aws_access_key_id"] = self._config.access_key_id
                session_kwargs["aws_secret_access_key"] = self._config.secret_access_key
                if self._config.session_token:
                    session_kwargs["aws_session_token"] = self._config.session_token

            try:
                self._session = boto3.Session(**session_kwargs)
                logger.debug("Created AWS session", profile=profile, region=region)
            except BotoCoreError as e:
                raise AuthenticationError(f"Failed to create AWS session: {e}")

        return self._session

    @property
    def region(self) -> str:
        """Get the configured region."""
        return self.session.region_name or self._config.get_region()

    @property
    def account_id(self) -> str:
        """Get the AWS account ID of the calling identity."""
        if self._account_id is None:
            try:
                identity = self.sts.get_caller_identity()
            except (ClientError, BotoCoreError) as e:
                raise AuthenticationError(f"Failed to retrieve AWS account ID: {e}")
            account = identity.get("Account")
            if not account:
                raise AuthenticationError("Failed to retrieve AWS account ID")
            self._account_id = account
        return self._account_id

    def client(self, service_name: str, **kwargs: Any) -> Any:
        """Create a boto3 client for a service.

        Args:
            service_name: AWS service name (e.g., 'ecr', 'ec2', 'elbv2')
            **kwargs: Additional client configuration

        Returns:
            boto3 client instance
        """
        config = BotoConfig(
            retries={"max_attempts": 3, "mode": "adaptive"},
            connect_timeout=10,
            read_timeout=30,
        )

        client_kwargs: dict[str, Any] = {"config": config, **kwargs}

        if self._config.endpoint_url:
            client_kwargs["endpoint_url"] = self._config.endpoint_url

        try:
            return self.session.client(service_name, **client_kwargs)
        except BotoCoreError as e:
            raise AWSError(
                f"Failed to create {service_name} client: {e}",
                service=service_name,
            )

    @property
    def sts(self) -> Any:
        """Get STS client."""
        return self.client("sts")

    @property
    def ecr(self) -> Any:
        """Get ECR client."""
        return self.client("ecr")

    @property
    def secretsmanager(self) -> Any:
        """Get Secrets Manager client."""
        return self.client("secretsmanager")

    @property
    def ec2(self) -> Any:
        """Get EC2 client."""
        return self.client("ec2")

    @property
    def elbv2(self) -> Any:
        """Get Elastic Load Balancing v2 client."""
        return self.client("elbv2")


def error_code(error: ClientError) -> str:
    """Extract the AWS error code from a ClientError."""
    return error.response.get("Error", {}).get("Code", "Unknown")


def handle_aws_error(func: Any) -> Any:
    """Decorator to translate botocore errors into AWSError."""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except ClientError as e:
            code = error_code(e)
            error_message = e.response.get("Error", {}).get("Message", str(e))
            raise AWSError(
                f"{code}: {error_message}",
                operation=getattr(e, "operation_name", None),
                code=code,
            )
        except BotoCoreError as e:
            raise AWSError(str(e))

    return wrapper


def paginate(client: Any, method: str, key: str, **kwargs: Any) -> list[Any]:
    """Helper to paginate through AWS API results.

    Args:
        client: boto3 client
        method: Method name to call
        key: Key in response containing items
        **kwargs: Arguments to pass to the method

    Returns:
        List of all items across all pages
    """
    paginator = client.get_paginator(method)
    items = []

    for page in paginator.paginate(**kwargs):
        items.extend(page.get(key, []))

    return items
