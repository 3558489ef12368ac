"""ECR registry operations used by the image and cleanup stages."""

import base64
from dataclasses import dataclass
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from stackctl.clients.aws import error_code, handle_aws_error
from stackctl.core.exceptions import AWSError
from stackctl.core.logging import StructuredLogger
from stackctl.pipeline.models import OperationResult, Severity

logger = StructuredLogger(__name__)

MISSING_IMAGE_CODES = ("ImageNotFoundException", "RepositoryNotFoundException")


@dataclass(frozen=True)
class RegistryCredentials:
    """Temporary Docker credentials for an ECR registry."""

    username: str
    password: str
    endpoint: str


def image_uri(account_id: str, region: str, repository: str, tag: str) -> str:
    """Build the fully qualified ECR image URI."""
    return f"{account_id}.dkr.ecr.{region}.amazonaws.com/{repository}:{tag}"


class ContainerRegistry:
    """ECR operations needed by the deployment pipeline."""

    def __init__(self, client: Any):
        self._client = client

    @handle_aws_error
    def image_exists(self, repository: str, tag: str) -> bool:
        """Check whether ``repository:tag`` is already present in ECR."""
        try:
            self._client.describe_images(
                repositoryName=repository,
                imageIds=[{"imageTag": tag}],
            )
        except ClientError as e:
            if error_code(e) in MISSING_IMAGE_CODES:
                return False
            raise
        return True

    @handle_aws_error
    def credentials(self) -> RegistryCredentials:
        """Get a temporary authorization token for docker login."""
        response = self._client.get_authorization_token()
        data = response.get("authorizationData") or []
        if not data:
            raise AWSError("ECR returned no authorization data", service="ecr")

        token = base64.b64decode(data[0]["authorizationToken"]).decode()
        username, password = token.split(":", 1)
        return RegistryCredentials(
            username=username,
            password=password,
            endpoint=data[0]["proxyEndpoint"],
        )

    def delete_repository(self, repository: str, force: bool = True) -> OperationResult:
        """Delete a repository and, with ``force``, every image in it.

        An absent repository is reported as a warning.
        """
        try:
            self._client.delete_repository(repositoryName=repository, force=force)
        except ClientError as e:
            logger.debug("Repository deletion failed", repository=repository, code=error_code(e))
            return OperationResult(
                name=repository,
                severity=Severity.WARNING,
                message=f"Failed to delete ECR repository '{repository}'. It may not exist.",
            )
        except BotoCoreError as e:
            return OperationResult(
                name=repository,
                severity=Severity.WARNING,
                message=f"Failed to delete ECR repository '{repository}': {e}",
            )

        return OperationResult(name=repository, message=f"Deleted ECR repository '{repository}'")
