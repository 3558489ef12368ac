"""Secrets Manager access for build-time credentials and teardown."""

import json
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from stackctl.clients.aws import error_code, handle_aws_error
from stackctl.core.exceptions import AWSError
from stackctl.core.logging import StructuredLogger
from stackctl.pipeline.models import OperationResult, SecretRef, Severity

logger = StructuredLogger(__name__)

NOT_FOUND_CODES = ("ResourceNotFoundException",)


class SecretStore:
    """Thin wrapper over the Secrets Manager client.

    Values are returned to the caller and never kept on the instance.
    """

    def __init__(self, client: Any):
        self._client = client

    def get_secret(self, ref: SecretRef) -> str | None:
        """Fetch a secret value, or None when it does not exist.

        When ``ref.field`` is set the secret string is parsed as JSON and
        that field is returned. A missing field or a JSON ``null`` counts as
        not found.
        """
        raw = self._get_secret_string(ref.secret_id)
        if raw is None:
            return None

        if ref.field is None:
            return raw or None

        try:
            payload = json.loads(raw)
        except json.JSONDecodeError:
            raise AWSError(
                f"Secret '{ref.secret_id}' is not valid JSON",
                service="secretsmanager",
            )

        if not isinstance(payload, dict):
            return None

        value = payload.get(ref.field)
        if value is None or value == "" or value == "null":
            return None
        return str(value)

    @handle_aws_error
    def _get_secret_string(self, secret_id: str) -> str | None:
        try:
            response = self._client.get_secret_value(SecretId=secret_id)
        except ClientError as e:
            if error_code(e) in NOT_FOUND_CODES:
                logger.debug("Secret not found", secret=secret_id)
                return None
            raise
        return response.get("SecretString")

    def delete_secret(self, secret_id: str) -> OperationResult:
        """Delete a secret immediately, without a recovery window.

        Failures are reported as warnings since a previous partial teardown
        may already have removed the secret.
        """
        try:
            self._client.delete_secret(
                SecretId=secret_id,
                ForceDeleteWithoutRecovery=True,
            )
        except ClientError as e:
            logger.debug("Secret deletion failed", secret=secret_id, code=error_code(e))
            return OperationResult(
                name=secret_id,
                severity=Severity.WARNING,
                message=f"Failed to delete secret '{secret_id}'. It may not exist.",
            )
        except BotoCoreError as e:
            return OperationResult(
                name=secret_id,
                severity=Severity.WARNING,
                message=f"Failed to delete secret '{secret_id}': {e}",
            )

        return OperationResult(name=secret_id, message=f"Deleted secret '{secret_id}'")
