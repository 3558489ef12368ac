"""Stage actions and the default apply/destroy pipelines."""

from typing import TypeVar

from stackctl.clients.docker import DockerClient
from stackctl.clients.ecr import ContainerRegistry, image_uri
from stackctl.clients.secrets import SecretStore
from stackctl.clients.terraform import TerraformBundle
from stackctl.config import EnvironmentConfig, ImageConfig
from stackctl.core.exceptions import StageError
from stackctl.core.logging import StructuredLogger
from stackctl.pipeline.models import (
    SecretRef,
    Stage,
    StageContext,
    StageOperation,
    StageResult,
    StageStatus,
)

logger = StructuredLogger(__name__)

T = TypeVar("T")


def _require(adapter: T | None, name: str, stage: Stage) -> T:
    if adapter is None:
        raise StageError(f"Stage '{stage.name}' has no {name} client configured", stage=stage.name)
    return adapter


class TerraformAction:
    """Init then apply or destroy the bundle in the stage directory."""

    def __init__(self, operation: StageOperation):
        if operation not in (StageOperation.APPLY, StageOperation.DESTROY):
            raise ValueError(f"Unsupported terraform operation: {operation}")
        self.operation = operation

    def __call__(self, stage: Stage, context: StageContext) -> StageResult:
        if not stage.working_dir:
            raise StageError(f"Stage '{stage.name}' has no working directory", stage=stage.name)

        bundle = TerraformBundle(context.resolve(stage.working_dir))
        bundle.init()
        if self.operation == StageOperation.APPLY:
            bundle.apply()
        else:
            bundle.destroy()

        return StageResult(
            name=stage.name,
            status=StageStatus.SUCCEEDED,
            message=f"Terraform {self.operation.value} completed: {stage.working_dir}",
        )


class ImageBuildAction:
    """Build and push the RStudio image unless ECR already has the tag."""

    def __init__(
        self,
        image: ImageConfig,
        registry: ContainerRegistry | None,
        secrets: SecretStore | None,
        docker: DockerClient | None,
    ):
        self.image = image
        self.registry = registry
        self.secrets = secrets
        self.docker = docker

    def __call__(self, stage: Stage, context: StageContext) -> StageResult:
        registry = _require(self.registry, "ECR", stage)
        secrets = _require(self.secrets, "Secrets Manager", stage)
        docker = _require(self.docker, "Docker", stage)

        if not context.account_id:
            raise StageError("Failed to retrieve AWS Account ID", stage=stage.name)

        uri = image_uri(context.account_id, context.region, self.image.repository, self.image.tag)

        if registry.image_exists(self.image.repository, self.image.tag):
            return StageResult(
                name=stage.name,
                status=StageStatus.SKIPPED,
                message=f"Image already exists in ECR: {uri}",
            )

        logger.info("Image not found in ECR, building", image=uri)

        password = secrets.get_secret(
            SecretRef(
                name="rstudio-password",
                secret_id=self.image.password_secret,
                field=self.image.password_field,
            )
        )
        if password is None:
            raise StageError("Failed to retrieve RStudio password", stage=stage.name)

        credentials = registry.credentials()
        docker.login(credentials.username, credentials.password, credentials.endpoint)

        build_dir = context.resolve(stage.working_dir or ".")
        if not build_dir.is_dir():
            raise StageError(f"Directory not found: {build_dir}", stage=stage.name)

        docker.build(
            uri,
            build_dir,
            dockerfile=self.image.dockerfile,
            secret_build_args={self.image.build_arg: password},
        )
        docker.push(uri)

        return StageResult(
            name=stage.name,
            status=StageStatus.SUCCEEDED,
            message=f"Image successfully built and pushed to ECR: {uri}",
        )


class SecretCleanupAction:
    """Permanently delete the configured secrets; failures are warnings."""

    def __init__(self, secrets: SecretStore | None, secret_ids: list[str]):
        self.secrets = secrets
        self.secret_ids = secret_ids

    def __call__(self, stage: Stage, context: StageContext) -> StageResult:
        secrets = _require(self.secrets, "Secrets Manager", stage)
        outcomes = [secrets.delete_secret(secret_id) for secret_id in self.secret_ids]
        deleted = sum(1 for o in outcomes if o.ok)
        return StageResult(
            name=stage.name,
            status=StageStatus.SUCCEEDED,
            message=f"Deleted {deleted}/{len(outcomes)} secrets",
            warnings=[o for o in outcomes if not o.ok],
        )


class RepositoryCleanupAction:
    """Force-delete the ECR repository; absence is a warning."""

    def __init__(self, registry: ContainerRegistry | None, repository: str):
        self.registry = registry
        self.repository = repository

    def __call__(self, stage: Stage, context: StageContext) -> StageResult:
        registry = _require(self.registry, "ECR", stage)
        outcome = registry.delete_repository(self.repository, force=True)
        return StageResult(
            name=stage.name,
            status=StageStatus.SUCCEEDED,
            message=outcome.message if outcome.ok else f"Repository '{self.repository}' not removed",
            warnings=[] if outcome.ok else [outcome],
        )


def build_apply_pipeline(
    env: EnvironmentConfig,
    registry: ContainerRegistry | None = None,
    secrets: SecretStore | None = None,
    docker: DockerClient | None = None,
) -> list[Stage]:
    """Stages that bring the environment up, in dependency order.

    Adapters may be omitted when the stages are only listed, not run.
    """
    dirs = env.stages
    return [
        Stage(
            name="directory",
            operation=StageOperation.APPLY,
            action=TerraformAction(StageOperation.APPLY),
            working_dir=dirs.directory,
            description="Build Active Directory domain controller",
        ),
        Stage(
            name="servers",
            operation=StageOperation.APPLY,
            action=TerraformAction(StageOperation.APPLY),
            working_dir=dirs.servers,
            depends_on=["directory"],
            description="Build domain-joined EC2 servers",
        ),
        Stage(
            name="image",
            operation=StageOperation.BUILD,
            action=ImageBuildAction(env.image, registry, secrets, docker),
            working_dir=dirs.image,
            depends_on=["servers"],
            description="Build RStudio image and push to ECR",
        ),
        Stage(
            name="cluster",
            operation=StageOperation.APPLY,
            action=TerraformAction(StageOperation.APPLY),
            working_dir=dirs.cluster,
            depends_on=["image"],
            description="Build ECS cluster",
        ),
    ]


def build_destroy_pipeline(
    env: EnvironmentConfig,
    registry: ContainerRegistry | None = None,
    secrets: SecretStore | None = None,
) -> list[Stage]:
    """Stages that tear the environment down, in dependency order."""
    dirs = env.stages
    return [
        Stage(
            name="cluster",
            operation=StageOperation.DESTROY,
            action=TerraformAction(StageOperation.DESTROY),
            working_dir=dirs.cluster,
            description="Destroy ECS cluster",
        ),
        Stage(
            name="servers",
            operation=StageOperation.DESTROY,
            action=TerraformAction(StageOperation.DESTROY),
            working_dir=dirs.servers,
            depends_on=["cluster"],
            description="Destroy EC2 server instances",
        ),
        Stage(
            name="secrets",
            operation=StageOperation.CLEANUP,
            action=SecretCleanupAction(secrets, env.secrets),
            depends_on=["servers"],
            mandatory=False,
            description="Delete AD and RStudio secrets",
        ),
        Stage(
            name="registry",
            operation=StageOperation.CLEANUP,
            action=RepositoryCleanupAction(registry, env.image.repository),
            depends_on=["cluster"],
            mandatory=False,
            description="Delete ECR repository",
        ),
        Stage(
            name="directory",
            operation=StageOperation.DESTROY,
            action=TerraformAction(StageOperation.DESTROY),
            working_dir=dirs.directory,
            depends_on=["servers"],
            description="Destroy Active Directory domain controller",
        ),
    ]
