import json
import pulumi
import pulumi_aws as aws
from typing import Any, Dict, Optional

import buildspec
import config
import grants

COMPONENT_TYPE = "codebuilder:index:CodeBuilderStack"

CODEBUILD_ASSUME_ROLE_POLICY = json.dumps({
    "Version": "2012-10-17",
    "Statement": [
        {
            "Effect": "Allow",
            "Principal": {"Service": "codebuild.amazonaws.com"},
            "Action": "sts:AssumeRole",
        }
    ],
})

# export names read by the build launcher
BUCKET_EXPORTS = {
    config.SOURCE_BUCKET: "SOURCE_BUCKET",
    config.ARTIFACT_BUCKET: "ARTIFACT_BUCKET",
    config.CACHE_BUCKET: "CACHE_BUCKET",
}

def stack_name(prefix: str = config.DEFAULT_PREFIX, stage: Optional[str] = None, branch: Optional[str] = None) -> str:
    stage = (stage or "").strip()
    branch = (branch or "").strip()
    if not stage and not branch:
        return prefix
    if not stage or not branch:
        raise ValueError(f"stage and branch must be set together (stage={stage!r}, branch={branch!r})")
    return f"{prefix}-{stage}-{branch}"

def logs_policy_document(project_name: str) -> str:
    log_group = f"/aws/codebuild/{project_name}"
    return json.dumps({
        "Version": "2012-10-17",
        "Statement": [
            {
                "Effect": "Allow",
                "Action": [
                    "logs:CreateLogGroup",
                    "logs:CreateLogStream",
                    "logs:PutLogEvents",
                ],
                "Resource": [
                    f"arn:aws:logs:*:*:log-group:{log_group}",
                    f"arn:aws:logs:*:*:log-group:{log_group}:*",
                ],
            }
        ],
    })

class CodeBuilderStack(pulumi.ComponentResource):
    """Shared source, artifact and cache buckets plus the CodeBuild projects that use them.

    All children are created in a single pass when the component is constructed and
    are parented to it, so the stack name groups the whole graph.
    """

    def __init__(self, cfg: config.Config, stage: Optional[str] = None, branch: Optional[str] = None,
                 opts: Optional[pulumi.ResourceOptions] = None):
        name = stack_name(cfg.prefix, stage, branch)
        super().__init__(COMPONENT_TYPE, name, None, opts)

        self.config = cfg
        self.stack_name = name
        self.resources: Dict[str, pulumi.CustomResource] = {}
        self.buckets: Dict[str, aws.s3.BucketV2] = {}
        self.roles: Dict[str, aws.iam.Role] = {}
        self.projects: Dict[str, aws.codebuild.Project] = {}
        self.grants = grants.plan_grants(cfg)
        self.outputs: Dict[str, Any] = {"STACK_NAME": self.stack_name}

        self.build()
        self.register_outputs(self.outputs)

    def generate_resource_name(self, base_name: str) -> str:
        return f"{self.stack_name}-{base_name}".lower()

    def _child_opts(self) -> pulumi.ResourceOptions:
        return pulumi.ResourceOptions(parent=self)

    def build(self):
        pulumi.log.info(f"Building '{self.stack_name}' with the '{self.config.permissions.model}' permission model")

        for name in config.BUCKETS:
            self.build_bucket(name)

        for project in self.config.projects:
            self.build_project(project)

        for grant in self.grants:
            self.apply_grant(grant)

        if self.config.permissions.model == config.BROAD:
            pulumi.log.warn(f"'{self.stack_name}' uses the approved 'broad' permission model: read/write on every bucket plus AdministratorAccess")
        for name in grants.administrator_projects(self.config):
            self.attach_administrator(name)

    def build_bucket(self, name: str) -> aws.s3.BucketV2:
        resource_name = self.generate_resource_name(name)
        bucket = aws.s3.BucketV2(
            resource_name,
            tags=self.config.tags,
            opts=self._child_opts(),
        )

        # KMS-managed server-side encryption
        aws.s3.BucketServerSideEncryptionConfigurationV2(
            f"{resource_name}-encryption",
            bucket=bucket.id,
            rules=[
                aws.s3.BucketServerSideEncryptionConfigurationV2RuleArgs(
                    apply_server_side_encryption_by_default=aws.s3.BucketServerSideEncryptionConfigurationV2RuleApplyServerSideEncryptionByDefaultArgs(
                        sse_algorithm="aws:kms",
                    ),
                )
            ],
            opts=self._child_opts(),
        )

        self.buckets[name] = bucket
        self.resources[name] = bucket
        self.outputs[BUCKET_EXPORTS[name]] = bucket.bucket
        pulumi.log.info(f"Created resource: {resource_name} (aws.s3.BucketV2)")
        return bucket

    def build_project(self, project: config.BuildProject) -> aws.codebuild.Project:
        resource_name = self.generate_resource_name(project.name)

        role = aws.iam.Role(
            f"{resource_name}-role",
            assume_role_policy=CODEBUILD_ASSUME_ROLE_POLICY,
            tags=self.config.tags,
            opts=self._child_opts(),
        )
        aws.iam.RolePolicy(
            f"{resource_name}-logs",
            role=role.id,
            policy=logs_policy_document(resource_name),
            opts=self._child_opts(),
        )

        if project.artifacts:
            artifacts = aws.codebuild.ProjectArtifactsArgs(
                type="S3",
                location=self.buckets[config.ARTIFACT_BUCKET].bucket,
                packaging="ZIP",
            )
        else:
            artifacts = aws.codebuild.ProjectArtifactsArgs(type="NO_ARTIFACTS")

        cache = None
        if project.cache:
            cache = aws.codebuild.ProjectCacheArgs(
                type="S3",
                location=self.buckets[config.CACHE_BUCKET].bucket,
            )

        codebuild_project = aws.codebuild.Project(
            resource_name,
            name=resource_name,
            service_role=role.arn,
            source=aws.codebuild.ProjectSourceArgs(
                type="NO_SOURCE",
                buildspec=buildspec.render_build_spec(),
            ),
            artifacts=artifacts,
            cache=cache,
            environment=aws.codebuild.ProjectEnvironmentArgs(
                type="LINUX_CONTAINER",
                compute_type=self.config.compute_type,
                image=self.config.build_image,
                privileged_mode=project.privileged,
            ),
            logs_config=aws.codebuild.ProjectLogsConfigArgs(
                cloudwatch_logs=aws.codebuild.ProjectLogsConfigCloudwatchLogsArgs(
                    status="ENABLED",
                ),
            ),
            tags=self.config.tags,
            opts=self._child_opts(),
        )

        self.roles[project.name] = role
        self.projects[project.name] = codebuild_project
        self.resources[project.name] = codebuild_project
        self.outputs[f"{project.name.upper()}_PROJECT_ARN"] = codebuild_project.arn
        pulumi.log.info(f"Created resource: {resource_name} (aws.codebuild.Project)")
        return codebuild_project

    def apply_grant(self, grant: grants.Grant) -> aws.iam.RolePolicy:
        bucket = self.buckets[grant.bucket]
        role = self.roles[grant.principal]
        resource_name = self.generate_resource_name(f"{grant.principal}-{grant.bucket}-{grant.access}")
        policy = aws.iam.RolePolicy(
            resource_name,
            role=role.id,
            policy=bucket.arn.apply(lambda arn: grants.policy_document(grant, arn)),
            opts=self._child_opts(),
        )
        pulumi.log.info(f"Granted {grant.access} on '{grant.bucket}' to '{grant.principal}'")
        return policy

    def attach_administrator(self, project_name: str) -> aws.iam.RolePolicyAttachment:
        resource_name = self.generate_resource_name(f"{project_name}-administrator")
        attachment = aws.iam.RolePolicyAttachment(
            resource_name,
            role=self.roles[project_name].name,
            policy_arn=grants.ADMINISTRATOR_POLICY_ARN,
            opts=self._child_opts(),
        )
        pulumi.log.warn(f"Attached AdministratorAccess to '{project_name}'")
        return attachment
