"""
Permission grants between build project roles and the shared buckets.

Grants are planned from configuration alone so the same config always yields the
same list, then rendered into one inline IAM policy per grant by the stack.
"""

import json
from dataclasses import dataclass
from typing import List

import config

READ = "read"
READ_WRITE = "read_write"

READ_ACTIONS = ["s3:GetObject*", "s3:GetBucket*", "s3:List*"]
WRITE_ACTIONS = ["s3:DeleteObject*", "s3:PutObject*", "s3:Abort*"]

ADMINISTRATOR_POLICY_ARN = "arn:aws:iam::aws:policy/AdministratorAccess"

@dataclass(frozen=True)
class Grant:
    principal: str
    bucket: str
    access: str

    @property
    def actions(self) -> List[str]:
        if self.access == READ_WRITE:
            return READ_ACTIONS + WRITE_ACTIONS
        return list(READ_ACTIONS)


def plan_grants(cfg: config.Config) -> List[Grant]:
    grants: List[Grant] = []
    broad = cfg.permissions.model == config.BROAD
    for project in cfg.projects:
        if broad:
            for bucket in config.BUCKETS:
                grants.append(Grant(project.name, bucket, READ_WRITE))
            continue

        grants.append(Grant(project.name, config.SOURCE_BUCKET, READ))
        if project.artifacts:
            grants.append(Grant(project.name, config.ARTIFACT_BUCKET, READ_WRITE))
        if project.cache:
            grants.append(Grant(project.name, config.CACHE_BUCKET, READ_WRITE))
    return grants


def administrator_projects(cfg: config.Config) -> List[str]:
    if cfg.permissions.model != config.BROAD:
        return []
    return [project.name for project in cfg.projects if project.administrator]


def policy_document(grant: Grant, bucket_arn: str) -> str:
    """Render the inline IAM policy for a single grant."""
    return json.dumps({
        "Version": "2012-10-17",
        "Statement": [
            {
                "Effect": "Allow",
                "Action": grant.actions,
                "Resource": [bucket_arn, f"{bucket_arn}/*"],
            }
        ],
    })
