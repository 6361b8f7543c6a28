"""
This module defines the data structures for the CodeBuilder infrastructure program.
The dataclasses describe config.yaml and are filled by load_config / parse_config.
"""

import yaml
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

DEFAULT_PREFIX = "BuilderStack"
DEFAULT_BUILD_IMAGE = "aws/codebuild/standard:2.0"
DEFAULT_COMPUTE_TYPE = "BUILD_GENERAL1_SMALL"

SCOPED = "scoped"
BROAD = "broad"
PERMISSION_MODELS = (SCOPED, BROAD)

# logical names of the shared buckets
SOURCE_BUCKET = "Sources"
ARTIFACT_BUCKET = "Artifacts"
CACHE_BUCKET = "Cache"
BUCKETS = (SOURCE_BUCKET, ARTIFACT_BUCKET, CACHE_BUCKET)

@dataclass
class BuildProject:
    name: str
    # required for the docker runtime
    privileged: bool = True
    cache: bool = False
    artifacts: bool = False
    administrator: bool = False

@dataclass
class Permissions:
    model: str = SCOPED
    approved: bool = False

@dataclass
class Config:
    prefix: str
    projects: List[BuildProject]
    build_image: str = DEFAULT_BUILD_IMAGE
    compute_type: str = DEFAULT_COMPUTE_TYPE
    permissions: Permissions = field(default_factory=Permissions)
    tags: Optional[Dict[str, str]] = None


def parse_config(config_data: Dict[str, Any]) -> Config:
    """Validate raw configuration data and convert it into a Config."""
    if not isinstance(config_data, dict):
        raise ValueError("Configuration must be a mapping")

    required_keys = ["prefix", "projects"]
    for key in required_keys:
        if key not in config_data:
            raise ValueError(f"Missing required configuration key: {key}")

    prefix = str(config_data["prefix"] or "").strip() or DEFAULT_PREFIX

    raw_projects = config_data["projects"] or []
    if not isinstance(raw_projects, list):
        raise ValueError("'projects' must be a list of build projects")
    if not raw_projects:
        raise ValueError("At least one build project must be configured")

    projects: List[BuildProject] = []
    seen = set()
    for raw in raw_projects:
        if not isinstance(raw, dict):
            raise ValueError(f"Build project entries must be mappings, got {raw!r}")
        name = str(raw.get("name") or "").strip()
        if not name:
            raise ValueError("Every build project needs a name")
        if name in seen:
            raise ValueError(f"Duplicate build project name: {name}")
        seen.add(name)
        projects.append(BuildProject(
            name=name,
            privileged=bool(raw.get("privileged", True)),
            cache=bool(raw.get("cache", False)),
            artifacts=bool(raw.get("artifacts", False)),
            administrator=bool(raw.get("administrator", False)),
        ))

    raw_permissions = config_data.get("permissions") or {}
    if not isinstance(raw_permissions, dict):
        raise ValueError("'permissions' must be a mapping")
    permissions = Permissions(
        model=str(raw_permissions.get("model", SCOPED)).strip().lower(),
        approved=bool(raw_permissions.get("approved", False)),
    )
    if permissions.model not in PERMISSION_MODELS:
        raise ValueError(f"Unknown permission model '{permissions.model}', expected one of {PERMISSION_MODELS}")
    # AdministratorAccess on build roles is a policy decision, never a default
    if permissions.model == BROAD and not permissions.approved:
        raise ValueError("The 'broad' permission model grants AdministratorAccess and requires permissions.approved: true")

    tags = config_data.get("tags")
    if tags is not None:
        if not isinstance(tags, dict):
            raise ValueError("'tags' must be a mapping")
        tags = {str(k): str(v) for k, v in tags.items()}

    return Config(
        prefix=prefix,
        projects=projects,
        build_image=config_data.get("build_image") or DEFAULT_BUILD_IMAGE,
        compute_type=config_data.get("compute_type") or DEFAULT_COMPUTE_TYPE,
        permissions=permissions,
        tags=tags,
    )


def load_config(file_path: str) -> Config:
    """Load and validate YAML configuration from the given file path."""
    with open(file_path, "r") as file:
        config_data = yaml.safe_load(file)

    return parse_config(config_data)
