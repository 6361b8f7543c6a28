import pulumi
import pytest

import config


class RecordingMocks(pulumi.runtime.Mocks):
    """Echo inputs back as outputs and remember every registered resource."""

    def __init__(self):
        self.resources = []

    def new_resource(self, args: pulumi.runtime.MockResourceArgs):
        outputs = dict(args.inputs)
        kind = args.typ.split(":")[-1]
        if kind == "BucketV2":
            outputs.setdefault("bucket", args.name)
            outputs["arn"] = f"arn:aws:s3:::{args.name}"
        elif kind == "Role":
            outputs.setdefault("name", args.name)
            outputs["arn"] = f"arn:aws:iam::123456789012:role/{args.name}"
        elif kind == "Project":
            outputs["arn"] = f"arn:aws:codebuild:us-east-1:123456789012:project/{args.name}"
        self.resources.append(args)
        return [f"{args.name}_id", outputs]

    def call(self, args: pulumi.runtime.MockCallArgs):
        return {}

    def of_kind(self, kind):
        return [r for r in self.resources if r.typ.split(":")[-1] == kind]


@pytest.fixture
def mocks():
    recorder = RecordingMocks()
    pulumi.runtime.set_mocks(recorder, preview=False)
    return recorder


@pytest.fixture
def config_data():
    return {
        "prefix": "BuilderStack",
        "tags": {"ManagedBy": "pulumi"},
        "permissions": {"model": "scoped"},
        "projects": [
            {"name": "Build", "privileged": True, "cache": True, "artifacts": True},
            {"name": "Deploy", "privileged": True, "cache": True, "artifacts": True, "administrator": True},
        ],
    }


@pytest.fixture
def scoped_config(config_data):
    return config.parse_config(config_data)


@pytest.fixture
def broad_config(config_data):
    config_data["permissions"] = {"model": "broad", "approved": True}
    return config.parse_config(config_data)
