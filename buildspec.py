import copy
import json
from typing import Any, Dict, Optional

BUILDSPEC_VERSION = "0.2"
DOCKER_RUNTIME_VERSION = "18"
BUILD_COMMANDS = ["make ci"]

# install the docker runtime, then run the build
_BUILD_SPEC: Dict[str, Any] = {
    "version": BUILDSPEC_VERSION,
    "phases": {
        "install": {
            "runtime-versions": {
                "docker": DOCKER_RUNTIME_VERSION,
            },
        },
        "build": {
            "commands": BUILD_COMMANDS,
        },
    },
}


def build_spec() -> Dict[str, Any]:
    """Return a fresh copy of the build spec shared by every project."""
    return copy.deepcopy(_BUILD_SPEC)


def render_build_spec(spec: Optional[Dict[str, Any]] = None) -> str:
    return json.dumps(spec if spec is not None else build_spec(), indent=2)
