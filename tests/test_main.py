"""Tests for the program entry point: config loading, exports and failure logging."""

import importlib.util
import os

import pulumi
import pytest

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


@pytest.fixture
def program(monkeypatch, mocks):
    monkeypatch.chdir(ROOT)
    spec = importlib.util.spec_from_file_location("codebuilder_main", os.path.join(ROOT, "__main__.py"))
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def logged(monkeypatch):
    messages = {"error": [], "warn": []}
    monkeypatch.setattr(pulumi.log, "error", lambda msg, *args, **kwargs: messages["error"].append(msg))
    monkeypatch.setattr(pulumi.log, "warn", lambda msg, *args, **kwargs: messages["warn"].append(msg))
    return messages


def run(main):
    @pulumi.runtime.test
    def wrapped():
        main()

    wrapped()


def test_main_exports_stack_outputs(program, monkeypatch):
    exported = {}
    monkeypatch.setattr(pulumi, "export", lambda name, value: exported.setdefault(name, value))

    run(program.main)

    assert sorted(exported) == [
        "ARTIFACT_BUCKET",
        "BUILD_PROJECT_ARN",
        "CACHE_BUCKET",
        "DEPLOY_PROJECT_ARN",
        "SOURCE_BUCKET",
        "STACK_NAME",
    ]
    assert exported["STACK_NAME"] == "BuilderStack"


def test_main_logs_and_reraises_build_failure(program, monkeypatch, logged):
    def failing_stack(*args, **kwargs):
        raise ValueError("stage and branch must be set together")

    monkeypatch.setattr(program, "CodeBuilderStack", failing_stack)

    with pytest.raises(ValueError, match="stage and branch"):
        program.main()

    assert logged["error"] == ["Failed to build CodeBuilderStack: stage and branch must be set together"]


def test_main_continues_after_export_failure(program, monkeypatch, logged):
    attempted = []

    def failing_export(name, value):
        attempted.append(name)
        raise RuntimeError("engine unavailable")

    monkeypatch.setattr(pulumi, "export", failing_export)

    run(program.main)

    export_warnings = [m for m in logged["warn"] if m.startswith("Failed to export output")]
    assert len(attempted) == 6
    assert len(export_warnings) == 6
    assert "Failed to export output 'STACK_NAME': engine unavailable" in export_warnings
    assert logged["error"] == []
