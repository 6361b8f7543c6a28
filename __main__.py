import pulumi
from awsclassic import CodeBuilderStack
from config import load_config

def main():
    # Load YAML configuration.
    config_data = load_config("config.yaml")

    # stage and branch come from the stack configuration, e.g. `pulumi config set stage dev`
    stack_config = pulumi.Config()
    stage = stack_config.get("stage")
    branch = stack_config.get("branch")

    try:
        stack = CodeBuilderStack(config_data, stage=stage, branch=branch)
    except Exception as e:
        pulumi.log.error(f"Failed to build CodeBuilderStack: {e}")
        raise

    for name, value in stack.outputs.items():
        try:
            pulumi.export(name, value)
        except Exception as e:
            pulumi.log.warn(f"Failed to export output '{name}': {e}")

if __name__ == "__main__":
    main()
