"""
Run the webhook with settings taken from the environment, e.g.

    DEPLOYMENT_NAMESPACE=shop REGISTRY_REGION=us-east-1 \
    COMPLIANCE_CHECKS=scan_on_push python examples/main.py
"""
from ecrtag import Manager, Settings, build_pipeline
from ecrtag.log import configure_logging


settings = Settings.from_env()
configure_logging(settings.logging_level)

manager = Manager(build_pipeline(settings), settings)
app = manager.app


if __name__ == "__main__":
    manager.start()
