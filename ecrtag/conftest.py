import pytest

from ecrtag.config import Settings
from ecrtag.pipeline import AdmissionPipeline
from ecrtag.testing import NAMESPACE, FakeRegistry, FakeStore, repository


@pytest.fixture
def registry():
    return FakeRegistry(
        repositories={
            "test2-frontend": repository("test2-frontend"),
            "standalone": repository("standalone"),
        }
    )


@pytest.fixture
def store():
    return FakeStore(
        parameters={
            "/test2/frontend/ecr_tag": "bec0e8f",
        }
    )


@pytest.fixture
def settings():
    return Settings(target_namespace=NAMESPACE, resource_kind="Deployment")


@pytest.fixture
def pipeline(settings, registry, store):
    return AdmissionPipeline.from_settings(settings, registry, store)
