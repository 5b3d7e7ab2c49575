import base64
import json

import pytest

from ecrtag.batch import CancelScope
from ecrtag.config import Settings
from ecrtag.pipeline import AdmissionPipeline
from ecrtag.testing import (
    HEADERS,
    REGISTRY,
    FakeRegistry,
    FakeStore,
    admission_review,
    body,
    deployment,
    pod,
    repository,
)

UID = "0df28fbd-5f5f-11e8-bc74-36e6bb280816"
IMAGE = f"{REGISTRY}/test2-frontend:notlatest"


def get_patch(patch: str):
    decoded = base64.b64decode(patch).decode()
    return json.loads(decoded)


def run(pipeline, review, headers=HEADERS, scope=None):
    return pipeline.review(body(review), headers, scope)["response"]


def test_allows_with_resolved_tag(pipeline, registry, store):
    response = run(pipeline, admission_review(deployment(IMAGE)))
    assert response["uid"] == UID
    assert response["allowed"] is True
    assert response["status"]["code"] == 200
    assert response["patchType"] == "JSONPatch"
    assert get_patch(response["patch"]) == [{
        "op": "replace",
        "path": "/spec/template/spec/containers/0/image",
        "value": f"{REGISTRY}/test2-frontend:bec0e8f",
    }]
    assert registry.calls == ["test2-frontend"]
    assert store.calls == ["/test2/frontend/ecr_tag"]


def test_pod_patch_path(registry, store):
    settings = Settings(target_namespace="shop", resource_kind="Pod")
    pipeline = AdmissionPipeline.from_settings(settings, registry, store)
    response = run(pipeline, admission_review(pod(IMAGE), kind="Pod", group=""))
    assert get_patch(response["patch"])[0]["path"] == "/spec/containers/0/image"


def test_patch_targets_first_container(pipeline):
    review = admission_review(deployment("nginx:1.7.9", IMAGE))
    response = run(pipeline, review)
    assert response["allowed"] is True
    assert get_patch(response["patch"])[0]["path"] == "/spec/template/spec/containers/0/image"


@pytest.mark.parametrize("api_version", ["admission.k8s.io/v1", "admission.k8s.io/v1beta1"])
def test_answers_in_request_version(pipeline, api_version):
    review = admission_review(deployment(IMAGE), api_version=api_version)
    assert pipeline.review(body(review), HEADERS)["apiVersion"] == api_version


@pytest.mark.parametrize("images", [
    ("quay.io/foo/bar:1.0",),
    ("nginx:1.7.9", "busybox"),
])
def test_denies_without_ecr_images(pipeline, registry, images):
    response = run(pipeline, admission_review(deployment(*images)))
    assert response["uid"] == UID
    assert response["allowed"] is False
    assert response["status"]["code"] == 406
    assert "no ecr images found" in response["status"]["message"]
    assert registry.calls == []


def test_denies_many_images(pipeline, registry):
    other = f"{REGISTRY}/standalone:1"
    response = run(pipeline, admission_review(deployment(IMAGE, other)))
    assert response["allowed"] is False
    assert response["status"]["code"] == 406
    assert "only 1 ecr image is supported" in response["status"]["message"]
    assert registry.calls == []


@pytest.mark.parametrize("namespace", ["kube-system", "monitoring"])
def test_bypassed_namespaces(pipeline, registry, namespace):
    review = admission_review(deployment("quay.io/foo/bar:1.0", IMAGE, namespace=namespace))
    response = run(pipeline, review)
    assert response["uid"] == UID
    assert response["allowed"] is True
    assert "patch" not in response
    assert registry.calls == []


def test_critical_namespace_wins_over_target(registry, store):
    settings = Settings(target_namespace="kube-system")
    pipeline = AdmissionPipeline.from_settings(settings, registry, store)
    response = run(pipeline, admission_review(deployment(IMAGE, namespace="kube-system")))
    assert response["allowed"] is True
    assert "patch" not in response


def test_denies_unknown_repository(pipeline, store):
    image = f"{REGISTRY}/test-frontend:notlatest"
    response = run(pipeline, admission_review(deployment(image)))
    assert response["allowed"] is False
    assert response["status"]["code"] == 406
    assert "no repositories named" in response["status"]["message"]
    assert store.calls == []


def test_denies_non_compliant_repository(store):
    registry = FakeRegistry(repositories={"test2-frontend": repository("test2-frontend", scan_on_push=False)})
    settings = Settings(target_namespace="shop", compliance_checks=("scan_on_push",))
    pipeline = AdmissionPipeline.from_settings(settings, registry, store)
    response = run(pipeline, admission_review(deployment(IMAGE)))
    assert response["allowed"] is False
    assert response["status"]["code"] == 406
    assert "scan on push" in response["status"]["message"]
    assert store.calls == []


def test_denies_registry_failure(store):
    registry = FakeRegistry(errors={"test2-frontend": "RequestTimeout: connection reset"})
    pipeline = AdmissionPipeline.from_settings(Settings(target_namespace="shop"), registry, store)
    response = run(pipeline, admission_review(deployment(IMAGE)))
    assert response["status"]["code"] == 406
    assert response["status"]["message"] == "RequestTimeout: connection reset"


def test_malformed_repository_name(pipeline, store):
    response = run(pipeline, admission_review(deployment(f"{REGISTRY}/standalone:1")))
    assert response["allowed"] is False
    assert response["status"]["code"] == 407
    assert "naming convention" in response["status"]["message"]
    assert store.calls == []


def test_missing_parameter(registry):
    pipeline = AdmissionPipeline.from_settings(Settings(target_namespace="shop"), registry, FakeStore())
    response = run(pipeline, admission_review(deployment(IMAGE)))
    assert response["uid"] == UID
    assert response["allowed"] is False
    assert response["status"]["code"] == 407
    assert "/test2/frontend/ecr_tag" in response["status"]["message"]


def test_cancelled_request_is_denied(pipeline, registry):
    scope = CancelScope()
    scope.cancel()
    response = run(pipeline, admission_review(deployment(IMAGE)), scope=scope)
    assert response["uid"] == UID
    assert response["allowed"] is False
    assert response["status"]["code"] == 406
    assert registry.calls == []


def test_missing_content_type(pipeline):
    response = run(pipeline, admission_review(deployment(IMAGE)), headers={})
    assert "uid" not in response
    assert response["allowed"] is False
    assert response["status"]["status"] == "Failure"
    assert response["status"]["code"] == 400


def test_malformed_body_without_uid(pipeline):
    review = admission_review(deployment(IMAGE))
    del review["request"]["uid"]
    response = run(pipeline, review)
    assert "uid" not in response
    assert response["allowed"] is False
    assert response["status"]["status"] == "Failure"
    assert "patch" not in response


def test_unexpected_resource(pipeline):
    response = run(pipeline, admission_review(pod(IMAGE), kind="Pod", group=""))
    assert response["uid"] == UID
    assert response["allowed"] is False
    assert response["status"]["code"] == 400


def test_malformed_object_keeps_uid(pipeline):
    obj = deployment(IMAGE)
    del obj["spec"]["template"]["spec"]["containers"][0]["name"]
    response = run(pipeline, admission_review(obj))
    assert response["uid"] == UID
    assert response["allowed"] is False
    assert response["status"]["code"] == 400


@pytest.mark.parametrize("obj", [None, {}])
def test_missing_object_keeps_uid(pipeline, obj):
    review = admission_review(deployment(IMAGE))
    review["request"]["object"] = obj
    response = run(pipeline, review)
    assert response["uid"] == UID
    assert response["allowed"] is False
    assert response["status"]["code"] == 400
    assert "did not include object" in response["status"]["message"]


class BrokenRegistry(FakeRegistry):

    def describe_repository(self, name):
        raise RuntimeError("registry client misconfigured")


class BrokenStore(FakeStore):

    def get_parameter(self, name):
        raise KeyError(name)


def test_unexpected_compliance_error_is_denied(store):
    pipeline = AdmissionPipeline.from_settings(Settings(target_namespace="shop"), BrokenRegistry(), store)
    response = run(pipeline, admission_review(deployment(IMAGE)))
    assert response["uid"] == UID
    assert response["allowed"] is False
    assert response["status"]["code"] == 406
    assert "misconfigured" in response["status"]["message"]


def test_unexpected_resolution_error_is_denied(registry):
    pipeline = AdmissionPipeline.from_settings(Settings(target_namespace="shop"), registry, BrokenStore())
    response = run(pipeline, admission_review(deployment(IMAGE)))
    assert response["uid"] == UID
    assert response["allowed"] is False
    assert response["status"]["code"] == 407
    assert "/test2/frontend/ecr_tag" in response["status"]["message"]
