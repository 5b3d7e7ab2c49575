"""Fakes and request builders shared by the test modules."""

import copy
import json
import threading

from ecrtag.errors import ParameterStoreError, RegistryError

REGISTRY = "123456789012.dkr.ecr.us-east-1.amazonaws.com"
NAMESPACE = "shop"
HEADERS = {"Content-Type": "application/json"}


class FakeRegistry:

    def __init__(self, repositories=None, findings=None, errors=None):
        self.repositories = repositories or {}
        self.findings = findings or {}
        self.errors = errors or {}
        self.calls = []
        self._lock = threading.Lock()

    def describe_repository(self, name):
        with self._lock:
            self.calls.append(name)
        if name in self.errors:
            raise RegistryError(self.errors[name])
        return self.repositories.get(name)

    def scan_findings(self, repository, tag_or_digest):
        return iter(self.findings.get((repository, tag_or_digest), []))


class FakeStore:

    def __init__(self, parameters=None, errors=None):
        self.parameters = parameters or {}
        self.errors = errors or {}
        self.calls = []
        self._lock = threading.Lock()

    def get_parameter(self, name):
        with self._lock:
            self.calls.append(name)
        if name in self.errors:
            raise ParameterStoreError(self.errors[name])
        return self.parameters.get(name)


def repository(name, mutability="MUTABLE", scan_on_push=False):
    return {
        "repositoryName": name,
        "repositoryUri": f"{REGISTRY}/{name}",
        "imageTagMutability": mutability,
        "imageScanningConfiguration": {"scanOnPush": scan_on_push},
    }


_deployment = {
    "apiVersion": "apps/v1",
    "kind": "Deployment",
    "metadata": {
        "name": "frontend",
        "namespace": NAMESPACE,
        "labels": {"app": "frontend"},
    },
    "spec": {
        "replicas": 1,
        "selector": {"matchLabels": {"app": "frontend"}},
        "template": {
            "metadata": {"labels": {"app": "frontend"}},
            "spec": {
                "containers": [],
            },
        },
    },
}

_pod = {
    "apiVersion": "v1",
    "kind": "Pod",
    "metadata": {
        "name": "frontend",
        "namespace": NAMESPACE,
    },
    "spec": {
        "containers": [],
    },
}


def _containers(images, prefix):
    return [{"name": f"{prefix}-{i}", "image": image} for i, image in enumerate(images)]


def deployment(*images, namespace=NAMESPACE, init_images=()):
    obj = copy.deepcopy(_deployment)
    obj["metadata"]["namespace"] = namespace
    spec = obj["spec"]["template"]["spec"]
    spec["containers"] = _containers(images, "app")
    if init_images:
        spec["initContainers"] = _containers(init_images, "init")
    return obj


def pod(*images, namespace=NAMESPACE, init_images=()):
    obj = copy.deepcopy(_pod)
    obj["metadata"]["namespace"] = namespace
    obj["spec"]["containers"] = _containers(images, "app")
    if init_images:
        obj["spec"]["initContainers"] = _containers(init_images, "init")
    return obj


def admission_review(obj, kind="Deployment", group="apps", api_version="admission.k8s.io/v1",
                     uid="0df28fbd-5f5f-11e8-bc74-36e6bb280816"):
    return {
        "kind": "AdmissionReview",
        "apiVersion": api_version,
        "request": {
            "uid": uid,
            "kind": {"group": group, "version": "v1", "kind": kind},
            "resource": {"group": group, "version": "v1", "resource": f"{kind.lower()}s"},
            "namespace": obj["metadata"].get("namespace"),
            "operation": "CREATE",
            "userInfo": {
                "username": "system:serviceaccount:kube-system:replicaset-controller",
                "uid": "a7e0ab33-5f29-11e8-8a3c-36e6bb280816",
                "groups": ["system:serviceaccounts", "system:authenticated"],
            },
            "object": obj,
            "oldObject": None,
        },
    }


def body(review):
    return json.dumps(review).encode()

