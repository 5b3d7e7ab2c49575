import typing

from kubernetes.client import (
    V1DaemonSet,
    V1Deployment,
    V1Pod,
    V1ReplicaSet,
    V1StatefulSet,
)


class ResourceKind:
    """
    A workload kind the webhook can be registered for.

    :param kind: the Kubernetes kind, e.g. "Deployment"
    :param group: API group of the kind, "" for core
    :param model: kubernetes client model used to decode the object
    :param pod_spec_path: attribute path from the object to its pod spec
    """

    def __init__(self, kind: str, group: str, model: type, pod_spec_path: typing.Tuple[str, ...]):
        self._kind = kind
        self._group = group
        self._model = model
        self._pod_spec_path = pod_spec_path

    def __repr__(self):
        return f"ResourceKind('{self._kind}')"

    @property
    def kind(self):
        return self._kind

    @property
    def group(self):
        return self._group

    @property
    def version(self):
        return "v1"

    @property
    def model(self):
        return self._model

    @property
    def resource(self):
        return f"{self._kind.lower()}s"

    def pod_spec(self, obj):
        for attr in self._pod_spec_path:
            obj = getattr(obj, attr, None)
            if obj is None:
                return None
        return obj

    def image_path(self, index: int = 0) -> str:
        """JSON Pointer to the image of the container at ``index``."""
        prefix = "".join(f"/{attr}" for attr in self._pod_spec_path)
        return f"{prefix}/containers/{index}/image"


POD = ResourceKind("Pod", "", V1Pod, ("spec",))
DEPLOYMENT = ResourceKind("Deployment", "apps", V1Deployment, ("spec", "template", "spec"))
STATEFUL_SET = ResourceKind("StatefulSet", "apps", V1StatefulSet, ("spec", "template", "spec"))
DAEMON_SET = ResourceKind("DaemonSet", "apps", V1DaemonSet, ("spec", "template", "spec"))
REPLICA_SET = ResourceKind("ReplicaSet", "apps", V1ReplicaSet, ("spec", "template", "spec"))

KINDS = {k.kind: k for k in (POD, DEPLOYMENT, STATEFUL_SET, DAEMON_SET, REPLICA_SET)}


def lookup(kind: str) -> ResourceKind:
    try:
        return KINDS[kind]
    except KeyError:
        raise ValueError(f"unsupported resource kind {kind!r}, expected one of {sorted(KINDS)}") from None
