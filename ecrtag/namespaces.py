import typing

NAMESPACE_SYSTEM = "kube-system"


class NamespaceFilter:
    """
    Decides which namespaces skip the image checks entirely.

    Critical namespaces always pass. Only the target namespace is enforced;
    anything deployed elsewhere passes too.
    """

    def __init__(self, target: str, critical: typing.Iterable[str] = (NAMESPACE_SYSTEM,)):
        self._target = target
        self._critical = frozenset(critical)

    @property
    def critical(self) -> typing.FrozenSet[str]:
        return self._critical

    def in_critical_namespace(self, namespace: str) -> bool:
        return namespace in self._critical

    def not_in_target_namespace(self, namespace: str) -> bool:
        return namespace != self._target

    def bypass_reason(self, namespace: str) -> typing.Optional[str]:
        if self.in_critical_namespace(namespace):
            return f"namespace '{namespace}' is critical, automatically passing"
        if self.not_in_target_namespace(namespace):
            return f"namespace '{namespace}' is not enforced, automatically passing"
        return None
