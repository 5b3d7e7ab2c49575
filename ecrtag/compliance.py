"""
Repository compliance checks.

A repository is compliant when every enabled predicate holds. Predicates run
in order and the first one to fail decides the verdict, so new checks are
added to the list without touching the pipeline.
"""
import logging
import typing

from ecrtag.batch import CancelScope, fan_out
from ecrtag.clients import RepositoryRegistry
from ecrtag.errors import InvalidRepositoryName, RepositoryNotFound
from ecrtag.reference import ImageReference
from ecrtag.types import ComplianceVerdict

logger = logging.getLogger(__name__)

SEVERITY_CRITICAL = "CRITICAL"


class ComplianceSubject(typing.NamedTuple):
    reference: ImageReference
    repository: dict
    registry: RepositoryRegistry


class CompliancePredicate(typing.NamedTuple):
    name: str
    check: typing.Callable[[ComplianceSubject], bool]
    message: str

    def failure(self, subject: ComplianceSubject) -> str:
        return self.message.format(
            repository=subject.reference.repository,
            image=subject.reference.name,
        )


def tag_immutability(subject: ComplianceSubject) -> bool:
    return subject.repository.get("imageTagMutability") == "IMMUTABLE"


def scan_on_push(subject: ComplianceSubject) -> bool:
    config = subject.repository.get("imageScanningConfiguration") or {}
    return bool(config.get("scanOnPush"))


def no_critical_vulnerabilities(subject: ComplianceSubject) -> bool:
    findings = subject.registry.scan_findings(
        subject.reference.repository, subject.reference.tag_or_digest
    )
    for finding in findings:
        if finding.get("severity") == SEVERITY_CRITICAL:
            return False
    return True


PREDICATES = {
    p.name: p
    for p in (
        CompliancePredicate(
            "tag_immutability",
            tag_immutability,
            "repository '{repository}' does not have image tag immutability enabled",
        ),
        CompliancePredicate(
            "scan_on_push",
            scan_on_push,
            "repository '{repository}' does not have image scan on push enabled",
        ),
        CompliancePredicate(
            "critical_vulnerabilities",
            no_critical_vulnerabilities,
            f"image '{{image}}' contains {SEVERITY_CRITICAL} vulnerabilities",
        ),
    )
}


def predicates(names: typing.Iterable[str]) -> typing.List[CompliancePredicate]:
    selected = []
    for name in names:
        if name not in PREDICATES:
            raise ValueError(f"unknown compliance check {name!r}, expected one of {sorted(PREDICATES)}")
        selected.append(PREDICATES[name])
    return selected


class ComplianceChecker:

    def __init__(self, registry: RepositoryRegistry, checks: typing.Sequence[CompliancePredicate] = ()):
        self._registry = registry
        self._checks = list(checks)

    @property
    def checks(self) -> typing.List[CompliancePredicate]:
        return list(self._checks)

    def check(self, image: str) -> ComplianceVerdict:
        reference = ImageReference.parse(image)
        if not reference.repository:
            raise InvalidRepositoryName(f"invalid repository name in image '{image}'")

        repository = self._registry.describe_repository(reference.repository)
        if repository is None:
            raise RepositoryNotFound(f"no repositories named '{reference.repository}' found")

        subject = ComplianceSubject(reference, repository, self._registry)
        for predicate in self._checks:
            if not predicate.check(subject):
                reason = predicate.failure(subject)
                logger.info("%s failed %s: %s", image, predicate.name, reason)
                return ComplianceVerdict(image=image, compliant=False, reason=reason)
        return ComplianceVerdict(image=image, compliant=True)


class BatchComplianceChecker:

    def __init__(self, checker: ComplianceChecker):
        self._checker = checker

    def check(self, images: typing.Sequence[str], scope: CancelScope = None) -> typing.List[ComplianceVerdict]:
        return fan_out(self._checker.check, images, scope)


def is_compliant(verdicts: typing.Iterable[ComplianceVerdict]) -> bool:
    return all(v.compliant for v in verdicts)
