import logging
import typing

from ecrtag import responses
from ecrtag.batch import CancelScope
from ecrtag.clients import ParameterStore, RepositoryRegistry, build_clients
from ecrtag.compliance import BatchComplianceChecker, ComplianceChecker, is_compliant, predicates
from ecrtag.config import Settings
from ecrtag.decode import decode_request, decode_workload
from ecrtag.errors import (
    Cancelled,
    ComplianceError,
    ExtractionError,
    ProtocolError,
    ResolutionError,
)
from ecrtag.extract import ImageExtractor
from ecrtag.kinds import ResourceKind, lookup
from ecrtag.models import AdmissionRequest
from ecrtag.namespaces import NamespaceFilter
from ecrtag.resolve import BatchTagResolver, TagResolver
from ecrtag.types import AdmissionVerdict

logger = logging.getLogger(__name__)

MESSAGE_FAILED_COMPLIANCE = "webhook: repository fails ecr criteria"


class AdmissionPipeline:
    """
    Decide one admission request.

    1. Decode the AdmissionReview; failures get a bad-request envelope
    2. Pass critical and non-target namespaces without mutation
    3. Extract the unique ECR image of the workload
    4. Check the repository compliance of every image
    5. Resolve the sanctioned tag of every image from the parameter store
    6. Allow with a patch replacing the image of the first container
    """

    def __init__(
        self,
        kind: ResourceKind,
        namespaces: NamespaceFilter,
        extractor: ImageExtractor,
        compliance: BatchComplianceChecker,
        resolver: BatchTagResolver,
    ):
        self._kind = kind
        self._namespaces = namespaces
        self._extractor = extractor
        self._compliance = compliance
        self._resolver = resolver

    @classmethod
    def from_settings(
        cls, settings: Settings, registry: RepositoryRegistry, store: ParameterStore
    ) -> "AdmissionPipeline":
        return cls(
            kind=lookup(settings.resource_kind),
            namespaces=NamespaceFilter(settings.target_namespace, settings.critical_namespaces),
            extractor=ImageExtractor(settings.max_images),
            compliance=BatchComplianceChecker(
                ComplianceChecker(registry, predicates(settings.compliance_checks))
            ),
            resolver=BatchTagResolver(TagResolver(store, settings.parameter_path)),
        )

    @property
    def kind(self) -> ResourceKind:
        return self._kind

    def review(self, body, headers: typing.Mapping[str, str], scope: CancelScope = None) -> dict:
        """Answer a raw webhook call with an AdmissionReview envelope."""
        scope = scope or CancelScope()
        try:
            version, request = decode_request(body, headers, self._kind)
        except ProtocolError as err:
            logger.error("Error creating request from body: %s", err)
            return responses.review(responses.bad_request(err, err.uid))

        verdict = self.decide(request, scope)
        return responses.review(verdict, version)

    def decide(self, request: AdmissionRequest, scope: CancelScope = None) -> AdmissionVerdict:
        scope = scope or CancelScope()
        uid = request.uid

        try:
            workload = decode_workload(request, self._kind)
        except ProtocolError as err:
            logger.error("Error decoding %s %s: %s", self._kind.kind, uid, err)
            return responses.bad_request(err, uid)
        except Exception as err:
            logger.exception("%s: unexpected error decoding %s", uid, self._kind.kind)
            return responses.bad_request(err, uid)

        reason = self._namespaces.bypass_reason(workload.namespace)
        if reason:
            logger.info("%s: %s", uid, reason)
            return responses.allowed(uid, reason)

        try:
            extracted = self._extractor.extract(workload)
        except ExtractionError as err:
            logger.error("%s: extraction failed for images %s: %s", uid, workload.images, err)
            return responses.denied(uid, responses.CODE_NOT_ACCEPTABLE, err)

        try:
            verdicts = self._compliance.check(extracted.images, scope)
        except (ComplianceError, Cancelled) as err:
            logger.error("%s: compliance check failed for %s: %s", uid, extracted.images, err)
            return responses.denied(uid, responses.CODE_NOT_ACCEPTABLE, err)
        except Exception as err:
            logger.exception("%s: unexpected error checking compliance of %s", uid, extracted.images)
            return responses.denied(uid, responses.CODE_NOT_ACCEPTABLE, err)

        if not is_compliant(verdicts):
            failed = [v for v in verdicts if not v.compliant]
            message = failed[0].reason or MESSAGE_FAILED_COMPLIANCE
            logger.error("%s: repository is not compliant: %s", uid, message)
            return responses.denied(uid, responses.CODE_NOT_ACCEPTABLE, message)

        try:
            resolved = self._resolver.resolve(extracted.registry, extracted.images, scope)
        except (ResolutionError, Cancelled) as err:
            logger.error("%s: tag resolution failed for %s: %s", uid, extracted.images, err)
            return responses.denied(uid, responses.CODE_PARAMETER_NOT_FOUND, err)
        except Exception as err:
            logger.exception("%s: unexpected error resolving tag of %s", uid, extracted.images)
            return responses.denied(uid, responses.CODE_PARAMETER_NOT_FOUND, err)

        # TODO: patch the container that matched once more than one image is supported
        image = resolved[0].full_reference
        patch = responses.image_patch(self._kind.image_path(0), image)
        logger.info("%s: replacing image with %s", uid, image)
        return responses.allowed(uid, patch=patch)


def build_pipeline(settings: Settings) -> AdmissionPipeline:
    registry, store = build_clients(settings.region)
    return AdmissionPipeline.from_settings(settings, registry, store)
