import json
import typing

from kubernetes.client import ApiClient
from pydantic import ValidationError

from ecrtag.errors import (
    BadRequest,
    InvalidAdmission,
    InvalidContentType,
    MalformedBody,
    MalformedObject,
    MissingContentType,
    ObjectNotFound,
    UnexpectedResource,
    UnsupportedVersion,
)
from ecrtag.kinds import ResourceKind
from ecrtag.models import AdmissionRequest, AdmissionReview, SchemaVersion
from ecrtag.types import Workload

CONTENT_TYPE = "application/json"


class DecodedRequest(typing.NamedTuple):
    version: SchemaVersion
    request: AdmissionRequest


def _deserialize(obj, type_):
    return ApiClient().deserialize(json.dumps(obj), type_, CONTENT_TYPE)


def _read(body) -> bytes:
    if isinstance(body, (bytes, bytearray, str)):
        return body
    try:
        return body.read()
    finally:
        body.close()


def _content_type(headers: typing.Mapping[str, str]) -> typing.Optional[str]:
    for name, value in headers.items():
        if name.lower() == "content-type":
            return value
    return None


def decode_review(body, headers: typing.Mapping[str, str]) -> AdmissionReview:
    """
    Decode an AdmissionReview envelope of any supported schema version.

    :param body: raw bytes or a readable stream, consumed exactly once
    :param headers: HTTP request headers
    """
    content_type = _content_type(headers)
    if content_type is None:
        raise MissingContentType()
    if content_type != CONTENT_TYPE:
        raise InvalidContentType(f"invalid content type {content_type!r}; expected {CONTENT_TYPE}")

    data = _read(body)
    try:
        payload = json.loads(data)
    except ValueError as err:
        raise MalformedBody(f"request body is not valid json: {err}") from err
    if not isinstance(payload, dict):
        raise MalformedBody()

    api_version = payload.get("apiVersion")
    if api_version not in {v.value for v in SchemaVersion}:
        raise UnsupportedVersion(f"unsupported admission review version {api_version!r}")

    try:
        return AdmissionReview.model_validate(payload)
    except ValidationError as err:
        raise MalformedBody(str(err).replace("\n", " ")) from err


def decode_request(body, headers: typing.Mapping[str, str], expected: ResourceKind) -> DecodedRequest:
    review = decode_review(body, headers)
    request = review.request
    if request is None:
        raise InvalidAdmission()
    if not request.uid:
        raise BadRequest("admission request has no uid")
    if not request.object:
        raise ObjectNotFound(uid=request.uid)
    if request.kind.kind != expected.kind:
        raise UnexpectedResource(
            f"expected {expected.kind} resource, got {request.kind.kind}", uid=request.uid
        )
    return DecodedRequest(review.api_version, request)


def decode_workload(request: AdmissionRequest, kind: ResourceKind) -> Workload:
    """Deserialize the request object with the kubernetes models and keep what the webhook reads."""
    try:
        obj = _deserialize(request.object, kind.model)
    except ValueError as err:
        raise MalformedObject(f"{kind.kind} could not be decoded: {err}") from err

    spec = kind.pod_spec(obj)
    containers = (spec.containers if spec else None) or []
    init_containers = (spec.init_containers if spec else None) or []

    namespace = obj.metadata.namespace if obj.metadata else None
    return Workload(
        namespace=namespace or request.namespace or "",
        containers=[c.image or "" for c in containers],
        init_containers=[c.image or "" for c in init_containers],
    )
