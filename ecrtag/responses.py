import base64
import typing

import jsonpatch

from ecrtag.models import (
    PATCH_TYPE_JSON_PATCH,
    AdmissionResponse,
    AdmissionReview,
    SchemaVersion,
    Status,
)
from ecrtag.types import (
    REASON_BAD_REQUEST,
    REASON_NOT_ACCEPTABLE,
    STATUS_FAILURE,
    STATUS_SUCCESS,
    AdmissionVerdict,
)

CODE_OK = 200
CODE_BAD_REQUEST = 400
# rejected by compliance or image extraction
CODE_NOT_ACCEPTABLE = 406
# tag could not be resolved from the parameter store
CODE_PARAMETER_NOT_FOUND = 407

MESSAGE_COMPLIANT = "workload contains compliant ecr repositories and images"


def image_patch(path: str, image: str) -> bytes:
    """
    :param path: JSON Pointer of the container image field
    :param image: the replacement image reference
    :return: the serialized JSON Patch document
    """
    p = jsonpatch.JsonPatch([{"op": "replace", "path": path, "value": image}])
    return p.to_string().encode()


def allowed(uid: str, message: str = MESSAGE_COMPLIANT, patch: bytes = None) -> AdmissionVerdict:
    return AdmissionVerdict(
        correlation_id=uid,
        allowed=True,
        status_code=CODE_OK,
        status_message=message,
        status=STATUS_SUCCESS,
        patch=patch,
    )


def denied(uid: str, code: int, error: typing.Union[Exception, str]) -> AdmissionVerdict:
    return AdmissionVerdict(
        correlation_id=uid,
        allowed=False,
        status_code=code,
        status_message=str(error),
        status=STATUS_FAILURE,
        reason=REASON_NOT_ACCEPTABLE,
    )


def bad_request(error: typing.Union[Exception, str], uid: str = None) -> AdmissionVerdict:
    return AdmissionVerdict(
        correlation_id=uid,
        allowed=False,
        status_code=CODE_BAD_REQUEST,
        status_message=str(error),
        status=STATUS_FAILURE,
        reason=REASON_BAD_REQUEST,
    )


def _response(admission_review: AdmissionReview) -> dict:
    return admission_review.model_dump(mode="json", by_alias=True, exclude_none=True)


def review(verdict: AdmissionVerdict, version: SchemaVersion = SchemaVersion.V1) -> dict:
    """Render the AdmissionReview envelope returned to the API server."""
    response = AdmissionResponse(
        uid=verdict.correlation_id,
        allowed=verdict.allowed,
        status=Status(
            status=verdict.status,
            message=verdict.status_message,
            reason=verdict.reason,
            code=verdict.status_code,
        ),
    )
    if verdict.allowed and verdict.patch:
        response.patch_type = PATCH_TYPE_JSON_PATCH
        response.patch = base64.b64encode(verdict.patch).decode()
    return _response(AdmissionReview(api_version=version, response=response))
