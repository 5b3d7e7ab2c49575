import enum
import typing
from typing import List

from pydantic import BaseModel, ConfigDict, Field

KIND_ADMISSION_REVIEW = "AdmissionReview"
PATCH_TYPE_JSON_PATCH = "JSONPatch"


class SchemaVersion(str, enum.Enum):
    V1 = "admission.k8s.io/v1"
    V1BETA1 = "admission.k8s.io/v1beta1"


class GroupVersionKind(BaseModel):
    group: str = ""
    version: str = ""
    kind: str


class GroupVersionResource(BaseModel):
    group: str = ""
    version: str = ""
    resource: str = ""


class UserInfo(BaseModel):
    username: typing.Optional[str] = None
    uid: typing.Optional[str] = None
    groups: List[str] = Field(default_factory=list)


class AdmissionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    uid: str = ""
    kind: GroupVersionKind
    resource: typing.Optional[GroupVersionResource] = None
    name: typing.Optional[str] = None
    namespace: typing.Optional[str] = None
    operation: typing.Optional[str] = None
    user_info: typing.Optional[UserInfo] = Field(None, alias="userInfo")
    object: typing.Optional[dict] = None
    old_object: typing.Optional[dict] = Field(None, alias="oldObject")
    dry_run: typing.Optional[bool] = Field(None, alias="dryRun")


class Status(BaseModel):
    status: str
    message: str
    reason: typing.Optional[str] = None
    code: int


class AdmissionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    uid: typing.Optional[str] = None
    allowed: bool
    status: typing.Optional[Status] = None
    patch: typing.Optional[str] = None
    patch_type: typing.Optional[str] = Field(None, alias="patchType")
    warnings: typing.Optional[List[str]] = None


class AdmissionReview(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    kind: str = KIND_ADMISSION_REVIEW
    api_version: SchemaVersion = Field(..., alias="apiVersion")
    request: typing.Optional[AdmissionRequest] = None
    response: typing.Optional[AdmissionResponse] = None
