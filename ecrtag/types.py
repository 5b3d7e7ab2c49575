import typing
from typing import List

from pydantic import BaseModel, ConfigDict, Field

STATUS_SUCCESS = "Success"
STATUS_FAILURE = "Failure"

REASON_BAD_REQUEST = "BadRequest"
REASON_NOT_ACCEPTABLE = "NotAcceptable"


class Workload(BaseModel):
    model_config = ConfigDict(frozen=True)

    namespace: str = ""
    containers: List[str] = Field(default_factory=list)
    init_containers: List[str] = Field(default_factory=list)

    @property
    def images(self) -> List[str]:
        return list(self.containers) + list(self.init_containers)


class ExtractionResult(BaseModel):
    registry: str = ""
    images: List[str] = Field(default_factory=list)


class ComplianceVerdict(BaseModel):
    image: str
    compliant: bool
    reason: typing.Optional[str] = None


class ResolvedImage(BaseModel):
    original_repository: str
    resolved_tag: str
    full_reference: str


class AdmissionVerdict(BaseModel):
    correlation_id: typing.Optional[str] = None
    allowed: bool
    status_code: int
    status_message: str
    status: str = STATUS_SUCCESS
    reason: typing.Optional[str] = None
    patch: typing.Optional[bytes] = None
