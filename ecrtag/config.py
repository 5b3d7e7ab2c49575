import logging
import os
import typing

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ecrtag.namespaces import NAMESPACE_SYSTEM
from ecrtag.resolve import DEFAULT_PARAMETER_PATH, check_template

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _split(value: typing.Optional[str]) -> typing.List[str]:
    if not value:
        return []
    return [v.strip() for v in value.split(",") if v.strip()]


def _log_level(value: typing.Optional[str]) -> str:
    level = (value or "").strip().upper()
    if level == "TRACE":
        return "DEBUG"
    if level not in LOG_LEVELS:
        return "INFO"
    return level


class Settings(BaseModel):
    """Process configuration, built once at start-up and passed to the pipeline."""

    model_config = ConfigDict(frozen=True)

    region: typing.Optional[str] = None
    target_namespace: str = ""
    critical_namespaces: typing.FrozenSet[str] = frozenset({NAMESPACE_SYSTEM})
    resource_kind: str = "Deployment"
    compliance_checks: typing.Tuple[str, ...] = ()
    parameter_path: str = DEFAULT_PARAMETER_PATH
    max_images: int = 1
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8443
    cert_dir: str = Field(default_factory=lambda: os.path.join(os.getenv("TMP", "/tmp"), "serving-certs"))

    @field_validator("parameter_path")
    @classmethod
    def _check_parameter_path(cls, value: str) -> str:
        return check_template(value)

    @classmethod
    def from_env(cls, environ: typing.Mapping[str, str] = None) -> "Settings":
        env = os.environ if environ is None else environ
        values = dict(
            region=env.get("REGISTRY_REGION") or env.get("AWS_DEFAULT_REGION") or None,
            target_namespace=env.get("DEPLOYMENT_NAMESPACE", ""),
            critical_namespaces=frozenset({NAMESPACE_SYSTEM, *_split(env.get("CRITICAL_NAMESPACES"))}),
            resource_kind=env.get("RESOURCE_KIND", "Deployment"),
            compliance_checks=tuple(_split(env.get("COMPLIANCE_CHECKS"))),
            parameter_path=env.get("PARAMETER_PATH", DEFAULT_PARAMETER_PATH),
            log_level=_log_level(env.get("LOG_LEVEL")),
            host=env.get("HOST", "0.0.0.0"),
            port=int(env.get("PORT", "8443")),
        )
        if env.get("CERT_DIR"):
            values["cert_dir"] = env["CERT_DIR"]
        return cls(**values)

    @property
    def logging_level(self) -> int:
        return getattr(logging, self.log_level)
