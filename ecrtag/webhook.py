import logging
import os
import typing

import fastapi
import uvicorn
import yaml
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from kubernetes.client import (
    AdmissionregistrationV1ServiceReference,
    AdmissionregistrationV1WebhookClientConfig,
    ApiClient,
    V1LabelSelector,
    V1LabelSelectorRequirement,
    V1MutatingWebhook,
    V1MutatingWebhookConfiguration,
    V1ObjectMeta,
    V1RuleWithOperations,
)

from ecrtag.batch import CancelScope
from ecrtag.config import Settings
from ecrtag.models import SchemaVersion
from ecrtag.pipeline import AdmissionPipeline, build_pipeline

logger = logging.getLogger(__name__)

MUTATE_PATH = "/mutate"
HEALTH_PATH = "/healthz"

OPERATION_CREATE = "CREATE"
OPERATION_UPDATE = "UPDATE"


def _serialize(obj):
    return ApiClient().sanitize_for_serialization(obj)


class Manager:

    def __init__(self, pipeline: AdmissionPipeline, settings: Settings, app: fastapi.FastAPI = None):
        self._pipeline = pipeline
        self._settings = settings
        self._app = app or fastapi.FastAPI()
        self.register(self._app)

    @property
    def app(self) -> fastapi.FastAPI:
        return self._app

    def register(self, app: fastapi.FastAPI):
        pipeline = self._pipeline

        @app.post(MUTATE_PATH)
        async def mutate(request: fastapi.Request):
            body = await request.body()
            scope = CancelScope.from_query(request.query_params.get("timeout"))
            envelope = await run_in_threadpool(pipeline.review, body, request.headers, scope)
            response = envelope.get("response", {})
            logger.info(
                "Responding to %s with allowed=%s code=%s",
                response.get("uid"),
                response.get("allowed"),
                response.get("status", {}).get("code"),
            )
            return JSONResponse(envelope)

        @app.get(HEALTH_PATH)
        def healthz():
            return {"status": "ok"}

    def webhook(
        self,
        name: str,
        url: str = None,
        service: str = None,
        namespace: str = None,
        ca_bundle: str = None,
        service_port: int = 443,
    ) -> V1MutatingWebhook:
        kind = self._pipeline.kind
        client_config = AdmissionregistrationV1WebhookClientConfig(ca_bundle=ca_bundle)
        if url:
            client_config.url = url.rstrip("/") + MUTATE_PATH
        else:
            client_config.service = AdmissionregistrationV1ServiceReference(
                name=service, namespace=namespace, path=MUTATE_PATH, port=service_port,
            )
        return V1MutatingWebhook(
            name=name,
            client_config=client_config,
            admission_review_versions=[v.value.split("/")[-1] for v in SchemaVersion],
            side_effects="None",
            failure_policy="Fail",
            namespace_selector=V1LabelSelector(
                match_expressions=[
                    V1LabelSelectorRequirement(
                        key="kubernetes.io/metadata.name",
                        operator="NotIn",
                        values=sorted(self._settings.critical_namespaces),
                    ),
                ],
            ),
            rules=[
                V1RuleWithOperations(
                    api_groups=[kind.group],
                    api_versions=[kind.version],
                    resources=[kind.resource],
                    operations=[OPERATION_CREATE, OPERATION_UPDATE],
                ),
            ],
        )

    def manifest(self, name: str = "ecrtag", **kwargs) -> str:
        """Render the MutatingWebhookConfiguration that routes workloads to this webhook."""
        webhook_config = V1MutatingWebhookConfiguration(
            api_version="admissionregistration.k8s.io/v1",
            kind="MutatingWebhookConfiguration",
            metadata=V1ObjectMeta(name=name),
            webhooks=[self.webhook(f"{name}.ecr-tag.k8s.io", **kwargs)],
        )
        return yaml.safe_dump(_serialize(webhook_config), default_flow_style=False)

    def start(self):
        cert_dir = self._settings.cert_dir

        uvicorn.run(
            self._app,
            host=self._settings.host,
            port=self._settings.port,
            log_level=self._settings.log_level.lower(),
            ssl_certfile=os.path.join(cert_dir, "tls.crt"),
            ssl_keyfile=os.path.join(cert_dir, "tls.key"),
        )


def create_app(settings: typing.Optional[Settings] = None) -> fastapi.FastAPI:
    settings = settings or Settings.from_env()
    return Manager(build_pipeline(settings), settings).app
