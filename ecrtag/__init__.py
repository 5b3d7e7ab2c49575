from .config import Settings
from .pipeline import AdmissionPipeline, build_pipeline
from .webhook import Manager, create_app


__all__ = [
    "AdmissionPipeline",
    "Manager",
    "Settings",
    "build_pipeline",
    "create_app",
]
