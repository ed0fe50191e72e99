"""Application services for generated collections."""

from doccrud.application.services.crud_services import (
    CollectionOperations,
    GeneratedServices,
    generate_crud_services,
)
from doccrud.application.services.save_pipeline import SavePipeline
from doccrud.application.services.schema_bootstrapper import BootstrapResult, SchemaBootstrapper

__all__ = [
    "BootstrapResult",
    "CollectionOperations",
    "GeneratedServices",
    "SavePipeline",
    "SchemaBootstrapper",
    "generate_crud_services",
]
