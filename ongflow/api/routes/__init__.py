"""HTTP routers."""

from ongflow.api.routes.commitments import router as commitments_router
from ongflow.api.routes.health import router as health_router
from ongflow.api.routes.kpis import router as kpis_router
from ongflow.api.routes.projects import router as projects_router
from ongflow.api.routes.tasks import router as tasks_router

__all__: list[str] = [
    "commitments_router",
    "health_router",
    "kpis_router",
    "projects_router",
    "tasks_router",
]
