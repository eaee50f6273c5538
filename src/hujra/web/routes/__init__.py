"""Route handlers for the Web API."""

from hujra.web.routes.backup import router as backup_router
from hujra.web.routes.health import router as health_router
from hujra.web.routes.reports import router as reports_router
from hujra.web.routes.students import router as students_router
from hujra.web.routes.visits import router as visits_router

__all__ = [
    "backup_router",
    "health_router",
    "reports_router",
    "students_router",
    "visits_router",
]
