import logging

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import text

from scrumboard.api.deps import DB
from scrumboard.api.v1.endpoints import auth, backlog, projects, settings, sprints, team

log = logging.getLogger(__name__)

api_router = APIRouter()

# Подключаем все эндпоинты
api_router.include_router(auth.router, prefix="/auth", tags=["authentication"])
api_router.include_router(settings.router, prefix="/settings", tags=["settings"])
api_router.include_router(projects.router, prefix="/projects", tags=["projects"])
api_router.include_router(
    backlog.router, prefix="/projects/{project_id}/backlog", tags=["backlog"]
)
api_router.include_router(
    sprints.router, prefix="/projects/{project_id}/sprints", tags=["sprints"]
)
api_router.include_router(team.router, prefix="/projects", tags=["team"])


@api_router.get("/health", tags=["health"])
async def health_check(db: DB):
    try:
        result = await db.execute(text("SELECT 1"))
        if result.scalar_one() != 1:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Database check failed",
            )
        return {"status": "healthy", "database": "connected"}
    except HTTPException:
        raise
    except Exception as e:
        log.error(f"Health check failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Health check failed: {str(e)}",
        )
