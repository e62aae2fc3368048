from fastapi import APIRouter
from callrelay.api import calls

router = APIRouter()


@router.get("/health")
async def health():
    return {"status": "ok"}


# Include calls router
router.include_router(calls.router)
