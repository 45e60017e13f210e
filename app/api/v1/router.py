from fastapi import APIRouter, Depends

from app.api.v1.endpoints import auth, folders, notes, ai
from app.core.rate_limit import api_rate_limit

api_router = APIRouter(dependencies=[Depends(api_rate_limit)])

api_router.include_router(auth.router, prefix="/auth", tags=["Auth"])
api_router.include_router(folders.router, prefix="/folders", tags=["Folders"])
api_router.include_router(notes.router, prefix="/notes", tags=["Notes"])
api_router.include_router(ai.router, prefix="/ai", tags=["AI"])
