import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.core.config import CORS_ORIGINS, LOG_LEVEL
from app.core.errors import register_error_handlers
from api.auth import router as auth_router
from api.quiz import router as quiz_router

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

app = FastAPI(title="ClassNode Quiz API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "apikey", "x-client-info"],
)

register_error_handlers(app)

@app.get("/")
async def root():
    return {"message": "Welcome to ClassNode Quiz API"}

@app.get("/health")
async def health():
    return {"status": "ok"}

app.include_router(auth_router)
app.include_router(quiz_router)
