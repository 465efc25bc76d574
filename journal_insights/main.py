import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from journal_insights.core.database import Base, engine
from journal_insights.insights import routes as insights_router
from journal_insights.system import routes as system_router
from journal_insights.system.routes import API_VERSION

logging.basicConfig(level=logging.INFO)

app = FastAPI(
    title="Journal Insights API",
    version=API_VERSION,
    description="Backend for journal insights: recurring theme extraction and reconciliation.",
)

# CORS config
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(insights_router.router)
app.include_router(system_router.router)


# DB Tables
@app.on_event("startup")
def create_tables():
    Base.metadata.create_all(bind=engine)
