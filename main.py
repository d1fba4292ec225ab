from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
import logging

from crm.config import FRONTEND_ORIGINS, LOG_LEVEL
from crm.database import engine, Base
from crm.errors import http_exception_handler, validation_exception_handler, unhandled_exception_handler
from crm.auth.routes import router as auth_router
from crm.leads.routes import router as leads_router
from crm.contacts.routes import router as contacts_router
from crm.clients.routes import router as clients_router
from crm.projects.routes import router as projects_router
from crm.invoices.routes import router as invoices_router
from crm.contracts.routes import router as contracts_router
from crm.tasks.routes import router as tasks_router
from crm.adhoc.routes import router as adhoc_router
from crm.messaging.routes import router as messaging_router
from crm.uploads.routes import router as uploads_router
from crm.analytics.routes import router as analytics_router
from crm.dashboard.routes import router as dashboard_router

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Create database tables
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="Studio CRM Backend",
    description="Admin back office and client portal for a small web studio",
    version="1.0.0"
)


# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=FRONTEND_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response: Response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Cross-Origin-Opener-Policy"] = "same-origin-allow-popups"
        return response

app.add_middleware(SecurityHeadersMiddleware)

# Error envelope
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# Include routers
app.include_router(auth_router)
app.include_router(leads_router)
app.include_router(contacts_router)
app.include_router(clients_router)
app.include_router(projects_router)
app.include_router(invoices_router)
app.include_router(contracts_router)
app.include_router(tasks_router)
app.include_router(adhoc_router)
app.include_router(messaging_router)
app.include_router(uploads_router)
app.include_router(analytics_router)
app.include_router(dashboard_router)

@app.get("/")
def root():
    return {
        "message": "Studio CRM Backend API",
        "version": "1.0.0",
        "status": "running"
    }

@app.get("/health")
def health_check():
    return {"status": "healthy"}
