# fasttrack/adapters/inbound/api/v1/router.py

from fastapi import APIRouter
from fasttrack.adapters.inbound.api.v1.endpoints import (
    candidate_endpoint,
    document_endpoint,
    download_endpoint,
    market_endpoint,
    oauth_endpoint,
)

api_router = APIRouter()

# Editor platforms
api_router.include_router(oauth_endpoint.router, prefix="/oauth", tags=["OAuth"])
api_router.include_router(document_endpoint.router, prefix="/documents", tags=["Documents"])
api_router.include_router(market_endpoint.router, prefix="/markets", tags=["Markets"])
api_router.include_router(download_endpoint.router, prefix="/applications", tags=["Downloads"])

# Candidates
api_router.include_router(candidate_endpoint.router, prefix="/candidate", tags=["Candidate"])
