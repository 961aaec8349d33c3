# routes.py
import logging

from fastapi import APIRouter, HTTPException, Request, WebSocket, status

from analysis import AnalysisError
from connection import ConnectionHandler
from models import (AnalyzeRequest, HealthResponse, MetricsSnapshot,
                    ServiceDescriptor, StocksResponse)
from price_feed import now_ms

logger = logging.getLogger(__name__)

SERVICE_NAME = "StockPulse API"
SERVICE_VERSION = "1.0.0"

router = APIRouter()


@router.get("/", response_model=ServiceDescriptor, tags=["Service"])
async def service_descriptor():
    return ServiceDescriptor(
        name=SERVICE_NAME,
        version=SERVICE_VERSION,
        status="running",
        endpoints={
            "websocket": "/ws",
            "health": "/health",
            "metrics": "/metrics",
            "stocks": "/stocks",
        },
    )


@router.get("/health", response_model=HealthResponse, tags=["Service"])
async def health(request: Request):
    return HealthResponse(timestamp=now_ms(), uptime=request.app.state.server.uptime())


@router.get("/metrics", response_model=MetricsSnapshot, tags=["Stream"])
async def get_metrics(request: Request):
    return request.app.state.server.metrics.snapshot()


@router.get("/stocks", response_model=StocksResponse, tags=["Stream"])
async def get_stocks(request: Request):
    return StocksResponse(stocks=request.app.state.server.feed.snapshot(), timestamp=now_ms())


@router.post("/api/analyze-stocks", tags=["Analysis"])
async def analyze_stocks(body: AnalyzeRequest, request: Request):
    """Compare companies via the configured LLM provider."""
    analyst = request.app.state.server.analyst
    if analyst is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="AI analysis service not configured. Please set GROQ_API_KEY, "
                   "XAI_API_KEY, or OPENAI_API_KEY environment variable.",
        )
    companies = [c.strip() for c in (body.companies or []) if c and c.strip()]
    if not companies:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST,
                            detail="Please provide an array of company names")
    try:
        return await analyst.analyze(companies)
    except AnalysisError as e:
        logger.error("Error analyzing stocks: %s", e)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY,
                            detail=f"Failed to analyze stocks: {e}")


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """Price stream: initial snapshot, periodic updates, ping/pong."""
    await ConnectionHandler(websocket, websocket.app.state.server).run()
