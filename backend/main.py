"""
Main FastAPI Application
=======================

Entry point for the TrailBlazer explorer backend API server.
"""

import uvicorn
import logging
import sys
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import time

from dotenv import load_dotenv
load_dotenv()  # Load .env file before settings are read

from api.router import api_router
from services.logging_service import init_logging
from services import exploration_singleton

# Custom colored formatter for better log readability
class ColoredFormatter(logging.Formatter):
    """Custom formatter with colors and emojis for better log readability"""
    
    COLORS = {
        'DEBUG': '\033[36m',    # Cyan
        'INFO': '\033[32m',     # Green
        'WARNING': '\033[33m',  # Yellow
        'ERROR': '\033[31m',    # Red
        'CRITICAL': '\033[35m', # Magenta
        'RESET': '\033[0m'      # Reset
    }
    
    EMOJIS = {
        'DEBUG': '🔍',
        'INFO': 'ℹ️',
        'WARNING': '⚠️',
        'ERROR': '❌',
        'CRITICAL': '🚨'
    }
    
    def format(self, record):
        emoji = self.EMOJIS.get(record.levelname, '')
        color = self.COLORS.get(record.levelname, '')
        reset = self.COLORS['RESET']
        
        record.levelname = f"{color}{emoji} {record.levelname}{reset}"
        return super().format(record)

def setup_logging():
    """Console logging with visual indicators"""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(ColoredFormatter("%(levelname)s %(name)s: %(message)s"))
    
    root_logger.setLevel(logging.INFO)
    root_logger.addHandler(console_handler)
    
    logging.getLogger('uvicorn.access').setLevel(logging.WARNING)

setup_logging()
try:
    # Add rotating file + ring buffer handlers
    init_logging()
except OSError:
    # Do not fail startup if file logging isn't available
    init_logging(file_logging=False)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="TrailBlazer Explorer API",
    description="Explored-area tracking with automatic city block filling",
    version="1.1.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)

@app.on_event("startup")
async def startup_event():
    logger.info("🚀 Starting TrailBlazer Explorer API Server")

@app.on_event("shutdown")
async def shutdown_event():
    """Clean up resources on shutdown"""
    logger.info("🛑 Shutting down TrailBlazer Explorer API Server")
    try:
        exploration_singleton.shutdown()
        logger.info("✅ Shutdown complete")
    except Exception as e:
        logger.error(f"❌ Error during shutdown: {e}")

@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """Add processing time header to responses"""
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    return response

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"❌ Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "detail": str(exc) if app.debug else "An unexpected error occurred"
        }
    )

@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "TrailBlazer Explorer API v1.1",
        "status": "running",
        "docs": "/docs",
        "api": "/api"
    }

if __name__ == "__main__":
    logger.info("🔧 Starting TrailBlazer Explorer API Server in development mode")
    
    uvicorn.run(
        "main:app",
        host="127.0.0.1",
        port=8000,
        reload=False,
        log_level="info",
        access_log=True
    )
