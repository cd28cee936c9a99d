"""
FastAPI application entry point.
"""

from fastapi import FastAPI

from impact_agent import __version__
from impact_agent.api import webhooks
from impact_agent.config import settings
from impact_agent.utils.logging import get_logger, setup_logging

# Configure structured logging
setup_logging(settings.log_level)

logger = get_logger(__name__)

app = FastAPI(
    title="Pull Request Impact Agent",
    description="Automated impact analysis and test case generation for pull requests",
    version=__version__,
)


@app.get("/health")
async def health_check():
    """Health check endpoint for container orchestration."""
    return {"status": "healthy", "version": __version__}


app.include_router(webhooks.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
