"""
Health check API endpoints.

These endpoints are used by load balancers and orchestrators to probe the
gateway. They report the state of the shared database connection and of the
composed schema.

Endpoints:
- GET /: Root endpoint with basic service info
- GET /health: Health of the gateway and its database connection
"""

from fastapi import APIRouter, Request

# Create router for health-related endpoints
router = APIRouter(tags=["health"])


@router.get("/")
async def root(request: Request):
    """
    Root endpoint providing basic service information.

    Returns:
        dict: Application name, version and the GraphQL path
    """
    settings = request.app.state.settings
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "graphql": settings.graphql_path,
        "status": "operational",
    }


@router.get("/health")
async def health_check(request: Request):
    """
    Health check for the gateway and its dependencies.

    The database status comes from a ping on the shared connection, so a
    failing database shows up here as ``degraded`` instead of an error.
    """
    gateway = request.app.state.gateway
    return await gateway.get_health_info()
