"""
Campaign Service Routes Registry

Defines service metadata and the public route table.
"""

SERVICE_METADATA = {
    "service_name": "campaign_service",
    "version": "1.0.0",
    "tags": ["campaign", "donation", "crowdfunding"],
    "capabilities": ["campaign_lifecycle", "donation_ledger", "campaign_moderation"],
}

ROUTES = [
    {"path": "/health", "methods": ["GET"], "description": "Health check"},
    {"path": "/health/ready", "methods": ["GET"], "description": "Readiness check"},
    {"path": "/health/live", "methods": ["GET"], "description": "Liveness check"},
    {"path": "/api/campaigns", "methods": ["GET", "POST"], "description": "List active campaigns / create campaign"},
    {"path": "/api/campaigns/my-campaigns", "methods": ["GET"], "description": "Caller's campaigns"},
    {"path": "/api/campaigns/admin/pending", "methods": ["GET"], "description": "Moderation queue"},
    {"path": "/api/campaigns/admin/evaluate-outcomes", "methods": ["POST"], "description": "Run outcome sweep"},
    {"path": "/api/campaigns/{slug}", "methods": ["GET"], "description": "Campaign by slug"},
    {"path": "/api/campaigns/{campaign_id}", "methods": ["PUT", "DELETE"], "description": "Owner update / delete"},
    {"path": "/api/campaigns/{campaign_id}/view", "methods": ["POST"], "description": "Record a view"},
    {"path": "/api/campaigns/{campaign_id}/approve", "methods": ["PUT"], "description": "Approve campaign"},
    {"path": "/api/campaigns/{campaign_id}/reject", "methods": ["PUT"], "description": "Reject campaign"},
    {"path": "/api/donations", "methods": ["POST"], "description": "Donate"},
    {"path": "/api/donations/my-donations", "methods": ["GET"], "description": "Caller's donations"},
    {"path": "/api/donations/campaign/{campaign_id}", "methods": ["GET"], "description": "Campaign donations"},
    {"path": "/api/donations/campaign/{campaign_id}/reconcile", "methods": ["GET", "POST"], "description": "Ledger reconciliation (POST repairs drift)"},
    {"path": "/api/admin/users", "methods": ["GET"], "description": "User listing"},
]


def get_route_summary():
    """Route metadata served by /api/info"""
    return {
        "total_routes": len(ROUTES),
        "base_path": "/api",
        "routes": ROUTES,
    }


__all__ = ["SERVICE_METADATA", "ROUTES", "get_route_summary"]
