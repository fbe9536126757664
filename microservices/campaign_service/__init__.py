"""
Campaign Service

Crowdfunding campaign microservice providing:
- Campaign lifecycle management (create, moderate, update, delete)
- Unique URL slugs derived from campaign titles
- Donation ledger with atomic campaign total updates
- Public, owner and admin listings
- Deadline/goal outcome evaluation (active -> completed / failed)

Port: 8240
"""

__version__ = "1.0.0"
__service__ = "campaign_service"
