"""CRM forwarding — process-wide client singleton and submission routing."""

from lead_gateway.crm.client import CRMClient, CRMResponse

_client: CRMClient | None = None


def get_crm_client() -> CRMClient:
    """Get or create the shared CRM client."""
    global _client
    if _client is None:
        _client = CRMClient()
    return _client


async def forward_lead(payload: dict) -> CRMResponse:
    """Send a lead form submission as a new candidate."""
    return await get_crm_client().create_candidate(payload)


async def forward_application(token: str, payload: dict) -> CRMResponse:
    """Send a full application to the candidate identified by ``token``."""
    return await get_crm_client().update_candidate(token, payload)


async def close_client() -> None:
    """Close the CRM connection pool on shutdown."""
    global _client
    if _client is not None:
        await _client.close()
        _client = None
