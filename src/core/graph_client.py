"""
MS Graph client setup.
"""

from azure.identity import ClientSecretCredential
from msgraph import GraphServiceClient

from core.config import GraphConfig


def get_graph_client(config: GraphConfig) -> GraphServiceClient:
    """Create an MS Graph client for the given app registration."""
    credential = ClientSecretCredential(
        tenant_id=config.tenant_id,
        client_id=config.app_id,
        client_secret=config.client_secret,
    )
    return GraphServiceClient(credentials=credential)
