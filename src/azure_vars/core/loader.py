"""Runs a fetch request against the remote client (called from worker threads)."""

from __future__ import annotations

import logging

from azure_vars.core.auth import AuthError
from azure_vars.core.browser import FetchOutcome, FetchRequest
from azure_vars.core.devops_client import AzureDevOpsClient, FetchError
from azure_vars.core.models import Item, NodeKind

logger = logging.getLogger(__name__)


def fetch_children(client: AzureDevOpsClient, request: FetchRequest) -> list[Item]:
    if request.kind is NodeKind.ROOT:
        return list(client.list_organizations())
    if request.kind is NodeKind.ORGANIZATION:
        return list(client.list_projects(request.org_name or ""))
    if request.kind is NodeKind.PROJECT:
        return list(client.list_variable_groups(request.org_name or "", request.project_id or ""))
    raise ValueError(f"Nothing to fetch for {request.kind.value} nodes")


def run_fetch(client: AzureDevOpsClient, request: FetchRequest) -> FetchOutcome:
    """Fetch and wrap the result. Domain errors become part of the outcome."""
    try:
        children = fetch_children(client, request)
    except (FetchError, AuthError) as e:
        logger.debug("Fetch for %r failed: %s", request.path, e)
        return FetchOutcome(request, error=e)
    return FetchOutcome(request, children=children)
