"""azure-vars: terminal browser for Azure DevOps variable groups."""

__version__ = "0.3.0"
