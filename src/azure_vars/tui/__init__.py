"""TUI module for azure-vars.

Provides an interactive Text User Interface for browsing organizations,
projects and variable groups.
"""

from azure_vars.tui.app import AzureVarsApp

__all__ = ["AzureVarsApp"]
