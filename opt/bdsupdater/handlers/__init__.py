"""
Handlers package for the Bedrock server auto-updater.

This package contains control API request handlers for:
- Update status and on-demand checks
- Backup begin/end notifications
"""

from aiohttp import web

from ..updater.orchestrator import UpdateOrchestrator

ORCHESTRATOR_KEY = web.AppKey('orchestrator', UpdateOrchestrator)
