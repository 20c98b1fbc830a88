"""
Update API handlers.

This module provides HTTP request handlers for inspecting the updater and
requesting an update check.
"""

import logging
from aiohttp import web

from . import ORCHESTRATOR_KEY

logger = logging.getLogger(__name__)


async def get_update_status(request):
    """Returns the current update status and configuration."""
    try:
        orchestrator = request.app[ORCHESTRATOR_KEY]
        return web.json_response({
            'status': 'success',
            'update': orchestrator.status()
        })
    except Exception as e:
        logger.error(f"Error getting update status: {e}")
        return web.json_response({
            'status': 'error',
            'message': str(e)
        }, status=500)


async def check_updates(request):
    """Asks the update loop to check for updates now."""
    try:
        orchestrator = request.app[ORCHESTRATOR_KEY]

        if orchestrator.current_version is None:
            return web.json_response({
                'status': 'error',
                'message': 'Server version not detected yet'
            }, status=409)

        orchestrator.request_check()
        return web.json_response({
            'status': 'success',
            'message': 'Update check requested'
        }, status=202)
    except Exception as e:
        logger.error(f"Error requesting update check: {e}")
        return web.json_response({
            'status': 'error',
            'message': str(e)
        }, status=500)
