"""
Backup notification handlers.

The backup tool calls these around each backup so that no update is
installed while server files are being copied.
"""

import logging
from aiohttp import web

from . import ORCHESTRATOR_KEY

logger = logging.getLogger(__name__)


async def backup_begin(request):
    """Marks a backup as in progress; installs wait until it ends."""
    try:
        logger.debug("Backup begin notification received")
        request.app[ORCHESTRATOR_KEY].backup_gate.on_backup_begin()
        return web.json_response({'status': 'success', 'backup_gate_open': False})
    except Exception as e:
        logger.error(f"Error handling backup begin: {e}")
        return web.json_response({
            'status': 'error',
            'message': str(e)
        }, status=500)


async def backup_end(request):
    """Marks the running backup as finished."""
    try:
        logger.debug("Backup end notification received")
        request.app[ORCHESTRATOR_KEY].backup_gate.on_backup_end()
        return web.json_response({'status': 'success', 'backup_gate_open': True})
    except Exception as e:
        logger.error(f"Error handling backup end: {e}")
        return web.json_response({
            'status': 'error',
            'message': str(e)
        }, status=500)
