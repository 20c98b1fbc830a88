"""
Bedrock Server Auto-Updater - Main Entry Point

Runs the dedicated server under supervision, keeps it updated, and serves
a small control API for status, on-demand checks and backup notifications.
"""

import sys
import os

# Configure module path for package imports
current_dir = os.path.dirname(os.path.abspath(__file__))
parent_dir = os.path.dirname(current_dir)
if parent_dir not in sys.path:
    sys.path.insert(0, parent_dir)

import logging
from aiohttp import web

logger = logging.getLogger(__name__)

from bdsupdater.config_loader import get_server_config, load_update_config
from bdsupdater.handlers import ORCHESTRATOR_KEY
from bdsupdater.handlers.update_handlers import get_update_status, check_updates
from bdsupdater.handlers.backup_handlers import backup_begin, backup_end
from bdsupdater.supervisor.process import ServerProcess
from bdsupdater.updater.orchestrator import UpdateOrchestrator


async def updater_context(app):
    """Starts the server and the updater with the app, stops them on shutdown."""
    server_config = get_server_config()
    update_config = load_update_config()

    bin_path = server_config['bin_path']
    supervisor = ServerProcess(bin_path, server_config.get('args') or [])
    orchestrator = UpdateOrchestrator(
        update_config,
        supervisor,
        install_dir=os.path.dirname(os.path.abspath(bin_path)),
        page_url=server_config['download_page_url'],
        stop_timeout=server_config['stop_timeout'],
    )
    orchestrator.attach()
    app[ORCHESTRATOR_KEY] = orchestrator

    logger.info(
        f"Installation mode: {update_config.installation_mode.value}, "
        f"checking every {update_config.check_interval:g} minutes"
    )
    await supervisor.start()

    yield

    await orchestrator.stop()
    await supervisor.shutdown(timeout=server_config['stop_timeout'])


def init_app():
    """Initializes the Aiohttp application with routes."""
    app = web.Application()

    app.cleanup_ctx.append(updater_context)

    # ---< API Routes >---
    # Updater
    app.router.add_get('/api/update/status', get_update_status)
    app.router.add_post('/api/update/check', check_updates)

    # Backup notifications
    app.router.add_post('/api/backup/begin', backup_begin)
    app.router.add_post('/api/backup/end', backup_end)

    return app


def main():
    # Configure logging
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    server_config = get_server_config()
    app = init_app()
    web.run_app(app, host=server_config['api_host'], port=server_config['api_port'])


if __name__ == '__main__':
    main()
