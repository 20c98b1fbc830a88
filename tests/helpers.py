"""Shared fakes and builders for the updater tests."""

import asyncio
import io
import re
import zipfile

from aiohttp import web


class FakeSupervisor:
    """In-memory stand-in for ServerProcess."""

    def __init__(self, version_line='[2024-01-01 00:00:00:000 INFO] Version 1.20.0.0', running=True,
                 exits_on_stop=True):
        self.is_running = running
        self.version_line = version_line
        self.exits_on_stop = exits_on_stop
        self.inputs = []
        self.broadcasts = []
        self.events = []
        self._match_handlers = []
        self._exit_handlers = []
        self._exited = asyncio.Event()

    def register_match_handler(self, pattern, callback):
        self._match_handlers.append((re.compile(pattern), callback))

    def register_exit_handler(self, callback):
        self._exit_handlers.append(callback)

    def emit(self, line):
        for pattern, callback in self._match_handlers:
            match = pattern.search(line)
            if match:
                callback(match)

    def exit(self):
        self.is_running = False
        self._exited.set()
        for callback in self._exit_handlers:
            callback()

    async def send_input(self, line):
        self.inputs.append(line)
        self.events.append(f"input:{line}")
        if line == 'stop' and self.exits_on_stop:
            self.exit()

    async def broadcast(self, message):
        self.broadcasts.append(message)

    async def wait_for_exit(self, timeout=None):
        await asyncio.wait_for(self._exited.wait(), timeout=timeout)
        self.events.append('exited')
        return 0

    async def close(self):
        self.events.append('close')

    async def start(self):
        self.events.append('start')
        self.is_running = True
        self._exited = asyncio.Event()
        self.emit(self.version_line)


def make_archive(entries, modes=None):
    """
    Build a zip archive in memory.

    Args:
        entries: Mapping of entry name to bytes (None for a directory entry)
        modes: Optional mapping of entry name to unix permission bits

    Returns:
        bytes: Zip file content
    """
    modes = modes or {}
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, 'w') as archive:
        for name, data in entries.items():
            info = zipfile.ZipInfo(name)
            if name in modes:
                info.external_attr = modes[name] << 16
            archive.writestr(info, data if data is not None else b'')
    return buffer.getvalue()


def bedrock_archive(version):
    return make_archive({
        'bedrock_server': f'binary {version}'.encode(),
        'server.properties': b'level-name=Fresh\n',
        'permissions.json': b'[]',
        'behavior_packs/': None,
        'behavior_packs/vanilla/manifest.json': f'{{"version": "{version}"}}'.encode(),
    }, modes={'bedrock_server': 0o755})


def download_site(version, archive=None, page_status=200):
    """
    aiohttp app imitating the official download page.

    Returns:
        tuple: (app, stats) where stats['archive_requests'] counts archive downloads
    """
    archive = archive if archive is not None else bedrock_archive(version)
    app = web.Application()
    stats = {'archive_requests': 0}

    async def download_page(request):
        origin = str(request.url.origin())
        html = (
            '<html><body>'
            f'<a href="{origin}/bin-win/bedrock-server-{version}.zip">Windows</a>'
            f'<a href="{origin}/bin-linux/bedrock-server-{version}.zip">Ubuntu</a>'
            '</body></html>'
        )
        response = web.Response(text=html, content_type='text/html', status=page_status)
        response.enable_compression()
        return response

    async def archive_file(request):
        stats['archive_requests'] += 1
        return web.Response(body=archive, content_type='application/zip')

    app.router.add_get('/download', download_page)
    app.router.add_get('/bin-linux/{name}', archive_file)
    app.router.add_get('/bin-win/{name}', archive_file)
    return app, stats


async def wait_for(condition, timeout=5.0):
    """Poll condition() on the event loop until it is true."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not condition():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.01)
