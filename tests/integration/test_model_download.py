"""Integration tests for model download against a local HTTP server."""

import asyncio
import uuid
from pathlib import Path

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer
from pubsub import pub

from cornerspeech.errors import BackendUnavailableError, ModelDownloadError
from cornerspeech.models.events import DownloadProgress
from cornerspeech.services.speech_service import SpeechService
from cornerspeech.storage.model_store import ModelStore


def build_app(payload: bytes) -> web.Application:
    async def complete(request):
        return web.Response(body=payload, content_type="application/octet-stream")

    async def truncated(request):
        response = web.StreamResponse()
        response.content_length = len(payload)
        await response.prepare(request)
        await response.write(payload[:len(payload) // 2])
        request.transport.close()
        return response

    async def garbage(request):
        return web.Response(body=b"<html>rate limited</html>" * 100, content_type="text/html")

    app = web.Application()
    app.router.add_get("/model.bin", complete)
    app.router.add_get("/truncated.bin", truncated)
    app.router.add_get("/garbage.bin", garbage)
    return app


def run_download(payload: bytes, path: str, store: ModelStore, progress_callback=None):
    """Serve payload locally, point the store at path and download it."""
    async def scenario():
        server = TestServer(build_app(payload))
        await server.start_server()
        try:
            store.url = str(server.make_url(path))
            return await store.download(progress_callback)
        finally:
            await server.close()

    return asyncio.run(scenario())


@pytest.fixture
def store(temp_data_dir, counting_loader):
    return ModelStore(Path(temp_data_dir) / "models", loader=counting_loader,
                      download_chunk_size=1024, download_timeout=10)


@pytest.mark.integration
class TestModelDownload:

    def test_download_success(self, store, model_bytes):
        progress = []

        path = run_download(model_bytes, "/model.bin", store, progress.append)

        assert path == store.model_path()
        assert path.read_bytes() == model_bytes
        assert not store.partial_path().exists()
        assert store.is_present_and_valid() is True
        assert len(progress) > 1
        assert progress == sorted(progress)
        assert progress[-1] == pytest.approx(100.0)

    def test_download_replaces_existing_file(self, store, model_bytes, write_model):
        write_model(store.model_path(), b"stale")

        run_download(model_bytes, "/model.bin", store)

        assert store.model_path().read_bytes() == model_bytes

    def test_truncated_download_leaves_nothing(self, store, model_bytes):
        with pytest.raises(ModelDownloadError):
            run_download(model_bytes, "/truncated.bin", store)

        assert not store.model_path().exists()
        assert not store.partial_path().exists()
        assert store.is_present_and_valid() is False

    def test_http_error(self, store, model_bytes):
        with pytest.raises(ModelDownloadError):
            run_download(model_bytes, "/missing.bin", store)

        assert not store.model_path().exists()

    def test_unverifiable_body_is_removed(self, store, model_bytes):
        with pytest.raises(ModelDownloadError, match="load"):
            run_download(model_bytes, "/garbage.bin", store)

        assert not store.model_path().exists()
        assert not store.partial_path().exists()

    def test_full_load_verification_failure(self, store, model_bytes, counting_loader):
        store.verify_with_loader = True
        counting_loader.fail = True

        with pytest.raises(ModelDownloadError):
            run_download(model_bytes, "/model.bin", store)

        assert not store.model_path().exists()

    def test_broken_progress_callback_does_not_abort(self, store, model_bytes):
        def broken(progress):
            raise RuntimeError("progress bar went away")

        run_download(model_bytes, "/model.bin", store, broken)

        assert store.is_present_and_valid() is True

    def test_service_publishes_progress_events(self, test_config, counting_loader, model_bytes):
        topic = f"download_progress_test_{uuid.uuid4().hex}"
        received = []

        def listener(progress):
            received.append(progress)

        pub.subscribe(listener, topic)
        try:
            service = SpeechService(test_config, loader=counting_loader, progress_topic=topic)
            service.model_store.download_chunk_size = 1024
            forwarded = []

            async def scenario():
                server = TestServer(build_app(model_bytes))
                await server.start_server()
                try:
                    service.model_store.url = str(server.make_url("/model.bin"))
                    return await service.download_model(forwarded.append)
                finally:
                    await server.close()

            asyncio.run(scenario())
        finally:
            pub.unsubscribe(listener, topic)

        assert all(isinstance(p, DownloadProgress) for p in received)
        assert [p.progress for p in received] == forwarded
        assert received[-1].progress == pytest.approx(100.0)
        assert service.check_model() is True

    def test_missing_backend_keeps_downloaded_model(self, temp_data_dir, model_bytes):
        def loader(path):
            raise ImportError("No module named 'pywhispercpp'")

        store = ModelStore(Path(temp_data_dir) / "models", loader=loader, verify_with_loader=True,
                           download_chunk_size=1024, download_timeout=10)

        with pytest.raises(BackendUnavailableError):
            run_download(model_bytes, "/model.bin", store)

        assert store.model_path().read_bytes() == model_bytes
        assert not store.partial_path().exists()
