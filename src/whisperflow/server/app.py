"""HTTP and WebSocket endpoints over the catalogs, downloads and transcription."""

from __future__ import annotations

import asyncio
import os
import tempfile
from collections.abc import Callable

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from whisperflow import __version__
from whisperflow.acquisition import CacheManager
from whisperflow.models.config import TranscribeConfig
from whisperflow.models.events import Event, Failed
from whisperflow.models.language import LANGUAGES, check_language
from whisperflow.models.whisper import MODELS, get_model
from whisperflow.pipeline.channel import ChannelClosed, EventChannel
from whisperflow.pipeline.orchestrator import Transcriber
from whisperflow.utils.progress import log_step, log_warning

# close code for an unknown model id, sent instead of accepting the socket
WS_NOT_FOUND = 4404


async def _stream(websocket: WebSocket, events: EventChannel[Event]) -> bool:
    """Send every event as one JSON message.

    Returns False when the client went away, after dropping the stream so
    the producer stops at its next send.
    """
    try:
        async for event in events:
            await websocket.send_json(event.model_dump(mode="json"))
    except (WebSocketDisconnect, OSError, RuntimeError):
        # servers disagree on what a send to a closed socket raises
        log_warning("Client disconnected, dropping event stream")
        await events.aclose()
        return False
    return True


def _parse_config(options: object) -> TranscribeConfig:
    if not isinstance(options, dict):
        raise TypeError(f"Expected a JSON object of options, got {type(options).__name__}")
    if options.get("cache_dir") is not None:
        raise ValueError("cache_dir is chosen by the server and cannot be set by clients")
    return TranscribeConfig(**options)


async def _reject(websocket: WebSocket, message: str) -> None:
    await websocket.send_json(Failed(error="ConfigError", message=message).model_dump(mode="json"))
    await websocket.close()


def create_app(
    cache: CacheManager | None = None,
    transcriber_factory: Callable[[TranscribeConfig], Transcriber] | None = None,
) -> FastAPI:
    cache = cache or CacheManager()
    if transcriber_factory is None:
        def transcriber_factory(config: TranscribeConfig) -> Transcriber:
            return Transcriber(config, cache=cache)

    app = FastAPI(title="whisperflow", version=__version__)

    @app.get("/languages/list")
    def list_languages() -> list[dict[str, str]]:
        return [{"id": code, "lang": name} for code, name in LANGUAGES.items()]

    @app.get("/languages/check/{code}")
    def check(code: str) -> dict[str, str]:
        try:
            normalized = check_language(code)
        except ValueError as e:
            raise HTTPException(status_code=404, detail=str(e))
        return {"id": normalized, "lang": LANGUAGES[normalized]}

    @app.get("/models/list")
    def list_models() -> list[dict[str, str]]:
        return [{"id": code, "model": name} for code, (name, _) in MODELS.items()]

    @app.websocket("/models/download/{code}")
    async def download(websocket: WebSocket, code: str, ignore_cache: bool = False) -> None:
        try:
            descriptor = get_model(code)
        except ValueError:
            await websocket.close(code=WS_NOT_FOUND)
            return

        await websocket.accept()
        log_step("Download", f"{descriptor.repo_id} requested over websocket")

        events: EventChannel[Event] = EventChannel()
        failed = False

        def acquire() -> None:
            nonlocal failed
            try:
                cache.acquire(descriptor, force_download=ignore_cache, emit=events.send)
            except ChannelClosed:
                pass
            except Exception as e:
                failed = True
                try:
                    events.send(Failed(error=type(e).__name__, message=str(e)))
                except ChannelClosed:
                    pass
            finally:
                events.close()

        worker = asyncio.get_running_loop().run_in_executor(None, acquire)
        connected = await _stream(websocket, events)
        await worker
        if not connected:
            return

        try:
            if not failed:
                await websocket.send_json({"type": "model_completed", "model": descriptor.code})
            await websocket.close()
        except WebSocketDisconnect:
            pass

    @app.websocket("/transcribe")
    async def transcribe(websocket: WebSocket) -> None:
        await websocket.accept()
        try:
            config = _parse_config(await websocket.receive_json())
        except WebSocketDisconnect:
            return
        except ValidationError as e:
            await _reject(websocket, "; ".join(err["msg"] for err in e.errors()))
            return
        except (ValueError, TypeError) as e:
            # malformed JSON or a message that is not an options object
            await _reject(websocket, str(e))
            return

        try:
            audio = await websocket.receive_bytes()
        except WebSocketDisconnect:
            return

        fd, audio_path = tempfile.mkstemp(prefix="whisperflow-", suffix=".audio")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(audio)
            events = transcriber_factory(config).transcribe(audio_path)
            if await _stream(websocket, events):
                await websocket.close()
        finally:
            os.unlink(audio_path)

    return app
