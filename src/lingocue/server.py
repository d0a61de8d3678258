# Copyright © 2025 Ed Nutting
# SPDX-License-Identifier: MIT
# See LICENSE file for details

"""
Web server for the lingocue practice engine.

Each WebSocket connection gets its own PracticeSession. The browser owns the
audio element and the microphone: it reports playback events as messages and
receives playback/recording commands back. Messages on one connection are
handled one at a time, and every message is answered with a state snapshot.
"""

import asyncio
import base64
import contextlib
import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from aiohttp import web

from .comparison import WordMatchResult
from .config import (
    DEFAULT_CONFIG,
    Config,
    DisplaySettings,
    get_display_settings,
    get_practice_settings,
    load_config,
    save_config,
    update_config_display,
)
from .playback import PlaybackControl
from .recording import FULL_SESSION_KEY, RecordingArtifact, RecordingCapture, RecordingKey
from .regenerator import TranscriptStats, get_transcript_stats
from .session import PracticeSession, RegenerationPreview, SessionSnapshot
from .subtitle_parser import CaptionEntry, SubtitleError
from .timecode import format_time

logger = logging.getLogger(__name__)

Message = dict[str, Any]


class WebSocketPlayback(PlaybackControl):
    """Queues playback commands for the browser's audio element."""

    def __init__(self) -> None:
        self.outbox: list[Message] = []

    def _send(self, action: str, **params: Any) -> None:
        self.outbox.append({"type": "playback", "action": action, **params})

    def play(self) -> None:
        self._send("play")

    def pause(self) -> None:
        self._send("pause")

    def seek(self, seconds: float) -> None:
        self._send("seek", time=seconds)

    def set_rate(self, rate: float) -> None:
        self._send("rate", rate=rate)

    def set_volume(self, volume: float) -> None:
        self._send("volume", volume=volume)


class WebSocketRecorder(RecordingCapture):
    """
    Asks the browser to record with its MediaRecorder.

    The finished audio comes back later as a recording_complete message,
    which the server hands to deliver().
    """

    def __init__(self) -> None:
        super().__init__()
        self.outbox: list[Message] = []
        self._key: RecordingKey | None = None

    @property
    def is_capturing(self) -> bool:
        return self._key is not None

    def start_capture(self, key: RecordingKey) -> None:
        super().start_capture(key)
        self._key = key
        self.outbox.append({"type": "recording", "action": "start", "key": key})

    def stop_capture(self) -> None:
        self.outbox.append({"type": "recording", "action": "stop", "key": self._key})
        self._key = None


@dataclass
class Connection:
    """Per-connection state: the socket, its session and the command queues."""
    ws: web.WebSocketResponse
    session: PracticeSession
    playback: WebSocketPlayback
    recorder: RecordingCapture

    def drain_commands(self) -> list[Message]:
        """Take every queued playback/recording command."""
        commands: list[Message] = self.playback.outbox
        self.playback.outbox = []
        if isinstance(self.recorder, WebSocketRecorder):
            commands.extend(self.recorder.outbox)
            self.recorder.outbox = []
        return commands


Handler = Callable[[Connection, Message], Awaitable[None]]


def entry_to_dict(index: int, entry: CaptionEntry) -> Message:
    """Serialize one sentence for the transcript list."""
    return {
        "index": index,
        "startTime": entry.start_time,
        "endTime": entry.end_time,
        "start": format_time(entry.start_time),
        "end": format_time(entry.end_time),
        "text": entry.text,
        "speed": entry.speed,
        "volume": entry.volume,
    }


def stats_to_dict(stats: TranscriptStats) -> Message:
    """Serialize transcript statistics."""
    return {
        "totalSentences": stats.total_sentences,
        "totalWords": stats.total_words,
        "averageWordsPerSentence": round(stats.average_words_per_sentence, 1),
        "shortSentences": stats.short_sentences,
        "longSentences": stats.long_sentences,
    }


def comparison_to_dict(result: WordMatchResult | None) -> Message | None:
    """Serialize a dictation comparison."""
    if result is None:
        return None
    return {
        "isCorrect": result.is_correct,
        "matchedWords": result.matched_words,
        "correctWords": result.correct_words,
        "userWords": result.user_words,
    }


def snapshot_to_dict(snapshot: SessionSnapshot) -> Message:
    """Serialize a session snapshot as a state message."""
    return {
        "type": "state",
        "mode": snapshot.mode.value,
        "shadowingSubmode": snapshot.shadowing_submode.value,
        "filename": snapshot.filename,
        "entryCount": snapshot.entry_count,
        "currentTime": snapshot.current_time,
        "duration": snapshot.duration,
        "isPlaying": snapshot.is_playing,
        "pinnedIndex": snapshot.pinned_index,
        "activeIndex": snapshot.active_index,
        "displayIndex": snapshot.display_index,
        "displayText": snapshot.display_text,
        "message": snapshot.message,
        "userInput": snapshot.user_input,
        "showAnswer": snapshot.show_answer,
        "comparison": comparison_to_dict(snapshot.comparison),
        "canAdvance": snapshot.can_advance,
        "isRecording": snapshot.is_recording,
        "recordings": list(snapshot.recording_keys),
    }


def _parse_recording_key(raw: object, entry_count: int) -> RecordingKey:
    """Read a recording key: FULL_SESSION_KEY or the index of a current sentence."""
    if raw == FULL_SESSION_KEY:
        return FULL_SESSION_KEY
    index: int = int(raw)  # type: ignore[arg-type]
    if not 0 <= index < entry_count:
        raise ValueError(f"Invalid recording key: {raw!r}")
    return index


def _optional_float(raw: object) -> float | None:
    if raw is None:
        return None
    return float(raw)  # type: ignore[arg-type]


class WebServer:
    """aiohttp server hosting one practice session per WebSocket."""

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 8000,
        config: Config | None = None,
        recorder_factory: Callable[[], RecordingCapture] | None = None
    ) -> None:
        """
        Args:
            host: Interface to bind
            port: Port to listen on
            config: Loaded configuration (defaults if None)
            recorder_factory: Builds the recorder for each connection. When None
                the browser records and uploads the audio.
        """
        self.host: str = host
        self.port: int = port
        self.config: Config = config or DEFAULT_CONFIG
        self.recorder_factory = recorder_factory
        self.app: web.Application = web.Application()
        self.websockets: set[web.WebSocketResponse] = set()
        self.runner: web.AppRunner | None = None

        self.settings: DisplaySettings = get_display_settings(self.config)

        self.handlers: dict[str, Handler] = {
            "load_transcript": self._on_load_transcript,
            "time_update": self._on_time_update,
            "play_state": self._on_play_state,
            "duration": self._on_duration,
            "set_mode": self._on_set_mode,
            "set_submode": self._on_set_submode,
            "next": self._on_next,
            "previous": self._on_previous,
            "replay": self._on_replay,
            "jump_to": self._on_jump_to,
            "seek": self._on_seek,
            "input": self._on_input,
            "show_answer": self._on_show_answer,
            "key": self._on_key,
            "toggle_recording": self._on_toggle_recording,
            "recording_complete": self._on_recording_complete,
            "get_recording": self._on_get_recording,
            "delete_recording": self._on_delete_recording,
            "set_override": self._on_set_override,
            "regenerate_preview": self._on_regenerate_preview,
            "regenerate_confirm": self._on_regenerate_confirm,
            "regenerate_cancel": self._on_regenerate_cancel,
        }

        self._setup_routes()

    def _setup_routes(self) -> None:
        """Set up HTTP routes."""
        self.app.router.add_get('/', self._handle_index)
        self.app.router.add_get('/ws', self._handle_websocket)
        self.app.router.add_post('/settings', self._handle_settings)
        self.app.router.add_get('/settings', self._handle_get_settings)
        self.app.router.add_post('/save-config', self._handle_save_config)

    def create_connection(self, ws: web.WebSocketResponse) -> Connection:
        """Build a fresh session and collaborators for a new socket."""
        playback = WebSocketPlayback()
        recorder: RecordingCapture = (
            self.recorder_factory() if self.recorder_factory else WebSocketRecorder())
        session = PracticeSession(playback, recorder, get_practice_settings(self.config))
        return Connection(ws=ws, session=session, playback=playback, recorder=recorder)

    async def _handle_index(self, request: web.Request) -> web.Response:
        """Report that the server is up."""
        return web.json_response({
            "status": "ok",
            "connections": len(self.websockets),
        })

    async def _handle_websocket(self, request: web.Request) -> web.WebSocketResponse:
        """Handle a WebSocket connection for its whole lifetime."""
        ws = web.WebSocketResponse()
        await ws.prepare(request)

        self.websockets.add(ws)
        logger.info("WebSocket connected. Total: %d", len(self.websockets))
        conn: Connection = self.create_connection(ws)

        try:
            await ws.send_json({
                "type": "init",
                "settings": self.settings,
                "practice": dict(conn.session.settings),
                "state": snapshot_to_dict(conn.session.snapshot()),
            })

            async for msg in ws:
                if msg.type == web.WSMsgType.TEXT:
                    try:
                        data = json.loads(msg.data)
                    except json.JSONDecodeError as e:
                        await ws.send_json({"type": "error", "message": f"Invalid JSON: {e}"})
                        continue
                    if isinstance(data, dict):
                        await self._handle_ws_message(conn, data)
                elif msg.type == web.WSMsgType.ERROR:
                    logger.warning("WebSocket error: %s", ws.exception())
        finally:
            if conn.recorder.is_capturing:
                conn.recorder.stop_capture()
            self.websockets.discard(ws)
            logger.info("WebSocket disconnected. Total: %d", len(self.websockets))

        return ws

    async def _handle_ws_message(self, conn: Connection, data: Message) -> None:
        """Dispatch one message, then send queued commands and the new state."""
        msg_type: object | None = data.get("type")
        if not msg_type:
            return

        handler: Handler | None = self.handlers.get(str(msg_type))
        if handler is None:
            logger.warning("Unhandled WebSocket message: %s", msg_type)
            return

        try:
            await handler(conn, data)
        except SubtitleError as e:
            logger.info("Rejected subtitle file: %s", e)
            await conn.ws.send_json({"type": "error", "message": str(e)})
        except (ValueError, IndexError, TypeError) as e:
            logger.warning("Rejected %s message: %s", msg_type, e)
            await conn.ws.send_json({"type": "error", "message": str(e)})

        for command in conn.drain_commands():
            await conn.ws.send_json(command)
        await conn.ws.send_json(snapshot_to_dict(conn.session.snapshot()))

    # Transcript ---------------------------------------------------------

    async def _send_transcript(self, conn: Connection) -> None:
        entries: list[CaptionEntry] = conn.session.entries
        await conn.ws.send_json({
            "type": "transcript",
            "filename": conn.session.filename,
            "sentences": [entry_to_dict(i, e) for i, e in enumerate(entries)],
            "stats": stats_to_dict(get_transcript_stats(entries)),
        })

    async def _on_load_transcript(self, conn: Connection, data: Message) -> None:
        """Handle a subtitle file picked by the learner."""
        conn.session.load_transcript(str(data.get("filename", "")), str(data.get("text", "")))
        await self._send_transcript(conn)

    async def _on_regenerate_preview(self, conn: Connection, _data: Message) -> None:
        """Handle a request to preview sentence regeneration."""
        preview: RegenerationPreview = conn.session.preview_regeneration()
        await conn.ws.send_json({
            "type": "regeneration_preview",
            "before": stats_to_dict(preview.before),
            "after": stats_to_dict(preview.after),
            "preview": preview.preview_text,
        })

    async def _on_regenerate_confirm(self, conn: Connection, _data: Message) -> None:
        """Handle confirmation of a previewed regeneration."""
        if conn.session.confirm_regeneration():
            await self._send_transcript(conn)

    async def _on_regenerate_cancel(self, conn: Connection, _data: Message) -> None:
        """Handle cancellation of a previewed regeneration."""
        conn.session.cancel_regeneration()

    # Player events ------------------------------------------------------

    async def _on_time_update(self, conn: Connection, data: Message) -> None:
        conn.session.on_time_update(float(data.get("time", 0.0)))

    async def _on_play_state(self, conn: Connection, data: Message) -> None:
        conn.session.on_play_state(bool(data.get("playing", False)))

    async def _on_duration(self, conn: Connection, data: Message) -> None:
        conn.session.on_duration(float(data.get("duration", 0.0)))

    # Modes and navigation -----------------------------------------------

    async def _on_set_mode(self, conn: Connection, data: Message) -> None:
        conn.session.set_mode(str(data.get("mode", "")))

    async def _on_set_submode(self, conn: Connection, data: Message) -> None:
        conn.session.set_shadowing_submode(str(data.get("submode", "")))

    async def _on_next(self, conn: Connection, _data: Message) -> None:
        conn.session.next_sentence()

    async def _on_previous(self, conn: Connection, _data: Message) -> None:
        conn.session.previous_sentence()

    async def _on_replay(self, conn: Connection, _data: Message) -> None:
        conn.session.replay()

    async def _on_jump_to(self, conn: Connection, data: Message) -> None:
        conn.session.jump_to(int(data.get("index", 0)))

    async def _on_seek(self, conn: Connection, data: Message) -> None:
        conn.session.seek(float(data.get("time", 0.0)))

    async def _on_key(self, conn: Connection, data: Message) -> None:
        """Handle a key press forwarded by the browser."""
        consumed: bool = conn.session.handle_key(
            str(data.get("key", "")),
            shift=bool(data.get("shift", False)),
            popup_focused=bool(data.get("popupFocused", False)),
        )
        await conn.ws.send_json({"type": "key_result", "consumed": consumed})

    # Dictation ----------------------------------------------------------

    async def _on_input(self, conn: Connection, data: Message) -> None:
        conn.session.update_input(str(data.get("text", "")))

    async def _on_show_answer(self, conn: Connection, _data: Message) -> None:
        conn.session.reveal_answer()

    # Shadowing ----------------------------------------------------------

    async def _on_toggle_recording(self, conn: Connection, _data: Message) -> None:
        conn.session.toggle_recording()

    async def _on_recording_complete(self, conn: Connection, data: Message) -> None:
        """Handle a finished browser recording (base64-encoded audio)."""
        key: RecordingKey = _parse_recording_key(data.get("key"), len(conn.session.entries))
        delivered: bool = conn.recorder.deliver(RecordingArtifact(
            key=key,
            data=base64.b64decode(str(data.get("data", "")), validate=True),
            mime_type=str(data.get("mimeType", "audio/webm")),
            url=data.get("url"),
            duration=_optional_float(data.get("duration")),
        ))
        if not delivered:
            raise ValueError(f"No recording was requested for {key}")

    async def _on_get_recording(self, conn: Connection, data: Message) -> None:
        """Send a stored recording back for playback."""
        key: RecordingKey = _parse_recording_key(data.get("key"), len(conn.session.entries))
        artifact: RecordingArtifact | None = conn.session.recordings.get(key)
        if artifact is None:
            await conn.ws.send_json({"type": "error", "message": f"No recording for {key}"})
            return
        await conn.ws.send_json({
            "type": "recording_data",
            "key": artifact.key,
            "mimeType": artifact.mime_type,
            "duration": artifact.duration,
            "data": base64.b64encode(artifact.data).decode("ascii"),
        })

    async def _on_delete_recording(self, conn: Connection, data: Message) -> None:
        conn.session.delete_recording(
            _parse_recording_key(data.get("key"), len(conn.session.entries)))

    # Overrides ----------------------------------------------------------

    async def _on_set_override(self, conn: Connection, data: Message) -> None:
        """Handle a per-sentence speed and/or volume override. Null clears it."""
        index: int = int(data.get("index", 0))
        if "speed" in data:
            conn.session.set_speed_override(index, _optional_float(data["speed"]))
        if "volume" in data:
            conn.session.set_volume_override(index, _optional_float(data["volume"]))

    # HTTP ---------------------------------------------------------------

    async def _handle_settings(self, request: web.Request) -> web.Response:
        """Handle settings update via POST."""
        data = await request.json()
        self.settings.update(data)
        await self.broadcast({
            "type": "settings_updated",
            "settings": self.settings
        })
        return web.json_response({"status": "ok", "settings": self.settings})

    async def _handle_get_settings(self, request: web.Request) -> web.Response:
        """Get current settings."""
        return web.json_response(self.settings)

    async def _handle_save_config(self, request: web.Request) -> web.Response:
        """Save current settings to config file."""
        config = update_config_display(load_config(), self.settings)
        if save_config(config):
            return web.json_response({"status": "ok", "message": "Settings saved"})
        return web.json_response(
            {"status": "error", "message": "Failed to save config"},
            status=500
        )

    async def broadcast(self, message: Message) -> None:
        """Send a message to all connected WebSocket clients."""
        if not self.websockets:
            return

        dead: set[web.WebSocketResponse] = set()
        for ws in self.websockets:
            try:
                await ws.send_json(message)
            except (ConnectionError, RuntimeError) as e:
                logger.warning("Error sending to WebSocket: %s", e)
                dead.add(ws)

        self.websockets -= dead

    async def start(self) -> None:
        """Start the web server."""
        self.runner = web.AppRunner(self.app)
        await self.runner.setup()
        site: web.TCPSite = web.TCPSite(self.runner, self.host, self.port)
        await site.start()
        print(f"Web server running at http://{self.host}:{self.port}")

        # Give event loop a moment to start accepting connections
        await asyncio.sleep(0.1)

    async def stop(self) -> None:
        """Stop the web server."""
        for ws in list(self.websockets):
            with contextlib.suppress(ConnectionError, RuntimeError):
                await ws.close()
        self.websockets.clear()

        if self.runner:
            await self.runner.cleanup()
