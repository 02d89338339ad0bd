from pathlib import Path

import pytest
from click.testing import CliRunner

from whisperflow.cli.main import cli
from whisperflow.errors import DownloadError
from whisperflow.models.events import (
    DownloadCompleted,
    DownloadProgress,
    DownloadStarted,
    Failed,
    Segment,
)
from whisperflow.models.whisper import LocalModelFiles
from whisperflow.pipeline.channel import EventChannel


@pytest.fixture
def runner():
    return CliRunner()


def test_languages_list(runner):
    result = runner.invoke(cli, ["languages", "list"])
    assert result.exit_code == 0
    assert "English" in result.output
    assert "Luxembourgish" in result.output


def test_languages_check(runner):
    assert runner.invoke(cli, ["languages", "check", "FR"]).exit_code == 0
    assert runner.invoke(cli, ["languages", "check", "xx"]).exit_code == 1


def test_models_list(runner, tmp_path):
    result = runner.invoke(cli, ["models", "list", "--cache-dir", str(tmp_path)])
    assert result.exit_code == 0
    assert "tiny" in result.output


class FlakyManager:
    """Fails the first ``failures`` acquisitions, then succeeds."""

    failures = 1
    calls = 0

    def __init__(self, repository=None, **kwargs):
        pass

    def acquire(self, descriptor, *, force_download=False, emit=None):
        FlakyManager.calls += 1
        if FlakyManager.calls <= FlakyManager.failures:
            raise DownloadError("model.safetensors", "connection reset")
        emit(DownloadStarted(file="model.safetensors"))
        emit(DownloadProgress(file="model.safetensors", percentage=50.0, elapsed=1.0, remaining=1.0))
        emit(DownloadCompleted(file="model.safetensors"))
        return LocalModelFiles(descriptor=descriptor, weights=Path("/cache/base/model.safetensors"))


@pytest.fixture
def flaky_manager(monkeypatch):
    import whisperflow.acquisition

    FlakyManager.calls = 0
    monkeypatch.setattr(whisperflow.acquisition, "CacheManager", FlakyManager)
    return FlakyManager


def test_models_download_without_retries_fails(runner, flaky_manager):
    result = runner.invoke(cli, ["models", "download", "base"])
    assert result.exit_code == 1
    assert flaky_manager.calls == 1


def test_models_download_retries(runner, flaky_manager):
    result = runner.invoke(cli, ["models", "download", "base", "--retries", "1"])
    assert result.exit_code == 0
    assert flaky_manager.calls == 2


def test_models_download_unknown_model(runner):
    assert runner.invoke(cli, ["models", "download", "huge"]).exit_code == 1


class ScriptedTranscriber:
    events = []
    configs = []

    def __init__(self, config, **kwargs):
        ScriptedTranscriber.configs.append(config)

    def transcribe(self, path):
        channel = EventChannel()
        for event in self.events:
            channel.send(event)
        channel.close()
        return channel


@pytest.fixture
def scripted(monkeypatch, tmp_path):
    import whisperflow.pipeline.orchestrator

    ScriptedTranscriber.configs = []
    monkeypatch.setattr(whisperflow.pipeline.orchestrator, "Transcriber", ScriptedTranscriber)
    audio = tmp_path / "talk.wav"
    audio.write_bytes(b"RIFF")
    return ScriptedTranscriber, audio


def test_transcribe_writes_segments(runner, scripted, tmp_path):
    transcriber, audio = scripted
    transcriber.events = [
        DownloadStarted(file="config.json"),
        DownloadCompleted(file="config.json"),
        Segment(start_offset=0.0, end_offset=1.0, percentage=0.5, text="hello"),
        Segment(start_offset=1.0, end_offset=2.0, percentage=1.0, text="world"),
    ]
    output = tmp_path / "talk.txt"

    result = runner.invoke(cli, ["transcribe", str(audio), "base", "en", str(output), "-v"])

    assert result.exit_code == 0
    assert output.read_text() == "hello\nworld\n"


def test_transcribe_failure_writes_nothing(runner, scripted, tmp_path):
    transcriber, audio = scripted
    transcriber.events = [Failed(error="DownloadError", message="offline")]
    output = tmp_path / "talk.txt"

    result = runner.invoke(cli, ["transcribe", str(audio), "base", "en", str(output)])

    assert result.exit_code == 1
    assert not output.exists()


def test_transcribe_rejects_incompatible_language(runner, scripted, tmp_path):
    transcriber, audio = scripted
    result = runner.invoke(cli, ["transcribe", str(audio), "base_en", "fr", str(tmp_path / "out.txt")])
    assert result.exit_code == 1
    assert transcriber.configs == []


def test_transcribe_reads_config_file(runner, scripted, tmp_path):
    transcriber, audio = scripted
    transcriber.events = []
    config = tmp_path / "whisperflow.yaml"
    config.write_text("beam_width: 2\noverlap_seconds: 1.0\nmodel: tiny\n")

    result = runner.invoke(
        cli,
        ["transcribe", str(audio), "small", "de", str(tmp_path / "out.txt"), "--config", str(config), "--max-depth", "12"],
    )

    assert result.exit_code == 0
    (used,) = transcriber.configs
    assert used.model == "small"
    assert used.language == "de"
    assert used.beam_width == 2
    assert used.max_depth == 12
    assert used.overlap_seconds == 1.0


def test_serve_uses_cache_dir(runner, monkeypatch, tmp_path):
    uvicorn = pytest.importorskip("uvicorn")
    pytest.importorskip("fastapi")
    import whisperflow.server.app

    seen = {}
    monkeypatch.setattr(whisperflow.server.app, "create_app", lambda cache: cache)
    monkeypatch.setattr(uvicorn, "run", lambda app, host, port: seen.update(app=app, port=port))

    result = runner.invoke(cli, ["serve", "--port", "3100", "--cache-dir", str(tmp_path)])

    assert result.exit_code == 0, result.output
    assert seen["port"] == 3100
    assert seen["app"].repository.cache_dir == tmp_path
